"""Analysis cache for repeat checks.

Stores the diagnostics of each analyzed file in a SQLite database under the
project root. An entry is valid while the file's mtime and size are unchanged
and the flagged-function registry has the same fingerprint.

Location: <project>/.defermistake_cache/analysis.db
"""

import sqlite3
import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .detector import Diagnostic
from ..utils.logger import log_warning


DEFAULT_CACHE_DIR = '.defermistake_cache'


class AnalysisCache:
    """Per-file diagnostics cache keyed by mtime, size and registry fingerprint."""

    def __init__(self, project_root: Path, cache_dir_name: str = DEFAULT_CACHE_DIR):
        """Open (and create if needed) the cache database.

        Args:
            project_root: Root directory of the project being checked
            cache_dir_name: Directory name for the cache inside project_root
        """
        self.project_root = Path(project_root)
        self.cache_dir = self.project_root / cache_dir_name
        self.cache_file = self.cache_dir / 'analysis.db'

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(str(self.cache_file))
        self._init_database()

    def _init_database(self):
        """Create cache tables if they don't exist."""
        cursor = self.conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS file_metadata (
                file_path TEXT PRIMARY KEY,
                mtime REAL NOT NULL,
                size INTEGER NOT NULL,
                cache_key TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS file_diagnostics (
                file_path TEXT NOT NULL,
                registry_key TEXT NOT NULL,
                diagnostics TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                PRIMARY KEY (file_path),
                FOREIGN KEY (file_path) REFERENCES file_metadata(file_path)
            )
        ''')

        self.conn.commit()

    def _get_cache_key(self, file_path: Path) -> Optional[Tuple[float, int, str]]:
        """Cache key from file mtime and size.

        Returns:
            Tuple of (mtime, size, key) or None if the file doesn't exist
        """
        try:
            stat = Path(file_path).stat()
        except OSError:
            return None
        return (stat.st_mtime, stat.st_size, f"{stat.st_mtime}:{stat.st_size}")

    def is_file_cached(self, file_path: Path) -> bool:
        """Check if the stored metadata still matches the file on disk."""
        key_data = self._get_cache_key(file_path)
        if key_data is None:
            return False
        mtime, size, _ = key_data

        cursor = self.conn.cursor()
        cursor.execute('''
            SELECT mtime, size FROM file_metadata
            WHERE file_path = ?
        ''', (str(file_path),))
        result = cursor.fetchone()

        if not result:
            return False
        return result[0] == mtime and result[1] == size

    def get_diagnostics(self, file_path: Path, registry_key: str) -> Optional[List[Diagnostic]]:
        """Cached diagnostics for a file, or None on a miss.

        Args:
            file_path: Path to file
            registry_key: Fingerprint of the registry the result was computed with
        """
        if not self.is_file_cached(file_path):
            return None

        cursor = self.conn.cursor()
        cursor.execute('''
            SELECT diagnostics FROM file_diagnostics
            WHERE file_path = ? AND registry_key = ?
        ''', (str(file_path), registry_key))
        result = cursor.fetchone()

        if not result:
            return None
        try:
            return [Diagnostic.from_dict(item) for item in json.loads(result[0])]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            log_warning('Cache', f"Discarding corrupt entry for {file_path}: {e}")
            self.invalidate_file(file_path)
            return None

    def set_diagnostics(self, file_path: Path, registry_key: str, diagnostics: List[Diagnostic]):
        """Store diagnostics for a file under its current mtime/size."""
        key_data = self._get_cache_key(file_path)
        if not key_data:
            return
        mtime, size, cache_key = key_data

        cursor = self.conn.cursor()
        cursor.execute('''
            INSERT OR REPLACE INTO file_metadata (file_path, mtime, size, cache_key)
            VALUES (?, ?, ?, ?)
        ''', (str(file_path), mtime, size, cache_key))

        cursor.execute('''
            INSERT OR REPLACE INTO file_diagnostics (file_path, registry_key, diagnostics, cache_key)
            VALUES (?, ?, ?, ?)
        ''', (str(file_path), registry_key,
              json.dumps([d.to_dict() for d in diagnostics]), cache_key))

        self.conn.commit()

    def invalidate_file(self, file_path: Path):
        """Invalidate cache for a specific file."""
        cursor = self.conn.cursor()
        cursor.execute('DELETE FROM file_diagnostics WHERE file_path = ?', (str(file_path),))
        cursor.execute('DELETE FROM file_metadata WHERE file_path = ?', (str(file_path),))
        self.conn.commit()

    def clear_cache(self):
        """Clear all cached data."""
        cursor = self.conn.cursor()
        cursor.execute('DELETE FROM file_diagnostics')
        cursor.execute('DELETE FROM file_metadata')
        self.conn.commit()

    def get_cache_stats(self) -> Dict[str, int]:
        """Counts of cached files, files with findings, and stored diagnostics."""
        cursor = self.conn.cursor()

        cursor.execute('SELECT COUNT(*) FROM file_metadata')
        total_files = cursor.fetchone()[0]

        cursor.execute('SELECT diagnostics FROM file_diagnostics')
        per_file = [len(json.loads(row[0])) for row in cursor.fetchall()]

        return {
            'total_files': total_files,
            'files_with_findings': sum(1 for count in per_file if count),
            'diagnostics_cached': sum(per_file),
        }

    def close(self):
        """Close database connection."""
        self.conn.close()
