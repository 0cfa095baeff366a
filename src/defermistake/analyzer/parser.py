"""Tree-sitter parser for Go source files."""
from pathlib import Path
from typing import Optional
from tree_sitter import Language, Parser, Tree
import tree_sitter_go as tsgo

from ..utils.logger import log_warning


class LanguageParser:
    """Parser factory using the tree-sitter v0.22+ API."""

    SUPPORTED_LANGUAGES = {
        '.go': 'go',
    }

    def __init__(self, language: str = 'go'):
        """Initialize parser for the given language.

        Args:
            language: Language name; only 'go' is supported

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Build a Parser bound to the language grammar.

        Raises:
            ValueError: If language is not supported
        """
        if self.language == 'go':
            lang = Language(tsgo.language())
        else:
            raise ValueError(f"Unsupported language: {self.language}")

        return Parser(lang)

    def parse_source(self, source_code: bytes | str) -> Tree:
        """Parse in-memory source.

        Args:
            source_code: Source text; str input is encoded as UTF-8

        Returns:
            Parsed Tree (may contain ERROR nodes for invalid input)
        """
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')
        return self.parser.parse(source_code)

    def parse_checked(self, source_code: bytes, label: str) -> Tree:
        """Parse source, warning when tree-sitter had to recover from syntax errors."""
        tree = self.parser.parse(source_code)
        if tree.root_node.has_error:
            log_warning('Parser', f"{label} has syntax errors; analyzing recovered tree")
        return tree

    @staticmethod
    def read_source(file_path: str | Path) -> Optional[bytes]:
        """Read raw source bytes, or None for missing/unreadable files."""
        file_path = Path(file_path)

        if not file_path.is_file():
            return None

        try:
            return file_path.read_bytes()
        except OSError as e:
            log_warning('Parser', f"Cannot read {file_path}: {e}")
            return None

    @classmethod
    def is_supported(cls, file_path: str | Path) -> bool:
        """Check whether a file extension maps to a supported language."""
        return Path(file_path).suffix.lower() in cls.SUPPORTED_LANGUAGES
