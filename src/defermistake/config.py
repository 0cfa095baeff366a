"""Configuration management for defermistake.

Loads environment variables (optionally from a .env file in the working
directory) and provides centralized config access.
"""
import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

from .analyzer.registry import FlaggedFunctionRegistry, FunctionIdentity, DEFAULT_REGISTRY

# Version - keep in sync with pyproject.toml
__version__ = "0.1.0"

_TRUTHY = {'1', 'true', 'yes', 'on'}


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: Explicit .env location (defaults to ./.env)

        Raises:
            ValueError: If DEFERMISTAKE_FLAGGED holds an invalid function spec
        """
        load_dotenv(env_path if env_path is not None else Path.cwd() / ".env")

        # Parse eagerly so invalid specs fail at startup
        self._extra_flagged = self._parse_flagged()

    def _parse_flagged(self) -> List[FunctionIdentity]:
        """Parse DEFERMISTAKE_FLAGGED ('time.Since,example.com/m.Elapsed').

        Raises:
            ValueError: On an invalid entry
        """
        raw = os.getenv("DEFERMISTAKE_FLAGGED", "")
        specs = [spec for spec in raw.split(',') if spec.strip()]
        try:
            return [FunctionIdentity.parse(spec) for spec in specs]
        except ValueError as e:
            raise ValueError(f"DEFERMISTAKE_FLAGGED: {e}") from e

    @property
    def flagged_functions(self) -> List[FunctionIdentity]:
        """Functions flagged in addition to the defaults."""
        return list(self._extra_flagged)

    def registry(self, extra_specs: Optional[List[str]] = None) -> FlaggedFunctionRegistry:
        """Default registry plus configured and command-line entries.

        Args:
            extra_specs: Additional 'path.Name' specs (e.g. from --flag)

        Raises:
            ValueError: If an extra spec is invalid
        """
        registry = DEFAULT_REGISTRY.with_entries(self._extra_flagged)
        if extra_specs:
            registry = registry.with_entries(FlaggedFunctionRegistry.from_specs(extra_specs))
        return registry

    @property
    def cache_dir_name(self) -> str:
        """Cache directory name created inside the checked project."""
        return os.getenv("DEFERMISTAKE_CACHE_DIR", ".defermistake_cache")

    @property
    def cache_enabled(self) -> bool:
        """False when DEFERMISTAKE_NO_CACHE is set to a truthy value."""
        return os.getenv("DEFERMISTAKE_NO_CACHE", "").strip().lower() not in _TRUTHY


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _config
    _config = None
