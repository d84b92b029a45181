"""Configuration management for keyscope.

Loads the project's .env file and exposes every setting as a property,
with explicit keyword overrides taking precedence over the environment.
"""
import os
import re
from pathlib import Path
from typing import List, Optional, Pattern
from dotenv import load_dotenv

__version__ = "0.3.0"

DEFAULT_CONSTANTS_PATH = "lib/constants/key_constants.dart"
DEFAULT_CACHE_SECONDS = 30.0


class Config:
    """Configuration loader with environment variable support.

    One instance is created by the entry point and handed to the services
    that need it (KeyIndex, ValidationEngine); there is no module-level
    singleton.
    """

    def __init__(self, project_root: str | Path = ".", env_file: Optional[str | Path] = None, **overrides):
        """Initialize config by loading the project's .env file.

        Args:
            project_root: Root of the Flutter project being analyzed
            env_file: Explicit .env path (defaults to <project_root>/.env)
            **overrides: Property values that win over environment variables
        """
        self.project_root = Path(project_root)
        env_path = Path(env_file) if env_file else self.project_root / ".env"
        if env_path.exists():
            load_dotenv(env_path)
        self._overrides = overrides

    def _get(self, name: str, env_var: str, default=None):
        if self._overrides.get(name) is not None:
            return self._overrides[name]
        return os.getenv(env_var, default)

    @property
    def key_constants_path(self) -> str:
        """Path of the KeyConstants file, relative to the project root."""
        return self._get("key_constants_path", "KEYSCOPE_CONSTANTS_PATH", DEFAULT_CONSTANTS_PATH)

    @property
    def constants_class(self) -> str:
        """Name of the class holding the key constants."""
        return self._get("constants_class", "KEYSCOPE_CONSTANTS_CLASS", "KeyConstants")

    @property
    def key_wrapper(self) -> str:
        """Name of the key constructor wrapping a constant (Key, ValueKey...)."""
        return self._get("key_wrapper", "KEYSCOPE_KEY_WRAPPER", "Key")

    @property
    def naming_pattern(self) -> Optional[Pattern]:
        """Compiled naming convention for key names, or None when unset.

        Raises:
            ValueError: If the configured pattern is not a valid regex
        """
        raw = self._get("naming_pattern", "KEYSCOPE_NAMING_PATTERN")
        if raw is None or raw == "":
            return None
        if isinstance(raw, re.Pattern):
            return raw
        try:
            return re.compile(raw)
        except re.error as e:
            raise ValueError(f"Invalid naming pattern '{raw}': {e}") from e

    @property
    def cache_seconds(self) -> float:
        """Freshness window of the key index snapshot.

        Raises:
            ValueError: If the value is not a non-negative number
        """
        raw = self._get("cache_seconds", "KEYSCOPE_CACHE_SECONDS", DEFAULT_CACHE_SECONDS)
        try:
            seconds = float(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"KEYSCOPE_CACHE_SECONDS must be a number, got '{raw}'") from e
        if seconds < 0:
            raise ValueError(f"KEYSCOPE_CACHE_SECONDS must not be negative, got {seconds}")
        return seconds

    @property
    def exclude_patterns(self) -> List[str]:
        """Path substrings excluded from usage scanning."""
        return self._split_list(self._get("exclude_patterns", "KEYSCOPE_EXCLUDE", "generated,.g.dart"))

    @property
    def source_dirs(self) -> List[str]:
        """Project sub-directories searched for Dart sources."""
        return self._split_list(self._get("source_dirs", "KEYSCOPE_SOURCE_DIRS", "lib,test"))

    @staticmethod
    def _split_list(raw) -> List[str]:
        if isinstance(raw, (list, tuple)):
            return [str(item) for item in raw]
        return [item.strip() for item in str(raw).split(",") if item.strip()]
