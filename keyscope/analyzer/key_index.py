"""Project-wide index of testing keys with a time-boxed in-memory snapshot."""
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..config import Config
from .dart_parser import DartParser, is_key_constants_file
from .models import KeyCategory, KeyRecord, KeyStatistics, KeyUsage
from .source_reader import SourceReader, find_dart_files


class KeyIndex:
    """Aggregates declared key constants with their usages across the project.

    Each scan rebuilds every record from scratch. Within the configured
    freshness window a non-forced scan returns the previous snapshot.
    """

    def __init__(self, project_root: str | Path, config: Config = None,
                 reader: SourceReader = None, clock: Callable[[], float] = time.monotonic):
        """Initialize key index.

        Args:
            project_root: Root of the Flutter project
            config: Project configuration (defaults to Config(project_root))
            reader: Source reader (defaults to reading from disk)
            clock: Monotonic time source, in seconds
        """
        self.project_root = Path(project_root)
        self.config = config or Config(self.project_root)
        self.reader = reader or SourceReader()
        self.clock = clock
        self.parser = DartParser(self.config.key_wrapper, self.config.constants_class)
        self.cache_seconds = self.config.cache_seconds

        self._keys: List[KeyRecord] = []
        self._missing: List[KeyRecord] = []
        self._source_files: List[str] = []
        self._reference_counts: Dict[str, int] = {}
        self._constants_file: Optional[str] = None
        self._last_scan: Optional[float] = None

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(self, force_refresh: bool = False) -> List[KeyRecord]:
        """Return all key records, rescanning unless the snapshot is fresh."""
        if not force_refresh and self._is_fresh():
            return self._keys

        self.reader.reset()
        source_files = find_dart_files(self.project_root, self.config.source_dirs, self.config.exclude_patterns)

        constants_file = self._resolve_constants_file(source_files)
        defined = []
        if constants_file is not None:
            defined = self.parser.parse_key_constants_file(constants_file, self.reader)

        usages, reference_counts = self._collect_usages(source_files)
        keys, missing = self._merge(defined, usages)

        # Single assignment per attribute; a concurrent reader sees either snapshot.
        self._keys = keys
        self._missing = missing
        self._source_files = source_files
        self._reference_counts = reference_counts
        self._constants_file = constants_file
        self._last_scan = self.clock()

        return self._keys

    def _is_fresh(self) -> bool:
        if self._last_scan is None or not self._keys:
            return False
        return (self.clock() - self._last_scan) < self.cache_seconds

    def _resolve_constants_file(self, source_files: List[str]) -> Optional[str]:
        """Configured constants file, else the first file that looks like one."""
        configured = self.project_root / self.config.key_constants_path
        if configured.is_file():
            return str(configured)

        for file_path in source_files:
            try:
                relative = Path(file_path).relative_to(self.project_root)
            except ValueError:
                relative = Path(file_path)
            if is_key_constants_file(relative):
                return file_path
        return None

    def _collect_usages(self, source_files: List[str]) -> Tuple[List[KeyUsage], Dict[str, int]]:
        """Usage locations plus raw reference counts per key name."""
        usages = []
        counts: Dict[str, int] = {}
        for file_path in source_files:
            content = self.reader.read(file_path)
            if content is None:
                continue
            usages.extend(self.parser.find_key_usages(content, file_path))
            for name, count in self.parser.count_key_usages(content).items():
                counts[name] = counts.get(name, 0) + count
        return usages, counts

    @staticmethod
    def _merge(defined: List[KeyRecord], usages: List[KeyUsage]):
        """Attach usages to declared keys by name.

        Returns:
            (keys, missing) where missing holds records for names that are
            referenced but never declared
        """
        by_name: Dict[str, List[KeyUsage]] = {}
        for usage in usages:
            by_name.setdefault(usage.key_name, []).append(usage)

        keys = []
        declared = set()
        for record in defined:
            declared.add(record.name)
            keys.append(KeyRecord(
                name=record.name,
                value=record.value,
                category=record.category,
                file_path=record.file_path,
                line=record.line,
                is_defined=True,
                usage_locations=list(by_name.get(record.name, [])),
            ))

        missing = []
        for name, name_usages in by_name.items():
            if name in declared:
                continue
            first = name_usages[0]
            missing.append(KeyRecord(
                name=name,
                value='',
                category=KeyCategory.Other,
                file_path=first.file_path,
                line=first.line,
                is_defined=False,
                usage_locations=list(name_usages),
            ))

        return keys, missing

    # ------------------------------------------------------------------
    # Views (never rescan)
    # ------------------------------------------------------------------

    @property
    def constants_file(self) -> Optional[str]:
        """Constants file used by the last scan, or None if none was found."""
        return self._constants_file

    def cached_keys(self) -> List[KeyRecord]:
        """Records from the last scan, without rescanning."""
        return self._keys

    def missing_keys(self) -> List[KeyRecord]:
        """Keys referenced in source but never declared."""
        return list(self._missing)

    def source_files(self) -> List[str]:
        """Files covered by the last scan, sorted by path."""
        return list(self._source_files)

    def reference_counts(self) -> Dict[str, int]:
        """Raw reference counts per key name, declared or not."""
        return dict(self._reference_counts)

    def keys_by_category(self, category: KeyCategory) -> List[KeyRecord]:
        """Keys in one category, in scan order."""
        return [key for key in self._keys if key.category == category]

    def search(self, query: str) -> List[KeyRecord]:
        """Case-insensitive substring search over names and values."""
        needle = query.lower()
        return [key for key in self._keys if needle in key.name.lower() or needle in key.value.lower()]

    def unused_keys(self) -> List[KeyRecord]:
        """Keys with no usage, in scan order."""
        return [key for key in self._keys if not key.is_used]

    def most_used(self, limit: int = 10) -> List[KeyRecord]:
        """Used keys by usage count, descending; ties keep scan order."""
        used = [key for key in self._keys if key.is_used]
        return sorted(used, key=lambda key: key.usage_count, reverse=True)[:limit]

    def find_key(self, name: str) -> Optional[KeyRecord]:
        """First record with this name."""
        for key in self._keys:
            if key.name == name:
                return key
        return None

    def key_exists(self, name: str) -> bool:
        return self.find_key(name) is not None

    def categories(self) -> Dict[KeyCategory, int]:
        """Key counts per category, in first-seen order."""
        counts: Dict[KeyCategory, int] = {}
        for key in self._keys:
            counts[key.category] = counts.get(key.category, 0) + 1
        return counts

    def statistics(self, limit: int = 10) -> KeyStatistics:
        """Aggregate counts over the current snapshot.

        Args:
            limit: Number of keys kept in most_used_keys
        """
        used = sum(1 for key in self._keys if key.is_used)
        return KeyStatistics(
            total_keys=len(self._keys),
            used_keys=used,
            unused_keys=len(self._keys) - used,
            category_counts=self.categories(),
            most_used_keys=self.most_used(limit),
            unused_keys_list=self.unused_keys(),
            total_references=sum(self._reference_counts.get(key.name, 0) for key in self._keys),
        )

    # ------------------------------------------------------------------
    # In-memory mutations (no rescan)
    # ------------------------------------------------------------------

    def add_key(self, key: KeyRecord):
        """Append a record to the snapshot."""
        self._keys = self._keys + [key]

    def remove_key(self, name: str):
        """Drop every record with this name from the snapshot."""
        self._keys = [key for key in self._keys if key.name != name]

    def update_key(self, updated: KeyRecord) -> bool:
        """Replace the first record with the same name.

        Returns:
            True if a record was replaced
        """
        for index, key in enumerate(self._keys):
            if key.name == updated.name:
                keys = list(self._keys)
                keys[index] = updated
                self._keys = keys
                return True
        return False

    def clear_cache(self):
        """Drop the snapshot so the next scan rereads the project."""
        self._keys = []
        self._missing = []
        self._reference_counts = {}
        self._last_scan = None
