"""Key validation: unused, malformed, hardcoded, duplicate and undefined keys."""
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Set

from ..config import Config
from .dart_parser import generate_constant_name
from .key_index import KeyIndex
from .models import IssueKind, KeyRecord, KeyStatus, ValidationIssue, ValidationResult

MIN_VALUE_LENGTH = 3
WHITESPACE = re.compile(r'\s')


@dataclass
class ValidationOptions:
    """Toggles for the validation pass."""
    include_unused: bool = True
    include_duplicates: bool = True
    include_hardcoded: bool = True
    include_missing: bool = True
    check_naming_convention: bool = True
    naming_pattern: Optional[Pattern] = None


class ValidationEngine:
    """Classifies keys and flags anti-patterns using a KeyIndex."""

    def __init__(self, index: KeyIndex, config: Config = None, options: ValidationOptions = None):
        """Initialize validation engine.

        Args:
            index: Key index to validate
            config: Configuration supplying the naming pattern
            options: Explicit options (the naming pattern falls back to config)

        Raises:
            ValueError: If the configured naming pattern is not a valid regex
        """
        self.index = index
        self.config = config or index.config
        self.options = options or ValidationOptions()
        if self.options.naming_pattern is None:
            self.options.naming_pattern = self.config.naming_pattern

    def validate(self, refresh: bool = True) -> ValidationResult:
        """Run every check in one pass over the key index.

        Args:
            refresh: Force a rescan before validating
        """
        started = time.perf_counter()
        keys = self.index.scan(force_refresh=refresh)
        issues: List[ValidationIssue] = []

        for key in keys:
            issues.extend(self.validate_key(key))

        if self.options.include_hardcoded:
            issues.extend(self.find_hardcoded_keys())

        if self.options.include_duplicates:
            issues.extend(self.find_duplicate_values(keys))

        missing = self.index.missing_keys()
        if self.options.include_missing:
            issues.extend(self._missing_key_issues(missing))

        shared = [group for group in self._group_by_value(keys).values() if len(group) > 1]
        duplicate_values = {group[0].value for group in shared}
        key_statuses = {key.name: self.classify(key, duplicate_values) for key in keys}
        for key in missing:
            key_statuses[key.name] = KeyStatus.MISSING

        used = sum(1 for key in keys if key.is_used)

        return ValidationResult(
            total_keys=len(keys),
            used_keys=used,
            unused_keys=len(keys) - used,
            duplicate_keys=sum(len(group) for group in shared),
            issues=issues,
            key_statuses=key_statuses,
            validation_time=time.perf_counter() - started,
            project_path=str(self.index.project_root),
        )

    def validate_key(self, key: KeyRecord) -> List[ValidationIssue]:
        """Per-key checks: unused, short value, whitespace, naming."""
        issues = []

        if self.options.include_unused and not key.is_used:
            issues.append(ValidationIssue(
                severity='warning',
                kind=IssueKind.UNUSED,
                message=f"Key '{key.name}' is defined but never used",
                fix="Consider removing unused key or adding it to widgets",
                key_name=key.name,
                file_path=key.file_path,
                line=key.line,
            ))

        pattern = self.options.naming_pattern
        if self.options.check_naming_convention and pattern is not None and not pattern.search(key.name):
            issues.append(ValidationIssue(
                severity='warning',
                kind=IssueKind.NAMING,
                message=f"Key '{key.name}' doesn't follow naming convention",
                fix="Rename to follow the project's naming pattern",
                key_name=key.name,
                file_path=key.file_path,
                line=key.line,
            ))

        if len(key.value) < MIN_VALUE_LENGTH:
            issues.append(ValidationIssue(
                severity='info',
                kind=IssueKind.SHORT_VALUE,
                message=f"Key '{key.name}' has a very short value: '{key.value}'",
                fix="Consider using a more descriptive key value",
                key_name=key.name,
                file_path=key.file_path,
                line=key.line,
            ))

        if WHITESPACE.search(key.value):
            issues.append(ValidationIssue(
                severity='info',
                kind=IssueKind.WHITESPACE_VALUE,
                message=f"Key '{key.name}' contains spaces in value",
                fix="Consider using underscores or camelCase instead of spaces",
                key_name=key.name,
                file_path=key.file_path,
                line=key.line,
            ))

        return issues

    def find_hardcoded_keys(self) -> List[ValidationIssue]:
        """One warning per `Key('literal')` in the scanned source files."""
        issues = []
        namespace = self.index.parser.constants_class

        for file_path in self.index.source_files():
            content = self.index.reader.read(file_path)
            if content is None:
                continue
            for hardcoded in self.index.parser.find_hardcoded_keys(content, file_path):
                suggested = generate_constant_name(hardcoded.value)
                issues.append(ValidationIssue(
                    severity='warning',
                    kind=IssueKind.HARDCODED,
                    message=f"Hardcoded key found: '{hardcoded.value}' in {self._relative(file_path)}",
                    fix=f"Replace with {namespace}.{suggested}",
                    key_name=suggested,
                    file_path=file_path,
                    line=hardcoded.line,
                    column=hardcoded.column,
                ))
        return issues

    @staticmethod
    def _group_by_value(keys: List[KeyRecord]) -> Dict[str, List[KeyRecord]]:
        groups: Dict[str, List[KeyRecord]] = {}
        for key in keys:
            groups.setdefault(key.value, []).append(key)
        return groups

    def find_duplicate_values(self, keys: List[KeyRecord]) -> List[ValidationIssue]:
        """One error for every key whose value is shared with another key."""
        issues = []
        for value, group in self._group_by_value(keys).items():
            if len(group) < 2:
                continue
            for key in group:
                issues.append(ValidationIssue(
                    severity='error',
                    kind=IssueKind.DUPLICATE_VALUE,
                    message=f"Duplicate key value '{value}' found in key '{key.name}'",
                    fix="Ensure each key has a unique value",
                    key_name=key.name,
                    file_path=key.file_path,
                    line=key.line,
                ))
        return issues

    def _missing_key_issues(self, missing: List[KeyRecord]) -> List[ValidationIssue]:
        namespace = self.index.parser.constants_class
        return [
            ValidationIssue(
                severity='error',
                kind=IssueKind.MISSING,
                message=f"Key '{key.name}' is referenced but not defined in {namespace}",
                fix=f"Declare '{key.name}' in {namespace}",
                key_name=key.name,
                file_path=key.file_path,
                line=key.line,
            )
            for key in missing
        ]

    @staticmethod
    def classify(key: KeyRecord, duplicate_values: Set[str]) -> KeyStatus:
        if not key.is_defined:
            return KeyStatus.MISSING
        if key.value in duplicate_values:
            return KeyStatus.DUPLICATE
        if not key.is_used:
            return KeyStatus.UNUSED
        return KeyStatus.VALID

    def _relative(self, file_path: str) -> str:
        try:
            return str(Path(file_path).relative_to(self.index.project_root))
        except ValueError:
            return file_path
