"""Data model shared by the extractor, locator, index, analyzer and validator."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class KeyCategory(Enum):
    """Closed set of key categories (values are display labels)."""
    TextFields = 'Text Fields'
    Buttons = 'Buttons'
    Checkboxes = 'Checkboxes'
    Dropdowns = 'Dropdowns'
    Navigation = 'Navigation'
    GameElements = 'Game Elements'
    Settings = 'Settings'
    Lists = 'Lists'
    Cards = 'Cards'
    Dialogs = 'Dialogs'
    Other = 'Other'


class KeyStatus(Enum):
    """Overall verdict for one key in a validation pass."""
    VALID = 'valid'
    UNUSED = 'unused'
    MISSING = 'missing'
    DUPLICATE = 'duplicate'


class IssueKind(Enum):
    """Rule that produced a validation issue."""
    UNUSED = 'unused'
    SHORT_VALUE = 'short-value'
    WHITESPACE_VALUE = 'whitespace-value'
    NAMING = 'naming-convention'
    HARDCODED = 'hardcoded-key'
    DUPLICATE_VALUE = 'duplicate-value'
    MISSING = 'undefined-key'


@dataclass(frozen=True)
class Position:
    """A point in a file. Lines are 1-based, columns 0-based."""
    line: int
    column: int


@dataclass(frozen=True)
class Span:
    """Range between two positions (end column exclusive)."""
    start: Position
    end: Position

    @property
    def line_count(self) -> int:
        """Lines touched by the span, both ends included."""
        return self.end.line - self.start.line + 1

    def contains_line(self, line: int) -> bool:
        """True if `line` falls between the start and end lines."""
        return self.start.line <= line <= self.end.line


@dataclass(frozen=True)
class KeyUsage:
    """One textual reference to a key constant (a usage occurrence)."""
    key_name: str
    file_path: str
    line: int
    start_column: int
    end_column: int

    @property
    def span(self) -> Span:
        """The matched wrapper call as a single-line span."""
        return Span(Position(self.line, self.start_column), Position(self.line, self.end_column))


@dataclass
class KeyRecord:
    """A declared (or referenced-but-undefined) testing key.

    usage_count and is_used are derived from usage_locations, so they can
    never drift out of sync with the locations themselves.
    """
    name: str
    value: str
    category: KeyCategory
    file_path: str
    line: int
    is_defined: bool = True
    usage_locations: List[KeyUsage] = field(default_factory=list)

    @property
    def usage_count(self) -> int:
        """Number of recorded usage locations."""
        return len(self.usage_locations)

    @property
    def is_used(self) -> bool:
        return self.usage_count > 0

    @property
    def usage_files(self) -> List[str]:
        """Distinct files containing a usage, in first-seen order."""
        seen = []
        for usage in self.usage_locations:
            if usage.file_path not in seen:
                seen.append(usage.file_path)
        return seen


@dataclass(frozen=True)
class HardcodedKey:
    """A `Key('literal')` that bypasses the constants namespace."""
    value: str
    line: int
    column: int
    file_path: str = ''


@dataclass(frozen=True)
class Boundary:
    """Textual extent of a constructor call found by bracket balancing."""
    span: Span
    paren_depth: int = 0
    brace_depth: int = 0


@dataclass
class CodeBlock:
    """Source text between two positions."""
    start: Position
    end: Position
    content: str


@dataclass
class UsageContext:
    """Structural context around one key usage, recomputed per request."""
    location: KeyUsage
    component_type: Optional[str] = None
    component_range: Optional[Span] = None
    method_name: Optional[str] = None
    method_range: Optional[Span] = None
    class_name: Optional[str] = None
    scope_description: Optional[str] = None
    scope_range: Optional[Span] = None
    key_usage_range: Optional[Span] = None
    ancestor_components: List[str] = field(default_factory=list)
    indentation_level: float = 0
    code_block: Optional[CodeBlock] = None

    @property
    def highlight_range(self) -> Span:
        """Range a navigation feature should highlight."""
        if self.component_range is not None:
            return self.component_range
        if self.scope_range is not None:
            return self.scope_range
        return self.location.span


@dataclass
class ValidationIssue:
    """One finding of a validation pass, optionally tied to a key and location."""
    severity: str  # 'error' | 'warning' | 'info'
    message: str
    kind: IssueKind
    fix: Optional[str] = None
    key_name: Optional[str] = None
    file_path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass
class ValidationResult:
    """Outcome of a full validation pass.

    duplicate_keys counts keys sharing a value with another key, whether or
    not duplicate-value issues were requested.
    """
    total_keys: int
    used_keys: int
    unused_keys: int
    duplicate_keys: int
    issues: List[ValidationIssue]
    key_statuses: Dict[str, KeyStatus]
    validation_time: float
    project_path: str

    def issues_of(self, kind: IssueKind) -> List[ValidationIssue]:
        """Issues of one kind, in reporting order."""
        return [issue for issue in self.issues if issue.kind == kind]

    @property
    def has_errors(self) -> bool:
        """True if any issue has error severity."""
        return any(issue.severity == 'error' for issue in self.issues)


@dataclass
class KeyStatistics:
    """Aggregate counts over an index snapshot.

    total_references is the raw reference count across declared keys and
    equals the sum of their usage counts.
    """
    total_keys: int
    used_keys: int
    unused_keys: int
    category_counts: Dict[KeyCategory, int]
    most_used_keys: List[KeyRecord]
    unused_keys_list: List[KeyRecord]
    total_references: int = 0


@dataclass
class UsageLocation:
    """A usage as shown in a validation report."""
    file_path: str
    line: int
    column: int
    context: str
    widget_type: Optional[str] = None


@dataclass
class KeyDetail:
    """Per-key section of a validation report."""
    key: KeyRecord
    status: KeyStatus
    issues: List[ValidationIssue]
    usage_locations: List[UsageLocation]


@dataclass
class ValidationSummary:
    """Headline numbers of a validation report."""
    total_scanned: int
    valid_keys: int
    problematic_keys: int
    coverage_percentage: float


@dataclass
class KeyValidationReport:
    """Summary, per-key details and recommendations for one project."""
    summary: ValidationSummary
    key_details: List[KeyDetail]
    recommendations: List[str]
    generated_at: datetime
