"""Validation report assembly and markdown rendering."""
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..analyzer.dart_parser import DartParser
from ..analyzer.models import (
    IssueKind,
    KeyDetail,
    KeyRecord,
    KeyStatus,
    KeyValidationReport,
    UsageLocation,
    ValidationResult,
    ValidationSummary,
)
from ..analyzer.source_reader import SourceReader, context_around_line
from ..analyzer.validation import ValidationEngine

COVERAGE_TARGET = 80.0


def build_report(engine: ValidationEngine, result: ValidationResult) -> KeyValidationReport:
    """Assemble a report from a finished validation pass.

    Args:
        engine: Engine that produced `result` (its index holds the keys)
        result: Output of engine.validate()
    """
    keys = engine.index.cached_keys()
    total = len(keys)

    summary = ValidationSummary(
        total_scanned=total,
        valid_keys=sum(1 for status in result.key_statuses.values() if status == KeyStatus.VALID),
        problematic_keys=sum(1 for key in keys if result.key_statuses.get(key.name) != KeyStatus.VALID),
        coverage_percentage=_coverage(result.used_keys, total),
    )

    details = [
        KeyDetail(
            key=key,
            status=result.key_statuses.get(key.name, KeyStatus.VALID),
            issues=[issue for issue in result.issues if issue.key_name == key.name],
            usage_locations=find_usage_locations(key, engine.index.reader, engine.index.parser),
        )
        for key in keys
    ]

    return KeyValidationReport(
        summary=summary,
        key_details=details,
        recommendations=generate_recommendations(result, total),
        generated_at=datetime.now(),
    )


def find_usage_locations(key: KeyRecord, reader: SourceReader, parser: DartParser) -> List[UsageLocation]:
    """Report-friendly usage locations with one line of context each side.

    Usages whose line no longer holds a key reference (the file changed
    since the scan) are left out.
    """
    locations = []
    for usage in key.usage_locations:
        content = reader.read(usage.file_path)
        lines = content.split('\n') if content is not None else []
        if not 1 <= usage.line <= len(lines):
            continue
        line_text = lines[usage.line - 1]
        if not parser.is_key_usage_line(line_text):
            continue
        fast = parser.find_widget_on_line(line_text)
        locations.append(UsageLocation(
            file_path=usage.file_path,
            line=usage.line,
            column=usage.start_column,
            context=context_around_line(content, usage.line, 1),
            widget_type=fast[0] if fast else None,
        ))
    return locations


def generate_recommendations(result: ValidationResult, total_keys: int) -> List[str]:
    recommendations = []

    if result.unused_keys > 0:
        recommendations.append(f"Remove {result.unused_keys} unused key constants to keep the codebase clean")

    if result.duplicate_keys > 0:
        recommendations.append(f"Fix {result.duplicate_keys} duplicate key values to avoid confusion")

    hardcoded = result.issues_of(IssueKind.HARDCODED)
    if hardcoded:
        recommendations.append(
            f"Replace {len(hardcoded)} hardcoded keys with constants for better maintainability"
        )

    naming = result.issues_of(IssueKind.NAMING)
    if naming:
        recommendations.append(f"Update {len(naming)} keys to follow consistent naming convention")

    missing = result.issues_of(IssueKind.MISSING)
    if missing:
        recommendations.append(f"Declare {len(missing)} referenced but undefined keys")

    if total_keys == 0:
        recommendations.append('Create a KeyConstants file to centralize testing keys')

    coverage = _coverage(result.used_keys, total_keys)
    if coverage < COVERAGE_TARGET:
        recommendations.append(f"Improve key usage coverage (currently {coverage:.1f}%)")

    if not recommendations:
        recommendations.append('Great job! No specific recommendations at this time.')

    return recommendations


def render_markdown(report: KeyValidationReport, result: ValidationResult,
                    project_root: Optional[str | Path] = None) -> str:
    """Render a report as markdown."""
    root = Path(project_root or result.project_path)
    summary = report.summary

    out = [
        '# Flutter Testing Keys Validation Report',
        '',
        '## Summary',
        f'- **Total Keys**: {summary.total_scanned}',
        f'- **Valid Keys**: {summary.valid_keys}',
        f'- **Problematic Keys**: {summary.problematic_keys}',
        f'- **Coverage**: {summary.coverage_percentage:.1f}%',
        f'- **Validation Time**: {result.validation_time * 1000:.0f}ms',
        '',
        '## Issues Found',
        '',
    ]

    if not result.issues:
        out.append('No issues found!')
    for number, issue in enumerate(result.issues, 1):
        out.append(f'### {number}. {issue.severity.upper()}: {issue.message}')
        if issue.fix:
            out.append(f'**Fix**: {issue.fix}')
        if issue.line:
            out.append(f'**Line**: {issue.line}')
        if issue.column is not None:
            out.append(f'**Column**: {issue.column}')
        out.append('')

    out.extend(['', '## Key Details', ''])
    for detail in report.key_details:
        key = detail.key
        out.append(f'### {key.name} ({detail.status.value})')
        out.append(f'- **Value**: `{key.value}`')
        out.append(f'- **Category**: {key.category.value}')
        out.append(f'- **Usage Count**: {key.usage_count}')
        out.append(f'- **File**: {_relative(key.file_path, root)}:{key.line}')
        if detail.usage_locations:
            out.append('')
            out.append('**Used in**:')
            for location in detail.usage_locations:
                widget = f' ({location.widget_type})' if location.widget_type else ''
                out.append(f'- {_relative(location.file_path, root)}:{location.line}{widget}')
        if detail.issues:
            out.append('')
            out.append('**Issues**:')
            for issue in detail.issues:
                out.append(f'- {issue.severity}: {issue.message}')
        out.append('')

    out.extend(['## Recommendations', ''])
    out.extend(f'- {recommendation}' for recommendation in report.recommendations)
    out.extend(['', '---', f"*Generated by keyscope on {report.generated_at:%Y-%m-%d %H:%M:%S}*", ''])

    return '\n'.join(out)


def _coverage(used: int, total: int) -> float:
    return (used / total) * 100 if total > 0 else 0.0


def _relative(file_path: str, root: Path) -> str:
    try:
        return str(Path(file_path).relative_to(root))
    except ValueError:
        return file_path
