"""Tests for validation report assembly and markdown rendering."""
import pytest

from keyscope.analyzer.dart_parser import DartParser
from keyscope.analyzer.key_index import KeyIndex
from keyscope.analyzer.models import IssueKind, KeyCategory, KeyRecord, KeyStatus, KeyUsage, ValidationResult
from keyscope.analyzer.source_reader import SourceReader
from keyscope.analyzer.validation import ValidationEngine
from keyscope.reporting.report import build_report, find_usage_locations, generate_recommendations, render_markdown


@pytest.fixture
def engine(index):
    return ValidationEngine(index)


@pytest.fixture
def result(engine):
    return engine.validate()


@pytest.fixture
def report(engine, result):
    return build_report(engine, result)


def empty_result(total=0, used=0):
    return ValidationResult(
        total_keys=total, used_keys=used, unused_keys=total - used, duplicate_keys=0,
        issues=[], key_statuses={}, validation_time=0.01, project_path='.',
    )


class TestBuildReport:

    def test_summary(self, report):
        summary = report.summary
        assert summary.total_scanned == 10
        assert summary.valid_keys == 5
        assert summary.problematic_keys == 5
        assert summary.coverage_percentage == 50.0

    def test_one_detail_per_key(self, report, index):
        assert [detail.key.name for detail in report.key_details] == [key.name for key in index.cached_keys()]

    def test_detail_status_and_issues(self, report):
        details = {detail.key.name: detail for detail in report.key_details}

        assert details['submitAction'].status == KeyStatus.DUPLICATE
        assert [issue.kind for issue in details['ok'].issues] == [IssueKind.UNUSED, IssueKind.SHORT_VALUE]
        assert details['loginButton'].issues == []

    def test_usage_locations(self, report):
        login = next(detail for detail in report.key_details if detail.key.name == 'loginButton')
        first, second = login.usage_locations

        assert (first.line, first.column, first.widget_type) == (21, 30, 'ElevatedButton')
        assert 'KeyConstants.loginButton' in first.context
        assert len(first.context.split('\n')) == 3
        assert (second.line, second.widget_type) == (23, 'TextButton')

    def test_key_on_own_line_has_no_widget_type(self, report):
        email = next(detail for detail in report.key_details if detail.key.name == 'emailField')
        assert email.usage_locations[0].widget_type is None

    def test_recommendations(self, report):
        assert report.recommendations == [
            'Remove 5 unused key constants to keep the codebase clean',
            'Fix 2 duplicate key values to avoid confusion',
            'Replace 1 hardcoded keys with constants for better maintainability',
            'Declare 1 referenced but undefined keys',
            'Improve key usage coverage (currently 50.0%)',
        ]


class TestUsageLocations:

    def test_stale_line_is_skipped(self):
        key = KeyRecord('a', 'a_key', KeyCategory.Other, 'keys.dart', 1,
                        usage_locations=[KeyUsage('a', 'screen.dart', 99, 0, 5)])
        reader = SourceReader(loader=lambda path: "Text(key: Key(KeyConstants.a))")

        assert find_usage_locations(key, reader, DartParser()) == []

    def test_line_without_key_reference_is_skipped(self):
        """The file was edited after the scan and the line moved."""
        key = KeyRecord('a', 'a_key', KeyCategory.Other, 'keys.dart', 1,
                        usage_locations=[KeyUsage('a', 'screen.dart', 1, 0, 5),
                                         KeyUsage('a', 'screen.dart', 2, 2, 7)])
        reader = SourceReader(loader=lambda path: "// moved\n  Text(key: Key(KeyConstants.a))")

        locations = find_usage_locations(key, reader, DartParser())

        assert [location.line for location in locations] == [2]
        assert locations[0].widget_type == 'Text'

    def test_unreadable_file_is_skipped(self):
        key = KeyRecord('a', 'a_key', KeyCategory.Other, 'keys.dart', 1,
                        usage_locations=[KeyUsage('a', 'gone.dart', 1, 0, 5)])

        assert find_usage_locations(key, SourceReader(loader=lambda path: None), DartParser()) == []


class TestRecommendations:

    def test_clean_project(self):
        assert generate_recommendations(empty_result(total=4, used=4), 4) == [
            'Great job! No specific recommendations at this time.',
        ]

    def test_no_keys(self):
        recommendations = generate_recommendations(empty_result(), 0)
        assert 'Create a KeyConstants file to centralize testing keys' in recommendations
        assert 'Improve key usage coverage (currently 0.0%)' in recommendations


class TestRenderMarkdown:

    @pytest.fixture
    def markdown(self, report, result, fixture_app):
        return render_markdown(report, result, fixture_app)

    def test_summary_section(self, markdown):
        assert markdown.startswith('# Flutter Testing Keys Validation Report')
        assert '- **Total Keys**: 10' in markdown
        assert '- **Coverage**: 50.0%' in markdown

    def test_issues_section(self, markdown):
        assert "WARNING: Hardcoded key found: 'remember_me'" in markdown
        assert '**Fix**: Replace with KeyConstants.REMEMBER_ME' in markdown
        assert '**Column**: 24' in markdown
        assert "ERROR: Key 'logoutButton' is referenced but not defined in KeyConstants" in markdown

    def test_key_details_use_relative_paths(self, markdown, fixture_app):
        assert '### loginButton (valid)' in markdown
        assert '- **File**: lib/constants/key_constants.dart:5' in markdown
        assert '- lib/screens/login_screen.dart:21 (ElevatedButton)' in markdown
        assert str(fixture_app) not in markdown

    def test_recommendations_and_footer(self, markdown):
        assert '## Recommendations' in markdown
        assert '- Fix 2 duplicate key values to avoid confusion' in markdown
        assert '*Generated by keyscope on ' in markdown

    def test_no_issues(self, tmp_path):
        constants = tmp_path / 'lib' / 'constants' / 'key_constants.dart'
        constants.parent.mkdir(parents=True)
        constants.write_text("static const String saveButton = 'save_button';\n", encoding='utf-8')
        (tmp_path / 'lib' / 'main.dart').write_text("Key(KeyConstants.saveButton)\n", encoding='utf-8')

        engine = ValidationEngine(KeyIndex(tmp_path))
        result = engine.validate()

        markdown = render_markdown(build_report(engine, result), result)

        assert 'No issues found!' in markdown
        assert '- Great job! No specific recommendations at this time.' in markdown
