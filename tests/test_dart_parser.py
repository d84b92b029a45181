"""Tests for key constant extraction and usage location in Dart source."""
import pytest

from keyscope.analyzer.dart_parser import (
    DartParser,
    categorize_key,
    generate_constant_name,
    is_key_constants_file,
    key_constants_import,
    read_package_name,
)
from keyscope.analyzer.models import KeyCategory
from keyscope.analyzer.source_reader import SourceReader


@pytest.fixture
def parser():
    return DartParser()


CONSTANTS_SOURCE = """class KeyConstants {
  static const String loginButton = 'login_button';
  static const String emailField = "email_field";
  static const String ok = 'ok';
}
"""


class TestCategorizeKey:
    """Name rules win over value rules; the first matching rule wins."""

    @pytest.mark.parametrize('name,value,expected', [
        ('loginButton', 'login_button', KeyCategory.Buttons),
        ('emailField', 'email_field', KeyCategory.TextFields),
        ('rememberMeCheckbox', 'x', KeyCategory.Checkboxes),
        ('languageDropdown', 'x', KeyCategory.Dropdowns),
        ('mainMenu', 'x', KeyCategory.Navigation),
        ('todoList', 'x', KeyCategory.Lists),
        ('profileCard', 'x', KeyCategory.Cards),
        ('confirmDialog', 'x', KeyCategory.Dialogs),
        ('playerScore', 'x', KeyCategory.GameElements),
        ('themeConfig', 'x', KeyCategory.Settings),
        ('confirm', 'ok_btn', KeyCategory.Buttons),
        ('search', 'query_input', KeyCategory.TextFields),
        ('ok', 'ok', KeyCategory.Other),
    ])
    def test_categories(self, name, value, expected):
        assert categorize_key(name, value) == expected

    def test_name_rule_before_value_rule(self):
        assert categorize_key('settingsCard', 'ok_button') == KeyCategory.Cards

    def test_button_rule_before_field_rule(self):
        assert categorize_key('fieldButton', '') == KeyCategory.Buttons


class TestGenerateConstantName:

    def test_plain_literal(self):
        assert generate_constant_name('raw_literal') == 'RAW_LITERAL'

    def test_separators_collapse(self):
        assert generate_constant_name('__a--b  c__') == 'A_B_C'

    def test_leading_digit_prefixed(self):
        assert generate_constant_name('2fa-code') == '_2FA_CODE'


class TestConstantExtraction:

    def test_single_declaration(self, parser):
        """A declared constant yields name, value and category."""
        keys = parser.parse_key_constants(
            "static const String loginButton = 'login_button';", 'keys.dart'
        )

        assert len(keys) == 1
        key = keys[0]
        assert key.name == 'loginButton'
        assert key.value == 'login_button'
        assert key.category == KeyCategory.Buttons
        assert key.file_path == 'keys.dart'
        assert key.line == 1
        assert key.is_defined
        assert key.usage_count == 0
        assert not key.is_used

    def test_source_order_and_lines(self, parser):
        keys = parser.parse_key_constants(CONSTANTS_SOURCE)

        assert [key.name for key in keys] == ['loginButton', 'emailField', 'ok']
        assert [key.line for key in keys] == [2, 3, 4]
        assert keys[1].value == 'email_field'

    def test_non_declarations_ignored(self, parser):
        source = "final String notAKey = 'x';\nstatic const int count = 3;\n"
        assert parser.parse_key_constants(source) == []

    def test_unreadable_file_yields_no_keys(self, parser, tmp_path):
        assert parser.parse_key_constants_file(tmp_path / 'missing.dart') == []

    def test_file_read_through_reader(self, parser):
        reader = SourceReader(loader=lambda path: CONSTANTS_SOURCE)
        keys = parser.parse_key_constants_file('virtual.dart', reader)

        assert len(keys) == 3
        assert keys[0].file_path == 'virtual.dart'


class TestUsageLocation:

    def test_usage_position(self, parser):
        source = "Column(\n  children: [\n    ElevatedButton(key: Key(KeyConstants.loginButton)),\n"
        usages = parser.find_key_usages(source, 'screen.dart')

        assert len(usages) == 1
        usage = usages[0]
        assert usage.key_name == 'loginButton'
        assert usage.file_path == 'screen.dart'
        assert usage.line == 3
        assert usage.start_column == 24
        assert usage.end_column == 24 + len('Key(KeyConstants.loginButton)')

    def test_multiple_usages_on_one_line(self, parser):
        source = "Row(children: [Text('a', key: Key(KeyConstants.a)), Text('b', key: Key(KeyConstants.b))])"
        usages = parser.find_key_usages(source)

        assert [usage.key_name for usage in usages] == ['a', 'b']
        assert usages[0].start_column < usages[1].start_column

    def test_count_key_usages(self, parser):
        source = "Key(KeyConstants.a)\nKey(KeyConstants.b)\nKey(KeyConstants.a)"
        assert parser.count_key_usages(source) == {'a': 2, 'b': 1}

    def test_bare_reference_is_not_a_usage(self, parser):
        assert parser.find_key_usages("final k = KeyConstants.loginButton;") == []

    def test_wrapper_suffix_also_matches(self, parser):
        """No word boundary before the wrapper, so ValueKey(...) counts too."""
        usages = parser.find_key_usages("ValueKey(KeyConstants.row)")
        assert [usage.key_name for usage in usages] == ['row']
        assert usages[0].start_column == 5

    def test_custom_wrapper_and_namespace(self):
        parser = DartParser(key_wrapper='ValueKey', constants_class='AppKeys')
        source = "ValueKey(AppKeys.saveButton)\nKey(KeyConstants.other)"

        usages = parser.find_key_usages(source)

        assert [usage.key_name for usage in usages] == ['saveButton']

    def test_hardcoded_keys(self, parser):
        source = "Text('hi'),\n  Checkbox(key: Key('raw_literal'), value: true),\nKey(\"double\")"
        hardcoded = parser.find_hardcoded_keys(source, 'form.dart')

        assert [(h.value, h.line, h.column) for h in hardcoded] == [
            ('raw_literal', 2, 16),
            ('double', 3, 0),
        ]
        assert hardcoded[0].file_path == 'form.dart'

    def test_constant_usage_is_not_hardcoded(self, parser):
        assert parser.find_hardcoded_keys("Key(KeyConstants.loginButton)") == []


class TestWidgetDetection:

    def test_widget_on_line(self, parser):
        line = "    ElevatedButton(key: Key(KeyConstants.loginButton),"
        assert parser.find_widget_on_line(line) == ('ElevatedButton', 'loginButton', 4)

    def test_no_widget_when_key_on_own_line(self, parser):
        assert parser.find_widget_on_line("      key: Key(KeyConstants.emailField),") is None

    def test_is_key_usage_line(self, parser):
        assert parser.is_key_usage_line("  key: Key(KeyConstants.a),")
        assert not parser.is_key_usage_line("  key: Key('a'),")
        assert not parser.is_key_usage_line("  final k = KeyConstants.a;")

    def test_key_reference_span(self, parser):
        line = "    key: Key(KeyConstants.emailField),"
        assert parser.find_key_reference_span(line, 'emailField') == (13, 36)

    def test_key_reference_span_requires_whole_name(self, parser):
        assert parser.find_key_reference_span("Key(KeyConstants.emailFieldX)", 'emailField') is None


class TestIdempotence:
    """Repeated calls on one parser return identical results."""

    SCREEN_SOURCE = (
        "Column(children: [\n"
        "  TextField(key: Key(KeyConstants.emailField)),\n"
        "  Checkbox(key: Key('raw_literal'), value: true),\n"
        "  ElevatedButton(key: Key(KeyConstants.loginButton)),\n"
        "  TextButton(key: Key(KeyConstants.loginButton)),\n"
        "])\n"
    )

    def test_parse_key_constants(self, parser):
        first = parser.parse_key_constants(CONSTANTS_SOURCE, 'keys.dart')
        second = parser.parse_key_constants(CONSTANTS_SOURCE, 'keys.dart')

        assert first == second
        assert [key.name for key in second] == ['loginButton', 'emailField', 'ok']

    def test_find_key_usages(self, parser):
        first = parser.find_key_usages(self.SCREEN_SOURCE, 'screen.dart')
        second = parser.find_key_usages(self.SCREEN_SOURCE, 'screen.dart')

        assert first == second
        assert len(second) == 3

    def test_count_key_usages(self, parser):
        assert parser.count_key_usages(self.SCREEN_SOURCE) == parser.count_key_usages(self.SCREEN_SOURCE)

    def test_find_hardcoded_keys(self, parser):
        first = parser.find_hardcoded_keys(self.SCREEN_SOURCE, 'screen.dart')
        second = parser.find_hardcoded_keys(self.SCREEN_SOURCE, 'screen.dart')

        assert first == second
        assert [h.value for h in second] == ['raw_literal']

    def test_interleaved_calls(self, parser):
        usages = parser.find_key_usages(self.SCREEN_SOURCE)
        parser.find_hardcoded_keys(self.SCREEN_SOURCE)
        parser.parse_key_constants(CONSTANTS_SOURCE)

        assert parser.find_key_usages(self.SCREEN_SOURCE) == usages


class TestProjectHelpers:

    def test_is_key_constants_file(self):
        assert is_key_constants_file('lib/constants/key_constants.dart')
        assert is_key_constants_file('lib/keys.dart')
        assert not is_key_constants_file('lib/screens/login_screen.dart')

    def test_read_package_name(self):
        assert read_package_name("name: demo_app\nversion: 1.0.0\n") == 'demo_app'
        assert read_package_name(None) == 'app'
        assert read_package_name("version: 1.0.0\n") == 'app'

    def test_key_constants_import(self):
        assert key_constants_import('lib/constants/key_constants.dart', 'demo_app') == \
            "import 'package:demo_app/constants/key_constants.dart';"
