"""Regex-based extraction of key constants and key usages from Dart source.

This is pattern matching, not a Dart grammar: declarations and usages are
found with a handful of regexes and accepted as-is, including the occasional
false positive inside comments or strings.
"""
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .models import HardcodedKey, KeyCategory, KeyRecord, KeyUsage
from .source_reader import SourceReader, column_number_at, line_number_at


# First matching rule wins. Name rules are tried before value rules.
NAME_CATEGORY_RULES: List[Tuple[Tuple[str, ...], KeyCategory]] = [
    (('button', 'btn'), KeyCategory.Buttons),
    (('field', 'input', 'textfield'), KeyCategory.TextFields),
    (('checkbox', 'check'), KeyCategory.Checkboxes),
    (('dropdown', 'select'), KeyCategory.Dropdowns),
    (('nav', 'menu', 'bar'), KeyCategory.Navigation),
    (('list', 'item'), KeyCategory.Lists),
    (('card',), KeyCategory.Cards),
    (('dialog', 'modal', 'popup'), KeyCategory.Dialogs),
    (('game', 'play'), KeyCategory.GameElements),
    (('setting', 'config', 'language'), KeyCategory.Settings),
]

VALUE_CATEGORY_RULES: List[Tuple[Tuple[str, ...], KeyCategory]] = [
    (('button', 'btn'), KeyCategory.Buttons),
    (('field', 'input'), KeyCategory.TextFields),
]


def categorize_key(name: str, value: str) -> KeyCategory:
    """Categorize a key from substrings of its name, then its value."""
    name_lower = name.lower()
    value_lower = value.lower()

    for needles, category in NAME_CATEGORY_RULES:
        if any(needle in name_lower for needle in needles):
            return category

    for needles, category in VALUE_CATEGORY_RULES:
        if any(needle in value_lower for needle in needles):
            return category

    return KeyCategory.Other


def generate_constant_name(value: str) -> str:
    """Derive a constant name from a literal key value.

    'raw literal' -> 'RAW_LITERAL', '2fa-code' -> '_2FA_CODE'
    """
    name = re.sub(r'[^a-zA-Z0-9]', '_', value)
    name = name.strip('_')
    name = re.sub(r'_+', '_', name)
    name = re.sub(r'^([0-9])', r'_\1', name)
    return name.upper()


def is_key_constants_file(file_path: str | Path) -> bool:
    """Guess whether a file is the project's key constants file."""
    path = str(file_path)
    return 'key_constants' in path or 'keys.dart' in path or 'constants' in path


def read_package_name(pubspec_content: Optional[str]) -> str:
    """Package name from pubspec.yaml text ('app' when absent)."""
    if pubspec_content:
        match = re.search(r'^name:\s*(.+)$', pubspec_content, re.MULTILINE)
        if match:
            return match.group(1).strip()
    return 'app'


def key_constants_import(key_constants_path: str, package_name: str) -> str:
    """Import statement for the key constants file."""
    import_path = re.sub(r'^lib/', '', key_constants_path)
    import_path = re.sub(r'\.dart$', '', import_path)
    return f"import 'package:{package_name}/{import_path}.dart';"


class DartParser:
    """Key-aware Dart source scanner.

    The key wrapper (`Key`) and constants namespace (`KeyConstants`) are
    configurable; every pattern is compiled once per instance. All scans
    use re.finditer, so there is no match cursor to reset between calls.
    """

    KEY_CONSTANTS_PATTERN = re.compile(r"""static\s+const\s+String\s+(\w+)\s*=\s*['"]([^'"]+)['"]""")

    def __init__(self, key_wrapper: str = 'Key', constants_class: str = 'KeyConstants'):
        self.key_wrapper = key_wrapper
        self.constants_class = constants_class

        wrapper = re.escape(key_wrapper)
        namespace = re.escape(constants_class)
        self.key_usage_pattern = re.compile(rf"{wrapper}\({namespace}\.(\w+)\)")
        self.hardcoded_key_pattern = re.compile(rf"""{wrapper}\(['"]([^'"]+)['"]\)""")
        self.widget_pattern = re.compile(rf"(\w+)\s*\([^)]*key:\s*{wrapper}\({namespace}\.(\w+)\)")

    # ------------------------------------------------------------------
    # Constant extraction
    # ------------------------------------------------------------------

    def parse_key_constants(self, content: str, file_path: str = '') -> List[KeyRecord]:
        """Extract every key constant declaration, in source order."""
        keys = []
        for match in self.KEY_CONSTANTS_PATTERN.finditer(content):
            name, value = match.group(1), match.group(2)
            keys.append(KeyRecord(
                name=name,
                value=value,
                category=categorize_key(name, value),
                file_path=str(file_path),
                line=line_number_at(content, match.start()),
                is_defined=True,
            ))
        return keys

    def parse_key_constants_file(self, file_path: str | Path, reader: SourceReader = None) -> List[KeyRecord]:
        """Extract key constants from a file; unreadable files yield no keys."""
        reader = reader or SourceReader()
        content = reader.read(file_path)
        if content is None:
            return []
        return self.parse_key_constants(content, str(file_path))

    # ------------------------------------------------------------------
    # Usage location
    # ------------------------------------------------------------------

    def find_key_usages(self, content: str, file_path: str = '') -> List[KeyUsage]:
        """Locate every `Key(KeyConstants.name)` reference."""
        usages = []
        for match in self.key_usage_pattern.finditer(content):
            column = column_number_at(content, match.start())
            usages.append(KeyUsage(
                key_name=match.group(1),
                file_path=str(file_path),
                line=line_number_at(content, match.start()),
                start_column=column,
                end_column=column + len(match.group(0)),
            ))
        return usages

    def count_key_usages(self, content: str) -> Dict[str, int]:
        """Raw occurrence counts grouped by key name."""
        counts: Dict[str, int] = {}
        for match in self.key_usage_pattern.finditer(content):
            counts[match.group(1)] = counts.get(match.group(1), 0) + 1
        return counts

    def find_hardcoded_keys(self, content: str, file_path: str = '') -> List[HardcodedKey]:
        """Locate `Key('literal')` calls that bypass the constants class."""
        return [
            HardcodedKey(
                value=match.group(1),
                line=line_number_at(content, match.start()),
                column=column_number_at(content, match.start()),
                file_path=str(file_path),
            )
            for match in self.hardcoded_key_pattern.finditer(content)
        ]

    def find_widget_on_line(self, line_text: str) -> Optional[Tuple[str, str, int]]:
        """Same-line fast path: the constructor that takes the key as `key:`.

        Returns:
            (widget_type, key_name, widget_column) or None
        """
        match = self.widget_pattern.search(line_text)
        if not match:
            return None
        return match.group(1), match.group(2), match.start(1)

    def is_key_usage_line(self, line_text: str) -> bool:
        """True if the line still holds a wrapped constant reference."""
        return self.key_usage_pattern.search(line_text) is not None

    def find_key_reference_span(self, line_text: str, key_name: str) -> Optional[Tuple[int, int]]:
        """Column range of `KeyConstants.<key_name>` on a line."""
        pattern = re.compile(rf"{re.escape(self.constants_class)}\.{re.escape(key_name)}\b")
        match = pattern.search(line_text)
        if not match:
            return None
        return match.start(), match.end()
