"""Bracket-balancing resolution of widget constructor boundaries.

Parenthesis depth decides where a call ends; brace depth is tracked along
the way for diagnostics only and never stops the walk.
"""
import re
from typing import List, Optional, Tuple

from .models import Boundary, Position, Span

# Common Flutter widgets; any identifier ending in "Widget" is accepted too.
COMPONENT_NAMES = frozenset({
    'Scaffold', 'AppBar', 'Container', 'Column', 'Row', 'Stack', 'Positioned',
    'Flexible', 'Expanded', 'SizedBox', 'Padding', 'Center', 'Align',
    'TextField', 'TextFormField', 'Text', 'ElevatedButton', 'TextButton',
    'OutlinedButton', 'IconButton', 'FloatingActionButton', 'Card', 'ListTile',
    'Drawer', 'BottomNavigationBar', 'TabBar', 'Dialog', 'AlertDialog',
    'SnackBar', 'Chip', 'Switch', 'Checkbox', 'Radio', 'Slider',
    'ProgressIndicator', 'RefreshIndicator', 'ListView', 'GridView', 'PageView',
    'TabView', 'CustomScrollView', 'SingleChildScrollView', 'Hero',
    'AnimatedContainer', 'FadeTransition', 'SlideTransition', 'ScaleTransition',
    'RotationTransition', 'DropdownButton', 'GestureDetector', 'InkWell', 'Form',
})

COMPONENT_SUFFIX = 'Widget'

# Constructor call: `Name(`, `Name<T>(` or named constructor `Name.builder(`
CONSTRUCTOR_PATTERN = re.compile(r'\b([A-Za-z_]\w*)\s*(?:<[^<>()]*>\s*)?(?:\.\w+\s*)?\(')

TAB_WIDTH = 4
INDENT_UNIT = 2


def indentation_level(line_text: str) -> float:
    """Leading whitespace width (tabs count as 4 spaces) in 2-space units."""
    stripped = line_text.lstrip(' \t')
    leading = line_text[:len(line_text) - len(stripped)]
    return len(leading.replace('\t', ' ' * TAB_WIDTH)) / INDENT_UNIT


def is_component_name(name: str) -> bool:
    if name in COMPONENT_NAMES:
        return True
    return name.endswith(COMPONENT_SUFFIX) and len(name) > len(COMPONENT_SUFFIX)


def find_component_on_line(line_text: str) -> Optional[Tuple[str, int]]:
    """First recognized component constructor on a line.

    Returns:
        (component_name, column) or None
    """
    for match in CONSTRUCTOR_PATTERN.finditer(line_text):
        name = match.group(1)
        if is_component_name(name):
            return name, match.start(1)
    return None


def find_call_end(lines: List[str], start: Position) -> Optional[Boundary]:
    """Find the closing parenthesis of the call that opens at `start`.

    The call ends at the first `)` that brings parenthesis depth back to
    zero on a line after the starting one. A call that closes on its own
    starting line, an unmatched `)` or end of input yields None.

    Args:
        lines: File text split into lines
        start: Position of the constructor identifier (1-based line)
    """
    start_index = start.line - 1
    if start_index < 0 or start_index >= len(lines):
        return None

    paren_depth = 0
    brace_depth = 0
    opened = False

    for index in range(start_index, len(lines)):
        text = lines[index]
        first_column = start.column if index == start_index else 0

        for column in range(first_column, len(text)):
            char = text[column]
            if char == '(':
                paren_depth += 1
                opened = True
            elif char == ')':
                paren_depth -= 1
                if paren_depth < 0:
                    return None
                if paren_depth == 0 and opened:
                    if index == start_index:
                        return None
                    end = Position(index + 1, column + 1)
                    return Boundary(span=Span(start, end), paren_depth=0, brace_depth=brace_depth)
            elif char == '{':
                brace_depth += 1
            elif char == '}':
                brace_depth -= 1

    return None


def find_line_call_end(line_text: str, column: int) -> Optional[int]:
    """Column just past the `)` closing a call opened at `column` on the same line."""
    depth = 0
    for index in range(column, len(line_text)):
        char = line_text[index]
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth < 0:
                return None
            if depth == 0:
                return index + 1
    return None


def find_block_end(lines: List[str], start_line: int) -> Optional[Span]:
    """Find the end of the brace block opening on or after `start_line`.

    Returns:
        Span from the start of `start_line` to the end of the line holding
        the matching `}`, or None if the block never closes
    """
    start_index = start_line - 1
    if start_index < 0 or start_index >= len(lines):
        return None

    depth = 0
    opened = False
    for index in range(start_index, len(lines)):
        for char in lines[index]:
            if char == '{':
                depth += 1
                opened = True
            elif char == '}':
                depth -= 1
                if opened and depth == 0:
                    return Span(Position(start_line, 0), Position(index + 1, len(lines[index])))
    return None


def find_enclosing_call(lines: List[str], usage_line: int, lookback: int = 20) -> Optional[Tuple[str, Boundary]]:
    """Nearest shallower component call above a usage that contains it.

    Walks upward through at most `lookback` lines preceding the usage.

    Returns:
        (component_name, boundary) or None
    """
    usage_index = usage_line - 1
    if usage_index < 0 or usage_index >= len(lines):
        return None

    usage_level = indentation_level(lines[usage_index])
    stop = max(-1, usage_index - lookback - 1)

    for index in range(usage_index - 1, stop, -1):
        text = lines[index]
        if not text.strip():
            continue
        if indentation_level(text) >= usage_level:
            continue

        found = find_component_on_line(text)
        if not found:
            continue

        name, column = found
        boundary = find_call_end(lines, Position(index + 1, column))
        if boundary is not None and boundary.span.end.line >= usage_line:
            return name, boundary

    return None
