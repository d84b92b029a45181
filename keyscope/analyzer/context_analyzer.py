"""Structural context of key usages: widget, method, class, ancestry, scope.

Everything here works on raw lines with indentation and bracket heuristics.
Results are best-effort; a failure anywhere degrades to a minimal context.
"""
import re
from typing import List, Optional, Tuple

from .boundary import (find_block_end, find_call_end, find_component_on_line, find_enclosing_call,
                       find_line_call_end, indentation_level)
from .dart_parser import DartParser
from .models import CodeBlock, KeyRecord, KeyUsage, Position, Span, UsageContext
from .source_reader import SourceReader


class ContextAnalyzer:
    """Derives a UsageContext for one key usage."""

    BUILD_METHOD = re.compile(r'Widget\s+build\s*\([^)]*\)\s*\{')
    METHOD_DECLARATION = re.compile(r'(\w+)\s*\([^)]*\)\s*(?:async\s*)?\{')
    CLASS_DECLARATION = re.compile(r'^\s*(?:abstract\s+)?class\s+(\w+)')

    CONTROL_KEYWORDS = frozenset({'if', 'for', 'while', 'switch', 'catch', 'on'})

    MAX_ANCESTORS = 5

    def __init__(self, parser: DartParser = None, component_lookback: int = 20, method_lookback: int = 50):
        """Initialize analyzer.

        Args:
            parser: Dart parser configured with the project's key wrapper
            component_lookback: Lines searched upward for an enclosing widget
            method_lookback: Lines searched upward for an enclosing method
        """
        self.parser = parser or DartParser()
        self.component_lookback = component_lookback
        self.method_lookback = method_lookback

    def analyze(self, content: str, usage: KeyUsage) -> UsageContext:
        """Analyze one usage inside `content`. Never raises."""
        try:
            return self._analyze(content.split('\n'), usage)
        except Exception:
            return self.minimal_context(usage)

    def analyze_usage(self, usage: KeyUsage, reader: SourceReader) -> UsageContext:
        """Analyze a usage, reading its file through `reader`."""
        try:
            content = reader.read(usage.file_path)
        except Exception:
            content = None
        if content is None:
            return self.minimal_context(usage)
        return self.analyze(content, usage)

    def analyze_key(self, key: KeyRecord, reader: SourceReader) -> List[UsageContext]:
        """Contexts for every usage of a key, in usage order."""
        return [self.analyze_usage(usage, reader) for usage in key.usage_locations]

    @staticmethod
    def minimal_context(usage: KeyUsage) -> UsageContext:
        span = usage.span
        return UsageContext(
            location=usage,
            ancestor_components=[],
            indentation_level=0,
            code_block=CodeBlock(start=span.start, end=span.end, content=''),
        )

    # ------------------------------------------------------------------

    def _analyze(self, lines: List[str], usage: KeyUsage) -> UsageContext:
        if usage.line < 1:
            return self.minimal_context(usage)
        line_text = lines[usage.line - 1]
        context = UsageContext(location=usage, indentation_level=indentation_level(line_text))

        context.key_usage_range = self._key_usage_range(line_text, usage)

        component = self._find_component(lines, usage)
        if component is not None:
            context.component_type, context.component_range = component

        method = self._find_method(lines, usage.line)
        if method is not None:
            context.method_name, context.method_range = method

        context.class_name = self._find_class(lines, usage.line)
        context.scope_description, context.scope_range = self._find_scope(lines, usage.line)
        context.ancestor_components = self._find_ancestors(lines, usage.line)
        context.code_block = self._code_block(lines, context.component_range or context.scope_range)

        return context

    def _key_usage_range(self, line_text: str, usage: KeyUsage) -> Span:
        found = self.parser.find_key_reference_span(line_text, usage.key_name)
        if found is None:
            # Whole line
            return Span(Position(usage.line, 0), Position(usage.line, len(line_text)))
        start, end = found
        return Span(Position(usage.line, start), Position(usage.line, end))

    def _find_component(self, lines: List[str], usage: KeyUsage) -> Optional[Tuple[str, Optional[Span]]]:
        """Widget owning the usage and its extent, if the extent resolves.

        A widget constructed on the usage's own line with that key always
        wins, even when its call never closes.
        """
        line_text = lines[usage.line - 1]
        fast = self.parser.find_widget_on_line(line_text)
        if fast is not None:
            widget_type, key_name, column = fast
            if key_name == usage.key_name:
                start = Position(usage.line, column)
                boundary = find_call_end(lines, start)
                if boundary is not None:
                    return widget_type, boundary.span
                end_column = find_line_call_end(line_text, column)
                if end_column is None:
                    return widget_type, None
                return widget_type, Span(start, Position(usage.line, end_column))

        enclosing = find_enclosing_call(lines, usage.line, self.component_lookback)
        if enclosing is None:
            return None
        name, boundary = enclosing
        return name, boundary.span

    def _find_method(self, lines: List[str], usage_line: int) -> Optional[Tuple[str, Optional[Span]]]:
        usage_index = usage_line - 1
        stop = max(-1, usage_index - self.method_lookback - 1)

        for index in range(usage_index, stop, -1):
            text = lines[index]

            if self.BUILD_METHOD.search(text):
                method_range = find_block_end(lines, index + 1)
                if method_range is None or method_range.contains_line(usage_line):
                    return 'build', method_range
                continue

            match = self.METHOD_DECLARATION.search(text)
            if not match or match.group(1) in self.CONTROL_KEYWORDS:
                continue

            method_range = find_block_end(lines, index + 1)
            if method_range is not None and method_range.contains_line(usage_line):
                return match.group(1), method_range

        return None

    def _find_class(self, lines: List[str], usage_line: int) -> Optional[str]:
        for index in range(usage_line - 1, -1, -1):
            match = self.CLASS_DECLARATION.match(lines[index])
            if not match:
                continue
            class_range = find_block_end(lines, index + 1)
            if class_range is not None and class_range.contains_line(usage_line):
                return match.group(1)
        return None

    def _find_scope(self, lines: List[str], usage_line: int) -> Tuple[str, Span]:
        """Contiguous non-blank block at or deeper than the usage's indent."""
        usage_index = usage_line - 1
        level = indentation_level(lines[usage_index])

        def in_block(index: int) -> bool:
            text = lines[index]
            return bool(text.strip()) and indentation_level(text) >= level

        start = usage_index
        while start > 0 and in_block(start - 1):
            start -= 1

        end = usage_index
        while end < len(lines) - 1 and in_block(end + 1):
            end += 1

        scope_range = Span(Position(start + 1, 0), Position(end + 1, len(lines[end])))
        description = f"Code block ({end - start + 1} lines, indent level {level:g})"
        return description, scope_range

    def _find_ancestors(self, lines: List[str], usage_line: int) -> List[str]:
        """Recognized widgets on successively shallower lines, outermost first."""
        ancestors: List[str] = []
        reference_level = indentation_level(lines[usage_line - 1])

        for index in range(usage_line - 2, -1, -1):
            if reference_level <= 0:
                break
            text = lines[index]
            if not text.strip():
                continue

            level = indentation_level(text)
            if level >= reference_level:
                continue

            reference_level = level
            found = find_component_on_line(text)
            if found:
                ancestors.insert(0, found[0])
                if len(ancestors) >= self.MAX_ANCESTORS:
                    break

        return ancestors

    @staticmethod
    def _code_block(lines: List[str], span: Span) -> CodeBlock:
        start_index = span.start.line - 1
        end_index = span.end.line - 1

        if start_index == end_index:
            content = lines[start_index][span.start.column:span.end.column]
        else:
            parts = [lines[start_index][span.start.column:]]
            parts.extend(lines[start_index + 1:end_index])
            parts.append(lines[end_index][:span.end.column])
            content = '\n'.join(parts)

        return CodeBlock(start=span.start, end=span.end, content=content)
