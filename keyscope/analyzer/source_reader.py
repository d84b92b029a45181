"""Source file discovery and memoized reading."""
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional


def read_file_content(file_path: str | Path) -> Optional[str]:
    """Read a file as UTF-8 text.

    Returns:
        File text, or None if the file is missing, unreadable or binary
    """
    try:
        return Path(file_path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError):
        return None


class SourceReader:
    """Resolves file paths to text, memoizing results for one scan pass.

    The actual loading is delegated to `loader` so callers can serve text
    from an editor buffer instead of the disk.
    """

    def __init__(self, loader: Callable[[str], Optional[str]] = None):
        self.loader = loader or read_file_content
        self._memo: Dict[str, Optional[str]] = {}

    def read(self, file_path: str | Path) -> Optional[str]:
        key = str(file_path)
        if key not in self._memo:
            self._memo[key] = self.loader(key)
        return self._memo[key]

    def lines(self, file_path: str | Path) -> Optional[List[str]]:
        content = self.read(file_path)
        if content is None:
            return None
        return content.split('\n')

    def reset(self):
        """Drop memoized text (called at the start of every scan pass)."""
        self._memo.clear()


def find_dart_files(project_root: str | Path, source_dirs: Iterable[str] = ('lib', 'test'),
                    exclude_patterns: Iterable[str] = ()) -> List[str]:
    """Collect .dart files under the given project sub-directories.

    Args:
        project_root: Root of the Flutter project
        source_dirs: Sub-directories to walk (missing ones are skipped)
        exclude_patterns: Path substrings that exclude a file

    Returns:
        Sorted list of file paths (strings)
    """
    root = Path(project_root)
    excluded = list(exclude_patterns)
    files = set()

    for source_dir in source_dirs:
        base = root / source_dir
        if not base.is_dir():
            continue
        for file_path in base.rglob('*.dart'):
            path_str = str(file_path)
            if any(pattern in path_str for pattern in excluded):
                continue
            if file_path.is_file():
                files.add(path_str)

    return sorted(files)


def is_flutter_project(project_root: str | Path) -> bool:
    """Check for a pubspec.yaml declaring a flutter section."""
    content = read_file_content(Path(project_root) / 'pubspec.yaml')
    return content is not None and 'flutter:' in content


def line_number_at(content: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return content.count('\n', 0, offset) + 1


def column_number_at(content: str, offset: int) -> int:
    """0-based column of a character offset."""
    return offset - (content.rfind('\n', 0, offset) + 1)


def context_around_line(content: str, line_number: int, context_lines: int = 2) -> str:
    """Lines surrounding a 1-based line number, joined with newlines."""
    lines = content.split('\n')
    start = max(0, line_number - context_lines - 1)
    end = min(len(lines), line_number + context_lines)
    return '\n'.join(lines[start:end])
