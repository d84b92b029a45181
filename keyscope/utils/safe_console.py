"""Rich Console that degrades icons to ASCII on non-UTF-8 terminals."""
from typing import Any

from rich.console import Console
from rich.markup import escape

from .logger import is_utf8_capable, sanitize_for_terminal, severity_icon


class SafeConsole(Console):
    """Console whose print() sanitizes string arguments when needed."""

    SEVERITY_STYLES = {
        'error': 'bold red',
        'warning': 'yellow',
        'info': 'cyan',
    }

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs.setdefault('legacy_windows', True)
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj, utf8=False) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

    def error(self, message: str) -> None:
        self.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def warn(self, message: str) -> None:
        self.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def issue(self, severity: str, message: str, location: str = '') -> None:
        """Print one validation issue line."""
        style = self.SEVERITY_STYLES.get(severity, 'white')
        suffix = f" [dim]({escape(location)})[/dim]" if location else ''
        self.print(f"[{style}]{severity_icon(severity)} {severity.upper()}[/{style}] {escape(message)}{suffix}")
