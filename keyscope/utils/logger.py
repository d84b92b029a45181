"""Terminal-safe text output with ASCII fallbacks for keyscope's icons.

Detects whether the terminal can render UTF-8 and, when it cannot, swaps the
icons used in CLI output for plain ASCII markers.
"""
import locale
import sys


# Icons used by the CLI and their ASCII replacements.
# Bracketed replacements stay upper-case so rich never reads them as markup tags.
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '❌': '[ERROR]',
    '⚠': '[WARN]',
    'ℹ': '[INFO]',
    '🔑': '[KEY]',
    '📁': '[DIR]',
    '📄': '[FILE]',
    '📍': '[AT]',
    '📊': '[STATS]',
    '🧩': '[WIDGET]',
    '→': '->',
    '…': '...',
    '•': '*',
}

SEVERITY_ICONS = {
    'error': '❌',
    'warning': '⚠',
    'info': 'ℹ',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding.

    Returns:
        Lower-cased encoding name ('utf-8', 'cp1252', 'ascii', ...)
    """
    encoding = getattr(sys.stdout, 'encoding', None)
    if encoding:
        return encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    return detect_terminal_encoding().replace('_', '-') in ('utf-8', 'utf8')


def sanitize_for_terminal(text: str, utf8: bool = None) -> str:
    """Replace icons with ASCII equivalents unless the terminal is UTF-8.

    Args:
        text: Text potentially containing icons
        utf8: Override terminal detection (used by tests)
    """
    if utf8 is None:
        utf8 = is_utf8_capable()
    if utf8:
        return text

    for icon, replacement in ICON_MAP.items():
        text = text.replace(icon, replacement)
    return text


def severity_icon(severity: str) -> str:
    return SEVERITY_ICONS.get(severity, '•')
