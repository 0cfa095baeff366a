"""Terminal-safe message output with ASCII fallback for non-UTF-8 consoles.

Analyzer components report warnings as component-prefixed lines
(``[Parser] Warning: ...``) on stderr. Icons used in CLI output are replaced
with ASCII equivalents when the terminal cannot encode them.
"""
import sys
import locale


# Unicode to ASCII icon mapping for terminals without UTF-8 support
ICON_MAP = {
    '✓': '[OK]',
    '✔': '[OK]',
    '✗': '[FAIL]',
    '✘': '[FAIL]',
    '⚠': '[WARN]',
    '⏱': '[time]',
    '→': '->',
    '⇒': '=>',
    '…': '...',
    '•': '*',
    '│': '|',
    '─': '-',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding.

    Returns:
        str: Lower-cased encoding name ('utf-8', 'cp1252', 'ascii', ...)
    """
    if getattr(sys.stdout, 'encoding', None):
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (AttributeError, ValueError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can print UTF-8 icons."""
    return detect_terminal_encoding().replace('_', '-') in ('utf-8', 'utf8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents on non-UTF-8 terminals.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Text safe for the current terminal
    """
    if is_utf8_capable():
        return text

    for unicode_char, ascii_replacement in ICON_MAP.items():
        text = text.replace(unicode_char, ascii_replacement)
    return text


def log_warning(component: str, message: str):
    """Write a component-prefixed warning to stderr.

    Args:
        component: Reporting component (e.g. 'Parser', 'Cache')
        message: Warning text
    """
    print(sanitize_for_terminal(f"[{component}] Warning: {message}"), file=sys.stderr)

