"""Terminal-safe output and logging setup.

Detects terminal encoding and provides ASCII alternatives for the few
Unicode symbols the CLI prints, so Windows terminals without UTF-8 don't
crash on output.
"""
import locale
import logging
import sys

# Unicode to ASCII icon mapping for Windows compatibility
ICON_MAP = {
    '✓': '[OK]',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (LookupError, ValueError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


def configure_logging(verbose: bool = False, console=None):
    """Route library logging through Rich.

    Args:
        verbose: Show debug records instead of warnings and above
        console: Rich console to render to (stderr console if omitted)
    """
    from rich.logging import RichHandler

    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger("global_context")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False
