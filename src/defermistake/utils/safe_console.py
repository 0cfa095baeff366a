"""Rich Console wrapper that degrades Unicode output on legacy terminals."""
from rich.console import Console
from typing import Any
from .logger import sanitize_for_terminal, is_utf8_capable


class SafeConsole(Console):
    """Console that sanitizes Unicode icons on non-UTF-8 terminals.

    Diagnostics contain source text (file paths, function names), so only the
    icon characters known to ``ICON_MAP`` are replaced; everything else is
    passed through to Rich unchanged.
    """

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()

        if self._needs_sanitization:
            kwargs['legacy_windows'] = True

        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        """Print with Unicode sanitization (same signature as Console.print)."""
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

