from __future__ import annotations

from rich.console import Console
from rich.theme import Theme

TESTER_THEME = Theme({
    "success": "bold green",
    "error": "bold red",
    "warning": "bold yellow",
    "info": "cyan",
    "unit": "magenta",
    "number": "bright_blue",
    "typestester": "bold green",
})

# Shared console instances
console = Console(theme=TESTER_THEME, stderr=True)
stdout_console = Console(theme=TESTER_THEME, stderr=False)


def get_console(use_stderr: bool = True) -> Console:
    """Get a themed console instance.

    Args:
        use_stderr: If True, output to stderr (default). If False, output to stdout.

    Returns:
        Console instance with the typestester theme.
    """
    return console if use_stderr else stdout_console
