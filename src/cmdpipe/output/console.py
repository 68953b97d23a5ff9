"""Rich Console factory and theme for cmdpipe output.

Consoles render to a StringIO buffer so renderers keep a
``render_*() -> str`` contract. In non-TTY environments (tests, pipes)
Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

PIPE_THEME = Theme(
    {
        "pipe.ok": "bold green",
        "pipe.error": "bold red",
        "pipe.warning": "bold yellow",
        "pipe.op": "bold cyan",
        "pipe.key": "dim",
        "pipe.id": "bold blue",
        "pipe.category": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=PIPE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
