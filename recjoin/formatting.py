"""Rich console output for merge runs

All output goes through one shared console so that log records, job
messages and the in-place ffmpeg status line do not overwrite each other.
"""

from rich.console import Console
from rich.control import Control, ControlType
from rich.text import Text

console = Console(highlight=False)

def _tagged(tag: str, tag_style: str, message: str, message_style: str = "") -> None:
    console.print(Text(f"{tag} ", style=tag_style) + Text(message, style=message_style))

def print_check(message: str) -> None:
    """Print a run setting or job step."""
    _tagged("»", "bold cyan", message, "bold")

def print_warning(message: str) -> None:
    """Print a recoverable problem, e.g. a skipped recording."""
    _tagged("!", "bold yellow", message, "yellow")

def print_error(message: str) -> None:
    _tagged("✗", "bold red", message, "bold red")

def print_success(message: str) -> None:
    _tagged("✓", "bold green", message, "green")

def print_info(message: str) -> None:
    _tagged("·", "dim", message)

def print_header(title: str) -> None:
    """Print a full-width rule with the title centered."""
    console.rule(Text(title, style="bold"), style="magenta")

def print_separator() -> None:
    """Print a rule between merge jobs."""
    console.rule(style="dim")

def print_raw(line: str) -> None:
    """Print a line of tool output verbatim."""
    console.out(line, highlight=False)

def write_status(message: str, redraw: bool) -> None:
    """Write a status line without a newline, replacing the current one if redraw is set."""
    if redraw:
        console.control(Control((ControlType.ERASE_IN_LINE, 2)), Control.move_to_column(0))
    console.print(Text(message, style="cyan"), end="")

def end_status() -> None:
    """Terminate the current status line."""
    console.print()
