"""
Terminal rendering for Anna AI.
Headers, panels, tables, menus and a spinner, all drawn with rich.
"""

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

T = TypeVar("T")

# Console setup
console = Console()

ACCENT = "bright_cyan"
PANEL_WIDTH = 80
CELL_PADDING = 2
SPINNER_INTERVAL = 0.1

BANNER = [
    "    ███   ██     ██ ██     ██   ███   ",
    "  ██   ██ ████   ██ ████   ██ ██   ██  ",
    "  ███████ ██ ██  ██ ██ ██  ██ ███████  ",
    "  ██   ██ ██  ██ ██ ██  ██ ██ ██   ██  ",
    "  ██   ██ ██   ████ ██   ████ ██   ██  ",
    "",
    "   ✨ Intelligent AI Assistant ✨      ",
]


@dataclass
class MenuOption:
    key: str
    description: str


def print_header(text: str) -> None:
    console.print()
    console.print("━" * 50, style="dim")
    console.print(f"  {escape(text)}", style=ACCENT)
    console.print("━" * 50, style="dim")
    console.print()


def print_success(text: str) -> None:
    console.print(f"[bright_green]✓[/bright_green] {escape(text)}")


def print_error(text: str) -> None:
    console.print(f"[bright_red]✗[/bright_red] {escape(text)}")


def print_warning(text: str) -> None:
    console.print(f"[bright_yellow]⚠[/bright_yellow] {escape(text)}")


def print_info(text: str) -> None:
    console.print(escape(text), style="bright_blue")


def print_step(step: int, total: int, text: str) -> None:
    console.print(f"[bright_magenta]\\[{step}/{total}][/bright_magenta] {escape(text)}")


def print_banner() -> None:
    for line in BANNER:
        console.print(line, style=ACCENT)


def build_table(headers: Sequence[str], rows: Sequence[Sequence[str]], title: Optional[str] = None) -> Table:
    table = Table(
        title=title,
        box=box.SIMPLE_HEAD,
        border_style=ACCENT,
        header_style="bright_yellow",
        padding=(0, CELL_PADDING),
    )
    for i, header in enumerate(headers):
        table.add_column(header, style=ACCENT if i == 0 else None)
    for row in rows:
        table.add_row(*(Text(str(cell)) for cell in row))
    return table


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]], title: Optional[str] = None) -> None:
    console.print(build_table(headers, rows, title))


def wrap_text(text: str, width: int) -> List[str]:
    """Break text into lines of at most width characters at word boundaries."""
    lines = []
    current = ""
    for word in text.split():
        if not current:
            current = word
        elif len(current) + len(word) + 1 <= width:
            current += " " + word
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def panel_lines(content: str, width: int = PANEL_WIDTH) -> List[str]:
    lines = []
    for paragraph in content.split("\n"):
        if not paragraph.strip():
            lines.append("")
        else:
            lines.extend(wrap_text(paragraph, width))
    return lines


def print_panel(content: str, title: str = "", border_color: str = "cyan") -> None:
    body = Text("\n".join(panel_lines(content)))
    console.print(Panel(
        body,
        title=f"[bold {ACCENT}]{escape(title)}[/bold {ACCENT}]" if title else None,
        title_align="left",
        border_style=border_color,
        box=box.HEAVY,
        width=PANEL_WIDTH + 4,
    ))
    console.print()


def print_menu(title: str, options: Sequence[MenuOption]) -> str:
    print_header(title)
    for option in options:
        console.print(f"  [bright_magenta]\\[{escape(option.key)}][/bright_magenta] {escape(option.description)}")
    console.print()
    return Prompt.ask("[bright_green]›[/bright_green]", console=console).strip()


def prompt_input(prompt: str, default: str = "") -> str:
    return Prompt.ask(f"[{ACCENT}]{escape(prompt)}[/{ACCENT}]", default=default, console=console)


def confirm(prompt: str) -> bool:
    return Confirm.ask(f"[bright_yellow]{escape(prompt)}[/bright_yellow]", console=console)


def select_option(prompt: str, options: Sequence[str]) -> str:
    console.print(escape(prompt))
    for i, option in enumerate(options, 1):
        console.print(f"  [bright_magenta]\\[{i}][/bright_magenta] {escape(option)}")
    console.print()

    while True:
        choice = Prompt.ask(f"[{ACCENT}]Select \\[1-{len(options)}][/{ACCENT}]", console=console)
        try:
            index = int(choice)
            if 1 <= index <= len(options):
                return options[index - 1]
        except ValueError:
            pass
        print_warning("Invalid selection. Please try again.")


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds, 1)}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes}m {round(seconds % 60)}s"
    hours = int(seconds // 3600)
    return f"{hours}h {round((seconds % 3600) / 60)}m"


def _tick(progress: Progress, stop: threading.Event, interval: float) -> None:
    while not stop.wait(interval):
        progress.refresh()


def with_loading(fn: Callable[[], T], message: str, interval: float = SPINNER_INTERVAL) -> T:
    """
    Run a blocking call while a spinner animates on a second thread.

    The ticker is stopped and joined whether fn returns or raises; the
    success mark is only printed when fn returns.
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots", style=ACCENT),
        TextColumn(f"[{ACCENT}][progress.description]{{task.description}}[/{ACCENT}]"),
        console=console,
        transient=True,
        auto_refresh=False,
    )
    progress.add_task(description=escape(message), total=None)
    stop = threading.Event()
    ticker = threading.Thread(target=_tick, args=(progress, stop, interval), name="spinner", daemon=True)

    with progress:
        ticker.start()
        try:
            result = fn()
        finally:
            stop.set()
            ticker.join()
    print_success(message)
    return result


HELP_ROWS: List[Tuple[str, str]] = [
    ("(no arguments)", "Open the interactive menu"),
    ("-i, --interactive", "Start interactive chat"),
    ("--chat 'message'", "Send one chat message"),
    ("--story", "Generate a story"),
    ("--prompt 'text'", "Story idea"),
    ("--genre fantasy", "Genre (fantasy, sci-fi, romance, mystery, horror, adventure)"),
    ("--length short", "Length (short, medium, long)"),
    ("--tone happy", "Tone (happy, mysterious, exciting, etc.)"),
    ("--analyze FILE", "Analyze Julia code"),
    ("--explain FILE", "Explain Julia code (--detail basic|medium|detailed)"),
    ("--debug 'error'", "Explain a Julia error message"),
    ("--challenge", "Get a challenge (--difficulty, --topic)"),
    ("--list-models", "List local Ollama models"),
    ("--env NAME", "Configuration overlay (development, production)"),
    ("--model NAME", "Use another Ollama model for this run"),
    ("/help", "Show chat commands (in chat)"),
    ("/quit", "Exit chat"),
]


def print_help() -> None:
    print_panel("Here are the available commands:", title="Help")
    print_table(["Command", "Description"], [list(row) for row in HELP_ROWS])
