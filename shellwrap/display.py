"""Themed terminal display — console, semantic styles, display helpers."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.theme import Theme

from shellwrap.command import Command
from shellwrap.config import get_settings

# -- Theme palettes (keyed by theme name) ------------------------------------

_THEMES: dict[str, dict[str, str]] = {
    "dark":  {"status": "yellow",      "info": "cyan", "accent": "bold cyan", "shell": "dim", "error": "bold red", "stderr": "red", "success": "green", "hint": "dim"},
    "light": {"status": "dark_orange", "info": "blue", "accent": "bold blue", "shell": "dim", "error": "bold red", "stderr": "red", "success": "green", "hint": "dim"},
}

# -- Console (single instance, themed) --------------------------------------

console = Console(theme=Theme(_THEMES["light"]), highlight=False)

# -- Indicators ------------------------------------------------------------

PROMPT_CHAR = "$"
SUCCESS     = "✦"
ERROR       = "✖"

# -- Theme switching -------------------------------------------------------


def set_theme(name: str | None = None) -> None:
    """Switch the console theme (defaults to the configured theme)."""
    name = name or get_settings().theme
    console.push_theme(Theme(_THEMES.get(name, _THEMES["light"])))


# -- Display helpers -------------------------------------------------------


def display_command(command: Command) -> None:
    """Rendered command line, prompt-prefixed."""
    console.print(f"[accent]{PROMPT_CHAR}[/accent] [shell]{escape(command.to_command())}[/shell]", soft_wrap=True)


def display_output(command: Command) -> None:
    """Captured stdout, then stderr in the error style, then the exit status."""
    if command.stdout:
        console.print(command.stdout, end="", markup=False)
    if command.stderr:
        console.print(command.stderr, end="", style="stderr", markup=False)
    if not command.is_complete():
        return
    if command.is_successful():
        console.print(f"[success]{SUCCESS} {escape(command.name)} exited 0[/success]")
    else:
        console.print(f"[error]{ERROR} {escape(command.name)} exited {command.exit_status}[/error]")


def display_error(message: str, hint: str | None = None) -> None:
    """Red-bordered panel with optional recovery hint."""
    body = f"[bold red]{ERROR} {escape(message)}[/bold red]"
    if hint:
        body += f"\n[dim]{hint}[/dim]"
    console.print(Panel(body, border_style="red", title="Error", title_align="left"))
