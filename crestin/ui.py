"""UI display helpers for the header, now-playing panel and status line."""
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from .config import APP_VERSION
from .player import PlaybackState
from .streams import Station

console = Console()


def fmt_time(seconds: float) -> str:
    m, s = divmod(int(seconds), 60)
    h, m = divmod(m, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def print_header():
    console.print(
        f"\n  [bold cyan]♪  Radio Crestin[/bold cyan]"
        f"  [dim]v{APP_VERSION}[/dim]"
    )


def now_playing_panel(station: Optional[Station], state: PlaybackState) -> Panel:
    if station is None:
        return Panel(
            "  [dim]Nothing playing — pick a station and press Enter[/dim]",
            border_style="dim",
            expand=False,
            padding=(0, 1),
        )

    icon = "[yellow]⏸[/yellow]" if state.paused else "[green]♫[/green]"
    lines = [f"  {icon}  [bold]{station.title}[/bold]"]
    if station.now_playing:
        lines.append(f"  {station.now_playing}")
    elapsed = f"  ·  {fmt_time(state.position)}" if state.position else ""
    lines.append(f"  [dim]Vol: {state.volume}%{elapsed}[/dim]")

    return Panel(
        "\n".join(lines),
        title="[bold green]♫[/bold green] Now playing",
        border_style="yellow" if state.paused else "green",
        expand=False,
        padding=(0, 1),
    )


def print_now_playing(station: Optional[Station], state: PlaybackState):
    console.print(now_playing_panel(station, state))


def print_help():
    """Keyboard shortcuts, one section per line."""
    sections = [
        ("Browse", "j/k · ↑/↓ move · / search · Esc clear search"),
        ("Play", "Enter play (again to pause) · Space pause/resume"),
        ("Volume", "+/- volume · m mute/unmute"),
        ("Other", "f favorite · ? help · q quit"),
    ]

    lines: list[str] = []
    for title, content in sections:
        lines.append(f"  [bold]{title}[/bold]  [dim]│[/dim]  {content}")

    console.print(Panel(
        "\n".join(lines),
        border_style="dim",
        expand=False,
        padding=(0, 1),
    ))


def print_status(message: str, style: str = "dim"):
    console.print(f"  [{style}]{message}[/{style}]")
