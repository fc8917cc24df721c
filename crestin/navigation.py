"""Station list: search filter, favorites-first ordering and table rendering."""
import shutil
from io import StringIO
from typing import Optional

from rich.console import Console
from rich.table import Table

from .streams import Station


def filter_stations(stations: list[Station], query: str) -> list[Station]:
    if not query:
        return list(stations)
    q = query.lower()
    return [
        s for s in stations
        if q in s.title.lower() or (s.description and q in s.description.lower())
    ]


def sort_stations(stations: list[Station], favorites: list[str]) -> list[Station]:
    """Favorites first, then by listener count (highest first)."""
    favs = set(favorites)
    return sorted(stations, key=lambda s: (s.slug not in favs, -s.total_listeners))


def visible_window(count: int, selected: int, height: int) -> tuple[int, int]:
    """[start, end) of rows to show so the selected row stays on screen."""
    if count <= height:
        return 0, count
    start = max(0, min(selected - height // 2, count - height))
    return start, start + height


def render_station_table(
    stations: list[Station],
    selected: int,
    current_slug: Optional[str],
    favorites: list[str],
    height: int = 15,
) -> tuple[str, int]:
    """Render the station table with selected row highlighted; return (ansi_str, line_count)."""
    width = shutil.get_terminal_size((80, 24)).columns
    buf = StringIO()
    c = Console(file=buf, width=width, highlight=False, force_terminal=True)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("", width=2)
    table.add_column("Station", style="white")
    table.add_column("Listeners", width=9, justify="right")
    table.add_column("Now playing", style="dim")

    favs = set(favorites)
    start, end = visible_window(len(stations), selected, height)
    for i in range(start, end):
        s = stations[i]
        if s.slug == current_slug:
            mark = "[bold green]♫[/bold green]"
        elif s.slug in favs:
            mark = "[yellow]★[/yellow]"
        else:
            mark = ""
        row_style = "reverse" if i == selected else ""
        table.add_row(mark, s.title[:40], str(s.total_listeners), (s.now_playing or "")[:45], style=row_style)

    if not stations:
        c.print("  [dim]No stations match.[/dim]")
    else:
        c.print(table)
    c.print("  [dim]j/k  ↑/↓  ·  Enter play  ·  Space pause  ·  +/- volume  ·  ? help  ·  q quit[/dim]")
    rendered = buf.getvalue()
    return rendered, rendered.count("\n")
