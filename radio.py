"""Radio Crestin terminal player entry point."""
import asyncio
import logging
import sys
from typing import Optional

from rich import print as rprint

from crestin.api import fetch_stations
from crestin.config import DATA_DIR, DEV_MODE, LOG_FILE, VOLUME_STEP
from crestin.errors import (
    AllStreamsFailed,
    CommandError,
    CommandTimeout,
    CrestinError,
    Disconnected,
    NoStreamsAvailable,
    StationsFetchError,
    format_error,
)
from crestin.favorites import Preferences
from crestin.input import _read_key
from crestin.navigation import filter_stations, render_station_table, sort_stations
from crestin.preflight import run_preflight
from crestin.session import PlayerSession
from crestin.streams import SelectorState, Station
from crestin.ui import console, print_header, print_help, print_now_playing, print_status

logger = logging.getLogger("radio")


def _setup_logging():
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=LOG_FILE,
        level=logging.DEBUG if DEV_MODE else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class App:
    def __init__(self, session: PlayerSession, prefs: Preferences, stations: list[Station]):
        self.session = session
        self.prefs = prefs
        self.stations = stations
        self.favorites = prefs.favorites()
        self.query = ""
        self.searching = False
        self.selected = 0
        self.show_help = False
        self.message = ""
        self.message_style = "dim"
        self.current: Optional[Station] = None
        self.running = True
        self._play_task: Optional[asyncio.Task] = None
        self._dirty = asyncio.Event()

        session.controller.notifier.subscribe("state-changed", self._on_state_changed)
        session.notifier.subscribe("failure", self._on_failure)

        last = prefs.last_played()
        listed = self.visible()
        for i, s in enumerate(listed):
            if s.slug == last:
                self.selected = i
                break

    # ── Rendering ──────────────────────────────────────────────────────────────

    def visible(self) -> list[Station]:
        return sort_stations(filter_stations(self.stations, self.query), self.favorites)

    def redraw(self):
        console.clear()
        print_header()
        print_now_playing(self.current, self.session.controller.state)
        if self.searching or self.query:
            console.print(f"  [cyan]/[/cyan] {self.query}[blink]▏[/blink]")
        if self.show_help:
            print_help()
        else:
            listed = self.visible()
            rendered, _ = render_station_table(
                listed, self.selected, self.current.slug if self.current else None, self.favorites,
            )
            sys.stdout.write(rendered)
            sys.stdout.flush()
        if self.message:
            print_status(self.message, self.message_style)

    def notify(self, message: str, style: str = "dim"):
        self.message = message
        self.message_style = style
        self._dirty.set()

    # ── Notifications ──────────────────────────────────────────────────────────

    def _on_state_changed(self, change: dict):
        volume = change.get("volume")
        # Don't persist mute, so unmute can restore the saved level
        if volume:
            self.prefs.set_volume(volume)
        self._dirty.set()

    def _on_failure(self, error):
        self.notify(format_error("process_exit", raw=str(error)), "red")
        self.running = False

    # ── Actions ────────────────────────────────────────────────────────────────

    async def play_selected(self):
        listed = self.visible()
        if not listed:
            return
        station = listed[min(self.selected, len(listed) - 1)]
        if self.current and self.current.slug == station.slug:
            await self.toggle_pause()
            return
        self.notify(f"Connecting to {station.title}...")
        self._play_task = asyncio.create_task(self._play(station))

    async def _play(self, station: Station):
        try:
            outcome = await self.session.selector.play_station(station)
        except NoStreamsAvailable as e:
            self.notify(str(e), "yellow")
            return
        except AllStreamsFailed as e:
            self.notify(format_error("play_station", station.slug, raw=str(e)), "red")
            return
        except Disconnected as e:
            self.notify(format_error("process_exit", station.slug, raw=str(e)), "red")
            self.running = False
            return
        if outcome is SelectorState.SUCCEEDED:
            self.current = station
            self.prefs.set_last_played(station.slug)
            self.notify(f"Playing {station.title}", "green")

    async def toggle_pause(self):
        if not self.current:
            return
        await self._command(self.session.controller.toggle_pause())

    async def adjust_volume(self, delta: int):
        await self._command(self.session.controller.adjust_volume(delta))

    async def toggle_mute(self):
        controller = self.session.controller
        if controller.state.volume > 0:
            await self._command(controller.set_volume(0))
        else:
            await self._command(controller.set_volume(self.prefs.volume()))

    def toggle_favorite(self):
        listed = self.visible()
        if not listed:
            return
        station = listed[min(self.selected, len(listed) - 1)]
        is_fav = self.prefs.toggle_favorite(station.slug)
        self.favorites = self.prefs.favorites()
        self.notify(f"{'★ Added' if is_fav else '☆ Removed'} {station.title}", "yellow")

    async def _command(self, coro):
        try:
            await coro
        except (CommandError, CommandTimeout) as e:
            self.notify(format_error("command", raw=str(e)), "red")
        except Disconnected as e:
            self.notify(format_error("process_exit", raw=str(e)), "red")
            self.running = False

    # ── Key loop ───────────────────────────────────────────────────────────────

    async def handle_key(self, key: str):
        listed_count = len(self.visible())

        if self.searching:
            if key == "enter":
                self.searching = False
            elif key == "esc":
                self.searching = False
                self.query = ""
            elif key == "backspace":
                self.query = self.query[:-1]
            elif len(key) == 1 and key.isprintable():
                self.query += key
                self.selected = 0
            return

        if key in ("q", "\x03", "\x04"):
            self.running = False
        elif key in ("down", "j"):
            self.selected = min(self.selected + 1, max(listed_count - 1, 0))
        elif key in ("up", "k"):
            self.selected = max(self.selected - 1, 0)
        elif key == "enter":
            await self.play_selected()
        elif key == " ":
            await self.toggle_pause()
        elif key in ("+", "="):
            await self.adjust_volume(VOLUME_STEP)
        elif key in ("-", "_"):
            await self.adjust_volume(-VOLUME_STEP)
        elif key == "m":
            await self.toggle_mute()
        elif key == "f":
            self.toggle_favorite()
        elif key in ("?", "h"):
            self.show_help = not self.show_help
        elif key == "/":
            self.searching = True
        elif key == "esc":
            self.query = ""
            self.show_help = False

    async def run(self):
        loop = asyncio.get_running_loop()
        self.redraw()
        while self.running:
            key = await loop.run_in_executor(None, _read_key)
            if key is not None and key != "ignore":
                await self.handle_key(key)
                self._dirty.set()
            if self._dirty.is_set():
                self._dirty.clear()
                self.redraw()


async def main():
    _setup_logging()
    print_header()

    ok, mpv_path = await run_preflight()
    if not ok:
        sys.exit(1)

    prefs = Preferences()
    session = PlayerSession(mpv_path, volume=prefs.volume())
    try:
        with console.status("  [cyan]Starting player...[/cyan]", spinner="dots"):
            await session.start()
        with console.status("  [cyan]Loading stations...[/cyan]", spinner="dots"):
            stations = await fetch_stations()
    except OSError as e:
        console.print(f"\n[red]{format_error('process_start', raw=str(e))}[/red]")
        await session.quit()
        sys.exit(1)
    except StationsFetchError as e:
        console.print(f"\n[red]{format_error('stations_fetch', raw=str(e))}[/red]")
        await session.quit()
        sys.exit(1)
    except CrestinError as e:
        console.print(f"\n[red]{format_error('process_start', raw=str(e))}[/red]")
        await session.quit()
        sys.exit(1)

    logger.info("Loaded %d stations", len(stations))
    app = App(session, prefs, stations)
    try:
        await app.run()
    finally:
        await session.quit()
    if app.message and app.message_style == "red":
        console.print(f"\n  [red]{app.message}[/red]")
    console.print("\n  [bold cyan]♪[/bold cyan]  La revedere!\n")


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        rprint("\n\n  [bold]Goodbye.[/bold]\n")
        sys.exit(0)


if __name__ == "__main__":
    cli()
