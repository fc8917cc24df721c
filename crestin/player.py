"""Playback controller: domain commands on top of the IPC client, plus a
mirrored snapshot of the player's state."""
import logging
from dataclasses import dataclass, replace
from typing import Optional

from .events import Notifier
from .ipc import IPCClient

logger = logging.getLogger(__name__)

OBSERVED_PROPERTIES = ("pause", "volume", "duration", "time-pos")


def clamp_volume(value: float) -> int:
    return int(max(0, min(100, round(value))))


@dataclass
class PlaybackState:
    playing: bool = False
    paused: bool = False
    volume: int = 100
    current_url: Optional[str] = None
    duration: Optional[float] = None
    position: Optional[float] = None


class PlaybackController:
    """Notifications (via .notifier):

    state-changed  {"paused": bool} or {"volume": int}, one per confirmed change
    stream-loaded  url
    """

    def __init__(self, client: IPCClient, supervisor=None, volume: int = 100):
        self._client = client
        self._supervisor = supervisor
        self._state = PlaybackState(volume=clamp_volume(volume))
        self.notifier = Notifier()
        self._unsubscribe = [
            client.notifier.subscribe("pause-changed", self._on_pause),
            client.notifier.subscribe("volume-changed", self._on_volume),
            client.notifier.subscribe("duration-changed", self._on_duration),
            client.notifier.subscribe("position-changed", self._on_position),
        ]

    @property
    def state(self) -> PlaybackState:
        """A copy; callers can't mutate the mirror."""
        return replace(self._state)

    async def setup_observers(self):
        for name in OBSERVED_PROPERTIES:
            await self._client.observe_property(name)

    # ── Playback ───────────────────────────────────────────────────────────────

    async def load_stream(self, url: str):
        """Load url. Errors propagate unchanged; no retry here."""
        await self._client.send_command(["loadfile", url])
        self._state.current_url = url
        self._state.playing = True
        self._state.paused = False
        logger.info("Stream loaded: %s", url)
        self.notifier.emit("stream-loaded", url)

    async def play(self):
        await self._client.send_command(["set_property", "pause", False])

    async def pause(self):
        await self._client.send_command(["set_property", "pause", True])

    async def toggle_pause(self):
        await self._client.send_command(["cycle", "pause"])

    async def stop(self):
        await self._client.send_command(["stop"])
        self._state.playing = False
        self._state.current_url = None

    # ── Volume ─────────────────────────────────────────────────────────────────

    async def set_volume(self, level: float) -> int:
        target = clamp_volume(level)
        await self._client.send_command(["set_property", "volume", target])
        # Local echo until the next volume property-change confirms it
        self._state.volume = target
        return target

    async def adjust_volume(self, delta: float) -> int:
        return await self.set_volume(self._state.volume + delta)

    # ── Shutdown ───────────────────────────────────────────────────────────────

    async def quit(self):
        """Never raises; shutdown always completes."""
        if self._supervisor is not None:
            await self._supervisor.quit(self._client)
        else:
            await self._client.request_quit()
            await self._client.close()
        self._state.playing = False
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    # ── Property-change handlers ───────────────────────────────────────────────

    def _on_pause(self, data):
        if not isinstance(data, bool):
            return
        self._state.paused = data
        self.notifier.emit("state-changed", {"paused": data})

    def _on_volume(self, data):
        if not isinstance(data, (int, float)) or isinstance(data, bool):
            return
        self._state.volume = clamp_volume(data)
        self.notifier.emit("state-changed", {"volume": self._state.volume})

    def _on_duration(self, data):
        self._state.duration = float(data) if isinstance(data, (int, float)) else None

    def _on_position(self, data):
        self._state.position = float(data) if isinstance(data, (int, float)) else None
