"""Stations, stream candidates, and the fallback/retry stream selector."""
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import BACKOFF_STEP, MAX_STREAM_RETRIES
from .errors import AllStreamsFailed, CommandError, CommandTimeout, Disconnected, NoStreamsAvailable

logger = logging.getLogger(__name__)


class StreamKind(str, enum.Enum):
    DIRECT = "direct"
    HLS = "hls"
    PROXY = "proxy"
    DECLARED = "declared"


@dataclass(frozen=True)
class StreamCandidate:
    kind: StreamKind
    url: str
    order: int


@dataclass(frozen=True)
class Station:
    slug: str
    title: str
    description: Optional[str] = None
    streams: tuple[StreamCandidate, ...] = ()
    stream_url: Optional[str] = None
    hls_stream_url: Optional[str] = None
    proxy_stream_url: Optional[str] = None
    total_listeners: int = 0
    now_playing: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Station":
        """Build from a station directory entry."""
        streams = []
        for i, s in enumerate(data.get("station_streams") or []):
            url = s.get("stream_url")
            if not url:
                continue
            streams.append(StreamCandidate(
                kind=_kind_for(s.get("type")),
                url=url,
                order=int(s.get("order", i)),
            ))

        return cls(
            slug=data.get("slug") or str(data.get("id", "")),
            title=data.get("title") or data.get("slug") or "Untitled",
            description=data.get("description"),
            streams=tuple(streams),
            stream_url=data.get("stream_url") or None,
            hls_stream_url=data.get("hls_stream_url") or None,
            proxy_stream_url=data.get("proxy_stream_url") or None,
            total_listeners=data.get("total_listeners") or 0,
            now_playing=_now_playing_text(data.get("now_playing")),
        )


def _kind_for(value) -> StreamKind:
    try:
        return StreamKind(value)
    except ValueError:
        return StreamKind.DECLARED


def _now_playing_text(now_playing) -> Optional[str]:
    if not isinstance(now_playing, dict):
        return None
    song = (now_playing.get("song") or {}).get("name")
    artist = (now_playing.get("artist") or {}).get("name")
    if song and artist:
        return f"{artist} — {song}"
    return song or artist


def build_candidates(station: Station) -> list[StreamCandidate]:
    """Explicit streams sorted by order; else direct → HLS → proxy fallbacks."""
    if station.streams:
        return sorted(station.streams, key=lambda s: s.order)

    fallback = [
        (StreamKind.DIRECT, station.stream_url),
        (StreamKind.HLS, station.hls_stream_url),
        (StreamKind.PROXY, station.proxy_stream_url),
    ]
    return [
        StreamCandidate(kind=kind, url=url, order=order)
        for order, (kind, url) in enumerate(fallback, 1)
        if url
    ]


# ── Selector state machine ────────────────────────────────────────────────────

class SelectorState(str, enum.Enum):
    IDLE = "idle"
    TRYING = "trying"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    RETRIES_EXHAUSTED = "retries_exhausted"
    SUPERSEDED = "superseded"


@dataclass
class RetryState:
    candidates: list[StreamCandidate] = field(default_factory=list)
    stream_index: int = 0
    attempt: int = 0
    max_attempts: int = MAX_STREAM_RETRIES


class StreamSelector:
    """Drives a PlaybackController through a station's stream candidates.

    One pass tries every candidate in order with no delay between them. A
    failed pass is retried after attempt * backoff_step seconds, up to
    max_attempts extra passes. A newer play_station() call supersedes an
    in-flight one; the older call then returns SUPERSEDED without loading.
    """

    def __init__(
        self,
        controller,
        max_attempts: int = MAX_STREAM_RETRIES,
        backoff_step: float = BACKOFF_STEP,
        sleep=asyncio.sleep,
    ):
        self.controller = controller
        self.max_attempts = max_attempts
        self.backoff_step = backoff_step
        self._sleep = sleep
        self._retry: Optional[RetryState] = None
        self._current_station: Optional[Station] = None
        self.state = SelectorState.IDLE

    @property
    def current_station(self) -> Optional[Station]:
        return self._current_station

    @property
    def retry_state(self) -> Optional[RetryState]:
        return self._retry

    async def play_station(self, station: Station) -> SelectorState:
        """Returns SUCCEEDED (or SUPERSEDED). Raises NoStreamsAvailable,
        AllStreamsFailed, or Disconnected if the player goes away."""
        candidates = build_candidates(station)
        retry = RetryState(candidates=candidates, max_attempts=self.max_attempts)
        self._retry = retry

        if not candidates:
            self._retry = None
            self.state = SelectorState.IDLE
            raise NoStreamsAvailable(station.title)

        while True:
            if self._retry is not retry:
                return SelectorState.SUPERSEDED

            if retry.stream_index >= len(candidates):
                # Full pass failed
                if retry.attempt >= retry.max_attempts:
                    self._retry = None
                    self.state = SelectorState.RETRIES_EXHAUSTED
                    logger.error("All streams failed for %s", station.title)
                    raise AllStreamsFailed(station.title, retry.attempt)
                retry.attempt += 1
                delay = self.backoff_step * retry.attempt
                self.state = SelectorState.BACKOFF
                logger.warning(
                    "All streams failed for %s, retry %d/%d in %.1fs",
                    station.title, retry.attempt, retry.max_attempts, delay,
                )
                await self._sleep(delay)
                retry.stream_index = 0
                continue

            candidate = candidates[retry.stream_index]
            self.state = SelectorState.TRYING
            try:
                await self.controller.load_stream(candidate.url)
            except (CommandError, CommandTimeout) as e:
                logger.warning("Stream %s (%s) failed: %s", candidate.url, candidate.kind.value, e)
                retry.stream_index += 1
                continue
            except Disconnected:
                if self._retry is retry:
                    self._retry = None
                    self.state = SelectorState.IDLE
                raise

            if self._retry is not retry:
                return SelectorState.SUPERSEDED
            retry.attempt = 0
            self._retry = None
            self._current_station = station
            self.state = SelectorState.SUCCEEDED
            logger.info("Playing %s via %s stream", station.title, candidate.kind.value)
            return SelectorState.SUCCEEDED

    async def stop(self):
        self._retry = None
        self._current_station = None
        self.state = SelectorState.IDLE
        await self.controller.stop()
