import asyncio

import pytest

from crestin.errors import (
    AllStreamsFailed,
    CommandError,
    CommandTimeout,
    Disconnected,
    NoStreamsAvailable,
)
from crestin.streams import (
    SelectorState,
    Station,
    StreamCandidate,
    StreamKind,
    StreamSelector,
    build_candidates,
)


class FakeController:
    """load_stream fails for every URL in `failing`, with the given error."""

    def __init__(self, failing=(), error=None):
        self.failing = set(failing)
        self.error = error
        self.loads = []
        self.stopped = False

    async def load_stream(self, url):
        self.loads.append(url)
        if url in self.failing:
            raise self.error or CommandError(["loadfile", url], "loading failed")

    async def stop(self):
        self.stopped = True


class RecordingSleep:
    def __init__(self, on_sleep=None):
        self.delays = []
        self.on_sleep = on_sleep

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.on_sleep:
            self.on_sleep()


def _station(*urls, **fields):
    streams = tuple(
        StreamCandidate(kind=StreamKind.DECLARED, url=u, order=i) for i, u in enumerate(urls, 1)
    )
    return Station(slug=fields.pop("slug", "test"), title=fields.pop("title", "Test FM"), streams=streams, **fields)


class TestBuildCandidates:
    def test_explicit_list_sorted_by_order(self):
        station = Station(slug="s", title="S", streams=(
            StreamCandidate(StreamKind.HLS, "http://b", 2),
            StreamCandidate(StreamKind.DIRECT, "http://a", 1),
            StreamCandidate(StreamKind.PROXY, "http://c", 3),
        ))
        assert [c.url for c in build_candidates(station)] == ["http://a", "http://b", "http://c"]

    def test_fallback_order_direct_hls_proxy(self):
        station = Station(
            slug="s", title="S",
            proxy_stream_url="http://proxy", stream_url="http://direct", hls_stream_url="http://hls",
        )
        assert [(c.kind, c.url) for c in build_candidates(station)] == [
            (StreamKind.DIRECT, "http://direct"),
            (StreamKind.HLS, "http://hls"),
            (StreamKind.PROXY, "http://proxy"),
        ]

    def test_only_proxy_gives_single_proxy_candidate(self):
        station = Station(slug="s", title="S", proxy_stream_url="http://proxy")
        candidates = build_candidates(station)
        assert len(candidates) == 1
        assert candidates[0].kind is StreamKind.PROXY

    def test_explicit_list_wins_over_fields(self):
        station = _station("http://declared", stream_url="http://direct")
        assert [c.url for c in build_candidates(station)] == ["http://declared"]

    def test_nothing_gives_empty_list(self):
        assert build_candidates(Station(slug="s", title="S")) == []


class TestStationFromDict:
    def test_parses_directory_entry(self):
        station = Station.from_dict({
            "id": 12,
            "slug": "aripi-spre-cer",
            "title": "Aripi Spre Cer",
            "description": "Muzică creștină",
            "stream_url": "http://direct",
            "hls_stream_url": "",
            "proxy_stream_url": "http://proxy",
            "total_listeners": 120,
            "station_streams": [
                {"id": 2, "type": "hls", "stream_url": "http://hls", "order": 2},
                {"id": 1, "type": "mystery", "stream_url": "http://x", "order": 1},
                {"id": 3, "type": "proxy", "stream_url": "", "order": 3},
            ],
            "now_playing": {"song": {"name": "Cântec"}, "artist": {"name": "Artist"}},
        })
        assert station.slug == "aripi-spre-cer"
        assert station.total_listeners == 120
        assert station.hls_stream_url is None
        assert [(c.kind, c.order) for c in station.streams] == [
            (StreamKind.HLS, 2), (StreamKind.DECLARED, 1),
        ]
        assert station.now_playing == "Artist — Cântec"

    def test_missing_fields_have_defaults(self):
        station = Station.from_dict({"slug": "x"})
        assert station.title == "x"
        assert station.streams == ()
        assert station.now_playing is None


class TestStreamSelector:
    def test_falls_through_to_third_candidate_without_backoff(self):
        controller = FakeController(failing={"http://1", "http://2"})
        sleep = RecordingSleep()
        selector = StreamSelector(controller, sleep=sleep)
        station = _station("http://1", "http://2", "http://3")

        outcome = asyncio.run(selector.play_station(station))

        assert outcome is SelectorState.SUCCEEDED
        assert selector.state is SelectorState.SUCCEEDED
        assert controller.loads == ["http://1", "http://2", "http://3"]
        assert sleep.delays == []
        assert selector.current_station is station
        assert selector.retry_state is None

    def test_all_failing_retries_with_linear_backoff_then_gives_up(self):
        urls = ("http://1", "http://2")
        controller = FakeController(failing=set(urls))
        sleep = RecordingSleep()
        selector = StreamSelector(controller, sleep=sleep)

        with pytest.raises(AllStreamsFailed) as exc:
            asyncio.run(selector.play_station(_station(*urls)))

        assert exc.value.attempts == 3
        assert sleep.delays == [1.0, 2.0, 3.0]
        # First pass plus one pass per retry
        assert controller.loads == list(urls) * 4
        assert selector.state is SelectorState.RETRIES_EXHAUSTED
        assert selector.current_station is None

    def test_success_on_a_later_pass(self):
        controller = FakeController(failing={"http://1"})
        sleep = RecordingSleep(on_sleep=controller.failing.clear)
        selector = StreamSelector(controller, sleep=sleep)

        assert asyncio.run(selector.play_station(_station("http://1"))) is SelectorState.SUCCEEDED
        assert sleep.delays == [1.0]
        assert controller.loads == ["http://1", "http://1"]

    def test_timeouts_are_recovered_like_errors(self):
        controller = FakeController(failing={"http://1"}, error=CommandTimeout(["loadfile"], 5.0))
        selector = StreamSelector(controller, sleep=RecordingSleep())
        outcome = asyncio.run(selector.play_station(_station("http://1", "http://2")))
        assert outcome is SelectorState.SUCCEEDED
        assert controller.loads == ["http://1", "http://2"]

    def test_no_candidates_fails_immediately(self):
        controller = FakeController()
        sleep = RecordingSleep()
        selector = StreamSelector(controller, sleep=sleep)

        with pytest.raises(NoStreamsAvailable):
            asyncio.run(selector.play_station(Station(slug="empty", title="Empty")))

        assert controller.loads == []
        assert sleep.delays == []

    def test_disconnect_is_not_retried(self):
        controller = FakeController(failing={"http://1"}, error=Disconnected("gone"))
        sleep = RecordingSleep()
        selector = StreamSelector(controller, sleep=sleep)

        with pytest.raises(Disconnected):
            asyncio.run(selector.play_station(_station("http://1", "http://2")))

        assert controller.loads == ["http://1"]
        assert sleep.delays == []
        assert selector.state is SelectorState.IDLE
        assert selector.retry_state is None

    def test_new_station_supersedes_one_in_backoff(self):
        controller = FakeController(failing={"http://a"})
        selector_holder = {}

        async def scenario():
            gate = asyncio.Event()

            async def gated_sleep(delay):
                await gate.wait()

            selector = StreamSelector(controller, sleep=gated_sleep)
            selector_holder["s"] = selector
            first = asyncio.create_task(selector.play_station(_station("http://a", slug="a")))
            await asyncio.sleep(0)
            await asyncio.sleep(0)

            second = await selector.play_station(_station("http://b", slug="b"))
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())
        selector = selector_holder["s"]
        assert first is SelectorState.SUPERSEDED
        assert second is SelectorState.SUCCEEDED
        assert controller.loads == ["http://a", "http://b"]
        assert selector.current_station.slug == "b"
        assert selector.state is SelectorState.SUCCEEDED

    def test_stop_resets_and_stops_controller(self):
        controller = FakeController()
        selector = StreamSelector(controller, sleep=RecordingSleep())

        async def scenario():
            await selector.play_station(_station("http://1"))
            await selector.stop()

        asyncio.run(scenario())
        assert controller.stopped
        assert selector.current_station is None
        assert selector.state is SelectorState.IDLE
