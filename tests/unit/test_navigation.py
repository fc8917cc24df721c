from crestin.navigation import filter_stations, render_station_table, sort_stations, visible_window
from crestin.streams import Station


STATIONS = [
    Station(slug="a", title="Aripi Spre Cer", description="worship", total_listeners=10),
    Station(slug="b", title="Radio Vocea Evangheliei", description="Cluj", total_listeners=50),
    Station(slug="c", title="Trinitas", description=None, total_listeners=30),
]


class TestFilterAndSort:
    def test_filter_matches_title_or_description(self):
        assert [s.slug for s in filter_stations(STATIONS, "vocea")] == ["b"]
        assert [s.slug for s in filter_stations(STATIONS, "WORSHIP")] == ["a"]
        assert filter_stations(STATIONS, "") == STATIONS

    def test_favorites_first_then_listeners(self):
        ordered = sort_stations(STATIONS, favorites=["a"])
        assert [s.slug for s in ordered] == ["a", "b", "c"]
        assert [s.slug for s in sort_stations(STATIONS, [])] == ["b", "c", "a"]


class TestRendering:
    def test_window_keeps_selection_visible(self):
        assert visible_window(5, 0, 10) == (0, 5)
        start, end = visible_window(100, 50, 10)
        assert start <= 50 < end
        assert visible_window(100, 99, 10) == (90, 100)

    def test_table_lists_titles(self):
        rendered, lines = render_station_table(STATIONS, 1, current_slug="c", favorites=["a"])
        assert "Trinitas" in rendered
        assert lines == rendered.count("\n")

    def test_empty_list(self):
        rendered, _ = render_station_table([], 0, None, [])
        assert "No stations match" in rendered
