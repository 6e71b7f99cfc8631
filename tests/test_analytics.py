"""Tests for headway analytics."""

import unittest
from unittest.mock import MagicMock
from datetime import datetime, timezone
import sys
from pathlib import Path as FilePath

# Add src to path so we can import headwaytrack
sys.path.insert(0, str(FilePath(__file__).parent.parent / "src"))

from headwaytrack.models import Coordinate, Headway, LineExtreme, Stop
from headwaytrack.analytics import (
    HeadwayIndex,
    LATENESS_FRAME_COLUMNS,
    SUMMARY_FRAME_COLUMNS,
    build_index,
    departure_series,
    focused_stop,
    format_lateness,
    lateness_frame,
    lateness_series,
    line_latenesses,
    line_wide_extreme,
    summarize,
    summary_frame,
)

BENCHMARK = 480.0


def make_headway(departure: int, lateness: float, route_id: str = "Red") -> Headway:
    """Headway departing at `departure` that is `lateness` seconds off its benchmark."""
    return Headway(
        route_id=route_id,
        prev_route_id=route_id,
        direction=0,
        current_departure=departure,
        previous_departure=departure - 480,
        headway_time=BENCHMARK + lateness,
        benchmark_headway_time=BENCHMARK,
    )


def make_stop(stop_id: str, name: str) -> Stop:
    return Stop(id=stop_id, coordinate=Coordinate(42.35, -71.06), name=name)


class TestHeadwayIndex(unittest.TestCase):
    """Test merging headway batches into the index."""

    def setUp(self):
        """Set up test fixtures."""
        self.stop = make_stop("70063", "Davis")

    def test_merge_sorts_by_departure(self):
        """Batches arriving out of order end up sorted by departure."""
        index = HeadwayIndex()
        index.merge(self.stop, [make_headway(200, 10)])
        index.merge(self.stop, [make_headway(100, 20)])

        departures = [h.current_departure for h in index.series("70063")]
        self.assertEqual(departures, [100, 200])

    def test_merge_order_does_not_matter(self):
        """Any arrival order of batches gives the same series."""
        first = [make_headway(200, 10), make_headway(300, -5)]
        second = [make_headway(100, 20), make_headway(200, 40, route_id="Mattapan")]

        forward = HeadwayIndex()
        forward.merge(self.stop, first)
        forward.merge(self.stop, second)

        backward = HeadwayIndex()
        backward.merge(self.stop, second)
        backward.merge(self.stop, first)

        self.assertEqual(forward.series("70063"), backward.series("70063"))

    def test_register_keeps_first_position(self):
        """Stops keep the position they were first registered at."""
        index = HeadwayIndex()
        index.register(make_stop("a", "Alewife"))
        index.register(make_stop("b", "Davis"))
        index.register(make_stop("a", "Alewife"))

        self.assertEqual([s.id for s in index.stops], ["a", "b"])
        self.assertEqual(len(index), 2)
        self.assertIn("a", index)

    def test_unknown_stop(self):
        """Unknown stop ids have no headways and no stop."""
        index = HeadwayIndex()
        self.assertEqual(index.series("missing"), ())
        self.assertIsNone(index.get_stop("missing"))

    def test_same_name_different_ids_stay_apart(self):
        """Stops are keyed by id, so platforms sharing a name do not collide."""
        index = HeadwayIndex()
        index.merge(make_stop("70061", "Alewife"), [make_headway(100, 10)])
        index.merge(make_stop("70062", "Alewife"), [make_headway(100, 99)])

        self.assertEqual(lateness_series(index, "70061"), (10.0,))
        self.assertEqual(lateness_series(index, "70062"), (99.0,))


class TestBuildIndex(unittest.TestCase):
    """Test fetching and indexing headways for a line."""

    def setUp(self):
        """Set up three stops in line order."""
        self.stops = [
            make_stop("70061", "Alewife"),
            make_stop("70063", "Davis"),
            make_stop("70065", "Porter"),
        ]

    def test_fetches_every_stop_with_window(self):
        """Each stop is fetched once with the requested window."""
        fetch = MagicMock(return_value=[])
        build_index(self.stops, fetch, 1680480000, 1681084800)

        self.assertEqual(fetch.call_count, 3)
        fetch.assert_any_call("70061", 1680480000, 1681084800)
        fetch.assert_any_call("70065", 1680480000, 1681084800)

    def test_index_follows_path_order(self):
        """The index iterates stops in path order, not completion order."""
        batches = {
            "70061": [make_headway(300, 1)],
            "70063": [make_headway(200, 2)],
            "70065": [make_headway(100, 3)],
        }
        index = build_index(self.stops, lambda stop_id, f, t: batches[stop_id], 0, 1)

        self.assertEqual([s.name for s in index.stops], ["Alewife", "Davis", "Porter"])
        self.assertEqual(line_latenesses(index), (1.0, 2.0, 3.0))

    def test_unsorted_batch_is_sorted(self):
        """A batch returned out of order is stored sorted."""
        fetch = MagicMock(return_value=[make_headway(200, 5), make_headway(100, -5)])
        index = build_index(self.stops[:1], fetch, 0, 1)

        self.assertEqual([h.current_departure for h in index.series("70061")], [100, 200])

    def test_repeated_stop_fetched_once(self):
        """A stop listed twice in the path is only fetched once."""
        fetch = MagicMock(return_value=[make_headway(100, 5)])
        index = build_index([self.stops[0], self.stops[0]], fetch, 0, 1)

        self.assertEqual(fetch.call_count, 1)
        self.assertEqual(lateness_series(index, "70061"), (5.0,))

    def test_failed_fetch_leaves_stop_empty(self):
        """A fetch that raises is logged and treated as no data."""
        def fetch(stop_id, from_time, to_time):
            if stop_id == "70063":
                raise ConnectionError("performance API unavailable")
            return [make_headway(100, 30)]

        with self.assertLogs("headwaytrack.analytics", level="WARNING"):
            index = build_index(self.stops, fetch, 0, 1)

        self.assertEqual(len(index), 3)
        self.assertEqual(lateness_series(index, "70063"), ())
        self.assertEqual(lateness_series(index, "70065"), (30.0,))

    def test_generator_fetch_is_indexed(self):
        """Headways yielded lazily by the fetcher are indexed."""
        def fetch(stop_id, from_time, to_time):
            yield make_headway(200, 10)
            yield make_headway(100, 20)

        index = build_index(self.stops, fetch, 0, 1)

        self.assertEqual(lateness_series(index, "70063"), (20.0, 10.0))

    def test_generator_failing_mid_iteration_leaves_stop_empty(self):
        """A lazy fetch that raises partway through is logged and treated as no data."""
        def fetch(stop_id, from_time, to_time):
            yield make_headway(100, 30)
            if stop_id == "70063":
                raise ConnectionError("performance API dropped the stream")

        with self.assertLogs("headwaytrack.analytics", level="WARNING") as logs:
            index = build_index(self.stops, fetch, 0, 1)

        self.assertTrue(any("70063" in line for line in logs.output))
        self.assertEqual(len(index), 3)
        self.assertEqual(lateness_series(index, "70063"), ())
        self.assertEqual(lateness_series(index, "70061"), (30.0,))
        self.assertEqual(lateness_series(index, "70065"), (30.0,))

    def test_no_stops(self):
        """No stops means an empty index and no fetches."""
        fetch = MagicMock()
        index = build_index([], fetch, 0, 1)

        self.assertEqual(len(index), 0)
        fetch.assert_not_called()


class TestSeries(unittest.TestCase):
    """Test lateness and departure series."""

    def setUp(self):
        """Set up an index with one stop."""
        self.index = HeadwayIndex()
        self.index.merge(make_stop("70063", "Davis"), [
            make_headway(1680480000, 60),
            make_headway(1680566400, -30),
        ])

    def test_lateness_series(self):
        """Lateness is headway minus benchmark, in departure order."""
        self.assertEqual(lateness_series(self.index, "70063"), (60.0, -30.0))

    def test_lateness_series_unknown_stop(self):
        """Unknown stops give an empty series instead of an error."""
        self.assertEqual(lateness_series(self.index, "nowhere"), ())

    def test_departure_series(self):
        """Departures are UTC datetimes."""
        departures = departure_series(self.index, "70063")
        self.assertEqual(departures[0], datetime(2023, 4, 3, tzinfo=timezone.utc))
        self.assertEqual(departures[1], datetime(2023, 4, 4, tzinfo=timezone.utc))


class TestSummarize(unittest.TestCase):
    """Test lateness summaries."""

    def test_empty_is_no_data(self):
        """An empty sequence has no summary."""
        self.assertIsNone(summarize([]))

    def test_summary(self):
        """Minimum, maximum, average and count of the values."""
        summary = summarize([5, -3, 2])

        self.assertEqual(summary.minimum, -3)
        self.assertEqual(summary.maximum, 5)
        self.assertAlmostEqual(summary.average, 4 / 3)
        self.assertEqual(summary.count, 3)

    def test_accepts_generators(self):
        """Any iterable can be summarized."""
        summary = summarize(x for x in (10.0,))
        self.assertEqual(summary.count, 1)
        self.assertEqual(summary.average, 10.0)


class TestLineWideExtreme(unittest.TestCase):
    """Test finding the earliest and latest arrival across a line."""

    def setUp(self):
        """Set up stops A (+2, +5) and B (-3)."""
        self.stop_a = make_stop("a", "Alewife")
        self.stop_b = make_stop("b", "Braintree")
        self.index = HeadwayIndex()
        self.index.merge(self.stop_a, [make_headway(100, 2), make_headway(200, 5)])
        self.index.merge(self.stop_b, [make_headway(150, -3)])

    def test_minimum(self):
        """The earliest lateness and its stop."""
        self.assertEqual(line_wide_extreme(self.index, pick_min=True), LineExtreme(self.stop_b, -3.0))

    def test_maximum(self):
        """The latest lateness and its stop."""
        self.assertEqual(line_wide_extreme(self.index, pick_min=False), LineExtreme(self.stop_a, 5.0))

    def test_tie_goes_to_first_stop_in_line_order(self):
        """Two stops sharing the extreme resolve to the earlier stop."""
        index = HeadwayIndex()
        index.register(self.stop_b)
        index.register(self.stop_a)
        index.merge(self.stop_a, [make_headway(100, 7)])
        index.merge(self.stop_b, [make_headway(100, 7)])

        self.assertEqual(line_wide_extreme(index, pick_min=False).stop, self.stop_b)

    def test_empty_index(self):
        """No stops means no extreme."""
        self.assertIsNone(line_wide_extreme(HeadwayIndex(), pick_min=True))

    def test_all_series_empty(self):
        """Stops without headways mean no extreme."""
        index = HeadwayIndex()
        index.register(self.stop_a)
        index.register(self.stop_b)
        self.assertIsNone(line_wide_extreme(index, pick_min=False))

    def test_zero_is_a_value(self):
        """An on-time extreme is reported, not mistaken for missing data."""
        index = HeadwayIndex()
        index.merge(self.stop_a, [make_headway(100, 0)])
        self.assertEqual(line_wide_extreme(index, pick_min=True), LineExtreme(self.stop_a, 0.0))


class TestFormatLateness(unittest.TestCase):
    """Test lateness formatting."""

    def test_on_time(self):
        self.assertEqual(format_lateness(0), "0h:0m:0s (on time)")

    def test_early(self):
        self.assertEqual(format_lateness(-75), "0h:1m:15s (early)")

    def test_late(self):
        self.assertEqual(format_lateness(3661), "1h:1m:1s (late)")

    def test_seconds_round_half_up(self):
        """Fractional seconds round half up, minutes and hours truncate."""
        self.assertEqual(format_lateness(90.5), "0h:1m:31s (late)")
        self.assertEqual(format_lateness(-7199.2), "1h:59m:59s (early)")

    def test_fraction_of_a_second(self):
        """A tiny lateness still says late even though it rounds to zero."""
        self.assertEqual(format_lateness(0.25), "0h:0m:0s (late)")


class TestFocusedStop(unittest.TestCase):
    """Test choosing the stop of interest."""

    def test_hovered_wins(self):
        hovered = make_stop("a", "Alewife")
        selected = make_stop("b", "Braintree")
        self.assertEqual(focused_stop(hovered, selected), hovered)

    def test_selected_when_not_hovering(self):
        selected = make_stop("b", "Braintree")
        self.assertEqual(focused_stop(None, selected), selected)

    def test_nothing(self):
        self.assertIsNone(focused_stop(None, None))


class TestFrames(unittest.TestCase):
    """Test DataFrame views of the index."""

    def setUp(self):
        """Set up an index with one stop with data and one without."""
        self.index = HeadwayIndex()
        self.index.merge(make_stop("70063", "Davis"), [
            make_headway(1680566400, -30),
            make_headway(1680480000, 60),
        ])
        self.index.register(make_stop("70065", "Porter"))

    def test_lateness_frame(self):
        """One row per headway in departure order."""
        df = lateness_frame(self.index, "70063")

        self.assertEqual(list(df.columns), LATENESS_FRAME_COLUMNS)
        self.assertEqual(list(df["date"]), ["2023-04-03", "2023-04-04"])
        self.assertEqual(list(df["lateness"]), [60.0, -30.0])

    def test_lateness_frame_no_data(self):
        """Stops without headways give an empty frame with the same columns."""
        df = lateness_frame(self.index, "70065")

        self.assertTrue(df.empty)
        self.assertEqual(list(df.columns), LATENESS_FRAME_COLUMNS)

    def test_summary_frame_skips_stops_without_data(self):
        """Only stops with headways get a row."""
        df = summary_frame(self.index)

        self.assertEqual(list(df.columns), SUMMARY_FRAME_COLUMNS)
        self.assertEqual(list(df["stop_id"]), ["70063"])
        self.assertEqual(df.iloc[0]["count"], 2)
        self.assertEqual(df.iloc[0]["average"], 15.0)

    def test_summary_frame_empty(self):
        """An empty index gives an empty frame."""
        df = summary_frame(HeadwayIndex())
        self.assertTrue(df.empty)


if __name__ == "__main__":
    unittest.main()
