"""Lateness statistics over headway samples."""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from .models import Headway, LatenessSummary, LineExtreme, Stop

logger = logging.getLogger(__name__)

# Upper bound on concurrent per-stop headway fetches
DEFAULT_MAX_WORKERS = 8

LATENESS_FRAME_COLUMNS = ["departure", "date", "lateness"]
SUMMARY_FRAME_COLUMNS = ["stop_id", "name", "minimum", "maximum", "average", "count"]

# (stop_id, from_time, to_time) -> headways
HeadwayFetcher = Callable[[str, int, int], Iterable[Headway]]


def _headway_sort_key(headway: Headway) -> tuple:
    # Departure first; remaining fields only break ties so that merge order never matters
    return (
        headway.current_departure,
        headway.previous_departure,
        headway.route_id,
        headway.prev_route_id,
        headway.direction,
        headway.headway_time,
        headway.benchmark_headway_time,
    )


class HeadwayIndex:
    """
    Headways per stop, keyed by stop id.

    Stops are iterated in the order they were registered, which is the order
    they appear in the line's Path. Each stop's headways are kept sorted
    ascending by departure time.
    """

    def __init__(self):
        self._stops: Dict[str, Stop] = {}
        self._headways: Dict[str, Tuple[Headway, ...]] = {}
        self._lock = threading.Lock()

    def register(self, stop: Stop) -> None:
        """Add a stop with no headways. A stop already present keeps its position."""
        with self._lock:
            if stop.id not in self._stops:
                self._stops[stop.id] = stop
                self._headways[stop.id] = ()

    def merge(self, stop: Stop, batch: Iterable[Headway]) -> None:
        """
        Append a batch of headways to a stop's entry and re-sort it.

        The result is the same whatever order batches arrive in.
        """
        batch = list(batch)
        with self._lock:
            if stop.id not in self._stops:
                self._stops[stop.id] = stop
            combined = list(self._headways.get(stop.id, ())) + batch
            combined.sort(key=_headway_sort_key)
            self._headways[stop.id] = tuple(combined)
        logger.debug(f"Merged {len(batch)} headways into stop {stop.id}")

    def series(self, stop_id: str) -> Tuple[Headway, ...]:
        """Headways of a stop, empty for unknown stops."""
        return self._headways.get(stop_id, ())

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        return self._stops.get(stop_id)

    @property
    def stops(self) -> Tuple[Stop, ...]:
        return tuple(self._stops.values())

    def items(self) -> Iterator[Tuple[Stop, Tuple[Headway, ...]]]:
        for stop_id, stop in list(self._stops.items()):
            yield stop, self._headways[stop_id]

    def __contains__(self, stop_id: object) -> bool:
        return stop_id in self._stops

    def __len__(self) -> int:
        return len(self._stops)


def _fetch_batch(
    fetch_headways_for: HeadwayFetcher, stop_id: str, from_time: int, to_time: int
) -> List[Headway]:
    # Drain lazy results in the worker so failures surface through the future
    return list(fetch_headways_for(stop_id, from_time, to_time) or [])


def build_index(
    path_stops: Sequence[Stop],
    fetch_headways_for: HeadwayFetcher,
    from_time: int,
    to_time: int,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> HeadwayIndex:
    """
    Fetch headways for every stop of a line and index them by stop.

    Fetches run concurrently; each completed batch is merged as it arrives.
    A fetch that fails is logged and leaves that stop with no headways.

    Args:
        path_stops: Stops in line order. Repeated stop ids are fetched once.
        fetch_headways_for: Called as fetch_headways_for(stop_id, from_time, to_time).
        from_time: Window start, Unix timestamp.
        to_time: Window end, Unix timestamp.
        max_workers: Maximum number of concurrent fetches.

    Returns:
        HeadwayIndex with one entry per distinct stop.
    """
    index = HeadwayIndex()
    for stop in path_stops:
        index.register(stop)

    stops = index.stops
    if not stops:
        return index

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(stops)))) as executor:
        futures = {
            executor.submit(_fetch_batch, fetch_headways_for, stop.id, from_time, to_time): stop
            for stop in stops
        }
        for future in as_completed(futures):
            stop = futures[future]
            try:
                batch = future.result()
            except Exception as e:
                logger.warning(f"Failed to fetch headways for stop {stop.id}: {e}")
                continue
            index.merge(stop, batch)

    total = sum(len(headways) for _, headways in index.items())
    logger.info(f"Indexed {total} headways across {len(index)} stops")
    return index


def lateness_series(index: HeadwayIndex, stop_id: str) -> Tuple[float, ...]:
    """Lateness of each headway at a stop, in departure order."""
    return tuple(headway.lateness for headway in index.series(stop_id))


def line_latenesses(index: HeadwayIndex) -> Tuple[float, ...]:
    """Every lateness on the line, stop by stop in line order."""
    latenesses: List[float] = []
    for _, headways in index.items():
        latenesses.extend(headway.lateness for headway in headways)
    return tuple(latenesses)


def departure_series(index: HeadwayIndex, stop_id: str) -> Tuple[datetime, ...]:
    return tuple(
        datetime.fromtimestamp(headway.current_departure, tz=timezone.utc)
        for headway in index.series(stop_id)
    )


def summarize(latenesses: Iterable[float]) -> Optional[LatenessSummary]:
    """
    Summarize lateness values.

    Returns:
        LatenessSummary, or None when there are no values.
    """
    values = list(latenesses)
    if not values:
        return None

    return LatenessSummary(
        minimum=min(values),
        maximum=max(values),
        average=sum(values) / len(values),
        count=len(values),
    )


def line_wide_extreme(index: HeadwayIndex, pick_min: bool) -> Optional[LineExtreme]:
    """
    Find the earliest (pick_min) or latest lateness on the whole line.

    When several stops share the extreme value, the first stop in line order wins.

    Returns:
        LineExtreme, or None if no stop has any headways.
    """
    values = line_latenesses(index)
    if not values:
        return None

    target = min(values) if pick_min else max(values)
    for stop, headways in index.items():
        if any(headway.lateness == target for headway in headways):
            return LineExtreme(stop=stop, value=target)
    return None


def _early_or_late(lateness: float) -> str:
    if lateness == 0:
        return "on time"
    elif lateness < 0:
        return "early"
    else:
        return "late"


def _format_seconds(s: float) -> str:
    hours = math.floor(s / 3600)
    minutes = math.floor((s - hours * 3600) / 60)
    # Half-up, not Python's round-half-to-even
    seconds = math.floor(s - hours * 3600 - minutes * 60 + 0.5)
    return f"{hours}h:{minutes}m:{seconds}s"


def format_lateness(value: float) -> str:
    """
    Render a lateness, e.g. "0h:1m:15s (early)" for -75.

    Hours and minutes are truncated, seconds rounded.
    """
    return f"{_format_seconds(abs(value))} ({_early_or_late(value)})"


def focused_stop(hovered: Optional[Stop], selected: Optional[Stop]) -> Optional[Stop]:
    """The stop of interest: hovered, else selected."""
    if hovered is not None:
        return hovered
    return selected


def lateness_frame(index: HeadwayIndex, stop_id: str) -> pd.DataFrame:
    """
    Lateness of a stop over time, for charting.

    Returns:
        DataFrame with columns departure (UTC), date (YYYY-MM-DD) and lateness
        (seconds), one row per headway in departure order. Empty when the stop
        has no headways.
    """
    headways = index.series(stop_id)
    if not headways:
        return pd.DataFrame(columns=LATENESS_FRAME_COLUMNS)

    df = pd.DataFrame({
        "departure": pd.to_datetime(
            [h.current_departure for h in headways], unit="s", utc=True
        ),
        "lateness": [h.lateness for h in headways],
    })
    df["date"] = df["departure"].dt.strftime("%Y-%m-%d")
    return df[LATENESS_FRAME_COLUMNS]


def summary_frame(index: HeadwayIndex) -> pd.DataFrame:
    """One row per stop with data, in line order."""
    records = []
    for stop, headways in index.items():
        summary = summarize(h.lateness for h in headways)
        if summary is None:
            continue
        records.append({
            "stop_id": stop.id,
            "name": stop.name,
            "minimum": summary.minimum,
            "maximum": summary.maximum,
            "average": summary.average,
            "count": summary.count,
        })

    if not records:
        return pd.DataFrame(columns=SUMMARY_FRAME_COLUMNS)
    return pd.DataFrame(records, columns=SUMMARY_FRAME_COLUMNS)
