"""Main line tracker class."""

import logging
from datetime import date
from typing import List, Optional, Tuple, Union

import pandas as pd

from .analytics import (
    DEFAULT_MAX_WORKERS,
    HeadwayFetcher,
    HeadwayIndex,
    build_index,
    focused_stop,
    format_lateness,
    lateness_frame,
    lateness_series,
    line_latenesses,
    line_wide_extreme,
    summarize,
)
from .lines import Line, line_label, week_window
from .models import LineExtreme, LineOverview, Path, Stop, StopDetails
from .projector import CANVAS_SIZE, project

logger = logging.getLogger(__name__)

NO_FOCUS_MESSAGE = "Click or hover over a station on the map to view data."
NO_STOP_DATA_MESSAGE = "No data found for this stop."
UNKNOWN_STATION = "an unknown station"


class LineTracker:
    """
    Tracks lateness for one transit line over one week.

    This class holds:
    - the line's Path and its projection onto the canvas
    - the headway index for the chosen week
    - the hovered and selected stops, and derives the texts shown for them
    """

    def __init__(
        self,
        line: Union[Line, str],
        path: Optional[Path] = None,
        canvas_size: float = CANVAS_SIZE,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """
        Initialize the tracker.

        Args:
            line: Line being tracked.
            path: Geometry of the line, if already fetched.
            canvas_size: Edge length of the drawing canvas.
            max_workers: Maximum number of concurrent headway fetches.
        """
        self.line = line
        self.path = path
        self.canvas_size = canvas_size
        self.max_workers = max_workers
        self.week_start: Optional[date] = None
        self.index: Optional[HeadwayIndex] = None
        self.hovered_stop: Optional[Stop] = None
        self.selected_stop: Optional[Stop] = None

    def set_line(self, line: Union[Line, str], path: Optional[Path] = None) -> None:
        """Switch to another line, dropping headways and selection."""
        self.line = line
        self.set_path(path)

    def set_path(self, path: Optional[Path]) -> None:
        self.path = path
        self.index = None
        self.hovered_stop = None
        self.selected_stop = None

    def load_headways(self, fetch_headways_for: HeadwayFetcher, week_start: date) -> HeadwayIndex:
        """
        Fetch headways for every stop of the line for one week.

        Args:
            fetch_headways_for: Called as fetch_headways_for(stop_id, from_time, to_time).
            week_start: First day of the week to query.

        Returns:
            The new HeadwayIndex, which replaces any previous one.
        """
        stops = self.path.stops if self.path else ()
        from_time, to_time = week_window(week_start)
        logger.info(f"Loading headways for {line_label(self.line)} from {week_start.isoformat()}")

        self.week_start = week_start
        self.index = build_index(
            stops, fetch_headways_for, from_time, to_time, max_workers=self.max_workers
        )
        return self.index

    def projected_path(self) -> Path:
        """The line's geometry on the canvas. Empty if no path is loaded."""
        if self.path is None:
            return Path()
        return project(self.path, self.canvas_size)

    def hover(self, stop: Optional[Stop]) -> None:
        self.hovered_stop = stop

    def select(self, stop: Optional[Stop]) -> None:
        self.selected_stop = stop

    @property
    def focus(self) -> Optional[Stop]:
        """Hovered stop, else selected stop."""
        return focused_stop(self.hovered_stop, self.selected_stop)

    def overview(self) -> LineOverview:
        """
        Line-wide earliest, latest and average lateness texts.

        Returns:
            LineOverview. With no headways loaded every text is a no-data message.
        """
        index = self.index or HeadwayIndex()
        earliest = line_wide_extreme(index, pick_min=True)
        latest = line_wide_extreme(index, pick_min=False)
        summary = summarize(line_latenesses(index))

        week = self.week_start.isoformat() if self.week_start else "(no week selected)"
        intro = f"For the entire {line_label(self.line)}, in the week starting {week}:"

        if summary is None:
            average = "No data found to calculate average headway with."
        elif summary.average == 0:
            average = "On average, trains arrived right on time!"
        else:
            average = f"On average, trains arrived {format_lateness(summary.average)}."

        return LineOverview(
            intro=intro,
            earliest=self._extreme_text("earliest", earliest),
            latest=self._extreme_text("latest", latest),
            average=average,
            earliest_extreme=earliest,
            latest_extreme=latest,
            summary=summary,
        )

    @staticmethod
    def _extreme_text(kind: str, extreme: Optional[LineExtreme]) -> str:
        """
        Sentence for the earliest or latest arrival on the line.

        Args:
            kind: "earliest" or "latest".
            extreme: Result of line_wide_extreme().
        """
        if extreme is None:
            return f"No data found to calculate the {kind} train with."

        where = extreme.stop.name or UNKNOWN_STATION
        if extreme.value == 0:
            return f"The {kind} train arrival was right on time at {where}!"
        return f"The {kind} train arrival was {format_lateness(extreme.value)} at {where}."

    def details(self) -> StopDetails:
        """Summary of the focused stop, or a message explaining why there is none."""
        stop = self.focus
        if stop is None:
            return StopDetails(stop=None, summary=None, message=NO_FOCUS_MESSAGE)

        summary = None
        if self.index is not None:
            summary = summarize(lateness_series(self.index, stop.id))

        if summary is None:
            logger.debug(f"No headways for stop {stop.id}")
            return StopDetails(stop=stop, summary=None, message=NO_STOP_DATA_MESSAGE)
        return StopDetails(stop=stop, summary=summary)

    def detail_rows(self) -> List[Tuple[str, str]]:
        """Formatted Earliest/Latest/Average/count rows for the focused stop."""
        return self.details().rows(format_lateness)

    def chart_frame(self) -> pd.DataFrame:
        """Lateness over time at the focused stop, see analytics.lateness_frame."""
        stop = self.focus
        index = self.index or HeadwayIndex()
        return lateness_frame(index, stop.id if stop else "")
