"""Rapid transit lines and the weekly query window."""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple, Union

# Length of one headway query window
WEEK_SECONDS = 604800


class Line(Enum):
    """Rapid transit lines that have a drawable path."""
    RED = "Red"
    MATTAPAN = "Mattapan"
    ORANGE = "Orange"
    GREEN_B = "Green-B"
    GREEN_C = "Green-C"
    GREEN_D = "Green-D"
    GREEN_E = "Green-E"
    BLUE = "Blue"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def color(self) -> str:
        return _COLORS[self]


_LABELS = {
    Line.RED: "red line",
    Line.MATTAPAN: "Mattapan line",
    Line.ORANGE: "orange line",
    Line.GREEN_B: "green line (B)",
    Line.GREEN_C: "green line (C)",
    Line.GREEN_D: "green line (D)",
    Line.GREEN_E: "green line (E)",
    Line.BLUE: "blue line",
}

# Mattapan is drawn as part of the red line
_COLORS = {
    Line.RED: "red",
    Line.MATTAPAN: "red",
    Line.ORANGE: "orange",
    Line.GREEN_B: "green",
    Line.GREEN_C: "green",
    Line.GREEN_D: "green",
    Line.GREEN_E: "green",
    Line.BLUE: "blue",
}


def _lookup(line: Union[Line, str]) -> Optional[Line]:
    if isinstance(line, Line):
        return line
    try:
        return Line(line)
    except ValueError:
        return None


def line_label(line: Union[Line, str]) -> str:
    """Human-readable line name, e.g. "green line (B)"."""
    found = _lookup(line)
    return found.label if found else "unknown line"


def line_color(line: Union[Line, str]) -> str:
    found = _lookup(line)
    return found.color if found else "gray"


def previous_monday(today: date) -> date:
    """Most recent Monday on or before `today`."""
    return today - timedelta(days=today.weekday())


def week_window(week_start: date) -> Tuple[int, int]:
    """
    Headway query window covering one week.

    Args:
        week_start: First day of the week. Its midnight UTC starts the window.

    Returns:
        (from_time, to_time) as Unix timestamps.
    """
    start = datetime(week_start.year, week_start.month, week_start.day, tzinfo=timezone.utc)
    from_time = int(start.timestamp())
    return from_time, from_time + WEEK_SECONDS
