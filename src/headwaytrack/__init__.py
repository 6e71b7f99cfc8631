"""HeadwayTrack - Transit line geometry projection and headway lateness statistics."""

__version__ = "0.1.0"

from .models import (
    Coordinate,
    Shape,
    Stop,
    Path,
    Headway,
    LatenessSummary,
    LineExtreme,
    LineOverview,
    StopDetails,
)
from .projector import GeometryProjector, project
from .analytics import (
    HeadwayIndex,
    build_index,
    lateness_series,
    summarize,
    line_wide_extreme,
    format_lateness,
)
from .lines import Line
from .line_tracker import LineTracker

__all__ = [
    "LineTracker",
    "GeometryProjector",
    "HeadwayIndex",
    "Line",
    "project",
    "build_index",
    "lateness_series",
    "summarize",
    "line_wide_extreme",
    "format_lateness",
    "Coordinate",
    "Shape",
    "Stop",
    "Path",
    "Headway",
    "LatenessSummary",
    "LineExtreme",
    "LineOverview",
    "StopDetails",
]
