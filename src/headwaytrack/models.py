"""Data models for transit line geometry and headway performance."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple


def _require(data: Dict[str, Any], key: str) -> Any:
    """Return data[key], raising ValueError when the field is missing."""
    if key not in data or data[key] is None:
        raise ValueError(f"Missing required field '{key}'")
    return data[key]


def _to_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Field '{key}' is not a number: {value!r}")


def _to_int(value: Any, key: str) -> int:
    # Performance feed timestamps arrive as strings, sometimes with a ".0"
    return int(_to_float(value, key))


@dataclass(frozen=True)
class Coordinate:
    """A point, either in geographic degrees or in drawing-space units."""
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinate":
        return cls(
            latitude=_to_float(_require(data, "latitude"), "latitude"),
            longitude=_to_float(_require(data, "longitude"), "longitude"),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Shape:
    """One continuous polyline segment of a route. Point order is the drawing order."""
    id: str
    coordinates: Tuple[Coordinate, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Shape":
        return cls(
            id=str(_require(data, "id")),
            coordinates=tuple(Coordinate.from_dict(c) for c in data.get("coordinates") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "coordinates": [c.to_dict() for c in self.coordinates]}


@dataclass(frozen=True)
class Stop:
    """A station on a line. `id` identifies it; `name` is for display only."""
    id: str
    coordinate: Coordinate
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stop":
        return cls(
            id=str(_require(data, "id")),
            coordinate=Coordinate.from_dict(_require(data, "coordinate")),
            name=str(data.get("name") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "coordinate": self.coordinate.to_dict(), "name": self.name}


@dataclass(frozen=True)
class Path:
    """
    Full geometry of one transit line.

    Either collection may be empty, e.g. when the upstream fetch failed. The
    order of `stops` is the order the line is iterated in for tie-breaking.
    """
    shapes: Tuple[Shape, ...] = ()
    stops: Tuple[Stop, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Path":
        """
        Build a Path from the JSON served by the path endpoints.

        Args:
            data: Dictionary with optional "shapes" and "stops" lists.

        Returns:
            Path object.

        Raises:
            ValueError: If a shape or stop is missing a required field.
        """
        return cls(
            shapes=tuple(Shape.from_dict(s) for s in data.get("shapes") or []),
            stops=tuple(Stop.from_dict(s) for s in data.get("stops") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shapes": [s.to_dict() for s in self.shapes],
            "stops": [s.to_dict() for s in self.stops],
        }

    def is_empty(self) -> bool:
        """True if the path has no coordinates at all."""
        return not self.stops and not any(s.coordinates for s in self.shapes)


@dataclass(frozen=True)
class Headway:
    """One observed gap between consecutive departures at a stop."""
    route_id: str
    prev_route_id: str
    direction: int
    current_departure: int  # Unix timestamp
    previous_departure: int  # Unix timestamp
    headway_time: float  # Seconds
    benchmark_headway_time: float  # Scheduled gap, seconds

    @property
    def lateness(self) -> float:
        """Observed minus scheduled gap. Negative is early, positive is late."""
        return self.headway_time - self.benchmark_headway_time

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Headway":
        """Build a Headway from the camelCase form served by the headways endpoint."""
        return cls(
            route_id=str(_require(data, "routeId")),
            prev_route_id=str(data.get("prevRouteId") or ""),
            direction=_to_int(_require(data, "direction"), "direction"),
            current_departure=_to_int(_require(data, "currentDeparture"), "currentDeparture"),
            previous_departure=_to_int(_require(data, "previousDeparture"), "previousDeparture"),
            headway_time=_to_float(_require(data, "headwayTime"), "headwayTime"),
            benchmark_headway_time=_to_float(
                _require(data, "benchmarkHeadwayTime"), "benchmarkHeadwayTime"
            ),
        )

    @classmethod
    def from_performance_api(cls, record: Dict[str, Any]) -> "Headway":
        """
        Build a Headway from a raw performance feed record.

        The feed sends every value as a string, e.g.
        {"route_id": "Red", "current_dep_dt": "1680000000", "headway_time_sec": "480", ...}
        """
        return cls(
            route_id=str(_require(record, "route_id")),
            prev_route_id=str(record.get("prev_route_id") or ""),
            direction=_to_int(_require(record, "direction"), "direction"),
            current_departure=_to_int(_require(record, "current_dep_dt"), "current_dep_dt"),
            previous_departure=_to_int(_require(record, "previous_dep_dt"), "previous_dep_dt"),
            headway_time=_to_float(_require(record, "headway_time_sec"), "headway_time_sec"),
            benchmark_headway_time=_to_float(
                _require(record, "benchmark_headway_time_sec"), "benchmark_headway_time_sec"
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routeId": self.route_id,
            "prevRouteId": self.prev_route_id,
            "direction": self.direction,
            "currentDeparture": self.current_departure,
            "previousDeparture": self.previous_departure,
            "headwayTime": self.headway_time,
            "benchmarkHeadwayTime": self.benchmark_headway_time,
        }


@dataclass(frozen=True)
class LatenessSummary:
    """Statistics over a non-empty sequence of lateness values (seconds)."""
    minimum: float
    maximum: float
    average: float
    count: int


@dataclass(frozen=True)
class LineExtreme:
    """The most extreme lateness across a line and the stop it occurred at."""
    stop: Stop
    value: float


@dataclass(frozen=True)
class LineOverview:
    """Line-wide lateness texts for one week."""
    intro: str
    earliest: str
    latest: str
    average: str
    earliest_extreme: Optional[LineExtreme] = None
    latest_extreme: Optional[LineExtreme] = None
    summary: Optional[LatenessSummary] = None


@dataclass(frozen=True)
class StopDetails:
    """Lateness details for the stop currently in focus."""
    stop: Optional[Stop]
    summary: Optional[LatenessSummary]
    message: Optional[str] = None

    def rows(self, formatter: Callable[[float], str]) -> List[Tuple[str, str]]:
        """Label/value pairs for a details table. Empty when there is no data."""
        if self.summary is None:
            return []
        return [
            ("Earliest", formatter(self.summary.minimum)),
            ("Latest", formatter(self.summary.maximum)),
            ("Average", formatter(self.summary.average)),
            ("# of Data Points", str(self.summary.count)),
        ]
