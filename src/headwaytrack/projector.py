"""Projection of line geometry from latitude/longitude into drawing space."""

import logging
from typing import Iterator, NamedTuple, Optional

from .models import Coordinate, Path, Shape, Stop

logger = logging.getLogger(__name__)

# Drawing canvas edge length, and the margin a renderer leaves around it
CANVAS_SIZE = 400.0
CANVAS_PADDING = 50.0


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_long: float
    max_long: float


def _iter_coordinates(path: Path) -> Iterator[Coordinate]:
    for shape in path.shapes:
        yield from shape.coordinates
    for stop in path.stops:
        yield stop.coordinate


def bounding_box(path: Path) -> Optional[BoundingBox]:
    """
    Compute the bounding box over every shape point and every stop of a path.

    Returns:
        BoundingBox, or None if the path has no coordinates.
    """
    coordinates = list(_iter_coordinates(path))
    if not coordinates:
        return None

    latitudes = [c.latitude for c in coordinates]
    longitudes = [c.longitude for c in coordinates]
    return BoundingBox(
        min_lat=min(latitudes),
        max_lat=max(latitudes),
        min_long=min(longitudes),
        max_long=max(longitudes),
    )


def _normalize_axis(value: float, low: float, high: float) -> float:
    # A zero-width axis has no spread, so everything sits in the middle
    if high == low:
        return 0.5
    return (value - low) / (high - low)


def normalize_coordinate(coordinate: Coordinate, box: BoundingBox) -> Coordinate:
    """
    Map a coordinate into [0, 1] on each axis of the bounding box.

    Each axis is normalized on its own, so the aspect ratio is not preserved:
    a line running north-south is stretched as wide as one running east-west.
    """
    return Coordinate(
        latitude=_normalize_axis(coordinate.latitude, box.min_lat, box.max_lat),
        longitude=_normalize_axis(coordinate.longitude, box.min_long, box.max_long),
    )


def scale_coordinate(coordinate: Coordinate, factor: float) -> Coordinate:
    return Coordinate(
        latitude=coordinate.latitude * factor,
        longitude=coordinate.longitude * factor,
    )


def project(path: Path, canvas_size: float = CANVAS_SIZE) -> Path:
    """
    Project a path into a square drawing canvas.

    Shapes and stops share one bounding box, so stops land on their lines.

    Args:
        path: Path in geographic coordinates.
        canvas_size: Edge length of the canvas.

    Returns:
        New Path whose coordinates all lie in [0, canvas_size]. A path without
        any coordinates projects to an empty Path.
    """
    box = bounding_box(path)
    if box is None:
        logger.debug("Nothing to project, path has no coordinates")
        return Path()

    if box.min_lat == box.max_lat or box.min_long == box.max_long:
        logger.warning(f"Degenerate bounding box {box}, centring the flat axis")

    def to_canvas(coordinate: Coordinate) -> Coordinate:
        return scale_coordinate(normalize_coordinate(coordinate, box), canvas_size)

    shapes = tuple(
        Shape(id=shape.id, coordinates=tuple(to_canvas(c) for c in shape.coordinates))
        for shape in path.shapes
    )
    stops = tuple(
        Stop(id=stop.id, coordinate=to_canvas(stop.coordinate), name=stop.name)
        for stop in path.stops
    )
    return Path(shapes=shapes, stops=stops)


class GeometryProjector:
    """Projects line geometry onto a canvas of a fixed size."""

    def __init__(self, canvas_size: float = CANVAS_SIZE, padding: float = CANVAS_PADDING):
        """
        Initialize the projector.

        Args:
            canvas_size: Edge length of the drawing area.
            padding: Margin around the drawing area. Only used by stage_size.
        """
        self.canvas_size = canvas_size
        self.padding = padding

    @property
    def stage_size(self) -> float:
        """Edge length of the full stage: canvas plus padding, half on each side."""
        return self.canvas_size + self.padding

    def project(self, path: Path) -> Path:
        return project(path, self.canvas_size)
