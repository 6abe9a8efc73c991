"""
Box and polygon helpers shared by the painter and the contour extractor.

Extrema are ``[x_min, y_min, x_max, y_max]`` boxes in pixel-corner
coordinates: they cover the pixels with ``x_min <= x < x_max`` and
``y_min <= y < y_max``.
"""

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from matplotlib.path import Path

from .errors import InvalidGeometryError

Point = Tuple[float, float]
Extrema = List[int]


def as_vertices(points: Iterable[Sequence[float]]) -> np.ndarray:
    """Convert (x, y) pairs, or objects with x/y attributes, to an (N, 2) float array."""
    try:
        rows = [(p.x, p.y) if hasattr(p, "x") and hasattr(p, "y") else tuple(p) for p in points]
        vertices = np.asarray(rows, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidGeometryError("Vertices must be (x, y) number pairs")
    if vertices.size == 0:
        return vertices.reshape(0, 2)
    if vertices.ndim != 2 or vertices.shape[1] != 2:
        raise InvalidGeometryError(f"Vertices must be (x, y) pairs, got shape {vertices.shape}")
    if not np.all(np.isfinite(vertices)):
        raise InvalidGeometryError("Vertices must be finite")
    return vertices


def polygon_extrema(points: Iterable[Sequence[float]]) -> Optional[Extrema]:
    """Smallest integer box containing all the points (None for no points)."""
    vertices = as_vertices(points)
    if len(vertices) == 0:
        return None
    x_min, y_min = np.floor(vertices.min(axis=0))
    x_max, y_max = np.ceil(vertices.max(axis=0))
    return [int(x_min), int(y_min), int(x_max), int(y_max)]


def extrema_union(a: Optional[Sequence[int]], b: Optional[Sequence[int]]) -> Optional[Extrema]:
    """Smallest box containing both boxes. None is the neutral element."""
    if a is None:
        return list(b) if b is not None else None
    if b is None:
        return list(a)
    return [min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3])]


def clamp_extrema(extrema: Optional[Sequence[float]], width: int, height: int) -> Tuple[int, int, int, int]:
    """Clamp a box to the raster. Returns (x0, y0, x1, y1), possibly empty."""
    if extrema is None:
        return 0, 0, width, height
    if len(extrema) != 4:
        raise InvalidGeometryError(f"Extrema must be [x_min, y_min, x_max, y_max], got {extrema!r}")
    x0 = max(0, min(width, int(math.floor(extrema[0]))))
    y0 = max(0, min(height, int(math.floor(extrema[1]))))
    x1 = max(x0, min(width, int(math.ceil(extrema[2]))))
    y1 = max(y0, min(height, int(math.ceil(extrema[3]))))
    return x0, y0, x1, y1


def signed_area(points: Sequence[Point]) -> float:
    """Shoelace area. Positive for clockwise polygons on screen (y pointing down)."""
    if len(points) < 3:
        return 0.0
    vertices = np.asarray(points, dtype=np.float64)
    x, y = vertices[:, 0], vertices[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def point_in_polygon(point: Point, points: Sequence[Point]) -> bool:
    return bool(Path(np.asarray(points, dtype=np.float64)).contains_point(point))
