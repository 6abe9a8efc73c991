"""
Blob extraction: connected regions of one identity and their vector contours.

Contours follow pixel edges, so their vertices are pixel corners
(integer lattice points). Outer contours run clockwise on screen and hole
contours counter-clockwise; see geometry.signed_area.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage

from .geometry import Extrema, clamp_extrema, point_in_polygon, polygon_extrema, signed_area
from .identity import Identity, IdentityLike, as_identity, is_background

logger = logging.getLogger(__name__)

OUTER = "outer"
HOLE = "hole"

# Headings in clockwise order on screen: east, south, west, north.
_DX = (1, 0, -1, 0)
_DY = (0, 1, 0, -1)
# Offset from a lattice vertex to the pixel ahead-left / ahead-right of each heading.
_AHEAD_LEFT = ((0, -1), (0, 0), (-1, 0), (-1, -1))
_AHEAD_RIGHT = ((0, 0), (-1, 0), (-1, -1), (0, -1))


@dataclass
class Contour:
    """One closed boundary of a blob."""

    kind: str
    points: List[Tuple[int, int]]

    @property
    def area(self) -> float:
        return abs(signed_area(self.points))

    @property
    def extrema(self) -> Optional[Extrema]:
        return polygon_extrema(self.points)


@dataclass
class Blob:
    """A 4-connected region of pixels sharing one identity."""

    identity: Identity
    pixel_count: int
    contours: List[Contour] = field(default_factory=list)

    @property
    def outer(self) -> Contour:
        return next(c for c in self.contours if c.kind == OUTER)

    @property
    def holes(self) -> List[Contour]:
        return [c for c in self.contours if c.kind == HOLE]

    @property
    def extrema(self) -> Optional[Extrema]:
        return self.outer.extrema


def _trace_cycle(padded: np.ndarray, seen: np.ndarray, sx: int, sy: int) -> List[Tuple[int, int]]:
    """
    Follow one boundary cycle starting on the top edge of pixel (sx, sy).

    The foreground stays on the right-hand side. At diagonal configurations
    the walk turns right, which keeps diagonal neighbours apart
    (4-connectivity). Only the vertices where the heading changes are
    returned, so collinear edges come out merged.
    """
    x, y, heading = sx, sy, 0
    corners = []
    while True:
        if heading == 0:
            seen[y, x] = True
        x += _DX[heading]
        y += _DY[heading]

        rx, ry = _AHEAD_RIGHT[heading]
        lx, ly = _AHEAD_LEFT[heading]
        if not padded[y + ry, x + rx]:
            new_heading = (heading + 1) % 4
        elif not padded[y + ly, x + lx]:
            new_heading = heading
        else:
            new_heading = (heading + 3) % 4

        if new_heading != heading:
            corners.append((x, y))
        heading = new_heading
        if x == sx and y == sy and heading == 0:
            break

    if corners and corners[-1] == (sx, sy):
        corners.insert(0, corners.pop())
    return corners


def trace_boundaries(mask: np.ndarray) -> List[Tuple[Tuple[int, int], List[Tuple[int, int]]]]:
    """
    Trace every boundary cycle of a boolean mask.

    Returns (start_pixel, corners) pairs in mask coordinates, where
    start_pixel is a foreground pixel lying on the right of the cycle.
    Cycles come in raster order of their first top edge.
    """
    height, width = mask.shape
    padded = np.zeros((height + 2, width + 2), dtype=bool)
    padded[1:-1, 1:-1] = mask
    seen = np.zeros_like(padded)

    cycles = []
    top_edges = np.argwhere(padded[1:, :] & ~padded[:-1, :])
    for row, col in top_edges:
        y, x = int(row) + 1, int(col)
        if seen[y, x]:
            continue
        corners = _trace_cycle(padded, seen, x, y)
        cycles.append(((x - 1, y - 1), [(cx - 1, cy - 1) for cx, cy in corners]))
    return cycles


def extract_blobs(buffer, identity: IdentityLike, extrema: Optional[Sequence[float]] = None) -> List[Blob]:
    """
    Find every blob of the given identity.

    Args:
        buffer: MaskBuffer to read
        identity: Identity to look for; the background yields no blob
        extrema: Optional [x_min, y_min, x_max, y_max] box limiting the scan

    Returns:
        Blobs in raster order of their first pixel. A region crossing the
        scan box is cut along the box and counted inside it only.
    """
    identity = as_identity(identity)
    if is_background(identity):
        return []

    x0, y0, x1, y1 = clamp_extrema(extrema, buffer.width, buffer.height)
    if x1 <= x0 or y1 <= y0:
        return []

    region = buffer.raster[y0:y1, x0:x1, :3]
    mask = np.all(region == np.asarray(identity, dtype=np.uint8), axis=-1)
    if not mask.any():
        return []

    labels, count = ndimage.label(mask)
    pixel_counts = np.bincount(labels.ravel())

    blobs = {}
    holes = []
    for (px, py), corners in trace_boundaries(mask):
        if signed_area(corners) > 0:
            label = int(labels[py, px])
            blobs[label] = Blob(identity, int(pixel_counts[label]), [Contour(OUTER, corners)])
        else:
            holes.append(((px + 0.5, py + 0.5), corners))

    # A hole belongs to the smallest outer contour around the pixel it borders.
    for test_point, corners in holes:
        owners = [b for b in blobs.values() if point_in_polygon(test_point, b.contours[0].points)]
        owner = min(owners, key=lambda b: b.contours[0].area)
        owner.contours.append(Contour(HOLE, corners))

    result = [blobs[label] for label in sorted(blobs)]
    for blob in result:
        for contour in blob.contours:
            contour.points = [(cx + x0, cy + y0) for cx, cy in contour.points]

    logger.debug("Found %d blob(s) of %s in box %s", len(result), tuple(identity), (x0, y0, x1, y1))
    return result
