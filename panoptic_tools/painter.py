"""
Raster painter: commits polygons and brush stamps into a MaskBuffer.

Write rule shared by every operation, for each covered pixel:

- ``add``: the pixel takes the target identity unless its identity is locked.
- ``remove``: the pixel goes back to background if it holds the target
  identity and that identity is not locked.

Inputs are validated before the raster is touched and the write itself is
a single masked assignment, so a failing call leaves the buffer unchanged.
"""

import logging
import math
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from .config import DEFAULT_MIN_BLOB_SIZE
from .contours import extract_blobs
from .errors import InvalidGeometryError
from .geometry import as_vertices, clamp_extrema, extrema_union, polygon_extrema
from .identity import BACKGROUND, Identity, IdentityLike, as_identity, fuse, fuse_raster, is_background, unfuse

logger = logging.getLogger(__name__)


class FillMode(str, Enum):
    ADD = "add"
    REMOVE = "remove"


def as_fill_mode(value: Union[FillMode, str]) -> FillMode:
    try:
        return FillMode(value)
    except ValueError:
        raise ValueError(f"Unknown fill mode {value!r}, expected 'add' or 'remove'")


def rasterize_polygon(rings: Iterable[Sequence[Sequence[float]]], box: Sequence[int]) -> np.ndarray:
    """
    Even-odd scanline fill of one or more rings inside a pixel box.

    A pixel is covered when its center lies inside the rings under the
    even-odd rule, so an outer contour together with its holes covers
    exactly the pixels of the blob.

    Args:
        rings: Polygons given as (x, y) vertices in pixel-corner coordinates
        box: (x0, y0, x1, y1) pixel box to fill, already clamped to the raster

    Returns:
        Boolean coverage array of shape (y1 - y0, x1 - x0)
    """
    x0, y0, x1, y1 = box
    height, width = y1 - y0, x1 - x0
    if height <= 0 or width <= 0:
        return np.zeros((max(height, 0), max(width, 0)), dtype=bool)

    # Crossings are accumulated per row at the first pixel whose center
    # lies right of them; a running parity then gives the coverage.
    toggles = np.zeros((height, width + 1), dtype=np.int32)
    centers = (np.arange(y0, y1, dtype=np.float64) + 0.5)[:, None]

    for ring in rings:
        start = as_vertices(ring)
        if len(start) < 3:
            continue
        end = np.roll(start, -1, axis=0)
        sloped = start[:, 1] != end[:, 1]
        start, end = start[sloped], end[sloped]
        if len(start) == 0:
            continue

        low = np.minimum(start[:, 1], end[:, 1])
        high = np.maximum(start[:, 1], end[:, 1])
        hit = (centers >= low) & (centers < high)
        rows, edges = np.nonzero(hit)
        if len(rows) == 0:
            continue

        a, b = start[edges], end[edges]
        t = (centers[rows, 0] - a[:, 1]) / (b[:, 1] - a[:, 1])
        crossing = a[:, 0] + t * (b[:, 0] - a[:, 0])
        cols = np.clip(np.ceil(crossing - 0.5).astype(np.int64) - x0, 0, width)
        np.add.at(toggles, (rows, cols), 1)

    return (np.cumsum(toggles, axis=1)[:, :width] % 2).astype(bool)


def _write_cover(buffer, cover: np.ndarray, box: Sequence[int], identity: Identity, mode: FillMode) -> int:
    """Apply the add/remove rule to the covered pixels of a box."""
    x0, y0, x1, y1 = box
    region = buffer.raster[y0:y1, x0:x1]
    fused = fuse_raster(region)

    writable = cover
    if buffer.locked_ids:
        writable = writable & ~np.isin(fused, list(buffer.locked_ids))
    if mode is FillMode.REMOVE:
        writable = writable & (fused == fuse(identity))

    count = int(np.count_nonzero(writable))
    if count:
        region[writable, :3] = identity if mode is FillMode.ADD else BACKGROUND
        if not is_background(identity):
            buffer.known_ids.add(fuse(identity))
    return count


def paint_polygon(buffer, vertices, identity: IdentityLike, fill_mode: Union[FillMode, str] = FillMode.ADD) -> int:
    """
    Fill a polygon into the buffer.

    Args:
        buffer: MaskBuffer to modify
        vertices: At least three (x, y) vertices in pixel-corner coordinates
        identity: Identity to add or remove
        fill_mode: 'add' or 'remove'

    Returns:
        Number of pixels written. Degenerate polygons write nothing.
    """
    identity = as_identity(identity)
    mode = as_fill_mode(fill_mode)
    points = as_vertices(vertices)
    if len(points) < 3:
        logger.debug("Ignoring polygon with %d vertices", len(points))
        return 0

    box = clamp_extrema(polygon_extrema(points), buffer.width, buffer.height)
    cover = rasterize_polygon([points], box)
    count = _write_cover(buffer, cover, box, identity, mode)
    logger.debug("Polygon %s %s: %d pixel(s) written", mode.value, tuple(identity), count)
    return count


def paint_stamp_in_box(buffer, stamp, box: Sequence[float], identity: IdentityLike,
                       fill_mode: Union[FillMode, str] = FillMode.ADD) -> int:
    """
    Apply a binary stamp (typically a brush disc) placed on a box.

    Args:
        buffer: MaskBuffer to modify
        stamp: 2D array, non-zero cells are painted
        box: [x_min, y_min, x_max, y_max] of the stamp; its size must match the stamp
        identity: Identity to add or remove
        fill_mode: 'add' or 'remove'

    Returns:
        Number of pixels written
    """
    identity = as_identity(identity)
    mode = as_fill_mode(fill_mode)
    stamp = np.asarray(stamp)
    if stamp.ndim != 2:
        raise InvalidGeometryError(f"Stamp must be a 2D matrix, got shape {stamp.shape}")
    try:
        box = np.asarray(box, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidGeometryError(f"Box must be [x_min, y_min, x_max, y_max], got {box!r}")
    if box.shape != (4,) or not np.all(np.isfinite(box)):
        raise InvalidGeometryError(f"Box must be 4 finite numbers [x_min, y_min, x_max, y_max], got {box!r}")

    stamp_height, stamp_width = stamp.shape
    if (round(box[2] - box[0]), round(box[3] - box[1])) != (stamp_width, stamp_height):
        raise InvalidGeometryError(
            f"Box {box.tolist()} does not match stamp of size {stamp_width}x{stamp_height}")

    left, top = int(math.floor(box[0])), int(math.floor(box[1]))
    x0, y0, x1, y1 = clamp_extrema([left, top, left + stamp_width, top + stamp_height],
                                   buffer.width, buffer.height)
    if x1 <= x0 or y1 <= y0:
        return 0

    cover = stamp[y0 - top:y1 - top, x0 - left:x1 - left] != 0
    return _write_cover(buffer, cover, (x0, y0, x1, y1), identity, mode)


def filter_small_blobs(buffer, identity: IdentityLike, min_pixel_count: int = DEFAULT_MIN_BLOB_SIZE) -> int:
    """
    Erase the blobs of an identity smaller than min_pixel_count pixels.

    Each small blob is rasterized from its outer contour and its holes, so
    whatever sits inside the holes (other identities, or a bigger blob of
    the same identity) is left alone. All blobs go in one write. Once no
    pixel of the identity is left, its id is dropped from known_ids so the
    instance number can be allocated again.

    Returns:
        Number of blobs removed
    """
    identity = as_identity(identity)
    if is_background(identity):
        return 0

    blobs = extract_blobs(buffer, identity)
    small = [blob for blob in blobs if blob.pixel_count < min_pixel_count]
    if not small:
        if not blobs:
            buffer.known_ids.discard(fuse(identity))
        return 0

    extrema: Optional[list] = None
    rings = []
    for blob in small:
        extrema = extrema_union(extrema, blob.extrema)
        rings.extend(contour.points for contour in blob.contours)

    box = clamp_extrema(extrema, buffer.width, buffer.height)
    cover = rasterize_polygon(rings, box)
    count = _write_cover(buffer, cover, box, identity, FillMode.REMOVE)
    if not count:
        return 0
    if len(small) == len(blobs):
        buffer.known_ids.discard(fuse(identity))
    logger.info("Removed %d small blob(s) of %s (%d pixel(s))", len(small), tuple(identity), count)
    return len(small)


def filter_all_small_blobs(buffer, min_pixel_count: int = DEFAULT_MIN_BLOB_SIZE) -> int:
    """
    Run filter_small_blobs for every known identity, then forget the known
    ids that no longer have any pixel.

    Returns:
        Number of blobs removed
    """
    removed = sum(filter_small_blobs(buffer, unfuse(key), min_pixel_count) for key in sorted(buffer.known_ids))
    present = {int(key) for key in np.unique(fuse_raster(buffer.raster))}
    buffer.known_ids &= present
    return removed
