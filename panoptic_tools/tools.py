"""
Editing tools on top of the mask buffer: brush, erase, polygon, select and lock.

Tools turn already-captured pixel coordinates into buffer edits and keep
the contours of the selected identity up to date. Pointer events and
drawing are left to the application.
"""

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
from skimage.draw import disk

from .config import DEFAULT_BRUSH_RADIUS
from .contours import Blob
from .core import MaskBuffer
from .geometry import Extrema, extrema_union, polygon_extrema
from .identity import Identity, IdentityLike, as_identity, fuse, is_background
from .painter import FillMode

logger = logging.getLogger(__name__)


class EditionMode(str, Enum):
    NEW_INSTANCE = "new_instance"
    ADD_TO_INSTANCE = "add_to_instance"
    REMOVE_FROM_INSTANCE = "remove_from_instance"


def disc_stamp(radius: int) -> np.ndarray:
    """Boolean (2r, 2r) disc used as brush footprint."""
    size = 2 * radius
    stamp = np.zeros((size, size), dtype=bool)
    rows, cols = disk((radius - 0.5, radius - 0.5), radius, shape=stamp.shape)
    stamp[rows, cols] = True
    return stamp


class BaseTool(ABC):
    """Base class for all editing tools."""

    def __init__(self, mask_buffer: MaskBuffer, target_class: int = 1):
        """
        Initialize tool with mask buffer.

        Args:
            mask_buffer: MaskBuffer instance to operate on
            target_class: Class painted when creating new instances
        """
        self.mask_buffer = mask_buffer
        self.target_class = target_class
        self.edition_mode = EditionMode.NEW_INSTANCE
        self.selected_id: Optional[Identity] = None
        self.blobs: List[Blob] = []

    @abstractmethod
    def apply(self, *args, **kwargs):
        """Apply the tool operation."""
        pass

    @property
    def fill_mode(self) -> FillMode:
        if self.edition_mode is EditionMode.REMOVE_FROM_INSTANCE:
            return FillMode.REMOVE
        return FillMode.ADD

    def target_identity(self) -> Identity:
        """
        Identity the next edit writes.

        A new instance of target_class in NEW_INSTANCE mode (instance bits
        stay zero for semantic classes), the selected identity otherwise.
        """
        if self.edition_mode is EditionMode.NEW_INSTANCE:
            low, high = self.mask_buffer.next_instance_id(self.target_class)
            return as_identity((low, high, self.target_class))
        if self.selected_id is None:
            raise ValueError("No selected identity to edit")
        return self.selected_id

    def selection_extrema(self) -> Optional[Extrema]:
        extrema = None
        for blob in self.blobs:
            extrema = extrema_union(extrema, blob.extrema)
        return extrema

    def select(self, identity: Optional[IdentityLike]) -> List[Blob]:
        """Select an identity (None or background deselects) and extract its blobs."""
        if identity is None or is_background(identity):
            self.deselect()
            return []
        self.selected_id = as_identity(identity)
        self.blobs = self.mask_buffer.get_blobs(self.selected_id)
        return self.blobs

    def deselect(self) -> None:
        self.selected_id = None
        self.blobs = []

    def _resolve(self, identity: Optional[IdentityLike]) -> Identity:
        return as_identity(identity) if identity is not None else self.target_identity()

    def _refresh_selection(self, identity: Identity, extrema: Optional[Extrema], was_known: bool) -> None:
        """
        Extract the contours of the edited identity after a paint.

        The scan covers the painted box, plus the previous selection when
        the same identity was already selected. Removals and identities
        painted elsewhere before need a full scan.
        """
        if self.fill_mode is FillMode.REMOVE or extrema is None:
            scope = None
        elif identity == self.selected_id:
            scope = extrema_union(extrema, self.selection_extrema())
        elif was_known:
            scope = None
        else:
            scope = extrema
        self.selected_id = identity
        self.blobs = self.mask_buffer.get_blobs(identity, scope)


class BrushTool(BaseTool):
    """Brush tool painting a disc along a stroke."""

    def __init__(self, mask_buffer: MaskBuffer, radius: int = DEFAULT_BRUSH_RADIUS, target_class: int = 1):
        """
        Initialize brush tool.

        Args:
            mask_buffer: MaskBuffer instance
            radius: Brush radius in pixels
            target_class: Class painted when creating new instances
        """
        super().__init__(mask_buffer, target_class)
        self.set_radius(radius)

    def set_radius(self, radius: int) -> None:
        """Set brush radius."""
        self.radius = max(1, int(radius))
        self.stamp = disc_stamp(self.radius)

    def apply(self, points: Sequence[Tuple[float, float]], identity: Optional[IdentityLike] = None) -> Optional[Extrema]:
        """
        Apply a brush stroke.

        The disc is stamped on every point and the band between two
        successive points is filled as a quad, so fast strokes stay solid.

        Args:
            points: (x, y) positions of the stroke
            identity: Identity to paint (resolved from the edition mode if None)

        Returns:
            Box touched by the stroke, or None for an empty stroke
        """
        if not points:
            return None
        identity = self._resolve(identity)
        was_known = fuse(identity) in self.mask_buffer.known_ids
        mode = self.fill_mode
        r = self.radius

        extrema = None
        previous = None
        for x, y in points:
            x, y = int(round(x)), int(round(y))
            box = [x - r, y - r, x + r, y + r]
            self.mask_buffer.paint_stamp_in_box(self.stamp, box, identity, mode)
            extrema = extrema_union(extrema, box)

            if previous is not None and previous != (x, y):
                px, py = previous
                alpha = math.atan2(y - py, x - px)
                dy = math.trunc(-math.cos(alpha) * r)
                dx = math.trunc(math.sin(alpha) * r)
                band = [(px + dx, py + dy), (px - dx, py - dy), (x - dx, y - dy), (x + dx, y + dy)]
                self.mask_buffer.paint_polygon(band, identity, mode)
            previous = (x, y)

        self._refresh_selection(identity, extrema, was_known)
        return extrema

    def apply_single_point(self, x: float, y: float, identity: Optional[IdentityLike] = None) -> Optional[Extrema]:
        """Apply brush at a single point."""
        return self.apply([(x, y)], identity)


class EraseTool(BrushTool):
    """Brush removing pixels from the selected identity."""

    def __init__(self, mask_buffer: MaskBuffer, radius: int = DEFAULT_BRUSH_RADIUS):
        super().__init__(mask_buffer, radius)
        self.edition_mode = EditionMode.REMOVE_FROM_INSTANCE


class PolygonTool(BaseTool):
    """Polygon tool for filled polygonal edits."""

    def apply(self, points: Sequence[Tuple[float, float]], identity: Optional[IdentityLike] = None) -> List[Blob]:
        """
        Fill a polygon and refresh the selection.

        Args:
            points: (x, y) vertices of the polygon
            identity: Identity to paint (resolved from the edition mode if None)

        Returns:
            Blobs of the edited identity
        """
        if len(points) < 3:
            logger.warning("Polygon needs at least 3 points, got %d", len(points))
            return self.blobs
        identity = self._resolve(identity)
        was_known = fuse(identity) in self.mask_buffer.known_ids
        self.mask_buffer.paint_polygon(points, identity, self.fill_mode)
        self._refresh_selection(identity, polygon_extrema(points), was_known)
        return self.blobs

    def apply_rectangle(self, top_left: Tuple[float, float], bottom_right: Tuple[float, float],
                        identity: Optional[IdentityLike] = None) -> List[Blob]:
        """
        Apply rectangle selection.

        Args:
            top_left: (x, y) corner of the rectangle
            bottom_right: (x, y) opposite corner
            identity: Identity to paint
        """
        x1, y1 = top_left
        x2, y2 = bottom_right
        return self.apply([(x1, y1), (x2, y1), (x2, y2), (x1, y2)], identity)


class SelectTool(BaseTool):
    """Selects the identity under the cursor."""

    def apply(self, x: int, y: int) -> Optional[Identity]:
        """Select the region at (x, y). Clicking the background deselects."""
        identity = self.mask_buffer.pixel_identity(x, y)
        self.select(identity)
        return self.selected_id


class LockTool(BaseTool):
    """Toggles locks on the instance or the whole class under the cursor."""

    def __init__(self, mask_buffer: MaskBuffer, lock_type: str = "class"):
        super().__init__(mask_buffer)
        if lock_type not in ("instance", "class"):
            raise ValueError(f"Unknown lock type {lock_type!r}")
        self.lock_type = lock_type

    def apply(self, x: int, y: int) -> Optional[bool]:
        """
        Toggle the lock at (x, y).

        Returns:
            True if locked, False if unlocked, None on background
        """
        identity = self.mask_buffer.pixel_identity(x, y)
        if is_background(identity):
            return None
        if self.lock_type == "instance":
            return self.mask_buffer.toggle_lock(fuse(identity))
        return self.mask_buffer.toggle_class_lock(identity.class_id)
