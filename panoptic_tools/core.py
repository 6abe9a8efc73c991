"""
Core data structures: class metadata and the panoptic mask buffer.
"""

import base64
import colorsys
import io
import json
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from . import colors, contours, painter
from .config import DEFAULT_MIN_BLOB_SIZE, DEFAULT_VISU_MODE, MAX_INSTANCE_NUMBER
from .errors import ExhaustedError, OutOfBoundsError, SizeMismatchError
from .identity import (BACKGROUND, Identity, IdentityLike, as_identity, fuse, fuse_raster,
                       instance_number, is_background, unfuse)

logger = logging.getLogger(__name__)


class ClassInfo:
    """A segmentation class: id, name, display color and whether it has instances."""

    def __init__(self, class_id: int, name: Optional[str] = None,
                 color: Tuple[int, int, int] = None, is_instance: bool = True):
        """
        Initialize a class.

        Args:
            class_id: Class value stored in the third pixel channel
            name: Human-readable name (defaults to "class_<id>")
            color: RGB color for visualization (auto-generated if None)
            is_instance: True if pixels of this class carry instance numbers
        """
        self.id = int(class_id)
        self.name = name or f"class_{self.id}"
        self.color = tuple(int(c) for c in color) if color is not None else self._generate_color(self.id)
        self.is_instance = bool(is_instance)

    def _generate_color(self, class_id: int) -> Tuple[int, int, int]:
        """Generate a color based on class ID."""
        hue = (class_id * 37) % 360
        rgb = colorsys.hsv_to_rgb(hue / 360, 0.7, 0.9)
        return tuple(int(c * 255) for c in rgb)

    def to_dict(self) -> Dict:
        """Convert class to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "color": list(self.color),
            "is_instance": self.is_instance,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ClassInfo":
        """Create class from dictionary."""
        return cls(data["id"], data.get("name"), tuple(data["color"]), data.get("is_instance", True))

    @classmethod
    def from_value(cls, class_id: int, value) -> "ClassInfo":
        """
        Build a class from any supported table entry.

        Accepts a ClassInfo, a dict as produced by to_dict, or the compact
        ``[r, g, b, is_instance]`` form.
        """
        if isinstance(value, ClassInfo):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict({"id": class_id, **value})
        r, g, b, is_instance = value
        return cls(class_id, color=(r, g, b), is_instance=bool(is_instance))

    def __repr__(self) -> str:
        return f"ClassInfo({self.id}, {self.name!r}, {self.color}, is_instance={self.is_instance})"


class MaskBuffer:
    """
    Panoptic mask: one (instance, class) identity per pixel.

    The raster is a (height, width, 4) uint8 array with channels
    ``[instance_low, instance_high, class_id, reserved]``. Next to it the
    buffer owns the class table, the fused ids known to be painted and the
    fused ids that are locked against edition.
    """

    def __init__(self, width: int = 0, height: int = 0, class_table: Optional[Mapping] = None,
                 visu_mode: str = DEFAULT_VISU_MODE):
        """
        Initialize an empty mask buffer.

        Args:
            width: Raster width in pixels
            height: Raster height in pixels
            class_table: Optional mapping class_id -> ClassInfo or [r, g, b, is_instance]
            visu_mode: 'semantic' or 'instance' display colors
        """
        self.raster = np.zeros((height, width, 4), dtype=np.uint8)
        self.class_table: Dict[int, ClassInfo] = {}
        self.known_ids = set()
        self.locked_ids = set()
        self.visu_mode = colors.VisuMode(visu_mode)
        self._display: Optional[np.ndarray] = None
        if class_table:
            self.set_class_table(class_table)

    @property
    def width(self) -> int:
        return self.raster.shape[1]

    @property
    def height(self) -> int:
        return self.raster.shape[0]

    # Raster lifecycle

    def initialize(self, raster_bytes, width: int, height: int) -> None:
        """
        Replace the raster with raw pixel bytes.

        Args:
            raster_bytes: width * height * 4 bytes laid out as [low, high, class, reserved]
            width: Raster width
            height: Raster height
        """
        data = np.frombuffer(bytes(raster_bytes), dtype=np.uint8)
        expected = width * height * 4
        if data.size != expected:
            raise SizeMismatchError(f"Expected {expected} bytes for {width}x{height}, got {data.size}")
        self._set_raster(data.reshape(height, width, 4).copy())

    def initialize_array(self, raster: np.ndarray) -> None:
        """Replace the raster with a (height, width, 4) uint8 array."""
        raster = np.asarray(raster)
        if raster.ndim != 3 or raster.shape[2] != 4:
            raise SizeMismatchError(f"Raster must have shape (height, width, 4), got {raster.shape}")
        self._set_raster(raster.astype(np.uint8, copy=True))

    def _set_raster(self, raster: np.ndarray) -> None:
        self.raster = raster
        self.known_ids = {int(k) for k in np.unique(fuse_raster(raster))} - {0}
        self.locked_ids = set()
        self._display = None
        logger.info("Loaded %dx%d mask with %d identities", self.width, self.height, len(self.known_ids))

    def empty(self, width: int, height: int) -> None:
        """Allocate a blank raster and forget known and locked ids."""
        self.raster = np.zeros((height, width, 4), dtype=np.uint8)
        self.known_ids = set()
        self.locked_ids = set()
        self._display = None

    def pixel_identity(self, x: int, y: int) -> Identity:
        """Identity of the pixel at (x, y)."""
        x, y = int(x), int(y)
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise OutOfBoundsError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} mask")
        low, high, class_id = self.raster[y, x, :3]
        return Identity(int(low), int(high), int(class_id))

    # Classes and ids

    def set_class_table(self, table: Mapping) -> None:
        """Replace class metadata. Pixel data is not touched."""
        self.class_table = {int(k): ClassInfo.from_value(int(k), v) for k, v in table.items()}
        self._display = None

    def add_class(self, info: ClassInfo) -> None:
        """Add or replace one class."""
        self.class_table[info.id] = info
        self._display = None

    def is_instance_class(self, class_id: int) -> bool:
        """Classes missing from the table are treated as instantiable."""
        info = self.class_table.get(class_id)
        return info is None or info.is_instance

    def next_instance_id(self, class_id: int) -> Tuple[int, int]:
        """
        Smallest instance number not used by any known or locked identity.

        Returns:
            (instance_low, instance_high); (0, 0) for semantic classes
        """
        if not self.is_instance_class(class_id):
            return 0, 0
        used = {instance_number(unfuse(key)) for key in self.known_ids | self.locked_ids}
        for number in range(MAX_INSTANCE_NUMBER + 1):
            if number not in used:
                return number % 256, number // 256
        raise ExhaustedError("All instance numbers are in use")

    def ids_of_class(self, class_id: int) -> List[int]:
        return sorted(key for key in self.known_ids if unfuse(key).class_id == class_id)

    # Locks

    def is_locked(self, identity: IdentityLike) -> bool:
        return fuse(identity) in self.locked_ids

    def toggle_lock(self, fused_id: int) -> bool:
        """Lock or unlock one identity. Returns True if it is now locked."""
        fused_id = int(fused_id)
        unfuse(fused_id)  # range check
        self._display = None
        if fused_id in self.locked_ids:
            self.locked_ids.discard(fused_id)
            return False
        self.locked_ids.add(fused_id)
        return True

    def lock_all_of_class(self, class_id: int) -> None:
        self.locked_ids.update(self.ids_of_class(class_id))
        self._display = None

    def unlock_all_of_class(self, class_id: int) -> None:
        self.locked_ids.difference_update(
            [key for key in self.locked_ids if unfuse(key).class_id == class_id])
        self._display = None

    def toggle_class_lock(self, class_id: int) -> bool:
        """Unlock the class if any of its ids is locked, lock all of them otherwise."""
        if any(unfuse(key).class_id == class_id for key in self.locked_ids):
            self.unlock_all_of_class(class_id)
            return False
        self.lock_all_of_class(class_id)
        return True

    # Persistence

    def export_encoded(self) -> bytes:
        """Raw raster bytes, [low, high, class, reserved] per pixel."""
        return self.raster.tobytes()

    def import_encoded(self, raster_bytes) -> None:
        """Load raw raster bytes with the current size."""
        self.initialize(raster_bytes, self.width, self.height)

    def to_base64(self) -> str:
        """Encode the raster as a base64 PNG (lossless, all four channels)."""
        stream = io.BytesIO()
        Image.fromarray(self.raster).save(stream, format="PNG")
        return base64.b64encode(stream.getvalue()).decode("ascii")

    def from_base64(self, text: str) -> None:
        """Load a raster from a base64 PNG, with or without a data URL prefix."""
        if text.startswith("data:"):
            text = text.split(",", 1)[1]
        image = Image.open(io.BytesIO(base64.b64decode(text)))
        self.initialize_array(np.array(image.convert("RGBA")))

    def save(self, base_path: str) -> None:
        """Save the raster and its class metadata to files."""
        Image.fromarray(self.raster).save(f"{base_path}_mask.png")

        metadata = {
            "width": self.width,
            "height": self.height,
            "classes": {str(k): v.to_dict() for k, v in self.class_table.items()},
            "locked_ids": sorted(self.locked_ids),
            "visu_mode": self.visu_mode.value,
        }
        with open(f"{base_path}_classes.json", "w") as f:
            json.dump(metadata, f, indent=2)
        logger.info("Saved mask to %s_mask.png", base_path)

    def load(self, base_path: str) -> None:
        """Load a raster and its class metadata saved by save()."""
        try:
            with open(f"{base_path}_classes.json", "r") as f:
                metadata = json.load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Classes file {base_path}_classes.json not found")

        self.initialize_array(np.array(Image.open(f"{base_path}_mask.png").convert("RGBA")))
        self.set_class_table({int(k): ClassInfo.from_dict(v) for k, v in metadata["classes"].items()})
        self.locked_ids = {int(k) for k in metadata.get("locked_ids", [])}
        self.visu_mode = colors.VisuMode(metadata.get("visu_mode", DEFAULT_VISU_MODE))

    # Edition

    def get_blobs(self, identity: IdentityLike, extrema: Optional[Sequence[float]] = None) -> List[contours.Blob]:
        """Blobs of an identity, optionally limited to a box."""
        return contours.extract_blobs(self, identity, extrema)

    def paint_polygon(self, vertices, identity: IdentityLike,
                      fill_mode: Union[painter.FillMode, str] = painter.FillMode.ADD) -> int:
        return painter.paint_polygon(self, vertices, identity, fill_mode)

    def paint_stamp_in_box(self, stamp, box: Sequence[float], identity: IdentityLike,
                           fill_mode: Union[painter.FillMode, str] = painter.FillMode.ADD) -> int:
        return painter.paint_stamp_in_box(self, stamp, box, identity, fill_mode)

    def filter_small_blobs(self, identity: IdentityLike, min_pixel_count: int = DEFAULT_MIN_BLOB_SIZE) -> int:
        return painter.filter_small_blobs(self, identity, min_pixel_count)

    def filter_all_small_blobs(self, min_pixel_count: int = DEFAULT_MIN_BLOB_SIZE) -> int:
        return painter.filter_all_small_blobs(self, min_pixel_count)

    def replace_identity(self, old: IdentityLike, new: IdentityLike) -> int:
        """
        Rewrite every pixel of one identity with another.

        Pixels of a locked identity are left untouched. Otherwise the old
        identity has no pixel left and is dropped from known_ids.

        Returns:
            Number of pixels rewritten
        """
        old, new = as_identity(old), as_identity(new)
        if old == new:
            return 0
        if self.is_locked(old):
            logger.warning("Identity %s is locked, not replacing it", tuple(old))
            return 0

        matches = fuse_raster(self.raster) == fuse(old)
        count = int(np.count_nonzero(matches))
        if count:
            self.raster[matches, :3] = new
            if not is_background(new):
                self.known_ids.add(fuse(new))
            self._display = None
        self.known_ids.discard(fuse(old))
        return count

    def reassign_class(self, identity: IdentityLike, new_class: int) -> Identity:
        """
        Move every pixel of an identity to another class.

        Instance numbers are kept between instantiable classes, dropped when
        the new class is semantic, and freshly allocated when a semantic
        region becomes instantiable.

        Returns:
            The new identity
        """
        identity = as_identity(identity)
        if is_background(identity):
            return BACKGROUND
        low, high = identity.low, identity.high
        if not self.is_instance_class(new_class):
            low, high = 0, 0
        elif not self.is_instance_class(identity.class_id):
            low, high = self.next_instance_id(new_class)
        new_identity = as_identity((low, high, new_class))
        self.replace_identity(identity, new_identity)
        return new_identity

    # Display

    def set_visu_mode(self, mode: str) -> None:
        self.visu_mode = colors.VisuMode(mode)
        self._display = None

    def recompute_colors(self) -> np.ndarray:
        """Rebuild the display raster from identities, class table and locks."""
        self._display = colors.recompute_colors(self, self.visu_mode)
        return self._display

    def get_display_raster(self) -> np.ndarray:
        """
        RGBA display raster.

        Bulk changes (loading, class table, locks, visualization mode,
        replacements) refresh it on the next call. Single paints do not:
        call recompute_colors() once a stroke is committed.
        """
        if self._display is None or self._display.shape[:2] != self.raster.shape[:2]:
            return self.recompute_colors()
        return self._display
