"""
Display colors of a mask buffer.
"""

import colorsys
from enum import Enum
from typing import Dict, Tuple, Union

import cv2
import numpy as np

from .config import FALLBACK_COLOR, LOCK_TINT_ALPHA, LOCK_TINT_COLOR
from .identity import fuse_raster, unfuse

GOLDEN_RATIO = 0.618033988749895
CLASS_TINT = 0.25


class VisuMode(str, Enum):
    SEMANTIC = "semantic"
    INSTANCE = "instance"


def instance_color(fused_id: int, class_color: Tuple[int, int, int]) -> Tuple[int, int, int]:
    """Distinct color for one instance, pulled slightly towards its class color."""
    hue = (fused_id * GOLDEN_RATIO) % 1.0
    rgb = colorsys.hsv_to_rgb(hue, 0.7, 0.9)
    return tuple(
        int(round((1 - CLASS_TINT) * c * 255 + CLASS_TINT * base))
        for c, base in zip(rgb, class_color)
    )


def _identity_color(fused_id: int, class_table: Dict, mode: VisuMode) -> Tuple[int, int, int]:
    info = class_table.get(unfuse(fused_id).class_id)
    class_color = tuple(info.color) if info is not None else FALLBACK_COLOR
    if mode is VisuMode.INSTANCE and (info is None or info.is_instance):
        return instance_color(fused_id, class_color)
    return class_color


def recompute_colors(buffer, mode: Union[VisuMode, str] = VisuMode.SEMANTIC) -> np.ndarray:
    """
    Build the RGBA display raster of a buffer.

    Colors are computed once per distinct identity and then spread to the
    pixels through a lookup table. Background stays transparent and locked
    identities are blended with the lock tint. Identity data is not modified.

    Args:
        buffer: MaskBuffer to render
        mode: 'semantic' colors every pixel by class, 'instance' gives each
            instance of an instantiable class its own color

    Returns:
        uint8 array of shape (height, width, 4)
    """
    mode = VisuMode(mode)
    height, width = buffer.height, buffer.width
    ids, inverse = np.unique(fuse_raster(buffer.raster).ravel(), return_inverse=True)

    lut = np.zeros((len(ids), 4), dtype=np.uint8)
    for row, key in enumerate(ids):
        if key == 0:
            continue
        lut[row, :3] = _identity_color(int(key), buffer.class_table, mode)
        lut[row, 3] = 255

    locked = np.isin(ids, list(buffer.locked_ids)) if buffer.locked_ids else np.zeros(len(ids), dtype=bool)
    locked &= ids != 0
    if locked.any():
        colors = np.ascontiguousarray(lut[locked, :3])
        tint = np.empty_like(colors)
        tint[:] = LOCK_TINT_COLOR
        lut[locked, :3] = cv2.addWeighted(colors, 1 - LOCK_TINT_ALPHA, tint, LOCK_TINT_ALPHA, 0)

    return lut[inverse].reshape(height, width, 4)
