"""
Panoptic Tools Package

Mask engine of an interactive panoptic segmentation editor: a raster of
(instance, class) identities with contour extraction, polygon and brush
painting, locks and display colors.
"""

__version__ = "0.1.0"
__author__ = "panoptic_tools"

from .identity import Identity, BACKGROUND, encode, decode, fuse, unfuse, is_background
from .errors import (MaskError, OutOfBoundsError, SizeMismatchError, InvalidRangeError,
                     InvalidGeometryError, ExhaustedError)
from .core import MaskBuffer, ClassInfo
from .contours import Blob, Contour, extract_blobs
from .painter import FillMode, paint_polygon, paint_stamp_in_box, filter_small_blobs
from .colors import VisuMode, recompute_colors
from .geometry import polygon_extrema, extrema_union
from .tools import EditionMode, BrushTool, EraseTool, PolygonTool, SelectTool, LockTool, disc_stamp

__all__ = [
    "Identity",
    "BACKGROUND",
    "encode",
    "decode",
    "fuse",
    "unfuse",
    "is_background",
    "MaskError",
    "OutOfBoundsError",
    "SizeMismatchError",
    "InvalidRangeError",
    "InvalidGeometryError",
    "ExhaustedError",
    "MaskBuffer",
    "ClassInfo",
    "Blob",
    "Contour",
    "extract_blobs",
    "FillMode",
    "paint_polygon",
    "paint_stamp_in_box",
    "filter_small_blobs",
    "VisuMode",
    "recompute_colors",
    "polygon_extrema",
    "extrema_union",
    "EditionMode",
    "BrushTool",
    "EraseTool",
    "PolygonTool",
    "SelectTool",
    "LockTool",
    "disc_stamp",
]
