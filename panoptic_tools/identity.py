"""
Identity codec: per-pixel (instance, class) tags and their integer keys.

A pixel stores ``[instance_low, instance_high, class_id, reserved]``.
The fused id ``class_id * 65536 + instance_high * 256 + instance_low`` is
the key used in the known/locked id sets.
"""

from typing import NamedTuple, Sequence, Union

import numpy as np

from .config import RESERVED_VALUE
from .errors import InvalidRangeError

MAX_FUSED_ID = 256 ** 3 - 1


class Identity(NamedTuple):
    """(instance_low, instance_high, class_id) tag of a pixel."""

    low: int
    high: int
    class_id: int


BACKGROUND = Identity(0, 0, 0)

IdentityLike = Union[Identity, Sequence[int]]


def as_identity(value: IdentityLike) -> Identity:
    """Validate a 3-sequence of bytes and return it as an Identity."""
    try:
        low, high, class_id = (int(v) for v in value)
    except (TypeError, ValueError):
        raise InvalidRangeError(f"Identity must be three integers, got {value!r}")
    for component in (low, high, class_id):
        if not 0 <= component <= 255:
            raise InvalidRangeError(f"Identity component out of byte range: {value!r}")
    return Identity(low, high, class_id)


def encode(identity: IdentityLike) -> bytes:
    """Pack an identity into the 4 bytes of a pixel."""
    low, high, class_id = as_identity(identity)
    return bytes((low, high, class_id, RESERVED_VALUE))


def decode(pixel: Union[bytes, Sequence[int], np.ndarray]) -> Identity:
    """Read the identity of a pixel. Any byte pattern is valid."""
    return Identity(int(pixel[0]), int(pixel[1]), int(pixel[2]))


def fuse(identity: IdentityLike) -> int:
    low, high, class_id = as_identity(identity)
    return class_id * 65536 + high * 256 + low


def unfuse(key: int) -> Identity:
    key = int(key)
    if not 0 <= key <= MAX_FUSED_ID:
        raise InvalidRangeError(f"Fused id out of range: {key}")
    return Identity(key & 0xFF, (key >> 8) & 0xFF, key >> 16)


def is_background(identity: IdentityLike) -> bool:
    return tuple(identity) == BACKGROUND


def instance_number(identity: IdentityLike) -> int:
    """16-bit instance number of an identity."""
    identity = as_identity(identity)
    return identity.high * 256 + identity.low


def from_instance(number: int, class_id: int) -> Identity:
    """Build an identity from an instance number and a class."""
    if not 0 <= number <= 65535:
        raise InvalidRangeError(f"Instance number out of range: {number}")
    return as_identity((number % 256, number // 256, class_id))


def fuse_raster(raster: np.ndarray) -> np.ndarray:
    """Fused ids of every pixel of an (h, w, 4) raster, as uint32."""
    channels = raster.astype(np.uint32)
    return (channels[..., 2] << 16) | (channels[..., 1] << 8) | channels[..., 0]
