"""
Exceptions raised by the mask engine.

All of them derive from MaskError, and from the builtin the caller would
expect for the same mistake (bad values are ValueErrors, bad coordinates
are IndexErrors), so ``except ValueError`` keeps working around the tools.
"""


class MaskError(Exception):
    """Base class for every mask engine error."""


class OutOfBoundsError(MaskError, IndexError):
    """A coordinate lies outside the raster."""


class SizeMismatchError(MaskError, ValueError):
    """An imported buffer does not match width * height * 4 bytes."""


class InvalidRangeError(MaskError, ValueError):
    """An identity component does not fit in its byte."""


class InvalidGeometryError(MaskError, ValueError):
    """A shape argument cannot be interpreted (wrong dimensions, NaN vertices...)."""


class ExhaustedError(MaskError, RuntimeError):
    """No instance number is left to allocate."""
