"""
Tests for the identity codec.
"""

import pytest
import numpy as np
from panoptic_tools import (MaskBuffer, Identity, BACKGROUND, encode, decode, fuse, unfuse, is_background,
                            InvalidRangeError)
from panoptic_tools.identity import as_identity, instance_number, from_instance, fuse_raster


class TestIdentityCodec:
    """Test pixel encoding and fused ids."""

    def test_encode_decode(self):
        """Test channel order of a pixel."""
        pixel = encode((7, 1, 5))
        assert pixel == bytes((7, 1, 5, 0))
        assert decode(pixel) == Identity(7, 1, 5)
        assert decode([1, 2, 3, 0]) == (1, 2, 3)

    def test_encode_matches_painted_pixel(self):
        """Test encode gives the bytes a painted pixel exports."""
        buffer = MaskBuffer(2, 1)
        buffer.paint_polygon([(0, 0), (1, 0), (1, 1), (0, 1)], (3, 0, 1))
        assert buffer.export_encoded()[:4] == encode((3, 0, 1))
        assert buffer.export_encoded()[4:] == bytes(4)

    def test_encode_out_of_range(self):
        """Test components must fit in a byte."""
        for bad in [(256, 0, 1), (0, -1, 1), (0, 0, 300)]:
            with pytest.raises(InvalidRangeError):
                encode(bad)
        with pytest.raises(ValueError):
            encode((1, 2))

    def test_fuse(self):
        """Test the fused id layout."""
        assert fuse((1, 0, 5)) == 5 * 65536 + 1
        assert fuse((0, 2, 1)) == 65536 + 512
        assert fuse(BACKGROUND) == 0
        assert unfuse(5 * 65536 + 1) == Identity(1, 0, 5)

    def test_fuse_bijection(self):
        """Test fuse and unfuse are inverse of each other."""
        rng = np.random.default_rng(3)
        for low, high, class_id in rng.integers(0, 256, size=(200, 3)):
            identity = Identity(int(low), int(high), int(class_id))
            assert unfuse(fuse(identity)) == identity
        for key in [0, 1, 255, 256, 65535, 65536, 256 ** 3 - 1]:
            assert fuse(unfuse(key)) == key

    def test_unfuse_out_of_range(self):
        """Test keys outside 24 bits are rejected."""
        with pytest.raises(InvalidRangeError):
            unfuse(256 ** 3)
        with pytest.raises(InvalidRangeError):
            unfuse(-1)

    def test_background(self):
        """Test background detection."""
        assert is_background((0, 0, 0))
        assert not is_background((0, 0, 1))
        assert not is_background((1, 0, 0))

    def test_instance_numbers(self):
        """Test 16-bit instance numbers."""
        assert instance_number((4, 1, 2)) == 260
        assert from_instance(260, 2) == Identity(4, 1, 2)
        with pytest.raises(InvalidRangeError):
            from_instance(65536, 2)

    def test_as_identity(self):
        """Test normalization of identity-like values."""
        assert as_identity(np.array([1, 2, 3], dtype=np.uint8)) == Identity(1, 2, 3)
        with pytest.raises(InvalidRangeError):
            as_identity("abc")

    def test_fuse_raster(self):
        """Test fused ids of a whole raster match fuse()."""
        raster = np.array([[[1, 0, 5, 255], [0, 2, 1, 0]]], dtype=np.uint8)
        assert fuse_raster(raster).tolist() == [[fuse((1, 0, 5)), fuse((0, 2, 1))]]


if __name__ == "__main__":
    pytest.main([__file__])
