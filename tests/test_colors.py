"""
Tests for display color computation.
"""

import pytest
import numpy as np
from panoptic_tools import MaskBuffer, VisuMode, fuse, recompute_colors
from panoptic_tools.colors import instance_color
from panoptic_tools.config import FALLBACK_COLOR


@pytest.fixture
def buffer():
    buffer = MaskBuffer(6, 2, class_table={
        1: (255, 0, 0, 1),
        2: (0, 255, 0, 0),
    })
    buffer.raster[0, 0, :3] = (0, 0, 1)
    buffer.raster[0, 1, :3] = (1, 0, 1)
    buffer.raster[0, 2, :3] = (0, 0, 2)
    buffer.raster[0, 3, :3] = (3, 0, 9)
    buffer.known_ids = {fuse((0, 0, 1)), fuse((1, 0, 1)), fuse((0, 0, 2)), fuse((3, 0, 9))}
    return buffer


class TestRecomputeColors:
    """Test the RGBA display raster."""

    def test_semantic(self, buffer):
        """Test class colors and transparent background."""
        display = recompute_colors(buffer, "semantic")
        assert display.shape == (2, 6, 4)
        assert display.dtype == np.uint8
        assert display[0, 0].tolist() == [255, 0, 0, 255]
        assert display[0, 1].tolist() == [255, 0, 0, 255]
        assert display[0, 2].tolist() == [0, 255, 0, 255]
        assert display[1, 0].tolist() == [0, 0, 0, 0]

    def test_instance(self, buffer):
        """Test instances get their own colors, semantic classes keep theirs."""
        display = recompute_colors(buffer, VisuMode.INSTANCE)
        assert display[0, 0].tolist() != display[0, 1].tolist()
        assert tuple(display[0, 1, :3]) == instance_color(fuse((1, 0, 1)), (255, 0, 0))
        assert display[0, 2].tolist() == [0, 255, 0, 255]

    def test_unknown_class_fallback(self, buffer):
        """Test classes missing from the table use the fallback color."""
        display = recompute_colors(buffer, "semantic")
        assert tuple(display[0, 3, :3]) == FALLBACK_COLOR

    def test_lock_tint(self, buffer):
        """Test locked identities are drawn lighter."""
        plain = recompute_colors(buffer, "semantic")
        buffer.toggle_lock(fuse((0, 0, 2)))
        tinted = recompute_colors(buffer, "semantic")

        assert tinted[0, 2].tolist() != plain[0, 2].tolist()
        assert (tinted[0, 2, :3] >= plain[0, 2, :3]).all()
        assert tinted[0, 2, 3] == 255
        assert tinted[0, 0].tolist() == plain[0, 0].tolist()

    def test_identities_unchanged(self, buffer):
        """Test rendering never writes into the identity raster."""
        before = buffer.raster.copy()
        recompute_colors(buffer, "instance")
        assert np.array_equal(buffer.raster, before)

    def test_invalid_mode(self, buffer):
        """Test an unknown visualization mode is rejected."""
        with pytest.raises(ValueError):
            recompute_colors(buffer, "depth")


class TestDisplayCache:
    """Test when the buffer refreshes its display raster."""

    def test_paint_needs_recompute(self, buffer):
        """Test paints leave the cached display stale until recompute_colors."""
        first = buffer.get_display_raster()
        buffer.paint_polygon([(4, 0), (6, 0), (6, 2), (4, 2)], (0, 0, 2))

        assert buffer.get_display_raster()[1, 5, 3] == 0
        assert buffer.recompute_colors()[1, 5].tolist() == [0, 255, 0, 255]
        assert first[1, 5, 3] == 0

    def test_bulk_changes_refresh(self, buffer):
        """Test locks and mode changes refresh the display on the next read."""
        semantic = buffer.get_display_raster().copy()
        buffer.set_visu_mode("instance")
        assert buffer.get_display_raster()[0, 0].tolist() != semantic[0, 0].tolist()

        buffer.set_visu_mode("semantic")
        buffer.toggle_lock(fuse((0, 0, 1)))
        assert buffer.get_display_raster()[0, 0].tolist() != semantic[0, 0].tolist()

    def test_resize_refresh(self, buffer):
        """Test a raster of another size is never served a stale display."""
        buffer.get_display_raster()
        buffer.empty(3, 3)
        assert buffer.get_display_raster().shape == (3, 3, 4)


if __name__ == "__main__":
    pytest.main([__file__])
