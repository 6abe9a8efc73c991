"""
Tests for blob and contour extraction.
"""

import pytest
import numpy as np
from panoptic_tools import MaskBuffer, extract_blobs
from panoptic_tools.contours import OUTER, HOLE, trace_boundaries
from panoptic_tools.geometry import signed_area
from panoptic_tools.painter import rasterize_polygon

ID = (1, 0, 5)


def buffer_from_mask(mask, identity=ID):
    """Buffer whose True pixels hold the identity."""
    mask = np.asarray(mask, dtype=bool)
    buffer = MaskBuffer(mask.shape[1], mask.shape[0])
    buffer.raster[mask, :3] = identity
    return buffer


class TestExtraction:
    """Test extract_blobs on hand-built rasters."""

    def test_square(self):
        """Test a 2x2 square gives one blob with a 4-vertex outer contour."""
        buffer = MaskBuffer(4, 4)
        buffer.paint_polygon([(1, 1), (3, 1), (3, 3), (1, 3)], ID)

        blobs = buffer.get_blobs(ID)
        assert len(blobs) == 1
        assert blobs[0].pixel_count == 4
        assert len(blobs[0].contours) == 1
        assert blobs[0].contours[0].kind == OUTER
        assert blobs[0].contours[0].points == [(1, 1), (3, 1), (3, 3), (1, 3)]
        assert blobs[0].extrema == [1, 1, 3, 3]

    def test_background_and_missing(self):
        """Test background queries and absent identities give no blob."""
        buffer = MaskBuffer(4, 4)
        assert buffer.get_blobs((0, 0, 0)) == []
        assert buffer.get_blobs(ID) == []
        assert extract_blobs(buffer, ID, [10, 10, 20, 20]) == []

    def test_collinear_points_merged(self):
        """Test straight runs of boundary produce only corner vertices."""
        mask = np.zeros((6, 8), dtype=bool)
        mask[1:5, 1:7] = True
        mask[1:3, 4:7] = False
        blobs = buffer_from_mask(mask).get_blobs(ID)

        assert len(blobs) == 1
        assert blobs[0].pixel_count == 18
        assert blobs[0].contours[0].points == [(1, 1), (4, 1), (4, 3), (7, 3), (7, 5), (1, 5)]

    def test_hole(self):
        """Test a ring gives an outer contour and a hole of opposite winding."""
        mask = np.zeros((5, 5), dtype=bool)
        mask[1:4, 1:4] = True
        mask[2, 2] = False
        blobs = buffer_from_mask(mask).get_blobs(ID)

        assert len(blobs) == 1
        blob = blobs[0]
        assert blob.pixel_count == 8
        assert [c.kind for c in blob.contours] == [OUTER, HOLE]
        assert blob.outer.points == [(1, 1), (4, 1), (4, 4), (1, 4)]
        assert blob.holes[0].points == [(2, 3), (3, 3), (3, 2), (2, 2)]
        assert signed_area(blob.outer.points) > 0
        assert signed_area(blob.holes[0].points) < 0

    def test_island_in_hole(self):
        """Test a blob sitting in the hole of another keeps the hole out of its own contours."""
        mask = np.zeros((7, 7), dtype=bool)
        mask[1:6, 1:6] = True
        mask[2:5, 2:5] = False
        mask[3, 3] = True
        blobs = buffer_from_mask(mask).get_blobs(ID)

        assert [b.pixel_count for b in blobs] == [16, 1]
        ring, island = blobs
        assert len(ring.holes) == 1
        assert ring.holes[0].area == 9
        assert island.holes == []
        assert island.outer.points == [(3, 3), (4, 3), (4, 4), (3, 4)]

    def test_diagonal_pixels_are_separate(self):
        """Test diagonal neighbours form two blobs (4-connectivity)."""
        mask = np.array([[1, 0], [0, 1]], dtype=bool)
        blobs = buffer_from_mask(mask).get_blobs(ID)

        assert [b.pixel_count for b in blobs] == [1, 1]
        assert blobs[0].outer.points == [(0, 0), (1, 0), (1, 1), (0, 1)]
        assert blobs[1].outer.points == [(1, 1), (2, 1), (2, 2), (1, 2)]

    def test_other_identities_ignored(self):
        """Test regions are split by identity, not by class or color."""
        buffer = MaskBuffer(6, 2)
        buffer.raster[:, 0:2, :3] = (1, 0, 5)
        buffer.raster[:, 2:4, :3] = (2, 0, 5)
        buffer.raster[:, 4:6, :3] = (1, 0, 5)

        blobs = buffer.get_blobs((1, 0, 5))
        assert len(blobs) == 2
        assert [b.outer.extrema for b in blobs] == [[0, 0, 2, 2], [4, 0, 6, 2]]


class TestScopedExtraction:
    """Test extraction limited to a box."""

    def test_box_excludes_outside_blobs(self):
        """Test only blobs inside the box are returned."""
        mask = np.zeros((10, 10), dtype=bool)
        mask[2:5, 1:3] = True
        mask[2:5, 6:9] = True
        buffer = buffer_from_mask(mask)

        assert len(buffer.get_blobs(ID)) == 2
        scoped = buffer.get_blobs(ID, [0, 0, 5, 10])
        assert len(scoped) == 1
        assert scoped[0].pixel_count == 6

    def test_box_clips_contour(self):
        """Test a region crossing the box is traced along the box edge."""
        mask = np.zeros((10, 10), dtype=bool)
        mask[2:8, 2:8] = True
        blobs = buffer_from_mask(mask).get_blobs(ID, [0, 0, 5, 10])

        assert len(blobs) == 1
        assert blobs[0].pixel_count == 18
        assert blobs[0].outer.points == [(2, 2), (5, 2), (5, 8), (2, 8)]

    def test_box_clamped_to_buffer(self):
        """Test boxes larger than the buffer behave like a full scan."""
        mask = np.zeros((4, 4), dtype=bool)
        mask[0:4, 3] = True
        blobs = buffer_from_mask(mask).get_blobs(ID, [-5, -5, 50, 50])

        assert len(blobs) == 1
        assert blobs[0].outer.points == [(3, 0), (4, 0), (4, 4), (3, 4)]


class TestPaintExtractConsistency:
    """Test contours re-rasterize to the pixels they were traced from."""

    def test_polygon_round_trip(self):
        """Test fill, extract and refill cover the same pixels."""
        buffer = MaskBuffer(20, 16)
        written = buffer.paint_polygon([(2, 2), (14, 3.5), (17, 11), (8, 14.2), (1, 9)], ID)
        painted = np.all(buffer.raster[..., :3] == ID, axis=-1)

        blobs = buffer.get_blobs(ID)
        assert len(blobs) >= 1
        assert sum(b.pixel_count for b in blobs) == written

        rings = [c.points for b in blobs for c in b.contours]
        assert np.array_equal(rasterize_polygon(rings, (0, 0, 20, 16)), painted)

        refilled = MaskBuffer(20, 16)
        for blob in blobs:
            refilled.paint_polygon(blob.outer.points, ID)
        assert np.array_equal(refilled.raster, buffer.raster)

    def test_random_mask_round_trip(self):
        """Test contours with holes describe an arbitrary mask exactly."""
        rng = np.random.default_rng(7)
        mask = rng.random((12, 15)) < 0.55
        buffer = buffer_from_mask(mask)

        blobs = buffer.get_blobs(ID)
        assert sum(b.pixel_count for b in blobs) == mask.sum()
        rings = [c.points for b in blobs for c in b.contours]
        assert np.array_equal(rasterize_polygon(rings, (0, 0, 15, 12)), mask)


class TestTraceBoundaries:
    """Test the low level boundary tracer."""

    def test_single_pixel(self):
        """Test one pixel yields one clockwise square."""
        cycles = trace_boundaries(np.array([[True]]))
        assert cycles == [((0, 0), [(0, 0), (1, 0), (1, 1), (0, 1)])]

    def test_empty(self):
        """Test an empty mask has no boundary."""
        assert trace_boundaries(np.zeros((3, 3), dtype=bool)) == []


if __name__ == "__main__":
    pytest.main([__file__])
