#!/usr/bin/env python3
"""
Example usage of panoptic tools: painting instances, extracting contours,
locking, filtering and saving a panoptic mask.
"""

import os
import tempfile

import matplotlib.pyplot as plt
import numpy as np

from panoptic_tools import (MaskBuffer, ClassInfo, BrushTool, EraseTool, PolygonTool, LockTool,
                            EditionMode, fuse, unfuse)
from panoptic_tools.config import configure_logging


def create_demo_image():
    """Create a simple demo image for testing."""
    image = np.ones((200, 300, 3), dtype=np.uint8) * 255

    image[50:100, 50:150] = [255, 0, 0]
    image[100:150, 150:250] = [0, 255, 0]
    image[120:190, 20:120] = [180, 180, 180]

    return image


def create_buffer(height, width):
    """Mask buffer with two instance classes and one semantic class."""
    return MaskBuffer(width, height, class_table={
        1: ClassInfo(1, "car", (255, 100, 100), is_instance=True),
        2: ClassInfo(2, "person", (100, 100, 255), is_instance=True),
        3: ClassInfo(3, "road", (150, 150, 150), is_instance=False),
    })


def demo_basic_usage():
    """Demonstrate painting and contour extraction."""
    print("=== Basic Panoptic Tools Demo ===")

    image = create_demo_image()
    height, width = image.shape[:2]
    buffer = create_buffer(height, width)
    print(f"Created mask buffer of {buffer.width}x{buffer.height}")

    # Two car instances drawn with the polygon tool
    polygon = PolygonTool(buffer, target_class=1)
    polygon.apply_rectangle((50, 50), (150, 100))
    first_car = polygon.selected_id
    polygon.apply([(160, 100), (250, 100), (250, 150), (200, 160), (150, 150)])
    second_car = polygon.selected_id
    print(f"Painted cars {tuple(first_car)} and {tuple(second_car)}")

    # Road is semantic: every stroke goes to the same identity
    road = PolygonTool(buffer, target_class=3)
    road.apply_rectangle((20, 120), (120, 190))
    road.apply_rectangle((0, 190), (300, 200))
    print(f"Road has {len(road.blobs)} blob(s)")

    # Brush a person, then extend it
    brush = BrushTool(buffer, radius=6, target_class=2)
    brush.apply([(270, 20), (275, 40), (280, 60)])
    brush.edition_mode = EditionMode.ADD_TO_INSTANCE
    brush.apply([(280, 60), (290, 75)])
    person = brush.selected_id
    print(f"Person {tuple(person)} has {sum(b.pixel_count for b in brush.blobs)} pixels")

    # Erase a hole in the first car
    eraser = EraseTool(buffer, radius=8)
    eraser.select(first_car)
    eraser.apply_single_point(100, 75)
    holes = sum(len(blob.holes) for blob in eraser.blobs)
    print(f"First car now has {holes} hole(s)")

    # Lock the road, then try to paint over it
    LockTool(buffer, "class").apply(30, 130)
    written = buffer.paint_polygon([(10, 110), (60, 110), (60, 160), (10, 160)], second_car)
    print(f"Painted {written} pixels around the locked road")

    # Specks are filtered out
    buffer.paint_polygon([(5, 5), (8, 5), (8, 7), (5, 7)], person)
    removed = buffer.filter_small_blobs(person, 10)
    print(f"Removed {removed} small blob(s) of the person")

    buffer.recompute_colors()
    print(f"Known ids: {sorted(buffer.known_ids)}")
    return buffer, image


def demo_save_load():
    """Demonstrate saving and loading functionality."""
    print("\n=== Save/Load Demo ===")

    buffer = create_buffer(50, 80)
    BrushTool(buffer, radius=4, target_class=1).apply([(20, 25), (25, 30), (30, 35)])
    buffer.toggle_lock(fuse((0, 0, 1)))

    with tempfile.TemporaryDirectory() as temp_dir:
        base_path = os.path.join(temp_dir, "frame_0001")
        buffer.save(base_path)
        print(f"Saved mask to {temp_dir}")

        loaded = MaskBuffer()
        loaded.load(base_path)
        print(f"Loaded mask of {loaded.width}x{loaded.height} with {len(loaded.class_table)} classes")
        print(f"Masks are identical after save/load: {np.array_equal(buffer.raster, loaded.raster)}")
        print(f"Locks are identical after save/load: {buffer.locked_ids == loaded.locked_ids}")

    encoded = buffer.to_base64()
    print(f"Base64 PNG is {len(encoded)} characters long")


def create_visualization():
    """Create a visualization of the mask engine in action."""
    print("\n=== Creating Visualization ===")

    buffer, image = demo_basic_usage()

    fig, axes = plt.subplots(1, 3, figsize=(15, 5))

    buffer.set_visu_mode("semantic")
    semantic = buffer.get_display_raster()
    buffer.set_visu_mode("instance")
    instance = buffer.get_display_raster()

    for ax, colors, title in [(axes[0], semantic, "Semantic colors"),
                              (axes[1], instance, "Instance colors")]:
        ax.imshow(image)
        ax.imshow(colors, alpha=0.8)
        ax.set_title(title)
        ax.axis('off')

    # Contours of every identity
    axes[2].imshow(instance)
    for key in sorted(buffer.known_ids):
        for blob in buffer.get_blobs(unfuse(key)):
            for contour in blob.contours:
                xs, ys = zip(*(contour.points + contour.points[:1]))
                style = 'k-' if contour.kind == "outer" else 'r--'
                axes[2].plot(xs, ys, style, linewidth=1)
    axes[2].set_title("Blob contours")
    axes[2].axis('off')

    plt.tight_layout()

    viz_path = os.path.join(tempfile.gettempdir(), "panoptic_demo.png")
    plt.savefig(viz_path, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"Visualization saved to: {viz_path}")
    return viz_path


def main():
    """Run all demonstrations."""
    configure_logging("INFO")
    print("Panoptic Tools - Complete Demo")
    print("=" * 50)

    demo_save_load()
    viz_path = create_visualization()

    print("\n" + "=" * 50)
    print("Demo completed successfully!")
    print(f"Check the visualization at: {viz_path}")


if __name__ == "__main__":
    main()
