"""
Geometry helpers shared by the texture model.

UV coordinates use a bottom-left origin in [0, 1]; pixel coordinates use a
top-left origin. Conversions between the two flip the vertical axis.
"""

from pathlib import Path
from typing import List, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from atlaspack.exceptions import TextureLoadError

UV = Tuple[float, float]
Pixel = Tuple[int, int]
BBox = Tuple[int, int, int, int]


def get_image_size(file_path: Union[str, Path]) -> Tuple[int, int]:
    """
    Read (width, height) of an image without decoding its pixels.

    Raises:
        TextureLoadError: If the file is missing or not a readable image
    """
    try:
        with Image.open(file_path) as img:
            return img.size
    except OSError as e:
        raise TextureLoadError(f"Cannot read image size of {file_path}: {e}") from e


def uv_to_pixel_coords(uv_coords: Sequence[UV], width: int, height: int) -> List[Pixel]:
    """
    Map UV points onto the pixel grid of a width x height image.

    Each result is clamped to [0, dim - 1] so polygons touching u=1 or v=0
    stay on the last row/column.
    """
    pixels = []
    for u, v in uv_coords:
        u = min(max(u, 0.0), 1.0)
        v = min(max(v, 0.0), 1.0)
        x = int(min(u * width, width - 1.0))
        y = int(min((1.0 - v) * height, height - 1.0))
        pixels.append((x, y))
    return pixels


def calc_bbox(pixel_coords: Sequence[Pixel]) -> BBox:
    """
    Return (min_x, min_y, max_x, max_y) covering every point.

    Raises:
        ValueError: If pixel_coords is empty
    """
    if not pixel_coords:
        raise ValueError("Cannot compute bounding box of an empty point set")
    xs = [x for x, _ in pixel_coords]
    ys = [y for _, y in pixel_coords]
    return min(xs), min(ys), max(xs), max(ys)


def is_point_inside_polygon(point: UV, polygon: Sequence[UV]) -> bool:
    """
    Ray-casting parity test (odd-even rule).

    Points exactly on an edge may be classified either way.
    """
    px, py = point
    inside = False
    prev_x, prev_y = polygon[-1]
    for cur_x, cur_y in polygon:
        if (cur_y > py) != (prev_y > py):
            x_cross = (prev_x - cur_x) * (py - cur_y) / (prev_y - cur_y) + cur_x
            if px < x_cross:
                inside = not inside
        prev_x, prev_y = cur_x, cur_y
    return inside


def points_inside_polygon(xs: np.ndarray, ys: np.ndarray, polygon: Sequence[UV]) -> np.ndarray:
    """
    Vectorized is_point_inside_polygon over arrays of x and y coordinates.

    Returns a boolean array shaped like xs.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    inside = np.zeros(xs.shape, dtype=bool)

    prev_x, prev_y = polygon[-1]
    for cur_x, cur_y in polygon:
        crosses = (cur_y > ys) != (prev_y > ys)
        if prev_y != cur_y:
            x_cross = (prev_x - cur_x) * (ys - cur_y) / (prev_y - cur_y) + cur_x
            inside ^= crosses & (xs < x_cross)
        prev_x, prev_y = cur_x, cur_y
    return inside
