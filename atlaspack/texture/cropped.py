"""
Cropped texture model.

A CroppedTexture is the pixel-space bounding box of a UV polygon inside a
source image, together with the polygon re-expressed in UV coordinates local
to that box (bottom-left origin). Cropping pulls the box out of the source
image, optionally masks pixels outside the polygon, and downsamples.
"""

import logging
import math
import numbers
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from atlaspack import workers
from atlaspack.exceptions import DegenerateTextureError, InvalidDownsampleFactorError
from atlaspack.texture.utils import UV, calc_bbox, points_inside_polygon, uv_to_pixel_coords

logger = logging.getLogger(__name__)


class MaskPolicy(str, Enum):
    """What happens to pixels whose centers fall outside the polygon."""
    # Keep every pixel of the bounding box; avoids jagged polygon edges at
    # the cost of bleeding neighbouring content into the atlas.
    keep = "keep"
    # Make outside pixels fully transparent.
    clip = "clip"


@dataclass(frozen=True)
class DownsampleFactor:
    """Scale applied to a crop before it is placed, in [0, 1]."""
    value: float = 1.0

    def __post_init__(self):
        if not (isinstance(self.value, numbers.Real) and math.isfinite(self.value) and 0.0 <= self.value <= 1.0):
            raise InvalidDownsampleFactorError(
                f"Downsample factor must be between 0 and 1, got {self.value!r}"
            )

    @classmethod
    def coerce(cls, factor: Union["DownsampleFactor", float]) -> "DownsampleFactor":
        if isinstance(factor, DownsampleFactor):
            return factor
        return cls(factor)


def scaled_dimensions(width: int, height: int, factor: float) -> Tuple[int, int]:
    """Size after downsampling, never smaller than 1x1."""
    return max(1, int(width * factor)), max(1, int(height * factor))


def downsample(image: Image.Image, factor: Union[DownsampleFactor, float]) -> Image.Image:
    """
    Shrink image by factor with a triangle (bilinear) filter.

    factor 1.0 returns the image untouched; tiny factors bottom out at 1x1.
    """
    factor = DownsampleFactor.coerce(factor).value
    if factor >= 1.0:
        return image
    size = scaled_dimensions(image.width, image.height, factor)
    return image.resize(size, Image.BILINEAR)


@dataclass(frozen=True)
class CroppedTexture:
    """
    A polygonal region of a source image.

    Attributes:
        image_path: Source image
        origin: Top-left corner of the crop in source pixels
        width: Crop width in pixels
        height: Crop height in pixels
        downsample_factor: Scale applied when the crop is rendered
        cropped_uv_coords: Polygon in crop-local UV space (bottom-left origin)
    """
    image_path: Path
    origin: Tuple[int, int]
    width: int
    height: int
    downsample_factor: DownsampleFactor
    cropped_uv_coords: Tuple[UV, ...]

    @classmethod
    def from_uv_coords(
        cls,
        image_path: Union[str, Path],
        size: Tuple[int, int],
        uv_coords: Sequence[UV],
        downsample_factor: Union[DownsampleFactor, float] = 1.0
    ) -> "CroppedTexture":
        """
        Build a crop from a UV polygon over an image of the given pixel size.

        Args:
            image_path: Source image path
            size: (width, height) of the source image
            uv_coords: Polygon in source UV space, at least 3 vertices
            downsample_factor: Factor in [0, 1]

        Raises:
            InvalidDownsampleFactorError: If the factor is outside [0, 1]
            DegenerateTextureError: If the polygon has < 3 vertices or a flat bounding box
        """
        factor = DownsampleFactor.coerce(downsample_factor)
        if len(uv_coords) < 3:
            raise DegenerateTextureError(
                f"Polygon for {image_path} needs at least 3 vertices, got {len(uv_coords)}"
            )

        pixel_coords = uv_to_pixel_coords(uv_coords, size[0], size[1])
        min_x, min_y, max_x, max_y = calc_bbox(pixel_coords)
        width = max_x - min_x
        height = max_y - min_y
        if width == 0 or height == 0:
            raise DegenerateTextureError(
                f"Polygon for {image_path} covers a {width}x{height} pixel box"
            )

        dest_uv_coords = tuple(
            ((x - min_x) / width, 1.0 - (y - min_y) / height)
            for x, y in pixel_coords
        )

        return cls(
            image_path=Path(image_path),
            origin=(min_x, min_y),
            width=width,
            height=height,
            downsample_factor=factor,
            cropped_uv_coords=dest_uv_coords,
        )

    @property
    def bbox(self) -> Tuple[int, int, int, int]:
        """(min_x, min_y, max_x, max_y) in source pixels."""
        x, y = self.origin
        return x, y, x + self.width, y + self.height

    def overlaps(self, other: "CroppedTexture") -> bool:
        """True if both crops come from the same image and their boxes touch or intersect."""
        if self.image_path != other.image_path:
            return False

        x1, y1 = self.origin
        x2, y2 = other.origin
        return not (
            x1 + self.width < x2 or x2 + other.width < x1
            or y1 + self.height < y2 or y2 + other.height < y1
        )

    def covers(self, other: "CroppedTexture") -> Optional[Tuple[int, int]]:
        """Offset of other inside self if self's box fully contains it, else None."""
        if self.image_path != other.image_path:
            return None

        x1, y1 = self.origin
        x2, y2 = other.origin
        if (x1 <= x2 and y1 <= y2
                and x1 + self.width >= x2 + other.width
                and y1 + self.height >= y2 + other.height):
            return x2 - x1, y2 - y1
        return None

    def scaled_size(self) -> Tuple[int, int]:
        return scaled_dimensions(self.width, self.height, self.downsample_factor.value)

    def _classify_rows(self, row_start: int, row_stop: int, samples: int) -> Tuple[int, np.ndarray]:
        gx, gy = np.meshgrid(np.arange(self.width), np.arange(row_start, row_stop))
        covered = np.zeros(gx.shape, dtype=bool)
        for sx in range(samples):
            for sy in range(samples):
                u = (gx + (sx + 0.5) / samples) / self.width
                v = 1.0 - (gy + (sy + 0.5) / samples) / self.height
                covered |= points_inside_polygon(u, v, self.cropped_uv_coords)
        return row_start, covered

    def coverage_mask(self, samples: int = 1, executor: Optional[Executor] = None) -> np.ndarray:
        """
        Boolean (height, width) mask of pixels covered by the polygon.

        A pixel counts as covered when any of its samples x samples stratified
        sub-sample points lies inside the polygon. Rows are split into
        contiguous chunks evaluated on the worker pool and written back by
        row offset, so the result does not depend on completion order.
        """
        if samples < 1:
            raise ValueError(f"samples must be >= 1, got {samples}")
        executor = executor or workers.get_executor()

        chunk_rows = max(1, math.ceil(self.height / workers.default_worker_count()))
        futures = [
            executor.submit(self._classify_rows, start, min(start + chunk_rows, self.height), samples)
            for start in range(0, self.height, chunk_rows)
        ]

        mask = np.zeros((self.height, self.width), dtype=bool)
        for future in futures:
            row_start, covered = future.result()
            mask[row_start:row_start + covered.shape[0]] = covered
        return mask

    def extract(self, image: Image.Image) -> Image.Image:
        """The crop rectangle of image as RGBA, before masking and downsampling."""
        x, y = self.origin
        region = image.crop((x, y, x + self.width, y + self.height))
        if region.mode != 'RGBA':
            region = region.convert('RGBA')
        return region

    def crop(
        self,
        image: Image.Image,
        mask_policy: MaskPolicy = MaskPolicy.keep,
        samples: int = 1,
        executor: Optional[Executor] = None
    ) -> Image.Image:
        """
        Extract this region from its (already loaded) source image.

        Args:
            image: Source image
            mask_policy: Whether pixels outside the polygon are kept or cleared
            samples: Sub-samples per axis for the coverage test
            executor: Pool for the coverage test (shared pool by default)

        Returns:
            RGBA image of scaled_size()
        """
        region = self.extract(image)
        if MaskPolicy(mask_policy) is MaskPolicy.clip:
            region = apply_mask(region, self.coverage_mask(samples=samples, executor=executor))
        return downsample(region, self.downsample_factor)


def apply_mask(region: Image.Image, mask: np.ndarray) -> Image.Image:
    """Clear every pixel of an RGBA region where mask is False."""
    pixels = np.array(region)
    pixels[~mask] = 0
    logger.debug(f"Clipped {int((~mask).sum())} of {mask.size} pixels")
    return Image.fromarray(pixels)
