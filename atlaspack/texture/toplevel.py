"""
Toplevel and child textures.

A ToplevelTexture is the bounding union of every crop in a cluster; it is the
unit that gets placed on an atlas page. Each member becomes a ChildTexture:
its offset inside the toplevel plus its polygon re-expressed in the
toplevel's UV space.
"""

from concurrent.futures import Executor
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from atlaspack.texture.cropped import CroppedTexture, DownsampleFactor, MaskPolicy, apply_mask, downsample
from atlaspack.texture.utils import UV

FULL_RECT_UV: Tuple[UV, ...] = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))


@dataclass(frozen=True)
class ChildTexture:
    """A cluster member positioned inside its toplevel texture."""
    offset: Tuple[int, int]
    width: int
    height: int
    # Member polygon in the toplevel's UV space (bottom-left origin)
    uv_coords: Tuple[UV, ...]


@dataclass(frozen=True)
class ToplevelTexture:
    """Rectangular crop covering every member of a cluster."""
    cropped_texture: CroppedTexture

    @classmethod
    def new(cls, texture: CroppedTexture) -> "ToplevelTexture":
        """Start a toplevel region from a single crop's bounding box."""
        return cls(replace(texture, cropped_uv_coords=FULL_RECT_UV))

    @property
    def image_path(self):
        return self.cropped_texture.image_path

    @property
    def origin(self) -> Tuple[int, int]:
        return self.cropped_texture.origin

    @property
    def width(self) -> int:
        return self.cropped_texture.width

    @property
    def height(self) -> int:
        return self.cropped_texture.height

    @property
    def downsample_factor(self) -> DownsampleFactor:
        return self.cropped_texture.downsample_factor

    def scaled_size(self) -> Tuple[int, int]:
        return self.cropped_texture.scaled_size()

    def coverage_mask(
        self,
        children: Sequence[ChildTexture],
        samples: int = 1,
        executor: Optional[Executor] = None
    ) -> np.ndarray:
        """Union of the children's polygon coverage over this toplevel's pixels."""
        mask = np.zeros((self.height, self.width), dtype=bool)
        for child in children:
            child_region = replace(self.cropped_texture, cropped_uv_coords=child.uv_coords)
            mask |= child_region.coverage_mask(samples=samples, executor=executor)
        return mask

    def crop(
        self,
        image: Image.Image,
        children: Sequence[ChildTexture] = (),
        mask_policy: MaskPolicy = MaskPolicy.keep,
        samples: int = 1,
        executor: Optional[Executor] = None
    ) -> Image.Image:
        """
        Extract the toplevel rectangle from its source image.

        With MaskPolicy.clip only pixels covered by at least one child
        polygon survive; without children nothing is cleared.
        """
        region = self.cropped_texture.extract(image)
        if MaskPolicy(mask_policy) is MaskPolicy.clip and children:
            region = apply_mask(region, self.coverage_mask(children, samples=samples, executor=executor))
        return downsample(region, self.downsample_factor)

    def expand(self, other: CroppedTexture) -> "ToplevelTexture":
        """
        Grow the region to also cover other.

        The larger of the two downsample factors wins so no member loses detail.

        Raises:
            ValueError: If other comes from a different source image
        """
        if other.image_path != self.image_path:
            raise ValueError(
                f"Cannot expand toplevel over {self.image_path} with texture from {other.image_path}"
            )

        min_x = min(self.origin[0], other.origin[0])
        min_y = min(self.origin[1], other.origin[1])
        max_x = max(self.origin[0] + self.width, other.origin[0] + other.width)
        max_y = max(self.origin[1] + self.height, other.origin[1] + other.height)
        factor = max(self.downsample_factor.value, other.downsample_factor.value)

        return ToplevelTexture(replace(
            self.cropped_texture,
            origin=(min_x, min_y),
            width=max_x - min_x,
            height=max_y - min_y,
            downsample_factor=DownsampleFactor(factor),
        ))

    def get_child(self, texture: CroppedTexture) -> ChildTexture:
        """
        Position a member crop inside this toplevel.

        Raises:
            ValueError: If the toplevel does not cover the texture
        """
        offset = self.cropped_texture.covers(texture)
        if offset is None:
            raise ValueError(
                f"Toplevel {self.origin} {self.width}x{self.height} does not cover "
                f"texture {texture.origin} {texture.width}x{texture.height} of {texture.image_path}"
            )

        off_x, off_y = offset
        uv_coords = tuple(
            (
                (off_x + u * texture.width) / self.width,
                1.0 - (off_y + (1.0 - v) * texture.height) / self.height,
            )
            for u, v in texture.cropped_uv_coords
        )
        return ChildTexture(offset=offset, width=texture.width, height=texture.height, uv_coords=uv_coords)
