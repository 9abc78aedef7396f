"""
Placement strategies.

A TexturePlacer decides where (and whether) a toplevel texture fits on the
current atlas page. The packer only relies on the contract below:

- can_place(texture) is a pure query against the current page
- place_texture(...) commits a texture that can_place just accepted
- reset_param() empties the page; afterwards anything no larger than a page
  must be placeable

Two heuristics ship with the package: a greedy shelf placer and a guillotine
free-rectangle placer.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from atlaspack.exceptions import PlacementCapacityError
from atlaspack.texture.cropped import scaled_dimensions
from atlaspack.texture.toplevel import ChildTexture, ToplevelTexture
from atlaspack.texture.utils import UV

logger = logging.getLogger(__name__)


class TexturePlacerConfig(BaseModel):
    """Page dimensions and spacing shared by all placers."""
    model_config = ConfigDict(extra='forbid')

    width: int = Field(..., gt=0, description="Atlas page width in pixels.")
    height: int = Field(..., gt=0, description="Atlas page height in pixels.")
    padding: int = Field(default=0, ge=0, description="Gap kept right of and below every placement.")


@dataclass(frozen=True)
class PlacedTextureGeometry:
    """A toplevel texture committed to an atlas page."""
    cluster_id: str
    atlas_id: str
    origin: Tuple[int, int]
    width: int
    height: int
    image_path: Path

    def intersects(self, other: "PlacedTextureGeometry") -> bool:
        """True if the two rectangles share interior area (touching edges is fine)."""
        x1, y1 = self.origin
        x2, y2 = other.origin
        return (x1 < x2 + other.width and x2 < x1 + self.width
                and y1 < y2 + other.height and y2 < y1 + self.height)


@dataclass(frozen=True)
class PlacedPolygonUVCoords:
    """Final location of one original texture on its page."""
    atlas_id: str
    # Polygon in page UV space
    uv_coords: Tuple[UV, ...]
    # Pixel box of the texture's crop on the page, after downsampling
    origin: Tuple[int, int]
    width: int
    height: int


class TexturePlacer(ABC):
    """Base class for placement heuristics."""

    def __init__(self, config: TexturePlacerConfig):
        self.config = config

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def padding(self) -> int:
        return self.config.padding

    @abstractmethod
    def _find_position(self, width: int, height: int) -> Optional[Any]:
        """Return an opaque slot for a width x height rect, or None. Must not mutate."""

    @abstractmethod
    def _commit(self, slot: Any, width: int, height: int) -> Tuple[int, int]:
        """Occupy slot and return the (x, y) of the placed rect."""

    @abstractmethod
    def reset_param(self) -> None:
        """Forget every placement and start an empty page."""

    def can_place(self, texture: ToplevelTexture) -> bool:
        width, height = texture.scaled_size()
        return self._find_position(width, height) is not None

    def place_texture(
        self,
        toplevel_texture: ToplevelTexture,
        children: Sequence[Tuple[str, ChildTexture]],
        cluster_id: str,
        atlas_id: str
    ) -> Tuple[PlacedTextureGeometry, List[PlacedPolygonUVCoords]]:
        """
        Place a toplevel texture on the current page.

        Args:
            toplevel_texture: Region to place
            children: (texture id, child) pairs inside the toplevel
            cluster_id: Id recorded on the placed geometry
            atlas_id: Id of the page being filled

        Returns:
            Tuple of:
            - placed geometry of the toplevel
            - page placement (pixel box and UV polygon) for each child, in the order given

        Raises:
            PlacementCapacityError: If the texture does not fit on the current page
        """
        width, height = toplevel_texture.scaled_size()
        slot = self._find_position(width, height)
        if slot is None:
            raise PlacementCapacityError(
                f"Cluster {cluster_id} ({width}x{height}) does not fit on atlas {atlas_id} "
                f"({self.width}x{self.height})"
            )
        x, y = self._commit(slot, width, height)

        geometry = PlacedTextureGeometry(
            cluster_id=cluster_id,
            atlas_id=atlas_id,
            origin=(x, y),
            width=width,
            height=height,
            image_path=toplevel_texture.image_path,
        )
        factor = toplevel_texture.downsample_factor.value
        child_uvs = []
        for _, child in children:
            off_x, off_y = child.offset
            child_width, child_height = scaled_dimensions(child.width, child.height, factor)
            child_uvs.append(PlacedPolygonUVCoords(
                atlas_id=atlas_id,
                uv_coords=self._to_atlas_uv(child.uv_coords, geometry),
                origin=(x + int(off_x * factor), y + int(off_y * factor)),
                width=child_width,
                height=child_height,
            ))
        logger.debug(f"Placed cluster {cluster_id} at ({x}, {y}) {width}x{height} on atlas {atlas_id}")
        return geometry, child_uvs

    def _to_atlas_uv(self, uv_coords: Sequence[UV], geometry: PlacedTextureGeometry) -> Tuple[UV, ...]:
        x, y = geometry.origin
        return tuple(
            (
                (x + u * geometry.width) / self.width,
                1.0 - (y + (1.0 - v) * geometry.height) / self.height,
            )
            for u, v in uv_coords
        )


class ShelfTexturePlacer(TexturePlacer):
    """Packs rectangles left to right on horizontal shelves, opening a new shelf below when full."""

    def __init__(self, config: TexturePlacerConfig):
        super().__init__(config)
        self.shelves: List[dict] = []

    def _find_position(self, width, height):
        for index, shelf in enumerate(self.shelves):
            if shelf['x'] + width <= self.width and height + self.padding <= shelf['height']:
                return index

        new_y = sum(s['height'] for s in self.shelves)
        if new_y + height > self.height or width > self.width:
            return None
        return len(self.shelves)

    def _commit(self, slot, width, height):
        if slot == len(self.shelves):
            new_y = sum(s['height'] for s in self.shelves)
            self.shelves.append({
                'y': new_y,
                'height': height + self.padding,
                'x': width + self.padding
            })
            return 0, new_y

        shelf = self.shelves[slot]
        x = shelf['x']
        shelf['x'] += width + self.padding
        return x, shelf['y']

    def reset_param(self):
        self.shelves = []


class GuillotineTexturePlacer(TexturePlacer):
    """
    Guillotine packer over a list of free rectangles.

    Picks the free rectangle with the best short-side fit and splits the
    leftover along the shorter axis.
    """

    def __init__(self, config: TexturePlacerConfig):
        super().__init__(config)
        self.free_rects: List[Tuple[int, int, int, int]] = []
        self.reset_param()

    def _find_position(self, width, height):
        best = None
        best_score = None
        for index, (_, _, rect_w, rect_h) in enumerate(self.free_rects):
            if width <= rect_w and height <= rect_h:
                leftover_w = rect_w - width
                leftover_h = rect_h - height
                score = (min(leftover_w, leftover_h), max(leftover_w, leftover_h))
                if best_score is None or score < best_score:
                    best, best_score = index, score
        return best

    def _commit(self, slot, width, height):
        x, y, rect_w, rect_h = self.free_rects.pop(slot)
        used_w = min(width + self.padding, rect_w)
        used_h = min(height + self.padding, rect_h)
        leftover_w = rect_w - used_w
        leftover_h = rect_h - used_h

        if leftover_w < leftover_h:
            right = (x + used_w, y, leftover_w, used_h)
            below = (x, y + used_h, rect_w, leftover_h)
        else:
            right = (x + used_w, y, leftover_w, rect_h)
            below = (x, y + used_h, used_w, leftover_h)

        for rect in (right, below):
            if rect[2] > 0 and rect[3] > 0:
                self.free_rects.append(rect)
        return x, y

    def reset_param(self):
        self.free_rects = [(0, 0, self.width, self.height)]


PLACERS = {
    'shelf': ShelfTexturePlacer,
    'guillotine': GuillotineTexturePlacer,
}


def create_placer(name: str, config: TexturePlacerConfig) -> TexturePlacer:
    """Instantiate a placer by name ('shelf' or 'guillotine')."""
    try:
        return PLACERS[name](config)
    except KeyError:
        raise ValueError(f"Unknown placer: {name}. Supported: {', '.join(sorted(PLACERS))}") from None
