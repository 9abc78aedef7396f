"""
JSON documents read and written by the packer.

TextureManifest is the input: one entry per texture, each a UV polygon over a
source image. AtlasMetadata is the output side-car describing every page and
where each texture ended up.

UV CONVENTION:
- u grows to the right, v grows upwards, both in [0, 1]
- (0, 0) is the bottom-left corner of the image
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, ConfigDict, field_validator

UVPoint = Tuple[float, float]


class TextureEntry(BaseModel):
    model_config = ConfigDict(extra='forbid')

    id: str = Field(..., description="Unique texture identifier.")
    image: str = Field(..., description="Source image path, relative to the manifest or absolute.")
    uv_coords: List[UVPoint] = Field(..., min_length=3, description="Polygon over the source image in UV space.")
    downsample_factor: float = Field(default=1.0, ge=0.0, le=1.0, description="Scale applied before placement.")
    size: Optional[Tuple[int, int]] = Field(None, description="Source image (width, height); read from the file when omitted.")


class TextureManifest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    textures: List[TextureEntry] = Field(default_factory=list)

    @field_validator('textures')
    @classmethod
    def validate_unique_ids(cls, v):
        seen = set()
        duplicates = set()
        for entry in v:
            if entry.id in seen:
                duplicates.add(entry.id)
            seen.add(entry.id)
        if duplicates:
            duplicates = sorted(duplicates)
            raise ValueError(f"Duplicate texture ids: {', '.join(duplicates)}")
        return v


class PlacedGeometryModel(BaseModel):
    cluster_id: str
    origin: Tuple[int, int]
    width: int
    height: int
    image: str = Field(..., description="Source image the region was cropped from.")


class TexturePlacementModel(BaseModel):
    atlas_id: str
    origin: Tuple[int, int] = Field(..., description="Top-left pixel of the texture's crop on the page.")
    width: int
    height: int
    uv_coords: List[UVPoint] = Field(..., description="Polygon in the atlas page's UV space.")


class AtlasMetadata(BaseModel):
    width: int
    height: int
    atlases: Dict[str, List[PlacedGeometryModel]] = Field(default_factory=dict, description="Atlas id -> placed regions.")
    files: Dict[str, str] = Field(default_factory=dict, description="Atlas id -> written image file name.")
    textures: Dict[str, TexturePlacementModel] = Field(default_factory=dict, description="Texture id -> placement.")
