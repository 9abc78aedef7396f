"""Pydantic models for the texture manifest and atlas metadata documents."""

from .manifest import (
    TextureEntry,
    TextureManifest,
    PlacedGeometryModel,
    TexturePlacementModel,
    AtlasMetadata,
)

__all__ = [
    "TextureEntry",
    "TextureManifest",
    "PlacedGeometryModel",
    "TexturePlacementModel",
    "AtlasMetadata",
]
