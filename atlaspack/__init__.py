"""
atlaspack - Pack polygonal texture fragments into shared atlas pages

Overlapping crops of the same source image are merged into clusters, clusters
are laid out on fixed-size pages by a pluggable placement strategy, and every
original polygon is remapped to its new UV coordinates on the page.
"""

from atlaspack.pack import AtlasPacker, PackedAtlasProvider
from atlaspack.place import (
    TexturePlacer,
    TexturePlacerConfig,
    ShelfTexturePlacer,
    GuillotineTexturePlacer,
)
from atlaspack.texture import CroppedTexture, DownsampleFactor, MaskPolicy, TextureCache

__version__ = "0.1.0"
__all__ = [
    "AtlasPacker",
    "PackedAtlasProvider",
    "TexturePlacer",
    "TexturePlacerConfig",
    "ShelfTexturePlacer",
    "GuillotineTexturePlacer",
    "CroppedTexture",
    "DownsampleFactor",
    "MaskPolicy",
    "TextureCache",
]
