"""
Atlas page exporters.

An exporter turns one finalized atlas page (a list of placed toplevel
geometries) into a file. Each placed region is re-cropped from its source
image through the shared TextureCache and pasted at its placement origin.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Sequence, Tuple, Union

from PIL import Image

from atlaspack.pack import Cluster
from atlaspack.place import PlacedTextureGeometry
from atlaspack.texture.cache import TextureCache
from atlaspack.texture.cropped import MaskPolicy

logger = logging.getLogger(__name__)


class AtlasExporter(ABC):
    """
    Composes atlas pages and writes them to disk.

    Args:
        mask_policy: Whether pixels outside the original polygons are kept
        samples: Sub-samples per axis for the polygon coverage test
        background: RGBA fill for unused page area
    """

    extension: str = ""

    def __init__(
        self,
        mask_policy: MaskPolicy = MaskPolicy.keep,
        samples: int = 1,
        background: Tuple[int, int, int, int] = (0, 0, 0, 0)
    ):
        self.mask_policy = MaskPolicy(mask_policy)
        self.samples = samples
        self.background = background

    def compose(
        self,
        atlas: Sequence[PlacedTextureGeometry],
        clusters: Mapping[str, Cluster],
        texture_cache: TextureCache,
        width: int,
        height: int
    ) -> Image.Image:
        """Paint every placed region of a page onto a width x height RGBA canvas."""
        canvas = Image.new('RGBA', (width, height), self.background)
        for geometry in atlas:
            cluster = clusters[geometry.cluster_id]
            toplevel = cluster.toplevel_texture
            source = texture_cache.get(toplevel.image_path)
            tile = toplevel.crop(
                source,
                children=[child for _, child in cluster.children],
                mask_policy=self.mask_policy,
                samples=self.samples,
            )
            if tile.size != (geometry.width, geometry.height):
                logger.warning(
                    f"Cropped region {tile.size} differs from placement {geometry.width}x{geometry.height} "
                    f"for cluster {geometry.cluster_id}"
                )
                tile = tile.resize((geometry.width, geometry.height), Image.BILINEAR)
            canvas.paste(tile, geometry.origin)
        return canvas

    def export(
        self,
        atlas: Sequence[PlacedTextureGeometry],
        clusters: Mapping[str, Cluster],
        output_path: Union[str, Path],
        texture_cache: TextureCache,
        width: int,
        height: int
    ) -> Path:
        """
        Compose one page and write it next to output_path with this exporter's extension.

        Raises:
            TextureLoadError: If a source image cannot be loaded
            OSError: If the file cannot be written
        """
        path = Path(output_path).with_suffix(self.extension)
        canvas = self.compose(atlas, clusters, texture_cache, width, height)
        self._save(canvas, path)
        logger.info(f"Wrote {width}x{height} atlas with {len(atlas)} regions to {path}")
        return path

    @abstractmethod
    def _save(self, image: Image.Image, path: Path) -> None:
        pass


class PngAtlasExporter(AtlasExporter):
    extension = ".png"

    def _save(self, image, path):
        image.save(path, format='PNG')


class JpegAtlasExporter(AtlasExporter):
    """JPEG pages; transparent areas are flattened onto the background color."""

    extension = ".jpg"

    def __init__(self, quality: int = 95, **kwargs):
        super().__init__(**kwargs)
        if not 1 <= quality <= 100:
            raise ValueError(f"JPEG quality must be between 1 and 100, got {quality}")
        self.quality = quality

    def _save(self, image, path):
        flattened = Image.new('RGB', image.size, self.background[:3])
        flattened.paste(image, mask=image.getchannel('A'))
        flattened.save(path, format='JPEG', quality=self.quality)


class WebpAtlasExporter(AtlasExporter):
    extension = ".webp"

    def __init__(self, quality: int = 90, lossless: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.quality = quality
        self.lossless = lossless

    def _save(self, image, path):
        image.save(path, format='WEBP', quality=self.quality, lossless=self.lossless)


EXPORTERS = {
    'png': PngAtlasExporter,
    'jpeg': JpegAtlasExporter,
    'webp': WebpAtlasExporter,
}


def get_exporter(image_format: str, **kwargs) -> AtlasExporter:
    """Instantiate the exporter for 'png', 'jpeg' (or 'jpg') or 'webp'."""
    image_format = image_format.lower()
    if image_format == 'jpg':
        image_format = 'jpeg'
    if image_format not in EXPORTERS:
        raise ValueError(f"Unsupported image format: {image_format}. Supported: png, jpeg, webp")
    return EXPORTERS[image_format](**kwargs)
