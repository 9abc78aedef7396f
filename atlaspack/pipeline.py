"""
End-to-end packing of a texture manifest.

Reads a JSON manifest, crops every entry, packs the crops into atlas pages,
writes the page images and an `atlas.json` side-car describing placements.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from atlaspack.config import PackerConfig
from atlaspack.export import get_exporter
from atlaspack.pack import AtlasPacker
from atlaspack.place import create_placer
from atlaspack.schema.manifest import AtlasMetadata, TextureManifest
from atlaspack.texture.cache import TextureCache
from atlaspack.texture.cropped import CroppedTexture
from atlaspack.texture.utils import get_image_size

logger = logging.getLogger(__name__)

METADATA_FILENAME = "atlas.json"


def load_manifest(manifest_path: Union[str, Path]) -> TextureManifest:
    """
    Read and validate a texture manifest.

    Raises:
        FileNotFoundError: If the manifest does not exist
        ValueError: If it is not valid JSON or does not match the schema
    """
    manifest_path = Path(manifest_path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"Manifest not found: {manifest_path}")

    with open(manifest_path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in manifest {manifest_path}: {e}") from e
    return TextureManifest.model_validate(data)


def build_packer(manifest: TextureManifest, base_dir: Union[str, Path]) -> AtlasPacker:
    """
    Crop every manifest entry and register it with a new packer.

    Image sizes missing from the manifest are read from the files.
    """
    base_dir = Path(base_dir)
    packer = AtlasPacker()
    for entry in manifest.textures:
        image_path = Path(entry.image)
        if not image_path.is_absolute():
            image_path = base_dir / image_path
        size = entry.size or get_image_size(image_path)
        texture = CroppedTexture.from_uv_coords(image_path, size, entry.uv_coords, entry.downsample_factor)
        packer.add_texture(entry.id, texture)
    logger.info(f"Loaded {len(packer)} textures")
    return packer


def pack_manifest(
    manifest_path: Union[str, Path],
    output_dir: Union[str, Path],
    config: Optional[PackerConfig] = None
) -> AtlasMetadata:
    """
    Pack the textures of a manifest and write atlas pages plus metadata.

    Args:
        manifest_path: JSON manifest of textures
        output_dir: Directory receiving `<atlas id>.<ext>` pages and atlas.json
        config: Packer settings (defaults when None)

    Returns:
        The metadata written to output_dir/atlas.json
    """
    config = config or PackerConfig()
    manifest_path = Path(manifest_path)
    output_dir = Path(output_dir)

    manifest = load_manifest(manifest_path)
    packer = build_packer(manifest, manifest_path.parent)
    placer = create_placer(config.placer, config.placer_config())
    provider = packer.pack(placer, clustering=config.clustering)

    exporter_kwargs = {'mask_policy': config.mask_policy, 'samples': config.samples}
    if config.image_format == 'jpeg':
        exporter_kwargs['quality'] = config.jpeg_quality
    exporter = get_exporter(config.image_format, **exporter_kwargs)

    files = provider.export(
        exporter,
        output_dir,
        TextureCache(capacity=config.cache_capacity),
        config.width,
        config.height,
        max_workers=config.max_workers,
    )

    metadata = provider.to_metadata(config.width, config.height, files)
    with open(os.path.join(output_dir, METADATA_FILENAME), 'w') as f:
        f.write(metadata.model_dump_json(indent=2))

    logger.info(f"Packed {len(metadata.textures)} textures into {len(metadata.atlases)} atlases in {output_dir}")
    return metadata
