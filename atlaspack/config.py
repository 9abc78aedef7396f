"""
Packer configuration.

Settings come from an optional JSON file and can be overridden field by
field (the CLI passes its options through `overrides`).
"""

import json
import logging
from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from atlaspack.place import TexturePlacerConfig
from atlaspack.texture.cropped import MaskPolicy

logger = logging.getLogger(__name__)


class PackerConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    width: int = Field(default=4096, gt=0, description="Atlas page width in pixels.")
    height: int = Field(default=4096, gt=0, description="Atlas page height in pixels.")
    padding: int = Field(default=0, ge=0, description="Gap between placed regions in pixels.")
    placer: Literal['guillotine', 'shelf'] = Field(default='guillotine', description="Placement heuristic.")
    image_format: Literal['png', 'jpeg', 'webp'] = Field(default='png', description="Atlas page file format.")
    jpeg_quality: int = Field(default=95, ge=1, le=100)
    clustering: bool = Field(default=True, description="Merge overlapping crops of the same image before placing.")
    mask_policy: MaskPolicy = Field(default=MaskPolicy.keep, description="Keep or clear pixels outside the polygons.")
    samples: int = Field(default=1, ge=1, description="Coverage sub-samples per pixel axis.")
    max_workers: Optional[int] = Field(default=None, ge=1, description="Export workers; None uses the CPU count.")
    cache_capacity: Optional[int] = Field(default=None, ge=1, description="Decoded images kept in memory; None keeps all.")

    def placer_config(self) -> TexturePlacerConfig:
        return TexturePlacerConfig(width=self.width, height=self.height, padding=self.padding)


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> PackerConfig:
    """
    Build a PackerConfig from a JSON file plus keyword overrides.

    Overrides whose value is None are ignored so unset CLI options fall
    through to the file (or the defaults).

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is not valid JSON
        pydantic.ValidationError: If a value is invalid
    """
    data = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in config {path}: {e}") from e
        logger.debug(f"Loaded config from {path}")

    data.update({key: value for key, value in overrides.items() if value is not None})
    return PackerConfig(**data)
