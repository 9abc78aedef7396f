"""
atlaspack Advanced Example

This example runs the manifest pipeline used by the CLI: it writes a JSON
manifest, packs it onto small pages with the shelf placer, clips pixels
outside each polygon and saves WebP pages plus the atlas.json side-car.
"""

import json
from pathlib import Path

from PIL import Image

from atlaspack.config import load_config
from atlaspack.pipeline import pack_manifest

workdir = Path("output/advanced")
workdir.mkdir(parents=True, exist_ok=True)

# Gradient source image so clipped edges are easy to see
gradient = Image.new("RGBA", (256, 256))
gradient.putdata([(x, y, 128, 255) for y in range(256) for x in range(256)])
gradient.save(workdir / "facade.png")

manifest = {
    "textures": [
        {"id": f"face_{i}", "image": "facade.png",
         "uv_coords": [[0.2 * i, 0.0], [0.2 * i + 0.15, 0.0], [0.2 * i + 0.075, 0.3]]}
        for i in range(5)
    ]
}
with open(workdir / "textures.json", "w") as f:
    json.dump(manifest, f, indent=2)

config = load_config(width=128, height=128, padding=2, placer="shelf", image_format="webp", mask_policy="clip", samples=2)

print("Packing 5 triangular faces onto 128x128 pages...")
metadata = pack_manifest(workdir / "textures.json", workdir / "atlas", config)

print(f"✅ {len(metadata.atlases)} atlas pages: {metadata.files}")
for texture_id, placement in metadata.textures.items():
    print(f"{texture_id} -> atlas {placement.atlas_id}")
