"""
atlaspack Quick Start Example

This example packs a few polygonal regions of two generated images into a
single atlas page and prints where each region ended up.
"""

from pathlib import Path

from PIL import Image

from atlaspack import AtlasPacker, CroppedTexture, GuillotineTexturePlacer, TexturePlacerConfig, TextureCache
from atlaspack.export import PngAtlasExporter

output = Path("output")
output.mkdir(exist_ok=True)

# Two source images standing in for per-building facade textures
Image.new("RGBA", (256, 256), (200, 80, 60, 255)).save(output / "brick.png")
Image.new("RGBA", (128, 128), (90, 90, 200, 255)).save(output / "glass.png")

packer = AtlasPacker()
packer.add_texture("wall_a", CroppedTexture.from_uv_coords(output / "brick.png", (256, 256), [(0.0, 0.0), (0.5, 0.0), (0.5, 0.5), (0.0, 0.5)]))
packer.add_texture("wall_b", CroppedTexture.from_uv_coords(output / "brick.png", (256, 256), [(0.4, 0.4), (0.9, 0.4), (0.9, 0.9)]))
packer.add_texture("window", CroppedTexture.from_uv_coords(output / "glass.png", (128, 128), [(0.1, 0.1), (0.9, 0.1), (0.9, 0.9), (0.1, 0.9)], 0.5))

print("Packing 3 textures...")
provider = packer.pack(GuillotineTexturePlacer(TexturePlacerConfig(width=512, height=512)))

files = provider.export(PngAtlasExporter(), output / "atlas", TextureCache(), 512, 512)
for atlas_id, path in files.items():
    print(f"✅ Saved atlas {atlas_id} to {path}")

for texture_id in ("wall_a", "wall_b", "window"):
    info = provider.get_texture_info(texture_id)
    print(f"{texture_id}: atlas {info.atlas_id}, uv {[(round(u, 3), round(v, 3)) for u, v in info.uv_coords]}")
