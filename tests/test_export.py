"""
Tests for the texture cache and atlas page exporters
"""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image

from atlaspack.exceptions import TextureLoadError
from atlaspack.export import (
    JpegAtlasExporter,
    PngAtlasExporter,
    WebpAtlasExporter,
    get_exporter,
)
from atlaspack.pack import AtlasPacker
from atlaspack.place import GuillotineTexturePlacer, TexturePlacerConfig
from atlaspack.texture import CroppedTexture, MaskPolicy, TextureCache

UNIT_SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


def save_image(path, size, color):
    Image.new("RGBA", size, color).save(path)
    return path


class TestTextureCache:

    def test_loads_rgba(self, tmp_path):
        path = tmp_path / "rgb.png"
        Image.new("RGB", (4, 4), (1, 2, 3)).save(path)
        image = TextureCache().get(path)
        assert image.mode == "RGBA"
        assert image.getpixel((0, 0)) == (1, 2, 3, 255)

    def test_same_object_for_str_and_path(self, tmp_path):
        path = save_image(tmp_path / "a.png", (4, 4), (255, 0, 0, 255))
        cache = TextureCache()
        assert cache.get(path) is cache.get(str(path))
        assert len(cache) == 1
        assert path in cache

    def test_loads_once_under_concurrency(self, tmp_path, monkeypatch):
        """Concurrent requests for one path decode it a single time"""
        path = save_image(tmp_path / "a.png", (8, 8), (0, 255, 0, 255))
        calls = []
        lock = threading.Lock()
        original = TextureCache._load

        def counting_load(p):
            with lock:
                calls.append(p)
            return original(p)

        monkeypatch.setattr(TextureCache, "_load", staticmethod(counting_load))
        cache = TextureCache()
        with ThreadPoolExecutor(max_workers=8) as executor:
            images = list(executor.map(lambda _: cache.get(path), range(32)))

        assert len(calls) == 1
        assert all(image is images[0] for image in images)

    def test_missing_file(self, tmp_path):
        cache = TextureCache()
        with pytest.raises(TextureLoadError) as exc_info:
            cache.get(tmp_path / "missing.png")
        assert isinstance(exc_info.value, OSError)
        assert len(cache) == 0

    def test_lru_capacity(self, tmp_path):
        a = save_image(tmp_path / "a.png", (2, 2), (0, 0, 0, 255))
        b = save_image(tmp_path / "b.png", (2, 2), (0, 0, 0, 255))
        cache = TextureCache(capacity=1)
        cache.get(a)
        cache.get(b)
        assert len(cache) == 1
        assert b in cache
        assert a not in cache

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            TextureCache(capacity=0)

    def test_clear(self, tmp_path):
        path = save_image(tmp_path / "a.png", (2, 2), (0, 0, 0, 255))
        cache = TextureCache()
        cache.get(path)
        cache.clear()
        assert len(cache) == 0


class TestExporters:

    def _provider(self, tmp_path):
        red = save_image(tmp_path / "red.png", (64, 64), (255, 0, 0, 255))
        blue = save_image(tmp_path / "blue.png", (32, 32), (0, 0, 255, 255))
        packer = AtlasPacker()
        packer.add_texture("red", CroppedTexture.from_uv_coords(red, (64, 64), UNIT_SQUARE))
        packer.add_texture("blue", CroppedTexture.from_uv_coords(blue, (32, 32), UNIT_SQUARE))
        return packer.pack(GuillotineTexturePlacer(TexturePlacerConfig(width=128, height=128)))

    def test_png_export(self, tmp_path):
        provider = self._provider(tmp_path)
        out_dir = tmp_path / "out"
        files = provider.export(PngAtlasExporter(), out_dir, TextureCache(), 128, 128)

        assert files == {"0": out_dir / "0.png"}
        with Image.open(files["0"]) as atlas:
            assert atlas.size == (128, 128)
            for geometry in provider.atlases["0"]:
                x, y = geometry.origin
                expected = (0, 0, 255, 255) if geometry.image_path.name == "blue.png" else (255, 0, 0, 255)
                assert atlas.getpixel((x + 1, y + 1)) == expected
            assert atlas.getpixel((127, 127)) == (0, 0, 0, 0)

    def test_uv_points_at_source_color(self, tmp_path):
        """Sampling the page at a texture's remapped UV hits that texture's pixels"""
        provider = self._provider(tmp_path)
        files = provider.export(PngAtlasExporter(), tmp_path / "out", TextureCache(), 128, 128)
        info = provider.get_texture_info("blue")
        u = sum(p[0] for p in info.uv_coords) / len(info.uv_coords)
        v = sum(p[1] for p in info.uv_coords) / len(info.uv_coords)
        with Image.open(files[info.atlas_id]) as atlas:
            assert atlas.getpixel((int(u * 128), int((1 - v) * 128))) == (0, 0, 255, 255)

    def test_jpeg_export(self, tmp_path):
        provider = self._provider(tmp_path)
        files = provider.export(JpegAtlasExporter(quality=80), tmp_path / "out", TextureCache(), 128, 128)
        assert files["0"].suffix == ".jpg"
        with Image.open(files["0"]) as atlas:
            assert atlas.mode == "RGB"

    def test_webp_export(self, tmp_path):
        provider = self._provider(tmp_path)
        files = provider.export(WebpAtlasExporter(lossless=True), tmp_path / "out", TextureCache(), 128, 128)
        assert files["0"].suffix == ".webp"
        assert files["0"].exists()

    def test_missing_source_propagates(self, tmp_path):
        provider = self._provider(tmp_path)
        (tmp_path / "red.png").unlink()
        with pytest.raises(TextureLoadError):
            provider.export(PngAtlasExporter(), tmp_path / "out", TextureCache(), 128, 128)

    def test_multiple_pages_exported(self, tmp_path):
        packer = AtlasPacker()
        for i in range(3):
            path = save_image(tmp_path / f"img{i}.png", (65, 65), (i * 80, 0, 0, 255))
            packer.add_texture(f"t{i}", CroppedTexture.from_uv_coords(path, (65, 65), UNIT_SQUARE))
        provider = packer.pack(GuillotineTexturePlacer(TexturePlacerConfig(width=64, height=64)))
        files = provider.export(PngAtlasExporter(), tmp_path / "out", TextureCache(), 64, 64, max_workers=2)
        assert sorted(files) == ["0", "1", "2"]
        assert all(path.exists() for path in files.values())

    def test_get_exporter(self):
        assert isinstance(get_exporter("png"), PngAtlasExporter)
        assert isinstance(get_exporter("JPG"), JpegAtlasExporter)
        exporter = get_exporter("webp", mask_policy="clip", samples=2)
        assert exporter.mask_policy is MaskPolicy.clip
        assert exporter.samples == 2
        with pytest.raises(ValueError):
            get_exporter("tga")

    def test_invalid_jpeg_quality(self):
        with pytest.raises(ValueError):
            JpegAtlasExporter(quality=0)
