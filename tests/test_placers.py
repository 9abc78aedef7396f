"""
Tests for the shelf and guillotine placement strategies
"""
from pathlib import Path

import pytest
from pydantic import ValidationError

from atlaspack.exceptions import PlacementCapacityError
from atlaspack.place import (
    GuillotineTexturePlacer,
    ShelfTexturePlacer,
    TexturePlacerConfig,
    create_placer,
)
from atlaspack.texture import CroppedTexture, DownsampleFactor
from atlaspack.texture.toplevel import FULL_RECT_UV, ToplevelTexture


def make_toplevel(w, h, path="tex.png", factor=1.0):
    return ToplevelTexture.new(CroppedTexture(
        image_path=Path(path),
        origin=(0, 0),
        width=w,
        height=h,
        downsample_factor=DownsampleFactor(factor),
        cropped_uv_coords=FULL_RECT_UV,
    ))


def place(placer, toplevel, cluster_id="c", atlas_id="0"):
    geometry, _ = placer.place_texture(toplevel, [], cluster_id, atlas_id)
    return geometry


class TestConfig:

    def test_requires_positive_size(self):
        with pytest.raises(ValidationError):
            TexturePlacerConfig(width=0, height=10)

    def test_rejects_negative_padding(self):
        with pytest.raises(ValidationError):
            TexturePlacerConfig(width=10, height=10, padding=-1)

    def test_create_placer(self):
        config = TexturePlacerConfig(width=10, height=10)
        assert isinstance(create_placer("shelf", config), ShelfTexturePlacer)
        assert isinstance(create_placer("guillotine", config), GuillotineTexturePlacer)
        with pytest.raises(ValueError):
            create_placer("maxrects", config)


@pytest.mark.parametrize("placer_cls", [ShelfTexturePlacer, GuillotineTexturePlacer])
class TestPlacerContract:
    """Behaviour every placer must share"""

    def test_can_place_is_pure(self, placer_cls):
        placer = placer_cls(TexturePlacerConfig(width=100, height=100))
        toplevel = make_toplevel(100, 100)
        assert placer.can_place(toplevel)
        assert placer.can_place(toplevel)
        place(placer, toplevel)
        assert not placer.can_place(make_toplevel(1, 1))

    def test_reset_allows_full_page(self, placer_cls):
        placer = placer_cls(TexturePlacerConfig(width=100, height=100))
        place(placer, make_toplevel(60, 60))
        assert not placer.can_place(make_toplevel(100, 100))
        placer.reset_param()
        assert placer.can_place(make_toplevel(100, 100))

    def test_too_large(self, placer_cls):
        placer = placer_cls(TexturePlacerConfig(width=100, height=100))
        assert not placer.can_place(make_toplevel(101, 10))
        with pytest.raises(PlacementCapacityError):
            place(placer, make_toplevel(101, 10))

    def test_uses_downsampled_size(self, placer_cls):
        placer = placer_cls(TexturePlacerConfig(width=100, height=100))
        assert placer.can_place(make_toplevel(200, 200, factor=0.5))
        geometry = place(placer, make_toplevel(200, 200, factor=0.5))
        assert (geometry.width, geometry.height) == (100, 100)

    def test_no_overlaps(self, placer_cls):
        placer = placer_cls(TexturePlacerConfig(width=100, height=100, padding=2))
        placed = []
        for i in range(30):
            toplevel = make_toplevel(7 + i % 5, 9 + i % 3)
            if not placer.can_place(toplevel):
                break
            placed.append(place(placer, toplevel, cluster_id=str(i)))
        assert len(placed) > 10
        for i, a in enumerate(placed):
            assert 0 <= a.origin[0] and a.origin[0] + a.width <= 100
            assert 0 <= a.origin[1] and a.origin[1] + a.height <= 100
            for b in placed[i + 1:]:
                assert not a.intersects(b)

    def test_child_uv_in_atlas_space(self, placer_cls):
        """Child UVs are mapped through the placement rectangle onto the page"""
        placer = placer_cls(TexturePlacerConfig(width=200, height=200))
        toplevel = make_toplevel(100, 100)
        child = toplevel.get_child(toplevel.cropped_texture)
        geometry, infos = placer.place_texture(toplevel, [("t", child)], "c", "3")
        assert geometry.origin == (0, 0)
        assert geometry.atlas_id == "3"
        assert infos[0].atlas_id == "3"
        assert infos[0].uv_coords == ((0.0, 0.5), (0.5, 0.5), (0.5, 1.0), (0.0, 1.0))


class TestShelfPlacer:

    def test_shelves(self):
        placer = ShelfTexturePlacer(TexturePlacerConfig(width=100, height=100))
        first = place(placer, make_toplevel(60, 40))
        second = place(placer, make_toplevel(60, 40))
        assert first.origin == (0, 0)
        assert second.origin == (0, 40)
        assert not placer.can_place(make_toplevel(60, 40))
        assert placer.can_place(make_toplevel(40, 40))

    def test_padding(self):
        placer = ShelfTexturePlacer(TexturePlacerConfig(width=100, height=100, padding=5))
        place(placer, make_toplevel(30, 30))
        second = place(placer, make_toplevel(30, 20))
        assert second.origin == (35, 0)
        third = place(placer, make_toplevel(40, 10))
        assert third.origin == (0, 35)

    def test_padding_below_tall_item(self):
        """An item as tall as the padded shelf opens a new shelf instead of touching the next one"""
        placer = ShelfTexturePlacer(TexturePlacerConfig(width=100, height=100, padding=2))
        place(placer, make_toplevel(10, 10))
        second_shelf = place(placer, make_toplevel(90, 10))
        assert second_shelf.origin == (0, 12)

        tall = place(placer, make_toplevel(10, 12))
        assert tall.origin == (0, 24)
        assert tall.origin[1] - (second_shelf.origin[1] + second_shelf.height) == 2

    def test_padded_shelf_fits_content_height(self):
        placer = ShelfTexturePlacer(TexturePlacerConfig(width=100, height=100, padding=2))
        place(placer, make_toplevel(10, 10))
        assert place(placer, make_toplevel(10, 10)).origin == (12, 0)
        assert place(placer, make_toplevel(10, 11)).origin == (0, 12)


class TestGuillotinePlacer:

    def test_four_quadrants(self):
        placer = GuillotineTexturePlacer(TexturePlacerConfig(width=100, height=100))
        origins = {place(placer, make_toplevel(50, 50)).origin for _ in range(4)}
        assert origins == {(0, 0), (0, 50), (50, 0), (50, 50)}
        assert not placer.can_place(make_toplevel(50, 50))
        assert not placer.can_place(make_toplevel(1, 1))

    def test_fills_gaps(self):
        """Small items go into leftover space beside larger ones"""
        placer = GuillotineTexturePlacer(TexturePlacerConfig(width=100, height=100))
        place(placer, make_toplevel(100, 60))
        small = place(placer, make_toplevel(40, 40))
        assert small.origin[1] == 60
        assert placer.can_place(make_toplevel(60, 40))
