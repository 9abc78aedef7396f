"""
Atlas packing orchestration.

Textures are accumulated in an AtlasPacker, grouped into clusters of
overlapping crops from the same source image, and fed one cluster at a time
through a TexturePlacer. Whenever the current page is full it is finalized
under the next sequential id ("0", "1", ...) and a fresh page is started.
The result is an immutable PackedAtlasProvider.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import reduce
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from atlaspack import workers
from atlaspack.disjoint_set import DisjointSet
from atlaspack.exceptions import PlacementCapacityError, PlacementOverlapError
from atlaspack.place import PlacedPolygonUVCoords, PlacedTextureGeometry, TexturePlacer
from atlaspack.schema.manifest import AtlasMetadata, PlacedGeometryModel, TexturePlacementModel
from atlaspack.texture.cache import TextureCache
from atlaspack.texture.cropped import CroppedTexture
from atlaspack.texture.toplevel import ChildTexture, ToplevelTexture

logger = logging.getLogger(__name__)

Atlas = Tuple[PlacedTextureGeometry, ...]


@dataclass(frozen=True)
class Cluster:
    """Overlapping crops of one source image and the toplevel region covering them."""
    toplevel_texture: ToplevelTexture
    # (texture id, child texture)
    children: Tuple[Tuple[str, ChildTexture], ...]


class AtlasPacker:
    """
    Collects cropped textures and packs them into atlas pages.

    Example:
        >>> packer = AtlasPacker()
        >>> packer.add_texture("wall_1", CroppedTexture.from_uv_coords("wall.png", (512, 512), uvs))
        >>> provider = packer.pack(GuillotineTexturePlacer(TexturePlacerConfig(width=1024, height=1024)))
        >>> provider.get_texture_info("wall_1")
    """

    def __init__(self):
        # texture id -> texture
        self.textures: Dict[str, CroppedTexture] = {}
        self._consumed = False

    def __len__(self) -> int:
        return len(self.textures)

    def add_texture(self, texture_id: str, texture: CroppedTexture) -> None:
        """Register a texture; a later call with the same id replaces it."""
        if self._consumed:
            raise RuntimeError("Cannot add textures after pack() has been called")
        self.textures[texture_id] = texture

    def create_clusters(self) -> Dict[str, Cluster]:
        """
        Group textures whose bounding boxes transitively overlap.

        Only textures from the same source image can share a cluster. Every
        pair is tested, so this is O(n^2) in the number of textures. Clusters
        come back ordered by their first texture id.
        """
        texture_ids = sorted(self.textures)
        disjoint_set = DisjointSet(len(texture_ids))

        # TODO: bucket textures by source image before the pairwise scan
        for i in range(len(texture_ids)):
            texture_i = self.textures[texture_ids[i]]
            for j in range(i + 1, len(texture_ids)):
                if texture_i.overlaps(self.textures[texture_ids[j]]):
                    disjoint_set.unite(i, j)
        disjoint_set.compress()

        clusters: Dict[str, Cluster] = {}
        groups = sorted(disjoint_set.groups().items(), key=lambda item: item[1][0])
        for root, members in groups:
            member_ids = [texture_ids[i] for i in members]
            clusters[str(root)] = self._build_cluster(member_ids)

        logger.info(f"Grouped {len(texture_ids)} textures into {len(clusters)} clusters")
        return clusters

    def _build_cluster(self, texture_ids: List[str]) -> Cluster:
        textures = [self.textures[texture_id] for texture_id in texture_ids]
        toplevel = reduce(
            lambda acc, texture: acc.expand(texture),
            textures[1:],
            ToplevelTexture.new(textures[0]),
        )
        children = tuple(
            (texture_id, toplevel.get_child(texture))
            for texture_id, texture in zip(texture_ids, textures)
        )
        return Cluster(toplevel_texture=toplevel, children=children)

    def _singleton_clusters(self) -> Dict[str, Cluster]:
        return {
            texture_id: self._build_cluster([texture_id])
            for texture_id in sorted(self.textures)
        }

    def pack(self, placer: TexturePlacer, clustering: bool = True) -> "PackedAtlasProvider":
        """
        Place every texture on as few atlas pages as the placer allows.

        The packer is consumed: no textures can be added and pack() cannot
        run again afterwards.

        Args:
            placer: Placement strategy; it is reset before packing starts
            clustering: Merge overlapping crops first; False places each texture on its own

        Raises:
            PlacementCapacityError: If a cluster does not fit on an empty page
            PlacementOverlapError: If the placer returns overlapping geometries
            RuntimeError: If the packer was already packed
        """
        if self._consumed:
            raise RuntimeError("pack() has already been called on this packer")
        self._consumed = True
        if not self.textures:
            logger.warning("No textures to pack, returning empty provider")

        clusters = self.create_clusters() if clustering else self._singleton_clusters()

        atlases: Dict[str, Atlas] = {}
        current_atlas: List[PlacedTextureGeometry] = []
        texture_info_map: Dict[str, PlacedPolygonUVCoords] = {}

        def finalize_current() -> None:
            atlas_id = str(len(atlases))
            atlases[atlas_id] = tuple(current_atlas)
            logger.info(f"Finalized atlas {atlas_id} with {len(current_atlas)} placements")
            current_atlas.clear()

        placer.reset_param()
        for cluster_id, cluster in clusters.items():
            toplevel = cluster.toplevel_texture
            if not placer.can_place(toplevel):
                if current_atlas:
                    finalize_current()
                placer.reset_param()
                if not placer.can_place(toplevel):
                    width, height = toplevel.scaled_size()
                    raise PlacementCapacityError(
                        f"Cluster {cluster_id} from {toplevel.image_path} ({width}x{height}) "
                        f"does not fit on an empty atlas page"
                    )

            atlas_id = str(len(atlases))
            geometry, child_infos = placer.place_texture(toplevel, cluster.children, cluster_id, atlas_id)

            for placed in current_atlas:
                if placed.intersects(geometry):
                    raise PlacementOverlapError(
                        f"Cluster {cluster_id} at {geometry.origin} overlaps cluster "
                        f"{placed.cluster_id} at {placed.origin} on atlas {atlas_id}"
                    )
            current_atlas.append(geometry)

            for (texture_id, _), child_info in zip(cluster.children, child_infos):
                texture_info_map[texture_id] = child_info

        if current_atlas:
            finalize_current()

        logger.info(f"Packed {len(texture_info_map)} textures into {len(atlases)} atlases")
        return PackedAtlasProvider(atlases, clusters, texture_info_map)


class PackedAtlasProvider:
    """Read-only result of AtlasPacker.pack()."""

    def __init__(
        self,
        atlases: Dict[str, Atlas],
        clusters: Dict[str, Cluster],
        texture_info_map: Dict[str, PlacedPolygonUVCoords]
    ):
        # atlas id -> atlas
        self._atlases = dict(atlases)
        # cluster id -> cluster
        self._clusters = dict(clusters)
        # texture id -> placed texture info
        self._texture_info_map = dict(texture_info_map)

    @property
    def atlases(self) -> Mapping[str, Atlas]:
        return MappingProxyType(self._atlases)

    @property
    def clusters(self) -> Mapping[str, Cluster]:
        return MappingProxyType(self._clusters)

    def get_texture_info(self, texture_id: str) -> Optional[PlacedPolygonUVCoords]:
        """Placement of a texture, or None if it was never packed."""
        return self._texture_info_map.get(texture_id)

    def export(
        self,
        exporter,
        output_dir: Union[str, Path],
        texture_cache: TextureCache,
        width: int,
        height: int,
        max_workers: Optional[int] = None
    ) -> Dict[str, Path]:
        """
        Write every atlas page through exporter, one page per worker.

        Args:
            exporter: AtlasExporter doing the composition and file writing
            output_dir: Directory receiving one file per page, named by atlas id
            texture_cache: Source image cache shared by all pages
            width: Page width in pixels
            height: Page height in pixels
            max_workers: Page workers (defaults to the CPU count)

        Returns:
            Dict of atlas id -> written file path

        Raises:
            The first error raised while exporting any page
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        with ThreadPoolExecutor(max_workers=max_workers or workers.default_worker_count()) as executor:
            futures = {
                atlas_id: executor.submit(
                    exporter.export, atlas, self._clusters, output_dir / atlas_id, texture_cache, width, height
                )
                for atlas_id, atlas in self._atlases.items()
            }
            written = {atlas_id: future.result() for atlas_id, future in futures.items()}

        logger.info(f"Exported {len(written)} atlases to {output_dir}")
        return written

    def to_metadata(self, width: int, height: int, files: Optional[Dict[str, Path]] = None) -> AtlasMetadata:
        """Describe pages and texture placements as a serializable model."""
        files = files or {}
        return AtlasMetadata(
            width=width,
            height=height,
            atlases={
                atlas_id: [
                    PlacedGeometryModel(
                        cluster_id=geometry.cluster_id,
                        origin=geometry.origin,
                        width=geometry.width,
                        height=geometry.height,
                        image=str(geometry.image_path),
                    )
                    for geometry in atlas
                ]
                for atlas_id, atlas in self._atlases.items()
            },
            files={atlas_id: path.name for atlas_id, path in files.items()},
            textures={
                texture_id: TexturePlacementModel(
                    atlas_id=info.atlas_id,
                    origin=info.origin,
                    width=info.width,
                    height=info.height,
                    uv_coords=list(info.uv_coords),
                )
                for texture_id, info in sorted(self._texture_info_map.items())
            },
        )
