"""
Thread-safe cache of decoded source images.

Each path is decoded at most once while it stays cached; concurrent callers
asking for the same path wait for the first load instead of decoding again.
"""

import logging
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Optional, Union

from PIL import Image

from atlaspack.exceptions import TextureLoadError

logger = logging.getLogger(__name__)


class TextureCache:
    """
    Path-keyed cache of RGBA images with optional LRU eviction.

    Args:
        capacity: Maximum number of images kept; None keeps everything
    """

    def __init__(self, capacity: Optional[int] = None):
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be >= 1 or None, got {capacity}")
        self.capacity = capacity
        self._images: "OrderedDict[Path, Image.Image]" = OrderedDict()
        self._lock = threading.Lock()
        self._path_locks: Dict[Path, threading.Lock] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)

    def __contains__(self, path) -> bool:
        with self._lock:
            return Path(path) in self._images

    def get(self, path: Union[str, Path]) -> Image.Image:
        """
        Return the decoded image at path, loading it on first use.

        Raises:
            TextureLoadError: If the file is missing or cannot be decoded
        """
        path = Path(path)
        with self._lock:
            if path in self._images:
                self._images.move_to_end(path)
                return self._images[path]
            path_lock = self._path_locks.setdefault(path, threading.Lock())

        with path_lock:
            # Another thread may have finished loading while we waited
            with self._lock:
                if path in self._images:
                    self._images.move_to_end(path)
                    return self._images[path]

            image = self._load(path)

            with self._lock:
                self._images[path] = image
                if self.capacity is not None:
                    while len(self._images) > self.capacity:
                        evicted, _ = self._images.popitem(last=False)
                        logger.debug(f"Evicted {evicted} from texture cache")
            return image

    def clear(self) -> None:
        with self._lock:
            self._images.clear()
            self._path_locks.clear()

    @staticmethod
    def _load(path: Path) -> Image.Image:
        try:
            with Image.open(path) as img:
                image = img.convert('RGBA')
        except OSError as e:
            raise TextureLoadError(f"Failed to load texture {path}: {e}") from e
        logger.debug(f"Loaded texture {path} ({image.width}x{image.height})")
        return image
