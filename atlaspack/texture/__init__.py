"""
Texture model: cropped polygon regions, cluster toplevels and the image cache.
"""
from .cache import TextureCache
from .cropped import CroppedTexture, DownsampleFactor, MaskPolicy, downsample
from .toplevel import ChildTexture, ToplevelTexture
from .utils import get_image_size

__all__ = [
    'TextureCache',
    'CroppedTexture',
    'DownsampleFactor',
    'MaskPolicy',
    'downsample',
    'ChildTexture',
    'ToplevelTexture',
    'get_image_size',
]
