"""Custom exceptions for atlas packing operations"""


class AtlasPackerError(Exception):
    """Base exception for atlas packer errors"""
    pass


class InvalidDownsampleFactorError(AtlasPackerError, ValueError):
    """Downsample factor outside [0, 1]"""
    pass


class DegenerateTextureError(AtlasPackerError, ValueError):
    """Polygon too small to describe a croppable region"""
    pass


class TextureLoadError(AtlasPackerError, OSError):
    """Source image missing or undecodable"""
    pass


class PlacementCapacityError(AtlasPackerError):
    """Texture does not fit even on an empty atlas page"""
    pass


class PlacementOverlapError(AtlasPackerError):
    """Placer returned a geometry overlapping an earlier one on the same page"""
    pass
