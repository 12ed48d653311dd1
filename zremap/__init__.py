"""Conservative remapping of depth-space tracer data onto z-star layers."""
from . import constants, grid
from .errors import ZRemapError
from .remap import RemapResult, remap_from_source

__all__ = ["constants", "grid", "ZRemapError", "RemapResult", "remap_from_source"]
