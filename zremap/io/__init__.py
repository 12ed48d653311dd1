"""I/O helper subpackage."""
from . import grid, source, writer

__all__ = ["grid", "source", "writer"]
