"""Tag normalization for album folders: sort orders, continuous numbering, clean tags."""

from importlib import metadata

try:
    __version__ = metadata.version("radish")
except metadata.PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0"

__all__ = ["__version__"]
