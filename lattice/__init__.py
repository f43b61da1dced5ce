"""lattice — maintenance agents for a shared knowledge graph."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("lattice")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development
