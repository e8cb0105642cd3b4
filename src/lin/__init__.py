"""lin - command-line client for Linear with a local metadata cache."""

from lin._version import version as __version__

__all__ = ["__version__"]
