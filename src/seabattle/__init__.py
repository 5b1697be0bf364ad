"""Two-player Sea Battle game server."""

__version__ = "0.1.0"
