"""One-off task execution client for a remote CI build server."""

__version__ = "0.3.0"
