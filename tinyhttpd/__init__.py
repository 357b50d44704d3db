"""A small multi-worker HTTP server for static files and simple request bodies."""

__version__ = "0.1.0"