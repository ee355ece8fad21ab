"""Git smart-HTTP reverse proxy for browser-based Git clients."""

__version__ = "0.1.0"
