"""Export task collections to pretty-printed JSON."""

__version__ = "0.1.0"
