"""sqldeck - keyboard-driven terminal client for browsing and querying databases."""

__version__ = "0.1.0"
