"""Used-computer marketplace reverse-auction API."""

__version__ = "0.1.0"
