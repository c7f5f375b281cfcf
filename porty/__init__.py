"""porty: local listening-port inspector."""

__version__ = "0.1.3"
