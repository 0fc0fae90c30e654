"""agconf: sync canonical agent configuration into downstream repositories."""

__version__ = "0.3.0"
