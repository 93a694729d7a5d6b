"""ENS Hub API - query, analyse and export ENS lifecycle events."""

__version__ = "0.1.0"
