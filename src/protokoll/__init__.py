"""Hierarchical context resolution for transcript routing."""

__version__ = "0.1.0"
