"""Structural variant detection from paired-end read mappings."""

__version__ = "0.1.0"