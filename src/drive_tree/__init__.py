"""Hierarchical consistency engine for a remote folder/file store."""

__version__ = "0.1.0"
