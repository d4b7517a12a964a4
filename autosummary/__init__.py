"""Annotate project files with generated summary blocks and index them on disk."""

__version__ = "0.1.0"
