"""Moovly driver / job spreadsheet bulk importer."""

__version__ = "0.1.0"
