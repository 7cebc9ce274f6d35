"""Citizenly: resident and household registry services."""

__version__ = "0.1.0"
