"""Zapdeps - include discovery and library resolution for embedded sketches."""

__version__ = "0.1.0"
