"""Supplier payment allocation engine for station administration."""

__version__ = "0.1.0"
