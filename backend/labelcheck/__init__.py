"""Alcohol label verification against application data."""

__version__ = "1.0.0"
