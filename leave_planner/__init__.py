"""Parental leave planning engine."""

__version__ = "1.0.0"
