"""Recurring practice schedule resolution for swim teams."""

__version__ = "0.1.0"
