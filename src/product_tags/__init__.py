"""Keyword-validated tag list widget."""

__version__ = "0.1.0"
