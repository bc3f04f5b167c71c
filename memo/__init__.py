"""Memo relay: streaming sentence analysis for the Memo Translate extension."""

__version__ = "0.1.0"
