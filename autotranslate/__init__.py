"""Batch machine translation of a content catalog with translation-pair linking."""

__version__ = "1.4.0"
