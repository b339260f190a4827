"""
Translation Provider Exceptions

This module contains exception classes for the translation provider layer.
Separated to avoid circular imports between client.py and transport.py.
"""


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(TranslationError):
    """Fatal configuration problem; a run must not start."""

    def __init__(self, message: str, code: str = "config_error", details: dict = None):
        super().__init__(message, code=code, details=details)


class TransportError(TranslationError):
    """The request never produced an HTTP response (connect error, timeout...)."""
