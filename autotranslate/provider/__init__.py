"""
Provider Module

This module provides the machine translation client (provider/client.py),
the DeepL HTTP transport (provider/transport.py) and their exceptions.

Only the exceptions are re-exported here: config.py imports them and
client.py imports config.py.
"""

from autotranslate.provider.exceptions import ConfigurationError, TranslationError, TransportError

__all__ = ['ConfigurationError', 'TranslationError', 'TransportError']
