"""
Value classification for metadata translation.

Decides whether a scalar string is translatable text or structured noise
that must be kept verbatim (URLs, numbers, codes, emails, shortcodes).
"""

import re
from urllib.parse import urlparse

MIN_TRANSLATABLE_LENGTH = 3

NUMERIC_PATTERN = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$")
SHORTCODE_PATTERN = re.compile(r'\[.*?\]', re.DOTALL)


def is_url(value: str) -> bool:
    """True for an absolute URL with scheme and host and no whitespace."""
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc) and parsed.scheme.isalpha()


def is_numeric(value: str) -> bool:
    return bool(NUMERIC_PATTERN.match(value))


def is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def has_shortcode(value: str) -> bool:
    """True when the value contains a bracketed directive such as [gallery ids="1,2"]."""
    return bool(SHORTCODE_PATTERN.search(value))


def should_skip(value: str) -> bool:
    """
    Decide whether a string must pass through untranslated.

    Rules, checked in order: URL, numeric literal, shorter than 3 characters,
    email address, bracketed directive anywhere in the text.

    Examples:
        >>> should_skip("https://example.com/a")
        True
        >>> should_skip("42.5")
        True
        >>> should_skip("ok")
        True
        >>> should_skip("Read more")
        False
    """
    return (
        is_url(value)
        or is_numeric(value)
        or len(value) < MIN_TRANSLATABLE_LENGTH
        or is_email(value)
        or has_shortcode(value)
    )
