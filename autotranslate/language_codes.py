"""
Language code mappings and utilities.

Standards:
- ISO 639-1: 2-letter language codes (en, de, fr)
- BCP 47: Language + Region codes (en-GB, pt-BR)

Content languages are stored lower-case ('de', 'pt-br', as slugs usually are).
The translation provider expects upper-case codes: source codes without region
('EN'), target codes with their region when given ('PT-BR').
"""

from typing import Optional, Dict

# Languages supported by the DeepL API
# Source: https://developers.deepl.com/docs/resources/supported-languages
ISO_639_1 = {
    'ar': 'Arabic',
    'bg': 'Bulgarian',
    'cs': 'Czech',
    'da': 'Danish',
    'de': 'German',
    'el': 'Greek',
    'en': 'English',
    'es': 'Spanish',
    'et': 'Estonian',
    'fi': 'Finnish',
    'fr': 'French',
    'hu': 'Hungarian',
    'id': 'Indonesian',
    'it': 'Italian',
    'ja': 'Japanese',
    'ko': 'Korean',
    'lt': 'Lithuanian',
    'lv': 'Latvian',
    'nb': 'Norwegian Bokmål',
    'nl': 'Dutch',
    'pl': 'Polish',
    'pt': 'Portuguese',
    'ro': 'Romanian',
    'ru': 'Russian',
    'sk': 'Slovak',
    'sl': 'Slovenian',
    'sv': 'Swedish',
    'tr': 'Turkish',
    'uk': 'Ukrainian',
    'zh': 'Chinese',
}

# BCP 47 language-region codes accepted as target languages
BCP_47_VARIANTS = {
    'en-gb': 'English (United Kingdom)',
    'en-us': 'English (United States)',
    'pt-br': 'Portuguese (Brazil)',
    'pt-pt': 'Portuguese (Portugal)',
    'zh-hans': 'Chinese (Simplified)',
    'zh-hant': 'Chinese (Traditional)',
}

# Combined mapping
ALL_LANGUAGE_CODES = {**ISO_639_1, **BCP_47_VARIANTS}


def normalize_language_code(code: str) -> str:
    """
    Normalize a language code to the stored form.

    Examples:
        >>> normalize_language_code('DE')
        'de'
        >>> normalize_language_code('pt_BR')
        'pt-br'
    """
    return (code or '').strip().replace('_', '-').lower()


def is_valid_language_code(code: str) -> bool:
    """
    Check if a language code is supported.

    Examples:
        >>> is_valid_language_code('de')
        True
        >>> is_valid_language_code('pt-BR')
        True
        >>> is_valid_language_code('invalid')
        False
    """
    return normalize_language_code(code) in ALL_LANGUAGE_CODES


def get_language_name(code: str) -> Optional[str]:
    """Get the full language name from code, or None if unknown."""
    return ALL_LANGUAGE_CODES.get(normalize_language_code(code))


def extract_base_language(code: str) -> str:
    """
    Extract base language from code (remove region).

    Examples:
        >>> extract_base_language('pt-br')
        'pt'
        >>> extract_base_language('fr')
        'fr'
    """
    return normalize_language_code(code).split('-')[0]


def languages_match(code1: str, code2: str, strict: bool = False) -> bool:
    """
    Check if two language codes match.

    Args:
        code1: First language code
        code2: Second language code
        strict: If True, must match exactly. If False, base language match is ok.

    Examples:
        >>> languages_match('en', 'en-gb')
        True
        >>> languages_match('en', 'en-GB', strict=True)
        False
    """
    if strict:
        return normalize_language_code(code1) == normalize_language_code(code2)

    return extract_base_language(code1) == extract_base_language(code2)


def to_provider_source(code: str) -> str:
    """
    Provider source language code: base language, upper-case.

    Examples:
        >>> to_provider_source('en-gb')
        'EN'
    """
    return extract_base_language(code).upper()


def to_provider_target(code: str) -> str:
    """
    Provider target language code: upper-case, region kept.

    Examples:
        >>> to_provider_target('de')
        'DE'
        >>> to_provider_target('pt_br')
        'PT-BR'
    """
    return normalize_language_code(code).upper()


def get_all_language_codes() -> Dict[str, str]:
    """
    Get all supported language codes.

    Returns:
        Dict mapping code to language name
    """
    return ALL_LANGUAGE_CODES.copy()
