import copy
import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from autotranslate.core import database as db
from autotranslate.core.schema import initialize_database
from autotranslate.logger import get_logger, set_log_mode
from autotranslate.provider.exceptions import ConfigurationError

logger = get_logger(__name__)

# Provider endpoints
DEEPL_API_URL = "https://api.deepl.com/v2/translate"
DEEPL_FREE_API_URL = "https://api-free.deepl.com/v2/translate"
SUPPORTED_SERVICES = ["deepl"]
FORMALITY_VALUES = ["default", "more", "less", "prefer_more", "prefer_less"]

API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"
API_KEY_ENV = "DEEPL_API_KEY"

# Metadata keys that are never copied or translated
SKIPPED_META_KEYS = ("_edit_lock", "_edit_last", "_wp_old_slug", "_wp_old_date")

# Get base directory (project root)
BASE_DIR = Path(__file__).parent.parent

# Default configuration template
DEFAULT_CONFIG = {
    "default_language": "en",
    "machine_translation": {
        "enabled": False,
        "service": "deepl",
        "services": {
            "deepl": {
                "api_key": API_KEY_PLACEHOLDER,
                "formality": "default",
                "api_url": "",  # Empty: derived from the key (":fx" keys use the free endpoint)
                "timeout": 30,
            }
        },
    },
    "copy_post_metas": [],
    "translation": {
        "max_attempts": 3,
        "rate_limit_cooldown": 60,
        "backoff_base": 2,
        "pause_after_success": 0.5,
        "max_texts_per_request": 50,
        "page_size": 50,
    },
    "log_mode": "info",
}

# Numeric fields of the 'translation' section: type and minimum value
TRANSLATION_NUMBERS = {
    "max_attempts": (int, 1),
    "rate_limit_cooldown": (float, 0),
    "backoff_base": (float, 0),
    "pause_after_success": (float, 0),
    "max_texts_per_request": (int, 1),
    "page_size": (int, 1),
}


@dataclass(frozen=True)
class ApiConfig:
    """Provider credential and request options, fixed for the whole run."""
    api_key: str
    formality: Optional[str] = None
    api_url: str = DEEPL_API_URL
    timeout: float = 30.0


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and delays used by the translation client."""
    max_attempts: int = 3
    rate_limit_cooldown: float = 60.0
    backoff_base: float = 2.0
    pause_after_success: float = 0.5
    max_texts_per_request: int = 50


def _merge_defaults(defaults: Dict[str, Any], current: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge stored config over the defaults so new keys always exist."""
    merged = copy.deepcopy(defaults)
    for key, value in current.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


def initialize_app():
    """
    Initialize the application.
    Creates the database and stores the default configuration on first run.
    """
    logger.info("Initializing application...")

    initialize_database()
    logger.info("Database initialized")

    existing_config = db.get_app_config('config')
    if not existing_config:
        logger.info("No config in database, initializing default config")
        save_config(DEFAULT_CONFIG)

    set_log_mode(load_config().get('log_mode', 'info'))
    logger.info("Application initialization complete")


def load_config() -> Dict[str, Any]:
    """Load the configuration from database, merged over the defaults."""
    try:
        config_json = db.get_app_config('config')
    except Exception as e:
        logger.error(f"Failed to load config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not config_json:
        logger.debug("No config in database, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        stored = json.loads(config_json)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    logger.debug("Configuration loaded from database")
    return _merge_defaults(DEFAULT_CONFIG, stored)


def save_config(config: Dict[str, Any]):
    """Save the configuration to database."""
    try:
        config_json = json.dumps(config, ensure_ascii=False)
        db.set_app_config('config', config_json)
        logger.info("Configuration saved to database")
    except Exception as e:
        logger.error(f"Failed to save config to database: {e}")
        raise


def set_config_value(dotted_key: str, value: Any) -> Dict[str, Any]:
    """
    Set one configuration value addressed by a dotted path and persist it.

    Example:
        >>> set_config_value("machine_translation.services.deepl.formality", "more")
    """
    config = load_config()
    keys = dotted_key.split('.')
    node = config
    for key in keys[:-1]:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    node[keys[-1]] = value
    save_config(config)
    return config


def get_copy_metas(config: Optional[Dict[str, Any]] = None) -> List[str]:
    """Metadata keys copied verbatim instead of translated."""
    config = config if config is not None else load_config()
    return [key for key in config.get('copy_post_metas', []) if isinstance(key, str)]


def get_default_language(config: Optional[Dict[str, Any]] = None) -> str:
    config = config if config is not None else load_config()
    return config.get('default_language') or DEFAULT_CONFIG['default_language']


def check_translation_number(key: str, value: Any) -> Optional[str]:
    """Return an error message if value is not valid for translation.<key>."""
    kind, minimum = TRANSLATION_NUMBERS[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return f"'translation.{key}' must be a number"
    if kind is int and value != int(value):
        return f"'translation.{key}' must be an integer"
    if value < minimum:
        return f"'translation.{key}' must be at least {minimum}"
    return None


def get_translation_setting(key: str, config: Optional[Dict[str, Any]] = None):
    """
    Read one numeric value of the 'translation' section.

    Raises:
        ConfigurationError: If the stored value is not a valid number
    """
    config = config if config is not None else load_config()
    settings = config.get('translation')
    if not isinstance(settings, dict):
        settings = {}
    value = settings.get(key, DEFAULT_CONFIG['translation'][key])
    error = check_translation_number(key, value)
    if error:
        raise ConfigurationError(
            error,
            code="invalid_translation_settings",
            details={"key": f"translation.{key}", "value": value},
        )
    kind, _ = TRANSLATION_NUMBERS[key]
    return kind(value)


def build_retry_policy(config: Optional[Dict[str, Any]] = None) -> RetryPolicy:
    """
    Build the retry policy from the 'translation' section.

    Raises:
        ConfigurationError: If a stored value is not a valid number
    """
    config = config if config is not None else load_config()
    return RetryPolicy(
        max_attempts=get_translation_setting('max_attempts', config),
        rate_limit_cooldown=get_translation_setting('rate_limit_cooldown', config),
        backoff_base=get_translation_setting('backoff_base', config),
        pause_after_success=get_translation_setting('pause_after_success', config),
        max_texts_per_request=get_translation_setting('max_texts_per_request', config),
    )


def build_api_config(config: Optional[Dict[str, Any]] = None) -> ApiConfig:
    """
    Build the immutable provider configuration for one run.

    Raises:
        ConfigurationError: If machine translation is disabled, the service is
            unsupported, or no API key is available.
    """
    config = config if config is not None else load_config()
    mt = config.get('machine_translation', {})

    if not mt.get('enabled'):
        raise ConfigurationError(
            "Machine translation is disabled. Enable it in the configuration first.",
            code="mt_disabled",
        )

    service = mt.get('service', 'deepl')
    if service not in SUPPORTED_SERVICES:
        raise ConfigurationError(
            f"Unsupported machine translation service '{service}'",
            code="mt_service_unsupported",
            details={"service": service},
        )

    service_config = mt.get('services', {}).get(service, {})
    api_key = os.environ.get(API_KEY_ENV) or service_config.get('api_key', '')
    if not api_key or api_key == API_KEY_PLACEHOLDER:
        raise ConfigurationError(
            "DeepL API key not configured.",
            code="mt_api_key_missing",
            details={"service": service, "missing_field": "api_key"},
        )

    formality = service_config.get('formality') or ''
    if formality == 'default':
        formality = ''

    api_url = service_config.get('api_url') or (
        DEEPL_FREE_API_URL if api_key.endswith(':fx') else DEEPL_API_URL
    )

    return ApiConfig(
        api_key=api_key,
        formality=formality or None,
        api_url=api_url,
        timeout=float(service_config.get('timeout') or DEFAULT_CONFIG['machine_translation']['services']['deepl']['timeout']),
    )


def mask_api_key(api_key: str) -> str:
    """Hide all but the last four characters of a key."""
    if not api_key or api_key == API_KEY_PLACEHOLDER:
        return api_key
    return "*" * max(len(api_key) - 4, 0) + api_key[-4:]
