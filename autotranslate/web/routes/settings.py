"""Settings management API routes."""

from __future__ import annotations

import copy
from typing import Any, Dict

from flask import Blueprint, jsonify, request

import autotranslate.config as config
from autotranslate import language_codes as lc
from autotranslate.logger import get_logger, set_log_mode

settings_bp = Blueprint("settings", __name__)
logger = get_logger(__name__)

TOP_LEVEL_KEYS = ("default_language", "copy_post_metas", "translation", "log_mode")


def _masked(current_config: Dict[str, Any]) -> Dict[str, Any]:
    masked = copy.deepcopy(current_config)
    for service_config in masked.get("machine_translation", {}).get("services", {}).values():
        if isinstance(service_config, dict) and "api_key" in service_config:
            service_config["api_key"] = config.mask_api_key(service_config["api_key"])
    return masked


@settings_bp.get("")
def get_settings():
    """Return current configuration with the API key masked."""
    current_config = config.load_config()
    logger.debug("Settings retrieved")
    return jsonify({
        "config": _masked(current_config),
        "meta": {
            "supported_services": config.SUPPORTED_SERVICES,
            "formality_values": config.FORMALITY_VALUES,
            "languages": lc.get_all_language_codes(),
        },
    })


@settings_bp.put("")
def update_settings():
    """Update configuration; omitted fields keep their stored value."""
    data = request.get_json(silent=True)
    if not data or "config" not in data:
        return jsonify({"error": "Request body must contain a 'config' object"}), 400

    new_config = data["config"]
    validation_error = validate_config(new_config)
    if validation_error:
        return jsonify({"error": validation_error}), 400

    current_config = config.load_config()

    mt_update = new_config.get("machine_translation")
    if isinstance(mt_update, dict):
        mt_current = current_config.setdefault("machine_translation", {})
        for key in ("enabled", "service"):
            if key in mt_update:
                mt_current[key] = mt_update[key]
        for service, service_update in (mt_update.get("services") or {}).items():
            service_current = mt_current.setdefault("services", {}).setdefault(service, {})
            service_update = dict(service_update)
            # A masked key coming back from the UI means "unchanged"
            if "*" in str(service_update.get("api_key", "")):
                service_update.pop("api_key")
            service_current.update(service_update)

    for key in TOP_LEVEL_KEYS:
        if key in new_config:
            if key == "translation" and isinstance(current_config.get(key), dict):
                current_config[key].update(new_config[key])
            else:
                current_config[key] = new_config[key]

    config.save_config(current_config)
    if "log_mode" in new_config:
        set_log_mode(new_config["log_mode"])

    logger.info("Settings updated")
    return jsonify({"message": "Settings updated", "config": _masked(current_config)})


def validate_config(config_dict: Dict[str, Any]) -> str | None:
    """Validate configuration structure and return error message if invalid."""
    if not isinstance(config_dict, dict):
        return "Configuration must be an object"

    mt = config_dict.get("machine_translation")
    if mt is not None:
        if not isinstance(mt, dict):
            return "'machine_translation' must be an object"
        if "service" in mt and mt["service"] not in config.SUPPORTED_SERVICES:
            return f"Unsupported machine translation service: {mt['service']}"
        services = mt.get("services") or {}
        if not isinstance(services, dict) or not all(isinstance(v, dict) for v in services.values()):
            return "'machine_translation.services' must map service names to objects"
        for service_config in services.values():
            formality = service_config.get("formality")
            if formality is not None and formality not in config.FORMALITY_VALUES:
                return f"Invalid formality: {formality}"

    if "copy_post_metas" in config_dict:
        metas = config_dict["copy_post_metas"]
        if not isinstance(metas, list) or not all(isinstance(key, str) for key in metas):
            return "'copy_post_metas' must be a list of strings"

    if "translation" in config_dict:
        translation = config_dict["translation"]
        if not isinstance(translation, dict):
            return "'translation' must be an object"
        for key, value in translation.items():
            if key in config.TRANSLATION_NUMBERS:
                error = config.check_translation_number(key, value)
                if error:
                    return error

    if "log_mode" in config_dict and config_dict["log_mode"] not in ("off", "info", "debug"):
        return f"Invalid log mode: {config_dict['log_mode']}"

    if "default_language" in config_dict:
        language = config_dict["default_language"]
        if not isinstance(language, str) or not language.strip():
            return "'default_language' must be a non-empty string"

    return None
