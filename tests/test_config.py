"""Tests for configuration loading and the per-run provider configuration."""

import pytest

from autotranslate import config
from autotranslate.config import (
    DEEPL_API_URL,
    DEEPL_FREE_API_URL,
    RetryPolicy,
    build_api_config,
    build_retry_policy,
    load_config,
    mask_api_key,
    save_config,
    set_config_value,
)
from autotranslate.provider.exceptions import ConfigurationError


class TestLoadSave:
    def test_defaults_when_empty(self, temp_db):
        assert load_config() == config.DEFAULT_CONFIG

    def test_initialize_app_stores_defaults(self, temp_db):
        config.initialize_app()
        assert load_config()["default_language"] == "en"

    def test_stored_values_merge_over_defaults(self, temp_db):
        save_config({"default_language": "fr", "translation": {"page_size": 10}})
        loaded = load_config()
        assert loaded["default_language"] == "fr"
        assert loaded["translation"]["page_size"] == 10
        assert loaded["translation"]["max_attempts"] == 3

    def test_set_config_value(self, temp_db):
        set_config_value("machine_translation.services.deepl.formality", "more")
        assert load_config()["machine_translation"]["services"]["deepl"]["formality"] == "more"


class TestBuildApiConfig:
    def test_disabled(self, mt_config):
        mt_config["machine_translation"]["enabled"] = False
        with pytest.raises(ConfigurationError) as exc_info:
            build_api_config(mt_config)
        assert exc_info.value.code == "mt_disabled"

    def test_unsupported_service(self, mt_config):
        mt_config["machine_translation"]["service"] = "babelfish"
        with pytest.raises(ConfigurationError) as exc_info:
            build_api_config(mt_config)
        assert exc_info.value.code == "mt_service_unsupported"

    def test_placeholder_key_is_missing(self, mt_config):
        mt_config["machine_translation"]["services"]["deepl"]["api_key"] = config.API_KEY_PLACEHOLDER
        with pytest.raises(ConfigurationError) as exc_info:
            build_api_config(mt_config)
        assert exc_info.value.code == "mt_api_key_missing"

    def test_environment_key_wins(self, mt_config, monkeypatch):
        monkeypatch.setenv("DEEPL_API_KEY", "env-key")
        assert build_api_config(mt_config).api_key == "env-key"

    def test_endpoint_from_key(self, mt_config):
        assert build_api_config(mt_config).api_url == DEEPL_API_URL
        mt_config["machine_translation"]["services"]["deepl"]["api_key"] = "abc:fx"
        assert build_api_config(mt_config).api_url == DEEPL_FREE_API_URL

    def test_formality(self, mt_config):
        assert build_api_config(mt_config).formality is None
        mt_config["machine_translation"]["services"]["deepl"]["formality"] = "prefer_less"
        assert build_api_config(mt_config).formality == "prefer_less"

    def test_api_config_is_immutable(self, mt_config):
        api_config = build_api_config(mt_config)
        with pytest.raises(AttributeError):
            api_config.api_key = "other"


class TestRetryPolicy:
    def test_defaults(self, mt_config):
        assert build_retry_policy(mt_config) == RetryPolicy()

    def test_attempts_at_least_one(self, mt_config):
        mt_config["translation"]["max_attempts"] = 0
        with pytest.raises(ConfigurationError) as exc_info:
            build_retry_policy(mt_config)
        assert exc_info.value.code == "invalid_translation_settings"

    @pytest.mark.parametrize("key,value", [
        ("max_attempts", "x"),
        ("max_attempts", 2.5),
        ("rate_limit_cooldown", None),
        ("backoff_base", True),
        ("max_texts_per_request", float("inf")),
    ])
    def test_non_numeric_settings_rejected(self, mt_config, key, value):
        mt_config["translation"][key] = value
        with pytest.raises(ConfigurationError) as exc_info:
            build_retry_policy(mt_config)
        assert exc_info.value.details["key"] == f"translation.{key}"

    def test_whole_float_accepted_for_integer_setting(self, mt_config):
        mt_config["translation"]["max_attempts"] = 4.0
        assert build_retry_policy(mt_config).max_attempts == 4


def test_mask_api_key():
    assert mask_api_key("abcdefgh1234") == "********1234"
    assert mask_api_key("") == ""
