"""Tests for the metadata structure walker."""

import json

import pytest

from autotranslate.config import ApiConfig, RetryPolicy
from autotranslate.provider.client import TranslationClient
from autotranslate.translation.walker import (
    EncodedValue,
    MappingValue,
    OpaqueValue,
    ScalarValue,
    SequenceValue,
    StructureWalker,
    gather_texts,
    lift,
)

from conftest import FakeTransport, SleepRecorder, dictionary_translator


@pytest.fixture
def french_transport():
    return FakeTransport(translate=dictionary_translator({
        "red": "rouge",
        "blue": "bleu",
        "Summer sale": "Soldes d'été",
        "Read more": "Lire la suite",
    }))


@pytest.fixture
def walker(french_transport):
    client = TranslationClient(ApiConfig(api_key="k"), RetryPolicy(), transport=french_transport, sleep=SleepRecorder())
    return StructureWalker(client, max_texts_per_request=50)


# =============================================================================
# Lifting
# =============================================================================


class TestLift:
    def test_scalar_and_opaque(self):
        assert lift("red") == ScalarValue("red")
        assert lift(5) == OpaqueValue(5)
        assert lift(None) == OpaqueValue(None)
        assert lift(True) == OpaqueValue(True)

    def test_nested(self):
        node = lift({"a": ["x", 1]})
        assert isinstance(node, MappingValue)
        key, inner = node.entries[0]
        assert key == "a"
        assert inner == SequenceValue((ScalarValue("x"), OpaqueValue(1)))

    def test_json_string_is_encoded_value(self):
        node = lift('{"label": "red"}')
        assert isinstance(node, EncodedValue)
        assert isinstance(node.inner, MappingValue)

    def test_cycle_becomes_opaque(self):
        items = ["red"]
        items.append(items)
        node = lift(items)
        assert isinstance(node.items[1], OpaqueValue)

    def test_gather_skips_untranslatable(self):
        node = lift({"color": "red", "count": 5, "url": "https://example.com", "tags": ["blue", "ok"]})
        assert gather_texts(node) == ["red", "blue"]


# =============================================================================
# translate_value
# =============================================================================


class TestTranslateValue:
    def test_mapping_scenario(self, walker):
        value = {"color": "red", "count": 5, "url": "https://example.com"}
        result = walker.translate_value(value, "en", "fr")
        assert result == {"color": "rouge", "count": 5, "url": "https://example.com"}

    def test_shape_is_preserved(self, walker):
        value = {
            "title": "Summer sale",
            "items": [{"label": "Read more", "href": "https://example.com/x"}, {"label": "blue", "id": 7}],
            "nested": {"deep": ["red", "42", None]},
        }
        result = walker.translate_value(value, "en", "fr")
        assert result == {
            "title": "Soldes d'été",
            "items": [{"label": "Lire la suite", "href": "https://example.com/x"}, {"label": "bleu", "id": 7}],
            "nested": {"deep": ["rouge", "42", None]},
        }

    def test_all_leaves_in_one_request(self, walker, french_transport):
        walker.translate_value({"a": "red", "b": ["blue", "Read more"]}, "en", "fr")
        assert len(french_transport.batches) == 1
        assert french_transport.batches[0].texts == ["red", "blue", "Read more"]

    def test_chunks_respect_request_limit(self, french_transport):
        client = TranslationClient(ApiConfig(api_key="k"), RetryPolicy(), transport=french_transport, sleep=SleepRecorder())
        walker = StructureWalker(client, max_texts_per_request=2)
        result = walker.translate_value(["red", "blue", "Read more"], "en", "fr")
        assert result == ["rouge", "bleu", "Lire la suite"]
        assert [len(batch.texts) for batch in french_transport.batches] == [2, 1]

    @pytest.mark.parametrize("value", [None, "", [], {}, 5, 2.5, False])
    def test_empty_and_opaque_values_pass_through(self, walker, french_transport, value):
        assert walker.translate_value(value, "en", "fr") == value
        assert french_transport.batches == []

    def test_skippable_scalar_passes_through(self, walker, french_transport):
        assert walker.translate_value("https://example.com", "en", "fr") == "https://example.com"
        assert french_transport.batches == []

    def test_json_string_round_trip(self, walker):
        value = json.dumps({"color": "red", "sizes": [1, 2]}, separators=(",", ":"))
        result = walker.translate_value(value, "en", "fr")
        assert isinstance(result, str)
        assert result == '{"color":"rouge","sizes":[1,2]}'

    def test_json_string_keeps_spaced_style(self, walker):
        value = json.dumps(["red", "blue"])
        assert walker.translate_value(value, "en", "fr") == '["rouge", "bleu"]'

    def test_degraded_provider_keeps_originals(self, sleeps):
        transport = FakeTransport(responses=[500, 500, 500])
        client = TranslationClient(ApiConfig(api_key="k"), RetryPolicy(), transport=transport, sleep=sleeps)
        walker = StructureWalker(client)
        value = {"color": "red"}
        assert walker.translate_value(value, "en", "fr") == {"color": "red"}
