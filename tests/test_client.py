"""Tests for the translation client retry state machine and the DeepL transport."""

import json

import httpx
import pytest

from autotranslate.config import DEEPL_FREE_API_URL, ApiConfig, RetryPolicy
from autotranslate.provider.client import RetryState, TranslationClient
from autotranslate.provider.exceptions import TransportError
from autotranslate.provider.transport import DeepLTransport, ProviderResponse, TranslationRequestBatch

from conftest import FakeTransport, SleepRecorder, dictionary_translator


def make_client(transport, sleeps, **api_options):
    return TranslationClient(ApiConfig(api_key="test-key", **api_options), RetryPolicy(), transport=transport, sleep=sleeps)


# =============================================================================
# translate_batch
# =============================================================================


class TestTranslateBatch:
    def test_length_and_order_preserved(self, sleeps):
        transport = FakeTransport(translate=dictionary_translator({"Hello": "Hallo", "World": "Welt"}))
        client = make_client(transport, sleeps)

        result = client.translate_batch(["Hello", "", "World", "   "], "en", "de")

        assert result.ok
        assert result.texts == ["Hallo", "", "Welt", "   "]
        # Blank entries are never sent
        assert transport.batches[0].texts == ["Hello", "World"]
        assert transport.batches[0].positions == [0, 2]

    def test_all_blank_makes_no_request(self, sleeps):
        transport = FakeTransport()
        client = make_client(transport, sleeps)

        result = client.translate_batch(["", "  "], "en", "de")

        assert result.texts == ["", "  "]
        assert transport.batches == []
        assert sleeps.calls == []

    def test_provider_language_codes(self, sleeps):
        transport = FakeTransport()
        client = make_client(transport, sleeps, formality="more")

        client.translate_batch(["Colour"], "en-gb", "pt-br")

        batch = transport.batches[0]
        assert batch.source_lang == "EN"
        assert batch.target_lang == "PT-BR"
        assert batch.formality == "more"

    def test_rate_limited_twice_then_success(self, sleeps):
        transport = FakeTransport(responses=[429, 429], translate=dictionary_translator({"Hello": "Hallo"}))
        client = make_client(transport, sleeps)

        result = client.translate_batch(["Hello"], "en", "de")

        assert result.ok
        assert result.texts == ["Hallo"]
        assert len(transport.batches) == 3
        assert sleeps.calls == [60.0, 60.0, 0.5]
        assert [state for state, _ in result.transitions] == [
            RetryState.ATTEMPTING, RetryState.COOLING_DOWN,
            RetryState.ATTEMPTING, RetryState.COOLING_DOWN,
            RetryState.ATTEMPTING, RetryState.SUCCEEDED,
        ]

    def test_server_errors_back_off_linearly(self, sleeps):
        transport = FakeTransport(responses=[500, 503])
        client = make_client(transport, sleeps)

        result = client.translate_batch(["Hello"], "en", "de")

        assert result.ok
        assert sleeps.calls == [2.0, 4.0, 0.5]

    def test_exhaustion_returns_originals(self, sleeps):
        transport = FakeTransport(responses=[500, 429, TransportError("down", code="transport")])
        client = make_client(transport, sleeps)

        result = client.translate_batch(["Hello", "World"], "en", "de")

        assert result.degraded
        assert result.texts == ["Hello", "World"]
        assert "down" in result.reason
        assert result.transitions[-1] == (RetryState.EXHAUSTED, 3)
        # No wait after the final attempt
        assert sleeps.calls == [2.0, 60.0]
        assert client.get_usage()["degraded_batches"] == 1

    def test_unexpected_transport_exception_is_retried(self, sleeps):
        transport = FakeTransport(responses=[RuntimeError("boom")])
        client = make_client(transport, sleeps)

        result = client.translate_batch(["Hello"], "en", "de")

        assert result.ok
        assert result.texts == ["Hello [DE]"]
        assert result.transitions[1] == (RetryState.BACKING_OFF, 1)

    def test_malformed_payload_is_retried(self, sleeps):
        transport = FakeTransport(responses=[
            ProviderResponse(status_code=200, data={"translations": [{"text": "only one"}]}),
            ProviderResponse(status_code=200, data=None),
        ])
        client = make_client(transport, sleeps)

        result = client.translate_batch(["Hello", "World"], "en", "de")

        assert result.ok
        assert len(transport.batches) == 3
        assert result.texts == ["Hello [DE]", "World [DE]"]

    def test_translate_text_falls_back_on_empty(self, sleeps):
        transport = FakeTransport(translate=lambda text, target: "")
        client = make_client(transport, sleeps)

        assert client.translate_text("Hello", "en", "de") == "Hello"

    def test_usage_counters(self, sleeps):
        client = make_client(FakeTransport(), sleeps)
        client.translate_batch(["abc", "de"], "en", "fr")
        assert client.get_usage() == {"requests": 1, "characters": 5, "degraded_batches": 0}


# =============================================================================
# DeepL transport (wire format)
# =============================================================================


class TestDeepLTransport:
    def _batch(self, formality=None):
        return TranslationRequestBatch(
            texts=["Hello", "World"], positions=[0, 1],
            source_lang="EN", target_lang="DE", formality=formality,
        )

    def test_request_body_and_headers(self):
        captured = {}

        def handler(request: httpx.Request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"translations": [{"text": "Hallo"}, {"text": "Welt"}]})

        transport = DeepLTransport(ApiConfig(api_key="secret"), http_transport=httpx.MockTransport(handler))
        response = transport.send(self._batch(formality="less"))

        assert captured["url"] == "https://api.deepl.com/v2/translate"
        assert captured["auth"] == "DeepL-Auth-Key secret"
        assert captured["body"] == {
            "text": ["Hello", "World"],
            "source_lang": "EN",
            "target_lang": "DE",
            "formality": "less",
        }
        assert response.status_code == 200
        assert response.data["translations"][1]["text"] == "Welt"

    def test_formality_omitted_when_unset(self):
        transport = DeepLTransport(ApiConfig(api_key="secret"))
        assert "formality" not in transport.build_body(self._batch())

    def test_free_endpoint(self):
        captured = {}

        def handler(request: httpx.Request):
            captured["url"] = str(request.url)
            return httpx.Response(200, json={"translations": [{"text": "a"}, {"text": "b"}]})

        api_config = ApiConfig(api_key="secret:fx", api_url=DEEPL_FREE_API_URL)
        DeepLTransport(api_config, http_transport=httpx.MockTransport(handler)).send(self._batch())

        assert captured["url"] == "https://api-free.deepl.com/v2/translate"

    def test_non_json_error_body(self):
        def handler(request: httpx.Request):
            return httpx.Response(456, text="Quota exceeded")

        transport = DeepLTransport(ApiConfig(api_key="secret"), http_transport=httpx.MockTransport(handler))
        response = transport.send(self._batch())

        assert response.status_code == 456
        assert response.data is None
        assert response.text == "Quota exceeded"

    def test_connection_error_raises_transport_error(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        transport = DeepLTransport(ApiConfig(api_key="secret"), http_transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError) as exc_info:
            transport.send(self._batch())
        assert exc_info.value.code == "transport"

    def test_non_ascii_key_raises_transport_error(self):
        transport = DeepLTransport(
            ApiConfig(api_key="schl\u00fcssel"),
            http_transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )
        with pytest.raises(TransportError) as exc_info:
            transport.send(self._batch())
        assert exc_info.value.code == "invalid_request"

    def test_unencodable_key_degrades_instead_of_raising(self):
        api_config = ApiConfig(api_key="schl\u00fcssel")
        sleeps = SleepRecorder()
        client = TranslationClient(
            api_config,
            transport=DeepLTransport(api_config, http_transport=httpx.MockTransport(lambda request: httpx.Response(200))),
            sleep=sleeps,
        )

        result = client.translate_batch(["Hello"], "en", "de")

        assert result.degraded
        assert result.texts == ["Hello"]
        assert sleeps.calls == [2.0, 4.0]

    def test_client_over_mock_transport(self):
        def handler(request: httpx.Request):
            texts = json.loads(request.content)["text"]
            return httpx.Response(200, json={"translations": [{"text": t.upper()} for t in texts]})

        api_config = ApiConfig(api_key="secret")
        sleeps = SleepRecorder()
        client = TranslationClient(
            api_config,
            transport=DeepLTransport(api_config, http_transport=httpx.MockTransport(handler)),
            sleep=sleeps,
        )

        assert client.translate_batch(["red", "", "blue"], "en", "fr").texts == ["RED", "", "BLUE"]
        assert sleeps.calls == [0.5]
