"""
Translation Provider HTTP Transport

This module contains the wire-level call to the DeepL REST API:
- Request body construction (texts, language codes, formality)
- Authentication header
- Timeout configuration

It does not retry and does not interpret status codes beyond returning them;
the retry policy lives in provider/client.py.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import httpx

from autotranslate.config import ApiConfig
from autotranslate.logger import get_logger
from autotranslate.provider.exceptions import TransportError

logger = get_logger(__name__)


@dataclass
class TranslationRequestBatch:
    """
    One provider request.

    positions[i] is the index, in the caller's original list, of texts[i].
    Empty inputs are never part of a batch.
    """
    texts: List[str]
    positions: List[int]
    source_lang: str
    target_lang: str
    formality: Optional[str] = None


@dataclass
class ProviderResponse:
    """Raw provider answer: status code and parsed JSON body (None if unparseable)."""
    status_code: int
    data: Any = None
    text: str = ""
    headers: dict = field(default_factory=dict)


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 30.0),
            read=timeout_config.get('read', 30.0),
            pool=timeout_config.get('pool', 10.0),
        )
    else:
        timeout_value = float(timeout_config) if timeout_config else 30.0
        return httpx.Timeout(
            connect=10.0,
            write=30.0,
            read=timeout_value,
            pool=10.0,
        )


class DeepLTransport:
    """Posts translation batches to the DeepL /v2/translate endpoint."""

    def __init__(self, api_config: ApiConfig, http_transport: Optional[httpx.BaseTransport] = None):
        self.api_config = api_config
        # Injected transport is used by tests (httpx.MockTransport)
        self._http_transport = http_transport

    def build_body(self, batch: TranslationRequestBatch) -> dict:
        body = {
            "text": list(batch.texts),
            "source_lang": batch.source_lang,
            "target_lang": batch.target_lang,
        }
        if batch.formality:
            body["formality"] = batch.formality
        return body

    def send(self, batch: TranslationRequestBatch) -> ProviderResponse:
        """
        Send one batch.

        Returns:
            ProviderResponse for any HTTP status

        Raises:
            TransportError: If no HTTP response was received or the request
                could not be encoded
        """
        headers = {
            "Authorization": f"DeepL-Auth-Key {self.api_config.api_key}",
            "Content-Type": "application/json",
        }
        body = self.build_body(batch)

        logger.debug(
            f"  Calling DeepL API ({len(batch.texts)} texts, "
            f"{batch.source_lang} -> {batch.target_lang})..."
        )

        try:
            with httpx.Client(
                timeout=get_httpx_timeout(self.api_config.timeout),
                transport=self._http_transport,
            ) as client:
                response = client.post(self.api_config.api_url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            raise TransportError("DeepL API request timeout", code="timeout") from e
        except httpx.HTTPError as e:
            raise TransportError(f"DeepL request failed: {e}", code="transport") from e
        except (httpx.InvalidURL, UnicodeError, ValueError) as e:
            # Headers or body could not be encoded (non-ASCII key, lone surrogates)
            raise TransportError(f"DeepL request could not be encoded: {e}", code="invalid_request") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        return ProviderResponse(
            status_code=response.status_code,
            data=data,
            text=response.text[:500],
            headers=dict(response.headers),
        )
