"""
Translation Client Module

This module provides the client used by the translation engine:
- Batching of several texts into one provider request
- Retry with backoff, fixed cooldown on rate limiting (HTTP 429)
- Positional mapping of the returned translations
- Graceful degradation: on failure the source texts are returned

For the wire-level request, see provider/transport.py
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from autotranslate.config import ApiConfig, RetryPolicy
from autotranslate.logger import get_logger
from autotranslate import language_codes as lc
from autotranslate.provider.exceptions import TranslationError
from autotranslate.provider.transport import DeepLTransport, ProviderResponse, TranslationRequestBatch

logger = get_logger(__name__)


class RetryState(str, Enum):
    """States of one translate_batch dispatch."""
    ATTEMPTING = "attempting"
    COOLING_DOWN = "cooling_down"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class BatchResult:
    """
    Outcome of translate_batch.

    texts always has the input's length and order. When degraded is True the
    provider could not be reached and texts holds the original inputs.
    """
    texts: List[Any]
    degraded: bool = False
    reason: Optional[str] = None
    transitions: List[Tuple[RetryState, int]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.degraded


class TranslationClient:
    """Rate-limited, retrying client for the machine translation provider."""

    def __init__(
        self,
        api_config: ApiConfig,
        retry_policy: Optional[RetryPolicy] = None,
        transport=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_config = api_config
        self.retry_policy = retry_policy or RetryPolicy()
        self.transport = transport or DeepLTransport(api_config)
        self._sleep = sleep
        # Usage tracking
        self.total_requests = 0
        self.total_characters = 0
        self.degraded_batches = 0

    def get_usage(self) -> dict:
        """Get accumulated request usage."""
        return {
            'requests': self.total_requests,
            'characters': self.total_characters,
            'degraded_batches': self.degraded_batches,
        }

    def translate_text(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate a single text; the original is returned if no translation comes back."""
        result = self.translate_batch([text], source_lang, target_lang)
        translated = result.texts[0] if result.texts else None
        return translated if translated else text

    def translate_batch(self, texts: Sequence[Any], source_lang: str, target_lang: str) -> BatchResult:
        """
        Translate several texts in one request.

        Args:
            texts: Texts to translate; empty or blank entries are not sent
            source_lang: Source language code (stored form, e.g. 'en')
            target_lang: Target language code (stored form, e.g. 'de')

        Returns:
            BatchResult with one entry per input, in input order
        """
        texts = list(texts)
        positions = [i for i, text in enumerate(texts) if isinstance(text, str) and text.strip()]
        if not positions:
            return BatchResult(texts=texts)

        batch = TranslationRequestBatch(
            texts=[texts[i] for i in positions],
            positions=positions,
            source_lang=lc.to_provider_source(source_lang),
            target_lang=lc.to_provider_target(target_lang),
            formality=self.api_config.formality,
        )
        logger.debug(f"Starting batch translation: {len(positions)} of {len(texts)} texts from {source_lang} to {target_lang}")

        translations, transitions, reason = self._dispatch(batch)
        if translations is None:
            self.degraded_batches += 1
            logger.warning(f"Translation failed after {self.retry_policy.max_attempts} attempts ({reason}). Returning original texts.")
            return BatchResult(texts=texts, degraded=True, reason=reason, transitions=transitions)

        result = list(texts)
        for position, translated in zip(batch.positions, translations):
            result[position] = translated
        return BatchResult(texts=result, transitions=transitions)

    def _dispatch(self, batch: TranslationRequestBatch):
        """
        Run the retry state machine for one batch.

        Returns:
            Tuple of (translations or None, transitions, failure reason)
        """
        policy = self.retry_policy
        transitions: List[Tuple[RetryState, int]] = []
        last_error = None

        for attempt in range(1, policy.max_attempts + 1):
            transitions.append((RetryState.ATTEMPTING, attempt))
            has_next = attempt < policy.max_attempts

            try:
                self.total_requests += 1
                self.total_characters += sum(len(text) for text in batch.texts)
                response = self.transport.send(batch)
            except TranslationError as e:
                last_error = str(e)
            except Exception as e:
                logger.exception(f"  Attempt {attempt}: unexpected transport failure")
                last_error = f"{type(e).__name__}: {e}"
            else:
                if response.status_code == 429:
                    last_error = "Rate limited by provider (429)"
                    if has_next:
                        transitions.append((RetryState.COOLING_DOWN, attempt))
                        logger.warning(f"  Attempt {attempt} rate limited. Cooling down {policy.rate_limit_cooldown}s...")
                        self._sleep(policy.rate_limit_cooldown)
                    continue

                if response.status_code == 200:
                    translations = self._parse_translations(response, len(batch.texts))
                    if translations is not None:
                        transitions.append((RetryState.SUCCEEDED, attempt))
                        logger.debug(f"Successfully translated {len(translations)} texts")
                        # Stay under the provider rate limit for the next call
                        self._sleep(policy.pause_after_success)
                        return translations, transitions, None
                    last_error = "Malformed provider response: missing or mismatched translations"
                else:
                    last_error = f"DeepL API error ({response.status_code}): {response.text}"

            if has_next:
                wait_time = policy.backoff_base * attempt
                transitions.append((RetryState.BACKING_OFF, attempt))
                logger.warning(f"  Attempt {attempt} failed: {last_error}. Waiting {wait_time}s before retry...")
                self._sleep(wait_time)

        transitions.append((RetryState.EXHAUSTED, policy.max_attempts))
        logger.error(f"DeepL request failed: {last_error}")
        return None, transitions, last_error

    @staticmethod
    def _parse_translations(response: ProviderResponse, expected_count: int) -> Optional[List[str]]:
        """Extract translated texts; None when the payload is absent or malformed."""
        data = response.data
        if not isinstance(data, dict):
            return None
        items = data.get('translations')
        if not isinstance(items, list) or len(items) != expected_count:
            return None
        translations = []
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get('text'), str):
                return None
            translations.append(item['text'])
        return translations
