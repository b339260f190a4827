"""
Shared fixtures: a temporary SQLite catalog, a scripted provider transport
and a delay function that records instead of sleeping.
"""

import copy
import logging

import pytest

from autotranslate.config import DEFAULT_CONFIG, ApiConfig, RetryPolicy
from autotranslate.core import database
from autotranslate.core.repository import SqliteContentRepository, SqlitePairRegistry
from autotranslate.core.schema import initialize_database
from autotranslate.provider.client import TranslationClient
from autotranslate.provider.transport import ProviderResponse


# =============================================================================
# Fakes
# =============================================================================


class FakeTransport:
    """
    Stands in for DeepLTransport.

    responses is consumed one entry per request: an int status code, a
    ProviderResponse, or an exception to raise. Once empty, every request
    succeeds and each text is translated with `translate`.
    """

    def __init__(self, responses=None, translate=None):
        self.responses = list(responses or [])
        self.translate = translate or (lambda text, target: f"{text} [{target}]")
        self.batches = []

    def send(self, batch):
        self.batches.append(batch)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            if isinstance(response, ProviderResponse):
                return response
            if response != 200:
                return ProviderResponse(status_code=response, text="error")
        return ProviderResponse(
            status_code=200,
            data={"translations": [
                {"detected_source_language": batch.source_lang, "text": self.translate(text, batch.target_lang)}
                for text in batch.texts
            ]},
        )

    @property
    def sent_texts(self):
        return [text for batch in self.batches for text in batch.texts]


class SleepRecorder:
    """Delay function that records requested waits."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def dictionary_translator(entries):
    """Translate via a fixed dictionary, falling back to a marked copy."""
    return lambda text, target: entries.get(text, f"{text} [{target}]")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh database file for each test."""
    db_file = tmp_path / "catalog.db"
    monkeypatch.setattr(database, "DB_FILE", db_file)
    initialize_database()
    return db_file


@pytest.fixture
def repository(temp_db):
    return SqliteContentRepository()


@pytest.fixture
def registry(temp_db):
    return SqlitePairRegistry()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport, sleeps):
    return TranslationClient(ApiConfig(api_key="test-key"), RetryPolicy(), transport=transport, sleep=sleeps)


@pytest.fixture
def mt_config():
    """Configuration with machine translation enabled."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["machine_translation"]["enabled"] = True
    config["machine_translation"]["services"]["deepl"]["api_key"] = "test-key"
    return config


@pytest.fixture
def run_log():
    """Run logger that propagates, so caplog sees its lines."""
    logger = logging.getLogger("tests.run")
    logger.setLevel(logging.INFO)
    return logger


@pytest.fixture(autouse=True)
def no_env_api_key(monkeypatch):
    monkeypatch.delenv("DEEPL_API_KEY", raising=False)


@pytest.fixture
def make_document(temp_db):
    """Create a source document and return its ID."""
    def _make(title="Hello World", body="", excerpt="", post_type="post", language="en",
              status="publish", featured_media=None, meta=(), terms=None):
        document_id = database.create_document(
            post_type=post_type, title=title, body=body, excerpt=excerpt,
            status=status, author=1, language=language, featured_media=featured_media,
        )
        for key, value in meta:
            database.add_document_meta(document_id, key, value)
        for taxonomy, term_ids in (terms or {}).items():
            database.set_document_terms(document_id, taxonomy, term_ids)
        return document_id
    return _make
