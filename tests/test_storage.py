"""Tests for the SQLite repository, pair registry and catalog importer."""

import json

import pytest

from autotranslate.core import database
from autotranslate.core.importer import import_catalog, import_catalog_file
from autotranslate.core.repository import RepositoryError
from autotranslate.translation.manager import RunParameters, TranslationManager


# =============================================================================
# Repository
# =============================================================================


class TestContentRepository:
    def test_query_documents_pages(self, repository, make_document):
        ids = [make_document(title=f"Doc {i}") for i in range(5)]
        make_document(title="Other language", language="fr")
        make_document(title="Draft", status="draft")

        page, total = repository.query_documents("post", "en", "publish", 2, 2)

        assert total == 5
        assert [doc.id for doc in page] == ids[2:4]

    def test_create_document_validation(self, repository, temp_db):
        with pytest.raises(RepositoryError, match="Invalid post type"):
            repository.create_document({"type": "", "title": "x"})
        with pytest.raises(RepositoryError, match="empty"):
            repository.create_document({"type": "post", "title": "", "body": " ", "excerpt": ""})

    def test_create_document_defaults_to_draft(self, repository, temp_db):
        new_id = repository.create_document({"type": "page", "title": "About"})
        assert repository.get_document(new_id).status == "draft"

    def test_set_and_add_metadata(self, repository, make_document):
        doc_id = make_document()
        repository.add_metadata(doc_id, "tag", "a")
        repository.add_metadata(doc_id, "tag", "b")
        repository.set_metadata(doc_id, "color", {"name": "red"})
        assert repository.get_metadata(doc_id) == [("tag", "a"), ("tag", "b"), ("color", {"name": "red"})]

        repository.set_metadata(doc_id, "tag", "c")
        assert ("tag", "c") in repository.get_metadata(doc_id)
        assert ("tag", "a") not in repository.get_metadata(doc_id)


class TestPairRegistry:
    def test_available(self, registry):
        assert registry.is_available()

    def test_document_without_group(self, registry, make_document):
        doc_id = make_document(language="en")
        assert registry.get_pair(doc_id) == {"en": doc_id}

    def test_save_pair_merges_into_existing_group(self, registry, make_document):
        en_id = make_document()
        de_id = make_document(language="de")
        fr_id = make_document(language="fr")

        registry.save_pair({"en": en_id, "de": de_id})
        registry.save_pair({"en": en_id, "de": de_id, "fr": fr_id})

        assert registry.get_pair(fr_id) == {"en": en_id, "de": de_id, "fr": fr_id}

    def test_set_language(self, registry, repository, make_document):
        doc_id = make_document(language=None)
        registry.set_language(doc_id, "de")
        assert repository.get_document(doc_id).language == "de"


# =============================================================================
# Importer
# =============================================================================


CATALOG = {
    "taxonomies": {"category": ["post"]},
    "terms": [
        {"ref": "news-en", "taxonomy": "category", "name": "News", "language": "en",
         "translations": {"de": "news-de"}},
        {"ref": "news-de", "taxonomy": "category", "name": "Neuigkeiten", "language": "de"},
    ],
    "documents": [
        {"type": "post", "title": "Hello World", "body": "<p>Hi</p>", "language": "en",
         "featured_media": 12,
         "meta": [["note", "First"], ["note", "Second"], ["gallery", [1, 2]]],
         "terms": {"category": ["news-en"]}},
        {"type": "page", "title": "About", "language": "en", "meta": {"subtitle": "Who we are"}},
    ],
}


class TestImporter:
    def test_import_catalog(self, repository, registry, temp_db):
        result = import_catalog(CATALOG)

        assert (result.taxonomies, result.terms, result.documents, result.meta_entries, result.term_groups) == (1, 2, 2, 4, 1)

        posts, total = repository.query_documents("post", "en", "publish", 1, 10)
        assert total == 1
        post = posts[0]
        assert post.featured_media == 12
        assert repository.get_metadata(post.id) == [("note", "First"), ("note", "Second"), ("gallery", [1, 2])]

        news_en = database.get_term_by_name("category", "News", "en")["id"]
        news_de = database.get_term_by_name("category", "Neuigkeiten", "de")["id"]
        assert repository.get_terms_of(post.id, "category") == [news_en]
        assert registry.get_term_pair(news_en) == {"en": news_en, "de": news_de}

    def test_unknown_term_ref(self, repository, temp_db):
        with pytest.raises(ValueError, match="unknown terms"):
            import_catalog({
                "terms": [{"ref": "news", "taxonomy": "category", "name": "News", "language": "en"}],
                "documents": [
                    {"title": "Fine", "language": "en", "terms": {"category": ["news"]}},
                    {"title": "x", "language": "en", "terms": {"category": ["missing"]}},
                ],
            })

        # Nothing was written
        assert repository.query_documents("post", "en", "publish", 1, 10)[1] == 0
        assert database.get_term_by_name("category", "News", "en") is None

    def test_language_codes_are_normalized(self, repository, registry, temp_db):
        import_catalog({
            "terms": [
                {"ref": "news-en", "taxonomy": "category", "name": "News", "language": "EN",
                 "translations": {"DE": "news-de"}},
                {"ref": "news-de", "taxonomy": "category", "name": "Neuigkeiten", "language": "de"},
            ],
            "documents": [
                {"type": "post", "title": "Hello", "language": "EN"},
                {"type": "post", "title": "Olá", "language": "pt_BR"},
            ],
        })

        assert repository.query_documents("post", "en", "publish", 1, 10)[1] == 1
        assert repository.query_documents("post", "pt-br", "publish", 1, 10)[1] == 1
        news_en = database.get_term_by_name("category", "News", "en")["id"]
        assert set(registry.get_term_pair(news_en)) == {"en", "de"}

    def test_uppercase_catalog_is_translated(self, repository, registry, client, mt_config, run_log, temp_db):
        import_catalog({"documents": [{"type": "post", "title": "Hello", "language": "EN"}]})
        manager = TranslationManager(repository, registry, client, config=mt_config, run_log=run_log)

        summary = manager.run(RunParameters(target_language="de", source_language="EN"))

        assert summary.total_found == 1
        assert summary.translated == 1

    def test_document_translations_are_linked(self, repository, registry, client, mt_config, run_log,
                                              transport, temp_db):
        result = import_catalog({"documents": [
            {"type": "post", "title": "Hello", "language": "en", "ref": "hello-en",
             "translations": {"de": "hello-de"}},
            {"type": "post", "title": "Hallo", "language": "de", "ref": "hello-de"},
        ]})
        assert result.document_groups == 1

        manager = TranslationManager(repository, registry, client, config=mt_config, run_log=run_log)
        summary = manager.run(RunParameters(target_language="de"))

        assert summary.skipped == 1
        assert summary.translated == 0
        assert transport.batches == []

    def test_import_file(self, temp_db, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(CATALOG), encoding="utf-8")
        assert import_catalog_file(path).documents == 2
