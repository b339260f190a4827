"""
Catalog importer for seeding the content repository from a JSON export.

Expected file layout:

    {
      "taxonomies": {"category": ["post"], "post_tag": ["post", "page"]},
      "terms": [
        {"ref": "news-en", "taxonomy": "category", "name": "News", "language": "en",
         "translations": {"de": "news-de"}},
        {"ref": "news-de", "taxonomy": "category", "name": "Neuigkeiten", "language": "de"}
      ],
      "documents": [
        {"type": "post", "title": "Hello", "body": "...", "excerpt": "", "status": "publish",
         "author": 1, "language": "en", "featured_media": 42,
         "meta": [["subtitle", "Welcome"], ["gallery", [1, 2, 3]]],
         "terms": {"category": ["news-en"]},
         "ref": "hello-en", "translations": {"de": "hello-de"}},
        {"type": "post", "title": "Hallo", "language": "de", "ref": "hello-de"}
      ]
    }

"meta" may also be given as an object when no key repeats. Language codes are
normalized on import, so "EN" and "pt_BR" are stored as "en" and "pt-br".
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from autotranslate import language_codes as lc
from autotranslate.core import database as db
from autotranslate.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ImportResult:
    """Counts of imported catalog entities."""
    taxonomies: int = 0
    terms: int = 0
    documents: int = 0
    meta_entries: int = 0
    term_groups: int = 0
    document_groups: int = 0


def _meta_entries(meta: Any) -> List[tuple]:
    if isinstance(meta, dict):
        return list(meta.items())
    if isinstance(meta, list):
        return [(entry[0], entry[1]) for entry in meta if isinstance(entry, (list, tuple)) and len(entry) == 2]
    return []


def _language(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return lc.normalize_language_code(value) or None


def _ref(entry: Dict[str, Any], fallback_key: str) -> Optional[str]:
    return entry.get("ref") or entry.get(fallback_key)


def _check_catalog(data: Dict[str, Any]) -> None:
    """Reject a catalog with missing fields or dangling term refs before anything is written."""
    terms = data.get("terms") or []
    for index, term in enumerate(terms):
        missing = [key for key in ("taxonomy", "name") if not term.get(key)]
        if missing:
            raise ValueError(f"Term #{index + 1} is missing {', '.join(missing)}")

    term_refs = {_ref(term, "name") for term in terms}
    for document in data.get("documents") or []:
        for refs in (document.get("terms") or {}).values():
            unknown = [ref for ref in refs if ref not in term_refs]
            if unknown:
                raise ValueError(f"Document '{document.get('title', '')}' references unknown terms: {unknown}")


def _translation_group(language: Optional[str], own_id: int, translations: Dict[str, Any],
                       ids_by_ref: Dict[str, int], kind: str) -> Dict[str, int]:
    if not language:
        logger.warning(f"{kind.capitalize()} #{own_id} has translations but no language, skipping")
        return {}
    group = {language: own_id}
    for other_language, ref in translations.items():
        other_language = _language(other_language)
        if ref in ids_by_ref and other_language:
            group[other_language] = ids_by_ref[ref]
        else:
            logger.warning(f"{kind.capitalize()} translation '{ref}' not found, skipping")
    return group


def import_catalog(data: Dict[str, Any]) -> ImportResult:
    """
    Import taxonomies, terms and documents into the database.

    Language codes are stored in normalized form ('pt_BR' becomes 'pt-br').
    The catalog is checked before the first write, so a rejected catalog
    leaves the database untouched.

    Args:
        data: Parsed catalog export (see module docstring)

    Returns:
        ImportResult with counts

    Raises:
        ValueError: If a term lacks its taxonomy or name, or a document
            references an unknown term ref
    """
    _check_catalog(data)
    result = ImportResult()

    for taxonomy, post_types in (data.get("taxonomies") or {}).items():
        db.register_taxonomy(taxonomy, list(post_types))
        result.taxonomies += 1

    term_ids: Dict[str, int] = {}
    terms = data.get("terms") or []
    for term in terms:
        term_id = db.create_term(term["taxonomy"], term["name"], _language(term.get("language")))
        term_ids[_ref(term, "name")] = term_id
        result.terms += 1

    for term in terms:
        translations = term.get("translations") or {}
        if not translations:
            continue
        group = _translation_group(
            _language(term.get("language")), term_ids[_ref(term, "name")], translations, term_ids, "term",
        )
        if len(group) > 1:
            db.save_translation_group("term", group)
            result.term_groups += 1

    document_ids: Dict[str, int] = {}
    created = []
    for document in data.get("documents") or []:
        document_id = db.create_document(
            post_type=document.get("type", "post"),
            title=document.get("title", ""),
            body=document.get("body", ""),
            excerpt=document.get("excerpt", ""),
            status=document.get("status", "publish"),
            author=document.get("author", 0),
            language=_language(document.get("language")),
            featured_media=document.get("featured_media"),
        )
        created.append((document, document_id))
        if document.get("ref"):
            document_ids[document["ref"]] = document_id
        result.documents += 1

        for key, value in _meta_entries(document.get("meta")):
            db.add_document_meta(document_id, key, value)
            result.meta_entries += 1

        for taxonomy, refs in (document.get("terms") or {}).items():
            db.set_document_terms(document_id, taxonomy, [term_ids[ref] for ref in refs])

    # Existing translations are linked once every referenced document exists
    for document, document_id in created:
        translations = document.get("translations") or {}
        if not translations:
            continue
        group = _translation_group(
            _language(document.get("language")), document_id, translations, document_ids, "document",
        )
        if len(group) > 1:
            db.save_translation_group("post", group)
            result.document_groups += 1

    logger.info(
        f"Imported {result.documents} documents ({result.document_groups} translation groups), "
        f"{result.terms} terms, {result.meta_entries} meta entries"
    )
    return result


def import_catalog_file(path: Path) -> ImportResult:
    """Load a catalog export file and import it."""
    logger.info(f"Importing catalog file: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return import_catalog(data)
