"""
Content repository and translation-pair registry.

The translation engine only talks to these two interfaces. The SQLite
implementations below are backed by core/database.py.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from autotranslate.core import database as db
from autotranslate.core import schema


class RepositoryError(Exception):
    """A storage operation failed or was rejected."""


@dataclass(frozen=True)
class Document:
    """A stored document; read-only for the duration of a translation pass."""
    id: int
    type: str
    status: str
    author: int
    title: str
    body: str
    excerpt: str
    language: Optional[str] = None
    featured_media: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Document":
        return cls(
            id=row["id"],
            type=row["post_type"],
            status=row["status"],
            author=row.get("author") or 0,
            title=row.get("title") or "",
            body=row.get("body") or "",
            excerpt=row.get("excerpt") or "",
            language=row.get("language"),
            featured_media=row.get("featured_media"),
        )


# =============================================================================
# Interfaces
# =============================================================================


class ContentRepository(ABC):
    """Reads and writes documents, metadata, media and taxonomy assignments."""

    @abstractmethod
    def query_documents(
        self, post_type: str, language: str, status: str, page: int, page_size: int
    ) -> Tuple[List[Document], int]:
        """Return one page of documents and the total matching count."""

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[Document]:
        ...

    @abstractmethod
    def create_document(self, fields: Dict[str, Any]) -> int:
        """Create a document; raises RepositoryError when rejected."""

    @abstractmethod
    def get_metadata(self, document_id: int) -> List[Tuple[str, Any]]:
        """Ordered (key, decoded value) entries; a key may repeat."""

    @abstractmethod
    def set_metadata(self, document_id: int, key: str, value: Any) -> None:
        """Replace all values of a key."""

    @abstractmethod
    def add_metadata(self, document_id: int, key: str, value: Any) -> None:
        """Append a value under a key."""

    @abstractmethod
    def get_featured_media(self, document_id: int) -> Optional[int]:
        ...

    @abstractmethod
    def set_featured_media(self, document_id: int, media_id: int) -> None:
        ...

    @abstractmethod
    def assign_taxonomy_terms(self, document_id: int, taxonomy: str, term_ids: List[int]) -> None:
        ...

    @abstractmethod
    def list_taxonomies_for(self, post_type: str) -> List[str]:
        ...

    @abstractmethod
    def get_terms_of(self, document_id: int, taxonomy: str) -> List[int]:
        ...

    @abstractmethod
    def touch_document(self, document_id: int) -> None:
        """Refresh the document after all writes so derived caches are rebuilt."""


class TranslationPairRegistry(ABC):
    """Stores which document/term in which language belongs together."""

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def get_pair(self, document_id: int) -> Dict[str, int]:
        ...

    @abstractmethod
    def save_pair(self, translations: Dict[str, int]) -> None:
        ...

    @abstractmethod
    def get_term_pair(self, term_id: int) -> Dict[str, int]:
        ...

    @abstractmethod
    def set_language(self, document_id: int, language: str) -> None:
        ...


# =============================================================================
# SQLite implementations
# =============================================================================


class SqliteContentRepository(ContentRepository):
    """ContentRepository stored in the application SQLite database."""

    def query_documents(self, post_type, language, status, page, page_size):
        rows, total = self._call(db.query_documents, post_type, language, status, page, page_size)
        return [Document.from_row(row) for row in rows], total

    def get_document(self, document_id):
        row = self._call(db.get_document_by_id, document_id)
        return Document.from_row(row) if row else None

    def create_document(self, fields):
        post_type = fields.get("type")
        if not post_type:
            raise RepositoryError("Invalid post type.")
        title = fields.get("title") or ""
        body = fields.get("body") or ""
        excerpt = fields.get("excerpt") or ""
        if not (title.strip() or body.strip() or excerpt.strip()):
            raise RepositoryError("Content, title, and excerpt are empty.")
        return self._call(
            db.create_document,
            post_type=post_type,
            title=title,
            body=body,
            excerpt=excerpt,
            status=fields.get("status") or "draft",
            author=fields.get("author") or 0,
            language=fields.get("language"),
        )

    def get_metadata(self, document_id):
        return self._call(db.get_document_meta, document_id)

    def set_metadata(self, document_id, key, value):
        self._call(db.set_document_meta, document_id, key, value)

    def add_metadata(self, document_id, key, value):
        self._call(db.add_document_meta, document_id, key, value)

    def get_featured_media(self, document_id):
        row = self._call(db.get_document_by_id, document_id)
        return row.get("featured_media") if row else None

    def set_featured_media(self, document_id, media_id):
        self._call(db.update_document_featured_media, document_id, media_id)

    def assign_taxonomy_terms(self, document_id, taxonomy, term_ids):
        self._call(db.set_document_terms, document_id, taxonomy, term_ids)

    def list_taxonomies_for(self, post_type):
        return self._call(db.get_taxonomies_for, post_type)

    def get_terms_of(self, document_id, taxonomy):
        return self._call(db.get_document_terms, document_id, taxonomy)

    def touch_document(self, document_id):
        self._call(db.touch_document, document_id)

    @staticmethod
    def _call(func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (sqlite3.Error, ValueError) as e:
            raise RepositoryError(f"{func.__name__} failed: {e}") from e


class SqlitePairRegistry(TranslationPairRegistry):
    """TranslationPairRegistry stored in the translation_links table."""

    def is_available(self) -> bool:
        try:
            tables = schema.get_existing_tables()
        except sqlite3.Error:
            return False
        return {"translation_groups", "translation_links"}.issubset(tables)

    def get_pair(self, document_id):
        pair = self._call(db.get_translation_group, "post", document_id)
        if not pair:
            row = self._call(db.get_document_by_id, document_id)
            if row and row.get("language"):
                pair = {row["language"]: document_id}
        return pair

    def save_pair(self, translations):
        self._call(db.save_translation_group, "post", dict(translations))

    def get_term_pair(self, term_id):
        return self._call(db.get_translation_group, "term", term_id)

    def save_term_pair(self, translations: Dict[str, int]) -> None:
        self._call(db.save_translation_group, "term", dict(translations))

    def set_language(self, document_id, language):
        self._call(db.update_document_language, document_id, language)

    @staticmethod
    def _call(func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as e:
            raise RepositoryError(f"{func.__name__} failed: {e}") from e
