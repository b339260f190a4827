"""
Database CRUD Operations Module

This module handles all database CRUD operations for:
- Documents (posts, pages, any content type)
- Document metadata
- Taxonomies and terms
- Translation groups (documents and terms)
- App Config

For schema management and migrations, see core/schema.py
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple

DB_FILE = Path(__file__).parent.parent.parent / "catalog.db"


def get_connection():
    """Get a database connection."""
    conn = sqlite3.connect(DB_FILE)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


# ============================================================
# Document CRUD Operations
# ============================================================

def create_document(post_type: str, title: str = "", body: str = "", excerpt: str = "",
                    status: str = "publish", author: int = 0, language: str = None,
                    featured_media: int = None) -> int:
    """Create a new document."""
    with get_connection() as conn:
        cursor = conn.cursor()
        now = datetime.now()
        cursor.execute("""
            INSERT INTO documents (post_type, status, author, title, body, excerpt,
                                   language, featured_media, created_at, modified_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (post_type, status, author, title, body, excerpt, language, featured_media, now, now))
        conn.commit()
        return cursor.lastrowid


def get_document_by_id(document_id: int) -> Optional[Dict[str, Any]]:
    """Get a document by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM documents WHERE id = ?", (document_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def query_documents(post_type: str, language: str, status: str = "publish",
                    page: int = 1, page_size: int = 50) -> Tuple[List[Dict[str, Any]], int]:
    """
    Get one page of documents, ordered by ID.

    Returns:
        Tuple of (rows for the page, total matching count)
    """
    offset = (max(page, 1) - 1) * page_size
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT COUNT(*) FROM documents
            WHERE post_type = ? AND language = ? AND status = ?
        """, (post_type, language, status))
        total = cursor.fetchone()[0] or 0

        cursor.execute("""
            SELECT * FROM documents
            WHERE post_type = ? AND language = ? AND status = ?
            ORDER BY id
            LIMIT ? OFFSET ?
        """, (post_type, language, status, page_size, offset))
        return [dict(row) for row in cursor.fetchall()], total


def update_document_language(document_id: int, language: str):
    """Set the language of a document."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE documents SET language = ? WHERE id = ?", (language, document_id))
        conn.commit()


def update_document_featured_media(document_id: int, media_id: Optional[int]):
    """Set (or clear) the featured media reference of a document."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE documents SET featured_media = ? WHERE id = ?", (media_id, document_id))
        conn.commit()


def touch_document(document_id: int):
    """Update the modified_at timestamp for a document."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE documents SET modified_at = ? WHERE id = ?", (datetime.now(), document_id))
        conn.commit()


# ============================================================
# Document Meta Operations
# ============================================================

def get_document_meta(document_id: int) -> List[Tuple[str, Any]]:
    """Get all metadata entries of a document in stored order, values decoded."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT meta_key, meta_value FROM document_meta
            WHERE document_id = ?
            ORDER BY id
        """, (document_id,))
        return [(row[0], json.loads(row[1])) for row in cursor.fetchall()]


def set_document_meta(document_id: int, meta_key: str, meta_value: Any):
    """Replace every stored value of a key with a single value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM document_meta WHERE document_id = ? AND meta_key = ?",
                       (document_id, meta_key))
        cursor.execute("""
            INSERT INTO document_meta (document_id, meta_key, meta_value)
            VALUES (?, ?, ?)
        """, (document_id, meta_key, json.dumps(meta_value, ensure_ascii=False)))
        conn.commit()


def add_document_meta(document_id: int, meta_key: str, meta_value: Any):
    """Append one more value under a key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO document_meta (document_id, meta_key, meta_value)
            VALUES (?, ?, ?)
        """, (document_id, meta_key, json.dumps(meta_value, ensure_ascii=False)))
        conn.commit()


# ============================================================
# Taxonomy and Term Operations
# ============================================================

def register_taxonomy(name: str, object_types: List[str]):
    """Register a taxonomy for one or more document types."""
    with get_connection() as conn:
        cursor = conn.cursor()
        for post_type in object_types:
            cursor.execute("""
                INSERT OR IGNORE INTO taxonomies (name, post_type)
                VALUES (?, ?)
            """, (name, post_type))
        conn.commit()


def get_taxonomies_for(post_type: str) -> List[str]:
    """Get taxonomy names applicable to a document type."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT name FROM taxonomies WHERE post_type = ? ORDER BY name", (post_type,))
        return [row[0] for row in cursor.fetchall()]


def create_term(taxonomy: str, name: str, language: str = None) -> int:
    """Create a new term."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO terms (taxonomy, name, language)
            VALUES (?, ?, ?)
        """, (taxonomy, name, language))
        conn.commit()
        return cursor.lastrowid


def get_term_by_name(taxonomy: str, name: str, language: str = None) -> Optional[Dict[str, Any]]:
    """Get a term by taxonomy, name and language."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM terms
            WHERE taxonomy = ? AND name = ? AND language IS ?
        """, (taxonomy, name, language))
        row = cursor.fetchone()
        return dict(row) if row else None


def get_document_terms(document_id: int, taxonomy: str) -> List[int]:
    """Get the IDs of the terms assigned to a document in a taxonomy."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT dt.term_id FROM document_terms dt
            JOIN terms t ON t.id = dt.term_id
            WHERE dt.document_id = ? AND t.taxonomy = ?
            ORDER BY dt.term_id
        """, (document_id, taxonomy))
        return [row[0] for row in cursor.fetchall()]


def set_document_terms(document_id: int, taxonomy: str, term_ids: List[int]):
    """Replace the terms of a document in one taxonomy."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            DELETE FROM document_terms
            WHERE document_id = ?
              AND term_id IN (SELECT id FROM terms WHERE taxonomy = ?)
        """, (document_id, taxonomy))
        for term_id in term_ids:
            cursor.execute("""
                INSERT OR IGNORE INTO document_terms (document_id, term_id)
                VALUES (?, ?)
            """, (document_id, term_id))
        conn.commit()


# ============================================================
# Translation Group Operations
# ============================================================

def get_translation_group(object_type: str, object_id: int) -> Dict[str, int]:
    """
    Get the language -> object ID mapping of the group an object belongs to.

    Args:
        object_type: 'post' or 'term'
        object_id: Document or term ID

    Returns:
        Mapping of language code to object ID (empty if the object has no group)
    """
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT language, object_id FROM translation_links
            WHERE group_id = (
                SELECT group_id FROM translation_links
                WHERE object_type = ? AND object_id = ?
            )
            ORDER BY language
        """, (object_type, object_id))
        return {row[0]: row[1] for row in cursor.fetchall()}


def save_translation_group(object_type: str, translations: Dict[str, int]) -> int:
    """
    Store a language -> object ID mapping as one translation group.

    Objects already grouped keep their group; the mapping is merged into it.

    Returns:
        The group ID
    """
    with get_connection() as conn:
        cursor = conn.cursor()
        object_ids = list(translations.values())
        group_id = None
        if object_ids:
            placeholders = ", ".join("?" for _ in object_ids)
            cursor.execute(f"""
                SELECT MIN(group_id) FROM translation_links
                WHERE object_type = ? AND object_id IN ({placeholders})
            """, [object_type, *object_ids])
            group_id = cursor.fetchone()[0]

        if group_id is None:
            cursor.execute("INSERT INTO translation_groups (object_type) VALUES (?)", (object_type,))
            group_id = cursor.lastrowid

        for language, object_id in translations.items():
            cursor.execute("""
                INSERT OR REPLACE INTO translation_links (group_id, object_type, language, object_id)
                VALUES (?, ?, ?, ?)
            """, (group_id, object_type, language, object_id))
        conn.commit()
        return group_id


# ============================================================
# App Config Operations
# ============================================================

def get_app_config(key: str) -> Optional[str]:
    """Get a configuration value by key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("SELECT value FROM app_config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None


def set_app_config(key: str, value: str):
    """Set a configuration value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        # Ensure app_config table exists
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            INSERT OR REPLACE INTO app_config (key, value, updated_at)
            VALUES (?, ?, ?)
        """, (key, value, datetime.now()))
        conn.commit()
