"""
Database Schema Management Module

This module handles database initialization, schema validation, and migrations.
For CRUD operations, see core/database.py
"""

import sqlite3

# Import database module to use DB_FILE and get_connection dynamically
# This ensures monkeypatching in tests works correctly
import autotranslate.core.database as db

DB_VERSION = 2  # Increment when schema changes (added modified_at in v2)


def get_connection():
    """Get a database connection using the database module's DB_FILE."""
    return db.get_connection()


def get_db_version() -> int:
    """Get current database version."""
    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT version FROM db_version LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else 0
    except sqlite3.OperationalError:
        return 0


def set_db_version(version: int):
    """Set database version."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS db_version (version INTEGER)")
        cursor.execute("DELETE FROM db_version")
        cursor.execute("INSERT INTO db_version (version) VALUES (?)", (version,))
        conn.commit()


def initialize_database():
    """Initializes the database and creates the tables."""
    from autotranslate.logger import get_logger
    logger = get_logger(__name__)

    if db.DB_FILE.exists() and "documents" in get_existing_tables():
        current_version = get_db_version()
        if current_version < DB_VERSION:
            migrate_database(current_version, DB_VERSION)
        elif current_version == DB_VERSION:
            try:
                ensure_all_schemas()
            except Exception as e:
                logger.warning(f"Failed to verify database schema: {e}")
        return

    with get_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS documents (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            post_type TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'publish',
            author INTEGER DEFAULT 0,
            title TEXT NOT NULL DEFAULT '',
            body TEXT NOT NULL DEFAULT '',
            excerpt TEXT NOT NULL DEFAULT '',
            language TEXT,
            featured_media INTEGER,
            created_at TIMESTAMP,
            modified_at TIMESTAMP
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS document_meta (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            document_id INTEGER NOT NULL,
            meta_key TEXT NOT NULL,
            meta_value TEXT NOT NULL,
            FOREIGN KEY (document_id) REFERENCES documents (id) ON DELETE CASCADE
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS taxonomies (
            name TEXT NOT NULL,
            post_type TEXT NOT NULL,
            PRIMARY KEY (name, post_type)
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS terms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            taxonomy TEXT NOT NULL,
            name TEXT NOT NULL,
            language TEXT
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS document_terms (
            document_id INTEGER NOT NULL,
            term_id INTEGER NOT NULL,
            PRIMARY KEY (document_id, term_id),
            FOREIGN KEY (document_id) REFERENCES documents (id) ON DELETE CASCADE,
            FOREIGN KEY (term_id) REFERENCES terms (id) ON DELETE CASCADE
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS translation_groups (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            object_type TEXT NOT NULL
        )
        """)

        # One object per language within a group, one group per object
        cursor.execute("""
        CREATE TABLE IF NOT EXISTS translation_links (
            group_id INTEGER NOT NULL,
            object_type TEXT NOT NULL,
            language TEXT NOT NULL,
            object_id INTEGER NOT NULL,
            UNIQUE (group_id, language),
            UNIQUE (object_type, object_id),
            FOREIGN KEY (group_id) REFERENCES translation_groups (id)
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS app_config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """)

        conn.commit()

    ensure_database_indexes()
    set_db_version(DB_VERSION)
    logger.info(f"Created database at {db.DB_FILE} (version {DB_VERSION})")


# ============================================================
# Database Schema Validation
# ============================================================

def get_existing_tables() -> set:
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        return {row[0] for row in cursor.fetchall()}


def ensure_documents_schema():
    """
    Ensure documents table has all required columns.
    This function should be called during database initialization/migration.
    """
    from autotranslate.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("PRAGMA table_info(documents)")
            existing_cols = {row[1] for row in cursor.fetchall()}

            if "featured_media" not in existing_cols:
                logger.info("Adding featured_media column to documents table")
                cursor.execute("ALTER TABLE documents ADD COLUMN featured_media INTEGER")

            if "modified_at" not in existing_cols:
                logger.info("Adding modified_at column to documents table")
                cursor.execute("ALTER TABLE documents ADD COLUMN modified_at TIMESTAMP")
                cursor.execute("UPDATE documents SET modified_at = COALESCE(created_at, datetime('now'))")

            conn.commit()
    except Exception as e:
        logger.error(f"Failed to ensure documents schema: {e}")
        raise


def ensure_database_indexes():
    """
    Ensure all performance-critical indexes exist.
    This function should be called during database initialization/migration.
    """
    from autotranslate.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()

            # Batch queries filter on type + language + status and page by id
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_query
                ON documents(post_type, language, status, id)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_document_meta_document
                ON document_meta(document_id, meta_key)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_terms_taxonomy
                ON terms(taxonomy)
            """)

            conn.commit()
            logger.debug("Database indexes created/verified successfully")

    except Exception as e:
        logger.error(f"Failed to ensure database indexes: {e}")
        raise


def ensure_all_schemas():
    """
    Ensure all tables have all required columns and indexes.
    """
    ensure_documents_schema()
    ensure_database_indexes()


# ============================================================
# Database Migration
# ============================================================

def migrate_database(from_version: int, to_version: int):
    """
    Migrate database from one version to another.

    Version 1 databases lack documents.modified_at; ensure_all_schemas() adds it.
    """
    from autotranslate.logger import get_logger
    logger = get_logger(__name__)

    logger.info(f"Migrating database from version {from_version} to {to_version}")

    ensure_all_schemas()
    set_db_version(to_version)
    logger.info(f"Database migration completed: now at version {to_version}")
