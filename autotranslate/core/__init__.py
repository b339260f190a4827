"""
Core module - Storage

This module provides:
- database: CRUD operations for documents, metadata, terms, translation groups, config
- schema: Database initialization and migrations
- repository: Content repository / translation-pair registry interfaces and SQLite implementations
"""

from autotranslate.core.database import (
    DB_FILE,
    get_connection,
    # App config operations
    get_app_config,
    set_app_config,
)

from autotranslate.core.schema import (
    DB_VERSION,
    get_db_version,
    initialize_database,
    ensure_all_schemas,
    migrate_database,
)

from autotranslate.core.repository import (
    ContentRepository,
    Document,
    RepositoryError,
    SqliteContentRepository,
    SqlitePairRegistry,
    TranslationPairRegistry,
)
