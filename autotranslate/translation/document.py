"""
Document Translator Module

Translates one source document into one target language:
- Skip when the translation pair already has the target language
- Translate title/body/excerpt in a single provider batch
- Resolve taxonomy terms to their target-language counterparts
- Create the new document, then link media, terms, metadata, language and pair
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from autotranslate.config import SKIPPED_META_KEYS
from autotranslate.core.repository import (
    ContentRepository,
    Document,
    RepositoryError,
    TranslationPairRegistry,
)
from autotranslate.logger import get_logger
from autotranslate.translation.walker import StructureWalker

logger = get_logger(__name__)

TEXT_FIELDS = ("title", "body", "excerpt")


class DocumentOutcome(str, Enum):
    TRANSLATED = "translated"
    SKIPPED = "skipped"
    ERROR = "error"


class SkipReason(str, Enum):
    ALREADY_TRANSLATED = "already_translated"
    DRY_RUN = "dry_run"


@dataclass
class DocumentResult:
    """Terminal outcome of one document."""
    outcome: DocumentOutcome
    source_id: int
    new_id: Optional[int] = None
    reason: Optional[SkipReason] = None
    message: str = ""


@dataclass
class CreationResult:
    """Result of the document-creation step: an ID or the rejection message."""
    document_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.document_id is not None


class DocumentTranslator:
    """Per-document translation workflow."""

    def __init__(
        self,
        repository: ContentRepository,
        registry: TranslationPairRegistry,
        client,
        walker: Optional[StructureWalker] = None,
        copy_metas: Iterable[str] = (),
        skipped_meta_keys: Iterable[str] = SKIPPED_META_KEYS,
        dry_run: bool = False,
        run_log: Optional[logging.Logger] = None,
    ):
        self.repository = repository
        self.registry = registry
        self.client = client
        self.walker = walker or StructureWalker(client)
        self.copy_metas = set(copy_metas)
        self.skipped_meta_keys = set(skipped_meta_keys)
        self.dry_run = dry_run
        self.run_log = run_log or logger

    def translate(self, document: Document, target_lang: str, source_lang: Optional[str] = None) -> DocumentResult:
        """
        Translate a document into target_lang.

        Args:
            document: Source document
            target_lang: Target language code
            source_lang: Used when the document carries no language of its own

        Returns:
            DocumentResult (translated, skipped or error)
        """
        source_lang = document.language or source_lang

        pair = dict(self.registry.get_pair(document.id))
        if pair.get(target_lang):
            self.run_log.info(f"Skipping #{document.id}: already has {target_lang} translation (#{pair[target_lang]}).")
            return DocumentResult(DocumentOutcome.SKIPPED, document.id, reason=SkipReason.ALREADY_TRANSLATED)

        if self.dry_run:
            self.run_log.info(f"[dry-run] Would translate #{document.id} \"{document.title}\" ({source_lang} -> {target_lang}).")
            return DocumentResult(DocumentOutcome.SKIPPED, document.id, reason=SkipReason.DRY_RUN)

        fields = self.translate_fields(document, source_lang, target_lang)
        term_mapping = self.resolve_terms(document, target_lang)

        creation = self._create_document(document, fields)
        if not creation.ok:
            self.run_log.warning(f"Error inserting translation for #{document.id}: {creation.error}")
            return DocumentResult(DocumentOutcome.ERROR, document.id, message=creation.error)

        new_id = creation.document_id
        try:
            for taxonomy, term_ids in term_mapping.items():
                self.repository.assign_taxonomy_terms(new_id, taxonomy, term_ids)

            featured_media = self.repository.get_featured_media(document.id)
            if featured_media:
                self.repository.set_featured_media(new_id, featured_media)

            self.copy_metadata(document.id, new_id, source_lang, target_lang)

            self.registry.set_language(new_id, target_lang)
            pair[source_lang] = document.id
            pair[target_lang] = new_id
            self.registry.save_pair(pair)

            self.repository.touch_document(new_id)
        except RepositoryError as e:
            message = f"Linking translation #{new_id} failed: {e}"
            self.run_log.warning(f"Error translating #{document.id}: {message}")
            return DocumentResult(DocumentOutcome.ERROR, document.id, new_id=new_id, message=message)

        self.run_log.info(f"Translated #{document.id} -> #{new_id} ({target_lang}).")
        return DocumentResult(DocumentOutcome.TRANSLATED, document.id, new_id=new_id)

    def translate_fields(self, document: Document, source_lang: str, target_lang: str) -> Dict[str, str]:
        """
        Translate title, body and excerpt in one batch.

        A field that comes back empty falls back to the source value.
        """
        originals = [getattr(document, name) or "" for name in TEXT_FIELDS]
        result = self.client.translate_batch(originals, source_lang, target_lang)
        if result.degraded:
            logger.warning(f"Document #{document.id}: fields kept in {source_lang} ({result.reason})")

        fields = {}
        for name, original, translated in zip(TEXT_FIELDS, originals, result.texts):
            fields[name] = translated if translated else original
        return fields

    def resolve_terms(self, document: Document, target_lang: str) -> Dict[str, List[int]]:
        """Map assigned terms to their target-language counterparts; unmatched terms are dropped."""
        mapping: Dict[str, List[int]] = {}
        for taxonomy in self.repository.list_taxonomies_for(document.type):
            new_terms = []
            for term_id in self.repository.get_terms_of(document.id, taxonomy):
                counterpart = self.registry.get_term_pair(term_id).get(target_lang)
                if counterpart:
                    new_terms.append(counterpart)
            if new_terms:
                mapping[taxonomy] = new_terms
        return mapping

    def copy_metadata(self, source_id: int, new_id: int, source_lang: str, target_lang: str) -> int:
        """
        Copy or translate every metadata entry of the source onto the new document.

        Returns:
            Number of entries written
        """
        written_keys = set()
        count = 0
        for key, value in self.repository.get_metadata(source_id):
            if key in self.skipped_meta_keys:
                continue

            if key in self.copy_metas:
                new_value = value
            else:
                new_value = self.walker.translate_value(value, source_lang, target_lang)

            # Repeated keys keep every stored value, in order
            if key in written_keys:
                self.repository.add_metadata(new_id, key, new_value)
            else:
                self.repository.set_metadata(new_id, key, new_value)
                written_keys.add(key)
            count += 1

        logger.debug(f"Document #{new_id}: wrote {count} metadata entries")
        return count

    def _create_document(self, document: Document, fields: Dict[str, Any]) -> CreationResult:
        try:
            new_id = self.repository.create_document({
                "type": document.type,
                "status": document.status,
                "author": document.author,
                **fields,
            })
        except RepositoryError as e:
            return CreationResult(error=str(e))
        return CreationResult(document_id=new_id)
