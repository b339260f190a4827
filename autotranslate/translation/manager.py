"""
Translation Manager Module

Main TranslationManager class that coordinates a batch run:
- Validate configuration before touching any document
- Page through the untranslated source documents
- Translate each document (see translation/document.py)
- Aggregate counts, write the run log, report progress
"""

import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from autotranslate import language_codes as lc
from autotranslate.config import (
    build_api_config,
    build_retry_policy,
    get_copy_metas,
    get_default_language,
    get_translation_setting,
    load_config,
)
from autotranslate.core.repository import (
    ContentRepository,
    RepositoryError,
    SqliteContentRepository,
    SqlitePairRegistry,
    TranslationPairRegistry,
)
from autotranslate.logger import close_run_logger, get_logger, get_run_logger
from autotranslate.provider.client import TranslationClient
from autotranslate.provider.exceptions import ConfigurationError
from autotranslate.translation.document import (
    DocumentOutcome,
    DocumentResult,
    DocumentTranslator,
    SkipReason,
)
from autotranslate.translation.progress import RunProgress, RunSummary
from autotranslate.translation.walker import StructureWalker

logger = get_logger(__name__)


@dataclass
class RunParameters:
    """Operator-supplied parameters of one batch run."""
    post_type: str = "post"
    target_language: str = "de"
    source_language: Optional[str] = None  # None: configured default language
    dry_run: bool = False
    page_size: Optional[int] = None        # None: configured page size
    limit: Optional[int] = None            # Max documents to work on (already-translated skips do not count)
    start_page: int = 1                    # Resume from a later page
    status: str = "publish"


class TranslationManager:
    """
    Manages a batch translation run.

    Features:
    - Paginated, sequential processing (one document fully done before the next)
    - Optional cap on documents per run, resume from a given page
    - Dry-run mode (no writes, no provider calls)
    - Progress callbacks and cancellation between documents
    """

    def __init__(
        self,
        repository: Optional[ContentRepository] = None,
        registry: Optional[TranslationPairRegistry] = None,
        client: Optional[TranslationClient] = None,
        config: Optional[Dict[str, Any]] = None,
        run_log: Optional[logging.Logger] = None,
        log_dir: Optional[Path] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize translation manager.

        Args:
            repository: Content repository (defaults to the SQLite store)
            registry: Translation-pair registry (defaults to the SQLite store)
            client: Translation client; built from the configuration when omitted
            config: Configuration dict (defaults to the stored configuration)
            run_log: Logger for the run log; a per-run log file is created when omitted
            log_dir: Directory for the per-run log file
            sleep: Delay function handed to the translation client
        """
        self.config = config if config is not None else load_config()
        self.repository = repository or SqliteContentRepository()
        self.registry = registry or SqlitePairRegistry()
        self.client = client
        self.run_log = run_log
        self.log_dir = log_dir
        self._sleep = sleep
        self.start_time: Optional[float] = None

    def resolve_parameters(self, params: RunParameters) -> RunParameters:
        """
        Fill defaults from the configuration and normalize language codes.

        Raises:
            ConfigurationError: If the configured page size is not a valid number
        """
        return RunParameters(
            post_type=params.post_type,
            target_language=lc.normalize_language_code(params.target_language),
            source_language=lc.normalize_language_code(
                params.source_language or get_default_language(self.config)
            ),
            dry_run=params.dry_run,
            page_size=params.page_size or get_translation_setting('page_size', self.config),
            limit=params.limit,
            start_page=max(1, params.start_page or 1),
            status=params.status,
        )

    def validate(self, params: RunParameters) -> None:
        """
        Check everything that must hold before any document is touched.

        Raises:
            ConfigurationError: On any fatal configuration problem
        """
        api_config = build_api_config(self.config)
        retry_policy = build_retry_policy(self.config)

        if not self.registry.is_available():
            raise ConfigurationError(
                "Translation-pair registry is not available.",
                code="registry_unavailable",
            )

        if lc.languages_match(params.source_language, params.target_language, strict=True):
            raise ConfigurationError(
                f"Target language '{params.target_language}' is the source language.",
                code="same_language",
                details={"language": params.target_language},
            )

        if params.limit is not None and params.limit < 0:
            raise ConfigurationError("Limit must not be negative.", code="invalid_limit")

        if not lc.is_valid_language_code(params.target_language):
            logger.warning(f"Target language '{params.target_language}' is not a known provider language")

        if self.client is None:
            self.client = TranslationClient(
                api_config,
                retry_policy,
                sleep=self._sleep,
            )

    def run(
        self,
        params: RunParameters,
        progress_callback: Optional[Callable[[RunProgress], Optional[bool]]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> RunSummary:
        """
        Translate every matching source document that lacks a target translation.

        Args:
            params: Run parameters
            progress_callback: Called after each document; returning True cancels the run
            cancel_check: Polled before each document; returning True cancels the run

        Returns:
            RunSummary with final counts

        Raises:
            ConfigurationError: Before any document is processed
        """
        params = self.resolve_parameters(params)
        self.validate(params)

        own_run_log = self.run_log is None
        run_log = self.run_log or get_run_logger(params.post_type, params.target_language, self.log_dir)
        summary = RunSummary(dry_run=params.dry_run, log_path=str(getattr(run_log, 'log_path', '')) or None)

        translator = DocumentTranslator(
            repository=self.repository,
            registry=self.registry,
            client=self.client,
            walker=StructureWalker(self.client, build_retry_policy(self.config).max_texts_per_request),
            copy_metas=get_copy_metas(self.config),
            dry_run=params.dry_run,
            run_log=run_log,
        )

        try:
            self._run_pages(params, translator, summary, run_log, progress_callback, cancel_check)
        finally:
            summary.usage = self.client.get_usage() if hasattr(self.client, 'get_usage') else {}
            run_log.info(f"Done. {summary.as_line()}")
            logger.info(f"Translation run finished. {summary.as_line()}")
            if own_run_log:
                close_run_logger(run_log)

        return summary

    def _run_pages(self, params, translator, summary, run_log, progress_callback, cancel_check):
        self.start_time = time.time()
        mode = " (dry run)" if params.dry_run else ""
        target_name = lc.get_language_name(params.target_language) or params.target_language
        run_log.info(
            f"Starting translation of '{params.post_type}' documents "
            f"from {params.source_language} to {params.target_language} ({target_name}){mode}."
        )
        logger.info(f"Starting translation run: {params.post_type} {params.source_language} -> {params.target_language}{mode}")

        page = params.start_page
        total_pages = 0
        remaining_items = 0
        counted = 0  # Documents counted against the limit

        while True:
            documents, total = self.repository.query_documents(
                params.post_type, params.source_language, params.status, page, params.page_size
            )

            if page == params.start_page:
                summary.total_found = total
                if total == 0:
                    logger.warning("No documents found for translation.")
                    run_log.info("No documents found for translation.")
                    return
                total_pages = math.ceil(total / params.page_size)
                remaining_items = max(total - (params.start_page - 1) * params.page_size, 0)
                logger.info(f"Found {total} documents ({total_pages} pages of {params.page_size})")

            if not documents:
                return

            for document in documents:
                if params.limit is not None and counted >= params.limit:
                    summary.limit_reached = True
                    run_log.info(f"Limit of {params.limit} documents reached.")
                    return
                if cancel_check and cancel_check():
                    summary.cancelled = True
                    run_log.info("Run cancelled.")
                    return

                result = self._translate_one(translator, document, params, run_log)
                self._record(summary, result)
                if result.reason != SkipReason.ALREADY_TRANSLATED:
                    counted += 1

                if progress_callback:
                    total_items = self._expected_items(params, summary, remaining_items, counted)
                    progress = self._build_progress(params, summary, result, document, page, total_pages, total_items)
                    if progress_callback(progress):
                        summary.cancelled = True
                        run_log.info("Run cancelled.")
                        return

                if params.limit is not None and counted >= params.limit:
                    summary.limit_reached = True
                    run_log.info(f"Limit of {params.limit} documents reached.")
                    return

            if page >= total_pages:
                return
            page += 1

    def _translate_one(self, translator: DocumentTranslator, document, params: RunParameters,
                       run_log: logging.Logger) -> DocumentResult:
        try:
            return translator.translate(document, params.target_language, params.source_language)
        except RepositoryError as e:
            run_log.warning(f"Error translating #{document.id}: {e}")
            logger.error(f"Document #{document.id} failed: {e}")
            return DocumentResult(DocumentOutcome.ERROR, document.id, message=str(e))
        except Exception as e:
            run_log.warning(f"Error translating #{document.id}: {type(e).__name__}: {e}")
            logger.exception(f"Document #{document.id} failed unexpectedly")
            return DocumentResult(DocumentOutcome.ERROR, document.id, message=f"{type(e).__name__}: {e}")

    @staticmethod
    def _record(summary: RunSummary, result: DocumentResult) -> None:
        summary.processed += 1
        if result.outcome == DocumentOutcome.TRANSLATED:
            summary.translated += 1
        elif result.outcome == DocumentOutcome.SKIPPED:
            summary.skipped += 1
        else:
            summary.errors += 1
            summary.failed_items.append({
                'document_id': result.source_id,
                'new_id': result.new_id,
                'message': result.message,
            })

    @staticmethod
    def _expected_items(params: RunParameters, summary: RunSummary, remaining_items: int, counted: int) -> int:
        """
        Documents this run is expected to process.

        Already-translated skips do not count against the limit, so with a
        limit the expectation grows by every such skip seen so far.
        """
        if params.limit is None:
            return remaining_items
        return min(remaining_items, params.limit + summary.processed - counted)

    def _build_progress(self, params, summary, result, document, page, total_pages, total_items) -> RunProgress:
        eta = None
        if self.start_time and summary.processed:
            elapsed = time.time() - self.start_time
            remaining = max(total_items - summary.processed, 0)
            eta = elapsed / summary.processed * remaining

        return RunProgress(
            post_type=params.post_type,
            target_language=params.target_language,
            current_item=summary.processed,
            total_items=total_items,
            current_page=page,
            total_pages=total_pages,
            document_id=document.id,
            document_title=document.title,
            outcome=result.outcome.value,
            message=result.message,
            translated_count=summary.translated,
            skipped_count=summary.skipped,
            error_count=summary.errors,
            estimated_time_remaining=eta,
        )
