"""
Asynchronous task helpers for long-running background jobs (batch translation runs).
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from autotranslate.logger import get_logger
from autotranslate.translation.manager import RunParameters, TranslationManager
from autotranslate.translation.progress import RunProgress

logger = get_logger(__name__)


@dataclass
class JobState:
    """In-memory representation of an asynchronous run."""

    job_id: str
    params: Dict[str, Any] = field(default_factory=dict)
    cancel_requested: bool = False
    state: str = "pending"  # pending|running|completed|failed|cancelled
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    progress: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    last_update: float = field(default_factory=time.time)

    def request_cancel(self):
        """Mark this job as requested for cancellation."""
        self.cancel_requested = True
        self.last_update = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_jobs: Dict[str, JobState] = {}
_jobs_lock = threading.Lock()
_JOB_RETENTION_SECONDS = 600  # Retain job info for 10 minutes after completion


class RunConflictError(Exception):
    """Raised when a run is requested while another one is pending or running."""

    def __init__(self, active_job: JobState):
        super().__init__(f"Translation run {active_job.job_id} is already in progress")
        self.active_job = active_job


def create_run_job(manager: TranslationManager, params: RunParameters) -> JobState:
    """
    Register a batch run and start it in a background thread.

    The manager must already have validated params (TranslationManager.validate),
    so configuration errors surface to the caller before a job exists.

    Returns:
        JobState for the new job (already registered and running in background).

    Raises:
        RunConflictError: If another run is pending or running. The check and
            the registration happen under one lock.
    """
    job_id = uuid.uuid4().hex
    job_state = JobState(job_id=job_id, params=asdict(params))

    with _jobs_lock:
        _cleanup_jobs_locked()
        active = _active_job_locked()
        if active:
            raise RunConflictError(active)
        _jobs[job_id] = job_state

    thread = threading.Thread(
        target=_run_job,
        args=(job_state, manager, params),
        name=f"translation-run-{job_id}",
        daemon=True,
    )
    thread.start()
    logger.info(
        "Translation run %s started (post_type=%s, target=%s, dry_run=%s, limit=%s)",
        job_id,
        params.post_type,
        params.target_language,
        params.dry_run,
        params.limit,
    )
    return job_state


def get_job(job_id: str) -> Optional[JobState]:
    """Fetch a job by ID (if still retained)."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and job.finished_at and (time.time() - job.finished_at) > _JOB_RETENTION_SECONDS:
            # Expired; remove
            _jobs.pop(job_id, None)
            return None
        return job


def cancel_job(job_id: str) -> bool:
    """
    Request cancellation of a running job.

    The run stops before its next document; the current one is finished.

    Returns:
        True if job was found and cancellation requested, False otherwise.
    """
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job:
            return False
        if job.state in ("completed", "failed", "cancelled"):
            return False  # Already finished
        job.request_cancel()
        logger.info("Cancellation requested for job %s", job_id)
        return True


def get_active_job() -> Optional[JobState]:
    """Latest pending or running job, if any. Runs are processed one at a time."""
    with _jobs_lock:
        return _active_job_locked()


def list_jobs() -> List[JobState]:
    """All retained jobs, newest first."""
    with _jobs_lock:
        _cleanup_jobs_locked()
        return sorted(_jobs.values(), key=lambda j: j.created_at, reverse=True)


def _run_job(job: JobState, manager: TranslationManager, params: RunParameters):
    """Worker function executed in a background thread."""
    job.state = "running"
    job.started_at = time.time()
    job.last_update = job.started_at
    try:
        def on_progress(progress: RunProgress):
            with _jobs_lock:
                job.progress = progress.to_dict()
                job.last_update = time.time()
                # Stop after this document
                return job.cancel_requested

        def check_cancel():
            with _jobs_lock:
                return job.cancel_requested

        summary = manager.run(params, progress_callback=on_progress, cancel_check=check_cancel)

        job.result = summary.to_dict()
        job.state = "cancelled" if summary.cancelled else "completed"
        job.finished_at = time.time()
        job.last_update = job.finished_at
        logger.info(
            "Translation run %s %s (%s)",
            job.job_id,
            job.state,
            summary.as_line(),
        )
    except Exception as exc:
        job.state = "failed"
        error_type = type(exc).__name__
        job.error = f"{error_type}: {exc}"
        job.finished_at = time.time()
        job.last_update = job.finished_at
        logger.exception("✗ Translation run %s failed: %s: %s", job.job_id, error_type, exc)


def _active_job_locked() -> Optional[JobState]:
    active_jobs = [job for job in _jobs.values() if job.state in ("pending", "running")]
    if not active_jobs:
        return None
    return max(active_jobs, key=lambda j: j.created_at)


def _cleanup_jobs_locked():
    """Remove completed jobs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        job_id
        for job_id, job in _jobs.items()
        if job.finished_at and (now - job.finished_at) > _JOB_RETENTION_SECONDS
    ]
    for job_id in expired:
        _jobs.pop(job_id, None)
