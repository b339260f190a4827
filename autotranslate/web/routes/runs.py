"""Batch translation run API routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request

from autotranslate.logger import get_logger
from autotranslate.provider.exceptions import TranslationError
from autotranslate.translation.manager import RunParameters, TranslationManager
from autotranslate.web.tasks import (
    RunConflictError,
    cancel_job,
    create_run_job,
    get_active_job,
    get_job,
    list_jobs,
)

runs_bp = Blueprint("runs", __name__)
logger = get_logger(__name__)


def _optional_int(data: Dict[str, Any], key: str, minimum: int) -> Optional[int]:
    """Read an optional integer field; raises ValueError with a client-facing message."""
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"'{key}' must be an integer")
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{key}' must be an integer")
    if value < minimum:
        raise ValueError(f"'{key}' must be at least {minimum}")
    return value


def _parse_run_parameters(data: Dict[str, Any]) -> RunParameters:
    target = data.get("target_language") or data.get("lang")
    if not isinstance(target, str) or not target.strip():
        raise ValueError("'target_language' is required")

    post_type = data.get("post_type", "post")
    if not isinstance(post_type, str) or not post_type.strip():
        raise ValueError("'post_type' must be a non-empty string")

    return RunParameters(
        post_type=post_type.strip(),
        target_language=target.strip(),
        source_language=data.get("source_language") or None,
        dry_run=bool(data.get("dry_run", False)),
        page_size=_optional_int(data, "page_size", 1),
        limit=_optional_int(data, "limit", 0),
        start_page=_optional_int(data, "start_page", 1) or 1,
        status=data.get("status") or "publish",
    )


@runs_bp.post("")
def start_run():
    """Start an asynchronous batch translation run."""
    data: Dict[str, Any] = request.get_json(silent=True) or {}

    try:
        params = _parse_run_parameters(data)
    except ValueError as e:
        return jsonify({"error": str(e), "code": "invalid_parameters"}), 400

    active = get_active_job()
    if active:
        return jsonify({"error": "A translation run is already in progress", "job_id": active.job_id}), 409

    manager_factory = current_app.config.get("MANAGER_FACTORY", TranslationManager)
    manager = manager_factory()

    # Configuration errors are reported here, before a job exists
    try:
        params = manager.resolve_parameters(params)
        manager.validate(params)
    except TranslationError as e:
        logger.warning("Run configuration validation failed: %s", e)
        error_response = {"error": str(e), "code": e.code or "config_error"}
        if e.details:
            error_response["details"] = e.details
        return jsonify(error_response), 400

    try:
        job = create_run_job(manager, params)
    except RunConflictError as e:
        return jsonify({"error": "A translation run is already in progress", "job_id": e.active_job.job_id}), 409
    return jsonify({"job_id": job.job_id, "job": job.to_dict()}), 202


@runs_bp.get("")
def get_runs():
    """List retained runs, newest first."""
    return jsonify({"jobs": [job.to_dict() for job in list_jobs()]})


@runs_bp.get("/<job_id>")
def get_run(job_id: str):
    """Return status, latest progress and result of a run."""
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found or expired"}), 404
    return jsonify(job.to_dict())


@runs_bp.post("/<job_id>/cancel")
def cancel_run(job_id: str):
    """Request cancellation; the run stops before its next document."""
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found or expired"}), 404

    if cancel_job(job_id):
        return jsonify({"status": "cancellation_requested", "job_id": job_id})
    return jsonify({"error": "Job has already finished"}), 400
