"""
Translation Progress Data Classes

Contains the RunProgress dataclass for tracking a batch run and the
RunSummary dataclass holding its final counts.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RunProgress:
    """Progress information for an ongoing batch run."""
    post_type: str
    target_language: str
    current_item: int                # Documents handled so far (1-indexed after the first)
    total_items: int                 # Documents expected in this run; grows with already-translated skips under a limit
    current_page: int = 0
    total_pages: int = 0
    document_id: Optional[int] = None
    document_title: str = ""
    outcome: str = ""                # "translated", "skipped", "error"
    message: str = ""
    translated_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    phase: str = "translating"       # "starting", "translating", "completed"
    estimated_time_remaining: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RunSummary:
    """Counts accumulated over one batch run."""
    processed: int = 0
    translated: int = 0
    skipped: int = 0
    errors: int = 0
    total_found: int = 0
    cancelled: bool = False
    limit_reached: bool = False
    dry_run: bool = False
    # Failed documents, one dict per error: {"document_id", "message"}
    failed_items: List[Dict[str, Any]] = field(default_factory=list)
    usage: Dict[str, int] = field(default_factory=dict)
    log_path: Optional[str] = None

    def as_line(self) -> str:
        return (
            f"Processed: {self.processed}, Translated: {self.translated}, "
            f"Skipped: {self.skipped}, Errors: {self.errors}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
