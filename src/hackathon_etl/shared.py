"""hackathon_etl.shared

Shared utilities for the submission import pipeline.
Includes the exception hierarchy, RejectWriter, RunCounters, the
ImportSummary handed to completion callbacks, skip-report logging, and
report-writing support.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

SKIP_REPORT_LIMIT = 20


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SubmissionImportError(Exception):
    """Base class for fatal import failures."""


class DocumentError(SubmissionImportError):
    """Raised when the input document is missing or not well-formed XML."""


class ImportLockedError(SubmissionImportError):
    """Raised when another import run holds the store's advisory lock."""


class ExplicitIdUnsupportedError(SubmissionImportError):
    """Raised when the store cannot accept caller-supplied identifiers."""


class CommitError(SubmissionImportError):
    """Raised when the batch transaction fails and has been rolled back."""


# ---------------------------------------------------------------------------
# RejectWriter
# ---------------------------------------------------------------------------

class RejectWriter:
    """Lazy-open CSV writer for skipped candidates."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh = None
        self._writer = None

    @property
    def path(self) -> Path:
        return self._path

    def write(self, row: dict[str, str], reason: str) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self._path, "w", newline="", encoding="utf-8")
            fieldnames = list(row.keys()) + ["_reject_reason"]
            self._writer = csv.DictWriter(
                self._fh, fieldnames=fieldnames, extrasaction="ignore"
            )
            self._writer.writeheader()
        out = dict(row)
        out["_reject_reason"] = reason
        self._writer.writerow(out)
        self._fh.flush()

    def close(self) -> None:
        if self._fh:
            self._fh.close()


# ---------------------------------------------------------------------------
# RunCounters / ImportSummary
# ---------------------------------------------------------------------------

@dataclass
class RunCounters:
    rows_read: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    skip_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        shown, remaining = cap_skip_reasons(self.skip_reasons)
        return {
            "rows_read": self.rows_read,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "skip_reasons": shown,
            "skip_reasons_not_shown": remaining,
        }


@dataclass(frozen=True)
class ImportSummary:
    """Outcome of one batch, delivered once to the completion callback."""

    inserted: int
    updated: int
    skipped: int
    duration: timedelta

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration.total_seconds(), 3),
        }


# ---------------------------------------------------------------------------
# Skip report
# ---------------------------------------------------------------------------

def cap_skip_reasons(
    reasons: list[str],
    limit: int = SKIP_REPORT_LIMIT,
) -> tuple[list[str], int]:
    """Return (first `limit` reasons, count of reasons not shown)."""
    return list(reasons[:limit]), max(len(reasons) - limit, 0)


def log_skip_report(reasons: list[str], limit: int = SKIP_REPORT_LIMIT) -> None:
    """Log up to `limit` skip reasons at WARNING, then a remainder line."""
    if not reasons:
        return
    shown, remaining = cap_skip_reasons(reasons, limit)
    log.warning(
        "Skipped %d XML rows. Showing up to %d examples:", len(reasons), limit
    )
    for reason in shown:
        log.warning("  %s", reason)
    if remaining:
        log.warning("  ... and %d more skipped rows not shown.", remaining)


# ---------------------------------------------------------------------------
# Report writer
# ---------------------------------------------------------------------------

def write_run_report(
    run_id: str,
    started_at: str,
    dry_run: bool,
    source_paths: dict[str, str],
    counters: RunCounters,
    summary: ImportSummary | None,
    reports_dir: Path = Path("./artifacts/reports"),
) -> Path:
    report = {
        "run_id": run_id,
        "started_at": started_at,
        "finished_at": datetime.now(timezone.utc).isoformat(),
        "dry_run": dry_run,
        **source_paths,
        "counters": counters.to_dict(),
        "summary": summary.to_dict() if summary else None,
    }
    report_path = reports_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
