"""hackathon_etl.reconcile

Insert / update / skip decisions for one batch of raw candidates.

Per candidate, in document order:
  1. validate: any violation → skip with the joined messages
  2. duplicate check: id already accepted in this batch → skip
  3. match: unknown id → insert; known id → full-row update

Any other exception raised while handling a single candidate is turned
into a skip so that one malformed record never aborts the batch.
Nothing here touches the store; the plan is applied by store.commit_plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Literal, Mapping

from hackathon_etl.shared import SKIP_REPORT_LIMIT, cap_skip_reasons
from hackathon_etl.snapshot import SubmissionIndex
from hackathon_etl.submission import SubmissionRecord, row_label, validate_candidate

DUPLICATE_REASON = "Duplicate Id in batch."


@dataclass(frozen=True)
class StagedMutation:
    kind: Literal["insert", "update"]
    record: SubmissionRecord


@dataclass
class ReconcilePlan:
    inserts: list[StagedMutation] = field(default_factory=list)
    updates: list[StagedMutation] = field(default_factory=list)
    skip_reasons: list[str] = field(default_factory=list)
    # raw candidate paired with its skip reason, for the reject CSV
    skipped_rows: list[tuple[dict[str, str], str]] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return len(self.inserts)

    @property
    def updated(self) -> int:
        return len(self.updates)

    @property
    def skipped(self) -> int:
        return len(self.skip_reasons)

    @property
    def mutations(self) -> list[StagedMutation]:
        return self.inserts + self.updates

    @property
    def is_empty(self) -> bool:
        return not self.inserts and not self.updates

    def skip(self, raw: Mapping, reason: str) -> None:
        self.skip_reasons.append(reason)
        self.skipped_rows.append((_as_row(raw), reason))

    def skip_report(self, limit: int = SKIP_REPORT_LIMIT) -> tuple[list[str], int]:
        return cap_skip_reasons(self.skip_reasons, limit)


def _as_row(raw: Mapping) -> dict[str, str]:
    try:
        return {str(k): "" if v is None else str(v) for k, v in raw.items()}
    except Exception:
        return {"raw": repr(raw)}


def _reconcile_one(
    raw: Mapping,
    index: SubmissionIndex,
    plan: ReconcilePlan,
    today: date | None,
) -> None:
    record, errors = validate_candidate(raw, today)
    if errors:
        plan.skip(raw, f"{row_label(raw)}: {'; '.join(errors)}")
        return

    if index.is_seen(record.id):
        plan.skip(raw, f"{row_label(raw)}: {DUPLICATE_REASON}")
        return
    index.mark_seen(record.id)

    if index.get(record.id) is None:
        plan.inserts.append(StagedMutation("insert", record))
    else:
        plan.updates.append(StagedMutation("update", record))
    index.stage(record)


def reconcile_candidates(
    candidates: Iterable[Mapping],
    snapshot: Mapping[int, SubmissionRecord],
    today: date | None = None,
) -> ReconcilePlan:
    """Build the staged mutation plan for a batch.

    `snapshot` is only read; staged records go to a separate overlay.
    """
    index = SubmissionIndex(snapshot)
    plan = ReconcilePlan()
    for raw in candidates:
        try:
            _reconcile_one(raw, index, plan, today)
        except Exception as exc:
            plan.skip(raw, f"Exception processing record: {exc}")
    return plan
