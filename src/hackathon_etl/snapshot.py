"""hackathon_etl.snapshot

Existing-state snapshot of the submission table.

The whole table is read once per batch. Reconciliation then resolves
matches through SubmissionIndex: the read-only snapshot as the base map
and a separate overlay for records staged earlier in the same batch.
The snapshot itself is never written to.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

import psycopg

from hackathon_etl.submission import SubmissionRecord

SNAPSHOT_SQL = """
    SELECT id, team_name, project_name, category,
           event_date, score, members, captain
    FROM submission
    ORDER BY id
"""


def load_snapshot(conn: psycopg.Connection) -> dict[int, SubmissionRecord]:
    """Read every persisted submission, keyed by id."""
    with conn.transaction():
        rows = conn.execute(SNAPSHOT_SQL).fetchall()
    return {row[0]: SubmissionRecord(*row) for row in rows}


class SubmissionIndex:
    """Base snapshot plus staged overlay, keyed by id."""

    def __init__(self, base: Mapping[int, SubmissionRecord]) -> None:
        self._base = MappingProxyType(dict(base))
        self._staged: dict[int, SubmissionRecord] = {}
        self._seen: set[int] = set()

    @property
    def base(self) -> Mapping[int, SubmissionRecord]:
        return self._base

    def get(self, record_id: int) -> SubmissionRecord | None:
        if record_id in self._staged:
            return self._staged[record_id]
        return self._base.get(record_id)

    def in_snapshot(self, record_id: int) -> bool:
        return record_id in self._base

    def stage(self, record: SubmissionRecord) -> None:
        self._staged[record.id] = record

    def is_seen(self, record_id: int) -> bool:
        return record_id in self._seen

    def mark_seen(self, record_id: int) -> None:
        self._seen.add(record_id)
