"""hackathon_etl.store

PostgreSQL access for the submission table: identifier-preserving
writes, the single-transaction batch commit, and the advisory lock that
keeps imports single-writer.

`submission.id` is an identity column, so the store normally assigns
ids itself. Imports carry their own ids, which requires explicit-id mode
for the duration of the batch transaction:

  enable:  verify the column can take caller-supplied ids (fail fast
           otherwise) and use OVERRIDING SYSTEM VALUE on inserts
  disable: move the identity sequence past max(id) so later
           store-assigned ids cannot collide with imported ones

All statements for a batch run inside one `conn.transaction()` block;
the connection must not already be inside a transaction.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import psycopg
from psycopg.pq import TransactionStatus

from hackathon_etl.reconcile import ReconcilePlan
from hackathon_etl.shared import (
    CommitError,
    ExplicitIdUnsupportedError,
    ImportLockedError,
)
from hackathon_etl.submission import SubmissionRecord

log = logging.getLogger(__name__)

TABLE = "submission"

# Arbitrary but fixed key shared by every import process.
IMPORT_LOCK_KEY = 0x48414B53

_INTEGER_TYPES = frozenset({"smallint", "integer", "bigint"})


# ---------------------------------------------------------------------------
# Explicit-id mode
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExplicitIdMode:
    """How inserts must be written to keep caller-supplied ids."""

    overriding: bool

    @property
    def insert_clause(self) -> str:
        return "OVERRIDING SYSTEM VALUE" if self.overriding else ""


def enable_explicit_ids(conn: psycopg.Connection) -> ExplicitIdMode:
    """Return the explicit-id mode for this store, or raise if unsupported."""
    row = conn.execute(
        """
        SELECT data_type, is_identity
        FROM information_schema.columns
        WHERE table_schema = current_schema()
          AND table_name = %s
          AND column_name = 'id'
        """,
        (TABLE,),
    ).fetchone()
    if row is None:
        raise ExplicitIdUnsupportedError(f"{TABLE}.id column not found")
    data_type, is_identity = row
    if data_type not in _INTEGER_TYPES:
        raise ExplicitIdUnsupportedError(
            f"{TABLE}.id has type {data_type!r}; integer ids cannot be preserved"
        )
    return ExplicitIdMode(overriding=is_identity == "YES")


def disable_explicit_ids(conn: psycopg.Connection) -> None:
    """Resynchronise the id sequence with the highest stored id."""
    seq = conn.execute(
        "SELECT pg_get_serial_sequence(%s, 'id')", (TABLE,)
    ).fetchone()[0]
    if seq is None:
        return
    conn.execute(
        f"""
        SELECT setval(%s::regclass, GREATEST(MAX(id), 1), MAX(id) IS NOT NULL)
        FROM {TABLE}
        """,
        (seq,),
    )


# ---------------------------------------------------------------------------
# Row writers
# ---------------------------------------------------------------------------

def insert_submissions(
    conn: psycopg.Connection,
    records: list[SubmissionRecord],
    mode: ExplicitIdMode,
) -> None:
    if not records:
        return
    with conn.cursor() as cur:
        cur.executemany(
            f"""
            INSERT INTO {TABLE}
              (id, team_name, project_name, category,
               event_date, score, members, captain)
            {mode.insert_clause}
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            [r.values() for r in records],
        )


def update_submission(conn: psycopg.Connection, record: SubmissionRecord) -> None:
    """Overwrite every field of an existing row; the id is kept."""
    cur = conn.execute(
        f"""
        UPDATE {TABLE} SET
          team_name = %s,
          project_name = %s,
          category = %s,
          event_date = %s,
          score = %s,
          members = %s,
          captain = %s
        WHERE id = %s
        """,
        (*record.values()[1:], record.id),
    )
    if cur.rowcount != 1:
        raise CommitError(
            f"{TABLE} id={record.id} vanished after the snapshot was taken"
        )


# ---------------------------------------------------------------------------
# Batch commit
# ---------------------------------------------------------------------------

def commit_plan(conn: psycopg.Connection, plan: ReconcilePlan) -> None:
    """Apply every staged mutation in one transaction, or none of them.

    An empty plan returns without opening a transaction.
    """
    if plan.is_empty:
        return
    if conn.info.transaction_status != TransactionStatus.IDLE:
        raise CommitError("connection already has an open transaction")

    try:
        with conn.transaction():
            mode = enable_explicit_ids(conn)
            insert_submissions(conn, [m.record for m in plan.inserts], mode)
            for mutation in plan.updates:
                update_submission(conn, mutation.record)
            disable_explicit_ids(conn)
    except psycopg.Error as exc:
        log.error("Error while saving imported data to the database.", exc_info=True)
        raise CommitError(f"batch rolled back: {exc}") from exc
    except CommitError:
        log.error("Batch rolled back.", exc_info=True)
        raise


# ---------------------------------------------------------------------------
# Advisory lock
# ---------------------------------------------------------------------------

@contextmanager
def import_lock(
    conn: psycopg.Connection,
    key: int = IMPORT_LOCK_KEY,
) -> Iterator[None]:
    """Hold the session-level import lock from snapshot read to commit."""
    with conn.transaction():
        acquired = conn.execute(
            "SELECT pg_try_advisory_lock(%s)", (key,)
        ).fetchone()[0]
    if not acquired:
        raise ImportLockedError("another submission import is running")
    try:
        yield
    finally:
        try:
            with conn.transaction():
                conn.execute("SELECT pg_advisory_unlock(%s)", (key,))
        except psycopg.Error:
            # Session-level locks are dropped when the session ends.
            log.warning("Could not release import lock %d.", key, exc_info=True)
