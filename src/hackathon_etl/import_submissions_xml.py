"""hackathon_etl.import_submissions_xml

CLI entrypoint and orchestration for hackathon submission imports.

A run reads one XML document, validates every <Project> candidate,
reconciles the batch against a snapshot of the submission table, and
commits all inserts and updates in a single transaction that keeps the
ids supplied in the document.

Usage:
    python -m hackathon_etl.import_submissions_xml \\
        --db-dsn "$DB_DSN" \\
        --xml-path "Data/HackathonResults.xml" \\
        --rejects-path "artifacts/rejects/submission_rejects.csv"

    python -m hackathon_etl.import_submissions_xml --config config/import.yml --dry-run
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import click
import psycopg
from psycopg.pq import TransactionStatus

from hackathon_etl.config import ImportSettings, SettingsValidationError, load_settings
from hackathon_etl.document import read_candidates
from hackathon_etl.reconcile import reconcile_candidates
from hackathon_etl.shared import (
    ImportSummary,
    RejectWriter,
    RunCounters,
    SubmissionImportError,
    log_skip_report,
    write_run_report,
)
from hackathon_etl.snapshot import load_snapshot
from hackathon_etl.store import commit_plan, import_lock

log = logging.getLogger(__name__)

DEFAULT_XML_PATH = "Data/HackathonResults.xml"
DEFAULT_REJECTS_PATH = "./artifacts/rejects/submission_rejects.csv"
DEFAULT_REPORTS_DIR = "./artifacts/reports"


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def run_import(
    conn: psycopg.Connection,
    xml_path: str | Path,
    *,
    today: date | None = None,
    on_complete: Callable[[ImportSummary], None] | None = None,
    dry_run: bool = False,
    rejects: RejectWriter | None = None,
    counters: RunCounters | None = None,
) -> ImportSummary:
    """Import one XML document into the submission table.

    The connection must be idle (not inside a transaction). `on_complete`
    is called exactly once after a successful run, including runs that
    stage nothing. Fatal errors propagate and leave the table unchanged.
    """
    started = time.perf_counter()
    counters = counters if counters is not None else RunCounters()

    candidates = read_candidates(xml_path)
    counters.rows_read = len(candidates)

    if conn.info.transaction_status != TransactionStatus.IDLE:
        raise SubmissionImportError("run_import needs a connection with no open transaction")

    with import_lock(conn):
        snapshot = load_snapshot(conn)
        plan = reconcile_candidates(candidates, snapshot, today)
        if not dry_run:
            commit_plan(conn, plan)

    duration = timedelta(seconds=time.perf_counter() - started)
    counters.inserted = plan.inserted
    counters.updated = plan.updated
    counters.skipped = plan.skipped
    counters.skip_reasons = list(plan.skip_reasons)

    if rejects is not None:
        for row, reason in plan.skipped_rows:
            rejects.write(row, reason)

    log.debug(
        "Import completed: inserted=%d, updated=%d, skipped=%d in %.3fs%s.",
        plan.inserted, plan.updated, plan.skipped, duration.total_seconds(),
        " (no changes to save)" if plan.is_empty else "",
    )
    log_skip_report(plan.skip_reasons)

    summary = ImportSummary(
        inserted=plan.inserted,
        updated=plan.updated,
        skipped=plan.skipped,
        duration=duration,
    )
    if on_complete is not None:
        on_complete(summary)
    return summary


def build_import_report(summary: ImportSummary, dry_run: bool = False) -> str:
    lines = [
        "----- Import completed -----",
        f"Inserted: {summary.inserted}, Updated: {summary.updated}, Skipped: {summary.skipped}",
        f"Duration: {summary.duration.total_seconds():.2f}s",
    ]
    if dry_run:
        lines.append("(dry run: nothing was written)")
    lines.append("----------------------------")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML settings file (connection_string, paths.*)",
)
@click.option(
    "--db-dsn",
    default=None,
    envvar="HACKATHON_DB_DSN",
    help="PostgreSQL DSN (or HACKATHON_DB_DSN)",
)
@click.option("--xml-path", default=None, type=click.Path(), help="Input XML document")
@click.option("--rejects-path", default=None, type=click.Path(), help="CSV of skipped candidates")
@click.option("--reports-dir", default=None, type=click.Path(), help="Directory for JSON run reports")
@click.option("--dry-run", is_flag=True, default=False)
@click.option("--report/--no-report", default=True, show_default=True, help="Write a JSON run report")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log at DEBUG level")
def main(
    config_path: Path | None,
    db_dsn: str | None,
    xml_path: str | None,
    rejects_path: str | None,
    reports_dir: str | None,
    dry_run: bool,
    report: bool,
    run_id: str | None,
    verbose: bool,
) -> None:
    """Import hackathon submissions from XML into PostgreSQL."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.now(timezone.utc).isoformat()

    settings = ImportSettings()
    if config_path is not None:
        try:
            settings = load_settings(config_path)
        except SettingsValidationError as exc:
            click.echo(f"[{run_id}] FATAL: invalid settings file {config_path}: {exc}", err=True)
            sys.exit(1)

    db_dsn = db_dsn or settings.connection_string
    if not db_dsn:
        click.echo(f"[{run_id}] FATAL: no DSN; pass --db-dsn, set HACKATHON_DB_DSN, or use --config", err=True)
        sys.exit(1)
    xml_path = xml_path or settings.input_xml or DEFAULT_XML_PATH
    rejects = RejectWriter(Path(rejects_path or settings.rejects_path or DEFAULT_REJECTS_PATH))
    counters = RunCounters()

    click.echo(f"[{run_id}] Importing from {xml_path} (dry_run={dry_run})")

    summary = None
    try:
        with psycopg.connect(db_dsn, autocommit=True) as conn:
            summary = run_import(
                conn,
                xml_path,
                on_complete=lambda s: click.echo(build_import_report(s, dry_run)),
                dry_run=dry_run,
                rejects=rejects,
                counters=counters,
            )
    except (SubmissionImportError, psycopg.Error) as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)
    finally:
        rejects.close()

    if counters.skipped:
        click.echo(f"[{run_id}] {counters.skipped} skipped row(s) written to {rejects.path}")

    if report:
        report_path = write_run_report(
            run_id, started_at, dry_run,
            {"xml_path": str(xml_path), "rejects_path": str(rejects.path)},
            counters,
            summary,
            Path(reports_dir or settings.reports_dir or DEFAULT_REPORTS_DIR),
        )
        click.echo(f"[{run_id}] Run report: {report_path}")


if __name__ == "__main__":
    main()
