"""Unit tests for reconciliation and the snapshot index."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from hackathon_etl.reconcile import DUPLICATE_REASON, ReconcilePlan, reconcile_candidates
from hackathon_etl.snapshot import SubmissionIndex
from hackathon_etl.submission import SubmissionRecord

TODAY = date(2025, 11, 8)


def _raw(record_id="1", **overrides):
    base = {
        "Id": record_id,
        "TeamName": f"Team {record_id}",
        "ProjectName": "Project",
        "Category": "Web",
        "EventDate": "2025-10-01",
        "Score": "70",
        "Members": "3",
        "Captain": "Cap",
    }
    base.update(overrides)
    return base


def _record(record_id=1, **overrides):
    rec = SubmissionRecord(
        id=record_id,
        team_name=f"Old {record_id}",
        project_name="Old Project",
        category="Old",
        event_date=date(2024, 1, 1),
        score=Decimal("10.00"),
        members=2,
        captain="Old Cap",
    )
    return replace(rec, **overrides)


# ---------------------------------------------------------------------------
# SubmissionIndex
# ---------------------------------------------------------------------------

class TestSubmissionIndex:
    def test_overlay_wins_over_base(self):
        base = {1: _record(1)}
        index = SubmissionIndex(base)
        newer = _record(1, team_name="New")
        index.stage(newer)
        assert index.get(1) is newer
        assert index.base[1].team_name == "Old 1"

    def test_base_is_read_only(self):
        index = SubmissionIndex({1: _record(1)})
        with pytest.raises(TypeError):
            index.base[2] = _record(2)  # type: ignore[index]

    def test_staging_does_not_touch_callers_snapshot(self):
        snapshot = {1: _record(1)}
        index = SubmissionIndex(snapshot)
        index.stage(_record(2))
        assert set(snapshot) == {1}
        assert index.in_snapshot(1)
        assert not index.in_snapshot(2)
        assert index.get(2) is not None

    def test_seen_tracking(self):
        index = SubmissionIndex({})
        assert not index.is_seen(5)
        index.mark_seen(5)
        assert index.is_seen(5)


# ---------------------------------------------------------------------------
# reconcile_candidates
# ---------------------------------------------------------------------------

class TestReconcile:
    def test_new_id_is_insert(self):
        plan = reconcile_candidates([_raw("7")], {}, TODAY)
        assert (plan.inserted, plan.updated, plan.skipped) == (1, 0, 0)
        assert plan.inserts[0].kind == "insert"
        assert plan.inserts[0].record.id == 7

    def test_existing_id_is_full_update(self):
        plan = reconcile_candidates([_raw("1", Score="95.5")], {1: _record(1)}, TODAY)
        assert (plan.inserted, plan.updated, plan.skipped) == (0, 1, 0)
        updated = plan.updates[0].record
        assert updated.team_name == "Team 1"
        assert updated.project_name == "Project"
        assert updated.category == "Web"
        assert updated.score == Decimal("95.50")
        assert updated.captain == "Cap"

    def test_three_candidate_scenario(self):
        snapshot = {2: _record(2)}
        plan = reconcile_candidates(
            [_raw("1"), _raw("2", Score="88"), _raw("3", Score="150")],
            snapshot,
            TODAY,
        )
        assert (plan.inserted, plan.updated, plan.skipped) == (1, 1, 1)
        assert len(plan.skip_reasons) == 1
        assert "Score is out of expected range" in plan.skip_reasons[0]
        assert plan.skip_reasons[0].startswith("XML Row (Team='Team 3'")

    def test_duplicate_in_batch_only_first_staged(self):
        plan = reconcile_candidates(
            [_raw("4", TeamName="First"), _raw("4", TeamName="Second"), _raw("4")],
            {},
            TODAY,
        )
        assert plan.inserted == 1
        assert plan.inserts[0].record.team_name == "First"
        assert plan.skipped == 2
        assert all(r.endswith(DUPLICATE_REASON) for r in plan.skip_reasons)

    def test_duplicate_of_existing_id_updates_once(self):
        plan = reconcile_candidates([_raw("1"), _raw("1")], {1: _record(1)}, TODAY)
        assert (plan.inserted, plan.updated, plan.skipped) == (0, 1, 1)

    def test_invalid_first_occurrence_does_not_block_later_one(self):
        plan = reconcile_candidates([_raw("4", Members="0"), _raw("4")], {}, TODAY)
        assert (plan.inserted, plan.skipped) == (1, 1)
        assert "Members is out of expected range" in plan.skip_reasons[0]

    def test_id_beyond_integer_column_is_skipped(self):
        plan = reconcile_candidates([_raw("1"), _raw("3000000000")], {}, TODAY)
        assert (plan.inserted, plan.skipped) == (1, 1)
        assert [m.record.id for m in plan.mutations] == [1]
        assert "Invalid or missing Id" in plan.skip_reasons[0]

    def test_multiple_violations_joined(self):
        plan = reconcile_candidates([_raw("x", Score="150")], {}, TODAY)
        reason = plan.skip_reasons[0]
        assert "Invalid or missing Id" in reason
        assert "; Score is out of expected range" in reason

    def test_unexpected_exception_becomes_skip(self):
        bad = _raw("8")
        bad["TeamName"] = 42  # not a string: .strip() blows up
        plan = reconcile_candidates([bad, _raw("9")], {}, TODAY)
        assert plan.skipped == 1
        assert plan.skip_reasons[0].startswith("Exception processing record:")
        assert plan.inserted == 1
        assert plan.inserts[0].record.id == 9

    def test_non_mapping_candidate_becomes_skip(self):
        plan = reconcile_candidates([None, _raw("1")], {}, TODAY)  # type: ignore[list-item]
        assert (plan.inserted, plan.skipped) == (1, 1)
        assert plan.skipped_rows[0][0] == {"raw": "None"}

    def test_snapshot_not_mutated(self):
        snapshot = {1: _record(1)}
        reconcile_candidates([_raw("1"), _raw("2")], snapshot, TODAY)
        assert snapshot == {1: _record(1)}

    def test_empty_batch(self):
        plan = reconcile_candidates([], {1: _record(1)}, TODAY)
        assert plan.is_empty
        assert (plan.inserted, plan.updated, plan.skipped) == (0, 0, 0)

    def test_mutations_are_inserts_then_updates_in_document_order(self):
        plan = reconcile_candidates(
            [_raw("1"), _raw("5"), _raw("2"), _raw("6")],
            {1: _record(1), 2: _record(2)},
            TODAY,
        )
        assert [m.record.id for m in plan.mutations] == [5, 6, 1, 2]
        assert [m.kind for m in plan.mutations] == ["insert", "insert", "update", "update"]

    def test_skipped_rows_keep_raw_fields(self):
        plan = reconcile_candidates([_raw("3", Score="150")], {}, TODAY)
        row, reason = plan.skipped_rows[0]
        assert row["Score"] == "150"
        assert reason == plan.skip_reasons[0]


class TestSkipReport:
    def test_capped_at_twenty_with_remainder(self):
        plan = ReconcilePlan(skip_reasons=[f"r{i}" for i in range(25)])
        shown, remaining = plan.skip_report()
        assert shown == [f"r{i}" for i in range(20)]
        assert remaining == 5

    def test_under_cap(self):
        plan = ReconcilePlan(skip_reasons=["a", "b"])
        assert plan.skip_report() == (["a", "b"], 0)
