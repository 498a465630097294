"""hackathon_etl.submission

Submission record schema and per-candidate validation.

A candidate is a mapping of XML element name to raw string. Validation
checks every field independently so one candidate can report several
violations at once; a candidate with any violation never reaches
reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from hackathon_etl.normalize import (
    parse_date,
    parse_decimal,
    parse_int,
    trim,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FIELD_NAMES = (
    "Id",
    "TeamName",
    "ProjectName",
    "Category",
    "EventDate",
    "Score",
    "Members",
    "Captain",
)

TEAM_NAME_MAX = 100
PROJECT_NAME_MAX = 120
CATEGORY_MAX = 50
CAPTAIN_MAX = 100

SCORE_MIN = Decimal("0")
SCORE_MAX = Decimal("100")
SCORE_QUANTUM = Decimal("0.01")

MEMBERS_MIN = 1
MEMBERS_MAX = 15

ID_MAX = 2**31 - 1


# ---------------------------------------------------------------------------
# SubmissionRecord
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubmissionRecord:
    id: int
    team_name: str
    project_name: str
    category: str
    event_date: date
    score: Decimal
    members: int
    captain: str

    def values(self) -> tuple:
        """Column values in table order, id first."""
        return (
            self.id,
            self.team_name,
            self.project_name,
            self.category,
            self.event_date,
            self.score,
            self.members,
            self.captain,
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _text(raw: dict[str, str], key: str) -> str:
    return trim(raw.get(key)) or ""


def _check_text(value: str, max_len: int, label: str, errors: list[str]) -> None:
    if not value or len(value) > max_len:
        errors.append(f"{label} is missing or exceeds {max_len} characters.")


def row_label(raw: dict[str, str]) -> str:
    """Human-readable identifier used as the prefix of skip reasons."""
    team = _text(raw, "TeamName")
    project = _text(raw, "ProjectName")
    raw_id = raw.get("Id") or ""
    return f"XML Row (Team='{team}', Project='{project}', Id='{raw_id}')"


def validate_candidate(
    raw: dict[str, str],
    today: date | None = None,
) -> tuple[SubmissionRecord | None, list[str]]:
    """Validate one raw candidate.

    Returns (record, []) when valid, or (None, violations) otherwise.
    Missing keys are treated as empty strings.
    """
    today = today or date.today()
    errors: list[str] = []

    record_id = parse_int(raw.get("Id"))
    if record_id is None or not 0 < record_id <= ID_MAX:
        errors.append("Invalid or missing Id (must be positive integer).")

    team_name = _text(raw, "TeamName")
    _check_text(team_name, TEAM_NAME_MAX, "TeamName", errors)

    project_name = _text(raw, "ProjectName")
    _check_text(project_name, PROJECT_NAME_MAX, "ProjectName", errors)

    category = _text(raw, "Category")
    _check_text(category, CATEGORY_MAX, "Category", errors)

    event_date = parse_date(raw.get("EventDate"))
    if event_date is None:
        errors.append("EventDate is missing or invalid (expected date).")
    elif event_date > today:
        errors.append("EventDate cannot be in the future.")

    score = parse_decimal(raw.get("Score"))
    if score is None:
        errors.append("Score is missing or invalid (expected decimal).")
    elif score < SCORE_MIN or score > SCORE_MAX:
        errors.append("Score is out of expected range (0 - 100).")

    members = parse_int(raw.get("Members"))
    if members is None:
        errors.append("Members is missing or invalid (expected integer).")
    elif members < MEMBERS_MIN or members > MEMBERS_MAX:
        errors.append("Members is out of expected range (1 - 15).")

    captain = _text(raw, "Captain")
    _check_text(captain, CAPTAIN_MAX, "Captain", errors)

    if errors:
        return None, errors

    return SubmissionRecord(
        id=record_id,
        team_name=team_name,
        project_name=project_name,
        category=category,
        event_date=event_date,
        score=score.quantize(SCORE_QUANTUM),
        members=members,
        captain=captain,
    ), []
