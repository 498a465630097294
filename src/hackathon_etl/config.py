"""hackathon_etl.config

Optional YAML settings file for the import CLI.

Example (config/import.yml):

    connection_string: "host=localhost dbname=hackathon user=etl"
    paths:
      input_xml: "Data/HackathonResults.xml"
      rejects: "artifacts/rejects/submission_rejects.csv"
      reports: "artifacts/reports"

Every key is optional; options given on the command line win over the
file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ALLOWED_KEYS = frozenset({"connection_string", "paths"})
ALLOWED_PATH_KEYS = frozenset({"input_xml", "rejects", "reports"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SettingsValidationError(ValueError):
    """Raised when a YAML settings file fails schema validation."""


# ---------------------------------------------------------------------------
# ImportSettings dataclass
# ---------------------------------------------------------------------------

@dataclass
class ImportSettings:
    connection_string: str | None = None
    input_xml: str | None = None
    rejects_path: str | None = None
    reports_dir: str | None = None


# ---------------------------------------------------------------------------
# Loader + validator
# ---------------------------------------------------------------------------

def load_settings(yaml_path: Path) -> ImportSettings:
    """Load, validate, and return ImportSettings from a YAML file.

    Raises:
        SettingsValidationError: unknown keys or non-string values.
        FileNotFoundError: If the YAML file does not exist.
    """
    raw = yaml_path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    validate_settings(data)
    paths = data.get("paths") or {}
    return ImportSettings(
        connection_string=data.get("connection_string"),
        input_xml=paths.get("input_xml"),
        rejects_path=paths.get("rejects"),
        reports_dir=paths.get("reports"),
    )


def validate_settings(data: Any) -> None:
    """Raise SettingsValidationError if data does not match the schema."""
    if not isinstance(data, dict):
        raise SettingsValidationError("settings file must contain a mapping")

    unknown = set(data) - ALLOWED_KEYS
    if unknown:
        raise SettingsValidationError(f"unknown settings keys: {sorted(unknown)}")

    conn_str = data.get("connection_string")
    if conn_str is not None and not isinstance(conn_str, str):
        raise SettingsValidationError("connection_string must be a string")

    paths = data.get("paths")
    if paths is None:
        return
    if not isinstance(paths, dict):
        raise SettingsValidationError("paths must be a mapping")
    unknown = set(paths) - ALLOWED_PATH_KEYS
    if unknown:
        raise SettingsValidationError(f"unknown paths keys: {sorted(unknown)}")
    for key, value in paths.items():
        if value is not None and not isinstance(value, str):
            raise SettingsValidationError(f"paths.{key} must be a string")
