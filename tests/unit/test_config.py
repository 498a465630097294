"""Unit tests for hackathon_etl.config."""

from __future__ import annotations

import textwrap

import pytest

from hackathon_etl.config import (
    ImportSettings,
    SettingsValidationError,
    load_settings,
    validate_settings,
)

FULL_YAML = textwrap.dedent("""\
    connection_string: "host=localhost dbname=hackathon"
    paths:
      input_xml: "Data/HackathonResults.xml"
      rejects: "artifacts/rejects/r.csv"
      reports: "artifacts/reports"
""")


def test_load_full(tmp_path):
    p = tmp_path / "import.yml"
    p.write_text(FULL_YAML)
    assert load_settings(p) == ImportSettings(
        connection_string="host=localhost dbname=hackathon",
        input_xml="Data/HackathonResults.xml",
        rejects_path="artifacts/rejects/r.csv",
        reports_dir="artifacts/reports",
    )


def test_empty_file_gives_defaults(tmp_path):
    p = tmp_path / "empty.yml"
    p.write_text("")
    assert load_settings(p) == ImportSettings()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yml")


@pytest.mark.parametrize("data, match", [
    (["a"], "must contain a mapping"),
    ({"db": "x"}, "unknown settings keys"),
    ({"connection_string": 5}, "connection_string must be a string"),
    ({"paths": "x"}, "paths must be a mapping"),
    ({"paths": {"output": "x"}}, "unknown paths keys"),
    ({"paths": {"input_xml": 3}}, "paths.input_xml must be a string"),
])
def test_validation_errors(data, match):
    with pytest.raises(SettingsValidationError, match=match):
        validate_settings(data)


def test_settings_error_is_value_error():
    assert issubclass(SettingsValidationError, ValueError)
