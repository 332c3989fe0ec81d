"""
CSV import/export: header and row validation, partial loads, quoting and
the non-mutating audit.
"""

import pandas as pd
import pytest
from datetime import datetime, timezone
from stairval.notepad import create_notepad

from triage_desk.csv_io import (
    CsvFormatError,
    audit_patient_csv,
    export_log,
    format_timestamp,
    load_patients,
    parse_patient_row,
)
from triage_desk.treatment import Outcome, TreatedCase


def test_quoted_name_with_comma_is_loaded(registry, write_csv):
    path = write_csv('id,name,age,severity\nP1,"Ann, B",30,5\n')
    loaded = load_patients(path, registry)
    assert len(loaded) == 1
    assert registry.lookup("P1").name == "Ann, B"


def test_header_is_case_insensitive_and_blank_lines_are_skipped(registry, write_csv):
    path = write_csv("ID,Name,AGE,Severity\n\nP1,Ann,30,5\n   \nP2,Bob,41,9\n")
    loaded = load_patients(path, registry)
    assert [p.patient_id for p in loaded] == ["P1", "P2"]
    assert [p.arrival_seq for p in loaded] == [0, 1]


def test_fields_are_trimmed(registry, write_csv):
    path = write_csv("id,name,age,severity\n P1 , Ann , 30 , 5 \n")
    load_patients(path, registry)
    p = registry.lookup("P1")
    assert (p.name, p.age, p.severity) == ("Ann", 30, 5)


@pytest.mark.parametrize("header", ["patient,name,age,severity", "id,name,age", "id,name,age,severity,extra"])
def test_bad_header_aborts(registry, write_csv, header):
    path = write_csv(f"{header}\nP1,Ann,30,5\n")
    with pytest.raises(CsvFormatError, match="Invalid CSV header"):
        load_patients(path, registry)
    assert registry.count() == 0


def test_empty_file_aborts(registry, write_csv):
    with pytest.raises(CsvFormatError, match="empty"):
        load_patients(write_csv(""), registry)


@pytest.mark.parametrize(
    "row, message",
    [
        ("P3,Cy,50,7,extra", "wrong number of fields"),
        ("P3,Cy,50", "wrong number of fields"),
        ("P3,,50,7", "Missing field"),
        ("P3,Cy,fifty,7", "Invalid number"),
        ("P3,Cy,50,7.5", "Invalid number"),
    ],
)
def test_bad_row_aborts_without_rolling_back(registry, write_csv, row, message):
    path = write_csv(f"id,name,age,severity\nP1,Ann,30,5\nP2,Bob,40,6\n{row}\nP4,Dee,20,2\n")
    with pytest.raises(CsvFormatError, match=message) as excinfo:
        load_patients(path, registry)
    assert "P3" in str(excinfo.value)
    # rows before the failure stay registered; rows after are never read
    assert registry.contains("P1") and registry.contains("P2")
    assert not registry.contains("P4")


def test_out_of_range_values_are_normalized_on_load(registry, write_csv):
    path = write_csv("id,name,age,severity\nP1,Ann,-4,42\n")
    load_patients(path, registry)
    p = registry.lookup("P1")
    assert (p.age, p.severity) == (0, 1)


def test_missing_file_propagates(registry, tmp_path):
    with pytest.raises(FileNotFoundError):
        load_patients(str(tmp_path / "nope.csv"), registry)


def test_parse_patient_row():
    assert parse_patient_row(["P1", "Ann", "30", "+5"]) == ("P1", "Ann", 30, 5)
    with pytest.raises(CsvFormatError):
        parse_patient_row(["P1", "Ann", "1_000", "5"])


def test_format_timestamp_is_utc_with_z():
    moment = datetime(2025, 1, 2, 23, 31, 44, 672000, tzinfo=timezone.utc)
    assert format_timestamp(moment) == "2025-01-02T23:31:44.672Z"


def _treat(registry, pid, name, age, severity):
    patient = registry.register(pid, name, age, severity)
    now = datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc)
    return TreatedCase(patient, now, now, Outcome.STABLE)


def test_export_escapes_commas_and_quotes(registry, tmp_path):
    cases = [
        _treat(registry, "P1", "John Doe", 32, 4),
        _treat(registry, "P2", 'John "The Boss", Doe', 50, 9),
    ]
    out = tmp_path / "log.csv"
    assert export_log(str(out), cases) == 2

    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "id,name,age,severity,treatedAt"
    assert lines[1] == "P1,John Doe,32,4,2025-01-02T09:00:00.000Z"
    assert lines[2] == 'P2,"John ""The Boss"", Doe",50,9,2025-01-02T09:00:00.000Z'


def test_export_quotes_names_with_line_breaks(registry, tmp_path):
    cases = [_treat(registry, "P1", "Ann\nB", 30, 5)]
    out = tmp_path / "log.csv"
    export_log(str(out), cases)

    assert out.read_text(encoding="utf-8") == (
        "id,name,age,severity,treatedAt\n" 'P1,"Ann\nB",30,5,2025-01-02T09:00:00.000Z\n'
    )
    frame = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert frame["name"].tolist() == ["Ann\nB"]


def test_export_round_trip_uses_current_patient_state(registry, tmp_path):
    cases = [_treat(registry, "P1", "Ann, B", 30, 5), _treat(registry, "P2", "Bob", 41, 2)]
    registry.update("P1", severity=8)
    out = tmp_path / "log.csv"
    export_log(str(out), cases)

    frame = pd.read_csv(out, dtype=str, keep_default_na=False)
    recovered = list(frame[["id", "name", "age", "severity"]].itertuples(index=False, name=None))
    assert recovered == [("P1", "Ann, B", "30", "8"), ("P2", "Bob", "41", "2")]


def test_export_empty_log_writes_header_only(tmp_path):
    out = tmp_path / "log.csv"
    assert export_log(str(out), []) == 0
    assert out.read_text(encoding="utf-8").splitlines() == ["id,name,age,severity,treatedAt"]


def test_audit_collects_every_problem_without_registering(registry, write_csv):
    path = write_csv(
        "id,name,age,severity\n"
        "P1,Ann,30,5\n"
        "P2,Bob,forty,6\n"
        "P3,Cy,50,7,extra\n"
        "P1,Ann again,-2,15\n"
    )
    notepad = create_notepad("patients")
    valid = audit_patient_csv(path, notepad)

    assert valid == 2
    assert registry.count() == 0
    errors = [issue.message for issue in notepad.errors()]
    warnings = [issue.message for issue in notepad.warnings()]
    assert any("Invalid number" in e and "forty" in e for e in errors)
    assert any("wrong number of fields" in e for e in errors)
    assert any("duplicate id 'P1'" in w for w in warnings)
    assert any("age -2" in w for w in warnings)
    assert any("severity 15" in w for w in warnings)


def test_audit_reports_bad_header(write_csv):
    notepad = create_notepad("patients")
    assert audit_patient_csv(write_csv("a,b,c,d\nP1,Ann,30,5\n"), notepad) == 0
    assert notepad.has_errors()
