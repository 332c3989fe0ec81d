"""
CSV import/export for the triage desk.

Patient import format (header is matched case-insensitively):

    id,name,age,severity
    P001,John Doe,32,4
    P002,"Smith, Jane",44,2

Treatment export format (one row per treated case, oldest first):

    id,name,age,severity,treatedAt
    P001,John Doe,32,4,2025-01-02T23:31:44.672Z

Import stops at the first malformed row with a CsvFormatError; rows before it
stay registered. ``audit_patient_csv`` walks the same file without registering
anything and collects every problem in a notepad instead.
"""

import logging
import re
import typing
from datetime import datetime, timezone
from typing import Iterator, Sequence

import pandas as pd
from stairval.notepad import Notepad

from .patient import MAX_SEVERITY, MIN_SEVERITY, Patient
from .registry import PatientRegistry
from .treatment import TreatedCase

IMPORT_COLUMNS = ["id", "name", "age", "severity"]
EXPORT_COLUMNS = ["id", "name", "age", "severity", "treatedAt"]

_INTEGER = re.compile(r"^[+-]?\d+$")


class CsvFormatError(ValueError):
    """Raised when a patient CSV file does not follow the import format."""


def _line_text(fields: Sequence[typing.Any]) -> str:
    return ",".join("" if pd.isna(f) else str(f) for f in fields)


def _reject_bad_line(fields: list[str]) -> None:
    raise CsvFormatError(f"Invalid row (wrong number of fields): {_line_text(fields)}")


def _read_rows(
    csv_path: str, on_bad_lines: typing.Callable[[list[str]], None]
) -> Iterator[tuple[int, list[typing.Any]]]:
    """
    Yield ``(row_number, fields)`` one row at a time, header included as row 0.

    Rows are parsed lazily so that callers can act on each row before the
    next one is read.
    """
    try:
        reader = pd.read_csv(
            csv_path,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            engine="python",
            on_bad_lines=on_bad_lines,
            chunksize=1,
        )
    except pd.errors.EmptyDataError:
        raise CsvFormatError(f"CSV is empty: {csv_path}")

    with reader:
        for chunk in reader:
            for row_number, row in chunk.iterrows():
                yield int(row_number), list(row)


def _check_header(fields: list[typing.Any]) -> None:
    header = [str(f).strip().lower() for f in fields if not pd.isna(f)]
    if header != IMPORT_COLUMNS:
        raise CsvFormatError(f"Invalid CSV header: {_line_text(fields)}")


def parse_patient_row(fields: list[typing.Any]) -> tuple[str, str, int, int]:
    """
    Validate one data row and return ``(id, name, age, severity)``.

    Raises CsvFormatError naming the offending line.
    """
    line = _line_text(fields)
    if len(fields) != len(IMPORT_COLUMNS) or any(pd.isna(f) for f in fields):
        raise CsvFormatError(f"Invalid row (wrong number of fields): {line}")

    patient_id, name, age_text, severity_text = (str(f).strip() for f in fields)
    if not (patient_id and name and age_text and severity_text):
        raise CsvFormatError(f"Missing field in row: {line}")
    if not (_INTEGER.match(age_text) and _INTEGER.match(severity_text)):
        raise CsvFormatError(f"Invalid number in row: {line}")
    return patient_id, name, int(age_text), int(severity_text)


def load_patients(csv_path: str, registry: PatientRegistry) -> list[Patient]:
    """
    Register every patient listed in `csv_path`, in file order.

    Returns the registered patients. Raises CsvFormatError on the first bad
    header or row; patients registered before that point are kept.
    """
    loaded: list[Patient] = []
    rows = _read_rows(csv_path, _reject_bad_line)
    header_seen = False
    for _, fields in rows:
        if not header_seen:
            _check_header(fields)
            header_seen = True
            continue
        patient_id, name, age, severity = parse_patient_row(fields)
        loaded.append(registry.register(patient_id, name, age, severity))

    if not header_seen:
        raise CsvFormatError(f"CSV is empty: {csv_path}")
    logging.info(f"Loaded {len(loaded)} patients from '{csv_path}'")
    return loaded


def audit_patient_csv(csv_path: str, notepad: Notepad) -> int:
    """
    Check a patient CSV without registering anything.

    Structural problems are recorded as errors; values that would be
    normalized on load, and ids repeated within the file, as warnings.
    Returns the number of rows that would load.
    """
    def record_bad_line(fields: list[str]) -> None:
        notepad.add_error(f"Invalid row (wrong number of fields): {_line_text(fields)}")

    try:
        rows = list(_read_rows(csv_path, record_bad_line))
    except CsvFormatError as e:
        notepad.add_error(str(e))
        return 0

    if not rows:
        notepad.add_error(f"CSV is empty: {csv_path}")
        return 0

    _, header = rows[0]
    try:
        _check_header(header)
    except CsvFormatError as e:
        notepad.add_error(str(e))
        return 0

    valid = 0
    seen_ids: set[str] = set()
    for row_number, fields in rows[1:]:
        try:
            patient_id, _, age, severity = parse_patient_row(fields)
        except CsvFormatError as e:
            notepad.add_error(f"Row {row_number}: {e}")
            continue
        valid += 1
        if patient_id in seen_ids:
            notepad.add_warning(f"Row {row_number}: duplicate id {patient_id!r} replaces an earlier row")
        seen_ids.add(patient_id)
        if age < 0:
            notepad.add_warning(f"Row {row_number}: age {age} will be stored as 0")
        if not MIN_SEVERITY <= severity <= MAX_SEVERITY:
            notepad.add_warning(f"Row {row_number}: severity {severity} will be stored as {MIN_SEVERITY}")
    return valid


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a trailing 'Z'."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def treatment_log_frame(cases: typing.Iterable[TreatedCase]) -> pd.DataFrame:
    """Tabulate treated cases using each patient's current details."""
    rows = [
        (
            case.patient.patient_id,
            case.patient.name,
            case.patient.age,
            case.patient.severity,
            format_timestamp(case.ended_at),
        )
        for case in cases
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_log(csv_path: str, cases: typing.Iterable[TreatedCase]) -> int:
    """
    Write `cases` to `csv_path`. A field is quoted only when it holds a comma,
    a double quote or a line break; inner quotes are doubled.

    Returns the number of rows written.
    """
    frame = treatment_log_frame(cases)
    frame.to_csv(csv_path, index=False, encoding="utf-8", lineterminator="\n")
    logging.info(f"Exported {len(frame)} treated cases to '{csv_path}'")
    return len(frame)
