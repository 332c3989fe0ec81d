import pytest
from datetime import datetime, timedelta, timezone

from triage_desk.patient import Patient
from triage_desk.treatment import Outcome, TreatedCase, TreatmentLog


def _case(pid: str, minute: int) -> TreatedCase:
    start = datetime(2025, 1, 2, 9, minute, tzinfo=timezone.utc)
    return TreatedCase(
        patient=Patient(pid, "Ann", 30, 5, arrival_seq=minute),
        started_at=start,
        ended_at=start + timedelta(seconds=30),
        outcome=Outcome.STABLE,
    )


@pytest.mark.parametrize(
    "label, expected",
    [("1", Outcome.STABLE), ("Observe", Outcome.OBSERVE), (" transfer ", Outcome.TRANSFER), ("stabilized", Outcome.STABLE)],
)
def test_outcome_from_label(label, expected):
    assert Outcome.from_label(label) is expected


def test_outcome_invalid_label_raises():
    with pytest.raises(ValueError):
        Outcome.from_label("discharged")


def test_treated_case_is_immutable():
    case = _case("P1", 0)
    with pytest.raises(AttributeError):
        case.notes = "edited"
    assert case.notes == ""


def test_treated_case_str_shows_patient_id_only():
    text = str(_case("P7", 0))
    assert text.startswith("TreatedCase{patient=P7, ")
    assert "outcome=STABLE" in text


def test_log_keeps_append_order():
    log = TreatmentLog()
    cases = [_case(f"P{i}", i) for i in range(3)]
    for case in cases:
        log.append(case)
    assert log.size() == 3
    assert log.oldest_first() == cases
    assert log.newest_first() == cases[::-1]


def test_log_views_are_copies():
    log = TreatmentLog()
    log.append(_case("P1", 0))
    log.oldest_first().clear()
    log.newest_first().append(_case("P2", 1))
    assert len(log) == 1
