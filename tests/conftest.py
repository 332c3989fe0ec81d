import os
import pytest

from triage_desk.desk import TriageDesk
from triage_desk.registry import PatientRegistry
from triage_desk.treatment import TreatmentLog
from triage_desk.triage_queue import TriageQueue


@pytest.fixture
def registry() -> PatientRegistry:
    return PatientRegistry()


@pytest.fixture
def queue() -> TriageQueue:
    return TriageQueue()


@pytest.fixture
def treatment_log() -> TreatmentLog:
    return TreatmentLog()


@pytest.fixture
def desk(registry, queue, treatment_log) -> TriageDesk:
    return TriageDesk(registry, queue, treatment_log)


@pytest.fixture
def write_csv(tmp_path):
    """
    Write `text` to a CSV file under tmp_path and return its path as a string.
    """
    def _write(text: str, name: str = "patients.csv") -> str:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return os.fspath(path)

    return _write
