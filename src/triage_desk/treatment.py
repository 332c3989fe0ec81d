"""
Treatment domain model.

Defines the Outcome enum, the immutable TreatedCase event and the append-only
TreatmentLog that keeps completed treatments in the order they happened.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .patient import Patient


class Outcome(Enum):
    """
    Disposition of a completed treatment.

    STABLE: patient can likely be discharged soon.
    OBSERVE: patient stays under monitoring.
    TRANSFER: patient moves to a facility with more resources.
    """
    STABLE = "1"
    OBSERVE = "2"
    TRANSFER = "3"

    @classmethod
    def from_label(cls, label: str) -> "Outcome":
        """
        Convert a menu number ("1"-"3") or a name such as "stable" into an Outcome.
        """
        key = label.strip().lower()
        mapping = {
            "1": cls.STABLE,
            "stable": cls.STABLE,
            "stabilized": cls.STABLE,
            "2": cls.OBSERVE,
            "observe": cls.OBSERVE,
            "observation": cls.OBSERVE,
            "3": cls.TRANSFER,
            "transfer": cls.TRANSFER,
            "transferred": cls.TRANSFER,
        }
        try:
            return mapping[key]
        except KeyError:
            raise ValueError(f"Unknown outcome label: {label!r}")


@dataclass(frozen=True)
class TreatedCase:
    """
    One completed treatment event.

    Attributes:
        patient: The registry's record of the treated patient.
        started_at: When treatment began (UTC).
        ended_at: When treatment ended (UTC); exported as ``treatedAt``.
        outcome: Disposition chosen by the treating clinician.
        notes: Free text, may be empty.
    """

    patient: Patient
    started_at: datetime
    ended_at: datetime
    outcome: Outcome
    notes: str = ""

    def __str__(self) -> str:
        return (
            f"TreatedCase{{patient={self.patient.patient_id}, "
            f"start={self.started_at.isoformat()}, end={self.ended_at.isoformat()}, "
            f"outcome={self.outcome.name}, notes={self.notes!r}}}"
        )


class TreatmentLog:
    """Append-only record of treated cases, oldest first."""

    def __init__(self):
        self._cases: list[TreatedCase] = []
        self._lock = threading.Lock()

    def append(self, case: TreatedCase) -> None:
        with self._lock:
            self._cases.append(case)

    def size(self) -> int:
        with self._lock:
            return len(self._cases)

    def __len__(self) -> int:
        return self.size()

    def oldest_first(self) -> list[TreatedCase]:
        with self._lock:
            return list(self._cases)

    def newest_first(self) -> list[TreatedCase]:
        with self._lock:
            return self._cases[::-1]
