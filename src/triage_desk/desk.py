"""
TriageDesk: the registry, the waiting line and the treatment log of one
facility, wired together for the CLI and the load generator.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .patient import Patient
from .registry import PatientRegistry
from .treatment import Outcome, TreatedCase, TreatmentLog
from .triage_queue import TriageQueue


class TriageDesk:
    def __init__(
        self,
        registry: Optional[PatientRegistry] = None,
        queue: Optional[TriageQueue] = None,
        log: Optional[TreatmentLog] = None,
    ):
        self.registry = registry if registry is not None else PatientRegistry()
        self.queue = queue if queue is not None else TriageQueue()
        self.log = log if log is not None else TreatmentLog()

    def register(self, patient_id: str, name: str, age: int, severity: int) -> Patient:
        return self.registry.register(patient_id, name, age, severity)

    def update(
        self,
        patient_id: str,
        name: Optional[str] = None,
        age: Optional[int] = None,
        severity: Optional[int] = None,
    ) -> Optional[Patient]:
        """Update a patient; a new severity takes effect at the next queue read."""
        return self.registry.update(patient_id, name=name, age=age, severity=severity)

    def enqueue(self, patient_id: str) -> bool:
        return self.queue.enqueue_by_id(self.registry, patient_id)

    def admit_and_treat(self, outcome: Outcome, notes: str = "") -> Optional[TreatedCase]:
        """
        Take the highest-priority patient off the line and log the treatment.

        Returns None (and logs nothing) when nobody is waiting.
        """
        patient = self.queue.dequeue_next()
        if patient is None:
            return None
        started_at = datetime.now(timezone.utc)
        ended_at = datetime.now(timezone.utc)
        case = TreatedCase(
            patient=patient,
            started_at=started_at,
            ended_at=ended_at,
            outcome=outcome,
            notes=notes,
        )
        self.log.append(case)
        logging.info(f"Treated {patient.patient_id!r}: {outcome.name}")
        return case
