"""
Patient registry.

Sole authority for patient identity and arrival ordering. Every call to
``register`` consumes exactly one arrival sequence number, starting at 0,
whether or not the supplied fields were valid. Registering an id that is
already present replaces the stored record (last write wins).
"""

import itertools
import logging
import threading
from typing import Optional

from .patient import Patient


class PatientRegistry:
    def __init__(self):
        self._by_id: dict[str, Patient] = {}
        self._arrival_counter = itertools.count(0)
        self._lock = threading.Lock()

    def register(self, patient_id: str, name: str, age: int, severity: int) -> Patient:
        """
        Create a patient from raw field values and store it under its final id.

        Invalid values are normalized (placeholder id/name, age 0, severity 1).
        """
        with self._lock:
            seq = next(self._arrival_counter)
            patient = Patient(
                patient_id=patient_id,
                name=name,
                age=age,
                severity=severity,
                arrival_seq=seq,
            )
            if patient.patient_id in self._by_id:
                logging.warning(
                    f"Patient ID {patient.patient_id!r} re-registered; replacing existing record"
                )
            self._by_id[patient.patient_id] = patient
        logging.debug(f"Registered {patient}")
        return patient

    def update(
        self,
        patient_id: str,
        name: Optional[str] = None,
        age: Optional[int] = None,
        severity: Optional[int] = None,
    ) -> Optional[Patient]:
        """
        Update the provided fields of an existing patient.

        Returns the updated patient, or None if no patient has `patient_id`.
        Invalid field values are ignored, never reported.
        """
        with self._lock:
            patient = self._by_id.get(patient_id)
            if patient is None:
                return None
            patient.apply_update(name=name, age=age, severity=severity)
        logging.debug(f"Updated {patient}")
        return patient

    def lookup(self, patient_id: str) -> Optional[Patient]:
        with self._lock:
            return self._by_id.get(patient_id)

    def contains(self, patient_id: str) -> bool:
        with self._lock:
            return patient_id in self._by_id

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, patient_id: object) -> bool:
        return isinstance(patient_id, str) and self.contains(patient_id)
