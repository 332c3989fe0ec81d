"""
Triage queue.

A binary heap of waiting patients ordered by an injected comparator
(``triage_order`` by default). Each entry is keyed on a copy of the patient
taken when it was keyed, so edits to the live record cannot corrupt the heap.
Reads (``peek_next``, ``dequeue_next``, ``snapshot_order``) first re-key the
heap if any patient's severity changed since it was last keyed, so the order
always reflects current severities.

Complexity:
    enqueue / dequeue_next : O(log n), plus O(n) after a severity change
    peek_next / size       : O(1), plus O(n) after a severity change
    snapshot_order         : O(n log n), drains a copy of the heap
    reprioritize           : O(n)
"""

import copy
import heapq
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from .ordering import PatientOrder, sort_key, triage_order
from .patient import Patient, severity_changes
from .registry import PatientRegistry


@dataclass(order=True)
class _Entry:
    key: Any
    patient: Patient = field(compare=False)
    severity: int = field(compare=False)


class TriageQueue:
    def __init__(self, order: PatientOrder = triage_order):
        self._key = sort_key(order)
        self._heap: list[_Entry] = []
        self._lock = threading.Lock()
        self._seen_changes = severity_changes()

    def _entry(self, patient: Patient) -> _Entry:
        keyed = copy.copy(patient)
        return _Entry(key=self._key(keyed), patient=patient, severity=keyed.severity)

    def _rebuild(self) -> None:
        self._heap = [self._entry(entry.patient) for entry in self._heap]
        heapq.heapify(self._heap)

    def _sync(self) -> None:
        # caller holds self._lock
        changes = severity_changes()
        if changes == self._seen_changes:
            return
        self._seen_changes = changes
        if any(entry.severity != entry.patient.severity for entry in self._heap):
            logging.debug("Severity changed while waiting, re-ranking the queue")
            self._rebuild()

    def enqueue(self, patient: Patient) -> None:
        """Add a fully constructed patient. Anything else is a usage error."""
        if not isinstance(patient, Patient):
            raise TypeError(f"patient required, got {patient!r}")
        with self._lock:
            heapq.heappush(self._heap, self._entry(patient))
        logging.debug(f"Enqueued {patient.patient_id!r} (severity {patient.severity})")

    def enqueue_by_id(self, registry: PatientRegistry, patient_id: str) -> bool:
        """
        Look `patient_id` up in `registry` and enqueue it.

        Returns False without touching the queue when the id is unknown.
        """
        if registry is None or patient_id is None:
            return False
        patient = registry.lookup(patient_id)
        if patient is None:
            return False
        self.enqueue(patient)
        return True

    def peek_next(self) -> Optional[Patient]:
        with self._lock:
            self._sync()
            return self._heap[0].patient if self._heap else None

    def dequeue_next(self) -> Optional[Patient]:
        """Remove and return the head, or None when nobody is waiting."""
        with self._lock:
            if not self._heap:
                return None
            self._sync()
            patient = heapq.heappop(self._heap).patient
        logging.debug(f"Dequeued {patient.patient_id!r}")
        return patient

    def size(self) -> int:
        with self._lock:
            return len(self._heap)

    def __len__(self) -> int:
        return self.size()

    def snapshot_order(self) -> list[Patient]:
        """Return every waiting patient in treatment order without mutating the queue."""
        with self._lock:
            self._sync()
            working = list(self._heap)
        ordered = []
        while working:
            ordered.append(heapq.heappop(working).patient)
        return ordered

    def reprioritize(self) -> None:
        """Re-key every waiting patient from its current state."""
        with self._lock:
            self._seen_changes = severity_changes()
            self._rebuild()

    def clear(self) -> None:
        with self._lock:
            self._heap.clear()
