"""
Deterministic synthetic workloads for exercising the registry and the triage
queue under load.

A fixed seed makes every run reproducible, so timings from different builds
can be compared. ``TRIAGE_WORKLOAD_SEED`` overrides the default seed.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import numpy as np

from .registry import PatientRegistry
from .triage_queue import TriageQueue

DEFAULT_SEED = int(os.getenv("TRIAGE_WORKLOAD_SEED", "12345"))
MAX_AGE = 120

_SEVERITIES = np.arange(1, 11)
# weights for severities 1..10; 60% of patients land in 1-3
_SKEWED_WEIGHTS = np.array([25, 25, 10, 15, 10, 7, 4, 2, 1, 1]) / 100


class SeverityDistribution(Enum):
    UNIFORM = "uniform"
    SKEWED = "skewed"

    @classmethod
    def from_label(cls, label: str) -> "SeverityDistribution":
        try:
            return cls(label.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown severity distribution: {label!r}")


@dataclass
class Timing:
    label: str
    seconds: float = 0.0


@contextmanager
def timed(label: str) -> Iterator[Timing]:
    """Measure the wall time of the enclosed block and log it."""
    timing = Timing(label)
    start = time.perf_counter()
    try:
        yield timing
    finally:
        timing.seconds = time.perf_counter() - start
        logging.info(f"{label}: {timing.seconds * 1000:.3f} ms")


class SampleWorkloads:
    """
    Generates synthetic patients and drives enqueue/dequeue traffic.

    Synthetic ids are P0001, P0002, ... per generator instance; the registry
    still assigns arrival sequence numbers, so FIFO tie-breaking holds.
    """

    def __init__(self, seed: int = DEFAULT_SEED,
                 distribution: SeverityDistribution = SeverityDistribution.UNIFORM):
        self._rng = np.random.default_rng(seed)
        self.distribution = distribution
        self._next_id = 1

    def _random_severity(self) -> int:
        if self.distribution is SeverityDistribution.SKEWED:
            return int(self._rng.choice(_SEVERITIES, p=_SKEWED_WEIGHTS))
        return int(self._rng.integers(1, 11))

    def _random_age(self) -> int:
        return int(self._rng.integers(0, MAX_AGE))

    def _next_generated_id(self) -> str:
        patient_id = f"P{self._next_id:04d}"
        self._next_id += 1
        return patient_id

    def _register_and_enqueue(self, registry: PatientRegistry, queue: TriageQueue) -> None:
        patient_id = self._next_generated_id()
        patient = registry.register(
            patient_id, f"Patient-{patient_id}", self._random_age(), self._random_severity()
        )
        queue.enqueue(patient)

    def enqueue_random_patients(self, count: int, registry: PatientRegistry, queue: TriageQueue) -> None:
        for _ in range(count):
            self._register_and_enqueue(registry, queue)

    @staticmethod
    def perform_dequeues(count: int, queue: TriageQueue) -> int:
        """Dequeue `count` times; empty dequeues are expected and skipped. Returns patients removed."""
        removed = 0
        for _ in range(count):
            if queue.dequeue_next() is not None:
                removed += 1
        return removed

    def run_mixed_workload(self, total_ops: int, ratio_enqueue: int, ratio_dequeue: int,
                           registry: PatientRegistry, queue: TriageQueue) -> None:
        """Randomly interleave enqueues and dequeues in the given ratio."""
        total_ratio = ratio_enqueue + ratio_dequeue
        if total_ratio <= 0:
            raise ValueError("at least one of the ratios must be positive")
        for _ in range(total_ops):
            if self._rng.integers(0, total_ratio) < ratio_enqueue:
                self._register_and_enqueue(registry, queue)
            else:
                queue.dequeue_next()


def run_concurrent_workload(workers: int, ops_per_worker: int, registry: PatientRegistry,
                            queue: TriageQueue, seed: int = DEFAULT_SEED,
                            ratio_enqueue: int = 2, ratio_dequeue: int = 1) -> None:
    """
    Run one mixed workload per worker thread against shared components.

    Each worker gets its own seed and id prefix (W1-P0001, ...) so workers
    never register the same id.
    """
    def work(worker: int) -> None:
        workload = _PrefixedWorkloads(f"W{worker}-", seed + worker)
        workload.run_mixed_workload(ops_per_worker, ratio_enqueue, ratio_dequeue, registry, queue)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        for future in [pool.submit(work, w) for w in range(1, workers + 1)]:
            future.result()


class _PrefixedWorkloads(SampleWorkloads):
    def __init__(self, prefix: str, seed: int):
        super().__init__(seed)
        self._prefix = prefix

    def _next_generated_id(self) -> str:
        return self._prefix + super()._next_generated_id()
