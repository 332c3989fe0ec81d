"""
Patient domain model.

Defines the Patient class (immutable identity + mutable clinical state) and the
small normalization functions used when a record is created or updated.
Invalid values never raise here: they are replaced with safe defaults on
creation and ignored on update.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

PLACEHOLDER_ID = "No Id"
PLACEHOLDER_NAME = "No Name"
DEFAULT_AGE = 0
DEFAULT_SEVERITY = 1
MIN_SEVERITY = 1
MAX_SEVERITY = 10

# Assigned once at creation; reassignment raises AttributeError
_IMMUTABLE_FIELDS = frozenset({"patient_id", "arrival_seq", "arrival_time"})

# Bumped whenever a live record changes severity; queues compare it to re-rank
_severity_changes = 0
_severity_changes_lock = threading.Lock()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def normalize_id(value: Any) -> str:
    return value if _is_text(value) else PLACEHOLDER_ID


def normalize_name(value: Any, default: str = PLACEHOLDER_NAME) -> str:
    return value if _is_text(value) else default


def normalize_age(value: Any, default: int = DEFAULT_AGE) -> int:
    """Ages must be non-negative integers; anything else yields `default`."""
    return value if _is_int(value) and value >= 0 else default


def normalize_severity(value: Any, default: int = DEFAULT_SEVERITY) -> int:
    """Severity must be an integer in [1, 10]; anything else yields `default`."""
    if _is_int(value) and MIN_SEVERITY <= value <= MAX_SEVERITY:
        return value
    return default


def severity_changes() -> int:
    """Number of severity changes made to existing records so far."""
    return _severity_changes


def _note_severity_change() -> None:
    global _severity_changes
    with _severity_changes_lock:
        _severity_changes += 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Patient:
    """
    Represents one person under care.

    Attributes:
        patient_id: Unique identifier, fixed for the life of the record.
        name: Display name, never blank.
        age: Age in years, never negative.
        severity: Clinical urgency from 1 (least) to 10 (critical).
        arrival_seq: Registry-assigned sequence number used for FIFO tie-breaking.
        arrival_time: Wall-clock registration time (UTC), informational only.

    Two records are equal iff their ``patient_id`` matches.
    """

    patient_id: str
    name: str
    age: int
    severity: int
    arrival_seq: int
    arrival_time: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        object.__setattr__(self, "patient_id", normalize_id(self.patient_id))
        self.name = normalize_name(self.name)
        self.age = normalize_age(self.age)
        self.severity = normalize_severity(self.severity)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"{name} cannot be reassigned")
        changed = name == "severity" and name in self.__dict__ and self.__dict__[name] != value
        super().__setattr__(name, value)
        if changed:
            _note_severity_change()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Patient):
            return NotImplemented
        return self.patient_id == other.patient_id

    def __hash__(self) -> int:
        return hash(self.patient_id)

    def apply_update(
        self,
        name: Optional[str] = None,
        age: Optional[int] = None,
        severity: Optional[int] = None,
    ) -> None:
        """Apply each provided field that passes validation; ignore the rest."""
        if name is not None:
            self.name = normalize_name(name, default=self.name)
        if age is not None:
            self.age = normalize_age(age, default=self.age)
        if severity is not None:
            self.severity = normalize_severity(severity, default=self.severity)

    def __str__(self) -> str:
        return (
            f"Patient{{id={self.patient_id!r}, name={self.name!r}, age={self.age}, "
            f"severity={self.severity}, arrivalSeq={self.arrival_seq}}}"
        )
