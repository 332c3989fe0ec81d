"""
Triage ordering rule.

Higher severity ranks first; among equal severities the earlier arrival
sequence ranks first. A missing patient ranks after every real patient.
"""

import functools
from typing import Callable, Optional

from .patient import Patient

PatientOrder = Callable[[Optional[Patient], Optional[Patient]], int]


def triage_order(first: Optional[Patient], second: Optional[Patient]) -> int:
    """
    Compare two patients for treatment priority.

    Returns a negative number if `first` should be treated before `second`,
    a positive number if after, and 0 when both carry the same severity and
    arrival sequence, which only happens for the same record.
    """
    if first is second:
        return 0
    if first is None:
        return 1
    if second is None:
        return -1

    if first.severity != second.severity:
        return -1 if first.severity > second.severity else 1
    if first.arrival_seq != second.arrival_seq:
        return -1 if first.arrival_seq < second.arrival_seq else 1
    return 0


def sort_key(order: PatientOrder = triage_order):
    """Wrap a comparator so it can be used as a ``key=`` or heap item."""
    return functools.cmp_to_key(order)
