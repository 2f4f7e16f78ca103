"""
orgie.engine.archive — Active / Archived Boundary
==================================================

A term is *archived* when its day is strictly before today; a term dated
today is still active.  The classification is derived on every read and
never stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol, TypeVar

from orgie.engine.recurrence import normalize_day

__all__ = ["is_archived", "split_terms", "today"]


class Dated(Protocol):
    date: date


D = TypeVar("D", bound=Dated)


def today() -> date:
    """Local calendar day."""
    return date.today()


def is_archived(term_date: date, reference: date | None = None) -> bool:
    return normalize_day(term_date) < (reference or today())


def split_terms(terms: Iterable[D], reference: date | None = None) -> tuple[list[D], list[D]]:
    """Return ``(active, archived)``.

    Active terms ascend by date; archived terms descend (most recent past
    first).
    """
    reference = reference or today()
    active: list[D] = []
    archived: list[D] = []
    for term in terms:
        (archived if is_archived(term.date, reference) else active).append(term)
    active.sort(key=lambda t: t.date)
    archived.sort(key=lambda t: t.date, reverse=True)
    return active, archived
