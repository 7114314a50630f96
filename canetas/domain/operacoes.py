"""
Operations over in-memory snapshots of pens and doses.

Pens and doses are immutable records, so every operation here returns new
tuples instead of mutating its inputs. These are the state transitions the
surrounding application performs (complete a planned dose, edit it, delete
a pen together with its doses, schedule a repeating plan), plus the checks
the dose editor runs before saving.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from canetas.domain.formulas import availability, dose_order_key, find_pen, round1, tenths
from canetas.domain.models import PEN_SIZES, Availability, Dose, Pen

_DOSE_FIELDS = {"pen_id", "date", "mg", "is_completed"}


def new_id() -> str:
    return uuid.uuid4().hex


def sort_doses(doses: Iterable[Dose]) -> Tuple[Dose, ...]:
    """Doses in chronological order, ties broken by id."""
    return tuple(sorted(doses, key=dose_order_key))


def _index_of(doses: Sequence[Dose], dose_id: Hashable) -> int:
    for i, dose in enumerate(doses):
        if dose.id == dose_id:
            return i
    raise LookupError(f"dose {dose_id!r} not found")


def update_dose(doses: Sequence[Dose], dose_id: Hashable, **changes) -> Tuple[Dose, ...]:
    """Replace one dose by an edited copy; identity (id) is preserved."""
    unknown = set(changes) - _DOSE_FIELDS
    if unknown:
        raise ValueError(f"cannot change dose field(s): {', '.join(sorted(unknown))}")
    doses = tuple(doses)
    i = _index_of(doses, dose_id)
    edited = replace(doses[i], **changes)
    return doses[:i] + (edited,) + doses[i + 1:]


def complete_dose(doses: Sequence[Dose], dose_id: Hashable) -> Tuple[Dose, ...]:
    """Planned -> completed."""
    return update_dose(doses, dose_id, is_completed=True)


def remove_dose(doses: Sequence[Dose], dose_id: Hashable) -> Tuple[Dose, ...]:
    doses = tuple(doses)
    _index_of(doses, dose_id)
    return tuple(d for d in doses if d.id != dose_id)


def remove_planned_doses(doses: Iterable[Dose]) -> Tuple[Dose, ...]:
    return tuple(d for d in doses if d.is_completed)


def remove_pen(
    pens: Iterable[Pen], doses: Iterable[Dose], pen_id: Hashable
) -> Tuple[Tuple[Pen, ...], Tuple[Dose, ...]]:
    """Delete a pen and every dose recorded against it."""
    remaining_pens = tuple(p for p in pens if p.id != pen_id)
    remaining_doses = tuple(d for d in doses if d.pen_id != pen_id)
    return remaining_pens, remaining_doses


def availability_for_edit(
    pen: Pen, pen_usage: Dict[Hashable, float], editing: Optional[Dose] = None
) -> Availability:
    """Availability of ``pen`` as seen by the dose editor.

    When an existing dose on the same pen is being edited, its mg is given
    back before the check.
    """
    usage = float(pen_usage.get(pen.id, 0.0))
    if editing is not None and editing.pen_id == pen.id:
        usage -= float(editing.mg)
    return availability(pen.size, max(0.0, usage))


def can_afford_dose(
    mg: float, pen: Optional[Pen], pen_usage: Dict[Hashable, float], editing: Optional[Dose] = None
) -> bool:
    """Whether the editor may save ``mg`` on ``pen``; an unknown pen never fits."""
    if pen is None or not mg:
        return False
    avail = availability_for_edit(pen, pen_usage, editing)
    return tenths(mg) <= tenths(avail.total)


def plan_repeated_doses(
    pen: Pen,
    start: datetime,
    mg: float,
    interval_days: int,
    pen_usage: Dict[Hashable, float],
    make_id: Callable[[], Hashable] = new_id,
) -> List[Dose]:
    """Planned doses every ``interval_days`` until the pen cannot afford another.

    The first dose falls on ``start``. Nothing is scheduled when the pen
    cannot afford even one dose.
    """
    mg = round1(mg)
    if mg <= 0:
        raise ValueError("dose mg must be positive")
    if interval_days < 1:
        raise ValueError("interval_days must be at least 1")

    planned: List[Dose] = []
    usage = float(pen_usage.get(pen.id, 0.0))
    when = start
    while tenths(mg) <= tenths(availability(pen.size, usage).total):
        planned.append(Dose(id=make_id(), pen_id=pen.id, date=when, mg=mg, is_completed=False))
        usage = round1(usage + mg)
        when = when + timedelta(days=interval_days)
    return planned


# -------------------------
# Validation at the boundary
# -------------------------

def validate_pen(pen: Pen) -> Pen:
    if pen.size not in PEN_SIZES:
        raise ValueError(f"pen size {pen.size!r} is not one of {PEN_SIZES}")
    if pen.expiration_date is None:
        raise ValueError("pen expiration_date is required")
    if pen.purchase_date is not None and pen.purchase_date > pen.expiration_date:
        raise ValueError("pen purchase_date is after expiration_date")
    return pen


def validate_dose(dose: Dose, pens: Iterable[Pen]) -> Dose:
    if dose.mg is None or float(dose.mg) <= 0:
        raise ValueError(f"dose mg must be positive, got {dose.mg!r}")
    if dose.date is None:
        raise ValueError("dose date is required")
    if find_pen(pens, dose.pen_id) is None:
        raise ValueError(f"dose references unknown pen {dose.pen_id!r}")
    return dose
