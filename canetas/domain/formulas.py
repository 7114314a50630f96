"""
Capacity formulas for multi-dose injector pens.

A pen labelled with a nominal size ``s`` (mg) holds ``5·s`` mg of
extractable medication. The first ``4·s`` mg can be metered through the
mechanical dial ("clicks"); the last ``s`` mg can only be drawn with a
syringe. These functions map a pen size and its cumulative usage to the
amount still available in each tier, and classify individual doses as
dial-only or syringe-assisted.

All functions are pure: they depend solely on their inputs and do
not modify any external state. Derived mg values are rounded to one
decimal at every boundary and compared as integer tenths, so repeated
summation of values such as 2.5 + 0.1 never flips a comparison.
"""

from __future__ import annotations

from math import floor
from typing import Hashable, Iterable, Optional, Tuple

from canetas.domain.datas import as_datetime
from canetas.domain.models import (
    CLICKS_PER_DIAL,
    Availability,
    Dose,
    DoseBreakdown,
    Pen,
)


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves going up (``2.5 -> 3``)."""
    return int(floor(x + 0.5))


def round1(x: float) -> float:
    """Round ``x`` to one decimal place, halves going up."""
    return round_half_up(float(x) * 10) / 10


def tenths(x: float) -> int:
    """Integer number of tenths of mg in ``x``; used for every comparison."""
    return round_half_up(float(x) * 10)


def click_capacity(size: float) -> float:
    """Milligrams that can be metered through the dial."""
    return float(size) * 4


def total_capacity(size: float) -> float:
    """All extractable milligrams (dial plus syringe residual)."""
    return float(size) * 5


def syringe_capacity(size: float) -> float:
    """Milligrams only reachable with a syringe. Display only."""
    return float(size)


def mg_to_clicks(size: float, mg: float) -> int:
    """Convert dial-metered mg into physical clicks of the dial.

    The dial has a fixed traversal of ``CLICKS_PER_DIAL`` clicks for the
    labelled size, so one click delivers ``size / 60`` mg.
    """
    return round_half_up(float(mg) * (CLICKS_PER_DIAL / float(size)))


def availability(size: float, used: float) -> Availability:
    """Return how much of a pen is still available.

    Parameters
    ----------
    size: float
        Nominal pen size in mg (one of ``PEN_SIZES``).
    used: float
        Cumulative mg recorded against the pen, completed and planned doses
        pooled together.

    Returns
    -------
    Availability
        ``from_clicks = max(0, 4s - used)``,
        ``from_syringe = max(0, 5s - max(used, 4s))`` and their sum, each
        rounded to one decimal, plus the remaining dial clicks.
    """
    click_cap = click_capacity(size)
    total_cap = total_capacity(size)
    used = float(used)

    from_clicks = round1(max(0.0, click_cap - used))
    from_syringe = round1(max(0.0, total_cap - max(used, click_cap)))
    total = round1(from_clicks + from_syringe)
    return Availability(
        from_clicks=from_clicks,
        from_syringe=from_syringe,
        total=total,
        clicks_remaining=mg_to_clicks(size, from_clicks),
    )


def requires_syringe(size: float, used_before: float, dose_mg: float) -> bool:
    """True when the dose crosses the dial capacity of the pen."""
    return tenths(float(used_before) + float(dose_mg)) > tenths(click_capacity(size))


def dose_breakdown(size: float, used_before: float, dose_mg: float) -> DoseBreakdown:
    """Split a dose into its dial-metered and syringe-drawn portions."""
    clicks_available = max(0.0, click_capacity(size) - float(used_before))
    dose = round1(dose_mg)
    from_clicks = round1(min(dose, clicks_available))
    from_syringe = round1(dose - from_clicks)
    return DoseBreakdown(
        from_clicks=from_clicks,
        from_syringe=from_syringe,
        click_count=mg_to_clicks(size, from_clicks),
        requires_syringe=requires_syringe(size, used_before, dose_mg),
    )


def dose_order_key(dose: Dose) -> Tuple:
    """Deterministic chronological order: timestamp, then id."""
    return (as_datetime(dose.date), str(dose.id))


def find_pen(pens: Iterable[Pen], pen_id: Hashable) -> Optional[Pen]:
    for pen in pens:
        if pen.id == pen_id:
            return pen
    return None


def mg_used_before(dose: Dose, doses: Iterable[Dose]) -> float:
    """Sum of mg of every other dose on the same pen that comes earlier.

    Completed and planned doses are pooled. Doses sharing the exact same
    timestamp are ordered by id.
    """
    key = dose_order_key(dose)
    total = 0.0
    for other in doses:
        if other.pen_id != dose.pen_id or other.id == dose.id:
            continue
        if dose_order_key(other) < key:
            total += float(other.mg)
    return round1(total)


def is_dose_syringe(dose: Dose, pens: Iterable[Pen], doses: Iterable[Dose]) -> bool:
    """Whether ``dose`` needs a syringe, given every dose recorded before it.

    A dose whose pen is not in ``pens`` is reported as ``False``.
    """
    pen = find_pen(pens, dose.pen_id)
    if pen is None:
        return False
    return requires_syringe(pen.size, mg_used_before(dose, doses), dose.mg)


def dose_breakdown_for(dose: Dose, pens: Iterable[Pen], doses: Iterable[Dose]) -> Optional[DoseBreakdown]:
    """Breakdown of a recorded dose; ``None`` when its pen is unknown."""
    pen = find_pen(pens, dose.pen_id)
    if pen is None:
        return None
    return dose_breakdown(pen.size, mg_used_before(dose, doses), dose.mg)
