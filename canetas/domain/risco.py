"""
Per-pen risk and forward projection.

For a single pen this module combines its capacity, its dose history and
its expiry date into a `PenMetric`. The risk part is chosen once:

- the pen has planned doses  → simulate them against expiry and capacity
  (`simulate_planned`);
- otherwise, with at least two completed doses and medication left on a
  pen that has not expired → extrapolate the historical cadence
  (`assess_historical`);
- otherwise → no assessment.

``now`` is always an argument. Callers capture it once per pass so that
every field of a report is computed against the same instant.
"""

from __future__ import annotations

from datetime import date, datetime
from math import floor
from typing import Dict, Hashable, List, Optional, Sequence

from canetas.domain.datas import abs_days_between, day_of, days_between
from canetas.domain.formulas import (
    availability,
    dose_order_key,
    round1,
    tenths,
    total_capacity,
)
from canetas.domain.models import (
    Dose,
    HistoricalAssessment,
    NoAssessment,
    Pen,
    PenMetric,
    PlannedAssessment,
    PlannedDoseAfterExpiry,
    RiskAssessment,
    RiskLevel,
)
from canetas.domain.policies import classify_historical_overage, classify_planned_gap

EXPIRING_SOON_DAYS = 14


def split_doses(pen_id: Hashable, doses: Sequence[Dose]):
    """Return (completed, planned) doses of a pen, both in chronological order."""
    pen_doses = [d for d in doses if d.pen_id == pen_id]
    completed = sorted((d for d in pen_doses if d.is_completed), key=dose_order_key)
    planned = sorted((d for d in pen_doses if not d.is_completed), key=dose_order_key)
    return completed, planned


def simulate_planned(
    capacity: float,
    completed: Sequence[Dose],
    planned: Sequence[Dose],
    expiry: date,
    remaining: float,
) -> PlannedAssessment:
    """Walk the planned doses in order against expiry and capacity.

    A dose advances the simulation only when it falls on or before the
    expiry day and still fits in what is left of the pen. Doses that do not
    fit or that fall after expiry are reported in the warning fields but
    leave the simulated state untouched. If no planned dose can advance, the
    schedule is infeasible and the risk is critical.
    """
    cumulative_used = round1(sum(float(d.mg) for d in completed))
    last_dose_day: Optional[date] = None
    after_expiry: List[PlannedDoseAfterExpiry] = []
    will_run_out = False

    for dose in planned:
        dose_day = day_of(dose.date)
        current_remaining = round1(capacity - cumulative_used)
        would_remain = round1(current_remaining - float(dose.mg))

        if dose_day > expiry:
            after_expiry.append(
                PlannedDoseAfterExpiry(
                    id=dose.id,
                    date=dose.date,
                    mg=dose.mg,
                    days_after_expiry=days_between(expiry, dose_day),
                )
            )

        if tenths(dose.mg) > tenths(current_remaining):
            will_run_out = True

        if dose_day <= expiry and tenths(would_remain) >= 0:
            last_dose_day = dose_day
            cumulative_used = round1(cumulative_used + float(dose.mg))

    if last_dose_day is None:
        return PlannedAssessment(
            level=RiskLevel.CRITICAL,
            projected_last_dose_date=None,
            projected_days_between_last_dose_and_expiry=None,
            planned_doses_after_expiry=tuple(after_expiry),
            will_run_out_before_planned_complete=will_run_out,
            projected_waste_mg=remaining,
        )

    gap = days_between(last_dose_day, expiry)
    return PlannedAssessment(
        level=classify_planned_gap(gap),
        projected_last_dose_date=last_dose_day,
        projected_days_between_last_dose_and_expiry=gap,
        planned_doses_after_expiry=tuple(after_expiry),
        will_run_out_before_planned_complete=will_run_out,
        projected_waste_mg=round1(max(0.0, capacity - cumulative_used)),
    )


def assess_historical(
    completed: Sequence[Dose],
    remaining: float,
    days_until_expiry: int,
) -> Optional[HistoricalAssessment]:
    """Extrapolate the completed-dose cadence until the pen is empty.

    Needs at least two completed doses. The estimate is the number of whole
    average doses left times the average gap; when it overshoots the expiry
    the overage is classified, otherwise the level stays ``none``.
    """
    if len(completed) < 2:
        return None

    gaps = [
        abs_days_between(prev.date, curr.date)
        for prev, curr in zip(completed, completed[1:])
    ]
    avg_gap = sum(gaps) / len(gaps)
    avg_mg = sum(float(d.mg) for d in completed) / len(completed)
    if avg_mg <= 0:
        return None

    doses_remaining = floor(round(remaining / avg_mg, 6))
    estimated = doses_remaining * avg_gap

    level = RiskLevel.NONE
    if estimated > days_until_expiry:
        level = classify_historical_overage(estimated - days_until_expiry)

    return HistoricalAssessment(
        level=level,
        estimated_days_to_empty=estimated,
        avg_days_between_doses=avg_gap,
        avg_dose_mg=avg_mg,
    )


def compute_pen_metrics(
    pen: Pen,
    doses: Sequence[Dose],
    pen_usage: Dict[Hashable, float],
    now: datetime,
    expiring_soon_days: int = EXPIRING_SOON_DAYS,
) -> PenMetric:
    """Build the `PenMetric` of one pen against a fixed ``now``."""
    usage = round1(pen_usage.get(pen.id, 0.0))
    capacity = total_capacity(pen.size)
    avail = availability(pen.size, usage)
    expiry = day_of(pen.expiration_date)

    completed, planned = split_doses(pen.id, doses)
    last_use = day_of(completed[-1].date) if completed else None

    days_until_expiry = days_between(now, expiry)
    is_expired = days_until_expiry < 0
    is_expiring_soon = not is_expired and days_until_expiry <= expiring_soon_days
    is_empty = tenths(avail.total) == 0

    days_last_use_to_expiry = days_between(last_use, expiry) if last_use is not None else None

    usage_efficiency = (usage / capacity) * 100 if capacity else 0.0
    wasted_mg = avail.total if is_expired else 0.0
    waste_percentage = (wasted_mg / capacity) * 100 if (is_expired and capacity) else 0.0

    assessment: RiskAssessment = NoAssessment()
    if planned:
        assessment = simulate_planned(capacity, completed, planned, expiry, avail.total)
    elif not is_expired and not is_empty:
        historical = assess_historical(completed, avail.total, days_until_expiry)
        if historical is not None:
            assessment = historical

    return PenMetric(
        pen_id=pen.id,
        pen_size=pen.size,
        total_capacity=capacity,
        usage=usage,
        remaining=avail.total,
        availability=avail,
        usage_efficiency=usage_efficiency,
        days_until_expiry=days_until_expiry,
        is_expired=is_expired,
        is_expiring_soon=is_expiring_soon,
        is_empty=is_empty,
        last_use_date=last_use,
        days_between_last_use_and_expiry=days_last_use_to_expiry,
        wasted_mg=wasted_mg,
        waste_percentage=waste_percentage,
        dose_count=len(completed) + len(planned),
        completed_dose_count=len(completed),
        planned_dose_count=len(planned),
        assessment=assessment,
    )
