"""
Single-compartment pharmacokinetic decay.

The estimated amount of drug in the body at a given day is the sum of
independent exponential decays, one per dose:

    C(t) = sum(mg_i * 0.5 ** (days_since_i / half_life))

Both the target day and every dose day are pinned to noon before the
difference is taken, so the value does not jitter with the time of day at
which a dose was logged. Doses after the target contribute nothing. There is
no interaction modelling between doses.

This is a display aid, not a clinical model.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from canetas.domain.datas import DateLike, as_datetime, at_noon, day_of, fractional_days
from canetas.domain.formulas import dose_order_key
from canetas.domain.models import Dose

DEFAULT_HALF_LIFE_DAYS = 5.0
STEADY_STATE_WINDOW = 4
STEADY_STATE_FACTOR = 1.5


def _decayed(mg: float, days_since: float, half_life_days: float) -> float:
    return float(mg) * 0.5 ** (days_since / half_life_days)


def concentration_with_mode(
    doses: Iterable[Dose],
    target: DateLike,
    include_planned: bool,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> float:
    """Estimated in-body mg at ``target``.

    With ``include_planned`` the planned (not yet completed) doses dated up
    to the target are summed as well, which gives the "plan" curve instead
    of the "actual" one.
    """
    target_noon = at_noon(target)
    total = 0.0
    for dose in doses:
        if not (dose.is_completed or include_planned):
            continue
        if as_datetime(dose.date) > target_noon:
            continue
        days_since = fractional_days(at_noon(dose.date), target_noon)
        if days_since >= 0:
            total += _decayed(dose.mg, days_since, half_life_days)
    return total


def concentration(
    doses: Iterable[Dose],
    target: DateLike,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> float:
    """Estimated in-body mg at ``target`` from completed doses only."""
    return concentration_with_mode(doses, target, False, half_life_days)


def steady_state_estimate(doses: Iterable[Dose]) -> Optional[float]:
    """Rough steady-state level: mean of the last four completed doses x 1.5."""
    completed = sorted((d for d in doses if d.is_completed), key=dose_order_key)
    if len(completed) < STEADY_STATE_WINDOW:
        return None
    recent = completed[-STEADY_STATE_WINDOW:]
    return sum(float(d.mg) for d in recent) / STEADY_STATE_WINDOW * STEADY_STATE_FACTOR


def concentration_series(
    doses: Sequence[Dose],
    now: datetime,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    tail_days: int = 21,
) -> List[Dict]:
    """Daily points for the decay chart.

    The series starts on the day of the first completed dose and runs until
    ``tail_days`` after the last dose of any kind. Each point carries both
    the actual curve and the plan curve; days up to today are flagged as
    past. Returns an empty list while no dose has been completed.
    """
    completed = sorted((d for d in doses if d.is_completed), key=dose_order_key)
    if not completed:
        return []
    everything = sorted(doses, key=dose_order_key)

    first_day = day_of(completed[0].date)
    last_day = max(day_of(completed[-1].date), day_of(everything[-1].date))
    end_day = last_day + timedelta(days=tail_days)
    today = day_of(now)

    by_day: Dict = {}
    for dose in everything:
        by_day.setdefault(day_of(dose.date), []).append(dose)

    points: List[Dict] = []
    current = first_day
    while current <= end_day:
        day_doses = by_day.get(current, [])
        completed_mg = next((d.mg for d in day_doses if d.is_completed), None)
        scheduled_mg = next((d.mg for d in day_doses if not d.is_completed), None)
        points.append(
            {
                "date": current.isoformat(),
                "actual": concentration_with_mode(doses, current, False, half_life_days),
                "planned": concentration_with_mode(doses, current, True, half_life_days),
                "completed_mg": completed_mg,
                "scheduled_mg": scheduled_mg,
                "is_past": current <= today,
                "is_today": current == today,
            }
        )
        current += timedelta(days=1)
    return points
