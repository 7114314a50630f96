"""
Consolidação das métricas de todas as canetas.

Fluxo:
1) Recalcula o uso por caneta (doses concluídas + planejadas), se não
   informado.
2) Captura `now` uma única vez e aplica o motor de risco a cada caneta.
3) Reduz as métricas por caneta em totais, médias e listas de risco.

Sem canetas, devolve a estrutura zerada (sem divisão por zero).
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Hashable, Iterable, List, Optional, Sequence

from canetas.domain.formulas import round1, tenths
from canetas.domain.models import (
    CriticalMetrics,
    Dose,
    Pen,
    PenMetric,
    RiskLevel,
    SystemMetrics,
)
from canetas.domain.risco import EXPIRING_SOON_DAYS, compute_pen_metrics


def compute_pen_usage(pens: Iterable[Pen], doses: Iterable[Dose]) -> Dict[Hashable, float]:
    """Mapeia pen_id -> soma de mg de todas as doses (concluídas e planejadas).

    Doses que apontam para canetas ausentes são ignoradas.
    """
    usage: Dict[Hashable, float] = {pen.id: 0.0 for pen in pens}
    for dose in doses:
        if dose.pen_id in usage:
            usage[dose.pen_id] += float(dose.mg)
    return {pen_id: round1(total) for pen_id, total in usage.items()}


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def aggregate(pen_metrics: Sequence[PenMetric]) -> SystemMetrics:
    """Reduz uma lista de `PenMetric` em `SystemMetrics`."""
    total_pens = len(pen_metrics)
    if total_pens == 0:
        return SystemMetrics()

    total_capacity = round1(sum(m.total_capacity for m in pen_metrics))
    total_used = round1(sum(m.usage for m in pen_metrics))
    total_remaining = round1(sum(m.remaining for m in pen_metrics))
    total_wasted = round1(sum(m.wasted_mg for m in pen_metrics))

    avg_gap = _mean([
        float(m.days_between_last_use_and_expiry)
        for m in pen_metrics
        if m.days_between_last_use_and_expiry is not None
    ])

    return SystemMetrics(
        total_pens=total_pens,
        active_pens=sum(1 for m in pen_metrics if not m.is_expired and not m.is_empty),
        expired_pens=sum(1 for m in pen_metrics if m.is_expired),
        empty_pens=sum(1 for m in pen_metrics if m.is_empty),
        total_capacity=total_capacity,
        total_used=total_used,
        total_remaining=total_remaining,
        total_wasted=total_wasted,
        average_waste_per_pen=total_wasted / total_pens,
        average_efficiency=(total_used / total_capacity) * 100 if total_capacity else 0.0,
        pens_at_risk=tuple(m for m in pen_metrics if m.risk_level != RiskLevel.NONE),
        pen_metrics=tuple(pen_metrics),
        critical_metrics=CriticalMetrics(
            avg_days_between_last_use_and_expiry=avg_gap,
            pens_expired_with_medication=sum(
                1 for m in pen_metrics if m.is_expired and tenths(m.wasted_mg) > 0
            ),
            total_medication_wasted=total_wasted,
        ),
    )


def compute_system_metrics(
    pens: Sequence[Pen],
    doses: Sequence[Dose],
    pen_usage: Optional[Dict[Hashable, float]] = None,
    now: Optional[datetime] = None,
    expiring_soon_days: int = EXPIRING_SOON_DAYS,
) -> SystemMetrics:
    """Calcula as métricas de todas as canetas num único instante `now`."""
    if now is None:
        now = datetime.now()
    if pen_usage is None:
        pen_usage = compute_pen_usage(pens, doses)

    metrics = [
        compute_pen_metrics(pen, doses, pen_usage, now, expiring_soon_days)
        for pen in pens
    ]
    return aggregate(metrics)
