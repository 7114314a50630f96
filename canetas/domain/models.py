# canetas/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observações importantes:
- `Pen` e `Dose` são registros imutáveis (frozen). "Editar" uma dose
  significa produzir um novo registro com `dataclasses.replace`.
- Os registros derivados (`Availability`, `PenMetric`, `SystemMetrics`...)
  são recalculados a cada chamada e nunca são a fonte da verdade.
- Todo registro de saída expõe `to_dict()` com primitivos serializáveis
  (números, bool, None, strings ISO), pronto para JSON ou para o
  snapshot diário.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Hashable, Optional, Tuple, Union

from canetas.domain.datas import iso


# Tamanhos nominais (mg) disponíveis para canetas
PEN_SIZES: Tuple[float, ...] = (2.5, 5.0, 7.5, 10.0, 12.5, 15.0)

# Curso completo do seletor da caneta, independente do tamanho
CLICKS_PER_DIAL = 60


class RiskLevel:
    """Níveis qualitativos de risco de desperdício/falta."""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    ORDER = {NONE: 0, LOW: 1, MEDIUM: 2, HIGH: 3, CRITICAL: 4}


# -------------------------
# Registros de entrada
# -------------------------

@dataclass(frozen=True)
class Pen:
    """Caneta pré-carregada com `size` mg nominais."""
    id: Hashable
    size: float
    expiration_date: date
    purchase_date: Optional[date] = None
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "size": self.size,
            "purchase_date": iso(self.purchase_date),
            "expiration_date": iso(self.expiration_date),
            "notes": self.notes,
        }


@dataclass(frozen=True)
class Dose:
    """Dose aplicada (`is_completed=True`) ou planejada."""
    id: Hashable
    pen_id: Hashable
    date: datetime
    mg: float
    is_completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pen_id": self.pen_id,
            "date": iso(self.date),
            "mg": self.mg,
            "is_completed": self.is_completed,
        }


# -------------------------
# Capacidade e extração
# -------------------------

@dataclass(frozen=True)
class Availability:
    from_clicks: float
    from_syringe: float
    total: float
    clicks_remaining: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_clicks": self.from_clicks,
            "from_syringe": self.from_syringe,
            "total": self.total,
            "clicks_remaining": self.clicks_remaining,
        }


@dataclass(frozen=True)
class DoseBreakdown:
    from_clicks: float
    from_syringe: float
    click_count: int
    requires_syringe: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_clicks": self.from_clicks,
            "from_syringe": self.from_syringe,
            "click_count": self.click_count,
            "requires_syringe": self.requires_syringe,
        }


# -------------------------
# Avaliação de risco (variante)
# -------------------------

@dataclass(frozen=True)
class PlannedDoseAfterExpiry:
    id: Hashable
    date: datetime
    mg: float
    days_after_expiry: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": iso(self.date),
            "mg": self.mg,
            "days_after_expiry": self.days_after_expiry,
        }


@dataclass(frozen=True)
class PlannedAssessment:
    """Resultado da simulação das doses planejadas contra a validade."""
    level: str
    projected_last_dose_date: Optional[date]
    projected_days_between_last_dose_and_expiry: Optional[int]
    planned_doses_after_expiry: Tuple[PlannedDoseAfterExpiry, ...]
    will_run_out_before_planned_complete: bool
    projected_waste_mg: float
    kind: str = field(default="planned", init=False)


@dataclass(frozen=True)
class HistoricalAssessment:
    """Projeção pela cadência histórica das doses concluídas."""
    level: str
    estimated_days_to_empty: float
    avg_days_between_doses: float
    avg_dose_mg: float
    kind: str = field(default="historical", init=False)


@dataclass(frozen=True)
class NoAssessment:
    level: str = RiskLevel.NONE
    kind: str = field(default="none", init=False)


RiskAssessment = Union[PlannedAssessment, HistoricalAssessment, NoAssessment]


# -------------------------
# Métricas
# -------------------------

@dataclass(frozen=True)
class PenMetric:
    """Métricas derivadas de uma caneta."""
    pen_id: Hashable
    pen_size: float
    total_capacity: float
    usage: float
    remaining: float
    availability: Availability
    usage_efficiency: float
    days_until_expiry: int
    is_expired: bool
    is_expiring_soon: bool
    is_empty: bool
    last_use_date: Optional[date]
    days_between_last_use_and_expiry: Optional[int]
    wasted_mg: float
    waste_percentage: float
    dose_count: int
    completed_dose_count: int
    planned_dose_count: int
    assessment: RiskAssessment

    @property
    def risk_level(self) -> str:
        return self.assessment.level

    @property
    def has_planned_doses(self) -> bool:
        return self.planned_dose_count > 0

    @property
    def estimated_days_to_empty(self) -> Optional[float]:
        if isinstance(self.assessment, HistoricalAssessment):
            return self.assessment.estimated_days_to_empty
        return None

    @property
    def projected_last_dose_date(self) -> Optional[date]:
        if isinstance(self.assessment, PlannedAssessment):
            return self.assessment.projected_last_dose_date
        return None

    @property
    def projected_days_between_last_dose_and_expiry(self) -> Optional[int]:
        if isinstance(self.assessment, PlannedAssessment):
            return self.assessment.projected_days_between_last_dose_and_expiry
        return None

    @property
    def planned_doses_after_expiry(self) -> Tuple[PlannedDoseAfterExpiry, ...]:
        if isinstance(self.assessment, PlannedAssessment):
            return self.assessment.planned_doses_after_expiry
        return ()

    @property
    def will_run_out_before_planned_complete(self) -> bool:
        if isinstance(self.assessment, PlannedAssessment):
            return self.assessment.will_run_out_before_planned_complete
        return False

    @property
    def projected_waste_mg(self) -> float:
        if isinstance(self.assessment, PlannedAssessment):
            return self.assessment.projected_waste_mg
        return self.remaining

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pen_id": self.pen_id,
            "pen_size": self.pen_size,
            "total_capacity": self.total_capacity,
            "usage": self.usage,
            "remaining": self.remaining,
            "from_clicks": self.availability.from_clicks,
            "from_syringe": self.availability.from_syringe,
            "clicks_remaining": self.availability.clicks_remaining,
            "usage_efficiency": self.usage_efficiency,
            "days_until_expiry": self.days_until_expiry,
            "is_expired": self.is_expired,
            "is_expiring_soon": self.is_expiring_soon,
            "is_empty": self.is_empty,
            "last_use_date": iso(self.last_use_date),
            "days_between_last_use_and_expiry": self.days_between_last_use_and_expiry,
            "wasted_mg": self.wasted_mg,
            "waste_percentage": self.waste_percentage,
            "risk_level": self.risk_level,
            "assessment_kind": self.assessment.kind,
            "estimated_days_to_empty": self.estimated_days_to_empty,
            "dose_count": self.dose_count,
            "completed_dose_count": self.completed_dose_count,
            "planned_dose_count": self.planned_dose_count,
            "has_planned_doses": self.has_planned_doses,
            "projected_last_dose_date": iso(self.projected_last_dose_date),
            "projected_days_between_last_dose_and_expiry": self.projected_days_between_last_dose_and_expiry,
            "planned_doses_after_expiry": [d.to_dict() for d in self.planned_doses_after_expiry],
            "will_run_out_before_planned_complete": self.will_run_out_before_planned_complete,
            "projected_waste_mg": self.projected_waste_mg,
        }


@dataclass(frozen=True)
class CriticalMetrics:
    avg_days_between_last_use_and_expiry: Optional[float] = None
    pens_expired_with_medication: int = 0
    total_medication_wasted: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avg_days_between_last_use_and_expiry": self.avg_days_between_last_use_and_expiry,
            "pens_expired_with_medication": self.pens_expired_with_medication,
            "total_medication_wasted": self.total_medication_wasted,
        }


@dataclass(frozen=True)
class SystemMetrics:
    """Consolidação das métricas de todas as canetas."""
    total_pens: int = 0
    active_pens: int = 0
    expired_pens: int = 0
    empty_pens: int = 0
    total_capacity: float = 0.0
    total_used: float = 0.0
    total_remaining: float = 0.0
    total_wasted: float = 0.0
    average_waste_per_pen: float = 0.0
    average_efficiency: float = 0.0
    pens_at_risk: Tuple[PenMetric, ...] = ()
    pen_metrics: Tuple[PenMetric, ...] = ()
    critical_metrics: CriticalMetrics = field(default_factory=CriticalMetrics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_pens": self.total_pens,
            "active_pens": self.active_pens,
            "expired_pens": self.expired_pens,
            "empty_pens": self.empty_pens,
            "total_capacity": self.total_capacity,
            "total_used": self.total_used,
            "total_remaining": self.total_remaining,
            "total_wasted": self.total_wasted,
            "average_waste_per_pen": self.average_waste_per_pen,
            "average_efficiency": self.average_efficiency,
            "pens_at_risk": [m.to_dict() for m in self.pens_at_risk],
            "pen_metrics": [m.to_dict() for m in self.pen_metrics],
            "critical_metrics": self.critical_metrics.to_dict(),
        }
