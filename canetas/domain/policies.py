"""
Políticas de classificação de risco das canetas.

Este módulo contém as faixas (em dias) que traduzem as projeções do
motor de risco em níveis qualitativos. As funções aqui expostas são
utilizadas por `canetas.domain.risco` ao montar as métricas de cada
caneta e pelos relatórios ao ordenar canetas por gravidade.
"""

from __future__ import annotations

from canetas.domain.models import RiskLevel

# Folga entre a última dose planejada e a validade
PLANNED_LOW_ABOVE_DAYS = 30
PLANNED_MEDIUM_ABOVE_DAYS = 14
PLANNED_HIGH_ABOVE_DAYS = 7

# Dias além da validade estimados pela cadência histórica
HISTORICAL_HIGH_ABOVE_DAYS = 14
HISTORICAL_MEDIUM_ABOVE_DAYS = 7


def classify_planned_gap(days_between_last_dose_and_expiry: int) -> str:
    """Classifica o risco de uma agenda planejada.

    Quanto mais perto da validade cai a última dose que cabe na caneta,
    maior o risco de sobrar medicação vencida ou de faltar margem.

    Regras:
        - ``> 30`` dias → ``'low'``
        - ``> 14`` dias → ``'medium'``
        - ``> 7`` dias  → ``'high'``
        - caso contrário → ``'critical'``
    """
    gap = days_between_last_dose_and_expiry
    if gap > PLANNED_LOW_ABOVE_DAYS:
        return RiskLevel.LOW
    if gap > PLANNED_MEDIUM_ABOVE_DAYS:
        return RiskLevel.MEDIUM
    if gap > PLANNED_HIGH_ABOVE_DAYS:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def classify_historical_overage(days_over_expiry: float) -> str:
    """Classifica quanto a caneta passaria da validade no ritmo atual.

    Regras:
        - ``> 14`` dias → ``'high'``
        - ``> 7`` dias  → ``'medium'``
        - caso contrário → ``'low'``
    """
    if days_over_expiry > HISTORICAL_HIGH_ABOVE_DAYS:
        return RiskLevel.HIGH
    if days_over_expiry > HISTORICAL_MEDIUM_ABOVE_DAYS:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def risk_rank(level: str) -> int:
    """Posição do nível na escala (0 = none ... 4 = critical)."""
    return RiskLevel.ORDER.get(level, 0)
