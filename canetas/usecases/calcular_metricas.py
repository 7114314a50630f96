# canetas/usecases/calcular_metricas.py
"""
Caso de uso: calcular as métricas de canetas e do sistema.

Fluxo:
1) Aplica migrações.
2) Lê parâmetros (meia-vida, janela de "vence em breve", dias de projeção).
3) Carrega o snapshot atual de canetas e doses.
4) Captura `now` uma única vez e calcula uso, métricas por caneta e totais.

Observações:
- O cálculo em si é puro (`canetas.domain`); aqui só há I/O e logging.
- Doses de canetas inexistentes não quebram o cálculo; apenas são
  registradas como aviso.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from canetas.config import DB_PATH, DEFAULTS
from canetas.domain.agregador import compute_pen_usage, compute_system_metrics
from canetas.domain.models import Dose, Pen, SystemMetrics
from canetas.infra.logger import log_database_operation, log_metricas, log_system_event
from canetas.infra.migrations import apply_migrations
from canetas.infra.repositories import DoseRepo, ParamsRepo, PenRepo


@dataclass(frozen=True)
class Parametros:
    half_life_dias: float
    janela_vencimento_dias: int
    dias_projecao: int
    intervalo_repeticao_dias: int


def pick_params(db_path: str = DB_PATH) -> Parametros:
    """Carrega parâmetros globais, com fallback para DEFAULTS."""
    apply_migrations(db_path)
    repo = ParamsRepo(db_path)
    return Parametros(
        half_life_dias=repo.get_float("half_life_dias", DEFAULTS.half_life_dias),
        janela_vencimento_dias=repo.get_int("janela_vencimento_dias", DEFAULTS.janela_vencimento_dias),
        dias_projecao=repo.get_int("dias_projecao", DEFAULTS.dias_projecao),
        intervalo_repeticao_dias=repo.get_int("intervalo_repeticao_dias", DEFAULTS.intervalo_repeticao_dias),
    )


def carregar_snapshot(db_path: str = DB_PATH) -> Tuple[List[Pen], List[Dose]]:
    """Lê canetas e doses do banco (após garantir o schema)."""
    apply_migrations(db_path)
    pens = PenRepo(db_path).get_all()
    log_database_operation("caneta", "SELECT_ALL", len(pens))
    doses = DoseRepo(db_path).get_all()
    log_database_operation("dose", "SELECT_ALL", len(doses))

    pen_ids = {p.id for p in pens}
    orfas = [d.id for d in doses if d.pen_id not in pen_ids]
    if orfas:
        log_system_event("doses_sem_caneta", {"doses": orfas}, level="warning")
    return pens, doses


def run_metricas(db_path: str = DB_PATH, now: Optional[datetime] = None) -> SystemMetrics:
    """Calcula `SystemMetrics` para o estado atual do banco."""
    now = now or datetime.now()
    log_system_event("metricas_start", {"db_path": db_path, "now": now.isoformat()})
    try:
        params = pick_params(db_path)
        pens, doses = carregar_snapshot(db_path)
        usage = compute_pen_usage(pens, doses)
        metrics = compute_system_metrics(
            pens,
            doses,
            pen_usage=usage,
            now=now,
            expiring_soon_days=params.janela_vencimento_dias,
        )
        log_metricas(
            "calculadas",
            total_pens=metrics.total_pens,
            active_pens=metrics.active_pens,
            pens_at_risk=[str(m.pen_id) for m in metrics.pens_at_risk],
            total_wasted=metrics.total_wasted,
        )
        log_system_event("metricas_success", {"total_pens": metrics.total_pens})
        return metrics
    except Exception as e:
        log_system_event("metricas_error", {"error": str(e)}, level="error")
        raise
