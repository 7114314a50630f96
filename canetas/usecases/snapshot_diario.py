# canetas/usecases/snapshot_diario.py
"""
Caso de uso: gravar o snapshot diário das métricas.

Grava uma linha por caneta (chave usuário/caneta/dia) e uma linha
consolidada (chave usuário/dia). Rodar de novo no mesmo dia sobrescreve
os valores do dia (upsert).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from canetas.config import DB_PATH, DEFAULTS
from canetas.infra.logger import log_database_operation, log_system_event, log_transaction
from canetas.infra.repositories import SnapshotRepo
from canetas.usecases.calcular_metricas import run_metricas


def run_snapshot_diario(
    db_path: str = DB_PATH,
    user_id: str = DEFAULTS.user_id,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now()
    dia = now.date()
    log_system_event("snapshot_start", {"user_id": user_id, "dia": dia.isoformat()})
    try:
        metrics = run_metricas(db_path=db_path, now=now)
        repo = SnapshotRepo(db_path)
        repo.upsert_system_metrics(user_id, dia, metrics)
        log_database_operation("system_metrics_snapshot", "UPSERT", 1, user_id=user_id)
        n = repo.upsert_pen_metrics(user_id, dia, metrics.pen_metrics)
        log_database_operation("pen_metrics_snapshot", "UPSERT", n, user_id=user_id)

        result = {"user_id": user_id, "dia": dia.isoformat(), "canetas": n}
        log_transaction("snapshot_diario", {"user_id": user_id}, result=result)
        return result
    except Exception as e:
        log_transaction("snapshot_diario", {"user_id": user_id}, error=str(e))
        log_system_event("snapshot_error", {"error": str(e)}, level="error")
        raise
