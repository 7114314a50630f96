# canetas/usecases/registrar_caneta.py
"""
UC: cadastrar e remover CANETAS.

- run_caneta_nova(): valida e insere uma caneta.
- run_remover_caneta(): remove a caneta junto com todas as suas doses
  (nenhuma dose pode continuar apontando para uma caneta apagada).

Obs.:
- Canetas não são editadas; para corrigir, remove-se e cadastra-se outra.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from canetas.config import DB_PATH
from canetas.domain.models import Pen
from canetas.domain.operacoes import new_id, remove_pen, validate_pen
from canetas.infra.logger import (
    log_caneta,
    log_database_operation,
    log_system_event,
    log_transaction,
)
from canetas.infra.migrations import apply_migrations
from canetas.infra.repositories import PenRepo
from canetas.usecases.calcular_metricas import carregar_snapshot


def run_caneta_nova(
    size: float,
    expiration_date: date,
    purchase_date: Optional[date] = None,
    notes: str = "",
    db_path: str = DB_PATH,
) -> Pen:
    """Insere uma caneta nova e devolve o registro criado."""
    log_system_event("caneta_nova_start", {"size": size})
    try:
        pen = validate_pen(
            Pen(
                id=new_id(),
                size=float(size),
                purchase_date=purchase_date,
                expiration_date=expiration_date,
                notes=notes or "",
            )
        )
        apply_migrations(db_path)
        PenRepo(db_path).insert(pen)
        log_database_operation("caneta", "INSERT", 1, pen_id=pen.id)
        log_caneta("insert", pen.id, pen.size, expiration_date=pen.expiration_date.isoformat())
        log_transaction("caneta_nova", pen.to_dict(), result="success")
        return pen
    except Exception as e:
        log_transaction("caneta_nova", {"size": size}, error=str(e))
        log_system_event("caneta_nova_error", {"error": str(e)}, level="error")
        raise


def run_remover_caneta(pen_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Remove a caneta e suas doses. Levanta LookupError se ela não existir."""
    log_system_event("remover_caneta_start", {"pen_id": pen_id})
    try:
        pens, doses = carregar_snapshot(db_path)
        restantes, doses_restantes = remove_pen(pens, doses, pen_id)
        if len(restantes) == len(pens):
            raise LookupError(f"caneta {pen_id!r} não encontrada")
        esperadas = len(doses) - len(doses_restantes)

        n_doses = PenRepo(db_path).delete(pen_id)
        if n_doses != esperadas:
            log_system_event(
                "remover_caneta_divergencia",
                {"pen_id": pen_id, "esperadas": esperadas, "removidas": n_doses},
                level="warning",
            )
        log_database_operation("dose", "DELETE", n_doses, pen_id=pen_id)
        log_database_operation("caneta", "DELETE", 1, pen_id=pen_id)
        log_caneta("delete", pen_id, doses_removidas=n_doses)
        result = {"pen_id": pen_id, "doses_removidas": n_doses}
        log_transaction("remover_caneta", {"pen_id": pen_id}, result=result)
        return result
    except Exception as e:
        log_transaction("remover_caneta", {"pen_id": pen_id}, error=str(e))
        log_system_event("remover_caneta_error", {"error": str(e)}, level="error")
        raise
