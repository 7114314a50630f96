# canetas/usecases/registrar_dose.py
"""
UC: registrar, concluir, editar e remover DOSES.

- run_dose_nova(): insere uma dose (aplicada ou planejada) ou, com
  `repetir_dias`, uma série de doses planejadas até a caneta esgotar.
- run_concluir_dose(): marca uma dose planejada como aplicada.
- run_editar_dose(): troca caneta, data, mg ou status preservando o id.
- run_remover_dose() / run_limpar_planejadas(): remoções.

Obs.:
- Antes de gravar, confere se a caneta comporta a dose (o uso considera
  doses aplicadas e planejadas; na edição, a própria dose é devolvida ao
  saldo antes da conferência).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from canetas.config import DB_PATH
from canetas.domain.agregador import compute_pen_usage
from canetas.domain.formulas import find_pen, round1
from canetas.domain.models import Dose
from canetas.domain.operacoes import (
    availability_for_edit,
    can_afford_dose,
    complete_dose,
    new_id,
    plan_repeated_doses,
    remove_dose,
    remove_planned_doses,
    update_dose,
    validate_dose,
)
from canetas.infra.logger import (
    log_database_operation,
    log_dose,
    log_system_event,
    log_transaction,
)
from canetas.infra.repositories import DoseRepo
from canetas.usecases.calcular_metricas import carregar_snapshot


def _saldo_insuficiente(mg: float, disponivel: float) -> ValueError:
    return ValueError(f"saldo insuficiente na caneta: dose de {mg:g} mg, disponível {disponivel:g} mg")


def run_dose_nova(
    pen_id: str,
    when: datetime,
    mg: float,
    is_completed: bool = False,
    repetir_dias: Optional[int] = None,
    db_path: str = DB_PATH,
) -> List[Dose]:
    """Registra uma dose (ou uma série planejada) e devolve o que foi gravado."""
    log_system_event("dose_nova_start", {"pen_id": pen_id, "mg": mg, "repetir_dias": repetir_dias})
    try:
        pens, doses = carregar_snapshot(db_path)
        pen = find_pen(pens, pen_id)
        if pen is None:
            raise LookupError(f"caneta {pen_id!r} não encontrada")
        mg = round1(mg)
        usage = compute_pen_usage(pens, doses)

        if repetir_dias:
            novas = plan_repeated_doses(pen, when, mg, repetir_dias, usage)
            if not novas:
                raise _saldo_insuficiente(mg, availability_for_edit(pen, usage).total)
        else:
            if not can_afford_dose(mg, pen, usage):
                raise _saldo_insuficiente(mg, availability_for_edit(pen, usage).total)
            novas = [
                validate_dose(
                    Dose(id=new_id(), pen_id=pen.id, date=when, mg=mg, is_completed=is_completed),
                    pens,
                )
            ]

        n = DoseRepo(db_path).insert_many(novas)
        log_database_operation("dose", "INSERT_MANY", n, pen_id=pen_id)
        for d in novas:
            log_dose("insert", d.id, d.pen_id, d.mg, date=d.date.isoformat(), is_completed=d.is_completed)
        log_transaction("dose_nova", {"pen_id": pen_id, "mg": mg}, result={"doses": len(novas)})
        return novas
    except Exception as e:
        log_transaction("dose_nova", {"pen_id": pen_id, "mg": mg}, error=str(e))
        log_system_event("dose_nova_error", {"error": str(e)}, level="error")
        raise


def run_concluir_dose(dose_id: str, db_path: str = DB_PATH) -> Dose:
    """Marca a dose como aplicada."""
    log_system_event("concluir_dose_start", {"dose_id": dose_id})
    try:
        _, doses = carregar_snapshot(db_path)
        atualizadas = complete_dose(doses, dose_id)
        dose = next(d for d in atualizadas if d.id == dose_id)
        DoseRepo(db_path).update(dose)
        log_database_operation("dose", "UPDATE", 1, dose_id=dose_id)
        log_dose("complete", dose.id, dose.pen_id, dose.mg)
        log_transaction("concluir_dose", {"dose_id": dose_id}, result="success")
        return dose
    except Exception as e:
        log_transaction("concluir_dose", {"dose_id": dose_id}, error=str(e))
        log_system_event("concluir_dose_error", {"error": str(e)}, level="error")
        raise


def run_editar_dose(
    dose_id: str,
    pen_id: Optional[str] = None,
    when: Optional[datetime] = None,
    mg: Optional[float] = None,
    is_completed: Optional[bool] = None,
    db_path: str = DB_PATH,
) -> Dose:
    """Edita campos de uma dose; os omitidos (None) ficam como estão."""
    changes: Dict[str, Any] = {}
    if pen_id is not None:
        changes["pen_id"] = pen_id
    if when is not None:
        changes["date"] = when
    if mg is not None:
        changes["mg"] = round1(mg)
    if is_completed is not None:
        changes["is_completed"] = is_completed

    log_system_event("editar_dose_start", {"dose_id": dose_id, "changes": list(changes)})
    try:
        if not changes:
            raise ValueError("nada a alterar: informe pelo menos um campo")
        pens, doses = carregar_snapshot(db_path)
        original = next((d for d in doses if d.id == dose_id), None)
        if original is None:
            raise LookupError(f"dose {dose_id!r} não encontrada")

        editada = next(d for d in update_dose(doses, dose_id, **changes) if d.id == dose_id)
        validate_dose(editada, pens)
        if "pen_id" in changes or "mg" in changes:
            pen = find_pen(pens, editada.pen_id)
            usage = compute_pen_usage(pens, doses)
            if not can_afford_dose(editada.mg, pen, usage, editing=original):
                raise _saldo_insuficiente(editada.mg, availability_for_edit(pen, usage, original).total)

        DoseRepo(db_path).update(editada)
        log_database_operation("dose", "UPDATE", 1, dose_id=dose_id)
        log_dose("update", editada.id, editada.pen_id, editada.mg, changes=list(changes))
        log_transaction("editar_dose", {"dose_id": dose_id}, result=editada.to_dict())
        return editada
    except Exception as e:
        log_transaction("editar_dose", {"dose_id": dose_id}, error=str(e))
        log_system_event("editar_dose_error", {"error": str(e)}, level="error")
        raise


def run_remover_dose(dose_id: str, db_path: str = DB_PATH) -> None:
    log_system_event("remover_dose_start", {"dose_id": dose_id})
    try:
        _, doses = carregar_snapshot(db_path)
        try:
            remove_dose(doses, dose_id)
        except LookupError:
            raise LookupError(f"dose {dose_id!r} não encontrada") from None
        DoseRepo(db_path).delete(dose_id)
        log_database_operation("dose", "DELETE", 1, dose_id=dose_id)
        log_dose("delete", dose_id, None)
        log_transaction("remover_dose", {"dose_id": dose_id}, result="success")
    except Exception as e:
        log_transaction("remover_dose", {"dose_id": dose_id}, error=str(e))
        log_system_event("remover_dose_error", {"error": str(e)}, level="error")
        raise


def run_limpar_planejadas(db_path: str = DB_PATH) -> int:
    """Remove todas as doses planejadas. Retorna quantas foram apagadas."""
    _, doses = carregar_snapshot(db_path)
    esperadas = len(doses) - len(remove_planned_doses(doses))
    n = DoseRepo(db_path).delete_planned()
    if n != esperadas:
        log_system_event("limpar_planejadas_divergencia", {"esperadas": esperadas, "removidas": n}, level="warning")
    log_database_operation("dose", "DELETE_PLANNED", n)
    log_transaction("limpar_planejadas", {}, result={"removidas": n})
    return n
