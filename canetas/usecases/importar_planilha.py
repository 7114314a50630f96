# canetas/usecases/importar_planilha.py
"""
UC: importar CANETAS e DOSES em lote a partir de planilhas (XLSX/CSV).

- run_importar_canetas(path): lê canetas e insere todas.
- run_importar_doses(path): lê doses e insere todas, desde que cada uma
  aponte para uma caneta já cadastrada.

Obs.:
- A carga é tudo-ou-nada: qualquer linha inválida aborta antes de gravar.
"""

from __future__ import annotations

from typing import Any, Dict, List

from canetas.adapters.planilha_loader import load_doses, load_pens
from canetas.config import DB_PATH
from canetas.domain.models import Dose, Pen
from canetas.domain.operacoes import validate_dose
from canetas.infra.db import connect
from canetas.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_system_event,
    log_transaction,
)
from canetas.infra.migrations import apply_migrations
from canetas.infra.repositories import DoseRepo, PenRepo


def run_importar_canetas(path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê uma planilha de CANETAS e insere todas as linhas."""
    log_system_event("importar_canetas_start", {"file_path": path})
    try:
        pens: List[Pen] = load_pens(path)
        log_file_operation("import", path, rows_processed=len(pens))

        apply_migrations(db_path)
        repo = PenRepo(db_path)
        for pen in pens:
            repo.insert(pen)
        log_database_operation("caneta", "INSERT_MANY", len(pens), file_path=path)

        result = {"arquivo": path, "tipo": "Canetas", "linhas_inseridas": len(pens)}
        log_transaction("importar_canetas", {"file": path}, result=result)
        return result
    except Exception as e:
        log_transaction("importar_canetas", {"file": path}, error=str(e))
        log_system_event("importar_canetas_error", {"file_path": path, "error": str(e)}, level="error")
        raise


def run_importar_doses(path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê uma planilha de DOSES e insere todas as linhas."""
    log_system_event("importar_doses_start", {"file_path": path})
    try:
        doses: List[Dose] = load_doses(path)
        log_file_operation("import", path, rows_processed=len(doses))

        apply_migrations(db_path)
        pens = PenRepo(db_path).get_all()
        for dose in doses:
            validate_dose(dose, pens)

        n = DoseRepo(db_path).insert_many(doses)
        log_database_operation("dose", "INSERT_MANY", n, file_path=path)

        with connect(db_path) as c:
            total = c.execute("SELECT COUNT(*) FROM dose").fetchone()[0]

        result = {"arquivo": path, "tipo": "Doses", "linhas_inseridas": n, "total_doses": total}
        log_transaction("importar_doses", {"file": path}, result=result)
        return result
    except Exception as e:
        log_transaction("importar_doses", {"file": path}, error=str(e))
        log_system_event("importar_doses_error", {"file_path": path, "error": str(e)}, level="error")
        raise
