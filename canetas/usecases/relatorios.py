# canetas/usecases/relatorios.py
"""
Relatórios de canetas e doses:
- painel (resumo do dia: última/próxima dose, concentração, saldo)
- canetas em risco (ordenadas por gravidade)
- curva de concentração (real x plano)
- doses com detalhamento seletor/seringa

Todos os relatórios leem um único snapshot do banco e usam um único
`now` por chamada.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from canetas.config import DB_PATH
from canetas.domain.agregador import compute_pen_usage, compute_system_metrics
from canetas.domain.datas import abs_days_between, as_datetime, days_between, iso
from canetas.domain.formulas import dose_breakdown_for, round1
from canetas.domain.operacoes import sort_doses
from canetas.domain.pk import concentration, concentration_series, steady_state_estimate
from canetas.domain.policies import risk_rank
from canetas.infra.logger import log_system_event, system_logger
from canetas.usecases.calcular_metricas import carregar_snapshot, pick_params

PROXIMAS_DOSES = 5


# ----------------------
# 1) Painel
# ----------------------

def relatorio_painel(db_path: str = DB_PATH, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Resumo do estado atual, no formato de um dicionário serializável."""
    now = now or datetime.now()
    log_system_event("relatorio_painel_start", {"db_path": db_path})
    try:
        params = pick_params(db_path)
        pens, doses = carregar_snapshot(db_path)
        usage = compute_pen_usage(pens, doses)
        metrics = compute_system_metrics(
            pens, doses, pen_usage=usage, now=now,
            expiring_soon_days=params.janela_vencimento_dias,
        )

        ordenadas = sort_doses(doses)
        concluidas = [d for d in ordenadas if d.is_completed]
        planejadas = [d for d in ordenadas if not d.is_completed]

        ultima = concluidas[-1] if concluidas else None
        proxima = next((d for d in planejadas if as_datetime(d.date) >= now), None)

        ativa = next(
            (m for m in metrics.pen_metrics if not m.is_expired and not m.is_empty),
            None,
        )
        saldo = round1(sum(m.remaining for m in metrics.pen_metrics if not m.is_expired))

        painel = {
            "gerado_em": now.isoformat(timespec="seconds"),
            "ultima_dose": ultima.to_dict() if ultima else None,
            "dias_desde_ultima_dose": abs_days_between(ultima.date, now) if ultima else None,
            "proxima_dose": proxima.to_dict() if proxima else None,
            "dias_ate_proxima_dose": days_between(now, proxima.date) if proxima else None,
            "concentracao_atual": round1(concentration(doses, now, params.half_life_dias)),
            "steady_state_estimado": steady_state_estimate(doses),
            "saldo_total_mg": saldo,
            "caneta_ativa": ativa.to_dict() if ativa else None,
            "proximas_doses": [d.to_dict() for d in planejadas[:PROXIMAS_DOSES]],
            "canetas_em_risco": len(metrics.pens_at_risk),
        }
        log_system_event("relatorio_painel_success", {"canetas": metrics.total_pens})
        return painel
    except Exception as e:
        log_system_event("relatorio_painel_error", {"error": str(e)}, level="error")
        raise


# ----------------------
# 2) Canetas em risco
# ----------------------

def relatorio_risco(db_path: str = DB_PATH, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Canetas com risco diferente de 'none', da mais grave para a menos grave."""
    now = now or datetime.now()
    log_system_event("relatorio_risco_start", {"db_path": db_path})
    try:
        params = pick_params(db_path)
        pens, doses = carregar_snapshot(db_path)
        metrics = compute_system_metrics(
            pens, doses, now=now, expiring_soon_days=params.janela_vencimento_dias,
        )
        em_risco = sorted(
            metrics.pens_at_risk,
            key=lambda m: (-risk_rank(m.risk_level), m.days_until_expiry),
        )
        out = []
        for m in em_risco:
            system_logger.info(f"REPORT_RISCO: caneta {m.pen_id} - {m.risk_level} ({m.assessment.kind})")
            out.append(
                {
                    "pen_id": m.pen_id,
                    "tamanho": m.pen_size,
                    "risco": m.risk_level,
                    "origem": m.assessment.kind,
                    "restante_mg": m.remaining,
                    "dias_ate_vencer": m.days_until_expiry,
                    "ultima_dose_projetada": iso(m.projected_last_dose_date),
                    "folga_dias": m.projected_days_between_last_dose_and_expiry,
                    "dias_para_esvaziar": m.estimated_days_to_empty,
                    "doses_apos_validade": len(m.planned_doses_after_expiry),
                    "vai_faltar": m.will_run_out_before_planned_complete,
                    "desperdicio_projetado_mg": m.projected_waste_mg,
                }
            )
        log_system_event("relatorio_risco_success", {"canetas_em_risco": len(out)})
        return out
    except Exception as e:
        log_system_event("relatorio_risco_error", {"error": str(e)}, level="error")
        raise


# ----------------------
# 3) Curva de concentração
# ----------------------

def relatorio_concentracao(db_path: str = DB_PATH, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Série diária de concentração (real e planejada) para o gráfico."""
    now = now or datetime.now()
    params = pick_params(db_path)
    _, doses = carregar_snapshot(db_path)
    pontos = concentration_series(doses, now, params.half_life_dias, params.dias_projecao)
    log_system_event("relatorio_concentracao", {"pontos": len(pontos)})
    return {
        "half_life_dias": params.half_life_dias,
        "steady_state_estimado": steady_state_estimate(doses),
        "pontos": pontos,
    }


# ----------------------
# 4) Doses com detalhamento
# ----------------------

def relatorio_doses(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Doses em ordem cronológica com a divisão seletor/seringa de cada uma."""
    pens, doses = carregar_snapshot(db_path)
    out: List[Dict[str, Any]] = []
    for dose in sort_doses(doses):
        breakdown = dose_breakdown_for(dose, pens, doses)
        row = dose.to_dict()
        row["status"] = "aplicada" if dose.is_completed else "planejada"
        if breakdown is None:
            row.update({"cliques": None, "mg_seletor": None, "mg_seringa": None, "seringa": False})
        else:
            row.update(
                {
                    "cliques": breakdown.click_count,
                    "mg_seletor": breakdown.from_clicks,
                    "mg_seringa": breakdown.from_syringe,
                    "seringa": breakdown.requires_syringe,
                }
            )
        out.append(row)
    return out
