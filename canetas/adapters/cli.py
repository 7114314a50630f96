# canetas/adapters/cli.py
"""
CLI do sistema de canetas (Typer).

Comandos principais:
- migrate                          -> aplica migrações
- params set/get/show              -> gerencia parâmetros globais
- canetas adicionar/listar/remover -> cadastro de canetas
- doses adicionar/concluir/editar/remover/listar/limpar-planejadas
- importar canetas|doses <arquivo> -> carga em lote (XLSX/CSV)
- metricas                         -> métricas por caneta e do sistema
- rel painel|risco|concentracao    -> relatórios
- snapshot                         -> grava o snapshot diário das métricas
- logs                             -> últimas linhas dos arquivos de log
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from canetas.adapters.parsers import parse_data, parse_data_hora, parse_mg, parse_tamanho
from canetas.config import DB_PATH, DEFAULTS, PARAM_KEYS
from canetas.domain.agregador import compute_pen_usage
from canetas.domain.formulas import availability, click_capacity, syringe_capacity, total_capacity
from canetas.domain.models import SystemMetrics
from canetas.infra.logger import LOG_FILES, get_log_summary
from canetas.infra.migrations import apply_migrations
from canetas.infra.repositories import ParamsRepo
from canetas.usecases.calcular_metricas import carregar_snapshot, run_metricas
from canetas.usecases.importar_planilha import run_importar_canetas, run_importar_doses
from canetas.usecases.registrar_caneta import run_caneta_nova, run_remover_caneta
from canetas.usecases.registrar_dose import (
    run_concluir_dose,
    run_dose_nova,
    run_editar_dose,
    run_limpar_planejadas,
    run_remover_dose,
)
from canetas.usecases.relatorios import (
    relatorio_concentracao,
    relatorio_doses,
    relatorio_painel,
    relatorio_risco,
)
from canetas.usecases.snapshot_diario import run_snapshot_diario


app = typer.Typer(help="Canetas — controle de canetas injetoras e doses")
console = Console()

RISK_STYLE = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
    "none": "dim",
}


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    """Formata números no padrão brasileiro (1.234,5)."""
    if val is None:
        return "—"
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, float):
        return f"{val:,.1f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return str(val)


@contextmanager
def _erros_amigaveis() -> Iterator[None]:
    """Converte erros de validação/consulta em mensagem e código de saída 1."""
    try:
        yield
    except (ValueError, LookupError) as e:
        console.print(f"[bold red]Erro:[/] {e}")
        raise typer.Exit(code=1)


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe uma lista de dicionários como tabela Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column.lower() in ("mg", "restante_mg", "cliques", "mg_seletor", "mg_seringa", "tamanho"):
            table.add_column(column, justify="right")
        elif "data" in column.lower() or column.lower() == "date":
            table.add_column(column, justify="center")
        else:
            table.add_column(column)

    for row in data:
        values = []
        for col in columns:
            val = row.get(col)
            if col in ("risco", "risk_level") and isinstance(val, str):
                values.append(f"[{RISK_STYLE.get(val, '')}]{val}[/]")
            else:
                values.append(_fmt(val))
        table.add_row(*values)
    console.print(table)


def _display_metricas(metrics: SystemMetrics) -> None:
    if metrics.total_pens == 0:
        console.print(Panel("Nenhuma caneta cadastrada", title="Métricas", border_style="yellow"))
        return

    table = Table(title="Métricas por Caneta", box=box.ROUNDED)
    for col in ("caneta", "mg", "usado", "restante", "cliques", "vence em", "última dose→validade", "risco"):
        table.add_column(col, justify="right" if col not in ("caneta", "risco") else "left")
    for m in metrics.pen_metrics:
        vence = f"{m.days_until_expiry} d"
        if m.is_expired:
            vence = f"[bold red]vencida ({m.days_until_expiry} d)[/]"
        elif m.is_expiring_soon:
            vence = f"[yellow]{m.days_until_expiry} d[/]"
        table.add_row(
            str(m.pen_id)[:8],
            _fmt(m.pen_size),
            _fmt(m.usage),
            _fmt(m.remaining),
            str(m.availability.clicks_remaining),
            vence,
            _fmt(m.days_between_last_use_and_expiry),
            f"[{RISK_STYLE.get(m.risk_level, '')}]{m.risk_level}[/]",
        )
    console.print(table)

    crit = metrics.critical_metrics
    linhas = [
        f"Canetas: {metrics.total_pens} (ativas {metrics.active_pens}, vencidas {metrics.expired_pens}, vazias {metrics.empty_pens})",
        f"Capacidade total: {_fmt(metrics.total_capacity)} mg — usado {_fmt(metrics.total_used)} mg — restante {_fmt(metrics.total_remaining)} mg",
        f"Eficiência média: {_fmt(metrics.average_efficiency)}%",
        f"Desperdício: {_fmt(metrics.total_wasted)} mg (média {_fmt(metrics.average_waste_per_pen)} mg/caneta)",
        f"Média última dose→validade: {_fmt(crit.avg_days_between_last_use_and_expiry)} dias",
        f"Vencidas com medicação: {crit.pens_expired_with_medication}",
        f"Canetas em risco: {len(metrics.pens_at_risk)}",
    ]
    console.print(Panel("\n".join(linhas), title="Sistema"))


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Aplica migrações do banco."""
    apply_migrations(db_path)
    typer.echo(f">> Migrações aplicadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar parâmetros globais (meia-vida, janelas em dias).")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    half_life_dias: Optional[float] = typer.Option(None, help="Meia-vida em dias (ex.: 5)"),
    janela_vencimento_dias: Optional[int] = typer.Option(None, help="'Vence em breve' a partir de N dias (ex.: 14)"),
    dias_projecao: Optional[int] = typer.Option(None, help="Dias extras na curva de concentração (ex.: 21)"),
    intervalo_repeticao_dias: Optional[int] = typer.Option(None, help="Intervalo padrão das doses repetidas (ex.: 7)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Define parâmetros globais (apenas os informados são alterados)."""
    valores = {
        "half_life_dias": half_life_dias,
        "janela_vencimento_dias": janela_vencimento_dias,
        "dias_projecao": dias_projecao,
        "intervalo_repeticao_dias": intervalo_repeticao_dias,
    }
    items = [(k, str(v)) for k, v in valores.items() if v is not None]
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    if half_life_dias is not None and half_life_dias <= 0:
        typer.echo("half_life_dias deve ser positivo.")
        raise typer.Exit(code=1)
    apply_migrations(db_path)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: " + " | ".join(PARAM_KEYS)),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra um parâmetro específico."""
    apply_migrations(db_path)
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Exibe os parâmetros efetivos (com fallback para defaults) em JSON."""
    apply_migrations(db_path)
    repo = ParamsRepo(db_path)
    out: Dict[str, Any] = {k: repo.get(k, str(getattr(DEFAULTS, k))) for k in PARAM_KEYS}
    out["_defaults"] = {k: getattr(DEFAULTS, k) for k in PARAM_KEYS}
    out["_db"] = db_path
    _print_json(out)


# -----------------------
# canetas
# -----------------------

canetas_app = typer.Typer(help="Cadastro de canetas.")
app.add_typer(canetas_app, name="canetas")


@canetas_app.command("adicionar")
def cmd_caneta_adicionar(
    validade: str = typer.Option(..., help="Data de validade (YYYY-MM-DD ou DD/MM/AAAA)"),
    tamanho: str = typer.Option(str(DEFAULTS.tamanho_padrao), help="Tamanho nominal em mg"),
    compra: Optional[str] = typer.Option(None, help="Data de compra (opcional)"),
    notas: str = typer.Option("", help="Observações"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Cadastra uma caneta."""
    with _erros_amigaveis():
        pen = run_caneta_nova(
            size=parse_tamanho(tamanho),
            expiration_date=parse_data(validade),
            purchase_date=parse_data(compra),
            notes=notas,
            db_path=db_path,
        )
    console.print(
        f">> Caneta de {_fmt(pen.size)} mg cadastrada: [bold]{pen.id}[/] "
        f"({_fmt(total_capacity(pen.size))} mg: {_fmt(click_capacity(pen.size))} mg no seletor + "
        f"{_fmt(syringe_capacity(pen.size))} mg com seringa)"
    )


@canetas_app.command("listar")
def cmd_caneta_listar(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista canetas com o saldo atual (seletor + seringa)."""
    pens, doses = carregar_snapshot(db_path)
    usage = compute_pen_usage(pens, doses)
    rows = []
    for pen in pens:
        avail = availability(pen.size, usage.get(pen.id, 0.0))
        rows.append(
            {
                "id": pen.id,
                "tamanho": pen.size,
                "validade": pen.expiration_date.isoformat(),
                "usado": usage.get(pen.id, 0.0),
                "seletor_mg": avail.from_clicks,
                "seringa_mg": avail.from_syringe,
                "restante_mg": avail.total,
                "cliques": avail.clicks_remaining,
                "notas": pen.notes,
            }
        )
    if as_json:
        _print_json(rows)
    else:
        _display_table(rows, title="Canetas")


@canetas_app.command("remover")
def cmd_caneta_remover(
    pen_id: str = typer.Argument(..., help="Id da caneta"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Remove a caneta e todas as suas doses."""
    with _erros_amigaveis():
        res = run_remover_caneta(pen_id, db_path=db_path)
    typer.echo(f">> Caneta removida ({res['doses_removidas']} dose(s) apagada(s)).")


# -----------------------
# doses
# -----------------------

doses_app = typer.Typer(help="Registro de doses aplicadas e planejadas.")
app.add_typer(doses_app, name="doses")


@doses_app.command("adicionar")
def cmd_dose_adicionar(
    caneta: str = typer.Option(..., help="Id da caneta"),
    mg: str = typer.Option(..., help="Dose em mg (ex.: 2,5)"),
    data: Optional[str] = typer.Option(None, help="Data/hora da dose (padrão: agora)"),
    aplicada: bool = typer.Option(False, "--aplicada/--planejada", help="Dose já aplicada?"),
    repetir_dias: Optional[int] = typer.Option(None, help="Repetir a cada N dias até esgotar a caneta"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra uma dose (ou uma série planejada com --repetir-dias)."""
    with _erros_amigaveis():
        when = parse_data_hora(data) or datetime.now()
        novas = run_dose_nova(
            pen_id=caneta,
            when=when,
            mg=parse_mg(mg),
            is_completed=aplicada and not repetir_dias,
            repetir_dias=repetir_dias,
            db_path=db_path,
        )
    for d in novas:
        typer.echo(f">> Dose {d.id} — {d.mg:g} mg em {d.date.date().isoformat()}")


@doses_app.command("concluir")
def cmd_dose_concluir(
    dose_id: str = typer.Argument(..., help="Id da dose"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Marca uma dose planejada como aplicada."""
    with _erros_amigaveis():
        run_concluir_dose(dose_id, db_path=db_path)
    typer.echo(">> Dose concluída.")


@doses_app.command("editar")
def cmd_dose_editar(
    dose_id: str = typer.Argument(..., help="Id da dose"),
    caneta: Optional[str] = typer.Option(None, help="Nova caneta"),
    mg: Optional[str] = typer.Option(None, help="Nova dose em mg"),
    data: Optional[str] = typer.Option(None, help="Nova data/hora"),
    aplicada: Optional[bool] = typer.Option(None, "--aplicada/--planejada", help="Novo status"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Edita uma dose preservando sua identidade."""
    with _erros_amigaveis():
        dose = run_editar_dose(
            dose_id,
            pen_id=caneta,
            when=parse_data_hora(data),
            mg=parse_mg(mg),
            is_completed=aplicada,
            db_path=db_path,
        )
    _print_json(dose.to_dict())


@doses_app.command("remover")
def cmd_dose_remover(
    dose_id: str = typer.Argument(..., help="Id da dose"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Remove uma dose."""
    with _erros_amigaveis():
        run_remover_dose(dose_id, db_path=db_path)
    typer.echo(">> Dose removida.")


@doses_app.command("limpar-planejadas")
def cmd_dose_limpar(
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Remove todas as doses planejadas."""
    n = run_limpar_planejadas(db_path=db_path)
    typer.echo(f">> {n} dose(s) planejada(s) removida(s).")


@doses_app.command("listar")
def cmd_dose_listar(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista doses com cliques no seletor e mg com seringa."""
    rows = relatorio_doses(db_path=db_path)
    if as_json:
        _print_json(rows)
    else:
        _display_table(
            [
                {
                    "id": r["id"],
                    "caneta": r["pen_id"],
                    "data": r["date"],
                    "mg": r["mg"],
                    "status": r["status"],
                    "cliques": r["cliques"],
                    "mg_seringa": r["mg_seringa"],
                }
                for r in rows
            ],
            title="Doses",
        )


# -----------------------
# importação
# -----------------------

importar_app = typer.Typer(help="Importar planilhas (XLSX/CSV).")
app.add_typer(importar_app, name="importar")


@importar_app.command("canetas")
def cmd_importar_canetas(
    path: str = typer.Argument(..., help="Caminho do XLSX/CSV de CANETAS"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Importa canetas em lote."""
    with _erros_amigaveis():
        info = run_importar_canetas(path, db_path=db_path)
    console.print(Panel(f"Linhas inseridas: {info['linhas_inseridas']}", title="Canetas em Lote"))


@importar_app.command("doses")
def cmd_importar_doses(
    path: str = typer.Argument(..., help="Caminho do XLSX/CSV de DOSES"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Importa doses em lote."""
    with _erros_amigaveis():
        info = run_importar_doses(path, db_path=db_path)
    console.print(Panel(f"Linhas inseridas: {info['linhas_inseridas']}", title="Doses em Lote"))


# -----------------------
# métricas e relatórios
# -----------------------

@app.command("metricas")
def cmd_metricas(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Calcula métricas por caneta e do sistema."""
    metrics = run_metricas(db_path=db_path)
    if as_json:
        _print_json(metrics.to_dict())
    else:
        _display_metricas(metrics)


rel_app = typer.Typer(help="Relatórios")
app.add_typer(rel_app, name="rel")


@rel_app.command("painel")
def rel_painel(
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Resumo do dia (JSON)."""
    _print_json(relatorio_painel(db_path=db_path))


@rel_app.command("risco")
def rel_risco(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Canetas em risco de desperdício ou de faltar medicação."""
    res = relatorio_risco(db_path=db_path)
    if as_json:
        _print_json(res)
    else:
        _display_table(res, title="Canetas em Risco")


@rel_app.command("concentracao")
def rel_concentracao(
    modo: str = typer.Option("real", help="real | plano"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Curva diária de concentração estimada."""
    if modo not in ("real", "plano"):
        typer.echo("modo deve ser 'real' ou 'plano'.")
        raise typer.Exit(code=1)
    res = relatorio_concentracao(db_path=db_path)
    campo = "actual" if modo == "real" else "planned"
    rows = [
        {
            "data": p["date"],
            "mg": p[campo],
            "aplicada": p["completed_mg"],
            "planejada": p["scheduled_mg"],
            "hoje": "◀" if p["is_today"] else "",
        }
        for p in res["pontos"]
    ]
    _display_table(rows, title=f"Concentração estimada ({modo}, meia-vida {_fmt(res['half_life_dias'])} d)")
    if res["steady_state_estimado"] is not None:
        console.print(f"[dim]Steady state estimado: {_fmt(res['steady_state_estimado'])} mg[/dim]")


@app.command("snapshot")
def cmd_snapshot(
    user_id: str = typer.Option(DEFAULTS.user_id, "--user", help="Dono do snapshot"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Grava o snapshot diário das métricas (sobrescreve o do mesmo dia)."""
    res = run_snapshot_diario(db_path=db_path, user_id=user_id)
    typer.echo(f">> Snapshot de {res['dia']} gravado ({res['canetas']} caneta(s)).")


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Option("transactions", help="Ex.: " + " | ".join(LOG_FILES)),
    linhas: int = typer.Option(50, help="Quantidade de linhas finais"),
):
    """Mostra as últimas linhas de um arquivo de log."""
    resumo = get_log_summary(tipo, linhas)
    if resumo is None:
        typer.echo("Logging desabilitado (defina CANETAS_LOGGING=1).")
        return
    typer.echo(resumo)


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
