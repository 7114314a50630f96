import json
from pathlib import Path

from typer.testing import CliRunner

from canetas.adapters.cli import app

runner = CliRunner()


def _db(tmp_path: Path) -> str:
    return str(tmp_path / "canetas_test.sqlite")


def _nova_caneta(db_path: str, tamanho: str = "5", validade: str = "2030-12-31") -> str:
    result = runner.invoke(app, ["canetas", "adicionar", "--tamanho", tamanho, "--validade", validade, "--db", db_path])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["canetas", "listar", "--json", "--db", db_path])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)[-1]["id"]


def test_cli_migrate_and_params_show(tmp_path: Path):
    db_path = _db(tmp_path)
    result = runner.invoke(app, ["migrate", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "show", "--db", db_path])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["half_life_dias"] == "5.0"
    assert "janela_vencimento_dias" in data
    assert "dias_projecao" in data


def test_cli_params_set_and_get(tmp_path: Path):
    db_path = _db(tmp_path)
    result = runner.invoke(
        app,
        ["params", "set", "--db", db_path, "--half-life-dias", "6.5", "--dias-projecao", "30"],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "get", "half_life_dias", "--db", db_path])
    assert result.exit_code == 0
    assert result.stdout.strip() == "6.5"

    # nada a alterar
    result = runner.invoke(app, ["params", "set", "--db", db_path])
    assert result.exit_code == 1


def test_cli_canetas_e_doses(tmp_path: Path):
    db_path = _db(tmp_path)
    pen_id = _nova_caneta(db_path)

    result = runner.invoke(
        app,
        ["doses", "adicionar", "--caneta", pen_id, "--mg", "2,5", "--data", "2025-01-01 08:00", "--aplicada", "--db", db_path],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(
        app,
        ["doses", "adicionar", "--caneta", pen_id, "--mg", "5", "--data", "2025-01-08", "--repetir-dias", "7", "--db", db_path],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["doses", "listar", "--json", "--db", db_path])
    assert result.exit_code == 0, result.output
    doses = json.loads(result.stdout)
    # 25 mg: 2,5 aplicada + 4 x 5 planejadas
    assert len(doses) == 5
    assert doses[0]["status"] == "aplicada"
    assert doses[0]["cliques"] == 30
    assert doses[-1]["seringa"] is True

    result = runner.invoke(app, ["canetas", "listar", "--json", "--db", db_path])
    (caneta,) = json.loads(result.stdout)
    assert caneta["usado"] == 22.5
    assert caneta["restante_mg"] == 2.5

    primeira_planejada = doses[1]["id"]
    result = runner.invoke(app, ["doses", "concluir", primeira_planejada, "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["doses", "editar", primeira_planejada, "--mg", "4", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["mg"] == 4.0

    result = runner.invoke(app, ["doses", "limpar-planejadas", "--db", db_path])
    assert result.exit_code == 0
    assert "3 dose(s)" in result.stdout

    result = runner.invoke(app, ["canetas", "remover", pen_id, "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "2 dose(s)" in result.stdout


def test_cli_erros_viram_mensagem_e_codigo_1(tmp_path: Path):
    db_path = _db(tmp_path)
    result = runner.invoke(app, ["canetas", "adicionar", "--tamanho", "3", "--validade", "2030-01-01", "--db", db_path])
    assert result.exit_code == 1
    assert "Erro" in result.output

    result = runner.invoke(app, ["doses", "adicionar", "--caneta", "zzz", "--mg", "1", "--db", db_path])
    assert result.exit_code == 1
    assert "não encontrada" in result.output

    pen_id = _nova_caneta(db_path, tamanho="2.5")
    result = runner.invoke(app, ["doses", "adicionar", "--caneta", pen_id, "--mg", "13", "--db", db_path])
    assert result.exit_code == 1
    assert "saldo insuficiente" in result.output

    result = runner.invoke(app, ["doses", "remover", "zzz", "--db", db_path])
    assert result.exit_code == 1


def test_cli_metricas_e_relatorios(tmp_path: Path):
    db_path = _db(tmp_path)

    result = runner.invoke(app, ["metricas", "--json", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["total_pens"] == 0

    pen_id = _nova_caneta(db_path, tamanho="10")
    runner.invoke(app, ["doses", "adicionar", "--caneta", pen_id, "--mg", "2,5", "--data", "2025-01-01", "--aplicada", "--db", db_path])

    result = runner.invoke(app, ["metricas", "--json", "--db", db_path])
    data = json.loads(result.stdout)
    assert data["total_pens"] == 1
    assert data["total_used"] == 2.5

    result = runner.invoke(app, ["metricas", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["rel", "painel", "--db", db_path])
    assert result.exit_code == 0, result.output
    painel = json.loads(result.stdout)
    assert painel["ultima_dose"]["mg"] == 2.5

    result = runner.invoke(app, ["rel", "risco", "--json", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == []

    result = runner.invoke(app, ["rel", "concentracao", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["snapshot", "--user", "u1", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "1 caneta(s)" in result.stdout


def test_cli_importar(tmp_path: Path):
    db_path = _db(tmp_path)
    canetas = tmp_path / "canetas.csv"
    canetas.write_text("id,tamanho,validade\nc1,10,2030-12-31\n", encoding="utf-8")
    doses = tmp_path / "doses.csv"
    doses.write_text("caneta,data,mg\nc1,2025-01-01,2.5\nc2,2025-01-08,2.5\n", encoding="utf-8")

    result = runner.invoke(app, ["importar", "canetas", str(canetas), "--db", db_path])
    assert result.exit_code == 0, result.output

    # c2 não existe: nada é importado
    result = runner.invoke(app, ["importar", "doses", str(doses), "--db", db_path])
    assert result.exit_code == 1
    result = runner.invoke(app, ["doses", "listar", "--json", "--db", db_path])
    assert json.loads(result.stdout) == []
