import logging

from typer.testing import CliRunner

from canetas.adapters.cli import app
from canetas.infra import logger as log_mod


def test_logging_desligado_nao_grava_nada(monkeypatch, tmp_path):
    monkeypatch.setattr(log_mod, "ENABLE_LOGGING", False)
    monkeypatch.setattr(log_mod, "LOGS_DIR", tmp_path)
    log_mod.log_dose("insert", "d1", "c1", 2.5)
    assert log_mod.get_log_summary("doses") is None
    assert list(tmp_path.iterdir()) == []

    result = CliRunner().invoke(app, ["logs", "--tipo", "doses"])
    assert result.exit_code == 0
    assert "desabilitado" in result.stdout


def test_logging_ligado_grava_e_resume(monkeypatch, tmp_path):
    monkeypatch.setattr(log_mod, "ENABLE_LOGGING", True)
    monkeypatch.setattr(log_mod, "LOGS_DIR", tmp_path)
    test_logger = log_mod.setup_logger("canetas.teste.doses", str(tmp_path / log_mod.LOG_FILES["doses"]))
    monkeypatch.setattr(log_mod, "dose_logger", test_logger)
    try:
        log_mod.log_dose("insert", "d1", "c1", 2.5, date="2025-01-01")
        log_mod.log_dose("complete", "d1", "c1", 2.5)

        resumo = log_mod.get_log_summary("doses", lines=1)
        assert "DOSE_COMPLETE" in resumo
        assert "DOSE_INSERT" not in resumo
        assert "DOSE_INSERT" in log_mod.get_log_summary("doses")

        assert "desconhecido" in log_mod.get_log_summary("nao_existe")
        assert "não encontrado" in log_mod.get_log_summary("metricas")
    finally:
        for handler in list(test_logger.handlers):
            handler.close()
            test_logger.removeHandler(handler)


def test_setup_logger_sem_logging_usa_null_handler(monkeypatch, tmp_path):
    monkeypatch.setattr(log_mod, "ENABLE_LOGGING", False)
    lg = log_mod.setup_logger("canetas.teste.null", str(tmp_path / "x.log"))
    assert len(lg.handlers) == 1
    assert isinstance(lg.handlers[0], logging.NullHandler)
    assert lg.propagate is False
