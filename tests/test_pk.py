from datetime import date, datetime, timedelta
from math import isclose

from canetas.domain.models import Dose
from canetas.domain.pk import (
    concentration,
    concentration_series,
    concentration_with_mode,
    steady_state_estimate,
)


def _dose(dose_id, when, mg, done=True, pen_id="p1"):
    return Dose(id=dose_id, pen_id=pen_id, date=when, mg=mg, is_completed=done)


def test_meia_vida_cinco_dias():
    doses = [_dose("d1", datetime(2025, 1, 1, 8, 30), 5.0)]
    assert isclose(concentration(doses, date(2025, 1, 1)), 5.0)
    assert isclose(concentration(doses, date(2025, 1, 6)), 2.5, rel_tol=1e-9)
    assert isclose(concentration(doses, date(2025, 1, 11)), 1.25, rel_tol=1e-9)


def test_meia_vida_configuravel():
    doses = [_dose("d1", datetime(2025, 1, 1, 8, 30), 5.0)]
    assert isclose(concentration(doses, date(2025, 1, 11), half_life_days=10.0), 2.5, rel_tol=1e-9)


def test_zero_antes_da_primeira_dose():
    doses = [_dose("d1", datetime(2025, 1, 10, 8), 5.0)]
    assert concentration(doses, date(2025, 1, 9)) == 0.0
    assert concentration([], date(2025, 1, 9)) == 0.0


def test_dose_depois_do_meio_dia_so_conta_no_dia_seguinte():
    doses = [_dose("d1", datetime(2025, 1, 1, 15, 0), 5.0)]
    assert concentration(doses, date(2025, 1, 1)) == 0.0
    assert isclose(concentration(doses, date(2025, 1, 2)), 5.0 * 0.5 ** (1 / 5))


def test_decai_sem_novas_doses():
    doses = [
        _dose("d1", datetime(2025, 1, 1, 8), 2.5),
        _dose("d2", datetime(2025, 1, 8, 8), 5.0),
    ]
    values = [concentration(doses, date(2025, 1, 8) + timedelta(days=i)) for i in range(30)]
    assert all(later <= earlier for earlier, later in zip(values, values[1:]))
    assert values[0] > 5.0


def test_planejadas_so_entram_na_curva_do_plano():
    doses = [
        _dose("d1", datetime(2025, 1, 1, 8), 2.5),
        _dose("d2", datetime(2025, 1, 8, 8), 5.0, done=False),
    ]
    target = date(2025, 1, 9)
    actual = concentration(doses, target)
    planned = concentration_with_mode(doses, target, include_planned=True)
    assert isclose(actual, 2.5 * 0.5 ** (8 / 5))
    assert isclose(planned - actual, 5.0 * 0.5 ** (1 / 5))


def test_steady_state_estimate():
    doses = [_dose(f"d{i}", datetime(2025, 1, 1 + 7 * i, 8), mg) for i, mg in enumerate([1.0, 2.0, 2.0, 4.0])]
    assert steady_state_estimate(doses[:3]) is None
    assert isclose(steady_state_estimate(doses), 2.25 * 1.5)

    # apenas as 4 últimas concluídas contam
    doses.append(_dose("d9", datetime(2025, 2, 5, 8), 4.0))
    doses.append(_dose("p1", datetime(2025, 2, 12, 8), 50.0, done=False))
    assert isclose(steady_state_estimate(doses), 3.0 * 1.5)


def test_concentration_series_janela_e_marcadores():
    doses = [
        _dose("d1", datetime(2025, 1, 1, 8), 2.5),
        _dose("d2", datetime(2025, 1, 8, 8), 5.0, done=False),
    ]
    now = datetime(2025, 1, 3, 20, 0)
    pontos = concentration_series(doses, now, half_life_days=5.0, tail_days=21)

    # de 01/01 até 21 dias depois da última dose (08/01)
    assert pontos[0]["date"] == "2025-01-01"
    assert pontos[-1]["date"] == "2025-01-29"
    assert len(pontos) == 29

    assert pontos[0]["completed_mg"] == 2.5
    assert pontos[7]["scheduled_mg"] == 5.0
    assert pontos[7]["completed_mg"] is None

    hoje = [p for p in pontos if p["is_today"]]
    assert [p["date"] for p in hoje] == ["2025-01-03"]
    assert sum(1 for p in pontos if p["is_past"]) == 3

    for p in pontos:
        assert p["planned"] >= p["actual"]


def test_concentration_series_sem_doses_concluidas():
    doses = [_dose("d1", datetime(2025, 1, 8, 8), 5.0, done=False)]
    assert concentration_series(doses, datetime(2025, 1, 1)) == []
