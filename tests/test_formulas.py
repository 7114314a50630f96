from datetime import date, datetime
from math import isclose

import pytest

from canetas.domain.formulas import (
    availability,
    click_capacity,
    dose_breakdown,
    dose_breakdown_for,
    is_dose_syringe,
    mg_to_clicks,
    mg_used_before,
    requires_syringe,
    round1,
    round_half_up,
    syringe_capacity,
    tenths,
    total_capacity,
)
from canetas.domain.models import PEN_SIZES, Dose, Pen


def test_round_half_up_e_round1():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2
    assert round_half_up(-2.5) == -2
    assert round1(1.25) == 1.3
    assert round1(0.05) == 0.1
    assert round1(7) == 7.0
    # soma acumulada de décimos não "escorrega" na comparação
    assert tenths(0.1 + 0.2) == 3


@pytest.mark.parametrize("size", PEN_SIZES)
def test_capacidades(size):
    assert click_capacity(size) == size * 4
    assert total_capacity(size) == size * 5
    assert syringe_capacity(size) == size
    # curso completo do seletor = 60 cliques
    assert mg_to_clicks(size, size) == 60


@pytest.mark.parametrize("size", PEN_SIZES)
def test_availability_soma_e_monotonia(size):
    previous_total = None
    for step in range(int(total_capacity(size) * 10) + 1):
        used = step / 10
        avail = availability(size, used)
        assert tenths(avail.from_clicks + avail.from_syringe) == tenths(avail.total)
        assert avail.from_clicks >= 0 and avail.from_syringe >= 0
        if previous_total is not None:
            assert tenths(avail.total) <= tenths(previous_total)
        previous_total = avail.total
    # esgotada
    assert availability(size, total_capacity(size)).total == 0.0


def test_availability_uso_acima_da_capacidade_nao_fica_negativo():
    avail = availability(5.0, 30.0)
    assert avail.from_clicks == 0.0
    assert avail.from_syringe == 0.0
    assert avail.total == 0.0
    assert avail.clicks_remaining == 0


@pytest.mark.parametrize("size", PEN_SIZES)
@pytest.mark.parametrize("used_before", [0.0, 3.3, 9.9, 20.0, 37.5])
@pytest.mark.parametrize("dose_mg", [0.1, 2.5, 3.3, 8.0, 12.5])
def test_breakdown_soma_e_coerencia_com_requires_syringe(size, used_before, dose_mg):
    b = dose_breakdown(size, used_before, dose_mg)
    assert tenths(b.from_clicks + b.from_syringe) == tenths(round1(dose_mg))
    assert b.requires_syringe == requires_syringe(size, used_before, dose_mg)
    assert b.from_clicks >= 0 and b.from_syringe >= 0


def test_cenario_caneta_10mg_com_35_usados():
    avail = availability(10.0, 35.0)
    assert (avail.from_clicks, avail.from_syringe, avail.total) == (5.0, 10.0, 15.0)
    assert avail.clicks_remaining == 30

    b = dose_breakdown(10.0, 35.0, 8.0)
    assert b.from_clicks == 5.0
    assert b.from_syringe == 3.0
    assert b.requires_syringe is True
    assert b.click_count == 30


def test_requires_syringe_no_limite_exato_do_seletor():
    # 32 + 8 = 40 = capacidade do seletor → ainda sem seringa
    assert requires_syringe(10.0, 32.0, 8.0) is False
    assert requires_syringe(10.0, 32.0, 8.1) is True
    # ruído de ponto flutuante não conta
    assert requires_syringe(2.5, 0.1 + 0.2 + 9.6, 0.1) is False


def _pen(pen_id="p1", size=5.0):
    return Pen(id=pen_id, size=size, expiration_date=date(2025, 12, 31))


def test_is_dose_syringe_considera_doses_anteriores_da_mesma_caneta():
    pens = [_pen("p1", 5.0), _pen("p2", 5.0)]
    doses = [
        Dose(id="d1", pen_id="p1", date=datetime(2025, 1, 1, 8), mg=15.0, is_completed=True),
        Dose(id="d2", pen_id="p1", date=datetime(2025, 1, 8, 8), mg=5.0, is_completed=True),
        Dose(id="d3", pen_id="p1", date=datetime(2025, 1, 15, 8), mg=2.5),
        Dose(id="x1", pen_id="p2", date=datetime(2024, 12, 1, 8), mg=20.0, is_completed=True),
    ]
    assert mg_used_before(doses[1], doses) == 15.0
    assert is_dose_syringe(doses[1], pens, doses) is False
    assert is_dose_syringe(doses[2], pens, doses) is True

    b = dose_breakdown_for(doses[2], pens, doses)
    assert b.from_clicks == 0.0
    assert b.from_syringe == 2.5
    assert b.click_count == 0


def test_is_dose_syringe_caneta_inexistente():
    dose = Dose(id="d1", pen_id="sumiu", date=datetime(2025, 1, 1), mg=50.0)
    assert is_dose_syringe(dose, [_pen()], [dose]) is False
    assert dose_breakdown_for(dose, [_pen()], [dose]) is None


def test_empate_de_horario_desempata_pelo_id():
    when = datetime(2025, 3, 1, 9, 0)
    a = Dose(id="a", pen_id="p1", date=when, mg=12.0, is_completed=True)
    b = Dose(id="b", pen_id="p1", date=when, mg=12.0, is_completed=True)
    doses = [b, a]
    assert mg_used_before(a, doses) == 0.0
    assert mg_used_before(b, doses) == 12.0
    assert is_dose_syringe(a, [_pen()], doses) is False
    assert is_dose_syringe(b, [_pen()], doses) is True


def test_mg_to_clicks_arredonda_meio_para_cima():
    # 2,5 mg em caneta de 10 mg = 15 cliques; 0,25 mg = 1,5 → 2
    assert mg_to_clicks(10.0, 2.5) == 15
    assert mg_to_clicks(10.0, 0.25) == 2
    assert isclose(availability(2.5, 7.3).total, 5.2)
