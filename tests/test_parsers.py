import time
from datetime import date, datetime, timezone

import pytest

from canetas.adapters.parsers import (
    parse_bool,
    parse_data,
    parse_data_hora,
    parse_mg,
    parse_tamanho,
)


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("2.5", 2.5),
        ("2,5 mg", 2.5),
        ("10MG", 10.0),
        (" 7,5 ", 7.5),
        (5, 5.0),
        ("", None),
        (None, None),
    ],
)
def test_parse_mg(txt, esperado):
    assert parse_mg(txt) == esperado


@pytest.mark.parametrize("txt", ["abc", "2,5 ml", "-1", "0"])
def test_parse_mg_invalido(txt):
    with pytest.raises(ValueError):
        parse_mg(txt)


def test_parse_tamanho():
    assert parse_tamanho("7,5") == 7.5
    assert parse_tamanho("15 mg") == 15.0
    assert parse_tamanho("") is None
    with pytest.raises(ValueError):
        parse_tamanho("3")


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("2025-12-31", date(2025, 12, 31)),
        ("31/12/2025", date(2025, 12, 31)),
        ("31-12-2025", date(2025, 12, 31)),
        ("2025-12-31T10:00:00", date(2025, 12, 31)),
        (datetime(2025, 12, 31, 10), date(2025, 12, 31)),
        ("", None),
    ],
)
def test_parse_data(txt, esperado):
    assert parse_data(txt) == esperado


def test_parse_data_invalida():
    with pytest.raises(ValueError):
        parse_data("31/02/2025x")


@pytest.fixture
def fuso(monkeypatch):
    """Fixa o fuso local do processo (strings POSIX, sem depender de tzdata)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset indisponível nesta plataforma")

    def _set(tz: str) -> None:
        monkeypatch.setenv("TZ", tz)
        time.tzset()

    yield _set
    monkeypatch.undo()
    time.tzset()


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("2025-01-01T10:00:00", datetime(2025, 1, 1, 10, 0)),
        ("2025-01-01T10:00:00Z", datetime(2025, 1, 1, 7, 0)),
        ("2025-01-01T10:00:00-03:00", datetime(2025, 1, 1, 10, 0)),
        ("2025-01-01T10:00:00+01:00", datetime(2025, 1, 1, 6, 0)),
        ("01/02/2025 08:30", datetime(2025, 2, 1, 8, 30)),
        ("01/02/2025", datetime(2025, 2, 1, 0, 0)),
        (date(2025, 2, 1), datetime(2025, 2, 1, 0, 0)),
        ("", None),
    ],
)
def test_parse_data_hora(fuso, txt, esperado):
    fuso("BRT3")
    res = parse_data_hora(txt)
    assert res == esperado
    if res is not None:
        assert res.tzinfo is None


def test_parse_data_hora_usa_dia_local_a_leste_de_utc(fuso):
    # meia-noite de 1º de março em UTC+10, gravada em UTC pelo app
    fuso("AEST-10")
    txt = "2025-02-28T14:00:00.000Z"
    assert parse_data_hora(txt) == datetime(2025, 3, 1, 0, 0)
    assert parse_data(txt) == date(2025, 3, 1)
    assert parse_data(datetime(2025, 2, 28, 14, tzinfo=timezone.utc)) == date(2025, 3, 1)


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("sim", True),
        ("Não", False),
        ("concluída", True),
        ("planejada", False),
        ("1", True),
        ("0", False),
        ("1.0", True),
        (True, True),
    ],
)
def test_parse_bool(txt, esperado):
    assert parse_bool(txt) is esperado


def test_parse_bool_default_e_invalido():
    assert parse_bool("", default=True) is True
    assert parse_bool(None) is None
    with pytest.raises(ValueError):
        parse_bool("talvez")
    with pytest.raises(ValueError):
        parse_bool("2")
