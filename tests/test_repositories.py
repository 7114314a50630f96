import json
from datetime import date, datetime

import pytest

from canetas.domain.agregador import compute_system_metrics
from canetas.domain.models import Dose, Pen
from canetas.infra.db import connect
from canetas.infra.migrations import apply_migrations
from canetas.infra.repositories import DoseRepo, ParamsRepo, PenRepo, SnapshotRepo


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "canetas_test.sqlite")
    apply_migrations(path)
    return path


def _pen(pen_id="c1", size=10.0):
    return Pen(id=pen_id, size=size, expiration_date=date(2025, 12, 31), purchase_date=date(2025, 1, 2), notes="n")


def _dose(dose_id, pen_id="c1", day=1, mg=2.5, done=True):
    return Dose(id=dose_id, pen_id=pen_id, date=datetime(2025, 1, day, 8, 30), mg=mg, is_completed=done)


def test_migracoes_idempotentes(db_path):
    apply_migrations(db_path)
    with connect(db_path) as c:
        assert c.execute("PRAGMA user_version;").fetchone()[0] == 2
        cols = [r[1] for r in c.execute("PRAGMA table_info(caneta);").fetchall()]
        assert "created_at" in cols
        tabelas = {r[0] for r in c.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"params", "caneta", "dose", "pen_metrics_snapshot", "system_metrics_snapshot"} <= tabelas


def test_params(db_path):
    repo = ParamsRepo(db_path)
    repo.set_many([("half_life_dias", "6.5"), ("dias_projecao", "30")])
    repo.set_many([("dias_projecao", "28")])
    assert repo.get("half_life_dias") == "6.5"
    assert repo.get_float("half_life_dias", 5.0) == 6.5
    assert repo.get_int("dias_projecao", 21) == 28
    assert repo.get("nao_existe", "x") == "x"
    assert repo.get_int("nao_existe", 7) == 7


def test_canetas_ida_e_volta(db_path):
    repo = PenRepo(db_path)
    repo.insert(_pen("c1"))
    repo.insert(_pen("c2", 2.5))
    pens = repo.get_all()
    assert [p.id for p in pens] == ["c1", "c2"]
    assert pens[0] == _pen("c1")
    assert repo.get("c2").size == 2.5
    assert repo.get("zzz") is None


def test_doses_insert_update_delete(db_path):
    PenRepo(db_path).insert(_pen())
    repo = DoseRepo(db_path)
    assert repo.insert_many([_dose("d2", day=8, done=False), _dose("d1", day=1)]) == 2
    assert [d.id for d in repo.get_all()] == ["d1", "d2"]
    assert repo.get("d1") == _dose("d1", day=1)

    repo.update(_dose("d2", day=9, mg=5.0, done=True))
    assert repo.get("d2").mg == 5.0
    assert repo.get("d2").is_completed is True

    with pytest.raises(LookupError):
        repo.update(_dose("zzz"))

    repo.insert(_dose("d3", day=15, done=False))
    assert repo.delete_planned() == 1
    assert repo.delete("d1") == 1
    assert repo.delete("d1") == 0
    assert [d.id for d in repo.get_all()] == ["d2"]


def test_remover_caneta_apaga_doses(db_path):
    pens = PenRepo(db_path)
    pens.insert(_pen("c1"))
    pens.insert(_pen("c2"))
    DoseRepo(db_path).insert_many([_dose("d1", "c1"), _dose("d2", "c1", day=8), _dose("d3", "c2")])

    assert pens.delete("c1") == 2
    assert [p.id for p in pens.get_all()] == ["c2"]
    assert all(d.pen_id != "c1" for d in DoseRepo(db_path).get_all())


def test_snapshot_upsert_no_mesmo_dia(db_path):
    repo = SnapshotRepo(db_path)
    pen = _pen("c1")
    dia = date(2025, 1, 10)
    now = datetime(2025, 1, 10, 9, 0)

    m1 = compute_system_metrics([pen], [_dose("d1")], now=now)
    repo.upsert_system_metrics("u1", dia, m1)
    assert repo.upsert_pen_metrics("u1", dia, m1.pen_metrics) == 1

    m2 = compute_system_metrics([pen], [_dose("d1"), _dose("d2", day=8)], now=now)
    repo.upsert_system_metrics("u1", dia, m2)
    repo.upsert_pen_metrics("u1", dia, m2.pen_metrics)

    hist = repo.fetch_pen_history("c1", "u1")
    assert len(hist) == 1
    assert hist[0]["usage"] == 5.0
    assert hist[0]["snapshot_date"] == "2025-01-10"

    sistema = repo.fetch_system("u1", dia)
    assert sistema["total_used"] == 5.0
    assert json.loads(sistema["payload"])["total_pens"] == 1
    assert repo.fetch_system("outro", dia) is None

    # outro dia gera nova linha
    repo.upsert_pen_metrics("u1", date(2025, 1, 11), m2.pen_metrics)
    assert len(repo.fetch_pen_history("c1", "u1")) == 2
