"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- PenRepo
- DoseRepo
- SnapshotRepo

Os repositórios devolvem registros do domínio (`Pen`, `Dose`) já
convertidos; as métricas são gravadas como colunas planas + `payload`
JSON com o `to_dict()` completo.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .db import connect, rows_as_dicts
from canetas.domain.models import Dose, Pen, PenMetric, SystemMetrics


# -------------------------
# Helpers
# -------------------------

def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _pen_from_row(row: Dict[str, Any]) -> Pen:
    return Pen(
        id=row["id"],
        size=float(row["size"]),
        purchase_date=date.fromisoformat(row["purchase_date"]) if row.get("purchase_date") else None,
        expiration_date=date.fromisoformat(row["expiration_date"]),
        notes=row.get("notes") or "",
    )


def _dose_from_row(row: Dict[str, Any]) -> Dose:
    return Dose(
        id=row["id"],
        pen_id=row["pen_id"],
        date=datetime.fromisoformat(row["date"]),
        mg=float(row["mg"]),
        is_completed=bool(row["is_completed"]),
    )


def _dose_params(dose: Dose) -> Dict[str, Any]:
    return {
        "id": dose.id,
        "pen_id": dose.pen_id,
        "date": _iso(dose.date),
        "mg": float(dose.mg),
        "is_completed": 1 if dose.is_completed else 0,
    }


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    def get_int(self, key: str, default: int) -> int:
        return int(self.get_float(key, float(default)))


# -------------------------
# Canetas
# -------------------------

class PenRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, pen: Pen) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO caneta (id, size, purchase_date, expiration_date, notes, created_at)
                VALUES (:id, :size, :purchase_date, :expiration_date, :notes, datetime('now'))
                """,
                {
                    "id": pen.id,
                    "size": float(pen.size),
                    "purchase_date": _iso(pen.purchase_date),
                    "expiration_date": _iso(pen.expiration_date),
                    "notes": pen.notes or "",
                },
            )

    def get_all(self) -> List[Pen]:
        with connect(self.db_path) as c:
            cur = c.execute(
                """SELECT id, size, purchase_date, expiration_date, notes
                   FROM caneta
                   ORDER BY created_at, rowid"""
            )
            return [_pen_from_row(r) for r in rows_as_dicts(cur)]

    def get(self, pen_id: str) -> Optional[Pen]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT id, size, purchase_date, expiration_date, notes FROM caneta WHERE id = ?",
                (pen_id,),
            ).fetchone()
            return _pen_from_row(dict(row)) if row else None

    def delete(self, pen_id: str) -> int:
        """Remove a caneta e suas doses. Retorna o número de doses removidas."""
        with connect(self.db_path) as c:
            n_doses = c.execute("DELETE FROM dose WHERE pen_id = ?", (pen_id,)).rowcount
            c.execute("DELETE FROM caneta WHERE id = ?", (pen_id,))
            return n_doses


# -------------------------
# Doses
# -------------------------

class DoseRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, dose: Dose) -> None:
        self.insert_many([dose])

    def insert_many(self, doses: Iterable[Dose]) -> int:
        rows = [_dose_params(d) for d in doses]
        if not rows:
            return 0
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO dose (id, pen_id, date, mg, is_completed)
                VALUES (:id, :pen_id, :date, :mg, :is_completed)
                """,
                rows,
            )
        return len(rows)

    def update(self, dose: Dose) -> None:
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                UPDATE dose
                   SET pen_id = :pen_id, date = :date, mg = :mg, is_completed = :is_completed
                 WHERE id = :id
                """,
                _dose_params(dose),
            )
            if cur.rowcount == 0:
                raise LookupError(f"dose {dose.id!r} não encontrada")

    def get_all(self) -> List[Dose]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT id, pen_id, date, mg, is_completed FROM dose ORDER BY date, id")
            return [_dose_from_row(r) for r in rows_as_dicts(cur)]

    def get(self, dose_id: str) -> Optional[Dose]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT id, pen_id, date, mg, is_completed FROM dose WHERE id = ?", (dose_id,)
            ).fetchone()
            return _dose_from_row(dict(row)) if row else None

    def delete(self, dose_id: str) -> int:
        with connect(self.db_path) as c:
            return c.execute("DELETE FROM dose WHERE id = ?", (dose_id,)).rowcount

    def delete_planned(self) -> int:
        with connect(self.db_path) as c:
            return c.execute("DELETE FROM dose WHERE is_completed = 0").rowcount


# -------------------------
# Snapshot diário de métricas
# -------------------------

class SnapshotRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_pen_metrics(self, user_id: str, snapshot_date: date, metrics: Iterable[PenMetric]) -> int:
        """Grava uma linha por caneta; repetir no mesmo dia sobrescreve."""
        rows = []
        for m in metrics:
            d = m.to_dict()
            rows.append({
                "user_id": user_id,
                "pen_id": str(m.pen_id),
                "snapshot_date": snapshot_date.isoformat(),
                "pen_size": d["pen_size"],
                "usage": d["usage"],
                "remaining": d["remaining"],
                "usage_efficiency": d["usage_efficiency"],
                "days_until_expiry": d["days_until_expiry"],
                "is_expired": int(d["is_expired"]),
                "is_empty": int(d["is_empty"]),
                "days_between_last_use_and_expiry": d["days_between_last_use_and_expiry"],
                "wasted_mg": d["wasted_mg"],
                "risk_level": d["risk_level"],
                "projected_days_between_last_dose_and_expiry": d["projected_days_between_last_dose_and_expiry"],
                "projected_waste_mg": d["projected_waste_mg"],
                "will_run_out_before_planned_complete": int(d["will_run_out_before_planned_complete"]),
                "payload": json.dumps(d, ensure_ascii=False),
            })
        if not rows:
            return 0
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO pen_metrics_snapshot
                    (user_id, pen_id, snapshot_date, pen_size, usage, remaining,
                     usage_efficiency, days_until_expiry, is_expired, is_empty,
                     days_between_last_use_and_expiry, wasted_mg, risk_level,
                     projected_days_between_last_dose_and_expiry, projected_waste_mg,
                     will_run_out_before_planned_complete, payload)
                VALUES
                    (:user_id, :pen_id, :snapshot_date, :pen_size, :usage, :remaining,
                     :usage_efficiency, :days_until_expiry, :is_expired, :is_empty,
                     :days_between_last_use_and_expiry, :wasted_mg, :risk_level,
                     :projected_days_between_last_dose_and_expiry, :projected_waste_mg,
                     :will_run_out_before_planned_complete, :payload)
                ON CONFLICT(user_id, pen_id, snapshot_date) DO UPDATE SET
                    pen_size=excluded.pen_size,
                    usage=excluded.usage,
                    remaining=excluded.remaining,
                    usage_efficiency=excluded.usage_efficiency,
                    days_until_expiry=excluded.days_until_expiry,
                    is_expired=excluded.is_expired,
                    is_empty=excluded.is_empty,
                    days_between_last_use_and_expiry=excluded.days_between_last_use_and_expiry,
                    wasted_mg=excluded.wasted_mg,
                    risk_level=excluded.risk_level,
                    projected_days_between_last_dose_and_expiry=excluded.projected_days_between_last_dose_and_expiry,
                    projected_waste_mg=excluded.projected_waste_mg,
                    will_run_out_before_planned_complete=excluded.will_run_out_before_planned_complete,
                    payload=excluded.payload
                """,
                rows,
            )
        return len(rows)

    def upsert_system_metrics(self, user_id: str, snapshot_date: date, metrics: SystemMetrics) -> None:
        d = metrics.to_dict()
        crit = d["critical_metrics"]
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO system_metrics_snapshot
                    (user_id, snapshot_date, total_pens, active_pens, expired_pens, empty_pens,
                     total_capacity, total_used, total_remaining, total_wasted,
                     average_efficiency, pens_at_risk, avg_days_between_last_use_and_expiry,
                     pens_expired_with_medication, payload)
                VALUES
                    (:user_id, :snapshot_date, :total_pens, :active_pens, :expired_pens, :empty_pens,
                     :total_capacity, :total_used, :total_remaining, :total_wasted,
                     :average_efficiency, :pens_at_risk, :avg_days_between_last_use_and_expiry,
                     :pens_expired_with_medication, :payload)
                ON CONFLICT(user_id, snapshot_date) DO UPDATE SET
                    total_pens=excluded.total_pens,
                    active_pens=excluded.active_pens,
                    expired_pens=excluded.expired_pens,
                    empty_pens=excluded.empty_pens,
                    total_capacity=excluded.total_capacity,
                    total_used=excluded.total_used,
                    total_remaining=excluded.total_remaining,
                    total_wasted=excluded.total_wasted,
                    average_efficiency=excluded.average_efficiency,
                    pens_at_risk=excluded.pens_at_risk,
                    avg_days_between_last_use_and_expiry=excluded.avg_days_between_last_use_and_expiry,
                    pens_expired_with_medication=excluded.pens_expired_with_medication,
                    payload=excluded.payload
                """,
                {
                    "user_id": user_id,
                    "snapshot_date": snapshot_date.isoformat(),
                    "total_pens": d["total_pens"],
                    "active_pens": d["active_pens"],
                    "expired_pens": d["expired_pens"],
                    "empty_pens": d["empty_pens"],
                    "total_capacity": d["total_capacity"],
                    "total_used": d["total_used"],
                    "total_remaining": d["total_remaining"],
                    "total_wasted": d["total_wasted"],
                    "average_efficiency": d["average_efficiency"],
                    "pens_at_risk": len(d["pens_at_risk"]),
                    "avg_days_between_last_use_and_expiry": crit["avg_days_between_last_use_and_expiry"],
                    "pens_expired_with_medication": crit["pens_expired_with_medication"],
                    "payload": json.dumps(
                        {k: v for k, v in d.items() if k not in ("pen_metrics", "pens_at_risk")},
                        ensure_ascii=False,
                    ),
                },
            )

    def fetch_pen_history(self, pen_id: str, user_id: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            cur = c.execute(
                """SELECT snapshot_date, usage, remaining, days_until_expiry, risk_level, wasted_mg
                   FROM pen_metrics_snapshot
                   WHERE user_id = ? AND pen_id = ?
                   ORDER BY snapshot_date""",
                (user_id, pen_id),
            )
            return rows_as_dicts(cur)

    def fetch_system(self, user_id: str, snapshot_date: date) -> Optional[Dict[str, Any]]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT * FROM system_metrics_snapshot WHERE user_id = ? AND snapshot_date = ?",
                (user_id, snapshot_date.isoformat()),
            ).fetchone()
            return dict(row) if row else None
