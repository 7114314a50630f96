"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (params, caneta, dose)
V2: coluna de criação nas canetas e tabelas de snapshot diário de métricas
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Cadastro de canetas
    """
    CREATE TABLE IF NOT EXISTS caneta (
        id TEXT PRIMARY KEY,
        size REAL NOT NULL,
        purchase_date TEXT,
        expiration_date TEXT NOT NULL,
        notes TEXT DEFAULT ''
    );
    """,
    # Doses aplicadas ou planejadas
    """
    CREATE TABLE IF NOT EXISTS dose (
        id TEXT PRIMARY KEY,
        pen_id TEXT NOT NULL,
        date TEXT NOT NULL,
        mg REAL NOT NULL CHECK (mg > 0),
        is_completed INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (pen_id) REFERENCES caneta(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS ix_dose_pen ON dose (pen_id, date);",
]

SCHEMA_V2: List[str] = [
    # Snapshot diário por caneta (upsert por usuário/caneta/dia)
    """
    CREATE TABLE IF NOT EXISTS pen_metrics_snapshot (
        user_id TEXT NOT NULL,
        pen_id TEXT NOT NULL,
        snapshot_date TEXT NOT NULL,
        pen_size REAL,
        usage REAL,
        remaining REAL,
        usage_efficiency REAL,
        days_until_expiry INTEGER,
        is_expired INTEGER,
        is_empty INTEGER,
        days_between_last_use_and_expiry INTEGER,
        wasted_mg REAL,
        risk_level TEXT,
        projected_days_between_last_dose_and_expiry INTEGER,
        projected_waste_mg REAL,
        will_run_out_before_planned_complete INTEGER,
        payload TEXT,
        PRIMARY KEY (user_id, pen_id, snapshot_date)
    );
    """,
    # Snapshot diário consolidado (upsert por usuário/dia)
    """
    CREATE TABLE IF NOT EXISTS system_metrics_snapshot (
        user_id TEXT NOT NULL,
        snapshot_date TEXT NOT NULL,
        total_pens INTEGER,
        active_pens INTEGER,
        expired_pens INTEGER,
        empty_pens INTEGER,
        total_capacity REAL,
        total_used REAL,
        total_remaining REAL,
        total_wasted REAL,
        average_efficiency REAL,
        pens_at_risk INTEGER,
        avg_days_between_last_use_and_expiry REAL,
        pens_expired_with_medication INTEGER,
        payload TEXT,
        PRIMARY KEY (user_id, snapshot_date)
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # SQLite não aceita default não-constante em ADD COLUMN; preenchemos à parte
    _ensure_column(conn, "caneta", "created_at", "created_at TEXT")
    conn.execute("UPDATE caneta SET created_at = datetime('now') WHERE created_at IS NULL;")
    for sql in SCHEMA_V2:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
