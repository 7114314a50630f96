# canetas/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - diretório do arquivo criado se necessário
    - foreign_keys ON (remoção de caneta apaga as doses em cascata)
    - row_factory = sqlite3.Row
    - commit ao sair (rollback em caso de exceção)
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def rows_as_dicts(cur: sqlite3.Cursor) -> List[Dict[str, Any]]:
    """Converte o resultado de um cursor em lista de dicionários."""
    return [dict(row) for row in cur.fetchall()]
