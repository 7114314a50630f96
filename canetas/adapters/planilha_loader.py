# canetas/adapters/planilha_loader.py
"""
Loaders de planilhas (XLSX ou CSV) de CANETAS e DOSES.

Essas funções:
- leem a planilha usando pandas (XLSX via openpyxl);
- normalizam cabeçalhos (acentos, variações, sinônimos);
- convertem cada linha em `Pen`/`Dose` do domínio, validando na fronteira.

Observações:
- Num XLSX, a aba é escolhida pelo nome ("canetas"/"doses"); se não
  existir, usa-se a primeira aba.
- Linhas completamente vazias são ignoradas.
- Qualquer linha inválida interrompe a carga com ``ValueError`` indicando
  a linha da planilha (contando o cabeçalho como linha 1).
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from canetas.adapters.parsers import (
    parse_bool,
    parse_data,
    parse_data_hora,
    parse_mg,
    parse_tamanho,
)
from canetas.domain.models import Dose, Pen
from canetas.domain.operacoes import new_id, validate_pen


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: Any) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


_ALIASES = {
    # comuns
    "id": "id",
    "codigo": "id",
    "cod": "id",

    # canetas
    "tamanho": "size",
    "size": "size",
    "dosagem": "size",
    "mg caneta": "size",
    "compra": "purchase_date",
    "data compra": "purchase_date",
    "data de compra": "purchase_date",
    "purchase date": "purchase_date",
    "validade": "expiration_date",
    "data validade": "expiration_date",
    "data de validade": "expiration_date",
    "vencimento": "expiration_date",
    "expiration date": "expiration_date",
    "notas": "notes",
    "observacao": "notes",
    "obs": "notes",
    "notes": "notes",

    # doses
    "caneta": "pen_id",
    "id caneta": "pen_id",
    "pen": "pen_id",
    "pen id": "pen_id",
    "data": "date",
    "data dose": "date",
    "data da dose": "date",
    "date": "date",
    "mg": "mg",
    "dose": "mg",
    "quantidade": "mg",
    "concluida": "is_completed",
    "aplicada": "is_completed",
    "feita": "is_completed",
    "status": "is_completed",
    "is completed": "is_completed",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = _ALIASES.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _safe_get(row, key) -> Optional[str]:
    """Lê um valor da linha tratando NA/vazio como None."""
    if key not in row.index:
        return None
    val = row[key]
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _read_table(path: str, sheet: str) -> pd.DataFrame:
    """Lê CSV ou XLSX como strings, escolhendo a aba pelo nome quando houver."""
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype="string", sep=None, engine="python")
    elif suffix in (".xlsx", ".xlsm"):
        sheets: Dict[str, pd.DataFrame] = pd.read_excel(path, sheet_name=None, dtype="string")
        if not sheets:
            raise ValueError(f"planilha sem abas: {path}")
        by_slug = {_slug(name): df for name, df in sheets.items()}
        df = by_slug.get(_slug(sheet), next(iter(sheets.values())))
    else:
        raise ValueError(f"formato de arquivo não suportado: {suffix or path}")
    df = df.dropna(how="all")
    return _normalize_columns(df)


def _row_error(index: int, exc: Exception) -> ValueError:
    # +2: cabeçalho na linha 1 e índice do pandas começando em 0
    return ValueError(f"linha {index + 2}: {exc}")


# ---------------------------
# loaders públicos
# ---------------------------

def load_pens(path: str, sheet: str = "canetas") -> List[Pen]:
    """Lê a planilha de CANETAS.

    Colunas reconhecidas: id, tamanho, data de compra, validade, notas.
    Sem coluna de id, um identificador novo é gerado para cada caneta.
    """
    df = _read_table(path, sheet)
    out: List[Pen] = []
    for idx, row in df.reset_index(drop=True).iterrows():
        try:
            size = parse_tamanho(_safe_get(row, "size"))
            expiration = parse_data(_safe_get(row, "expiration_date"))
            if size is None:
                raise ValueError("tamanho da caneta não informado")
            if expiration is None:
                raise ValueError("validade da caneta não informada")
            pen = Pen(
                id=_safe_get(row, "id") or new_id(),
                size=size,
                purchase_date=parse_data(_safe_get(row, "purchase_date")),
                expiration_date=expiration,
                notes=_safe_get(row, "notes") or "",
            )
            out.append(validate_pen(pen))
        except ValueError as exc:
            raise _row_error(idx, exc) from exc
    return out


def load_doses(path: str, sheet: str = "doses") -> List[Dose]:
    """Lê a planilha de DOSES.

    Colunas reconhecidas: id, caneta (id da caneta), data, mg, concluída.
    A coluna "concluída" ausente ou vazia vale como dose já aplicada.
    A existência da caneta é conferida por quem importa (use case).
    """
    df = _read_table(path, sheet)
    out: List[Dose] = []
    for idx, row in df.reset_index(drop=True).iterrows():
        try:
            pen_id = _safe_get(row, "pen_id")
            when = parse_data_hora(_safe_get(row, "date"))
            mg = parse_mg(_safe_get(row, "mg"))
            if not pen_id:
                raise ValueError("caneta da dose não informada")
            if when is None:
                raise ValueError("data da dose não informada")
            if mg is None:
                raise ValueError("mg da dose não informado")
            out.append(
                Dose(
                    id=_safe_get(row, "id") or new_id(),
                    pen_id=pen_id,
                    date=when,
                    mg=mg,
                    is_completed=parse_bool(_safe_get(row, "is_completed"), default=True),
                )
            )
        except ValueError as exc:
            raise _row_error(idx, exc) from exc
    return out
