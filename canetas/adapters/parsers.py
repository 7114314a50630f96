"""
Utilidades de parsing para valores digitados ou vindos de planilhas.

Este módulo converte strings em valores do domínio: miligramas
("2,5 mg" → 2.5), datas ("31/12/2025" ou "2025-12-31"), data-hora
(ISO 8601, com ou sem fuso) e flags booleanas ("sim"/"não"). Entradas
vazias viram ``None``; entradas preenchidas mas inválidas levantam
``ValueError`` com uma mensagem legível, pois aqui é a fronteira onde o
sistema valida o que recebe.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

from canetas.domain.models import PEN_SIZES

_NUM_RE = re.compile(r"^\s*([-+]?\d+(?:[.,]\d+)?)\s*(mg|MG|Mg)?\s*$")

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y")
_DATETIME_FORMATS = ("%d/%m/%Y %H:%M", "%d/%m/%Y %H:%M:%S", "%Y-%m-%d %H:%M")

_TRUE = {"1", "true", "t", "sim", "s", "y", "yes", "concluida", "concluída", "feita"}
_FALSE = {"0", "false", "f", "nao", "não", "n", "no", "planejada"}


def _blank(txt: Any) -> bool:
    return txt is None or not str(txt).strip()


def parse_mg(txt: Any) -> Optional[float]:
    """Interpreta uma quantidade em mg.

    Exemplos:
        "2.5"    → 2.5
        "2,5 mg" → 2.5
        "10MG"   → 10.0
        ""       → None

    Raises:
        ValueError: texto preenchido que não é um número, ou valor <= 0.
    """
    if _blank(txt):
        return None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        val = float(txt)
    else:
        m = _NUM_RE.match(str(txt))
        if not m:
            raise ValueError(f"quantidade inválida: {txt!r}")
        val = float(m.group(1).replace(",", "."))
    if val <= 0:
        raise ValueError(f"quantidade deve ser positiva: {txt!r}")
    return val


def parse_tamanho(txt: Any) -> Optional[float]:
    """Tamanho nominal de caneta; precisa ser um dos ``PEN_SIZES``."""
    val = parse_mg(txt)
    if val is None:
        return None
    if val not in PEN_SIZES:
        opcoes = ", ".join(f"{s:g}" for s in PEN_SIZES)
        raise ValueError(f"tamanho de caneta inválido: {txt!r} (opções: {opcoes})")
    return val


def parse_data(txt: Any) -> Optional[date]:
    """Data em ISO (YYYY-MM-DD) ou no formato brasileiro (DD/MM/AAAA)."""
    if _blank(txt):
        return None
    if isinstance(txt, datetime):
        return parse_data_hora(txt).date()
    if isinstance(txt, date):
        return txt
    s = str(txt).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    # aceita também data-hora, descartando o horário
    return parse_data_hora(s).date()


def parse_data_hora(txt: Any) -> Optional[datetime]:
    """Data-hora ISO 8601 ou DD/MM/AAAA [HH:MM].

    Datas sem horário viram meia-noite. Valores com fuso são convertidos
    para o horário local e gravados sem fuso, o mesmo relógio de `now`.
    """
    if _blank(txt):
        return None
    if isinstance(txt, datetime):
        dt = txt
    elif isinstance(txt, date):
        dt = datetime(txt.year, txt.month, txt.day)
    else:
        s = str(txt).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = None
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            for fmt in _DATETIME_FORMATS + _DATE_FORMATS:
                try:
                    dt = datetime.strptime(s, fmt)
                    break
                except ValueError:
                    continue
        if dt is None:
            raise ValueError(f"data inválida: {txt!r}")
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def parse_bool(txt: Any, default: Optional[bool] = None) -> Optional[bool]:
    """Converte 'sim'/'não', 'true'/'false', 1/0 em bool."""
    if _blank(txt):
        return default
    if isinstance(txt, bool):
        return txt
    s = str(txt).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    try:
        i = int(float(s))
    except ValueError:
        raise ValueError(f"valor booleano inválido: {txt!r}") from None
    if i in (0, 1):
        return bool(i)
    raise ValueError(f"valor booleano inválido: {txt!r}")
