from __future__ import annotations

import io
import re
import unicodedata
from datetime import date, datetime

import pandas as pd


# Weekly plan exports come with Korean or English headers; map both to field names.
PLAN_COLUMN_ALIASES: dict[str, str] = {
    "line": "line",
    "linea": "line",
    "라인": "line",
    "product_name": "product_name",
    "producto": "product_name",
    "제품명": "product_name",
    "specification": "specification",
    "spec": "specification",
    "especificacion": "specification",
    "규격": "specification",
    "product_code": "product_code",
    "codigo": "product_code",
    "제품코드": "product_code",
    "lot_number": "lot_number",
    "lot": "lot_number",
    "lote": "lot_number",
    "로트": "lot_number",
    "planned_quantity": "planned_quantity",
    "cantidad": "planned_quantity",
    "계획수량": "planned_quantity",
    "week_start": "week_start",
    "semana": "week_start",
    "주차": "week_start",
    "주시작일": "week_start",
}

REQUIRED_PLAN_COLUMNS = ("line", "product_name", "planned_quantity", "week_start")


def read_excel_bytes(content: bytes) -> pd.DataFrame:
    """Read .xlsx bytes into a DataFrame (first sheet)."""
    bio = io.BytesIO(content)
    df = pd.read_excel(bio)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def normalize_col_name(name: str) -> str:
    """Normalize column names to a snake_case token.

    Accents are dropped and non-breaking spaces/punctuation collapse to ``_``;
    Hangul is kept as is.
    """
    s = str(name or "").strip().lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    # NFKD splits Hangul syllables into jamo; recompose them.
    s = unicodedata.normalize("NFC", s)
    s = s.replace("\u00a0", " ")
    s = re.sub(r"[^\w ]+", " ", s)
    s = re.sub(r"\s+", "_", s).strip("_")
    return s


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [normalize_col_name(c) for c in df.columns]
    return df


def normalize_plan_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize headers and rename known aliases to plan field names."""
    df = normalize_columns(df)
    df = df.rename(columns={c: PLAN_COLUMN_ALIASES[c] for c in df.columns if c in PLAN_COLUMN_ALIASES})
    missing = [c for c in REQUIRED_PLAN_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Faltan columnas en plan semanal: {missing}. Columnas: {list(df.columns)}")
    return df


_DIGITS_RE = re.compile(r"^\d+$")


def parse_int_strict(value, *, field: str) -> int:
    """Parse an integer cell value.

    Accepts ints, floats like 123.0 and digit strings (thousands commas allowed).
    Raises ValueError otherwise.
    """
    if value is None:
        raise ValueError(f"{field} vacío")

    if isinstance(value, bool):
        raise ValueError(f"{field} inválido: {value!r}")

    if isinstance(value, int):
        return int(value)

    if isinstance(value, float):
        if pd.isna(value):
            raise ValueError(f"{field} vacío")
        if float(value).is_integer():
            return int(value)
        raise ValueError(f"{field} inválido (no entero): {value!r}")

    s = str(value).strip().replace(",", "")
    if not s:
        raise ValueError(f"{field} vacío")
    if _DIGITS_RE.match(s):
        return int(s)

    raise ValueError(f"{field} inválido: {value!r}")


def coerce_date(value, *, field: str = "week_start") -> date:
    """Coerce common Excel/Pandas date representations to a date."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        raise ValueError(f"{field} vacía")

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    # pandas Timestamp
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime().date()

    s = str(value).strip()
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass

    for fmt in ("%Y.%m.%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"{field} inválida: {value!r}")


def cell_text(value) -> str:
    """Cell as stripped text; NaN/None become empty and 71053.0 becomes '71053'."""
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    s = str(value).strip()
    return "" if s.lower() == "nan" else s
