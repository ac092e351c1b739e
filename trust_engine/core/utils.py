"""Cell-level helpers shared by the parser and analyzers.

Includes numeric coercion, group labels, and numeric column
detection.
"""
from typing import Any, List, Optional, Sequence, Union
import math

import pandas as pd

Cell = Union[float, str]


def coerce_cell(raw: Any) -> Cell:
    """Trim a raw cell and keep it as float when it is a finite number."""
    text = "" if raw is None else str(raw).strip()
    number = to_number(text)
    return text if number is None else number


def to_number(value: Any) -> Optional[float]:
    """Return `value` as a finite float, or None when it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip()
    # float() accepts digit separators; delimited data never carries them
    if not text or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def cell_label(value: Any) -> str:
    """Render a cell as a stable group label (1.0 -> "1")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def numeric_series(s: pd.Series) -> pd.Series:
    """Numeric view of an object series; non-numeric cells become NaN."""
    return pd.to_numeric(s.map(to_number), errors="coerce")


def count_numeric(values: Sequence[Any]) -> int:
    return sum(1 for v in values if to_number(v) is not None)


def detect_numeric_columns(
    frame: pd.DataFrame,
    candidates: Sequence[str],
    probe_rows: int,
    min_numeric: int,
) -> List[str]:
    """Return candidates where at least `min_numeric` of the first `probe_rows` cells are numbers."""
    numeric_cols: List[str] = []
    for col in candidates:
        if col not in frame.columns:
            continue
        head = frame[col].iloc[:probe_rows].tolist()
        if count_numeric(head) >= min_numeric:
            numeric_cols.append(col)
    return numeric_cols
