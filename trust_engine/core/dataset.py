"""Delimited-text parsing into immutable typed datasets.

The header (first non-blank line) fixes the schema once; every cell is
coerced to float or kept as trimmed text at parse time so analyzers never
repeat the check.
"""
from types import MappingProxyType
from typing import Iterator, List, Mapping, Sequence, Tuple
import io
import logging

import pandas as pd

from .utils import Cell, coerce_cell

logger = logging.getLogger("trust_engine.dataset")

Row = Mapping[str, Cell]


class Dataset:
    """Ordered, read-only rows aligned to a fixed header."""

    __slots__ = ("_columns", "_rows")

    def __init__(self, columns: Sequence[str], rows: Sequence[Mapping[str, Cell]]):
        self._columns: Tuple[str, ...] = tuple(columns)
        self._rows: Tuple[Row, ...] = tuple(MappingProxyType(dict(r)) for r in rows)

    @property
    def columns(self) -> Tuple[str, ...]:
        return self._columns

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self._rows

    def has_column(self, name: str) -> bool:
        return name in self._columns

    def column(self, name: str) -> List[Cell]:
        return [r[name] for r in self._rows]

    def to_frame(self) -> pd.DataFrame:
        """Fresh object-dtype DataFrame; mutating it leaves the dataset untouched."""
        return pd.DataFrame([dict(r) for r in self._rows], columns=list(self._columns), dtype=object)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"Dataset(columns={list(self._columns)!r}, rows={len(self._rows)})"


def _read_records(lines: List[str]) -> List[List[str]]:
    """Split lines into raw cells, honouring quotes when they balance."""
    buffer = "\n".join(lines)
    try:
        first = pd.read_csv(io.StringIO(buffer), header=None, nrows=1, dtype=str,
                            na_filter=False, engine="python")
        width = first.shape[1]
        df = pd.read_csv(
            io.StringIO(buffer),
            header=None,
            names=list(range(width)),
            dtype=str,
            na_filter=False,
            index_col=False,
            engine="python",
            on_bad_lines=lambda bad: bad[:width],
        )
    except pd.errors.ParserError as e:
        # an unbalanced quote is ordinary cell text
        logger.debug("Quoted parse failed (%s); splitting on commas", e)
        return [line.split(",") for line in lines]
    return [list(record) for record in df.fillna("").itertuples(index=False, name=None)]


def parse_dataset(text: str) -> Dataset:
    """Parse comma-delimited text into a Dataset.

    Blank lines are skipped and both LF and CRLF terminators are accepted.
    Quoted fields may contain commas; a quote that never closes is kept as
    text. Header names are used exactly as written after trimming. Missing
    trailing cells become "" and surplus cells are dropped. Empty input
    yields an empty dataset.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    if not lines:
        return Dataset((), ())

    records = _read_records(lines)
    columns = [str(c).strip() for c in records[0]]
    width = len(columns)
    rows = []
    for record in records[1:]:
        cells = list(record[:width]) + [""] * (width - len(record))
        rows.append({col: coerce_cell(val) for col, val in zip(columns, cells)})
    return Dataset(columns, rows)
