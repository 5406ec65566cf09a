"""In-memory dataset model.

A ``Dataset`` is produced once by ingestion and never mutated afterwards, so a
single instance can be shared by any number of concurrent analysis requests.
Cells are a closed variant (number, text or null) and every numeric coercion
goes through ``Cell.to_number``.
"""
import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from schemas import ColumnInfo, SummaryStats

NULL_LITERALS = ("", "null", "NULL")


class CellKind(Enum):
    NUMBER = "number"
    TEXT = "text"
    NULL = "null"


def parse_number(text: str) -> Optional[float]:
    """Parse ``text`` as a float, returning None when it is not a finite number."""
    if "_" in text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    raw: Any = None

    @classmethod
    def number(cls, value: float) -> "Cell":
        return cls(CellKind.NUMBER, float(value))

    @classmethod
    def text(cls, value: str) -> "Cell":
        return cls(CellKind.TEXT, value)

    @classmethod
    def null(cls) -> "Cell":
        return cls(CellKind.NULL)

    def as_text(self) -> str:
        if self.kind is CellKind.NUMBER:
            return format_number(self.raw)
        if self.kind is CellKind.TEXT:
            return self.raw
        return ""

    def to_number(self) -> Optional[float]:
        if self.kind is CellKind.NUMBER:
            return self.raw
        if self.kind is CellKind.TEXT:
            return parse_number(self.raw)
        return None

    @property
    def value(self) -> Any:
        """Plain Python value for JSON payloads."""
        return self.raw


@dataclass(frozen=True)
class Dataset:
    columns: Tuple[ColumnInfo, ...]
    rows: Tuple[Tuple[Cell, ...], ...]
    summary: Mapping[str, SummaryStats]

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "rows", tuple(tuple(r) for r in self.rows))
        object.__setattr__(self, "summary", MappingProxyType(dict(self.summary)))

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column_index(self, name: str) -> int:
        for i, col in enumerate(self.columns):
            if col.name == name:
                return i
        return -1

    def column_values(self, name: str) -> List[Cell]:
        """All cells of column ``name`` in row order; empty when the column is unknown."""
        idx = self.column_index(name)
        if idx == -1:
            return []
        return [row[idx] for row in self.rows if idx < len(row)]
