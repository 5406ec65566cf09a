"""Dataset ingestion: file parsing, column typing and summary statistics."""
import io
import logging
from typing import Iterable, List, Sequence

import pandas as pd

from dataset import NULL_LITERALS, Cell, Dataset
from errors import IngestError
from schemas import ColumnInfo, SummaryStats

logger = logging.getLogger(__name__)


def summarize_column(values: Iterable[Cell]) -> SummaryStats:
    """Compute summary statistics for one column.

    Only the exact literals ``""``, ``"null"`` and ``"NULL"`` count as nulls.
    As soon as one cell parses as a number the column is summarized from its
    numeric cells alone and non-numeric cells are left out of the stats; a
    column without any number gets a distinct-value count instead.
    """
    total = 0
    nulls = 0
    numbers: List[float] = []
    texts: List[str] = []

    for cell in values:
        total += 1
        text = cell.as_text()
        if text in NULL_LITERALS:
            nulls += 1
            continue
        num = cell.to_number()
        if num is not None:
            numbers.append(num)
        else:
            texts.append(text)

    if numbers:
        series = pd.Series(sorted(numbers), dtype="float64")
        return SummaryStats(
            min=float(series.iloc[0]),
            max=float(series.iloc[-1]),
            mean=float(series.mean()),
            median=float(series.median()),
            std_dev=float(series.std(ddof=0)),
            null_count=nulls,
            total_count=total,
        )

    # mixed columns never reach this branch, see docstring
    return SummaryStats(
        unique_count=len(set(texts)),
        null_count=nulls,
        total_count=total,
    )


def build_dataset(header: Sequence[str], rows: Sequence[Sequence[str]]) -> Dataset:
    """Build a typed ``Dataset`` from a header row and raw data rows."""
    names = [str(h).strip() for h in header]
    if not rows:
        raise IngestError("Dataset has no data rows")

    width = len(names)
    cells = []
    for raw in rows:
        row = [Cell.text(str(v).strip()) for v in list(raw)[:width]]
        # short rows are padded with empty text, never with nulls
        row.extend(Cell.text("") for _ in range(width - len(row)))
        cells.append(tuple(row))

    columns = []
    summary = {}
    for idx, name in enumerate(names):
        stats = summarize_column(row[idx] for row in cells)
        summary[name] = stats
        columns.append(ColumnInfo(name=name, type="number" if stats.is_numeric else "string"))

    logger.info("Built dataset with %d columns and %d rows", len(columns), len(cells))
    return Dataset(columns=tuple(columns), rows=tuple(cells), summary=summary)


def _frame_to_dataset(df: pd.DataFrame, trim_header: bool = False) -> Dataset:
    records = df.fillna("").astype(str).values.tolist()
    if not records:
        raise IngestError("Empty file")
    header = records[0]
    if trim_header:
        # spreadsheet rows end at their last non-empty cell
        while len(header) > 1 and header[-1] == "":
            header = header[:-1]
    return build_dataset(header, records[1:])


def parse_csv(content: bytes) -> Dataset:
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise IngestError("Empty CSV file") from e
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        raise IngestError("Failed to parse CSV file") from e
    return _frame_to_dataset(df)


def parse_excel(content: bytes) -> Dataset:
    try:
        workbook = pd.ExcelFile(io.BytesIO(content))
    except Exception as e:
        raise IngestError("Failed to open Excel file") from e

    with workbook:
        if not workbook.sheet_names:
            raise IngestError("No sheets found in Excel file")
        try:
            df = workbook.parse(
                workbook.sheet_names[0],
                header=None,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            raise IngestError("Failed to read Excel sheet") from e
    return _frame_to_dataset(df, trim_header=True)


def parse_file(filename: str, content: bytes) -> Dataset:
    """Parse an uploaded CSV or Excel file into a ``Dataset``."""
    if filename.lower().endswith(".csv"):
        return parse_csv(content)
    return parse_excel(content)
