import io

import pandas as pd
import pytest

from dataset import Cell
from errors import IngestError
from ingest import build_dataset, parse_csv, parse_excel, parse_file, summarize_column


def _cells(*values):
    return [Cell.text(v) for v in values]


def test_median_even_and_odd():
    assert summarize_column(_cells("4", "1", "3", "2")).median == 2.5
    assert summarize_column(_cells("3", "1", "2")).median == 2


def test_population_std_dev():
    stats = summarize_column(_cells("2", "4", "4", "4", "5", "5", "7", "9"))
    assert stats.std_dev == pytest.approx(2.0)
    assert stats.mean == pytest.approx(5.0)
    assert stats.min == 2
    assert stats.max == 9


def test_numeric_stats_exclude_unique_count():
    stats = summarize_column(_cells("1", "2"))
    assert stats.is_numeric
    assert stats.unique_count is None


def test_mixed_column_reports_numeric_stats_only():
    stats = summarize_column(_cells("10", "abc", "20", "def"))
    assert stats.is_numeric
    assert stats.mean == 15
    assert stats.unique_count is None
    assert stats.total_count == 4
    assert stats.null_count == 0


def test_only_exact_null_literals_count_as_null():
    stats = summarize_column(_cells("", "null", "NULL", "Null", "none"))
    assert stats.null_count == 3
    assert stats.total_count == 5
    assert stats.unique_count == 2


def test_all_null_column():
    stats = summarize_column(_cells("", "NULL", "null"))
    assert stats.total_count == 3
    assert stats.null_count == 3
    assert stats.mean is None
    assert stats.unique_count == 0


def test_unique_count_of_text_column():
    stats = summarize_column(_cells("x", "y", "x", ""))
    assert stats.unique_count == 2
    assert stats.null_count == 1


def test_build_dataset_types_and_stats():
    ds = build_dataset(["a", "b"], [["1", "x"], ["2", "y"]])

    assert [c.name for c in ds.columns] == ["a", "b"]
    assert [c.type for c in ds.columns] == ["number", "string"]
    assert ds.summary["a"].mean == 1.5
    assert ds.summary["b"].unique_count == 2


def test_build_dataset_pads_short_rows_with_empty_text():
    ds = build_dataset(["a", "b", "c"], [["1"], ["2", "x", "y"]])

    assert all(len(row) == 3 for row in ds.rows)
    assert ds.rows[0][1] == Cell.text("")
    assert ds.rows[0][2] == Cell.text("")
    assert ds.summary["b"].null_count == 1


def test_build_dataset_trims_header_and_cells():
    ds = build_dataset([" name ", "score"], [["  bob ", " 7 "]])

    assert ds.column_names() == ["name", "score"]
    assert ds.rows[0][0] == Cell.text("bob")
    assert ds.summary["score"].max == 7


def test_build_dataset_without_rows_fails():
    with pytest.raises(IngestError):
        build_dataset(["a"], [])


def test_parse_csv():
    ds = parse_csv(b"city,temp\nOslo,4\nRome,18\n")

    assert ds.column_names() == ["city", "temp"]
    assert ds.row_count == 2
    assert ds.columns[1].type == "number"
    assert ds.summary["temp"].median == 11


def test_parse_csv_keeps_na_literals_as_text():
    ds = parse_csv(b"a,b\nNA,1\nN/A,2\n")

    assert ds.rows[0][0] == Cell.text("NA")
    assert ds.summary["a"].unique_count == 2


def test_parse_csv_header_only_fails():
    with pytest.raises(IngestError):
        parse_csv(b"a,b\n")


def test_parse_csv_empty_file_fails():
    with pytest.raises(IngestError):
        parse_csv(b"")


def test_parse_excel_reads_first_sheet():
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame({"a": [1, 2], "b": ["x", "y"]}).to_excel(writer, sheet_name="first", index=False)
        pd.DataFrame({"other": [9]}).to_excel(writer, sheet_name="second", index=False)

    ds = parse_excel(buf.getvalue())

    assert ds.column_names() == ["a", "b"]
    assert ds.summary["a"].mean == 1.5
    assert ds.summary["b"].unique_count == 2


def test_parse_excel_rejects_garbage():
    with pytest.raises(IngestError):
        parse_excel(b"not a workbook")


def test_parse_file_dispatches_on_extension():
    ds = parse_file("DATA.CSV", b"a\n1\n2\n")
    assert ds.summary["a"].mean == 1.5

    with pytest.raises(IngestError):
        parse_file("data.xlsx", b"a\n1\n")


def test_counts_add_up_for_every_column():
    ds = build_dataset(
        ["n", "t", "m"],
        [["1", "a", "1"], ["", "b", "x"], ["3", "NULL", ""], ["4", "a", "2"]],
    )
    for col in ds.columns:
        stats = ds.summary[col.name]
        values = ds.column_values(col.name)
        nulls = sum(1 for c in values if c.as_text() in ("", "null", "NULL"))
        numeric = sum(1 for c in values if c.as_text() not in ("", "null", "NULL") and c.to_number() is not None)
        text = len(values) - nulls - numeric
        assert stats.total_count == nulls + numeric + text
        assert stats.null_count == nulls
        assert (stats.mean is not None) != (stats.unique_count is not None)
