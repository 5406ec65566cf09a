import pytest

from dataset import Cell, CellKind, parse_number
from tests._support.stubs import make_dataset


def test_parse_number():
    assert parse_number("3.5") == 3.5
    assert parse_number("-2") == -2
    assert parse_number("1e3") == 1000
    assert parse_number("abc") is None
    assert parse_number("") is None
    assert parse_number("1_000") is None
    assert parse_number("nan") is None
    assert parse_number("inf") is None


def test_cell_to_number_is_total():
    assert Cell.number(4).to_number() == 4.0
    assert Cell.text("4.25").to_number() == 4.25
    assert Cell.text("four").to_number() is None
    assert Cell.null().to_number() is None


def test_cell_as_text():
    assert Cell.number(3).as_text() == "3"
    assert Cell.number(2.5).as_text() == "2.5"
    assert Cell.text("x").as_text() == "x"
    assert Cell.null().as_text() == ""
    assert Cell.null().kind is CellKind.NULL


def test_column_values():
    ds = make_dataset(["a", "b"], [["1", "x"], ["2", "y"]])

    assert ds.column_values("b") == [Cell.text("x"), Cell.text("y")]
    assert ds.column_values("missing") == []
    assert ds.column_index("B") == -1


def test_dataset_summary_is_read_only():
    ds = make_dataset(["a"], [["1"], ["2"]])

    with pytest.raises(TypeError):
        ds.summary["a"] = None
