"""
Tests for column type inference.
"""
import pytest

from app.services.type_inference import (
    ColumnType,
    classify_column,
    classify_value,
    coerce_value,
    parse_date,
    parse_number,
)


@pytest.mark.parametrize(
    "values, expected",
    [
        (["1", "2", "3"], ColumnType.NUMBER),
        (["true", "false", "yes"], ColumnType.BOOLEAN),
        (["2024-01-01", "2024-02-01"], ColumnType.DATE),
        (["apple", "banana"], ColumnType.STRING),
        ([], ColumnType.STRING),
    ],
)
def test_classify_column(values, expected):
    assert classify_column(values) == expected


def test_classify_column_is_deterministic():
    values = ["1", "x", "2024-01-01", "yes", "3.5"]
    assert classify_column(values) == classify_column(values)


def test_classify_column_blank_values_are_not_counted():
    assert classify_column(["", "  ", None, "12", "7"]) == ColumnType.NUMBER
    assert classify_column(["", None, "   "]) == ColumnType.STRING


def test_classify_column_ties_prefer_string_then_number_then_date():
    assert classify_column(["abc", "12"]) == ColumnType.STRING
    assert classify_column(["12", "2024-01-01"]) == ColumnType.NUMBER
    assert classify_column(["2024-01-01", "yes"]) == ColumnType.DATE


def test_classify_column_only_samples_first_values():
    values = ["10"] * 3 + ["text"] * 10
    assert classify_column(values, sample_size=3) == ColumnType.NUMBER
    assert classify_column(values) == ColumnType.STRING


def test_classify_value_precedence():
    # Boolean literals win over numbers
    assert classify_value("1") == ColumnType.BOOLEAN
    assert classify_value(" N ") == ColumnType.BOOLEAN
    assert classify_value("2") == ColumnType.NUMBER
    assert classify_value("01/15/2024") == ColumnType.DATE
    assert classify_value("hello") == ColumnType.STRING
    assert classify_value("   ") is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("42", 42),
        ("-3.5", -3.5),
        ("1e3", 1000),
        (".5", 0.5),
        ("0x1F", 31),
        ("0b101", 5),
    ],
)
def test_parse_number_accepts(text, expected):
    assert parse_number(text) == expected


@pytest.mark.parametrize("text", ["abc", "1,000", "nan", "inf", "1e999", "12kg", ""])
def test_parse_number_rejects(text):
    assert parse_number(text) is None


def test_parse_number_whole_values_are_int():
    assert isinstance(parse_number("3.0"), int)
    assert isinstance(parse_number("3.25"), float)


@pytest.mark.parametrize(
    "text",
    ["2024-01-15", "01/15/2024", "01-15-2024", "1/5/24", "1-5-2024"],
)
def test_parse_date_supported_shapes(text):
    assert parse_date(text) is not None


def test_parse_date_two_digit_years():
    assert parse_date("1/5/24").year == 2024
    assert parse_date("1/5/75").year == 1975


@pytest.mark.parametrize("text", ["02/30/2024", "2019-02-31", "2024-13-01", "2024/01/15", "Jan 5 2024"])
def test_parse_date_rejects_invalid(text):
    assert parse_date(text) is None


def test_coerce_value_by_column_type():
    assert coerce_value("12", ColumnType.NUMBER) == (12, True)
    assert coerce_value("Yes", ColumnType.BOOLEAN) == (True, True)
    assert coerce_value("n", ColumnType.BOOLEAN) == (False, True)
    assert coerce_value("2024-01-15", ColumnType.DATE) == ("2024-01-15", True)
    assert coerce_value("plain", ColumnType.STRING) == ("plain", True)


def test_coerce_value_mismatch_keeps_raw():
    assert coerce_value("n/a", ColumnType.NUMBER) == ("n/a", False)
    assert coerce_value("maybe", ColumnType.BOOLEAN) == ("maybe", False)
    assert coerce_value("soon", ColumnType.DATE) == ("soon", False)


def test_coerce_value_blank_conforms():
    assert coerce_value("", ColumnType.NUMBER) == ("", True)
    assert coerce_value(None, ColumnType.DATE) == ("", True)
