"""
Tests for chart data preparation and column descriptions.
"""
import pytest

from app.services.charts import describe_columns, display_value, parse_float, prepare_chart_data

ROWS = [
    {"a": 1, "b": 10, "c": 100},
    {"a": 2, "b": 20, "c": ""},
    {"a": 3, "b": 30, "c": 300},
]
HEADERS = ["a", "b", "c"]


def test_bar_chart_points():
    rows = [{"a": 1, "b": 10}, {"a": 2, "b": 20}, {"a": 3, "b": 30}]

    data = prepare_chart_data(rows, "bar", "a", "b", ["a", "b"])

    assert data == [
        {"x": 1, "y": 10, "label": "1"},
        {"x": 2, "y": 20, "label": "2"},
        {"x": 3, "y": 30, "label": "3"},
    ]


@pytest.mark.parametrize("chart_kind", ["line", "scatter", "histogram", None])
def test_point_charts_and_unknown_kinds_share_the_point_shape(chart_kind):
    data = prepare_chart_data(ROWS, chart_kind, "a", "b", HEADERS)

    assert [point["x"] for point in data] == [1, 2, 3]
    assert all(set(point) == {"x", "y", "label"} for point in data)


def test_pie_groups_and_sums_in_first_seen_order():
    rows = [{"x": "A", "y": "5"}, {"x": "A", "y": "3"}, {"x": "B", "y": "2"}]

    data = prepare_chart_data(rows, "pie", "x", "y", ["x", "y"])

    assert [(entry["label"], entry["value"]) for entry in data] == [("A", 8), ("B", 2)]
    assert [entry["percentage"] for entry in data] == [80.0, 20.0]


def test_doughnut_uses_unknown_label_and_zero_for_non_numeric():
    rows = [
        {"x": "", "y": "4"},
        {"x": None, "y": "1"},
        {"x": "C", "y": "n/a"},
        {"x": "C", "y": "2.5kg"},
    ]

    data = prepare_chart_data(rows, "doughnut", "x", "y", ["x", "y"])

    assert [(entry["label"], entry["value"]) for entry in data] == [("Unknown", 5), ("C", 2.5)]


def test_pie_with_zero_total_has_zero_percentages():
    rows = [{"x": "A", "y": "none"}]

    data = prepare_chart_data(rows, "pie", "x", "y", ["x", "y"])

    assert data == [{"label": "A", "value": 0, "percentage": 0}]


def test_3d_scatter_takes_z_from_third_header():
    data = prepare_chart_data(ROWS, "3d-scatter", "a", "b", HEADERS)

    assert [point["z"] for point in data] == [100, 0, 300]


def test_3d_scatter_falls_back_to_y_without_third_header():
    rows = [{"a": 1, "b": 10}]

    data = prepare_chart_data(rows, "3d-scatter", "a", "b", ["a", "b"])

    assert data == [{"x": 1, "y": 10, "z": 10, "label": "1"}]


def test_3d_bar_has_constant_z():
    data = prepare_chart_data(ROWS, "3d-bar", "a", "b", HEADERS)

    assert [point["z"] for point in data] == [0, 0, 0]


@pytest.mark.parametrize(
    "x_column, y_column",
    [(None, "b"), ("a", None), ("", "b"), ("missing", "b"), ("a", "missing")],
)
def test_missing_axis_yields_no_points(x_column, y_column):
    assert prepare_chart_data(ROWS, "bar", x_column, y_column, HEADERS) == []


def test_prepare_chart_data_does_not_mutate_rows():
    rows = [dict(row) for row in ROWS]

    prepare_chart_data(rows, "3d-scatter", "a", "b", HEADERS)
    prepare_chart_data(rows, "pie", "a", "b", HEADERS)

    assert rows == ROWS


def test_display_value():
    assert display_value(True) == "true"
    assert display_value(None) == ""
    assert display_value(4.0) == "4"
    assert display_value(4.5) == "4.5"
    assert display_value("East") == "East"


def test_parse_float():
    assert parse_float("12kg") == 12
    assert parse_float(" -1.5e2 ") == -150
    assert parse_float(".5") == 0.5
    assert parse_float("abc") == 0
    assert parse_float(True) == 0
    assert parse_float(None) == 0
    assert parse_float(7) == 7


def test_describe_columns_numbers_duplicate_names():
    columns = describe_columns(
        ["Total", "Region", "Total", "Total"],
        ["number", "string", "number", "date"],
    )

    assert [column["display_name"] for column in columns] == [
        "Total",
        "Region",
        "Total (2)",
        "Total (3)",
    ]
    assert [column["name"] for column in columns] == ["Total", "Region", "Total", "Total"]
    assert [column["original_index"] for column in columns] == [0, 1, 2, 3]


def test_describe_columns_suitable_axes():
    columns = describe_columns(
        ["n", "s", "d", "b"], ["number", "string", "date", "boolean"]
    )

    assert [column["suitable_for"] for column in columns] == [
        ["x", "y", "z"],
        ["x", "label"],
        ["x", "y"],
        ["x", "y"],
    ]
