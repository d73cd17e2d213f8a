# backend/tests/test_inference.py
from backend.app.schemas.dataset import ColumnDescriptor, Dataset
from backend.app.services.inference import (
    classify_columns,
    describe_columns,
    eligible_numeric_columns,
    is_categorical_column,
    is_numeric_column,
    missing_by_column,
    pick_quick_columns,
    resolve_columns,
    type_breakdown,
)


def _cols(*names, types=None):
    types = types or {}
    return [ColumnDescriptor(name=n, type=types.get(n, "")) for n in names]


# -----------------------------------------------------------
# Numeric / categorical rules
# -----------------------------------------------------------
def test_declared_type_wins_without_sampling():
    rows = [{"qty": "n/a"}]
    col = ColumnDescriptor(name="qty", type="Integer")
    assert is_numeric_column(col, rows)
    assert is_numeric_column(ColumnDescriptor(name="qty", type="number"), rows)


def test_sampled_numeric_needs_at_least_five_hits():
    col = ColumnDescriptor(name="x")
    assert not is_numeric_column(col, [{"x": 1}, {"x": 2}, {"x": 3}])
    assert is_numeric_column(col, [{"x": str(i)} for i in range(5)])


def test_sampled_numeric_uses_sixty_percent_threshold():
    col = ColumnDescriptor(name="x")
    # 20 sampled rows -> needs 12 numeric values
    rows = [{"x": i} for i in range(11)] + [{"x": "text"} for _ in range(9)]
    assert not is_numeric_column(col, rows)
    rows = [{"x": i} for i in range(12)] + [{"x": "text"} for _ in range(8)]
    assert is_numeric_column(col, rows)


def test_categorical_bounds():
    assert is_categorical_column("r", [{"r": "a"}, {"r": "b"}, {"r": "a"}])
    assert not is_categorical_column("r", [{"r": "a"}, {"r": "a"}, {"r": ""}, {"r": None}])
    assert not is_categorical_column("r", [{"r": f"v{i}"} for i in range(21)])


def test_pick_quick_columns_scans_in_column_order(wide_rows):
    columns = _cols("id", "region", "sales")
    quick = pick_quick_columns(columns, wide_rows)
    # id has 30 distinct values so it is numeric but not categorical
    assert quick.numeric == "id"
    assert quick.categorical == "region"


def test_pick_quick_columns_handles_no_match():
    quick = pick_quick_columns(_cols("note"), [{"note": "same"}] * 3)
    assert quick.numeric is None
    assert quick.categorical is None


def test_classify_columns(wide_rows):
    kinds = classify_columns(_cols("id", "region", "sales"), wide_rows)
    assert kinds == {"id": "numeric", "region": "categorical", "sales": "numeric"}


def test_eligible_numeric_ignores_declared_type():
    rows = [{"a": "x", "b": i} for i in range(10)]
    columns = _cols("a", "b", types={"a": "int64"})
    assert eligible_numeric_columns(columns, rows) == ["b"]


# -----------------------------------------------------------
# Column descriptors
# -----------------------------------------------------------
def test_describe_columns_derives_from_rows():
    rows = [
        {"name": "x", "score": 1},
        {"name": "", "score": "2", "extra": None},
        {"name": "y", "score": None},
    ]
    described = describe_columns(rows)
    assert [c.name for c in described] == ["name", "score", "extra"]
    by_name = {c.name: c for c in described}
    assert by_name["name"].missing_count == 1
    assert by_name["name"].unique_count == 2
    assert by_name["score"].type == "number"
    assert by_name["extra"].missing_count == 3
    assert by_name["extra"].type == "unknown"


def test_resolve_columns_prefers_declared():
    ds = Dataset(data=[{"a": 1, "b": 2}], columns=[ColumnDescriptor(name="b")])
    assert [c.name for c in resolve_columns(ds)] == ["b"]
    ds = Dataset(data=[{"a": 1, "b": 2}])
    assert [c.name for c in resolve_columns(ds)] == ["a", "b"]


def test_type_breakdown_and_missing_columns():
    columns = [
        ColumnDescriptor(name="a", type="number", missing_count=0),
        ColumnDescriptor(name="b", type="number", missing_count=4),
        ColumnDescriptor(name="c", type="", missing_count=9),
    ]
    shares = {s.name: s for s in type_breakdown(columns)}
    assert shares["number"].value == 2
    assert shares["number"].pct == 66.7
    assert shares["Unknown"].value == 1
    assert [c.name for c in missing_by_column(columns)] == ["c", "b"]


def test_describe_columns_counts_labels_and_breaks_kind_ties_by_first_seen():
    rows = [{"v": 1}, {"v": "text"}, {"v": 1.0}, {"v": "null"}, {"v": "more"}, {"v": "7"}]
    (col,) = describe_columns(rows)
    assert col.missing_count == 1
    # 1 and 1.0 share the label "1"
    assert col.unique_count == 4
    # three numbers ("7" included) against two strings
    assert col.type == "number"

    (tied,) = describe_columns([{"v": "a"}, {"v": 2}])
    assert tied.type == "string"
