# backend/tests/test_values.py
import math
from datetime import date

from backend.app.services.values import (
    ValueKind,
    canonical,
    classify,
    is_blank,
    is_missing,
    is_numeric_like,
    number_or_zero,
    to_label,
    to_number,
)


def test_classify_covers_every_kind():
    assert classify(None) is ValueKind.NULL
    assert classify(False) is ValueKind.BOOLEAN
    assert classify(3) is ValueKind.NUMBER
    assert classify(2.5) is ValueKind.NUMBER
    assert classify("hello") is ValueKind.STRING
    assert classify("2024-01-05") is ValueKind.DATE_LIKE
    assert classify("2024-01-05T10:30:00Z") is ValueKind.DATE_LIKE
    assert classify(date(2024, 1, 5)) is ValueKind.DATE_LIKE
    # anything outside the union falls back to its string form
    assert classify(["a"]) is ValueKind.STRING


def test_to_number_parsing():
    assert to_number("12") == 12.0
    assert to_number(" 3.5 ") == 3.5
    assert to_number("1e3") == 1000.0
    assert to_number("0x10") == 16.0
    assert to_number(True) == 1.0
    assert to_number(7) == 7.0
    assert to_number("-Infinity") == -math.inf
    assert math.isnan(to_number("N/A"))
    assert math.isnan(to_number(None))
    assert math.isnan(to_number(""))
    assert math.isnan(to_number("2024-01-05"))
    assert math.isnan(to_number({"nested": 1}))


def test_numeric_like_requires_finite_non_empty():
    assert is_numeric_like("7")
    assert is_numeric_like(0)
    assert not is_numeric_like("")
    assert not is_numeric_like(None)
    assert not is_numeric_like("Infinity")
    assert not is_numeric_like("abc")


def test_number_or_zero_is_lossy():
    assert number_or_zero("N/A") == 0.0
    assert number_or_zero(None) == 0.0
    assert number_or_zero("4") == 4.0


def test_missing_and_blank():
    assert is_missing(None)
    assert is_missing("")
    assert is_missing("null")
    assert not is_missing("NULL")
    assert not is_missing(0)
    assert is_blank("")
    assert not is_blank("null")


def test_labels_render_like_a_browser():
    assert to_label(1.0) == "1"
    assert to_label(2.5) == "2.5"
    assert to_label(True) == "true"
    assert to_label(None) == "null"
    assert to_label(float("nan")) == "NaN"


def test_canonical_normalises_integral_floats():
    assert canonical(1.0) == canonical(1)
    assert canonical("1") != canonical(1)
    assert canonical(None) is None
