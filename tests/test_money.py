import pytest

from money import from_cents, parse_currency, safe_sum, to_cents


@pytest.mark.parametrize("raw, expected", [
    ("$1,234.50", 1234.5),
    ("($45.00)", -45.0),
    ("-12.25", -12.25),
    (12, 12.0),
    (3.5, 3.5),
])
def test_parse_currency_values(raw, expected):
    assert parse_currency(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "n/a", None, float("nan"), float("inf"), True])
def test_parse_currency_unparseable_is_none(raw):
    assert parse_currency(raw) is None


def test_to_cents_rounds_to_nearest_cent():
    assert to_cents(19.99) == 1999
    assert to_cents(-0.014) == -1
    assert to_cents(0.1) == 10


def test_to_cents_missing_values_are_zero():
    assert to_cents(None) == 0
    assert to_cents(float("nan")) == 0


def test_from_cents():
    assert from_cents(12345) == 123.45
    assert from_cents(-50) == -0.5


def test_safe_sum_has_no_drift():
    values = [0.1] * 10
    assert sum(values) != 1.0
    assert safe_sum(values) == 1.0


def test_safe_sum_ignores_missing():
    assert safe_sum([0.1, None, 0.2]) == 0.3
