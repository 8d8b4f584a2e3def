from datetime import date
from decimal import Decimal

import pytest

from domain.coverage import coverage_fraction, coverage_percent_label, months_between


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        (date(2025, 1, 1), Decimal("1")),
        (date(2025, 3, 31), Decimal("1")),
        (date(2025, 4, 1), Decimal("0.75")),
        (date(2025, 6, 30), Decimal("0.75")),
        (date(2025, 7, 1), Decimal("0.50")),
        (date(2025, 10, 1), Decimal("0.25")),
        (date(2025, 12, 31), Decimal("0.25")),
        (date(2026, 1, 1), Decimal("0")),
        (date(2027, 6, 1), Decimal("0")),
    ],
)
def test_coverage_schedule_steps(query: date, expected: Decimal) -> None:
    assert coverage_fraction("2025-01-15", query) == expected


def test_coverage_is_zero_without_valid_acceptance_date() -> None:
    assert coverage_fraction(None, date(2025, 1, 1)) == Decimal("0")
    assert coverage_fraction("not-a-date", date(2025, 1, 1)) == Decimal("0")


def test_coverage_is_zero_before_acceptance() -> None:
    assert coverage_fraction("2025-05-01", date(2025, 4, 30)) == Decimal("0")


def test_coverage_accepts_date_objects() -> None:
    assert coverage_fraction(date(2025, 1, 1), date(2025, 5, 1)) == Decimal("0.75")


def test_coverage_never_increases_over_time() -> None:
    fractions = [coverage_fraction("2025-01-01", date(2025 + m // 12, m % 12 + 1, 1)) for m in range(0, 24)]

    assert fractions == sorted(fractions, reverse=True)
    assert set(fractions) == {Decimal("1"), Decimal("0.75"), Decimal("0.50"), Decimal("0.25"), Decimal("0")}


def test_months_between_ignores_day_of_month() -> None:
    assert months_between(date(2025, 1, 31), date(2025, 2, 1)) == 1
    assert months_between(date(2025, 3, 1), date(2025, 1, 31)) == -2


def test_coverage_percent_label() -> None:
    assert coverage_percent_label(Decimal("0.75")) == "75%"
    assert coverage_percent_label(Decimal("1")) == "100%"
