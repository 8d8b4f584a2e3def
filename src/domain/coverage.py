from __future__ import annotations

from datetime import date
from decimal import Decimal

from .base_types import parse_iso_date

# (months since acceptance upper bound, covered fraction); 12+ months is uncovered.
COVERAGE_SCHEDULE: tuple[tuple[int, Decimal], ...] = (
    (3, Decimal("1")),
    (6, Decimal("0.75")),
    (9, Decimal("0.50")),
    (12, Decimal("0.25")),
)
NO_COVERAGE = Decimal("0")


def months_between(start: date, end: date) -> int:
    return 12 * (end.year - start.year) + (end.month - start.month)


def coverage_fraction(acceptance_date: str | date | None, query_date: date) -> Decimal:
    """Share of vote costs reimbursed by the delegation program on ``query_date``.

    A missing or unparsable acceptance date means the operator is not enrolled.
    Dates before acceptance are not covered.
    """
    if acceptance_date is None:
        return NO_COVERAGE
    if isinstance(acceptance_date, date):
        acceptance = acceptance_date
    else:
        parsed = parse_iso_date(acceptance_date)
        if parsed is None:
            return NO_COVERAGE
        acceptance = parsed

    months = months_between(acceptance, query_date)
    if months < 0:
        return NO_COVERAGE
    for upper_bound, fraction in COVERAGE_SCHEDULE:
        if months < upper_bound:
            return fraction
    return NO_COVERAGE


def coverage_percent_label(fraction: Decimal) -> str:
    """Render a coverage fraction as a whole percent, e.g. ``75%``."""
    return f"{(fraction * 100).quantize(Decimal('1'))}%"


__all__ = ["COVERAGE_SCHEDULE", "NO_COVERAGE", "coverage_fraction", "coverage_percent_label", "months_between"]
