from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, Protocol, Sequence, TypeVar

from .base_types import ISO_DATE_FORMAT, parse_iso_date
from .records import Expense, RecurringExpense

MONTH_FORMAT = "%Y-%m"


class _Dated(Protocol):
    @property
    def date(self) -> str | None: ...


DatedT = TypeVar("DatedT", bound=_Dated)


def month_key(value: str | None) -> str | None:
    """``YYYY-MM`` prefix of an ISO date, or None when the value does not look like one."""
    if value is None or len(value) < 7 or value[4] != "-":
        return None
    return value[:7]


def _parse_month(value: str) -> date | None:
    return parse_iso_date(f"{value}-01")


def _next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def expand_recurring_expenses(
    templates: Iterable[RecurringExpense],
    start_month: str,
    end_month: str,
) -> list[Expense]:
    """Materialize monthly expenses for every month in ``[start_month, end_month]``.

    Each template bills on its start date's day of month, clamped to the month
    length, between its start month and (inclusive) end month.
    """
    window_start = _parse_month(start_month) or date(2025, 1, 1)
    window_end = _parse_month(end_month) or date(2025, 12, 1)

    expenses: list[Expense] = []
    for template in templates:
        template_start = parse_iso_date(template.start_date)
        billing_day = template_start.day if template_start is not None else 1
        first_month = (template_start or date(2025, 1, 1)).replace(day=1)
        template_end = parse_iso_date(template.end_date)
        last_month = template_end.replace(day=1) if template_end is not None else None

        current = window_start
        while current <= window_end:
            if current >= first_month and (last_month is None or current <= last_month):
                days_in_month = calendar.monthrange(current.year, current.month)[1]
                billed_on = current.replace(day=min(billing_day, days_in_month))
                expenses.append(
                    Expense(
                        date=billed_on.strftime(ISO_DATE_FORMAT),
                        vendor=template.vendor,
                        category=template.category,
                        description=template.description,
                        amount_usd=template.amount_usd,
                        paid_with=template.paid_with,
                    )
                )
            current = _next_month(current)
    return expenses


def recurring_expansion_window(
    reward_dates: Iterable[str | None],
    templates: Sequence[RecurringExpense],
    bootstrap_month: str,
    today: date,
) -> tuple[str, str] | None:
    """Month range to expand recurring templates over.

    Uses the span of reward months when there are any; otherwise the templates'
    own start months up to their end month (or the current month). The start is
    never earlier than ``bootstrap_month`` and the end never precedes the start.
    """
    reward_months = [key for key in (month_key(value) for value in reward_dates) if key is not None]
    if reward_months:
        start, end = min(reward_months), max(reward_months)
    else:
        current_month = today.strftime(MONTH_FORMAT)
        starts = [key for key in (month_key(t.start_date) for t in templates) if key is not None]
        ends = [month_key(t.end_date) or current_month for t in templates]
        if not starts or not ends:
            return None
        start, end = min(starts), max(ends)

    start = max(start, bootstrap_month)
    end = max(end, start)
    return start, end


def within_business_window(value: str | None, cutoff: date, today: date) -> bool:
    parsed = parse_iso_date(value)
    return parsed is not None and cutoff <= parsed <= today


def filter_records_to_window(records: Iterable[DatedT], cutoff: date, today: date) -> list[DatedT]:
    return [record for record in records if within_business_window(record.date, cutoff, today)]


__all__ = [
    "expand_recurring_expenses",
    "filter_records_to_window",
    "month_key",
    "recurring_expansion_window",
    "within_business_window",
]
