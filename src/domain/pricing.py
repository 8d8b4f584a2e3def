from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Mapping

from .base_types import ISO_DATE_FORMAT, parse_iso_date

logger = logging.getLogger(__name__)

PriceMap = dict[str, Decimal]
"""``YYYY-MM-DD`` -> USD per SOL."""

FALLBACK_SOL_PRICE = Decimal("170")


def resolve_price(prices: Mapping[str, Decimal], day: str | None, fallback: Decimal = FALLBACK_SOL_PRICE) -> Decimal:
    """Price for ``day``: exact match, else the nearest cached day, else ``fallback``.

    Equidistant candidates resolve to the earlier day. Never raises.
    """
    if day is not None and day in prices:
        return prices[day]

    target = parse_iso_date(day)
    if target is None:
        logger.debug("Unparsable price date %r; using fallback %s", day, fallback)
        return fallback

    best: tuple[int, date, Decimal] | None = None
    for key, price in prices.items():
        cached = parse_iso_date(key)
        if cached is None:
            continue
        candidate = (abs((target - cached).days), cached, price)
        if best is None or candidate[:2] < best[:2]:
            best = candidate

    if best is None:
        logger.debug("No cached prices near %s; using fallback %s", day, fallback)
        return fallback
    return best[2]


def format_price_day(day: date) -> str:
    return day.strftime(ISO_DATE_FORMAT)


__all__ = [
    "FALLBACK_SOL_PRICE",
    "PriceMap",
    "format_price_day",
    "resolve_price",
]
