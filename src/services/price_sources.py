from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Protocol, Sequence

from domain.pricing import FALLBACK_SOL_PRICE, format_price_day

from .price_types import DailyPrice, PriceSourceError

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "fallback"


class PriceRangeSource(Protocol):
    """Returns the daily SOL prices it knows for ``start``..``end`` inclusive.

    Implementations should wrap their failures in ``PriceSourceError``. Connection,
    timeout and malformed-payload errors (``OSError``, ``ValueError``) are tolerated too.
    """

    name: str

    def fetch_range(self, start: date, end: date) -> list[DailyPrice]: ...


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class FallbackPriceRangeSource(PriceRangeSource):
    """Asks each source in turn for the days still missing, then fills the rest with a constant."""

    name = "chain"

    def __init__(
        self,
        sources: Iterable[PriceRangeSource] = (),
        *,
        fallback_price: Decimal = FALLBACK_SOL_PRICE,
    ) -> None:
        self.sources: Sequence[PriceRangeSource] = tuple(sources)
        if fallback_price <= 0:
            msg = "fallback_price must be positive"
            raise ValueError(msg)
        self.fallback_price = fallback_price

    def fetch_range(self, start: date, end: date) -> list[DailyPrice]:
        if end < start:
            return []

        wanted = [format_price_day(day) for day in iter_days(start, end)]
        found: dict[str, DailyPrice] = {}

        for source in self.sources:
            if len(found) == len(wanted):
                break
            try:
                fetched = source.fetch_range(start, end)
            except (PriceSourceError, OSError, ValueError) as exc:
                logger.warning("Price source %s failed for %s..%s: %s", source.name, start, end, exc)
                continue
            for price in fetched:
                if price.day in wanted and price.day not in found:
                    found[price.day] = price

        missing = [day for day in wanted if day not in found]
        if missing:
            logger.warning(
                "Using fallback SOL price %s for %d of %d days", self.fallback_price, len(missing), len(wanted)
            )
        for day in missing:
            found[day] = DailyPrice(day=day, usd_price=self.fallback_price, source=FALLBACK_SOURCE)

        return [found[day] for day in wanted]


__all__ = [
    "FALLBACK_SOURCE",
    "FallbackPriceRangeSource",
    "PriceRangeSource",
    "iter_days",
]
