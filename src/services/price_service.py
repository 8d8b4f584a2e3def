from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path

from domain.base_types import parse_iso_date
from domain.pricing import FALLBACK_SOL_PRICE, PriceMap, format_price_day, resolve_price

from .price_sources import FALLBACK_SOURCE, FallbackPriceRangeSource, PriceRangeSource, iter_days
from .price_store import JsonlPriceStore, PriceStore

logger = logging.getLogger(__name__)


class PriceService:
    def __init__(
        self,
        source: PriceRangeSource,
        store: PriceStore,
        fallback_price: Decimal = FALLBACK_SOL_PRICE,
    ) -> None:
        self.source = source
        self.store = store
        self.fallback_price = fallback_price

    def get_prices(self, start: date, end: date) -> PriceMap:
        """Daily prices for ``[start, end]``, fetching only days the store lacks.

        Fallback-filled days are returned but never stored, so a later run can
        replace them with real quotes.
        """
        stored = self.store.read_all()
        missing = [day for day in iter_days(start, end) if format_price_day(day) not in stored]
        if missing:
            logger.info("Fetching %d missing SOL prices (%s..%s)", len(missing), missing[0], missing[-1])
            fetched = self.source.fetch_range(missing[0], missing[-1])
            self.store.write(price for price in fetched if price.source != FALLBACK_SOURCE)
            for price in fetched:
                stored.setdefault(price.day, price)

        return {
            format_price_day(day): stored[format_price_day(day)].usd_price
            for day in iter_days(start, end)
            if format_price_day(day) in stored
        }

    def price_on(self, day: str) -> Decimal:
        target = parse_iso_date(day)
        if target is None:
            return self.fallback_price
        return resolve_price(self.get_prices(target, target), day, self.fallback_price)


def build_default_service(data_dir: Path, fallback_price: Decimal = FALLBACK_SOL_PRICE) -> PriceService:
    source = FallbackPriceRangeSource(fallback_price=fallback_price)
    store = JsonlPriceStore(root_dir=data_dir)
    return PriceService(source=source, store=store, fallback_price=fallback_price)


__all__ = ["PriceService", "build_default_service"]
