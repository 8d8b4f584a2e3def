from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class DailyPrice:
    """USD price of SOL for one calendar day."""

    day: str
    usd_price: Decimal
    source: str


class PriceSourceError(RuntimeError):
    """A price source could not provide the requested range."""


__all__ = ["DailyPrice", "PriceSourceError"]
