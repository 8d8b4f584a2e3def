from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Protocol

from .price_types import DailyPrice


class PriceStore(Protocol):
    def write(self, prices: Iterable[DailyPrice]) -> None: ...

    def read(self, day: str) -> DailyPrice | None: ...

    def read_all(self) -> dict[str, DailyPrice]: ...


class JsonlPriceStore(PriceStore):
    """Append-only JSON-lines file of daily prices; the last line for a day wins."""

    def __init__(self, *, root_dir: Path) -> None:
        self.root_dir = root_dir

    def write(self, prices: Iterable[DailyPrice]) -> None:
        path = self._file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            for price in prices:
                record = {
                    "day": price.day,
                    "usd_price": str(price.usd_price),
                    "source": price.source,
                }
                handle.write(json.dumps(record))
                handle.write("\n")

    def read(self, day: str) -> DailyPrice | None:
        return self.read_all().get(day)

    def read_all(self) -> dict[str, DailyPrice]:
        path = self._file_path()
        if not path.exists():
            return {}

        prices: dict[str, DailyPrice] = {}
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                prices[record["day"]] = DailyPrice(
                    day=record["day"],
                    usd_price=Decimal(record["usd_price"]),
                    source=record.get("source", "unknown"),
                )
        return prices

    def _file_path(self) -> Path:
        return self.root_dir / "prices" / "SOL-USD.jsonl"


__all__ = ["JsonlPriceStore", "PriceStore"]
