from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import NewType

Address = NewType("Address", str)
Lamports = NewType("Lamports", int)

LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

UNKNOWN_DATE = "unknown"
ISO_DATE_FORMAT = "%Y-%m-%d"


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)


def sol_to_lamports(sol: Decimal) -> int:
    return int((sol * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_HALF_UP))


def saturating_add_u64(a: int, b: int) -> int:
    return min(a + b, U64_MAX)


def saturating_sub_u64(a: int, b: int) -> int:
    return max(a - b, 0)


def clamp_i64(value: int) -> int:
    return max(I64_MIN, min(I64_MAX, value))


def parse_iso_date(value: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` string, returning None for anything else."""
    if not value:
        return None
    try:
        return datetime.strptime(value, ISO_DATE_FORMAT).date()
    except ValueError:
        return None


def date_or_unknown(value: str | None) -> str:
    return value if value else UNKNOWN_DATE


def shorten_address(address: str) -> str:
    if len(address) > 12:
        return f"{address[:6]}...{address[-4:]}"
    return address
