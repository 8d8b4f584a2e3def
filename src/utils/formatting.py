from __future__ import annotations

from decimal import Decimal

from domain.base_types import lamports_to_sol

HALF_CENT = Decimal("0.005")


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal) -> str:
    cents = value.quantize(Decimal("0.01"))
    return f"{cents:.2f}"


def format_sol(value: Decimal | None) -> str:
    if value is None:
        return ""
    return f"{value.quantize(Decimal('0.000001')):.6f}"


def format_lamports_as_sol(lamports: int) -> str:
    return format_sol(lamports_to_sol(lamports))


def normalize_currency(value: Decimal) -> Decimal:
    """Collapse sub-cent noise to zero so totals never print as -0.00."""
    if abs(value) < HALF_CENT:
        return Decimal("0")
    return value


def title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split())
