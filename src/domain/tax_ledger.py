"""Cash-basis tax rows.

Withdrawals are split into return of capital and taxable revenue by consuming the
lifetime seeded capital first-in first-out. Vote costs are booked gross with a
paired reimbursement row for the share the delegation program covers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, model_validator

from .base_types import date_or_unknown, lamports_to_sol, parse_iso_date, shorten_address
from .coverage import coverage_fraction, coverage_percent_label
from .pricing import resolve_price
from .records import Expense, NetworkFee, Transfer, VoteCost
from .sources import ReportSources
from .validator_config import ValidatorConfig

logger = logging.getLogger(__name__)

WITHDRAWAL_CATEGORY = "Withdrawal"
VOTE_FEES_CATEGORY = "Vote Fees"
NETWORK_FEE_CATEGORY = "DoubleZero"
REIMBURSEMENT_CATEGORY = "SFDP Vote Fee Reimbursement"


class TaxEntryType(StrEnum):
    REVENUE = "Revenue"
    RETURN_OF_CAPITAL = "Return of Capital"
    REIMBURSEMENT = "Reimbursement"
    EXPENSE = "Expense"

    @property
    def rank(self) -> int:
        """Order within a single date: revenue-class entries before expenses."""
        return _ENTRY_RANK[self]


_ENTRY_RANK = {
    TaxEntryType.REVENUE: 0,
    TaxEntryType.RETURN_OF_CAPITAL: 1,
    TaxEntryType.REIMBURSEMENT: 2,
    TaxEntryType.EXPENSE: 3,
}


class CapitalAccountingError(RuntimeError):
    def __init__(self, message: str, *, returned_lamports: int, seeded_lamports: int) -> None:
        super().__init__(message)
        self.returned_lamports = returned_lamports
        self.seeded_lamports = seeded_lamports


class TaxRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    entry_type: TaxEntryType
    category: str
    description: str
    amount_lamports: int | None = None
    sol_price_usd: Decimal | None = None
    usd_value: Decimal
    destination: str = ""
    reference: str = ""

    @model_validator(mode="after")
    def _validate_amount(self) -> TaxRow:
        if self.amount_lamports is not None and self.amount_lamports < 0:
            raise ValueError("TaxRow.amount_lamports must be >= 0 when present")
        return self

    @property
    def sol_amount(self) -> Decimal | None:
        if self.amount_lamports is None:
            return None
        return lamports_to_sol(self.amount_lamports)


@dataclass(frozen=True)
class TaxLedger:
    rows: list[TaxRow]
    skipped_unknown_dates: int = 0

    def rows_of(self, entry_type: TaxEntryType) -> list[TaxRow]:
        return [row for row in self.rows if row.entry_type == entry_type]

    def total_usd(self, entry_type: TaxEntryType) -> Decimal:
        return sum((row.usd_value for row in self.rows_of(entry_type)), Decimal("0"))

    def total_lamports(self, entry_type: TaxEntryType) -> int:
        return sum(row.amount_lamports or 0 for row in self.rows_of(entry_type))

    def net_taxable_income_usd(self) -> Decimal:
        return (
            self.total_usd(TaxEntryType.REVENUE)
            + self.total_usd(TaxEntryType.REIMBURSEMENT)
            - self.total_usd(TaxEntryType.EXPENSE)
        )


@dataclass(frozen=True)
class WithdrawalSplit:
    transfer: Transfer
    capital_lamports: int
    revenue_lamports: int


class _YearFilter:
    """Row filter that counts rows whose date cannot be placed in any year."""

    def __init__(self, year: int | None) -> None:
        self.year = year
        self.skipped = 0

    def matches(self, value: str) -> bool:
        parsed = parse_iso_date(value)
        if parsed is None:
            self.skipped += 1
            return self.year is None
        return self.year is None or parsed.year == self.year


def _withdrawal_order(transfer: Transfer) -> tuple[bool, date, str]:
    # Unknown dates consume capital last.
    parsed = parse_iso_date(transfer.date)
    return (parsed is None, parsed or date.min, transfer.date or "")


def outgoing_external_transfers(sources: ReportSources, config: ValidatorConfig) -> list[Transfer]:
    """Withdrawals plus uncategorized transfers leaving the operator's accounts."""
    outgoing = list(sources.transfers.withdrawals)
    for transfer in sources.transfers.uncategorized:
        if config.is_our_account(transfer.from_address) and not config.is_our_account(transfer.to_address):
            outgoing.append(transfer)
    return outgoing


def split_withdrawals(withdrawals: Iterable[Transfer], seeded_lamports: int) -> list[WithdrawalSplit]:
    """Consume seeded capital across the full withdrawal history, earliest first."""
    remaining_capital = seeded_lamports
    splits: list[WithdrawalSplit] = []
    for transfer in sorted(withdrawals, key=_withdrawal_order):
        capital = min(transfer.amount_lamports, remaining_capital)
        remaining_capital -= capital
        splits.append(
            WithdrawalSplit(
                transfer=transfer,
                capital_lamports=capital,
                revenue_lamports=transfer.amount_lamports - capital,
            )
        )

    returned = sum(split.capital_lamports for split in splits)
    if returned > seeded_lamports or remaining_capital < 0:
        raise CapitalAccountingError(
            "Return of capital exceeds contributed capital",
            returned_lamports=returned,
            seeded_lamports=seeded_lamports,
        )
    return splits


def _usd(lamports: int, price: Decimal) -> Decimal:
    return lamports_to_sol(lamports) * price


def _scaled_lamports(lamports: int, fraction: Decimal) -> int:
    return int((Decimal(lamports) * fraction).to_integral_value(rounding=ROUND_HALF_UP))


def _withdrawal_rows(split: WithdrawalSplit, sources: ReportSources) -> list[TaxRow]:
    transfer = split.transfer
    row_date = date_or_unknown(transfer.date)
    price = resolve_price(sources.prices, row_date, sources.fallback_price)
    destination = transfer.to_label or shorten_address(transfer.to_address)

    rows: list[TaxRow] = []
    if split.capital_lamports > 0:
        rows.append(
            TaxRow(
                date=row_date,
                entry_type=TaxEntryType.RETURN_OF_CAPITAL,
                category=WITHDRAWAL_CATEGORY,
                description=f"Return of seed capital to {destination}",
                amount_lamports=split.capital_lamports,
                sol_price_usd=price,
                usd_value=_usd(split.capital_lamports, price),
                destination=destination,
                reference=transfer.signature,
            )
        )
    if split.revenue_lamports > 0:
        rows.append(
            TaxRow(
                date=row_date,
                entry_type=TaxEntryType.REVENUE,
                category=WITHDRAWAL_CATEGORY,
                description=f"External withdrawal to {destination}",
                amount_lamports=split.revenue_lamports,
                sol_price_usd=price,
                usd_value=_usd(split.revenue_lamports, price),
                destination=destination,
                reference=transfer.signature,
            )
        )
    return rows


def _vote_cost_rows(cost: VoteCost, sources: ReportSources) -> list[TaxRow]:
    row_date = date_or_unknown(cost.date)
    price = resolve_price(sources.prices, row_date, sources.fallback_price)
    parsed = parse_iso_date(cost.date)
    coverage = coverage_fraction(sources.acceptance_date, parsed) if parsed is not None else Decimal("0")
    reimbursed = _scaled_lamports(cost.amount_lamports, coverage)

    if coverage > 0:
        description = (
            f"Vote transaction fees epoch {cost.epoch} "
            f"({cost.vote_count} votes, {coverage_percent_label(coverage)} SFDP-reimbursed)"
        )
    else:
        description = f"Vote transaction fees epoch {cost.epoch} ({cost.vote_count} votes)"

    rows = [
        TaxRow(
            date=row_date,
            entry_type=TaxEntryType.EXPENSE,
            category=VOTE_FEES_CATEGORY,
            description=description,
            amount_lamports=cost.amount_lamports,
            sol_price_usd=price,
            usd_value=_usd(cost.amount_lamports, price),
        )
    ]
    if reimbursed > 0:
        rows.append(
            TaxRow(
                date=row_date,
                entry_type=TaxEntryType.REIMBURSEMENT,
                category=REIMBURSEMENT_CATEGORY,
                description=(
                    f"SFDP reimbursement epoch {cost.epoch} ({coverage_percent_label(coverage)} coverage)"
                ),
                amount_lamports=reimbursed,
                sol_price_usd=price,
                usd_value=_usd(reimbursed, price),
            )
        )
    return rows


def _network_fee_row(fee: NetworkFee, sources: ReportSources) -> TaxRow:
    row_date = date_or_unknown(fee.date)
    price = resolve_price(sources.prices, row_date, sources.fallback_price)
    return TaxRow(
        date=row_date,
        entry_type=TaxEntryType.EXPENSE,
        category=NETWORK_FEE_CATEGORY,
        description=f"DoubleZero network fee epoch {fee.epoch} ({fee.fee_rate_bps}bps on leader fees)",
        amount_lamports=fee.amount_lamports,
        sol_price_usd=price,
        usd_value=_usd(fee.amount_lamports, price),
    )


def _expense_row(expense: Expense) -> TaxRow:
    return TaxRow(
        date=expense.date,
        entry_type=TaxEntryType.EXPENSE,
        category=str(expense.category),
        description=f"{expense.vendor} - {expense.description}",
        usd_value=expense.amount_usd,
        reference=expense.invoice_id or "",
    )


def tax_row_sort_key(row: TaxRow) -> tuple[date, str, int]:
    return (parse_iso_date(row.date) or date.min, row.date, row.entry_type.rank)


def build_tax_rows(
    sources: ReportSources,
    config: ValidatorConfig,
    year_filter: int | None = None,
) -> TaxLedger:
    """Build the cash-basis tax ledger, optionally restricted to one calendar year.

    Capital is consumed over the whole history before the filter is applied, so a
    prior-year withdrawal still depletes the pool available to the filtered year.
    """
    year = _YearFilter(year_filter)
    rows: list[TaxRow] = []

    splits = split_withdrawals(
        outgoing_external_transfers(sources, config),
        sources.transfers.total_seeded_lamports(),
    )
    for split in splits:
        if year.matches(date_or_unknown(split.transfer.date)):
            rows.extend(_withdrawal_rows(split, sources))

    for cost in sources.vote_costs:
        if year.matches(date_or_unknown(cost.date)):
            rows.extend(_vote_cost_rows(cost, sources))

    for fee in sources.network_fees:
        if year.matches(date_or_unknown(fee.date)):
            rows.append(_network_fee_row(fee, sources))

    for expense in sources.expenses:
        if year.matches(expense.date):
            rows.append(_expense_row(expense))

    rows.sort(key=tax_row_sort_key)
    if year.skipped:
        logger.info(
            "%d tax row(s) have unknown or unparsable dates%s",
            year.skipped,
            " and were excluded" if year_filter is not None else "",
        )
    return TaxLedger(rows=rows, skipped_unknown_dates=year.skipped)


__all__ = [
    "NETWORK_FEE_CATEGORY",
    "REIMBURSEMENT_CATEGORY",
    "VOTE_FEES_CATEGORY",
    "WITHDRAWAL_CATEGORY",
    "CapitalAccountingError",
    "TaxEntryType",
    "TaxLedger",
    "TaxRow",
    "WithdrawalSplit",
    "build_tax_rows",
    "outgoing_external_transfers",
    "split_withdrawals",
    "tax_row_sort_key",
]
