"""Chronological profit/loss timelines.

Every source record becomes one ``TimelineEvent``. Events are ordered by date, with
unknown dates first, then by a fixed per-kind order, and a single forward walk
fills in the running totals.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from .base_types import date_or_unknown, lamports_to_sol, parse_iso_date
from .coverage import coverage_fraction, coverage_percent_label
from .pricing import resolve_price
from .records import ExpenseCategory, Transfer
from .sources import ReportSources
from .tax_ledger import NETWORK_FEE_CATEGORY, TaxEntryType, TaxRow, build_tax_rows
from .validator_config import ValidatorConfig

# Coverage date for vote costs whose settlement date is unknown.
FALLBACK_COVERAGE_DATE = date(2025, 12, 15)

ZERO = Decimal("0")


class TimelineEventType(StrEnum):
    COMMISSION = "commission"
    LEADER_FEES = "leader_fees"
    MEV = "mev"
    INCENTIVE = "incentive"
    VOTE_COST = "vote_cost"
    NETWORK_FEE = "network_fee"
    EXPENSE = "expense"
    SEEDING = "seeding"
    WITHDRAWAL = "withdrawal"
    NETWORK_FEE_PREPAYMENT = "network_fee_prepayment"
    TAX_REVENUE = "tax_revenue"
    TAX_RETURN_OF_CAPITAL = "tax_return_of_capital"
    TAX_REIMBURSEMENT = "tax_reimbursement"
    TAX_EXPENSE_VOTE_FEES = "tax_expense_vote_fees"
    TAX_EXPENSE_NETWORK_FEE = "tax_expense_network_fee"
    TAX_EXPENSE_HOSTING = "tax_expense_hosting"
    TAX_EXPENSE_SOFTWARE = "tax_expense_software"
    TAX_EXPENSE_CONTRACTOR = "tax_expense_contractor"
    TAX_EXPENSE_HARDWARE = "tax_expense_hardware"
    TAX_EXPENSE_OTHER = "tax_expense_other"


TYPE_ORDER: dict[TimelineEventType, int] = {
    TimelineEventType.COMMISSION: 0,
    TimelineEventType.LEADER_FEES: 1,
    TimelineEventType.MEV: 2,
    TimelineEventType.INCENTIVE: 3,
    TimelineEventType.VOTE_COST: 4,
    TimelineEventType.NETWORK_FEE: 5,
    TimelineEventType.EXPENSE: 6,
    TimelineEventType.SEEDING: 7,
    TimelineEventType.WITHDRAWAL: 8,
    TimelineEventType.NETWORK_FEE_PREPAYMENT: 9,
    TimelineEventType.TAX_REVENUE: 0,
    TimelineEventType.TAX_RETURN_OF_CAPITAL: 1,
    TimelineEventType.TAX_REIMBURSEMENT: 2,
    TimelineEventType.TAX_EXPENSE_VOTE_FEES: 3,
    TimelineEventType.TAX_EXPENSE_NETWORK_FEE: 4,
    TimelineEventType.TAX_EXPENSE_HOSTING: 5,
    TimelineEventType.TAX_EXPENSE_SOFTWARE: 6,
    TimelineEventType.TAX_EXPENSE_CONTRACTOR: 7,
    TimelineEventType.TAX_EXPENSE_HARDWARE: 8,
    TimelineEventType.TAX_EXPENSE_OTHER: 9,
}

_TAX_EXPENSE_TYPES: dict[str, TimelineEventType] = {
    ExpenseCategory.VOTE_FEES.lower(): TimelineEventType.TAX_EXPENSE_VOTE_FEES,
    NETWORK_FEE_CATEGORY.lower(): TimelineEventType.TAX_EXPENSE_NETWORK_FEE,
    ExpenseCategory.HOSTING.lower(): TimelineEventType.TAX_EXPENSE_HOSTING,
    ExpenseCategory.SOFTWARE.lower(): TimelineEventType.TAX_EXPENSE_SOFTWARE,
    ExpenseCategory.CONTRACTOR.lower(): TimelineEventType.TAX_EXPENSE_CONTRACTOR,
    ExpenseCategory.HARDWARE.lower(): TimelineEventType.TAX_EXPENSE_HARDWARE,
}

_EPOCH_IN_TEXT = re.compile(r"epoch (\d+)", re.IGNORECASE)


class TimelineEvent(BaseModel):
    """One timeline entry. Cumulative fields are filled in by ``accumulate``."""

    model_config = ConfigDict(frozen=True)

    date: str
    epoch: int | None = None
    event_type: TimelineEventType
    label: str
    sublabel: str | None = None
    amount_lamports: int
    amount_usd: Decimal
    is_pnl: bool = True
    cumulative_profit_usd: Decimal = ZERO
    cumulative_revenue_usd: Decimal = ZERO
    cumulative_expenses_usd: Decimal = ZERO

    @property
    def amount_sol(self) -> Decimal:
        return lamports_to_sol(self.amount_lamports)


def event_sort_key(event: TimelineEvent) -> tuple[date, str, int]:
    # Unknown or unparsable dates sort before every real date.
    return (parse_iso_date(event.date) or date.min, event.date, TYPE_ORDER[event.event_type])


def accumulate(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Walk ``events`` in order and stamp each with the running totals after it.

    Balance-sheet events leave the totals unchanged but still carry them.
    """
    profit = revenue = expenses = ZERO
    walked: list[TimelineEvent] = []
    for event in events:
        if event.is_pnl:
            if event.amount_usd >= 0:
                revenue += event.amount_usd
            else:
                expenses += -event.amount_usd
            profit += event.amount_usd
        walked.append(
            event.model_copy(
                update={
                    "cumulative_profit_usd": profit,
                    "cumulative_revenue_usd": revenue,
                    "cumulative_expenses_usd": expenses,
                }
            )
        )
    return walked


def sort_and_accumulate(events: Sequence[TimelineEvent]) -> list[TimelineEvent]:
    return accumulate(sorted(events, key=event_sort_key))


class _EventFactory:
    def __init__(self, sources: ReportSources) -> None:
        self.sources = sources

    def price(self, event_date: str) -> Decimal:
        return resolve_price(self.sources.prices, event_date, self.sources.fallback_price)

    def make(
        self,
        *,
        event_date: str | None,
        event_type: TimelineEventType,
        label: str,
        amount_lamports: int,
        epoch: int | None = None,
        sublabel: str | None = None,
        is_pnl: bool = True,
    ) -> TimelineEvent:
        resolved_date = date_or_unknown(event_date)
        usd = lamports_to_sol(amount_lamports) * self.price(resolved_date)
        return TimelineEvent(
            date=resolved_date,
            epoch=epoch,
            event_type=event_type,
            label=label,
            sublabel=sublabel,
            amount_lamports=amount_lamports,
            amount_usd=usd,
            is_pnl=is_pnl,
        )

    def transfer(
        self,
        transfer: Transfer,
        event_type: TimelineEventType,
        label: str,
        sublabel: str | None,
        *,
        is_pnl: bool,
    ) -> TimelineEvent:
        return self.make(
            event_date=transfer.date,
            event_type=event_type,
            label=label,
            sublabel=sublabel,
            amount_lamports=transfer.amount_lamports,
            is_pnl=is_pnl,
        )


def _net_of_coverage(lamports: int, coverage: Decimal) -> int:
    uncovered = Decimal(lamports) * (Decimal("1") - coverage)
    return int(uncovered.to_integral_value(rounding=ROUND_HALF_UP))


def build_timeline(sources: ReportSources) -> list[TimelineEvent]:
    """Operating P/L timeline over every source slice."""
    factory = _EventFactory(sources)
    events: list[TimelineEvent] = []

    for reward in sources.rewards:
        events.append(
            factory.make(
                event_date=reward.date,
                event_type=TimelineEventType.COMMISSION,
                label="Staking commission",
                sublabel=f"Epoch {reward.epoch}",
                amount_lamports=reward.amount_lamports,
                epoch=reward.epoch,
            )
        )

    for fees in sources.leader_fees:
        events.append(
            factory.make(
                event_date=fees.date,
                event_type=TimelineEventType.LEADER_FEES,
                label="Leader fees",
                sublabel=f"Epoch {fees.epoch} · {fees.blocks_produced} blocks",
                amount_lamports=fees.amount_lamports,
                epoch=fees.epoch,
            )
        )

    if sources.mev_claims:
        for claim in sources.mev_claims:
            events.append(
                factory.make(
                    event_date=claim.date,
                    event_type=TimelineEventType.MEV,
                    label="MEV tips (Jito)",
                    sublabel=f"Epoch {claim.epoch}",
                    amount_lamports=claim.amount_lamports,
                    epoch=claim.epoch,
                )
            )
    else:
        for transfer in sources.transfers.mev_deposits:
            events.append(factory.transfer(transfer, TimelineEventType.MEV, "MEV tips (Jito)", None, is_pnl=True))

    for claim in sources.incentive_claims:
        events.append(
            factory.make(
                event_date=claim.date,
                event_type=TimelineEventType.INCENTIVE,
                label="BAM incentives (Jito)",
                sublabel=f"Epoch {claim.epoch} · jitoSOL reward",
                amount_lamports=claim.amount_lamports,
                epoch=claim.epoch,
            )
        )

    for cost in sources.vote_costs:
        coverage_date = parse_iso_date(cost.date) or FALLBACK_COVERAGE_DATE
        coverage = coverage_fraction(sources.acceptance_date, coverage_date)
        net_lamports = _net_of_coverage(cost.amount_lamports, coverage)
        sublabel = f"Epoch {cost.epoch}"
        if coverage > 0:
            sublabel = f"Epoch {cost.epoch} · SFDP {coverage_percent_label(coverage)} offset"
        events.append(
            factory.make(
                event_date=cost.date,
                event_type=TimelineEventType.VOTE_COST,
                label="Vote costs",
                sublabel=sublabel,
                amount_lamports=-net_lamports,
                epoch=cost.epoch,
            )
        )

    for fee in sources.network_fees:
        events.append(
            factory.make(
                event_date=fee.date,
                event_type=TimelineEventType.NETWORK_FEE,
                label="DoubleZero fees",
                sublabel=f"Epoch {fee.epoch}",
                amount_lamports=-fee.amount_lamports,
                epoch=fee.epoch,
            )
        )

    for expense in sources.expenses:
        events.append(
            TimelineEvent(
                date=date_or_unknown(expense.date),
                event_type=TimelineEventType.EXPENSE,
                label=f"{expense.vendor} — {expense.category}",
                sublabel=expense.description,
                amount_lamports=0,
                amount_usd=-expense.amount_usd,
            )
        )

    for transfer in sources.transfers.seeding:
        events.append(
            factory.transfer(
                transfer,
                TimelineEventType.SEEDING,
                "Capital contribution",
                f"{transfer.from_label} → {transfer.to_label}",
                is_pnl=False,
            )
        )

    for transfer in sources.transfers.withdrawals:
        events.append(
            factory.transfer(
                transfer,
                TimelineEventType.WITHDRAWAL,
                "Withdrawal",
                f"→ {transfer.to_label}",
                is_pnl=False,
            )
        )

    for transfer in sources.transfers.network_fee_prepayments:
        events.append(
            factory.transfer(
                transfer,
                TimelineEventType.NETWORK_FEE_PREPAYMENT,
                "DoubleZero prepayment",
                "Deposit to DoubleZero PDA",
                is_pnl=False,
            )
        )

    return sort_and_accumulate(events)


def epoch_from_description(description: str) -> int | None:
    match = _EPOCH_IN_TEXT.search(description)
    return int(match.group(1)) if match else None


def tax_event_type(row: TaxRow) -> TimelineEventType:
    if row.entry_type == TaxEntryType.REVENUE:
        return TimelineEventType.TAX_REVENUE
    if row.entry_type == TaxEntryType.REIMBURSEMENT:
        return TimelineEventType.TAX_REIMBURSEMENT
    if row.entry_type == TaxEntryType.RETURN_OF_CAPITAL:
        return TimelineEventType.TAX_RETURN_OF_CAPITAL
    return _TAX_EXPENSE_TYPES.get(row.category.lower(), TimelineEventType.TAX_EXPENSE_OTHER)


def _tax_labels(row: TaxRow, event_type: TimelineEventType) -> tuple[str, str]:
    fixed = {
        TimelineEventType.TAX_REVENUE: "Taxable withdrawal",
        TimelineEventType.TAX_REIMBURSEMENT: "SFDP reimbursement",
        TimelineEventType.TAX_RETURN_OF_CAPITAL: "Return of capital",
        TimelineEventType.TAX_EXPENSE_VOTE_FEES: "Vote fees",
        TimelineEventType.TAX_EXPENSE_NETWORK_FEE: "DoubleZero fees",
    }
    if event_type in fixed:
        return fixed[event_type], row.description

    vendor, separator, detail = row.description.partition(" - ")
    if separator:
        return f"{vendor.strip()} — {row.category}", detail.strip()
    return f"{row.category} expense", row.description


def tax_row_to_event(row: TaxRow) -> TimelineEvent:
    event_type = tax_event_type(row)
    label, sublabel = _tax_labels(row, event_type)
    lamports = row.amount_lamports or 0
    usd = row.usd_value
    is_pnl = event_type != TimelineEventType.TAX_RETURN_OF_CAPITAL
    if row.entry_type == TaxEntryType.EXPENSE:
        lamports, usd = -lamports, -usd

    return TimelineEvent(
        date=row.date,
        epoch=epoch_from_description(row.description),
        event_type=event_type,
        label=label,
        sublabel=sublabel,
        amount_lamports=lamports,
        amount_usd=usd,
        is_pnl=is_pnl,
    )


def build_tax_timeline(sources: ReportSources, config: ValidatorConfig) -> list[TimelineEvent]:
    """Tax-basis timeline: every tax row over the full history as an event."""
    ledger = build_tax_rows(sources, config)
    return sort_and_accumulate([tax_row_to_event(row) for row in ledger.rows])


__all__ = [
    "FALLBACK_COVERAGE_DATE",
    "TYPE_ORDER",
    "TimelineEvent",
    "TimelineEventType",
    "accumulate",
    "build_tax_timeline",
    "build_timeline",
    "epoch_from_description",
    "event_sort_key",
    "sort_and_accumulate",
    "tax_event_type",
    "tax_row_to_event",
]
