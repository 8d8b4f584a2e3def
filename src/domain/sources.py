from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Sequence

from .categorize import CategorizedTransfers, categorize_transfers
from .expenses import expand_recurring_expenses, filter_records_to_window, recurring_expansion_window
from .pricing import FALLBACK_SOL_PRICE, PriceMap
from .records import (
    EpochReward,
    Expense,
    IncentiveClaim,
    LeaderFees,
    MevClaim,
    NetworkFee,
    RecurringExpense,
    Transfer,
    VoteCost,
)
from .validator_config import ValidatorConfig


@dataclass
class ReportSources:
    """Everything the report builders consume.

    Each slice is independent and may be empty when its collaborator failed.
    """

    rewards: list[EpochReward] = field(default_factory=list)
    leader_fees: list[LeaderFees] = field(default_factory=list)
    mev_claims: list[MevClaim] = field(default_factory=list)
    incentive_claims: list[IncentiveClaim] = field(default_factory=list)
    vote_costs: list[VoteCost] = field(default_factory=list)
    network_fees: list[NetworkFee] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    transfers: CategorizedTransfers = field(default_factory=CategorizedTransfers)
    prices: PriceMap = field(default_factory=dict)
    fallback_price: Decimal = FALLBACK_SOL_PRICE
    acceptance_date: str | None = None


def assemble_report_sources(
    config: ValidatorConfig,
    today: date,
    *,
    rewards: Sequence[EpochReward] = (),
    leader_fees: Sequence[LeaderFees] = (),
    mev_claims: Sequence[MevClaim] = (),
    incentive_claims: Sequence[IncentiveClaim] = (),
    vote_costs: Sequence[VoteCost] = (),
    network_fees: Sequence[NetworkFee] = (),
    expenses: Sequence[Expense] = (),
    recurring_expenses: Sequence[RecurringExpense] = (),
    transfers: Sequence[Transfer] = (),
    prices: PriceMap | None = None,
    fallback_price: Decimal = FALLBACK_SOL_PRICE,
) -> ReportSources:
    """Restrict stored records to the business window and bundle them for the builders.

    Records dated before the first day of the bootstrap month, after ``today``, or
    with no usable date are dropped. Recurring templates are expanded before the
    same window is applied to the resulting expenses.
    """
    cutoff = config.business_start_date()
    kept_rewards = filter_records_to_window(rewards, cutoff, today)

    all_expenses = filter_records_to_window(expenses, cutoff, today)
    if recurring_expenses:
        window = recurring_expansion_window(
            (reward.date for reward in kept_rewards),
            recurring_expenses,
            config.business_start_month(),
            today,
        )
        if window is not None:
            expanded = expand_recurring_expenses(recurring_expenses, *window)
            all_expenses.extend(filter_records_to_window(expanded, cutoff, today))

    return ReportSources(
        rewards=kept_rewards,
        leader_fees=filter_records_to_window(leader_fees, cutoff, today),
        mev_claims=filter_records_to_window(mev_claims, cutoff, today),
        incentive_claims=filter_records_to_window(incentive_claims, cutoff, today),
        vote_costs=filter_records_to_window(vote_costs, cutoff, today),
        network_fees=filter_records_to_window(network_fees, cutoff, today),
        expenses=all_expenses,
        transfers=categorize_transfers(filter_records_to_window(transfers, cutoff, today), config),
        prices=dict(prices or {}),
        fallback_price=fallback_price,
        acceptance_date=config.sfdp_acceptance_date,
    )


def assemble_lifetime_sources(
    config: ValidatorConfig,
    *,
    rewards: Sequence[EpochReward] = (),
    leader_fees: Sequence[LeaderFees] = (),
    mev_claims: Sequence[MevClaim] = (),
    incentive_claims: Sequence[IncentiveClaim] = (),
    vote_costs: Sequence[VoteCost] = (),
    network_fees: Sequence[NetworkFee] = (),
    transfers: Sequence[Transfer] = (),
) -> ReportSources:
    """Bundle every stored on-chain record regardless of its date.

    Undated, pre-bootstrap and future-dated records are all kept. Off-chain expenses
    and prices have no part in lifetime balances and are left empty.
    """
    return ReportSources(
        rewards=list(rewards),
        leader_fees=list(leader_fees),
        mev_claims=list(mev_claims),
        incentive_claims=list(incentive_claims),
        vote_costs=list(vote_costs),
        network_fees=list(network_fees),
        transfers=categorize_transfers(transfers, config),
        acceptance_date=config.sfdp_acceptance_date,
    )


__all__ = ["ReportSources", "assemble_lifetime_sources", "assemble_report_sources"]
