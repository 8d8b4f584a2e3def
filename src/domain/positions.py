from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from enum import StrEnum
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from .base_types import (
    I64_MAX,
    U64_MAX,
    Address,
    clamp_i64,
    lamports_to_sol,
    saturating_add_u64,
    saturating_sub_u64,
)
from .sources import ReportSources
from .stake_state import StakeAccountDecodeError, StakeState, parse_stake_account

logger = logging.getLogger(__name__)

RECONCILIATION_TOLERANCE_LAMPORTS = 100_000

STAKE_POOL_TOTAL_LAMPORTS_OFFSET = 258
STAKE_POOL_TOKEN_SUPPLY_OFFSET = 266
STAKE_POOL_MIN_SIZE = 274
STAKE_POOL_RATE_BOUNDS = (Decimal("0.9"), Decimal("2.0"))
DEFAULT_STAKE_POOL_RATE = Decimal("1")

_U64 = struct.Struct("<Q")


class AccountType(StrEnum):
    VOTE_ACCOUNT = "VoteAccount"
    IDENTITY = "Identity"
    WITHDRAW_AUTHORITY = "WithdrawAuthority"
    LIQUID_TOKEN_ACCOUNT = "LiquidToken"
    STAKE_ACCOUNT = "StakeAccount"
    PERSONAL_WALLET = "PersonalWallet"


class ReconciliationStatus(StrEnum):
    OK = "OK"
    VARIANCE = "VARIANCE"


class AccountBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: Address
    account_type: AccountType
    balance_lamports: int
    rent_exempt_reserve: int = 0
    withdrawable_lamports: int = 0
    snapshot_slot: int = 0
    snapshot_time: int | None = None

    @property
    def balance_sol(self) -> Decimal:
        return lamports_to_sol(self.balance_lamports)

    @property
    def withdrawable_sol(self) -> Decimal:
        return lamports_to_sol(self.withdrawable_lamports)


class StakeAccountInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: Address
    balance_lamports: int
    state: StakeState
    voter: Address | None = None
    lockup_epoch: int | None = None
    is_liquid: bool = False
    snapshot_slot: int = 0

    @property
    def balance_sol(self) -> Decimal:
        return lamports_to_sol(self.balance_lamports)


@dataclass(frozen=True)
class RawStakeAccount:
    """An undecoded stake account as returned by the chain collaborator."""

    address: str
    balance_lamports: int
    data: bytes


@dataclass(frozen=True)
class IncomeTotals:
    """Lifetime cash-flow totals in lamports."""

    income_lamports: int = 0
    expenses_lamports: int = 0
    withdrawals_lamports: int = 0
    deposits_lamports: int = 0


class ValidatorPosition(BaseModel):
    """Point-in-time aggregate over every tracked account. All amounts in lamports."""

    model_config = ConfigDict(frozen=True)

    snapshot_time: int
    snapshot_slot: int

    vote_account_lamports: int
    vote_account_withdrawable: int
    identity_lamports: int
    withdraw_authority_lamports: int

    liquid_token_lamports: int
    liquid_token_sol_rate: Decimal
    liquid_token_sol_equivalent: int

    stake_accounts_liquid: int
    stake_accounts_locked: int
    stake_accounts_total: int
    stake_account_count: int

    total_liquid_lamports: int
    total_locked_lamports: int
    total_assets_lamports: int

    lifetime_income_lamports: int
    lifetime_expenses_lamports: int
    lifetime_withdrawals_lamports: int
    lifetime_deposits_lamports: int
    lst_appreciation_lamports: int

    net_cash_flow_lamports: int
    expected_balance_lamports: int
    reconciliation_diff_lamports: int

    @property
    def total_assets_sol(self) -> Decimal:
        return lamports_to_sol(self.total_assets_lamports)

    def is_reconciled(self) -> bool:
        return abs(self.reconciliation_diff_lamports) < RECONCILIATION_TOLERANCE_LAMPORTS


class ReconciliationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    net_cash_flow_lamports: int
    lst_adjustment_lamports: int
    expected_lamports: int
    actual_lamports: int
    difference_lamports: int
    status: ReconciliationStatus


def parse_stake_pool_rate(data: bytes) -> Decimal:
    """SOL per pool token from raw stake-pool account data.

    Falls back to 1 for a short record, an empty pool or an implausible rate.
    """
    if len(data) < STAKE_POOL_MIN_SIZE:
        logger.warning("Stake pool account too small (%d bytes); using rate 1", len(data))
        return DEFAULT_STAKE_POOL_RATE

    (total_lamports,) = _U64.unpack_from(data, STAKE_POOL_TOTAL_LAMPORTS_OFFSET)
    (pool_token_supply,) = _U64.unpack_from(data, STAKE_POOL_TOKEN_SUPPLY_OFFSET)
    if pool_token_supply == 0:
        logger.warning("Stake pool has zero token supply; using rate 1")
        return DEFAULT_STAKE_POOL_RATE

    rate = Decimal(total_lamports) / Decimal(pool_token_supply)
    low, high = STAKE_POOL_RATE_BOUNDS
    if not low <= rate <= high:
        logger.warning(
            "Stake pool rate %s looks suspicious (total_lamports=%d, supply=%d); using rate 1",
            rate,
            total_lamports,
            pool_token_supply,
        )
        return DEFAULT_STAKE_POOL_RATE
    return rate


def collect_stake_accounts(
    raw_accounts: Iterable[RawStakeAccount],
    current_epoch: int,
    snapshot_slot: int = 0,
) -> list[StakeAccountInfo]:
    """Decode every account, excluding (and logging) the ones that fail to decode."""
    collected: list[StakeAccountInfo] = []
    for raw in raw_accounts:
        try:
            parsed = parse_stake_account(raw.data, current_epoch)
        except StakeAccountDecodeError as exc:
            logger.warning(
                "Excluding stake account %s: %s (discriminant=%s, %d bytes)",
                raw.address,
                exc,
                exc.discriminant,
                exc.data_length,
            )
            continue
        collected.append(
            StakeAccountInfo(
                account=Address(raw.address),
                balance_lamports=raw.balance_lamports,
                state=parsed.state,
                voter=Address(parsed.voter) if parsed.voter else None,
                lockup_epoch=parsed.lockup_epoch,
                is_liquid=parsed.is_liquid,
                snapshot_slot=snapshot_slot,
            )
        )
    return collected


def income_totals(sources: ReportSources) -> IncomeTotals:
    """Lifetime on-chain cash flows. Off-chain USD expenses are not included.

    Expects unwindowed input from ``assemble_lifetime_sources``.
    """

    def total(amounts: Iterable[int]) -> int:
        running = 0
        for amount in amounts:
            running = saturating_add_u64(running, amount)
        return running

    income = total(
        record.amount_lamports
        for records in (sources.rewards, sources.leader_fees, sources.mev_claims, sources.incentive_claims)
        for record in records
    )
    expenses = total(
        record.amount_lamports for records in (sources.vote_costs, sources.network_fees) for record in records
    )
    return IncomeTotals(
        income_lamports=income,
        expenses_lamports=expenses,
        withdrawals_lamports=total(t.amount_lamports for t in sources.transfers.withdrawals),
        deposits_lamports=total(t.amount_lamports for t in sources.transfers.seeding),
    )


def liquid_token_sol_equivalent(token_lamports: int, rate: Decimal) -> int:
    value = (Decimal(token_lamports) * rate).to_integral_value(rounding=ROUND_FLOOR)
    return min(int(value), U64_MAX)


def build_position_snapshot(
    balances: Sequence[AccountBalance],
    stake_accounts: Sequence[StakeAccountInfo],
    liquid_token_lamports: int,
    liquid_token_rate: Decimal,
    income: IncomeTotals,
    snapshot_slot: int,
    snapshot_time: int,
) -> ValidatorPosition:
    seen: set[str] = set()
    vote_lamports = vote_withdrawable = identity_lamports = withdraw_auth_lamports = 0
    for balance in balances:
        if balance.account in seen:
            continue
        seen.add(balance.account)
        if balance.account_type == AccountType.VOTE_ACCOUNT:
            vote_lamports = balance.balance_lamports
            vote_withdrawable = balance.withdrawable_lamports
        elif balance.account_type == AccountType.IDENTITY:
            identity_lamports = balance.balance_lamports
        elif balance.account_type == AccountType.WITHDRAW_AUTHORITY:
            withdraw_auth_lamports = balance.balance_lamports

    stake_liquid = stake_locked = 0
    for stake in stake_accounts:
        if stake.is_liquid:
            stake_liquid = saturating_add_u64(stake_liquid, stake.balance_lamports)
        else:
            stake_locked = saturating_add_u64(stake_locked, stake.balance_lamports)
    stake_total = saturating_add_u64(stake_liquid, stake_locked)

    token_equivalent = liquid_token_sol_equivalent(liquid_token_lamports, liquid_token_rate)

    total_liquid = 0
    for amount in (vote_withdrawable, identity_lamports, withdraw_auth_lamports, stake_liquid, token_equivalent):
        total_liquid = saturating_add_u64(total_liquid, amount)

    vote_locked = saturating_sub_u64(vote_lamports, vote_withdrawable)
    total_locked = saturating_add_u64(vote_locked, stake_locked)

    total_assets = 0
    for amount in (vote_lamports, identity_lamports, withdraw_auth_lamports, stake_total, token_equivalent):
        total_assets = saturating_add_u64(total_assets, amount)

    net_cash_flow = clamp_i64(
        income.income_lamports - income.expenses_lamports - income.withdrawals_lamports + income.deposits_lamports
    )
    # Appreciation of the liquid token is not tracked historically.
    lst_appreciation = 0
    expected = clamp_i64(net_cash_flow + lst_appreciation)
    diff = clamp_i64(min(total_assets, I64_MAX) - expected)

    return ValidatorPosition(
        snapshot_time=snapshot_time,
        snapshot_slot=snapshot_slot,
        vote_account_lamports=vote_lamports,
        vote_account_withdrawable=vote_withdrawable,
        identity_lamports=identity_lamports,
        withdraw_authority_lamports=withdraw_auth_lamports,
        liquid_token_lamports=liquid_token_lamports,
        liquid_token_sol_rate=liquid_token_rate,
        liquid_token_sol_equivalent=token_equivalent,
        stake_accounts_liquid=stake_liquid,
        stake_accounts_locked=stake_locked,
        stake_accounts_total=stake_total,
        stake_account_count=len(stake_accounts),
        total_liquid_lamports=total_liquid,
        total_locked_lamports=total_locked,
        total_assets_lamports=total_assets,
        lifetime_income_lamports=income.income_lamports,
        lifetime_expenses_lamports=income.expenses_lamports,
        lifetime_withdrawals_lamports=income.withdrawals_lamports,
        lifetime_deposits_lamports=income.deposits_lamports,
        lst_appreciation_lamports=lst_appreciation,
        net_cash_flow_lamports=net_cash_flow,
        expected_balance_lamports=expected,
        reconciliation_diff_lamports=diff,
    )


def reconcile(position: ValidatorPosition) -> ReconciliationResult:
    status = ReconciliationStatus.OK if position.is_reconciled() else ReconciliationStatus.VARIANCE
    return ReconciliationResult(
        net_cash_flow_lamports=position.net_cash_flow_lamports,
        lst_adjustment_lamports=position.lst_appreciation_lamports,
        expected_lamports=position.expected_balance_lamports,
        actual_lamports=position.total_assets_lamports,
        difference_lamports=position.reconciliation_diff_lamports,
        status=status,
    )


__all__ = [
    "DEFAULT_STAKE_POOL_RATE",
    "RECONCILIATION_TOLERANCE_LAMPORTS",
    "AccountBalance",
    "AccountType",
    "IncomeTotals",
    "RawStakeAccount",
    "ReconciliationResult",
    "ReconciliationStatus",
    "StakeAccountInfo",
    "ValidatorPosition",
    "build_position_snapshot",
    "collect_stake_accounts",
    "income_totals",
    "liquid_token_sol_equivalent",
    "parse_stake_pool_rate",
    "reconcile",
]
