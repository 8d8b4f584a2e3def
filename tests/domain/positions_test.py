from datetime import date
from decimal import Decimal

import pytest

from domain.base_types import U64_MAX
from domain.categorize import categorize_transfers
from domain.positions import (
    DEFAULT_STAKE_POOL_RATE,
    AccountBalance,
    AccountType,
    IncomeTotals,
    RawStakeAccount,
    ReconciliationStatus,
    StakeAccountInfo,
    ValidatorPosition,
    build_position_snapshot,
    collect_stake_accounts,
    income_totals,
    liquid_token_sol_equivalent,
    parse_stake_pool_rate,
    reconcile,
)
from domain.records import EpochReward, LeaderFees, MevClaim, NetworkFee
from domain.sources import ReportSources, assemble_lifetime_sources, assemble_report_sources
from domain.stake_state import StakeState
from domain.validator_config import ValidatorConfig
from tests.constants import (
    COINBASE,
    IDENTITY,
    PERSONAL_WALLET,
    SOL,
    STRANGER,
    VOTE_ACCOUNT,
    WITHDRAW_AUTHORITY,
)
from tests.helpers.records import expense, transfer, vote_cost
from tests.helpers.stake_accounts import delegated_account, initialized_account, stake_pool_account

BALANCES = [
    AccountBalance(
        account=VOTE_ACCOUNT,
        account_type=AccountType.VOTE_ACCOUNT,
        balance_lamports=10 * SOL,
        withdrawable_lamports=8 * SOL,
    ),
    AccountBalance(account=IDENTITY, account_type=AccountType.IDENTITY, balance_lamports=SOL),
    AccountBalance(account=WITHDRAW_AUTHORITY, account_type=AccountType.WITHDRAW_AUTHORITY, balance_lamports=2 * SOL),
]

STAKES = [
    StakeAccountInfo(account=STRANGER, balance_lamports=3 * SOL, state=StakeState.INACTIVE, is_liquid=True),
    StakeAccountInfo(account=COINBASE, balance_lamports=4 * SOL, state=StakeState.ACTIVE, is_liquid=False),
]


def _position(income: IncomeTotals, balances: list[AccountBalance] = BALANCES) -> ValidatorPosition:
    return build_position_snapshot(
        balances,
        STAKES,
        liquid_token_lamports=2 * SOL,
        liquid_token_rate=Decimal("1.1"),
        income=income,
        snapshot_slot=350_000_000,
        snapshot_time=1_765_000_000,
    )


def test_parse_stake_pool_rate() -> None:
    assert parse_stake_pool_rate(stake_pool_account(1_250 * SOL, 1_000 * SOL)) == Decimal("1.25")


@pytest.mark.parametrize(
    "data",
    [
        stake_pool_account(SOL, SOL, size=200),
        stake_pool_account(SOL, 0),
        stake_pool_account(5 * SOL, SOL),
        stake_pool_account(SOL, 2 * SOL),
    ],
)
def test_parse_stake_pool_rate_falls_back_to_one(data: bytes) -> None:
    assert parse_stake_pool_rate(data) == DEFAULT_STAKE_POOL_RATE


def test_collect_stake_accounts_excludes_undecodable_accounts(caplog: pytest.LogCaptureFixture) -> None:
    raw = [
        RawStakeAccount(address="good-delegated", balance_lamports=5 * SOL, data=delegated_account(activation=10)),
        RawStakeAccount(address="bad", balance_lamports=SOL, data=b"\x09\x00\x00\x00"),
        RawStakeAccount(address="good-initialized", balance_lamports=SOL, data=initialized_account()),
    ]

    collected = collect_stake_accounts(raw, current_epoch=800, snapshot_slot=42)

    assert [info.account for info in collected] == ["good-delegated", "good-initialized"]
    assert collected[0].state == StakeState.ACTIVE
    assert not collected[0].is_liquid
    assert collected[1].is_liquid
    assert all(info.snapshot_slot == 42 for info in collected)
    assert "Excluding stake account bad" in caplog.text


def test_income_totals_counts_onchain_flows_only(validator_config: ValidatorConfig) -> None:
    sources = ReportSources(
        rewards=[EpochReward(epoch=1, amount_lamports=2 * SOL, date="2025-12-01")],
        leader_fees=[LeaderFees(epoch=1, amount_lamports=SOL, date="2025-12-01")],
        mev_claims=[MevClaim(epoch=1, amount_lamports=SOL, date="2025-12-01")],
        vote_costs=[vote_cost(1, SOL // 2, "2025-12-01")],
        network_fees=[NetworkFee(epoch=1, amount_lamports=SOL // 4, date="2025-12-01")],
        expenses=[expense("2025-12-01", "1000")],
        transfers=categorize_transfers(
            [
                transfer(PERSONAL_WALLET, VOTE_ACCOUNT, 20 * SOL),
                transfer(WITHDRAW_AUTHORITY, COINBASE, 3 * SOL),
            ],
            validator_config,
        ),
    )

    totals = income_totals(sources)

    assert totals == IncomeTotals(
        income_lamports=4 * SOL,
        expenses_lamports=SOL // 2 + SOL // 4,
        withdrawals_lamports=3 * SOL,
        deposits_lamports=20 * SOL,
    )


def test_income_totals_from_lifetime_sources_keep_every_date(validator_config: ValidatorConfig) -> None:
    rewards = [
        EpochReward(epoch=880, amount_lamports=5 * SOL, date="2025-12-01"),
        EpochReward(epoch=881, amount_lamports=3 * SOL, date=None),
        EpochReward(epoch=700, amount_lamports=SOL, date="2025-06-01"),
    ]
    vote_costs = [vote_cost(881, SOL, None)]
    transfers = [
        transfer(PERSONAL_WALLET, VOTE_ACCOUNT, 100 * SOL, None),
        transfer(PERSONAL_WALLET, VOTE_ACCOUNT, 7 * SOL, "2026-03-01"),
    ]

    lifetime = income_totals(
        assemble_lifetime_sources(validator_config, rewards=rewards, vote_costs=vote_costs, transfers=transfers)
    )
    windowed = income_totals(
        assemble_report_sources(
            validator_config, date(2026, 1, 31), rewards=rewards, vote_costs=vote_costs, transfers=transfers
        )
    )

    assert lifetime == IncomeTotals(
        income_lamports=9 * SOL,
        expenses_lamports=SOL,
        withdrawals_lamports=0,
        deposits_lamports=107 * SOL,
    )
    assert windowed == IncomeTotals(income_lamports=5 * SOL)


def test_build_position_snapshot_totals() -> None:
    position = _position(IncomeTotals())

    assert position.liquid_token_sol_equivalent == 2_200_000_000
    assert position.stake_accounts_liquid == 3 * SOL
    assert position.stake_accounts_locked == 4 * SOL
    assert position.stake_accounts_total == 7 * SOL
    assert position.stake_account_count == 2
    assert position.total_liquid_lamports == 16_200_000_000
    assert position.total_locked_lamports == 6 * SOL
    assert position.total_assets_lamports == 22_200_000_000
    assert position.total_assets_sol == Decimal("22.2")


def test_duplicate_balances_are_counted_once() -> None:
    doubled = BALANCES + [
        AccountBalance(account=IDENTITY, account_type=AccountType.IDENTITY, balance_lamports=100 * SOL),
    ]

    assert _position(IncomeTotals(), doubled).identity_lamports == SOL


def test_reconciliation_ok_when_cash_flow_matches_assets() -> None:
    income = IncomeTotals(
        income_lamports=25 * SOL,
        expenses_lamports=SOL,
        withdrawals_lamports=5 * SOL,
        deposits_lamports=3_200_000_000,
    )

    result = reconcile(_position(income))

    assert result.expected_lamports == 22_200_000_000
    assert result.difference_lamports == 0
    assert result.lst_adjustment_lamports == 0
    assert result.status == ReconciliationStatus.OK


def test_reconciliation_variance_reports_signed_difference() -> None:
    income = IncomeTotals(income_lamports=20 * SOL)

    position = _position(income)
    result = reconcile(position)

    assert result.difference_lamports == 2_200_000_000
    assert result.status == ReconciliationStatus.VARIANCE
    assert result.difference_lamports == result.actual_lamports - result.expected_lamports


def test_liquid_token_sol_equivalent_floors_and_saturates() -> None:
    assert liquid_token_sol_equivalent(3, Decimal("1.5")) == 4
    assert liquid_token_sol_equivalent(U64_MAX, Decimal("2")) == U64_MAX
