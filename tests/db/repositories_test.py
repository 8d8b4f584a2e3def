from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from db.repositories import (
    EpochRewardRepository,
    ExpenseRepository,
    IncentiveClaimRepository,
    PositionSnapshotRepository,
    PriceRepository,
    RecurringExpenseRepository,
    TransferRepository,
    VoteCostRepository,
)
from domain.positions import IncomeTotals, StakeAccountInfo, build_position_snapshot
from domain.records import EpochReward, ExpenseCategory, IncentiveClaim, RecurringExpense
from domain.stake_state import StakeState
from tests.constants import COINBASE, PERSONAL_WALLET, SOL, STRANGER, VOTE_ACCOUNT, WITHDRAW_AUTHORITY
from tests.helpers.records import expense, transfer, vote_cost


@pytest.fixture()
def reward_repo(test_session: Session) -> EpochRewardRepository:
    return EpochRewardRepository(test_session)


@pytest.fixture()
def transfer_repo(test_session: Session) -> TransferRepository:
    return TransferRepository(test_session)


def test_store_and_get_epoch_rewards(reward_repo: EpochRewardRepository) -> None:
    rewards = [
        EpochReward(epoch=801, amount_lamports=2 * SOL, date="2025-12-02", commission_percent=5),
        EpochReward(epoch=800, amount_lamports=SOL, date="2025-12-01", commission_percent=5),
    ]

    assert reward_repo.store(rewards) == 2

    assert reward_repo.get(801) == rewards[0]
    assert reward_repo.get(999) is None
    assert [r.epoch for r in reward_repo.list()] == [800, 801]
    assert reward_repo.latest_epoch() == 801


def test_restoring_an_epoch_replaces_it(reward_repo: EpochRewardRepository) -> None:
    reward_repo.store([EpochReward(epoch=800, amount_lamports=SOL, date="2025-12-01")])
    reward_repo.store([EpochReward(epoch=800, amount_lamports=3 * SOL, date="2025-12-01")])

    (stored,) = reward_repo.list()
    assert stored.amount_lamports == 3 * SOL


def test_list_epoch_range(test_session: Session) -> None:
    repo = VoteCostRepository(test_session)
    repo.store([vote_cost(epoch, SOL, "2025-12-01") for epoch in range(800, 806)])

    assert [c.epoch for c in repo.list(start_epoch=802, end_epoch=804)] == [802, 803, 804]
    assert repo.list()[0].source == "rpc"


def test_empty_repository_has_no_latest_epoch(reward_repo: EpochRewardRepository) -> None:
    assert reward_repo.latest_epoch() is None
    assert reward_repo.list() == []


def test_incentive_claim_keeps_decimal_rate(test_session: Session) -> None:
    repo = IncentiveClaimRepository(test_session)
    claim = IncentiveClaim(
        epoch=810,
        amount_lamports=1_180_000_000,
        date="2025-12-05",
        amount_token_lamports=SOL,
        token_sol_rate=Decimal("1.18"),
        tx_signature="claim-sig",
    )
    repo.store([claim])

    assert repo.get(810) == claim


def test_transfer_store_skips_duplicates(transfer_repo: TransferRepository) -> None:
    seed = transfer(PERSONAL_WALLET, VOTE_ACCOUNT, 10 * SOL, "2025-11-20", signature="sig-a")
    withdrawal = transfer(WITHDRAW_AUTHORITY, COINBASE, SOL, "2025-12-01", signature="sig-b", to_label="Coinbase")

    assert transfer_repo.store([seed, withdrawal]) == 2
    assert transfer_repo.store([seed]) == 0
    assert transfer_repo.list() == [seed, withdrawal]


def test_transfer_list_filters_by_date(transfer_repo: TransferRepository) -> None:
    transfer_repo.create(transfer(PERSONAL_WALLET, VOTE_ACCOUNT, SOL, "2025-11-20"))
    transfer_repo.create(transfer(PERSONAL_WALLET, VOTE_ACCOUNT, SOL, "2025-12-20"))
    transfer_repo.create(transfer(STRANGER, VOTE_ACCOUNT, SOL, None))

    assert [t.date for t in transfer_repo.list(start_date="2025-12-01")] == ["2025-12-20"]
    assert len(transfer_repo.list()) == 3


def test_expense_repositories(test_session: Session) -> None:
    expenses = ExpenseRepository(test_session)
    recurring = RecurringExpenseRepository(test_session)

    created = expenses.create(expense("2025-12-01", "450.25", category=ExpenseCategory.SOFTWARE, invoice_id="INV-9"))
    template = recurring.create(
        RecurringExpense(
            vendor="Latitude",
            category=ExpenseCategory.HOSTING,
            description="Bare metal server",
            amount_usd=Decimal("500"),
            start_date="2025-11-14",
        )
    )

    assert created.amount_usd == Decimal("450.25")
    assert created.category == ExpenseCategory.SOFTWARE
    assert expenses.list(end_date="2025-11-30") == []
    assert expenses.list() == [created]
    assert recurring.list() == [template]
    assert template.end_date is None


def test_price_repository(test_session: Session) -> None:
    repo = PriceRepository(test_session)
    repo.store({"2025-12-01": Decimal("201.5"), "2025-12-02": Decimal("199")})
    repo.store({"2025-12-02": Decimal("198")})

    assert repo.get("2025-12-02") == Decimal("198")
    assert repo.get("2025-12-03") is None
    assert repo.get_map(start_date="2025-12-02") == {"2025-12-02": Decimal("198")}


def test_position_snapshot_repository(test_session: Session) -> None:
    repo = PositionSnapshotRepository(test_session)
    accounts = [
        StakeAccountInfo(account=STRANGER, balance_lamports=3 * SOL, state=StakeState.ACTIVE, voter=VOTE_ACCOUNT),
        StakeAccountInfo(account=COINBASE, balance_lamports=SOL, state=StakeState.INACTIVE, is_liquid=True),
    ]

    repo.store_stake_accounts(accounts)
    repo.store_stake_accounts(accounts[:1])

    assert repo.list_stake_accounts() == accounts[:1]

    position = build_position_snapshot(
        [],
        accounts,
        liquid_token_lamports=SOL,
        liquid_token_rate=Decimal("1.15"),
        income=IncomeTotals(income_lamports=5 * SOL),
        snapshot_slot=10,
        snapshot_time=1_765_000_000,
    )
    repo.store_balance_snapshot(position, "2025-12-10", 812)
    repo.store_balance_snapshot(position, "2025-12-10", 813)

    (row,) = repo.list_balance_history()
    assert row.epoch == 813
    assert row.total_lamports == 5_150_000_000
    assert row.liquid_token_rate == Decimal("1.15")
    assert row.cumulative_income_lamports == 5 * SOL
