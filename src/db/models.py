from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class TransferOrm(Base):
    __tablename__ = "sol_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    signature: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    from_address: Mapped[str] = mapped_column(String, nullable=False)
    to_address: Mapped[str] = mapped_column(String, nullable=False)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    from_label: Mapped[str] = mapped_column(String, nullable=False, default="")
    to_label: Mapped[str] = mapped_column(String, nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("signature", "from_address", "to_address", "amount_lamports", name="uq_sol_transfer"),
        Index("ix_sol_transfers_date", "date"),
    )


class EpochRewardOrm(Base):
    __tablename__ = "epoch_rewards"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    commission_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class LeaderFeesOrm(Base):
    __tablename__ = "leader_fees"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    blocks_produced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MevClaimOrm(Base):
    __tablename__ = "mev_claims"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    total_tips_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    commission_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class IncentiveClaimOrm(Base):
    __tablename__ = "incentive_claims"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    amount_token_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    token_sol_rate: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    tx_signature: Mapped[str] = mapped_column(String, nullable=False, default="")


class VoteCostOrm(Base):
    __tablename__ = "vote_costs"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(String, nullable=False, default="")
    is_estimate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class NetworkFeeOrm(Base):
    __tablename__ = "network_fees"

    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    fee_base_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fee_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_estimate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ExpenseOrm(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String, nullable=False)
    vendor: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    amount_usd: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    paid_with: Mapped[str] = mapped_column(String, nullable=False, default="")
    invoice_id: Mapped[str | None] = mapped_column(String, nullable=True)


class RecurringExpenseOrm(Base):
    __tablename__ = "recurring_expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    amount_usd: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    paid_with: Mapped[str] = mapped_column(String, nullable=False, default="")
    start_date: Mapped[str] = mapped_column(String, nullable=False)
    end_date: Mapped[str | None] = mapped_column(String, nullable=True)


class DailyPriceOrm(Base):
    __tablename__ = "prices"

    date: Mapped[str] = mapped_column(String, primary_key=True)
    usd_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)


class StakeAccountOrm(Base):
    __tablename__ = "stake_accounts"

    account: Mapped[str] = mapped_column(String, primary_key=True)
    balance_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    state: Mapped[str] = mapped_column(String, nullable=False)
    voter: Mapped[str | None] = mapped_column(String, nullable=True)
    lockup_epoch: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_liquid: Mapped[bool] = mapped_column(Boolean, nullable=False)
    snapshot_slot: Mapped[int] = mapped_column(BigInteger, nullable=False)


class BalanceSnapshotOrm(Base):
    __tablename__ = "balance_history"

    date: Mapped[str] = mapped_column(String, primary_key=True)
    epoch: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot_slot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vote_account_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    identity_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    withdraw_authority_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stake_liquid_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stake_locked_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    liquid_token_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    liquid_token_rate: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    total_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cumulative_income_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cumulative_expenses_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cumulative_withdrawals_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cumulative_deposits_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
