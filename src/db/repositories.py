from __future__ import annotations

from decimal import Decimal
from typing import Generic, Iterable, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db import models
from domain.base_types import Address
from domain.positions import StakeAccountInfo, ValidatorPosition
from domain.pricing import PriceMap
from domain.records import (
    EpochRecord,
    EpochReward,
    Expense,
    ExpenseCategory,
    IncentiveClaim,
    LeaderFees,
    MevClaim,
    NetworkFee,
    RecurringExpense,
    Transfer,
    VoteCost,
)
from domain.stake_state import StakeState

RecordT = TypeVar("RecordT", bound=EpochRecord)


class EpochRecordRepository(Generic[RecordT]):
    """Stores one row per epoch; re-storing an epoch replaces it."""

    orm_class: type[models.Base]
    record_class: type[EpochRecord]

    def __init__(self, session: Session) -> None:
        self._session = session

    def store(self, records: Iterable[RecordT]) -> int:
        count = 0
        for record in records:
            self._session.merge(self.orm_class(**record.model_dump()))
            count += 1
        self._session.commit()
        return count

    def get(self, epoch: int) -> RecordT | None:
        orm_record = self._session.get(self.orm_class, epoch)
        if orm_record is None:
            return None
        return self._to_domain(orm_record)

    def list(self, start_epoch: int | None = None, end_epoch: int | None = None) -> list[RecordT]:
        column = self.orm_class.epoch  # type: ignore[attr-defined]
        stmt = select(self.orm_class).order_by(column.asc())
        if start_epoch is not None:
            stmt = stmt.where(column >= start_epoch)
        if end_epoch is not None:
            stmt = stmt.where(column <= end_epoch)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def latest_epoch(self) -> int | None:
        column = self.orm_class.epoch  # type: ignore[attr-defined]
        return self._session.scalar(select(column).order_by(column.desc()).limit(1))

    def _to_domain(self, orm_record: models.Base) -> RecordT:
        values = {name: getattr(orm_record, name) for name in self.record_class.model_fields}
        return self.record_class(**values)  # type: ignore[return-value]


class EpochRewardRepository(EpochRecordRepository[EpochReward]):
    orm_class = models.EpochRewardOrm
    record_class = EpochReward


class LeaderFeesRepository(EpochRecordRepository[LeaderFees]):
    orm_class = models.LeaderFeesOrm
    record_class = LeaderFees


class MevClaimRepository(EpochRecordRepository[MevClaim]):
    orm_class = models.MevClaimOrm
    record_class = MevClaim


class IncentiveClaimRepository(EpochRecordRepository[IncentiveClaim]):
    orm_class = models.IncentiveClaimOrm
    record_class = IncentiveClaim


class VoteCostRepository(EpochRecordRepository[VoteCost]):
    orm_class = models.VoteCostOrm
    record_class = VoteCost


class NetworkFeeRepository(EpochRecordRepository[NetworkFee]):
    orm_class = models.NetworkFeeOrm
    record_class = NetworkFee


class TransferRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, transfer: Transfer) -> Transfer:
        orm_transfer = models.TransferOrm(**transfer.model_dump())
        self._session.add(orm_transfer)
        self._session.commit()
        self._session.refresh(orm_transfer)
        return self._to_domain(orm_transfer)

    def store(self, transfers: Iterable[Transfer]) -> int:
        """Insert transfers not already stored; returns how many were new."""
        added = 0
        for transfer in transfers:
            existing = self._session.scalar(
                select(models.TransferOrm.id).where(
                    models.TransferOrm.signature == transfer.signature,
                    models.TransferOrm.from_address == transfer.from_address,
                    models.TransferOrm.to_address == transfer.to_address,
                    models.TransferOrm.amount_lamports == transfer.amount_lamports,
                )
            )
            if existing is not None:
                continue
            self._session.add(models.TransferOrm(**transfer.model_dump()))
            added += 1
        self._session.commit()
        return added

    def list(self, start_date: str | None = None, end_date: str | None = None) -> list[Transfer]:
        stmt = select(models.TransferOrm).order_by(models.TransferOrm.date.asc(), models.TransferOrm.id.asc())
        if start_date is not None:
            stmt = stmt.where(models.TransferOrm.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(models.TransferOrm.date <= end_date)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm_transfer: models.TransferOrm) -> Transfer:
        return Transfer(
            signature=orm_transfer.signature,
            date=orm_transfer.date,
            from_address=Address(orm_transfer.from_address),
            to_address=Address(orm_transfer.to_address),
            amount_lamports=orm_transfer.amount_lamports,
            from_label=orm_transfer.from_label,
            to_label=orm_transfer.to_label,
        )


class ExpenseRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, expense: Expense) -> Expense:
        orm_expense = models.ExpenseOrm(
            date=expense.date,
            vendor=expense.vendor,
            category=expense.category.value,
            description=expense.description,
            amount_usd=expense.amount_usd,
            paid_with=expense.paid_with,
            invoice_id=expense.invoice_id,
        )
        self._session.add(orm_expense)
        self._session.commit()
        self._session.refresh(orm_expense)
        return self._to_domain(orm_expense)

    def list(self, start_date: str | None = None, end_date: str | None = None) -> list[Expense]:
        stmt = select(models.ExpenseOrm).order_by(models.ExpenseOrm.date.asc(), models.ExpenseOrm.id.asc())
        if start_date is not None:
            stmt = stmt.where(models.ExpenseOrm.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(models.ExpenseOrm.date <= end_date)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm_expense: models.ExpenseOrm) -> Expense:
        return Expense(
            date=orm_expense.date,
            vendor=orm_expense.vendor,
            category=ExpenseCategory.from_str_lossy(orm_expense.category),
            description=orm_expense.description,
            amount_usd=orm_expense.amount_usd,
            paid_with=orm_expense.paid_with,
            invoice_id=orm_expense.invoice_id,
        )


class RecurringExpenseRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, template: RecurringExpense) -> RecurringExpense:
        orm_template = models.RecurringExpenseOrm(
            vendor=template.vendor,
            category=template.category.value,
            description=template.description,
            amount_usd=template.amount_usd,
            paid_with=template.paid_with,
            start_date=template.start_date,
            end_date=template.end_date,
        )
        self._session.add(orm_template)
        self._session.commit()
        self._session.refresh(orm_template)
        return self._to_domain(orm_template)

    def list(self) -> list[RecurringExpense]:
        stmt = select(models.RecurringExpenseOrm).order_by(
            models.RecurringExpenseOrm.start_date.asc(), models.RecurringExpenseOrm.id.asc()
        )
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm_template: models.RecurringExpenseOrm) -> RecurringExpense:
        return RecurringExpense(
            vendor=orm_template.vendor,
            category=ExpenseCategory.from_str_lossy(orm_template.category),
            description=orm_template.description,
            amount_usd=orm_template.amount_usd,
            paid_with=orm_template.paid_with,
            start_date=orm_template.start_date,
            end_date=orm_template.end_date,
        )


class PriceRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def store(self, prices: PriceMap) -> int:
        for day, price in prices.items():
            self._session.merge(models.DailyPriceOrm(date=day, usd_price=price))
        self._session.commit()
        return len(prices)

    def get(self, day: str) -> Decimal | None:
        orm_price = self._session.get(models.DailyPriceOrm, day)
        if orm_price is None:
            return None
        return orm_price.usd_price

    def get_map(self, start_date: str | None = None, end_date: str | None = None) -> PriceMap:
        stmt = select(models.DailyPriceOrm).order_by(models.DailyPriceOrm.date.asc())
        if start_date is not None:
            stmt = stmt.where(models.DailyPriceOrm.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(models.DailyPriceOrm.date <= end_date)
        return {row.date: row.usd_price for row in self._session.scalars(stmt)}


class PositionSnapshotRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def store_stake_accounts(self, accounts: Iterable[StakeAccountInfo]) -> int:
        """Replace the stored stake-account set with ``accounts``."""
        self._session.execute(delete(models.StakeAccountOrm))
        count = 0
        for account in accounts:
            self._session.merge(
                models.StakeAccountOrm(
                    account=account.account,
                    balance_lamports=account.balance_lamports,
                    state=account.state.value,
                    voter=account.voter,
                    lockup_epoch=account.lockup_epoch,
                    is_liquid=account.is_liquid,
                    snapshot_slot=account.snapshot_slot,
                )
            )
            count += 1
        self._session.commit()
        return count

    def list_stake_accounts(self) -> list[StakeAccountInfo]:
        stmt = select(models.StakeAccountOrm).order_by(models.StakeAccountOrm.account.asc())
        return [
            StakeAccountInfo(
                account=Address(row.account),
                balance_lamports=row.balance_lamports,
                state=StakeState.from_str_lossy(row.state),
                voter=Address(row.voter) if row.voter else None,
                lockup_epoch=row.lockup_epoch,
                is_liquid=row.is_liquid,
                snapshot_slot=row.snapshot_slot,
            )
            for row in self._session.scalars(stmt)
        ]

    def store_balance_snapshot(self, position: ValidatorPosition, day: str, epoch: int) -> None:
        """Record the day's totals; a second snapshot on the same day replaces the first."""
        self._session.merge(
            models.BalanceSnapshotOrm(
                date=day,
                epoch=epoch,
                snapshot_slot=position.snapshot_slot,
                vote_account_lamports=position.vote_account_lamports,
                identity_lamports=position.identity_lamports,
                withdraw_authority_lamports=position.withdraw_authority_lamports,
                stake_liquid_lamports=position.stake_accounts_liquid,
                stake_locked_lamports=position.stake_accounts_locked,
                liquid_token_lamports=position.liquid_token_lamports,
                liquid_token_rate=position.liquid_token_sol_rate,
                total_lamports=position.total_assets_lamports,
                cumulative_income_lamports=position.lifetime_income_lamports,
                cumulative_expenses_lamports=position.lifetime_expenses_lamports,
                cumulative_withdrawals_lamports=position.lifetime_withdrawals_lamports,
                cumulative_deposits_lamports=position.lifetime_deposits_lamports,
            )
        )
        self._session.commit()

    def list_balance_history(self) -> list[models.BalanceSnapshotOrm]:
        stmt = select(models.BalanceSnapshotOrm).order_by(models.BalanceSnapshotOrm.date.asc())
        return list(self._session.scalars(stmt))
