from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator

from .base_types import Address, lamports_to_sol


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Transfer(_Record):
    """A raw SOL movement between two addresses.

    ``amount_lamports`` is never negative; direction is always from -> to.
    """

    signature: str
    date: str | None = None
    from_address: Address
    to_address: Address
    amount_lamports: int
    from_label: str = ""
    to_label: str = ""

    @model_validator(mode="after")
    def _validate_amount(self) -> Transfer:
        if self.amount_lamports < 0:
            raise ValueError("Transfer.amount_lamports must be >= 0")
        return self

    @property
    def amount_sol(self) -> Decimal:
        return lamports_to_sol(self.amount_lamports)


class EpochRecord(_Record):
    epoch: int
    amount_lamports: int
    date: str | None = None

    @model_validator(mode="after")
    def _validate_amount(self) -> EpochRecord:
        if self.amount_lamports < 0:
            raise ValueError(f"{type(self).__name__}.amount_lamports must be >= 0")
        if self.epoch < 0:
            raise ValueError(f"{type(self).__name__}.epoch must be >= 0")
        return self

    @property
    def amount_sol(self) -> Decimal:
        return lamports_to_sol(self.amount_lamports)


class EpochReward(EpochRecord):
    commission_percent: int = 0


class LeaderFees(EpochRecord):
    blocks_produced: int = 0
    skipped_slots: int = 0


class MevClaim(EpochRecord):
    total_tips_lamports: int = 0
    commission_lamports: int = 0


class IncentiveClaim(EpochRecord):
    """Liquid-token incentive claim; ``amount_lamports`` is the SOL equivalent."""

    amount_token_lamports: int = 0
    token_sol_rate: Decimal | None = None
    tx_signature: str = ""


class VoteCost(EpochRecord):
    vote_count: int = 0
    source: str = ""
    is_estimate: bool = False


class NetworkFee(EpochRecord):
    fee_base_lamports: int = 0
    fee_rate_bps: int = 0
    is_estimate: bool = False


class ExpenseCategory(StrEnum):
    HOSTING = "Hosting"
    CONTRACTOR = "Contractor"
    HARDWARE = "Hardware"
    SOFTWARE = "Software"
    VOTE_FEES = "Vote Fees"
    OTHER = "Other"

    @classmethod
    def from_str_lossy(cls, value: str) -> ExpenseCategory:
        normalized = value.strip().lower().replace(" ", "")
        for category in cls:
            if category.value.lower().replace(" ", "") == normalized:
                return category
        return cls.OTHER


class Expense(_Record):
    date: str
    vendor: str
    category: ExpenseCategory
    description: str
    amount_usd: Decimal
    paid_with: str = ""
    invoice_id: str | None = None


class RecurringExpense(_Record):
    """Monthly expense template. Expanded into ``Expense`` entries, never stored as instances."""

    vendor: str
    category: ExpenseCategory
    description: str
    amount_usd: Decimal
    paid_with: str = ""
    start_date: str
    end_date: str | None = None

