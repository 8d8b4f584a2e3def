from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Iterable, Iterator

from .addresses import DEFAULT_ADDRESS_BOOK, AddressBook, AddressCategory
from .records import Transfer
from .validator_config import ValidatorConfig

NETWORK_FEE_DEPOSIT_LABEL = "Network Fee Deposit"


class TransferBucket(StrEnum):
    SEEDING = "seeding"
    PROGRAM_REIMBURSEMENT = "program_reimbursement"
    MEV_DEPOSIT = "mev_deposit"
    DEFI_DEPOSIT = "defi_deposit"
    NETWORK_FEE_PREPAYMENT = "network_fee_prepayment"
    INTERNAL_FUNDING = "internal_funding"
    WITHDRAWAL = "withdrawal"
    UNCATEGORIZED = "uncategorized"


@dataclass
class CategorizedTransfers:
    """Transfers partitioned by purpose; a transfer lives in at most one bucket."""

    seeding: list[Transfer] = field(default_factory=list)
    program_reimbursements: list[Transfer] = field(default_factory=list)
    mev_deposits: list[Transfer] = field(default_factory=list)
    defi_deposits: list[Transfer] = field(default_factory=list)
    network_fee_prepayments: list[Transfer] = field(default_factory=list)
    internal_funding: list[Transfer] = field(default_factory=list)
    withdrawals: list[Transfer] = field(default_factory=list)
    uncategorized: list[Transfer] = field(default_factory=list)

    def bucket(self, name: TransferBucket) -> list[Transfer]:
        return {
            TransferBucket.SEEDING: self.seeding,
            TransferBucket.PROGRAM_REIMBURSEMENT: self.program_reimbursements,
            TransferBucket.MEV_DEPOSIT: self.mev_deposits,
            TransferBucket.DEFI_DEPOSIT: self.defi_deposits,
            TransferBucket.NETWORK_FEE_PREPAYMENT: self.network_fee_prepayments,
            TransferBucket.INTERNAL_FUNDING: self.internal_funding,
            TransferBucket.WITHDRAWAL: self.withdrawals,
            TransferBucket.UNCATEGORIZED: self.uncategorized,
        }[name]

    def iter_buckets(self) -> Iterator[tuple[TransferBucket, list[Transfer]]]:
        for name in TransferBucket:
            yield name, self.bucket(name)

    def total_count(self) -> int:
        return sum(len(items) for _, items in self.iter_buckets())

    def total_seeded_lamports(self) -> int:
        return sum(t.amount_lamports for t in self.seeding)


def classify_transfer(
    transfer: Transfer,
    config: ValidatorConfig,
    address_book: AddressBook = DEFAULT_ADDRESS_BOOK,
) -> TransferBucket | None:
    """Return the bucket for ``transfer`` or None when neither side is ours.

    The prepayment rule runs first so a deposit to the fee account is never read
    as an ordinary outgoing transfer.
    """
    deposit_account = config.network_fee_deposit_account
    if deposit_account is not None and transfer.to_address == deposit_account and config.is_our_account(
        transfer.from_address
    ):
        return TransferBucket.NETWORK_FEE_PREPAYMENT

    if config.is_our_account(transfer.to_address):
        source = address_book.classify(transfer.from_address)
        if transfer.from_address == config.personal_wallet:
            return TransferBucket.SEEDING
        if source == AddressCategory.FOUNDATION:
            return TransferBucket.PROGRAM_REIMBURSEMENT
        if source == AddressCategory.MEV_PROGRAM:
            return TransferBucket.MEV_DEPOSIT
        if source in (AddressCategory.DEFI_PROTOCOL, AddressCategory.INCENTIVE_PROGRAM):
            return TransferBucket.DEFI_DEPOSIT
        if config.is_our_account(transfer.from_address):
            return TransferBucket.INTERNAL_FUNDING
        return TransferBucket.UNCATEGORIZED

    if config.is_our_account(transfer.from_address):
        if address_book.is_exchange(transfer.to_address) or transfer.to_address == config.personal_wallet:
            return TransferBucket.WITHDRAWAL
        if config.is_our_account(transfer.to_address):
            return TransferBucket.INTERNAL_FUNDING
        return TransferBucket.UNCATEGORIZED

    return None


def categorize_transfers(
    transfers: Iterable[Transfer],
    config: ValidatorConfig,
    address_book: AddressBook = DEFAULT_ADDRESS_BOOK,
) -> CategorizedTransfers:
    categorized = CategorizedTransfers()
    for transfer in transfers:
        bucket = classify_transfer(transfer, config, address_book)
        if bucket is None:
            continue
        if bucket == TransferBucket.NETWORK_FEE_PREPAYMENT:
            transfer = transfer.model_copy(update={"to_label": NETWORK_FEE_DEPOSIT_LABEL})
        categorized.bucket(bucket).append(transfer)
    return categorized


__all__ = [
    "NETWORK_FEE_DEPOSIT_LABEL",
    "CategorizedTransfers",
    "TransferBucket",
    "categorize_transfers",
    "classify_transfer",
]
