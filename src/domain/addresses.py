"""Static labels for well-known counterparties.

The table is built once at import time and exposed read-only. Lookups are total:
an address missing from the table classifies as ``UNKNOWN``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Iterable, Mapping

from .base_types import Address


class AddressCategory(StrEnum):
    FOUNDATION = "FOUNDATION"
    MEV_PROGRAM = "MEV_PROGRAM"
    INCENTIVE_PROGRAM = "INCENTIVE_PROGRAM"
    EXCHANGE = "EXCHANGE"
    DEFI_PROTOCOL = "DEFI_PROTOCOL"
    VALIDATOR_SELF = "VALIDATOR_SELF"
    PERSONAL_WALLET = "PERSONAL_WALLET"
    SYSTEM_PROGRAM = "SYSTEM_PROGRAM"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AddressLabel:
    category: AddressCategory
    name: str
    description: str | None = None


_KNOWN: tuple[tuple[str, AddressCategory, str, str | None], ...] = (
    # Solana Foundation (delegation program, vote-cost reimbursements)
    ("mpa4abUkjQoAvPzREkh5Mo75hZhPFQ2FSH6w7dWKuQ5", AddressCategory.FOUNDATION, "Solana Foundation", "Main SF wallet"),
    (
        "7K8DVxtNJGnMtUY1CQJT5jcs8sFGSZTDiG7kowvFpECh",
        AddressCategory.FOUNDATION,
        "Solana Foundation Stake Authority",
        "SF stake authority for delegations",
    ),
    (
        "DRpbCBMxVnDK7maPM5tGv6MvB3v1sRMC86PZ8okm21hy",
        AddressCategory.FOUNDATION,
        "SF Delegation Program",
        "SFDP delegation operations",
    ),
    (
        "4ZJhPQAgUseCsWhKvJLTmmRRUV74fdoTpQLNfKoHtFSP",
        AddressCategory.FOUNDATION,
        "Solana Foundation Operations",
        "SF operational wallet",
    ),
    (
        "DtZWL3BPKa5hw7yQYvaFR29PcXThpLHVU2XAAZrcLiSe",
        AddressCategory.FOUNDATION,
        "SFDP Vote Reimbursement",
        "Vote cost reimbursements",
    ),
    # Jito tip programs and tip accounts
    ("T1pyyaTNZsKv2WcRAB8oVnk93mLJw2XzjtVYqCsaHqt", AddressCategory.MEV_PROGRAM, "Jito Tip Payment Program", None),
    ("4R3gSG8BpU4t19KYj8CfnbtRpnT8gtk4dvTHxVRwc2r7", AddressCategory.MEV_PROGRAM, "Jito Tip Distribution Program", None),
    ("8F4jGUmxF36vQ6yabnsxX6AQVXdKBhs8kGSUuRKSg8Xt", AddressCategory.MEV_PROGRAM, "Jito Merkle Root Authority", None),
    ("96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5", AddressCategory.MEV_PROGRAM, "Jito Tip Account 1", None),
    ("HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe", AddressCategory.MEV_PROGRAM, "Jito Tip Account 2", None),
    ("Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY", AddressCategory.MEV_PROGRAM, "Jito Tip Account 3", None),
    ("ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49", AddressCategory.MEV_PROGRAM, "Jito Tip Account 4", None),
    ("DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh", AddressCategory.MEV_PROGRAM, "Jito Tip Account 5", None),
    ("ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt", AddressCategory.MEV_PROGRAM, "Jito Tip Account 6", None),
    ("DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL", AddressCategory.MEV_PROGRAM, "Jito Tip Account 7", None),
    ("3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT", AddressCategory.MEV_PROGRAM, "Jito Tip Account 8", None),
    # Block-assembly incentive program (rewards paid in the liquid staking token)
    (
        "BoostxbPp2ENYHGcTLYt1obpcY13HE4NojdqNWdzqSSb",
        AddressCategory.INCENTIVE_PROGRAM,
        "Jito BAM Boost Program",
        "Block Assembly Marketplace incentives",
    ),
    ("J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn", AddressCategory.INCENTIVE_PROGRAM, "jitoSOL Mint", None),
    # Exchanges
    ("H8sMJSCQxfKiFTCfDR3DUMLPwcRbM61LGFJ8N4dK3WjS", AddressCategory.EXCHANGE, "Coinbase", None),
    ("2AQdpHJ2JpcEgPiATUXjQxA8QmafFegfQwSLWSprPicm", AddressCategory.EXCHANGE, "Binance", None),
    ("5tzFkiKscXHK5ZXCGbXZxdw7gTjjD1mBwuoFbhUvuAi9", AddressCategory.EXCHANGE, "Kraken", None),
    # DEX aggregators, AMMs and swap routing accounts
    ("JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4", AddressCategory.DEFI_PROTOCOL, "Jupiter v6", None),
    ("JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB", AddressCategory.DEFI_PROTOCOL, "Jupiter v4", None),
    ("675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8", AddressCategory.DEFI_PROTOCOL, "Raydium AMM", None),
    ("whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc", AddressCategory.DEFI_PROTOCOL, "Orca Whirlpool", None),
    ("MarBmsSgKXdrN1egZf5sqe1TMai9K1rChYNDJgjq7aD", AddressCategory.DEFI_PROTOCOL, "Marinade Finance", None),
    ("PhoeNiXZ8ByJGLkxNfZRnkUfjvmuYqLR89jjFHGqdXY", AddressCategory.DEFI_PROTOCOL, "Phoenix DEX", None),
    ("LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo", AddressCategory.DEFI_PROTOCOL, "Meteora DLMM", None),
    ("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA", AddressCategory.DEFI_PROTOCOL, "SPL Token Program", None),
    ("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL", AddressCategory.DEFI_PROTOCOL, "ATA Program", None),
    ("GyY4VgEpJQhiKZRAJJmoM4hv5Q2xC4pvX68MGrGidxyG", AddressCategory.DEFI_PROTOCOL, "Jupiter Pool", None),
    ("CRo8DBwrmd97DJfAnvCv96tZPL5Mktf2NZy2ZnhDer1A", AddressCategory.DEFI_PROTOCOL, "SolFi wSOL-USDC", None),
    ("65ZHSArs5XxPseKQbB1B4r16vDxMWnCxHMzogDAqiDUc", AddressCategory.DEFI_PROTOCOL, "SolFi Market Owner", None),
    ("CTyFguG69kwYrzk24P3UuBvY1rR5atu9kf2S6XEwAU8X", AddressCategory.DEFI_PROTOCOL, "wSOL Swap Account", None),
    ("EHBeyyQwD6MLa48fdxSjEaMHLur6BrcGtVcJ5c66AvaC", AddressCategory.DEFI_PROTOCOL, "wSOL Swap Account", None),
    # Native programs
    ("11111111111111111111111111111111", AddressCategory.SYSTEM_PROGRAM, "System Program", None),
    ("Stake11111111111111111111111111111111111111", AddressCategory.SYSTEM_PROGRAM, "Stake Program", None),
    ("Vote111111111111111111111111111111111111111", AddressCategory.SYSTEM_PROGRAM, "Vote Program", None),
)


def _build_table(
    entries: Iterable[tuple[str, AddressCategory, str, str | None]],
) -> Mapping[Address, AddressLabel]:
    table: dict[Address, AddressLabel] = {}
    for address, category, name, description in entries:
        table[Address(address)] = AddressLabel(category=category, name=name, description=description)
    return MappingProxyType(table)


class AddressBook:
    """Read-only address -> label lookup."""

    def __init__(self, labels: Mapping[Address, AddressLabel]) -> None:
        self._labels = MappingProxyType(dict(labels))

    def classify(self, address: str) -> AddressCategory:
        label = self._labels.get(Address(address))
        return label.category if label is not None else AddressCategory.UNKNOWN

    def label_for(self, address: str) -> AddressLabel:
        label = self._labels.get(Address(address))
        if label is not None:
            return label
        short = f"{address[:4]}...{address[-4:]}" if len(address) > 8 else address
        return AddressLabel(category=AddressCategory.UNKNOWN, name=short)

    def is_foundation(self, address: str) -> bool:
        return self.classify(address) == AddressCategory.FOUNDATION

    def is_mev_program(self, address: str) -> bool:
        return self.classify(address) == AddressCategory.MEV_PROGRAM

    def is_exchange(self, address: str) -> bool:
        return self.classify(address) == AddressCategory.EXCHANGE

    def is_defi_protocol(self, address: str) -> bool:
        return self.classify(address) == AddressCategory.DEFI_PROTOCOL

    def addresses_in(self, category: AddressCategory) -> frozenset[Address]:
        return frozenset(address for address, label in self._labels.items() if label.category == category)

    def __len__(self) -> int:
        return len(self._labels)


KNOWN_ADDRESSES: Mapping[Address, AddressLabel] = _build_table(_KNOWN)
DEFAULT_ADDRESS_BOOK = AddressBook(KNOWN_ADDRESSES)


def classify(address: str) -> AddressCategory:
    return DEFAULT_ADDRESS_BOOK.classify(address)


__all__ = [
    "DEFAULT_ADDRESS_BOOK",
    "KNOWN_ADDRESSES",
    "AddressBook",
    "AddressCategory",
    "AddressLabel",
    "classify",
]
