"""Decoding of delegated-stake account data.

Layout (little endian), after a ``u32`` variant discriminant:

* Meta at offset 4: rent-exempt reserve ``u64``, staker and withdrawer pubkeys,
  lockup (``i64`` unix timestamp, ``u64`` epoch, custodian pubkey). 120 bytes.
* Stake at offset 124 (variant 2 only): voter pubkey, stake ``u64``, activation
  and deactivation epochs ``u64``, warmup/cooldown rate ``f64``, credits observed
  ``u64``. 72 bytes.

An epoch field holding ``2**64 - 1`` is unset.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum, StrEnum

import base58

from .base_types import U64_MAX

EPOCH_UNSET = U64_MAX

DISCRIMINANT = struct.Struct("<I")
META = struct.Struct("<Q32s32sqQ32s")
STAKE = struct.Struct("<32sQQQdQ")

META_OFFSET = DISCRIMINANT.size
STAKE_OFFSET = META_OFFSET + META.size


class StakeVariant(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    STAKE = 2
    REWARDS_POOL = 3


class StakeState(StrEnum):
    ACTIVATING = "activating"
    ACTIVE = "active"
    DEACTIVATING = "deactivating"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"

    @classmethod
    def from_str_lossy(cls, value: str) -> StakeState:
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class StakeAccountDecodeError(ValueError):
    def __init__(self, message: str, *, discriminant: int | None = None, data_length: int = 0) -> None:
        super().__init__(message)
        self.discriminant = discriminant
        self.data_length = data_length


@dataclass(frozen=True)
class Lockup:
    unix_timestamp: int
    epoch: int
    custodian: str


@dataclass(frozen=True)
class Meta:
    rent_exempt_reserve: int
    staker: str
    withdrawer: str
    lockup: Lockup

    def is_locked(self, current_epoch: int) -> bool:
        # Timestamp lockups are not enforced here; only the epoch lockup is.
        return self.lockup.epoch > current_epoch


@dataclass(frozen=True)
class Delegation:
    voter: str
    stake: int
    activation_epoch: int
    deactivation_epoch: int
    warmup_cooldown_rate: float
    credits_observed: int


@dataclass(frozen=True)
class ParsedStakeInfo:
    state: StakeState
    voter: str | None
    lockup_epoch: int | None
    is_liquid: bool


def _pubkey(raw: bytes) -> str:
    return base58.b58encode(raw).decode("ascii")


def _decode_meta(data: bytes, discriminant: int) -> Meta:
    if len(data) < STAKE_OFFSET:
        raise StakeAccountDecodeError(
            f"Stake account data too short for meta: {len(data)} bytes",
            discriminant=discriminant,
            data_length=len(data),
        )
    rent, staker, withdrawer, unix_ts, lockup_epoch, custodian = META.unpack_from(data, META_OFFSET)
    return Meta(
        rent_exempt_reserve=rent,
        staker=_pubkey(staker),
        withdrawer=_pubkey(withdrawer),
        lockup=Lockup(unix_timestamp=unix_ts, epoch=lockup_epoch, custodian=_pubkey(custodian)),
    )


def _decode_delegation(data: bytes, discriminant: int) -> Delegation:
    if len(data) < STAKE_OFFSET + STAKE.size:
        raise StakeAccountDecodeError(
            f"Stake account data too short for delegation: {len(data)} bytes",
            discriminant=discriminant,
            data_length=len(data),
        )
    voter, stake, activation, deactivation, rate, credits = STAKE.unpack_from(data, STAKE_OFFSET)
    return Delegation(
        voter=_pubkey(voter),
        stake=stake,
        activation_epoch=activation,
        deactivation_epoch=deactivation,
        warmup_cooldown_rate=rate,
        credits_observed=credits,
    )


def _lockup_epoch(meta: Meta) -> int | None:
    return meta.lockup.epoch if meta.lockup.epoch > 0 else None


def delegation_state(meta: Meta, delegation: Delegation, current_epoch: int) -> tuple[StakeState, bool]:
    """Liquidity state of a delegated account as ``(state, is_liquid)``.

    Warmup is not modeled: stake is ``ACTIVATING`` through its activation epoch
    and ``ACTIVE`` afterwards.
    """
    unlocked = not meta.is_locked(current_epoch)

    if delegation.deactivation_epoch != EPOCH_UNSET:
        if current_epoch >= delegation.deactivation_epoch:
            return StakeState.INACTIVE, unlocked
        return StakeState.DEACTIVATING, False
    if delegation.activation_epoch == EPOCH_UNSET:
        return StakeState.INACTIVE, unlocked
    if current_epoch > delegation.activation_epoch:
        return StakeState.ACTIVE, False
    return StakeState.ACTIVATING, False


def parse_stake_account(data: bytes, current_epoch: int) -> ParsedStakeInfo:
    """Decode raw stake account data.

    Raises ``StakeAccountDecodeError`` for truncated data or an unknown variant.
    """
    if len(data) < DISCRIMINANT.size:
        raise StakeAccountDecodeError(
            f"Stake account data too short: {len(data)} bytes",
            data_length=len(data),
        )
    (discriminant,) = DISCRIMINANT.unpack_from(data, 0)

    if discriminant in (StakeVariant.UNINITIALIZED, StakeVariant.REWARDS_POOL):
        return ParsedStakeInfo(state=StakeState.UNKNOWN, voter=None, lockup_epoch=None, is_liquid=False)

    if discriminant == StakeVariant.INITIALIZED:
        meta = _decode_meta(data, discriminant)
        return ParsedStakeInfo(
            state=StakeState.INACTIVE,
            voter=None,
            lockup_epoch=_lockup_epoch(meta),
            is_liquid=not meta.is_locked(current_epoch),
        )

    if discriminant == StakeVariant.STAKE:
        meta = _decode_meta(data, discriminant)
        delegation = _decode_delegation(data, discriminant)
        state, is_liquid = delegation_state(meta, delegation, current_epoch)
        return ParsedStakeInfo(
            state=state,
            voter=delegation.voter,
            lockup_epoch=_lockup_epoch(meta),
            is_liquid=is_liquid,
        )

    raise StakeAccountDecodeError(
        f"Unknown stake state discriminant: {discriminant}",
        discriminant=discriminant,
        data_length=len(data),
    )


__all__ = [
    "EPOCH_UNSET",
    "Delegation",
    "Lockup",
    "Meta",
    "ParsedStakeInfo",
    "StakeAccountDecodeError",
    "StakeState",
    "StakeVariant",
    "delegation_state",
    "parse_stake_account",
]
