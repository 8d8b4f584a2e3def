from __future__ import annotations

import struct

from domain.stake_state import DISCRIMINANT, EPOCH_UNSET, META, STAKE, StakeVariant

STAKER_KEY = bytes([1]) * 32
WITHDRAWER_KEY = bytes([2]) * 32
VOTER_KEY = bytes([3]) * 32
CUSTODIAN_KEY = bytes(32)


def meta_bytes(*, lockup_epoch: int = 0, rent: int = 2_282_880) -> bytes:
    return META.pack(rent, STAKER_KEY, WITHDRAWER_KEY, 0, lockup_epoch, CUSTODIAN_KEY)


def stake_bytes(*, activation: int, deactivation: int = EPOCH_UNSET, stake: int = 5_000_000_000) -> bytes:
    return STAKE.pack(VOTER_KEY, stake, activation, deactivation, 0.25, 0)


def initialized_account(*, lockup_epoch: int = 0) -> bytes:
    return DISCRIMINANT.pack(StakeVariant.INITIALIZED) + meta_bytes(lockup_epoch=lockup_epoch)


def delegated_account(
    *,
    activation: int,
    deactivation: int = EPOCH_UNSET,
    lockup_epoch: int = 0,
) -> bytes:
    # Real stake accounts are 200 bytes; pad the trailing flags byte region.
    body = (
        DISCRIMINANT.pack(StakeVariant.STAKE)
        + meta_bytes(lockup_epoch=lockup_epoch)
        + stake_bytes(activation=activation, deactivation=deactivation)
    )
    return body + bytes(200 - len(body))


def stake_pool_account(total_lamports: int, pool_token_supply: int, *, size: int = 611) -> bytes:
    data = bytearray(size)
    if size >= 274:
        struct.pack_into("<Q", data, 258, total_lamports)
        struct.pack_into("<Q", data, 266, pool_token_supply)
    return bytes(data)
