from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from domain.base_types import Address
from domain.positions import (
    DEFAULT_STAKE_POOL_RATE,
    AccountBalance,
    AccountType,
    RawStakeAccount,
    parse_stake_pool_rate,
)


@dataclass(frozen=True)
class ChainSnapshot:
    """Account state captured from the chain at one slot."""

    slot: int
    time: int
    epoch: int
    balances: list[AccountBalance] = field(default_factory=list)
    stake_accounts: list[RawStakeAccount] = field(default_factory=list)
    liquid_token_lamports: int = 0
    liquid_token_rate: Decimal = DEFAULT_STAKE_POOL_RATE


def _decode_data(value: object, where: str) -> bytes:
    if not isinstance(value, str):
        raise ValueError(f"{where} must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except ValueError as exc:
        raise ValueError(f"{where} is not valid base64") from exc


def load_chain_snapshot(path: Path) -> ChainSnapshot:
    """Read a JSON chain snapshot.

    Expected shape::

        {"slot": 1, "time": 1700000000, "epoch": 800,
         "balances": [{"account": "...", "account_type": "VoteAccount", "balance_lamports": 1}],
         "stake_accounts": [{"address": "...", "balance_lamports": 1, "data": "<base64>"}],
         "liquid_token": {"balance_lamports": 1, "pool_data": "<base64>"}}
    """
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Chain snapshot must be a JSON object")

    for key in ("slot", "time", "epoch"):
        if not isinstance(payload.get(key), int):
            raise ValueError(f"Chain snapshot '{key}' must be an integer")
    slot = payload["slot"]

    balances = [
        AccountBalance.model_validate({**entry, "snapshot_slot": slot, "snapshot_time": payload["time"]})
        for entry in payload.get("balances", [])
    ]

    stake_accounts: list[RawStakeAccount] = []
    for index, entry in enumerate(payload.get("stake_accounts", [])):
        address = entry.get("address")
        if not isinstance(address, str) or not address:
            raise ValueError(f"stake_accounts[{index}].address must be a non-empty string")
        stake_accounts.append(
            RawStakeAccount(
                address=address,
                balance_lamports=int(entry.get("balance_lamports", 0)),
                data=_decode_data(entry.get("data"), f"stake_accounts[{index}].data"),
            )
        )

    liquid_token = payload.get("liquid_token") or {}
    token_lamports = int(liquid_token.get("balance_lamports", 0))
    pool_data = liquid_token.get("pool_data")
    rate = (
        parse_stake_pool_rate(_decode_data(pool_data, "liquid_token.pool_data"))
        if pool_data is not None
        else DEFAULT_STAKE_POOL_RATE
    )
    if token_lamports:
        balances.append(
            AccountBalance(
                account=Address(str(liquid_token.get("account", ""))),
                account_type=AccountType.LIQUID_TOKEN_ACCOUNT,
                balance_lamports=token_lamports,
                snapshot_slot=slot,
                snapshot_time=payload["time"],
            )
        )

    return ChainSnapshot(
        slot=slot,
        time=payload["time"],
        epoch=payload["epoch"],
        balances=balances,
        stake_accounts=stake_accounts,
        liquid_token_lamports=token_lamports,
        liquid_token_rate=rate,
    )


__all__ = ["ChainSnapshot", "load_chain_snapshot"]
