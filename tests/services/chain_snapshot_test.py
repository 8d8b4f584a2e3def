from __future__ import annotations

import base64
import json
from decimal import Decimal
from pathlib import Path

import pytest

from domain.positions import AccountType
from services.chain_snapshot import load_chain_snapshot
from tests.constants import IDENTITY, SOL, VOTE_ACCOUNT
from tests.helpers.stake_accounts import delegated_account, stake_pool_account


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(payload))
    return path


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "slot": 350_000_000,
        "time": 1_765_000_000,
        "epoch": 810,
        "balances": [
            {
                "account": VOTE_ACCOUNT,
                "account_type": "VoteAccount",
                "balance_lamports": 10 * SOL,
                "withdrawable_lamports": 9 * SOL,
            },
            {"account": IDENTITY, "account_type": "Identity", "balance_lamports": SOL},
        ],
        "stake_accounts": [
            {"address": "Stake1", "balance_lamports": 5 * SOL, "data": _b64(delegated_account(activation=700))},
        ],
        "liquid_token": {
            "account": "TokenAcc1",
            "balance_lamports": 2 * SOL,
            "pool_data": _b64(stake_pool_account(1_200 * SOL, 1_000 * SOL)),
        },
    }
    payload.update(overrides)
    return payload


def test_load_chain_snapshot(tmp_path: Path) -> None:
    snapshot = load_chain_snapshot(_write(tmp_path, _payload()))

    assert (snapshot.slot, snapshot.epoch) == (350_000_000, 810)
    assert snapshot.liquid_token_rate == Decimal("1.2")
    assert snapshot.liquid_token_lamports == 2 * SOL
    assert [b.account_type for b in snapshot.balances] == [
        AccountType.VOTE_ACCOUNT,
        AccountType.IDENTITY,
        AccountType.LIQUID_TOKEN_ACCOUNT,
    ]
    assert all(b.snapshot_slot == 350_000_000 for b in snapshot.balances)
    assert snapshot.balances[0].withdrawable_lamports == 9 * SOL
    (stake,) = snapshot.stake_accounts
    assert stake.address == "Stake1"
    assert stake.data == delegated_account(activation=700)


def test_missing_liquid_token_uses_default_rate(tmp_path: Path) -> None:
    snapshot = load_chain_snapshot(_write(tmp_path, _payload(liquid_token=None, stake_accounts=[])))

    assert snapshot.liquid_token_rate == Decimal("1")
    assert snapshot.liquid_token_lamports == 0
    assert len(snapshot.balances) == 2
    assert snapshot.stake_accounts == []


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "JSON object"),
        (_payload(slot="350"), "'slot'"),
        (_payload(stake_accounts=[{"address": "", "data": ""}]), r"stake_accounts\[0\].address"),
        (_payload(stake_accounts=[{"address": "S", "data": "***"}]), "not valid base64"),
        (_payload(liquid_token={"balance_lamports": 1, "pool_data": 7}), "base64 string"),
    ],
)
def test_load_chain_snapshot_rejects_malformed_input(tmp_path: Path, payload: object, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        load_chain_snapshot(_write(tmp_path, payload))
