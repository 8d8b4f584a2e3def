from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

from .base_types import Address, parse_iso_date
from .coverage import coverage_fraction

DEFAULT_VALIDATOR_CONFIG_PATH = Path("data/validator.json")
FALLBACK_BUSINESS_START = date(2025, 11, 1)


class ValidatorConfig(BaseModel):
    """Identities of the operator's accounts plus program enrollment dates."""

    model_config = ConfigDict(frozen=True)

    vote_account: Address
    identity: Address
    withdraw_authority: Address
    personal_wallet: Address
    bootstrap_date: str
    sfdp_acceptance_date: str | None = None
    network_fee_deposit_account: Address | None = None

    @model_validator(mode="after")
    def _validate_accounts(self) -> ValidatorConfig:
        if not self.vote_account or not self.identity or not self.withdraw_authority:
            raise ValueError("ValidatorConfig requires vote_account, identity and withdraw_authority")
        if self.personal_wallet in self.our_accounts:
            raise ValueError("personal_wallet must differ from the validator's operational accounts")
        return self

    @property
    def our_accounts(self) -> frozenset[str]:
        return frozenset((self.vote_account, self.identity, self.withdraw_authority))

    def is_our_account(self, address: str) -> bool:
        # The personal wallet is ours too, but it is categorized as seeding/withdrawal instead.
        return address in self.our_accounts

    def coverage_fraction(self, query_date: date) -> Decimal:
        return coverage_fraction(self.sfdp_acceptance_date, query_date)

    def business_start_date(self) -> date:
        parsed = parse_iso_date(self.bootstrap_date) or FALLBACK_BUSINESS_START
        return parsed.replace(day=1)

    def business_start_month(self) -> str:
        return self.business_start_date().strftime("%Y-%m")


def _optional_str(section: dict, key: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"'{key}' must be a string when present."
        raise ValueError(msg)
    return value


def load_validator_config(path: Path = DEFAULT_VALIDATOR_CONFIG_PATH) -> ValidatorConfig:
    payload = json.loads(path.read_text())
    if not isinstance(payload, dict):
        msg = "Validator config must contain a JSON object."
        raise ValueError(msg)

    validator = payload.get("validator")
    if not isinstance(validator, dict):
        msg = "Validator config must include a 'validator' object."
        raise ValueError(msg)

    required = ("vote_account", "identity", "withdraw_authority", "personal_wallet", "bootstrap_date")
    missing = [key for key in required if not isinstance(validator.get(key), str)]
    if missing:
        msg = f"'validator' section is missing string field(s): {', '.join(missing)}."
        raise ValueError(msg)

    network_fee = payload.get("network_fee") or {}
    if not isinstance(network_fee, dict):
        msg = "'network_fee' must be an object when present."
        raise ValueError(msg)

    deposit_account = _optional_str(network_fee, "deposit_account")
    return ValidatorConfig(
        vote_account=Address(validator["vote_account"]),
        identity=Address(validator["identity"]),
        withdraw_authority=Address(validator["withdraw_authority"]),
        personal_wallet=Address(validator["personal_wallet"]),
        bootstrap_date=validator["bootstrap_date"],
        sfdp_acceptance_date=_optional_str(validator, "sfdp_acceptance_date"),
        network_fee_deposit_account=Address(deposit_account) if deposit_account else None,
    )


__all__ = ["DEFAULT_VALIDATOR_CONFIG_PATH", "ValidatorConfig", "load_validator_config"]
