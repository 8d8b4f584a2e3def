from __future__ import annotations

from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.pricing import FALLBACK_SOL_PRICE
from domain.validator_config import DEFAULT_VALIDATOR_CONFIG_PATH


class AppSettings(BaseSettings):
    data_dir: Path = Path("data")
    output_dir: Path = Path("reports")
    db_file: Path = Path("data/validator_accounting.db")
    validator_config_file: Path = DEFAULT_VALIDATOR_CONFIG_PATH
    log_level: str = "INFO"
    fallback_sol_price: Decimal = FALLBACK_SOL_PRICE

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
