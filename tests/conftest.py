from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base
from domain.validator_config import ValidatorConfig
from tests.constants import (
    ACCEPTANCE_DATE,
    BOOTSTRAP_DATE,
    FEE_DEPOSIT_ACCOUNT,
    IDENTITY,
    PERSONAL_WALLET,
    VOTE_ACCOUNT,
    WITHDRAW_AUTHORITY,
)

engine: Engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def validator_config() -> ValidatorConfig:
    return ValidatorConfig(
        vote_account=VOTE_ACCOUNT,
        identity=IDENTITY,
        withdraw_authority=WITHDRAW_AUTHORITY,
        personal_wallet=PERSONAL_WALLET,
        bootstrap_date=BOOTSTRAP_DATE,
        sfdp_acceptance_date=ACCEPTANCE_DATE,
        network_fee_deposit_account=FEE_DEPOSIT_ACCOUNT,
    )
