from __future__ import annotations

import argparse
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Sequence

from sqlalchemy.orm import Session

from config import AppSettings, config
from db.db import init_db
from db.repositories import (
    EpochRewardRepository,
    ExpenseRepository,
    IncentiveClaimRepository,
    LeaderFeesRepository,
    MevClaimRepository,
    NetworkFeeRepository,
    PositionSnapshotRepository,
    PriceRepository,
    RecurringExpenseRepository,
    TransferRepository,
    VoteCostRepository,
)
from domain.positions import build_position_snapshot, collect_stake_accounts, income_totals
from domain.sources import ReportSources, assemble_lifetime_sources, assemble_report_sources
from domain.tax_ledger import build_tax_rows
from domain.timeline import build_tax_timeline, build_timeline
from domain.validator_config import ValidatorConfig, load_validator_config
from services.chain_snapshot import load_chain_snapshot
from services.price_service import build_default_service
from utils.position_summary import render_position_summary, render_reconciliation, render_stake_accounts
from utils.tax_report import generate_tax_report, render_tax_summary
from utils.timeline_json import TIMELINE_FILENAME, write_timeline_json

logger = logging.getLogger(__name__)


def load_sources(
    session: Session,
    validator_config: ValidatorConfig,
    settings: AppSettings,
    *,
    today: date,
) -> ReportSources:
    cutoff = validator_config.business_start_date()
    prices = PriceRepository(session).get_map()
    if not prices:
        logger.info("No stored prices; reading the price cache for %s..%s", cutoff, today)
        price_service = build_default_service(settings.data_dir, settings.fallback_sol_price)
        prices = price_service.get_prices(cutoff, today)

    return assemble_report_sources(
        validator_config,
        today,
        rewards=EpochRewardRepository(session).list(),
        leader_fees=LeaderFeesRepository(session).list(),
        mev_claims=MevClaimRepository(session).list(),
        incentive_claims=IncentiveClaimRepository(session).list(),
        vote_costs=VoteCostRepository(session).list(),
        network_fees=NetworkFeeRepository(session).list(),
        expenses=ExpenseRepository(session).list(),
        recurring_expenses=RecurringExpenseRepository(session).list(),
        transfers=TransferRepository(session).list(),
        prices=prices,
        fallback_price=settings.fallback_sol_price,
    )


def load_lifetime_sources(session: Session, validator_config: ValidatorConfig) -> ReportSources:
    return assemble_lifetime_sources(
        validator_config,
        rewards=EpochRewardRepository(session).list(),
        leader_fees=LeaderFeesRepository(session).list(),
        mev_claims=MevClaimRepository(session).list(),
        incentive_claims=IncentiveClaimRepository(session).list(),
        vote_costs=VoteCostRepository(session).list(),
        network_fees=NetworkFeeRepository(session).list(),
        transfers=TransferRepository(session).list(),
    )


def run(
    output_dir: Path,
    *,
    year: int | None = None,
    snapshot_file: Path | None = None,
    settings: AppSettings | None = None,
    today: date | None = None,
) -> None:
    settings = settings or config()
    today = today or datetime.now(timezone.utc).date()

    # Setup components
    validator_config = load_validator_config(settings.validator_config_file)
    session = init_db(settings.db_file)

    # Get data
    sources = load_sources(session, validator_config, settings, today=today)
    logger.info(
        "Loaded %d rewards, %d vote costs, %d expenses, %d transfers",
        len(sources.rewards),
        len(sources.vote_costs),
        len(sources.expenses),
        sources.transfers.total_count(),
    )

    # Process stuff
    ledger = build_tax_rows(sources, validator_config, year_filter=year)
    paths = generate_tax_report(output_dir, ledger, year_filter=year)
    timeline_path = write_timeline_json(output_dir / TIMELINE_FILENAME, build_timeline(sources))
    write_timeline_json(output_dir / f"tax_{TIMELINE_FILENAME}", build_tax_timeline(sources, validator_config))

    # Print summary
    render_tax_summary(ledger, year_filter=year)
    print(f"\nTax report written to: {paths.tax_report}")
    print(f"Schedule C mapping written to: {paths.schedule_c}")
    print(f"Schedule C other expenses detail written to: {paths.schedule_c_other_expenses}")
    print(f"Timeline written to: {timeline_path}")

    if snapshot_file is not None:
        snapshot = load_chain_snapshot(snapshot_file)
        stake_accounts = collect_stake_accounts(snapshot.stake_accounts, snapshot.epoch, snapshot.slot)
        position = build_position_snapshot(
            snapshot.balances,
            stake_accounts,
            snapshot.liquid_token_lamports,
            snapshot.liquid_token_rate,
            income_totals(load_lifetime_sources(session, validator_config)),
            snapshot.slot,
            snapshot.time,
        )
        positions_repository = PositionSnapshotRepository(session)
        positions_repository.store_stake_accounts(stake_accounts)
        positions_repository.store_balance_snapshot(position, today.isoformat(), snapshot.epoch)

        print()
        render_position_summary(position)
        render_stake_accounts(stake_accounts)
        render_reconciliation(position)


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Build validator tax reports, timeline and reconciliation.")
    parser.add_argument("--output-dir", type=Path, default=None)
    parser.add_argument("--year", type=int, default=None)
    parser.add_argument("--snapshot", type=Path, default=None, help="JSON chain snapshot for the position report")
    args = parser.parse_args(argv)

    settings = config()
    logging.basicConfig(
        level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )
    run(
        args.output_dir or settings.output_dir,
        year=args.year,
        snapshot_file=args.snapshot,
        settings=settings,
    )


if __name__ == "__main__":
    main()
