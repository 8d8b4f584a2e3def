from decimal import Decimal

from domain.categorize import categorize_transfers
from domain.records import EpochReward, IncentiveClaim, LeaderFees, MevClaim
from domain.sources import ReportSources
from domain.tax_ledger import TaxEntryType, TaxRow
from domain.timeline import (
    TimelineEvent,
    TimelineEventType,
    accumulate,
    build_tax_timeline,
    build_timeline,
    epoch_from_description,
    sort_and_accumulate,
    tax_row_to_event,
)
from domain.validator_config import ValidatorConfig
from tests.constants import (
    ACCEPTANCE_DATE,
    COINBASE,
    FEE_DEPOSIT_ACCOUNT,
    IDENTITY,
    JITO_TIP_DISTRIBUTION,
    PERSONAL_WALLET,
    SOL,
    VOTE_ACCOUNT,
    WITHDRAW_AUTHORITY,
)
from tests.helpers.records import expense, transfer, vote_cost

PRICES = {"2025-12-01": Decimal("100")}


def _event(date: str, usd: str, event_type: TimelineEventType, *, is_pnl: bool = True) -> TimelineEvent:
    return TimelineEvent(
        date=date,
        event_type=event_type,
        label="x",
        amount_lamports=0,
        amount_usd=Decimal(usd),
        is_pnl=is_pnl,
    )


def _full_sources(validator_config: ValidatorConfig) -> ReportSources:
    transfers = [
        transfer(PERSONAL_WALLET, VOTE_ACCOUNT, 50 * SOL, "2025-11-20", from_label="Personal", to_label="Vote"),
        transfer(WITHDRAW_AUTHORITY, COINBASE, 10 * SOL, "2025-12-03", to_label="Coinbase"),
        transfer(IDENTITY, FEE_DEPOSIT_ACCOUNT, SOL, "2025-12-02"),
        transfer(JITO_TIP_DISTRIBUTION, VOTE_ACCOUNT, 3 * SOL, "2025-12-01"),
    ]
    return ReportSources(
        rewards=[EpochReward(epoch=880, amount_lamports=2 * SOL, date="2025-12-01", commission_percent=5)],
        leader_fees=[LeaderFees(epoch=880, amount_lamports=SOL, date="2025-12-01", blocks_produced=12)],
        incentive_claims=[IncentiveClaim(epoch=880, amount_lamports=SOL, date="2025-12-02")],
        vote_costs=[vote_cost(880, 4 * SOL, "2025-12-01")],
        expenses=[expense("2025-12-02", "250")],
        transfers=categorize_transfers(transfers, validator_config),
        prices=dict(PRICES),
        acceptance_date="2025-10-01",
    )


def test_accumulate_tracks_running_totals() -> None:
    events = accumulate(
        [
            _event("2025-12-01", "100", TimelineEventType.COMMISSION),
            _event("2025-12-02", "-30", TimelineEventType.EXPENSE),
            _event("2025-12-03", "500", TimelineEventType.SEEDING, is_pnl=False),
        ]
    )

    assert [e.cumulative_profit_usd for e in events] == [Decimal("100"), Decimal("70"), Decimal("70")]
    assert [e.cumulative_revenue_usd for e in events] == [Decimal("100"), Decimal("100"), Decimal("100")]
    assert [e.cumulative_expenses_usd for e in events] == [Decimal("0"), Decimal("30"), Decimal("30")]
    last = events[-1]
    assert last.cumulative_profit_usd == last.cumulative_revenue_usd - last.cumulative_expenses_usd


def test_sort_puts_unknown_dates_first_and_orders_kinds_within_a_day() -> None:
    events = sort_and_accumulate(
        [
            _event("2025-12-01", "-1", TimelineEventType.VOTE_COST),
            _event("2025-12-01", "1", TimelineEventType.COMMISSION),
            _event("unknown", "1", TimelineEventType.MEV),
        ]
    )

    assert [e.event_type for e in events] == [
        TimelineEventType.MEV,
        TimelineEventType.COMMISSION,
        TimelineEventType.VOTE_COST,
    ]


def test_build_timeline_covers_every_slice(validator_config: ValidatorConfig) -> None:
    events = build_timeline(_full_sources(validator_config))

    by_type = {e.event_type: e for e in events}
    assert set(by_type) == {
        TimelineEventType.COMMISSION,
        TimelineEventType.LEADER_FEES,
        TimelineEventType.MEV,
        TimelineEventType.INCENTIVE,
        TimelineEventType.VOTE_COST,
        TimelineEventType.EXPENSE,
        TimelineEventType.SEEDING,
        TimelineEventType.WITHDRAWAL,
        TimelineEventType.NETWORK_FEE_PREPAYMENT,
    }
    assert by_type[TimelineEventType.LEADER_FEES].sublabel == "Epoch 880 · 12 blocks"
    # No claim records: MEV deposits stand in for them.
    assert by_type[TimelineEventType.MEV].amount_lamports == 3 * SOL
    assert by_type[TimelineEventType.EXPENSE].amount_usd == Decimal("-250")
    assert by_type[TimelineEventType.EXPENSE].amount_lamports == 0
    assert by_type[TimelineEventType.WITHDRAWAL].sublabel == "→ Coinbase"
    assert not by_type[TimelineEventType.WITHDRAWAL].is_pnl
    assert not by_type[TimelineEventType.SEEDING].is_pnl
    assert by_type[TimelineEventType.NETWORK_FEE_PREPAYMENT].sublabel == "Deposit to DoubleZero PDA"


def test_vote_cost_event_is_net_of_coverage(validator_config: ValidatorConfig) -> None:
    events = build_timeline(_full_sources(validator_config))

    vote = next(e for e in events if e.event_type == TimelineEventType.VOTE_COST)
    # Two months after acceptance: 100% covered.
    assert vote.amount_lamports == 0
    assert vote.sublabel == "Epoch 880 · SFDP 100% offset"


def test_vote_cost_with_unknown_date_uses_fallback_coverage_date() -> None:
    sources = ReportSources(vote_costs=[vote_cost(1, 4 * SOL, None)], acceptance_date="2025-06-01")

    (event,) = build_timeline(sources)

    # 2025-12-15 is six months after acceptance: half is covered.
    assert event.date == "unknown"
    assert event.amount_lamports == -2 * SOL


def test_mev_claims_replace_deposits(validator_config: ValidatorConfig) -> None:
    sources = _full_sources(validator_config)
    sources.mev_claims = [MevClaim(epoch=880, amount_lamports=SOL // 10, date="2025-12-01")]

    events = build_timeline(sources)

    mev = [e for e in events if e.event_type == TimelineEventType.MEV]
    assert [e.amount_lamports for e in mev] == [SOL // 10]
    assert mev[0].label == "MEV tips (Jito)"


def test_timeline_build_is_idempotent(validator_config: ValidatorConfig) -> None:
    sources = _full_sources(validator_config)

    assert build_timeline(sources) == build_timeline(sources)


def test_final_totals_match_pnl_events(validator_config: ValidatorConfig) -> None:
    events = build_timeline(_full_sources(validator_config))

    pnl = [e.amount_usd for e in events if e.is_pnl]
    last = events[-1]
    assert last.cumulative_profit_usd == sum(pnl, Decimal("0"))
    assert last.cumulative_revenue_usd == sum((u for u in pnl if u >= 0), Decimal("0"))


def test_tax_row_to_event_signs_and_labels() -> None:
    expense_row = TaxRow(
        date="2025-12-01",
        entry_type=TaxEntryType.EXPENSE,
        category="Hosting",
        description="Latitude - Bare metal server",
        usd_value=Decimal("500"),
    )
    vote_row = TaxRow(
        date="2025-12-01",
        entry_type=TaxEntryType.EXPENSE,
        category="Vote Fees",
        description="Vote transaction fees epoch 880 (10 votes)",
        amount_lamports=SOL,
        usd_value=Decimal("100"),
    )
    capital_row = TaxRow(
        date="2025-12-01",
        entry_type=TaxEntryType.RETURN_OF_CAPITAL,
        category="Withdrawal",
        description="Return of seed capital to Coinbase",
        amount_lamports=SOL,
        usd_value=Decimal("100"),
    )

    hosting = tax_row_to_event(expense_row)
    vote = tax_row_to_event(vote_row)
    capital = tax_row_to_event(capital_row)

    assert hosting.event_type == TimelineEventType.TAX_EXPENSE_HOSTING
    assert hosting.label == "Latitude — Hosting"
    assert hosting.sublabel == "Bare metal server"
    assert hosting.amount_usd == Decimal("-500")
    assert vote.event_type == TimelineEventType.TAX_EXPENSE_VOTE_FEES
    assert vote.epoch == 880
    assert vote.amount_lamports == -SOL
    assert capital.event_type == TimelineEventType.TAX_RETURN_OF_CAPITAL
    assert not capital.is_pnl
    assert capital.amount_usd == Decimal("100")


def test_build_tax_timeline(validator_config: ValidatorConfig) -> None:
    sources = ReportSources(
        transfers=categorize_transfers(
            [
                transfer(PERSONAL_WALLET, VOTE_ACCOUNT, 5 * SOL, "2025-11-20"),
                transfer(WITHDRAW_AUTHORITY, COINBASE, 8 * SOL, "2025-12-01"),
            ],
            validator_config,
        ),
        prices=dict(PRICES),
        acceptance_date=ACCEPTANCE_DATE,
    )

    events = build_tax_timeline(sources, validator_config)

    assert [e.event_type for e in events] == [
        TimelineEventType.TAX_REVENUE,
        TimelineEventType.TAX_RETURN_OF_CAPITAL,
    ]
    assert events[-1].cumulative_profit_usd == Decimal("300")


def test_epoch_from_description() -> None:
    assert epoch_from_description("SFDP reimbursement epoch 812 (75% coverage)") == 812
    assert epoch_from_description("Latitude - Bare metal server") is None
