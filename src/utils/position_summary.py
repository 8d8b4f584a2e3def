from __future__ import annotations

from domain.positions import ReconciliationStatus, StakeAccountInfo, ValidatorPosition, reconcile

from .formatting import format_decimal, format_lamports_as_sol


def render_position_summary(position: ValidatorPosition) -> None:
    rows: list[tuple[str, str]] = [
        ("Vote account", format_lamports_as_sol(position.vote_account_lamports)),
        ("  withdrawable", format_lamports_as_sol(position.vote_account_withdrawable)),
        ("Identity", format_lamports_as_sol(position.identity_lamports)),
        ("Withdraw authority", format_lamports_as_sol(position.withdraw_authority_lamports)),
        (
            f"Stake accounts ({position.stake_account_count})",
            format_lamports_as_sol(position.stake_accounts_total),
        ),
        ("  liquid", format_lamports_as_sol(position.stake_accounts_liquid)),
        ("  locked", format_lamports_as_sol(position.stake_accounts_locked)),
        (
            f"Liquid token (rate {format_decimal(position.liquid_token_sol_rate)})",
            format_lamports_as_sol(position.liquid_token_sol_equivalent),
        ),
    ]
    totals: list[tuple[str, str]] = [
        ("Total liquid", format_lamports_as_sol(position.total_liquid_lamports)),
        ("Total locked", format_lamports_as_sol(position.total_locked_lamports)),
        ("Total assets", format_lamports_as_sol(position.total_assets_lamports)),
    ]

    label_width = max(len(label) for label, _ in rows + totals)
    value_width = max(len("SOL"), max(len(value) for _, value in rows + totals))

    header = f"{'Account':<{label_width}} {'SOL':>{value_width}}"
    lines = [f"Validator position (slot {position.snapshot_slot}):", header, "-" * len(header)]
    for label, value in rows:
        lines.append(f"{label:<{label_width}} {value:>{value_width}}")
    lines.append("-" * len(header))
    for label, value in totals:
        lines.append(f"{label:<{label_width}} {value:>{value_width}}")
    print("\n".join(lines))


def render_reconciliation(position: ValidatorPosition) -> None:
    result = reconcile(position)
    print("Reconciliation:")
    print(f"  Lifetime income:      {format_lamports_as_sol(position.lifetime_income_lamports)} SOL")
    print(f"  Lifetime expenses:    {format_lamports_as_sol(position.lifetime_expenses_lamports)} SOL")
    print(f"  Lifetime withdrawals: {format_lamports_as_sol(position.lifetime_withdrawals_lamports)} SOL")
    print(f"  Lifetime deposits:    {format_lamports_as_sol(position.lifetime_deposits_lamports)} SOL")
    print(f"  Expected balance:     {_signed_sol(result.expected_lamports)} SOL")
    print(f"  Actual balance:       {format_lamports_as_sol(result.actual_lamports)} SOL")
    print(f"  Difference:           {_signed_sol(result.difference_lamports)} SOL")
    marker = "OK" if result.status == ReconciliationStatus.OK else "VARIANCE"
    print(f"  Status:               {marker}")


def render_stake_accounts(accounts: list[StakeAccountInfo]) -> None:
    print("Stake accounts:")
    if not accounts:
        print("  (none)")
        return
    for account in accounts:
        liquidity = "liquid" if account.is_liquid else "locked"
        print(
            f"  {account.account}  {format_lamports_as_sol(account.balance_lamports):>16} SOL  "
            f"{account.state:<12} {liquidity}"
        )


def _signed_sol(lamports: int) -> str:
    if lamports < 0:
        return f"-{format_lamports_as_sol(-lamports)}"
    return format_lamports_as_sol(lamports)
