from __future__ import annotations

import csv
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from domain.tax_ledger import NETWORK_FEE_CATEGORY, VOTE_FEES_CATEGORY, TaxEntryType, TaxLedger, TaxRow

from .formatting import format_currency, format_sol, normalize_currency, title_case

logger = logging.getLogger(__name__)

TAX_REPORT_FILENAME = "tax_report.csv"
SCHEDULE_C_FILENAME = "tax_schedule_c.csv"
SCHEDULE_C_OTHER_EXPENSES_FILENAME = "tax_schedule_c_other_expenses.csv"

TAX_REPORT_HEADER = [
    "Date",
    "Type",
    "Category",
    "Description",
    "SOL Amount",
    "SOL Price (USD)",
    "USD Value",
    "Destination",
    "Tx Signature",
]

INCOME_SECTION = "Business income"
EXPENSE_SECTION = "Business expenses"

ZERO = Decimal("0")

# Expense categories (lower-cased) that map to a dedicated Schedule C line.
_COMMISSIONS_AND_FEES = (VOTE_FEES_CATEGORY.lower(), NETWORK_FEE_CATEGORY.lower())
_MAPPED_EXPENSE_CATEGORIES = frozenset((*_COMMISSIONS_AND_FEES, "contractor", "software", "hosting"))


@dataclass(frozen=True)
class ScheduleCLine:
    section: str
    line: str
    description: str
    amount_usd: Decimal = ZERO


@dataclass(frozen=True)
class ScheduleC:
    year_label: str
    lines: list[ScheduleCLine]
    other_expenses: dict[str, Decimal]


@dataclass(frozen=True)
class TaxReportPaths:
    tax_report: Path
    schedule_c: Path
    schedule_c_other_expenses: Path


def _row_cells(row: TaxRow) -> list[str]:
    return [
        row.date,
        str(row.entry_type),
        row.category,
        row.description,
        format_sol(row.sol_amount),
        format_currency(row.sol_price_usd) if row.sol_price_usd is not None else "",
        format_currency(row.usd_value),
        row.destination,
        row.reference,
    ]


def write_tax_report_csv(path: Path, ledger: TaxLedger) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fp:
        writer = csv.writer(fp)
        writer.writerow(TAX_REPORT_HEADER)
        for row in ledger.rows:
            writer.writerow(_row_cells(row))
    return path


def _empty_line(line: str) -> ScheduleCLine:
    return ScheduleCLine(section=EXPENSE_SECTION, line=line, description=line)


def build_schedule_c(ledger: TaxLedger, year_filter: int | None = None) -> ScheduleC:
    """Map the ledger's totals onto Schedule C lines.

    Expense categories without a dedicated line are itemized as other expenses.
    """
    expense_by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for row in ledger.rows_of(TaxEntryType.EXPENSE):
        expense_by_category[row.category.lower()] += row.usd_value

    commissions_and_fees = normalize_currency(sum((expense_by_category[c] for c in _COMMISSIONS_AND_FEES), ZERO))
    other_expenses = {
        category: amount
        for category, amount in sorted(expense_by_category.items())
        if category not in _MAPPED_EXPENSE_CATEGORIES and amount != 0
    }

    lines = [
        ScheduleCLine(INCOME_SECTION, "Income reported on Form(s) 1099", "Income reported on Form(s) 1099"),
        ScheduleCLine(
            INCOME_SECTION,
            "Income not reported on Form(s) 1099",
            "Taxable external withdrawals (cash-basis)",
            normalize_currency(ledger.total_usd(TaxEntryType.REVENUE)),
        ),
        ScheduleCLine(INCOME_SECTION, "Returns and allowances", "Returns and allowances"),
        ScheduleCLine(
            INCOME_SECTION,
            "Other income",
            "SFDP vote fee reimbursements",
            normalize_currency(ledger.total_usd(TaxEntryType.REIMBURSEMENT)),
        ),
        _empty_line("Advertising"),
        ScheduleCLine(
            EXPENSE_SECTION,
            "Commissions and fees",
            "Vote fees (gross) + DoubleZero network fees",
            commissions_and_fees,
        ),
        ScheduleCLine(
            EXPENSE_SECTION,
            "Contract labor",
            "Contractor expenses",
            normalize_currency(expense_by_category["contractor"]),
        ),
        _empty_line("Employee benefit programs"),
        _empty_line("Insurance (other than health)"),
        _empty_line("Interest (mortgage)"),
        _empty_line("Interest (other)"),
        _empty_line("Legal and professional services"),
        ScheduleCLine(
            EXPENSE_SECTION,
            "Office expenses",
            "Software subscriptions and tools",
            normalize_currency(expense_by_category["software"]),
        ),
        _empty_line("Pension and profit-sharing plans"),
        _empty_line("Rent or lease (vehicles, machinery, and equipment)"),
        ScheduleCLine(
            EXPENSE_SECTION,
            "Rent or lease (other business property)",
            "Hosting and infrastructure",
            normalize_currency(expense_by_category["hosting"]),
        ),
        _empty_line("Repairs and maintenance"),
        _empty_line("Supplies"),
        _empty_line("Taxes and licenses"),
        _empty_line("Travel"),
        _empty_line("Meals"),
        _empty_line("Utilities"),
        _empty_line("Wages"),
        ScheduleCLine(
            EXPENSE_SECTION,
            "Other expenses (from the table below)",
            "See companion other-expenses CSV",
            normalize_currency(sum(other_expenses.values(), ZERO)),
        ),
    ]
    year_label = str(year_filter) if year_filter is not None else "all"
    return ScheduleC(year_label=year_label, lines=lines, other_expenses=other_expenses)


def write_schedule_c_csv(output_dir: Path, ledger: TaxLedger, year_filter: int | None = None) -> tuple[Path, Path]:
    schedule = build_schedule_c(ledger, year_filter)
    suffix = f"_{year_filter}" if year_filter is not None else ""
    schedule_path = output_dir / SCHEDULE_C_FILENAME.replace(".csv", f"{suffix}.csv")
    other_path = output_dir / SCHEDULE_C_OTHER_EXPENSES_FILENAME.replace(".csv", f"{suffix}.csv")
    output_dir.mkdir(parents=True, exist_ok=True)

    with schedule_path.open("w", encoding="utf-8", newline="") as fp:
        writer = csv.writer(fp)
        writer.writerow(["Tax Year", "Section", "Line", "Description", "Amount (USD)"])
        for line in schedule.lines:
            writer.writerow(
                [schedule.year_label, line.section, line.line, line.description, format_currency(line.amount_usd)]
            )

    with other_path.open("w", encoding="utf-8", newline="") as fp:
        writer = csv.writer(fp)
        writer.writerow(["Tax Year", "Description", "Amount (USD)", "Source Category"])
        for category, amount in schedule.other_expenses.items():
            label = title_case(category)
            writer.writerow([schedule.year_label, f"{label} expenses", format_currency(amount), label])

    return schedule_path, other_path


def generate_tax_report(output_dir: Path, ledger: TaxLedger, year_filter: int | None = None) -> TaxReportPaths:
    tax_path = write_tax_report_csv(output_dir / TAX_REPORT_FILENAME, ledger)
    schedule_path, other_path = write_schedule_c_csv(output_dir, ledger, year_filter)
    if ledger.skipped_unknown_dates:
        logger.warning(
            "%d row(s) with unknown or unparseable dates were excluded from the report",
            ledger.skipped_unknown_dates,
        )
    return TaxReportPaths(tax_report=tax_path, schedule_c=schedule_path, schedule_c_other_expenses=other_path)


def render_tax_summary(ledger: TaxLedger, year_filter: int | None = None) -> None:
    year_label = f" ({year_filter})" if year_filter is not None else ""
    rule = "-" * 49

    print(f"Tax report summary{year_label}:")

    print("\nRevenue (external withdrawals)")
    print(rule)
    capital_rows = ledger.rows_of(TaxEntryType.RETURN_OF_CAPITAL)
    if capital_rows:
        print(
            f"  Return of capital: {format_sol(_sol_total(capital_rows))} SOL = "
            f"${format_currency(ledger.total_usd(TaxEntryType.RETURN_OF_CAPITAL))} (non-taxable)"
        )
    revenue_rows = ledger.rows_of(TaxEntryType.REVENUE)
    print(
        f"  Taxable revenue:   {len(revenue_rows)} withdrawal(s): {format_sol(_sol_total(revenue_rows))} SOL = "
        f"${format_currency(ledger.total_usd(TaxEntryType.REVENUE))}"
    )

    reimbursement_rows = ledger.rows_of(TaxEntryType.REIMBURSEMENT)
    if reimbursement_rows:
        print("\nReimbursements (SFDP)")
        print(rule)
        print(
            f"  SFDP:              {len(reimbursement_rows)} entries  "
            f"{format_sol(_sol_total(reimbursement_rows))} SOL = "
            f"${format_currency(ledger.total_usd(TaxEntryType.REIMBURSEMENT))}"
        )

    print("\nExpenses (period costs)")
    print(rule)
    by_category: dict[str, list[TaxRow]] = defaultdict(list)
    for row in ledger.rows_of(TaxEntryType.EXPENSE):
        by_category[row.category].append(row)
    for category in sorted(by_category):
        rows = by_category[category]
        usd_total = sum((row.usd_value for row in rows), ZERO)
        sol_total = _sol_total(rows)
        sol_text = f"{format_sol(sol_total)} SOL = " if sol_total > 0 else ""
        print(f"  {category:<20} {len(rows):>3} entries  {sol_text}${format_currency(usd_total)}")
    print(rule)
    print(f"  {'Total':<20} ${format_currency(ledger.total_usd(TaxEntryType.EXPENSE))}")

    print(f"\nNet taxable income: ${format_currency(normalize_currency(ledger.net_taxable_income_usd()))}")


def _sol_total(rows: list[TaxRow]) -> Decimal:
    return sum((row.sol_amount for row in rows if row.sol_amount is not None), ZERO)


__all__ = [
    "SCHEDULE_C_FILENAME",
    "SCHEDULE_C_OTHER_EXPENSES_FILENAME",
    "TAX_REPORT_FILENAME",
    "TAX_REPORT_HEADER",
    "ScheduleC",
    "ScheduleCLine",
    "TaxReportPaths",
    "build_schedule_c",
    "generate_tax_report",
    "render_tax_summary",
    "write_schedule_c_csv",
    "write_tax_report_csv",
]
