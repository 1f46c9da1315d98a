"""
Command-line interface for the travel nurse tax engine.

Provides subcommands for federal tax calculation, bracket tables, job
offer comparison, and tax home compliance tracking.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich import box

from nurse_tax_engine.brackets import TaxBracketEngine
from nurse_tax_engine.compliance import (
    ComplianceScoringEngine,
    ItemStatus,
    TaxHomeCompliance,
    ThirtyDayState,
    items_by_category,
    new_tax_year,
)
from nurse_tax_engine.config import BonusTreatment, EngineConfig, PartialCredit
from nurse_tax_engine.exceptions import ConfigurationError
from nurse_tax_engine.offers import (
    BRACKET_MODE,
    JobOffer,
    OfferComparisonEngine,
    TaxSettings,
)
from nurse_tax_engine.rates import FilingStatus, TaxTables
from nurse_tax_engine.report_generator import ReportGenerator

console = Console()

_LEVEL_COLORS = {
    "excellent": "green",
    "good": "bright_green",
    "at_risk": "yellow",
    "non_compliant": "red",
}

_THIRTY_DAY_COLORS = {
    ThirtyDayState.COMPLIANT: "green",
    ThirtyDayState.AT_RISK: "yellow",
    ThirtyDayState.VIOLATED: "red",
}


def _decimal_arg(value: str, name: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        console.print(f"[red]Invalid {name}: {value}[/red]")
        sys.exit(1)


def _load_offers_csv(path: str) -> list[JobOffer]:
    """
    Load job offers from a CSV file.

    Expected columns: offer_id, name, hourly_rate, hours_per_week,
                      housing_stipend_weekly, meals_stipend_weekly,
                      travel_reimbursement, overtime_rate, sign_on_bonus,
                      completion_bonus, referral_bonus, contract_weeks,
                      facility_name, location, state
    """
    offers: list[JobOffer] = []
    csv_path = Path(path)
    if not csv_path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        sys.exit(1)

    with open(csv_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for i, row in enumerate(reader):
            row = {k: (v.strip() if isinstance(v, str) else v) for k, v in row.items()}
            row.setdefault("offer_id", str(i + 1))
            try:
                offers.append(JobOffer.from_dict(row))
            except (KeyError, ValueError, InvalidOperation) as e:
                console.print(
                    f"[yellow]Skipping row {i + 1}: {e}[/yellow]"
                )
    return offers


def _load_compliance(path: Optional[str], year: int) -> TaxHomeCompliance:
    if path and Path(path).exists():
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            return TaxHomeCompliance.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            console.print(f"[red]Invalid compliance record {path}: {e}[/red]")
            sys.exit(1)
    return new_tax_year(year)


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date (use YYYY-MM-DD): {value}[/red]")
        sys.exit(1)


# -----------------------------------------------------------------------
# Subcommand: tax
# -----------------------------------------------------------------------


def cmd_tax(args: argparse.Namespace) -> None:
    """Calculate federal income tax for a year of gross income."""
    engine = TaxBracketEngine()
    status = FilingStatus.parse(args.status)
    gross = _decimal_arg(args.income, "income")
    deduction = (
        _decimal_arg(args.deduction, "deduction") if args.deduction else None
    )

    result = engine.calculate(gross, status, deduction)
    console.print(
        Panel(
            f"[bold]Filing Status:[/bold] {status.display_name}\n"
            f"[bold]Gross Income:[/bold] ${result.gross_income:,.2f}\n"
            f"[bold]Deduction:[/bold] ${result.deduction:,.2f}\n"
            f"[bold]Taxable Income:[/bold] ${result.taxable_income:,.2f}\n"
            f"[bold]Federal Tax:[/bold] ${result.federal_tax:,.2f}\n"
            f"[bold]Effective Rate:[/bold] {result.effective_rate:.2%}\n"
            f"[bold]Marginal Rate:[/bold] {result.marginal_rate:.0%}\n"
            f"[bold]Take Home:[/bold] ${result.take_home:,.2f}",
            title=f"Federal Tax {engine.tables.tax_year}",
            border_style="blue",
        )
    )

    estimates = None
    if args.quarterly:
        year = args.year or engine.tables.tax_year
        estimates = engine.quarterly_estimates(result, year)
        table = Table(title="Quarterly Estimates", box=box.SIMPLE)
        table.add_column("Quarter")
        table.add_column("Due")
        table.add_column("Amount", justify="right")
        for e in estimates:
            table.add_row(f"Q{e.quarter}", e.due_date.isoformat(), f"${e.amount:,.2f}")
        console.print(table)

    if args.export_json:
        rg = ReportGenerator(args.output_dir or "reports")
        report = rg.tax_summary_report(result, estimates)
        rg.to_json(report, args.export_json)
        console.print(f"[green]JSON exported to {args.export_json}[/green]")


# -----------------------------------------------------------------------
# Subcommand: brackets
# -----------------------------------------------------------------------


def cmd_brackets(args: argparse.Namespace) -> None:
    """Display federal bracket tables and standard deductions."""
    tables = TaxTables()
    statuses = [FilingStatus.parse(args.status)] if args.status else list(FilingStatus)

    for status in statuses:
        table = Table(
            title=(
                f"{tables.tax_year} {status.display_name} "
                f"(standard deduction ${tables.standard_deduction(status):,.0f})"
            ),
            box=box.ROUNDED,
        )
        table.add_column("Rate", justify="right", style="bold")
        table.add_column("From", justify="right")
        table.add_column("To", justify="right")
        for b in tables.brackets(status):
            table.add_row(
                f"{b.rate:.0%}",
                f"${b.lower_bound:,.0f}",
                f"${b.upper_bound:,.0f}" if b.upper_bound is not None else "and up",
            )
        console.print(table)

    console.print(
        f"[dim]No wage income tax: {', '.join(tables.no_income_tax_states())}[/dim]"
    )


# -----------------------------------------------------------------------
# Subcommand: compare
# -----------------------------------------------------------------------


def cmd_compare(args: argparse.Namespace) -> None:
    """Rank job offers by annual take-home pay."""
    offers = _load_offers_csv(args.file)
    if not offers:
        console.print("[yellow]No offers to compare.[/yellow]")
        return

    config = EngineConfig(bonus_treatment=BonusTreatment(args.bonus))
    engine = OfferComparisonEngine(config=config)

    federal = (
        BRACKET_MODE
        if args.federal_rate.lower() == "bracket"
        else _decimal_arg(args.federal_rate, "federal rate")
    )
    settings = TaxSettings(
        tax_home_state=args.state.upper() if args.state else None,
        federal_rate=federal,
        state_rate=(
            _decimal_arg(args.state_rate, "state rate") if args.state_rate else None
        ),
        filing_status=FilingStatus.parse(args.status),
        weeks_worked_per_year=args.weeks,
    )
    results = engine.compare(offers, settings)

    table = Table(title="Offer Comparison", box=box.ROUNDED, show_lines=True)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Offer")
    table.add_column("Weekly Gross", justify="right")
    table.add_column("Weekly Take-Home", justify="right")
    table.add_column("Blended", justify="right")
    table.add_column("Tax-Free", justify="right")
    table.add_column("Annual Take-Home", justify="right", style="bold green")
    table.add_column("GSA", justify="center")

    for r in results:
        table.add_row(
            str(r.rank),
            r.offer.name if r.offer else r.offer_id,
            f"${r.weekly_gross:,.2f}",
            f"${r.weekly_take_home:,.2f}",
            f"${r.blended_rate:,.2f}" if r.blended_rate is not None else "n/a",
            f"{r.non_taxable_percentage:.1f}%",
            f"${r.annual_take_home:,.2f}",
            "OK" if r.gsa_compliant else "[yellow]over[/yellow]",
        )
    console.print(table)

    if engine.is_no_income_tax_state(settings.tax_home_state):
        console.print(f"[dim]{settings.tax_home_state} has no state wage tax[/dim]")

    for r in results:
        for w in r.warnings:
            console.print(f"[yellow]Warning ({r.offer_id}): {w}[/yellow]")

    if args.export_json or args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        report = rg.offer_comparison_report(results, settings)
        if args.export_json:
            rg.to_json(report, args.export_json)
            console.print(f"[green]JSON exported to {args.export_json}[/green]")
        if args.export_csv:
            rg.to_csv(report, args.export_csv, section="offers")
            console.print(f"[green]CSV exported to {args.export_csv}[/green]")


# -----------------------------------------------------------------------
# Subcommand: compliance
# -----------------------------------------------------------------------


def cmd_compliance(args: argparse.Namespace) -> None:
    """Score the tax home checklist and check the 30-day return rule."""
    as_of = _parse_date(args.as_of)
    config = EngineConfig(partial_credit=PartialCredit(args.partial))
    engine = ComplianceScoringEngine(config)
    compliance = _load_compliance(args.file, args.year or as_of.year)

    now = datetime.combine(as_of, datetime.min.time())
    for item_id in args.toggle or []:
        items = engine.toggle_item(compliance.checklist_items, item_id, now)
        compliance = engine.with_items(compliance, items)
    for assignment in args.set or []:
        item_id, _, status = assignment.partition("=")
        try:
            new_status = ItemStatus(status.strip().lower())
        except ValueError:
            console.print(f"[yellow]Unknown status for {item_id}: {status}[/yellow]")
            continue
        items = engine.set_item_status(
            compliance.checklist_items, item_id.strip(), new_status, now=now
        )
        compliance = engine.with_items(compliance, items)
    if args.record_visit:
        compliance = engine.record_visit(
            compliance, _parse_date(args.record_visit), args.days
        )
    compliance = engine.refresh(compliance, as_of)

    evaluation = engine.evaluate(compliance, as_of)
    level_color = _LEVEL_COLORS[evaluation.level.value]
    thirty = evaluation.thirty_day

    console.print(
        Panel(
            f"[bold]Tax Year:[/bold] {compliance.tax_year}\n"
            f"[bold]Score:[/bold] {evaluation.score}%\n"
            f"[bold]Level:[/bold] [{level_color}]"
            f"{evaluation.level.value.replace('_', ' ').title()}[/{level_color}]\n"
            f"[bold]Checklist:[/bold] {evaluation.completed_items}/"
            f"{evaluation.total_items} complete\n"
            f"[bold]Days at Tax Home:[/bold] {compliance.days_at_tax_home}\n"
            f"[bold]Last Visit:[/bold] "
            f"{compliance.last_visit_date.isoformat() if compliance.last_visit_date else 'Never'}",
            title=f"Tax Home Compliance as of {as_of.isoformat()}",
            border_style=level_color,
        )
    )

    color = _THIRTY_DAY_COLORS[thirty.state]
    console.print(f"[{color}]30-day rule: {thirty.message}[/{color}]")

    table = Table(title="Checklist", box=box.SIMPLE)
    table.add_column("Category", style="bold")
    table.add_column("Item ID", style="dim")
    table.add_column("Item")
    table.add_column("Weight", justify="right")
    table.add_column("Status")
    for category, items in items_by_category(compliance.checklist_items).items():
        for item in items:
            table.add_row(
                category.display_name,
                item.item_id,
                item.title,
                str(item.weight),
                item.status.value.replace("_", " "),
            )
    console.print(table)

    if args.save and args.file:
        Path(args.file).write_text(
            json.dumps(compliance.to_dict(), indent=2), encoding="utf-8"
        )
        console.print(f"[green]Saved to {args.file}[/green]")

    if args.export_json:
        rg = ReportGenerator(args.output_dir or "reports")
        rg.to_json(rg.compliance_report(compliance, evaluation), args.export_json)
        console.print(f"[green]Report exported to {args.export_json}[/green]")


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nurse-tax",
        description="Travel nurse tax engine - federal tax, offer comparison, and tax home compliance",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # tax
    tax_p = subparsers.add_parser("tax", help="Calculate federal income tax")
    tax_p.add_argument("--income", required=True, help="Annual gross income")
    tax_p.add_argument("--status", default="single", help="Filing status (single, mfj, hoh)")
    tax_p.add_argument("--deduction", help="Itemized deduction (default: standard)")
    tax_p.add_argument("--quarterly", "-q", action="store_true", help="Show quarterly estimates")
    tax_p.add_argument("--year", type=int, help="Year for quarterly due dates")
    tax_p.add_argument("--export-json", help="Export summary to JSON file")
    tax_p.add_argument("--output-dir", help="Output directory for exports")
    tax_p.set_defaults(func=cmd_tax)

    # brackets
    brackets_p = subparsers.add_parser("brackets", help="View federal bracket tables")
    brackets_p.add_argument("--status", "-s", help="Filing status to show")
    brackets_p.set_defaults(func=cmd_brackets)

    # compare
    compare_p = subparsers.add_parser("compare", help="Compare job offers")
    compare_p.add_argument("--file", "-f", required=True, help="CSV file with offers")
    compare_p.add_argument("--state", help="Tax home state code")
    compare_p.add_argument(
        "--federal-rate",
        default="0.22",
        help="Flat federal rate (e.g. 0.22) or 'bracket'",
    )
    compare_p.add_argument("--state-rate", help="Override the state rate")
    compare_p.add_argument("--status", default="single", help="Filing status for bracket mode")
    compare_p.add_argument("--weeks", type=int, help="Weeks worked per year (default 48)")
    compare_p.add_argument(
        "--bonus",
        choices=[b.value for b in BonusTreatment],
        default=BonusTreatment.ONCE.value,
        help="Add bonuses once or prorate per contract",
    )
    compare_p.add_argument("--export-json", help="Export report to JSON")
    compare_p.add_argument("--export-csv", help="Export ranked offers to CSV")
    compare_p.add_argument("--output-dir", help="Output directory")
    compare_p.set_defaults(func=cmd_compare)

    # compliance
    comp_p = subparsers.add_parser(
        "compliance", help="Tax home checklist and 30-day rule"
    )
    comp_p.add_argument("--file", "-f", help="JSON compliance record")
    comp_p.add_argument("--year", type=int, help="Tax year for a new record")
    comp_p.add_argument("--as-of", help="Evaluation date YYYY-MM-DD (default: today)")
    comp_p.add_argument("--record-visit", help="Record a tax home visit on YYYY-MM-DD")
    comp_p.add_argument("--days", type=int, default=1, help="Days stayed on the visit")
    comp_p.add_argument("--toggle", action="append", help="Toggle a checklist item id")
    comp_p.add_argument(
        "--set", action="append", help="Set an item status, e.g. bank_accounts=partial"
    )
    comp_p.add_argument(
        "--partial",
        choices=[p.value for p in PartialCredit],
        default=PartialCredit.HALF_WEIGHT.value,
        help="Scoring of partially complete items",
    )
    comp_p.add_argument("--save", action="store_true", help="Write changes back to --file")
    comp_p.add_argument("--export-json", help="Export report to JSON")
    comp_p.add_argument("--output-dir", help="Output directory")
    comp_p.set_defaults(func=cmd_compliance)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    if not args.command:
        parser.print_help()
        sys.exit(0)

    try:
        args.func(args)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
