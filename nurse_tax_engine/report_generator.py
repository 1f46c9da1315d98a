"""
Report generator.

Produces:
- Offer comparison reports (ranked take-home table, GSA flags)
- Tax home compliance reports (score, 30-day status, checklist by category)
- Federal tax summaries with quarterly estimates
- CSV (via pandas) and JSON export
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from nurse_tax_engine.brackets import FederalTaxResult, QuarterlyEstimate
from nurse_tax_engine.compliance import (
    ComplianceEvaluation,
    TaxHomeCompliance,
    ThirtyDayState,
    items_by_category,
)
from nurse_tax_engine.offers import OfferComparisonResult, RateMode, TaxSettings


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal, date and Enum values."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, date):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


def _to_plain(obj: Any) -> Any:
    """Recursively convert Decimal/date/Enum values for serialization."""
    if isinstance(obj, dict):
        return {k: _to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_plain(i) for i in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


def comparison_frame(results: list[OfferComparisonResult]) -> pd.DataFrame:
    """One row per ranked offer. Money columns keep their exact Decimal values."""
    rows = [
        {
            "rank": r.rank,
            "offer_id": r.offer_id,
            "name": r.offer.name if r.offer else r.offer_id,
            "weekly_taxable": r.weekly_taxable,
            "weekly_non_taxable": r.weekly_non_taxable,
            "weekly_gross": r.weekly_gross,
            "weekly_take_home": r.weekly_take_home,
            "blended_rate": r.blended_rate,
            "non_taxable_pct": r.non_taxable_percentage,
            "effective_tax_pct": r.effective_tax_rate,
            "annual_gross": r.annual_gross,
            "annual_take_home": r.annual_take_home,
            "gsa_compliant": r.gsa_compliant,
        }
        for r in results
    ]
    return pd.DataFrame(rows, columns=[
        "rank", "offer_id", "name", "weekly_taxable", "weekly_non_taxable",
        "weekly_gross", "weekly_take_home", "blended_rate", "non_taxable_pct",
        "effective_tax_pct", "annual_gross", "annual_take_home", "gsa_compliant",
    ])


class ReportGenerator:
    """
    Builds structured reports with export capabilities.

    All reports are plain dicts that can be rendered to console text or
    written to CSV/JSON files in ``output_dir``.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Offer comparison
    # ------------------------------------------------------------------

    def offer_comparison_report(
        self,
        results: list[OfferComparisonResult],
        settings: TaxSettings,
        generated_date: Optional[date] = None,
    ) -> dict[str, Any]:
        best = results[0] if results else None
        federal = (
            "bracket"
            if settings.federal_rate is RateMode.BRACKET
            else settings.federal_rate
        )
        return {
            "report_type": "offer_comparison",
            "generated_date": (generated_date or date.today()).isoformat(),
            "summary": {
                "offers_compared": len(results),
                "best_offer": best.offer.name if best and best.offer else None,
                "best_annual_take_home": best.annual_take_home if best else Decimal("0"),
                "gsa_non_compliant": sum(1 for r in results if not r.gsa_compliant),
            },
            "settings": {
                "tax_home_state": settings.tax_home_state,
                "federal_rate": federal,
                "state_rate": settings.state_rate,
                "filing_status": settings.filing_status.value,
                "weeks_worked_per_year": settings.weeks_worked_per_year,
            },
            "offers": comparison_frame(results).to_dict(orient="records"),
            "warnings": [
                f"{r.offer_id}: {w}" for r in results for w in r.warnings
            ],
        }

    # ------------------------------------------------------------------
    # Tax home compliance
    # ------------------------------------------------------------------

    def compliance_report(
        self,
        compliance: TaxHomeCompliance,
        evaluation: ComplianceEvaluation,
    ) -> dict[str, Any]:
        thirty = evaluation.thirty_day
        return {
            "report_type": "tax_home_compliance",
            "generated_date": evaluation.as_of.isoformat(),
            "period": str(compliance.tax_year),
            "summary": {
                "compliance_score": evaluation.score,
                "compliance_level": evaluation.level.value,
                "completed_items": evaluation.completed_items,
                "total_items": evaluation.total_items,
                "days_at_tax_home": compliance.days_at_tax_home,
                "thirty_day_state": thirty.state.value,
                "days_until_return": thirty.days_until_return,
            },
            "last_visit_date": compliance.last_visit_date,
            "checklist": [
                {
                    "category": category.display_name,
                    "item_id": item.item_id,
                    "title": item.title,
                    "weight": item.weight,
                    "status": item.status.value,
                }
                for category, items in items_by_category(
                    compliance.checklist_items
                ).items()
                for item in items
            ],
            "warnings": (
                [thirty.message]
                if thirty.state is not ThirtyDayState.COMPLIANT
                else []
            ),
        }

    # ------------------------------------------------------------------
    # Federal tax summary
    # ------------------------------------------------------------------

    def tax_summary_report(
        self,
        result: FederalTaxResult,
        estimates: Optional[list[QuarterlyEstimate]] = None,
        generated_date: Optional[date] = None,
    ) -> dict[str, Any]:
        report: dict[str, Any] = {
            "report_type": "federal_tax_summary",
            "generated_date": (generated_date or date.today()).isoformat(),
            "summary": {
                "filing_status": result.filing_status.display_name,
                "gross_income": result.gross_income,
                "deduction": result.deduction,
                "taxable_income": result.taxable_income,
                "federal_tax": result.federal_tax,
                "take_home": result.take_home,
                "effective_rate": result.effective_rate,
                "marginal_rate": result.marginal_rate,
            },
        }
        if estimates:
            report["quarterly_estimates"] = [
                {
                    "quarter": e.quarter,
                    "amount": e.amount,
                    "due_date": e.due_date.isoformat(),
                }
                for e in estimates
            ]
        return report

    # ------------------------------------------------------------------
    # Export methods
    # ------------------------------------------------------------------

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        json_str = json.dumps(_to_plain(report), indent=2, cls=_DecimalEncoder)

        if filename:
            path = self.output_dir / filename
            path.write_text(json_str, encoding="utf-8")

        return json_str

    def to_csv(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
        section: str = "offers",
    ) -> str:
        """
        Export a list section of a report to CSV. Returns the CSV string.

        Returns an empty string when the section is missing or empty.
        """
        data = report.get(section, [])
        if not data:
            return ""

        frame = pd.DataFrame(_to_plain(data))
        csv_str = frame.to_csv(index=False)

        if filename:
            path = self.output_dir / filename
            path.write_text(csv_str, encoding="utf-8")

        return csv_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format a report as human-readable text for console output."""
        lines: list[str] = []
        report_type = report.get("report_type", "report").replace("_", " ").title()
        lines.append(f"{'=' * 60}")
        lines.append(f"  {report_type}")
        lines.append(f"  Generated: {report.get('generated_date', '')}")
        if report.get("period"):
            lines.append(f"  Period: {report['period']}")
        lines.append(f"{'=' * 60}")
        lines.append("")

        summary = report.get("summary", {})
        if summary:
            lines.append("SUMMARY")
            lines.append("-" * 40)
            for key, value in summary.items():
                label = key.replace("_", " ").title()
                if isinstance(value, Decimal):
                    if "rate" in key:
                        lines.append(f"  {label}: {float(value):.2%}")
                    else:
                        lines.append(f"  {label}: ${value:,.2f}")
                else:
                    lines.append(f"  {label}: {value}")
            lines.append("")

        offers = report.get("offers", [])
        if offers:
            lines.append("RANKED OFFERS")
            lines.append("-" * 40)
            for o in offers:
                flag = "" if o.get("gsa_compliant", True) else "  [GSA]"
                lines.append(
                    f"  #{o['rank']} {o['name']}: "
                    f"${o['annual_take_home']:>12,.2f}/yr | "
                    f"${o['weekly_take_home']:>9,.2f}/wk | "
                    f"{o['non_taxable_pct']:.1f}% tax-free{flag}"
                )
            lines.append("")

        checklist = report.get("checklist", [])
        if checklist:
            lines.append("CHECKLIST")
            lines.append("-" * 40)
            current = None
            for c in checklist:
                if c["category"] != current:
                    current = c["category"]
                    lines.append(f"  {current}")
                mark = "x" if c["status"] == "complete" else " "
                lines.append(f"    [{mark}] {c['title']} ({c['weight']})")
            lines.append("")

        estimates = report.get("quarterly_estimates", [])
        if estimates:
            lines.append("QUARTERLY ESTIMATES")
            lines.append("-" * 40)
            for e in estimates:
                lines.append(
                    f"  Q{e['quarter']}: ${e['amount']:>10,.2f} due {e['due_date']}"
                )
            lines.append("")

        warnings = report.get("warnings", [])
        if warnings:
            lines.append("WARNINGS")
            lines.append("-" * 40)
            for w in warnings:
                lines.append(f"  * {w}")
            lines.append("")

        return "\n".join(lines)
