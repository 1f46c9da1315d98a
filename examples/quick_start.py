#!/usr/bin/env python3
"""
Quick Start Example
===================

Compares two travel nurse offers for a nurse whose tax home is in Texas,
then checks the tax home against the 30-day return rule.

Usage:
    python examples/quick_start.py
"""

from datetime import date
from decimal import Decimal

from nurse_tax_engine.compliance import ComplianceScoringEngine, new_tax_year
from nurse_tax_engine.offers import JobOffer, OfferComparisonEngine, TaxSettings


def main() -> None:
    engine = OfferComparisonEngine()
    settings = TaxSettings(tax_home_state="TX", federal_rate=Decimal("0.22"))

    offers = [
        JobOffer(
            offer_id="A",
            name="ICU - Denver",
            hourly_rate=Decimal("40"),
            hours_per_week=Decimal("36"),
            housing_stipend_weekly=Decimal("1500"),
            meals_stipend_weekly=Decimal("800"),
            location="Denver, CO",
            state="CO",
        ),
        JobOffer(
            offer_id="B",
            name="ER - Phoenix",
            hourly_rate=Decimal("55"),
            hours_per_week=Decimal("48"),
            overtime_rate=Decimal("82.50"),
            housing_stipend_weekly=Decimal("900"),
            meals_stipend_weekly=Decimal("400"),
            sign_on_bonus=Decimal("2000"),
            location="Phoenix, AZ",
            state="AZ",
        ),
    ]

    for r in engine.compare(offers, settings):
        print(f"#{r.rank} {r.offer.name}")
        print(f"   Weekly gross:      ${r.weekly_gross:,.2f}")
        print(f"   Weekly take-home:  ${r.weekly_take_home:,.2f}")
        print(f"   Blended rate:      ${r.blended_rate:,.2f}/hr")
        print(f"   Tax-free share:    {r.non_taxable_percentage}%")
        print(f"   Annual take-home:  ${r.annual_take_home:,.2f}")
        if r.warnings:
            print(f"   Warnings:          {', '.join(r.warnings)}")

    print("\n--- Tax Home ---")
    scoring = ComplianceScoringEngine()
    record = new_tax_year(2024)
    items = scoring.toggle_item(record.checklist_items, "maintain_residence")
    record = scoring.with_items(record, items)
    record = scoring.record_visit(record, date(2024, 5, 1), days_stayed=4)

    evaluation = scoring.evaluate(record, date(2024, 5, 26))
    print(f"Score:       {evaluation.score}% ({evaluation.level.value})")
    print(f"30-day rule: {evaluation.thirty_day.message}")


if __name__ == "__main__":
    main()
