"""Tests for the TaxBracketEngine (progressive tax, rates, estimates)."""

from datetime import date
from decimal import Decimal

import pytest

from nurse_tax_engine.brackets import TaxBracketEngine, round_money
from nurse_tax_engine.rates import FilingStatus, TaxBracket, TaxTables


@pytest.fixture
def engine() -> TaxBracketEngine:
    return TaxBracketEngine()


# ── Progressive tax ─────────────────────────────────────────────────


def test_zero_income_has_zero_tax(engine: TaxBracketEngine):
    for status in FilingStatus:
        assert engine.compute_tax(Decimal("0"), status) == Decimal("0.00")


def test_negative_income_treated_as_zero(engine: TaxBracketEngine):
    assert engine.compute_tax(Decimal("-5000"), FilingStatus.SINGLE) == Decimal("0.00")


def test_top_of_first_bracket(engine: TaxBracketEngine):
    assert engine.compute_tax(Decimal("11600"), FilingStatus.SINGLE) == Decimal("1160.00")


def test_second_bracket_single(engine: TaxBracketEngine):
    # 1,160 + 12% of 33,800
    assert engine.compute_tax(Decimal("45400"), FilingStatus.SINGLE) == Decimal("5216.00")


def test_married_filing_jointly(engine: TaxBracketEngine):
    # 2,320 + 8,532 + 22% of 5,700
    tax = engine.compute_tax(Decimal("100000"), FilingStatus.MARRIED_FILING_JOINTLY)
    assert tax == Decimal("12106.00")


def test_head_of_household(engine: TaxBracketEngine):
    tax = engine.compute_tax(Decimal("20000"), FilingStatus.HEAD_OF_HOUSEHOLD)
    assert tax == Decimal("2069.00")


def test_income_in_top_bracket(engine: TaxBracketEngine):
    tax = engine.compute_tax(Decimal("1000000"), FilingStatus.SINGLE)
    assert tax == Decimal("328187.75")


def test_tax_is_monotonic(engine: TaxBracketEngine):
    previous = Decimal("0")
    for income in range(0, 800000, 7919):
        tax = engine.compute_tax(Decimal(income), FilingStatus.SINGLE)
        assert tax >= previous
        previous = tax


def test_tax_rounded_to_cents(engine: TaxBracketEngine):
    tax = engine.compute_tax(Decimal("11600.37"), FilingStatus.SINGLE)
    # 1,160 + 0.0444
    assert tax == Decimal("1160.04")


def test_round_money_half_up():
    assert round_money(Decimal("0.005")) == Decimal("0.01")
    assert round_money(Decimal("2.344")) == Decimal("2.34")


# ── Rates ───────────────────────────────────────────────────────────


def test_effective_rate_zero_income(engine: TaxBracketEngine):
    assert engine.effective_rate(Decimal("0"), FilingStatus.SINGLE) == Decimal("0")


def test_effective_rate_uses_gross(engine: TaxBracketEngine):
    rate = engine.effective_rate(
        Decimal("45400"), FilingStatus.SINGLE, gross_income=Decimal("60000")
    )
    assert rate == Decimal("5216.00") / Decimal("60000")


def test_effective_rate_never_exceeds_top_rate(engine: TaxBracketEngine):
    for income in ["1", "50000", "250000", "5000000"]:
        for status in FilingStatus:
            rate = engine.effective_rate(Decimal(income), status)
            assert rate <= Decimal("0.37")


def test_marginal_rates(engine: TaxBracketEngine):
    single = FilingStatus.SINGLE
    assert engine.marginal_rate(Decimal("0"), single) == Decimal("0")
    assert engine.marginal_rate(Decimal("11600"), single) == Decimal("0.10")
    assert engine.marginal_rate(Decimal("11601"), single) == Decimal("0.12")
    assert engine.marginal_rate(Decimal("700000"), single) == Decimal("0.37")


def test_standard_deductions(engine: TaxBracketEngine):
    assert engine.standard_deduction(FilingStatus.SINGLE) == Decimal("14600")
    assert engine.standard_deduction(FilingStatus.MARRIED_FILING_JOINTLY) == Decimal("29200")
    assert engine.standard_deduction(FilingStatus.HEAD_OF_HOUSEHOLD) == Decimal("21900")


def test_taxable_income_never_negative():
    assert TaxBracketEngine.taxable_income(Decimal("10000"), Decimal("14600")) == Decimal("0")


# ── Full calculation ────────────────────────────────────────────────


def test_calculate_with_standard_deduction(engine: TaxBracketEngine):
    result = engine.calculate(Decimal("60000"), FilingStatus.SINGLE)
    assert result.deduction == Decimal("14600")
    assert result.taxable_income == Decimal("45400")
    assert result.federal_tax == Decimal("5216.00")
    assert result.marginal_rate == Decimal("0.12")
    assert result.take_home == Decimal("54784.00")
    assert float(result.effective_rate) == pytest.approx(0.08693, abs=1e-5)


def test_calculate_with_itemized_deduction(engine: TaxBracketEngine):
    result = engine.calculate(
        Decimal("60000"), FilingStatus.SINGLE, deduction=Decimal("20000")
    )
    assert result.taxable_income == Decimal("40000")


def test_calculate_deduction_above_income(engine: TaxBracketEngine):
    result = engine.calculate(Decimal("12000"), FilingStatus.SINGLE)
    assert result.taxable_income == Decimal("0")
    assert result.federal_tax == Decimal("0.00")
    assert result.effective_rate == Decimal("0")


# ── Quarterly estimates ─────────────────────────────────────────────


def test_quarterly_estimates_sum_to_total(engine: TaxBracketEngine):
    result = engine.calculate(Decimal("60000.25"), FilingStatus.SINGLE)
    assert result.federal_tax == Decimal("5216.03")

    estimates = engine.quarterly_estimates(result, 2024)
    assert [e.amount for e in estimates] == [
        Decimal("1304.00"),
        Decimal("1304.00"),
        Decimal("1304.00"),
        Decimal("1304.03"),
    ]
    assert sum(e.amount for e in estimates) == result.federal_tax


def test_quarterly_due_dates(engine: TaxBracketEngine):
    result = engine.calculate(Decimal("60000"), FilingStatus.SINGLE)
    estimates = engine.quarterly_estimates(result, 2024)
    assert [e.due_date for e in estimates] == [
        date(2024, 4, 15),
        date(2024, 6, 15),
        date(2024, 9, 15),
        date(2025, 1, 15),
    ]
    assert [e.quarter for e in estimates] == [1, 2, 3, 4]


# ── Custom tables ───────────────────────────────────────────────────


def test_engine_with_custom_tables():
    brackets = [
        TaxBracket(Decimal("0"), Decimal("1000"), Decimal("0.10")),
        TaxBracket(Decimal("1000"), None, Decimal("0.50")),
    ]
    tables = TaxTables.from_tables(
        2030,
        {status: brackets for status in FilingStatus},
        {status: Decimal("0") for status in FilingStatus},
    )
    engine = TaxBracketEngine(tables=tables)
    assert engine.compute_tax(Decimal("3000"), FilingStatus.SINGLE) == Decimal("1100.00")
    assert engine.effective_rate(Decimal("1000000"), FilingStatus.SINGLE) <= Decimal("0.50")
