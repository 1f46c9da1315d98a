"""
Progressive federal income tax calculation.

Handles:
- Bracket-by-bracket tax on taxable income for each filing status
- Effective and marginal rates
- Standard deduction and taxable income
- Federal liability summary with quarterly estimated payments
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Optional

from nurse_tax_engine.config import EngineConfig
from nurse_tax_engine.rates import FilingStatus, TaxTables

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """Round to the nearest cent, halves away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class FederalTaxResult:
    """Federal liability for one year of income."""

    gross_income: Decimal
    deduction: Decimal
    taxable_income: Decimal
    federal_tax: Decimal
    filing_status: FilingStatus
    effective_rate: Decimal
    marginal_rate: Decimal

    @property
    def take_home(self) -> Decimal:
        return self.gross_income - self.federal_tax


@dataclass
class QuarterlyEstimate:
    """One estimated-tax installment."""

    quarter: int
    amount: Decimal
    due_date: date


class TaxBracketEngine:
    """
    Federal tax bracket calculator.

    Pure functions over the static tables of one tax year. Negative
    income is treated as zero; no input value raises.
    """

    def __init__(
        self,
        tables: Optional[TaxTables] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.tables = tables or TaxTables(self.config.tax_year)

    def compute_tax(
        self, taxable_income: Decimal, status: FilingStatus
    ) -> Decimal:
        """
        Tax owed on ``taxable_income``, rounded to the cent.

        Each bracket taxes the slice of income between its lower bound
        and its upper bound (or all remaining income for the top bracket).
        """
        brackets = self.tables.brackets(status)
        income = max(taxable_income, ZERO)
        tax = ZERO

        for bracket in brackets:
            if income <= bracket.lower_bound:
                break
            upper = bracket.upper_bound if bracket.upper_bound is not None else income
            portion = max(min(income, upper) - bracket.lower_bound, ZERO)
            tax += portion * bracket.rate

        return round_money(tax)

    def effective_rate(
        self,
        taxable_income: Decimal,
        status: FilingStatus,
        gross_income: Optional[Decimal] = None,
    ) -> Decimal:
        """
        Tax as a fraction of gross income (defaults to the taxable income).

        Returns 0 when gross income is not positive. Never exceeds the top
        marginal rate of the table.
        """
        gross = taxable_income if gross_income is None else gross_income
        if gross <= 0:
            return ZERO
        tax = self.compute_tax(taxable_income, status)
        return min(tax / gross, self.tables.top_rate(status))

    def marginal_rate(
        self, taxable_income: Decimal, status: FilingStatus
    ) -> Decimal:
        """Rate applied to the next dollar of income (0 for no income)."""
        brackets = self.tables.brackets(status)
        if taxable_income <= 0:
            return ZERO
        for bracket in brackets:
            if bracket.upper_bound is None or taxable_income <= bracket.upper_bound:
                return bracket.rate
        return brackets[-1].rate

    def standard_deduction(self, status: FilingStatus) -> Decimal:
        return self.tables.standard_deduction(status)

    @staticmethod
    def taxable_income(gross: Decimal, deduction: Decimal) -> Decimal:
        return max(gross - deduction, ZERO)

    def calculate(
        self,
        gross_income: Decimal,
        status: FilingStatus,
        deduction: Optional[Decimal] = None,
    ) -> FederalTaxResult:
        """
        Full federal computation for a year of gross income.

        Uses the standard deduction when ``deduction`` is not given.
        """
        gross = max(gross_income, ZERO)
        used_deduction = (
            self.standard_deduction(status)
            if deduction is None
            else max(deduction, ZERO)
        )
        taxable = self.taxable_income(gross, used_deduction)
        tax = self.compute_tax(taxable, status)

        logger.debug(
            "Federal tax %s on taxable %s (%s)", tax, taxable, status.value
        )

        return FederalTaxResult(
            gross_income=gross,
            deduction=used_deduction,
            taxable_income=taxable,
            federal_tax=tax,
            filing_status=status,
            effective_rate=self.effective_rate(taxable, status, gross),
            marginal_rate=self.marginal_rate(taxable, status),
        )

    @staticmethod
    def quarterly_estimates(
        result: FederalTaxResult, year: int
    ) -> list[QuarterlyEstimate]:
        """
        Split annual federal tax into four estimated payments.

        The first three installments are the quarter truncated to the cent; the
        fourth absorbs the rounding remainder so the total is exact.
        """
        quarter = (result.federal_tax / 4).quantize(CENT, rounding=ROUND_DOWN)
        due_dates = [
            date(year, 4, 15),
            date(year, 6, 15),
            date(year, 9, 15),
            date(year + 1, 1, 15),
        ]
        amounts = [quarter, quarter, quarter, result.federal_tax - quarter * 3]
        return [
            QuarterlyEstimate(quarter=i + 1, amount=amount, due_date=due)
            for i, (amount, due) in enumerate(zip(amounts, due_dates))
        ]
