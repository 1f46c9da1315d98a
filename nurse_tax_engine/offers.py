"""
Travel nurse job offer comparison.

Handles:
- Weekly taxable / non-taxable split, including overtime above a threshold
- Blended hourly rate and non-taxable share of pay
- Flat or bracket-derived federal rate plus state rate of the tax home
- Annual projections with one-time bonuses and travel reimbursement
- GSA per-diem compliance of stipends
- Deterministic ranking by annual take-home pay
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Union

from nurse_tax_engine.brackets import ZERO, TaxBracketEngine, round_money
from nurse_tax_engine.config import BonusTreatment, EngineConfig
from nurse_tax_engine.rates import FilingStatus, TaxTables

logger = logging.getLogger(__name__)

ONE = Decimal("1")
HUNDRED = Decimal("100")
PERCENT = Decimal("0.01")


class RateMode(Enum):
    BRACKET = "bracket"  # derive the federal rate from the progressive table


BRACKET_MODE = RateMode.BRACKET


def _money(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _non_negative(amount: Optional[Decimal]) -> Decimal:
    if amount is None:
        return ZERO
    return max(amount, ZERO)


def _clamp_rate(rate: Decimal) -> Decimal:
    return min(max(rate, ZERO), ONE)


@dataclass(frozen=True)
class JobOffer:
    """A job offer as entered by the nurse. Replace it to edit it."""

    offer_id: str
    name: str
    hourly_rate: Decimal
    hours_per_week: Decimal
    housing_stipend_weekly: Decimal = ZERO
    meals_stipend_weekly: Decimal = ZERO
    travel_reimbursement: Decimal = ZERO
    facility_name: Optional[str] = None
    location: Optional[str] = None  # "City, ST", used for GSA lookup
    overtime_rate: Optional[Decimal] = None
    sign_on_bonus: Optional[Decimal] = None
    completion_bonus: Optional[Decimal] = None
    referral_bonus: Optional[Decimal] = None
    contract_weeks: int = 13
    state: Optional[str] = None

    @property
    def total_bonuses(self) -> Decimal:
        return (
            _non_negative(self.sign_on_bonus)
            + _non_negative(self.completion_bonus)
            + _non_negative(self.referral_bonus)
        )

    @classmethod
    def from_dict(cls, data: dict) -> "JobOffer":
        return cls(
            offer_id=str(data.get("offer_id") or data.get("id") or data["name"]),
            name=data["name"],
            hourly_rate=Decimal(str(data["hourly_rate"])),
            hours_per_week=Decimal(str(data["hours_per_week"])),
            housing_stipend_weekly=_money(data.get("housing_stipend_weekly")) or ZERO,
            meals_stipend_weekly=_money(data.get("meals_stipend_weekly")) or ZERO,
            travel_reimbursement=_money(data.get("travel_reimbursement")) or ZERO,
            facility_name=data.get("facility_name") or None,
            location=data.get("location") or None,
            overtime_rate=_money(data.get("overtime_rate")),
            sign_on_bonus=_money(data.get("sign_on_bonus")),
            completion_bonus=_money(data.get("completion_bonus")),
            referral_bonus=_money(data.get("referral_bonus")),
            contract_weeks=int(data.get("contract_weeks") or 13),
            state=(data.get("state") or "").strip().upper() or None,
        )


@dataclass(frozen=True)
class TaxSettings:
    """
    Tax assumptions applied to every offer in one comparison.

    ``federal_rate`` is either a flat decimal rate or ``BRACKET_MODE``.
    ``state_rate`` overrides the built-in flat rate of the tax home state;
    states without a wage income tax always use 0.
    """

    tax_home_state: Optional[str] = None
    federal_rate: Union[Decimal, RateMode] = Decimal("0.22")
    state_rate: Optional[Decimal] = None
    filing_status: FilingStatus = FilingStatus.SINGLE
    weeks_worked_per_year: Optional[int] = None


@dataclass(frozen=True)
class OfferComparisonResult:
    """Normalized figures for one offer. Derived, never stored."""

    offer_id: str
    rank: int
    weekly_taxable: Decimal
    weekly_non_taxable: Decimal
    weekly_gross: Decimal
    weekly_take_home: Decimal
    blended_rate: Optional[Decimal]  # None when hours per week is zero
    non_taxable_percentage: Decimal
    effective_tax_rate: Decimal  # percent of weekly gross
    annual_gross: Decimal
    annual_take_home: Decimal
    gsa_compliant: bool
    offer: Optional[JobOffer] = None
    total_tax_rate: Decimal = ZERO
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def blended_rate_defined(self) -> bool:
        return self.blended_rate is not None


@dataclass(frozen=True)
class GSAComplianceResult:
    """Per-day stipend check against GSA lodging and M&IE ceilings."""

    is_compliant: bool
    housing_within_limit: bool
    meals_within_limit: bool
    daily_housing: Decimal
    daily_meals: Decimal
    gsa_daily_lodging: Decimal
    gsa_daily_meals: Decimal
    gsa_location: str = "default"

    @property
    def housing_excess(self) -> Decimal:
        return max(ZERO, self.daily_housing - self.gsa_daily_lodging)

    @property
    def meals_excess(self) -> Decimal:
        return max(ZERO, self.daily_meals - self.gsa_daily_meals)


class OfferComparisonEngine:
    """
    Normalizes heterogeneous offers into comparable take-home figures.

    Stateless: every call recomputes from the offers it is given.
    """

    def __init__(
        self,
        tables: Optional[TaxTables] = None,
        config: Optional[EngineConfig] = None,
        bracket_engine: Optional[TaxBracketEngine] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.tables = tables or TaxTables(self.config.tax_year)
        self.brackets = bracket_engine or TaxBracketEngine(self.tables, self.config)

    # ------------------------------------------------------------------
    # Weekly components
    # ------------------------------------------------------------------

    def weekly_taxable(self, offer: JobOffer) -> Decimal:
        """Hourly wages; hours above the threshold use the overtime rate if any."""
        hourly = _non_negative(offer.hourly_rate)
        hours = _non_negative(offer.hours_per_week)
        threshold = self.config.overtime_threshold_hours

        if offer.overtime_rate is not None and hours > threshold:
            regular = hourly * threshold
            overtime = _non_negative(offer.overtime_rate) * (hours - threshold)
            return regular + overtime
        return hourly * hours

    @staticmethod
    def weekly_non_taxable(offer: JobOffer) -> Decimal:
        return _non_negative(offer.housing_stipend_weekly) + _non_negative(
            offer.meals_stipend_weekly
        )

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------

    def is_no_income_tax_state(self, state_code: Optional[str]) -> bool:
        return self.tables.is_no_income_tax_state(state_code)

    def state_tax_rate(self, settings: TaxSettings) -> Decimal:
        if self.tables.is_no_income_tax_state(settings.tax_home_state):
            return ZERO
        if settings.state_rate is not None:
            return _clamp_rate(settings.state_rate)
        return self.tables.state_flat_rate(settings.tax_home_state)

    def federal_tax_rate(
        self, weekly_taxable: Decimal, settings: TaxSettings, weeks: int
    ) -> Decimal:
        """
        Flat rate, or the bracket-derived effective rate on annualized wages.

        In bracket mode the filing status's standard deduction is taken
        before the progressive table is applied.
        """
        if settings.federal_rate is RateMode.BRACKET:
            annual_wages = weekly_taxable * weeks
            if annual_wages <= 0:
                return ZERO
            status = settings.filing_status
            taxable = self.brackets.taxable_income(
                annual_wages, self.brackets.standard_deduction(status)
            )
            return self.brackets.compute_tax(taxable, status) / annual_wages
        return _clamp_rate(settings.federal_rate)

    def _weeks(self, settings: TaxSettings) -> int:
        weeks = settings.weeks_worked_per_year
        if weeks is None:
            weeks = self.config.default_weeks_worked
        return min(max(weeks, 0), 52)

    def _extras_multiplier(self, offer: JobOffer, weeks: int) -> Decimal:
        if self.config.bonus_treatment is BonusTreatment.PRORATED and offer.contract_weeks > 0:
            return Decimal(weeks) / Decimal(offer.contract_weeks)
        return ONE

    # ------------------------------------------------------------------
    # GSA
    # ------------------------------------------------------------------

    def check_gsa_compliance(self, offer: JobOffer) -> GSAComplianceResult:
        """Compare daily housing and meals stipends to the location's ceilings."""
        gsa = self.tables.gsa_rate(offer.location, offer.state)
        daily_housing = _non_negative(offer.housing_stipend_weekly) / 7
        daily_meals = _non_negative(offer.meals_stipend_weekly) / 7

        housing_ok = daily_housing <= gsa.daily_lodging
        meals_ok = daily_meals <= gsa.daily_meals

        return GSAComplianceResult(
            is_compliant=housing_ok and meals_ok,
            housing_within_limit=housing_ok,
            meals_within_limit=meals_ok,
            daily_housing=round_money(daily_housing),
            daily_meals=round_money(daily_meals),
            gsa_daily_lodging=gsa.daily_lodging,
            gsa_daily_meals=gsa.daily_meals,
            gsa_location=gsa.location,
        )

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def evaluate(
        self, offer: JobOffer, settings: TaxSettings
    ) -> OfferComparisonResult:
        """Normalize a single offer. ``rank`` is 0 until ranked by ``compare``."""
        warnings: list[str] = []
        weeks = self._weeks(settings)

        taxable = self.weekly_taxable(offer)
        non_taxable = self.weekly_non_taxable(offer)
        gross = taxable + non_taxable
        hours = _non_negative(offer.hours_per_week)

        if offer.hourly_rate < 0 or offer.hours_per_week < 0:
            warnings.append("Negative hourly rate or hours treated as zero")
        if offer.housing_stipend_weekly < 0 or offer.meals_stipend_weekly < 0:
            warnings.append("Negative stipend treated as zero")

        if hours > 0:
            blended: Optional[Decimal] = round_money(gross / hours)
        else:
            blended = None
            warnings.append("No hours per week; blended rate undefined")

        if gross > 0:
            pct = min(max(non_taxable / gross * HUNDRED, ZERO), HUNDRED)
            non_taxable_pct = pct.quantize(PERCENT, rounding=ROUND_HALF_UP)
        else:
            non_taxable_pct = ZERO

        total_rate = min(
            self.federal_tax_rate(taxable, settings, weeks)
            + self.state_tax_rate(settings),
            ONE,
        )
        weekly_take_home = max(taxable * (ONE - total_rate) + non_taxable, ZERO)

        effective = (
            ((gross - weekly_take_home) / gross * HUNDRED).quantize(
                PERCENT, rounding=ROUND_HALF_UP
            )
            if gross > 0
            else ZERO
        )

        multiplier = self._extras_multiplier(offer, weeks)
        bonuses = offer.total_bonuses
        travel = _non_negative(offer.travel_reimbursement)
        annual_gross = gross * weeks + (bonuses + travel) * multiplier
        annual_take_home = (
            weekly_take_home * weeks
            + (bonuses * (ONE - total_rate) + travel) * multiplier
        )

        gsa = self.tables.gsa_rate(offer.location, offer.state)
        gsa_compliant = non_taxable <= gsa.weekly_limit
        if not gsa_compliant:
            warnings.append(
                f"Weekly stipends ${round_money(non_taxable):,.2f} exceed GSA "
                f"ceiling ${gsa.weekly_limit:,.2f} ({gsa.location})"
            )

        return OfferComparisonResult(
            offer_id=offer.offer_id,
            rank=0,
            weekly_taxable=round_money(taxable),
            weekly_non_taxable=round_money(non_taxable),
            weekly_gross=round_money(gross),
            weekly_take_home=round_money(weekly_take_home),
            blended_rate=blended,
            non_taxable_percentage=non_taxable_pct,
            effective_tax_rate=effective,
            annual_gross=round_money(annual_gross),
            annual_take_home=round_money(annual_take_home),
            gsa_compliant=gsa_compliant,
            offer=offer,
            total_tax_rate=total_rate,
            warnings=tuple(warnings),
        )

    def compare(
        self, offers: list[JobOffer], settings: TaxSettings
    ) -> list[OfferComparisonResult]:
        """
        Evaluate and rank offers by annual take-home, highest first.

        The sort is stable, so equal take-home keeps the input order.
        """
        evaluated = [self.evaluate(offer, settings) for offer in offers]
        ranked = sorted(evaluated, key=lambda r: r.annual_take_home, reverse=True)

        logger.debug("Compared %d offers", len(ranked))

        return [replace(r, rank=i + 1) for i, r in enumerate(ranked)]

    def find_best_offer(
        self, offers: list[JobOffer], settings: TaxSettings
    ) -> Optional[JobOffer]:
        results = self.compare(offers, settings)
        return results[0].offer if results else None

    def stipend_tax_savings(
        self, offer: JobOffer, settings: TaxSettings
    ) -> Decimal:
        """
        Annual take-home gained by receiving stipends tax-free.

        Compares the offer as structured with the same weekly gross paid
        entirely as taxable wages.
        """
        weeks = self._weeks(settings)
        state_rate = self.state_tax_rate(settings)
        taxable = self.weekly_taxable(offer)
        gross = taxable + self.weekly_non_taxable(offer)

        current_rate = min(
            self.federal_tax_rate(taxable, settings, weeks) + state_rate, ONE
        )
        all_taxable_rate = min(
            self.federal_tax_rate(gross, settings, weeks) + state_rate, ONE
        )

        current = (taxable * (ONE - current_rate) + (gross - taxable)) * weeks
        all_taxable = gross * (ONE - all_taxable_rate) * weeks
        return round_money(current - all_taxable)
