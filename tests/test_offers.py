"""Tests for the OfferComparisonEngine (normalization, GSA, ranking)."""

from decimal import Decimal

import pytest

from nurse_tax_engine.config import BonusTreatment, EngineConfig
from nurse_tax_engine.offers import (
    BRACKET_MODE,
    JobOffer,
    OfferComparisonEngine,
    TaxSettings,
)
from nurse_tax_engine.rates import FilingStatus


@pytest.fixture
def engine() -> OfferComparisonEngine:
    return OfferComparisonEngine()


@pytest.fixture
def texas() -> TaxSettings:
    return TaxSettings(tax_home_state="TX", federal_rate=Decimal("0.22"))


def _offer(
    offer_id: str = "A",
    hourly: str = "40",
    hours: str = "36",
    housing: str = "1500",
    meals: str = "800",
    **kwargs,
) -> JobOffer:
    return JobOffer(
        offer_id=offer_id,
        name=kwargs.pop("name", f"Offer {offer_id}"),
        hourly_rate=Decimal(hourly),
        hours_per_week=Decimal(hours),
        housing_stipend_weekly=Decimal(housing),
        meals_stipend_weekly=Decimal(meals),
        **kwargs,
    )


# ── Weekly normalization ────────────────────────────────────────────


def test_weekly_split(engine: OfferComparisonEngine, texas: TaxSettings):
    result = engine.evaluate(_offer(), texas)
    assert result.weekly_taxable == Decimal("1440.00")
    assert result.weekly_non_taxable == Decimal("2300.00")
    assert result.weekly_gross == Decimal("3740.00")
    assert result.non_taxable_percentage == Decimal("61.50")
    assert result.blended_rate == Decimal("103.89")
    assert result.rank == 0


def test_take_home_flat_rate_no_tax_state(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    result = engine.evaluate(_offer(), texas)
    # 1,440 x 0.78 + 2,300
    assert result.weekly_take_home == Decimal("3423.20")
    assert result.effective_tax_rate == Decimal("8.47")
    assert result.total_tax_rate == Decimal("0.22")


def test_annual_projection(engine: OfferComparisonEngine, texas: TaxSettings):
    result = engine.evaluate(_offer(), texas)
    assert result.annual_gross == Decimal("179520.00")
    assert result.annual_take_home == Decimal("164313.60")


def test_percentages_round_half_up(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    # 1 / 32 = 3.125%
    result = engine.evaluate(_offer(hourly="31", hours="1", housing="1", meals="0"), texas)
    assert result.non_taxable_percentage == Decimal("3.13")

    # 0.66 tax on 80 gross = 0.825%
    result = engine.evaluate(_offer(hourly="3", hours="1", housing="77", meals="0"), texas)
    assert result.effective_tax_rate == Decimal("0.83")


def test_zero_hours_blended_rate_undefined(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    result = engine.evaluate(_offer(hours="0", housing="0", meals="0"), texas)
    assert result.blended_rate is None
    assert result.blended_rate_defined is False
    assert result.weekly_gross == Decimal("0.00")
    assert result.non_taxable_percentage == Decimal("0")
    assert any("blended rate undefined" in w for w in result.warnings)


def test_negative_values_clamped(engine: OfferComparisonEngine, texas: TaxSettings):
    result = engine.evaluate(_offer(hourly="-10", housing="-100", meals="0"), texas)
    assert result.weekly_taxable == Decimal("0.00")
    assert result.weekly_non_taxable == Decimal("0.00")
    assert len(result.warnings) >= 2


def test_overtime_above_threshold(engine: OfferComparisonEngine):
    offer = _offer(hourly="50", hours="48", overtime_rate=Decimal("75"))
    # 40 x 50 + 8 x 75
    assert engine.weekly_taxable(offer) == Decimal("2600")


def test_no_overtime_rate_uses_hourly(engine: OfferComparisonEngine):
    offer = _offer(hourly="50", hours="48")
    assert engine.weekly_taxable(offer) == Decimal("2400")


def test_overtime_threshold_configurable():
    engine = OfferComparisonEngine(
        config=EngineConfig(overtime_threshold_hours=Decimal("36"))
    )
    offer = _offer(hourly="50", hours="40", overtime_rate=Decimal("75"))
    assert engine.weekly_taxable(offer) == Decimal("2100")


def test_weeks_clamped_to_year(engine: OfferComparisonEngine):
    settings = TaxSettings(tax_home_state="TX", weeks_worked_per_year=60)
    result = engine.evaluate(_offer(), settings)
    assert result.annual_gross == Decimal("3740") * 52


# ── Tax rates ───────────────────────────────────────────────────────


def test_no_tax_state_ignores_state_rate(engine: OfferComparisonEngine):
    settings = TaxSettings(tax_home_state="TX", state_rate=Decimal("0.04"))
    assert engine.state_tax_rate(settings) == Decimal("0")


def test_state_rate_from_table(engine: OfferComparisonEngine):
    settings = TaxSettings(tax_home_state="CA")
    assert engine.state_tax_rate(settings) == Decimal("0.0930")


def test_state_rate_override(engine: OfferComparisonEngine):
    settings = TaxSettings(tax_home_state="CA", state_rate=Decimal("0.04"))
    assert engine.state_tax_rate(settings) == Decimal("0.04")


def test_total_rate_capped_at_one(engine: OfferComparisonEngine):
    settings = TaxSettings(
        tax_home_state="CA",
        federal_rate=Decimal("0.9"),
        state_rate=Decimal("0.5"),
    )
    result = engine.evaluate(_offer(), settings)
    assert result.total_tax_rate == Decimal("1")
    assert result.weekly_take_home == Decimal("2300.00")


def test_bracket_mode_federal_rate(engine: OfferComparisonEngine):
    settings = TaxSettings(
        tax_home_state="TX",
        federal_rate=BRACKET_MODE,
        filing_status=FilingStatus.SINGLE,
    )
    # 69,120 wages less 14,600 standard deduction -> 7,047.40 tax
    rate = engine.federal_tax_rate(Decimal("1440"), settings, 48)
    assert rate == Decimal("7047.40") / Decimal("69120")


def test_bracket_mode_zero_wages(engine: OfferComparisonEngine):
    settings = TaxSettings(federal_rate=BRACKET_MODE)
    assert engine.federal_tax_rate(Decimal("0"), settings, 48) == Decimal("0")


def test_bracket_mode_lower_than_flat_for_modest_wages(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    bracket = TaxSettings(tax_home_state="TX", federal_rate=BRACKET_MODE)
    flat = engine.evaluate(_offer(), texas)
    progressive = engine.evaluate(_offer(), bracket)
    assert progressive.annual_take_home > flat.annual_take_home


# ── Bonuses and reimbursement ───────────────────────────────────────


def test_bonus_added_once(engine: OfferComparisonEngine, texas: TaxSettings):
    offer = _offer(housing="0", meals="0", sign_on_bonus=Decimal("1000"))
    result = engine.evaluate(offer, texas)
    # 1,123.20 x 48 + 1,000 x 0.78
    assert result.annual_take_home == Decimal("54693.60")
    assert result.annual_gross == Decimal("70120.00")


def test_bonus_prorated_per_contract(texas: TaxSettings):
    engine = OfferComparisonEngine(
        config=EngineConfig(bonus_treatment=BonusTreatment.PRORATED)
    )
    offer = _offer(housing="0", meals="0", sign_on_bonus=Decimal("1000"))
    result = engine.evaluate(offer, texas)
    # 780 x 48 / 13 contract weeks
    assert result.annual_take_home == Decimal("56793.60")


def test_travel_reimbursement_untaxed(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    offer = _offer(housing="0", meals="0", travel_reimbursement=Decimal("500"))
    result = engine.evaluate(offer, texas)
    assert result.annual_take_home == Decimal("54413.60")


def test_total_bonuses_ignores_missing():
    offer = _offer(sign_on_bonus=Decimal("1000"), completion_bonus=Decimal("500"))
    assert offer.total_bonuses == Decimal("1500")


# ── GSA compliance ──────────────────────────────────────────────────


def test_gsa_default_ceiling_exceeded(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    result = engine.evaluate(_offer(), texas)
    assert result.gsa_compliant is False
    assert any("GSA" in w for w in result.warnings)


def test_gsa_high_cost_location_compliant(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    # Boston: (272 + 79) x 7 = 2,457
    result = engine.evaluate(_offer(location="Boston, MA"), texas)
    assert result.gsa_compliant is True


def test_check_gsa_compliance_daily(engine: OfferComparisonEngine):
    offer = _offer(housing="700", meals="420")
    check = engine.check_gsa_compliance(offer)
    assert check.daily_housing == Decimal("100.00")
    assert check.daily_meals == Decimal("60.00")
    assert check.housing_within_limit is True
    assert check.meals_within_limit is False
    assert check.is_compliant is False
    assert check.meals_excess == Decimal("1.00")
    assert check.housing_excess == Decimal("0")


# ── Ranking ─────────────────────────────────────────────────────────


def test_compare_ranks_by_annual_take_home(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    low = _offer("low", hourly="30")
    high = _offer("high", hourly="60")
    results = engine.compare([low, high], texas)
    assert [r.offer_id for r in results] == ["high", "low"]
    assert [r.rank for r in results] == [1, 2]


def test_compare_ties_keep_input_order(
    engine: OfferComparisonEngine, texas: TaxSettings
):
    offers = [_offer("first"), _offer("second"), _offer("third")]
    results = engine.compare(offers, texas)
    assert [r.offer_id for r in results] == ["first", "second", "third"]
    assert [r.rank for r in results] == [1, 2, 3]


def test_compare_empty(engine: OfferComparisonEngine, texas: TaxSettings):
    assert engine.compare([], texas) == []
    assert engine.find_best_offer([], texas) is None


def test_find_best_offer(engine: OfferComparisonEngine, texas: TaxSettings):
    best = _offer("best", hourly="80")
    assert engine.find_best_offer([_offer("a"), best], texas) is best


def test_stipend_tax_savings(engine: OfferComparisonEngine, texas: TaxSettings):
    # 2,300 x 0.22 x 48
    assert engine.stipend_tax_savings(_offer(), texas) == Decimal("24288.00")


# ── Parsing ─────────────────────────────────────────────────────────


def test_offer_from_dict():
    offer = JobOffer.from_dict({
        "name": "ICU Travel",
        "hourly_rate": "40",
        "hours_per_week": "36",
        "housing_stipend_weekly": "1500",
        "overtime_rate": "",
        "state": " tx ",
    })
    assert offer.offer_id == "ICU Travel"
    assert offer.state == "TX"
    assert offer.overtime_rate is None
    assert offer.meals_stipend_weekly == Decimal("0")
    assert offer.contract_weeks == 13
