"""Tests for the static tax tables and their validation."""

from decimal import Decimal

import pytest

from nurse_tax_engine.exceptions import ConfigurationError
from nurse_tax_engine.rates import (
    FilingStatus,
    GSARate,
    TaxBracket,
    TaxTables,
    validate_brackets,
)


@pytest.fixture
def tables() -> TaxTables:
    return TaxTables()


def _bracket(lower: str, upper, rate: str) -> TaxBracket:
    return TaxBracket(
        Decimal(lower), Decimal(upper) if upper is not None else None, Decimal(rate)
    )


def _tables_with(brackets: list[TaxBracket]) -> TaxTables:
    return TaxTables.from_tables(
        2024,
        {status: brackets for status in FilingStatus},
        {status: Decimal("10000") for status in FilingStatus},
    )


# ── Federal tables ──────────────────────────────────────────────────


def test_default_year_loads(tables: TaxTables):
    assert tables.tax_year == 2024
    for status in FilingStatus:
        assert len(tables.brackets(status)) == 7


def test_unknown_year_raises():
    with pytest.raises(ConfigurationError, match="1999"):
        TaxTables(1999)


def test_brackets_are_contiguous(tables: TaxTables):
    for status in FilingStatus:
        brackets = tables.brackets(status)
        assert brackets[0].lower_bound == 0
        assert brackets[-1].upper_bound is None
        for current, following in zip(brackets, brackets[1:]):
            assert current.upper_bound == following.lower_bound


def test_top_rate(tables: TaxTables):
    assert tables.top_rate(FilingStatus.SINGLE) == Decimal("0.37")


def test_unknown_status_raises(tables: TaxTables):
    with pytest.raises(ConfigurationError):
        tables.brackets("single")
    with pytest.raises(ConfigurationError):
        tables.standard_deduction("widowed")


def test_filing_status_parse_aliases():
    assert FilingStatus.parse("single") is FilingStatus.SINGLE
    assert FilingStatus.parse("MFJ") is FilingStatus.MARRIED_FILING_JOINTLY
    assert FilingStatus.parse("married") is FilingStatus.MARRIED_FILING_JOINTLY
    assert FilingStatus.parse("Head of Household") is FilingStatus.HEAD_OF_HOUSEHOLD
    assert FilingStatus.parse("hoh") is FilingStatus.HEAD_OF_HOUSEHOLD


def test_filing_status_parse_unknown():
    with pytest.raises(ConfigurationError, match="Unknown filing status"):
        FilingStatus.parse("widowed")


# ── Table validation ────────────────────────────────────────────────


def test_valid_custom_table():
    tables = _tables_with([
        _bracket("0", "100", "0.1"),
        _bracket("100", None, "0.2"),
    ])
    assert tables.tax_year == 2024


def test_gap_rejected():
    with pytest.raises(ConfigurationError, match="gap"):
        _tables_with([
            _bracket("0", "100", "0.1"),
            _bracket("200", None, "0.2"),
        ])


def test_overlap_rejected():
    with pytest.raises(ConfigurationError, match="overlap"):
        _tables_with([
            _bracket("0", "100", "0.1"),
            _bracket("50", None, "0.2"),
        ])


def test_open_ended_middle_bracket_rejected():
    with pytest.raises(ConfigurationError, match="Open-ended"):
        validate_brackets([
            _bracket("0", None, "0.1"),
            _bracket("100", None, "0.2"),
        ])


def test_bounded_top_bracket_rejected():
    with pytest.raises(ConfigurationError, match="no upper bound"):
        validate_brackets([
            _bracket("0", "100", "0.1"),
            _bracket("100", "200", "0.2"),
        ])


def test_table_must_start_at_zero():
    with pytest.raises(ConfigurationError, match="start at zero"):
        validate_brackets([_bracket("10", None, "0.1")])


def test_rate_out_of_range_rejected():
    with pytest.raises(ConfigurationError, match="out of range"):
        validate_brackets([_bracket("0", None, "1.5")])


def test_empty_table_rejected():
    with pytest.raises(ConfigurationError, match="Empty"):
        validate_brackets([])


def test_missing_status_rejected():
    with pytest.raises(ConfigurationError, match="Missing bracket table"):
        TaxTables.from_tables(
            2024,
            {FilingStatus.SINGLE: [_bracket("0", None, "0.1")]},
            {status: Decimal("0") for status in FilingStatus},
        )


def test_error_details_in_message():
    with pytest.raises(ConfigurationError) as exc_info:
        validate_brackets([_bracket("0", None, "2")], "test table")
    assert exc_info.value.details["rate"] == Decimal("2")
    assert "rate=" in str(exc_info.value)


# ── State rates ─────────────────────────────────────────────────────


def test_nine_no_income_tax_states(tables: TaxTables):
    states = tables.no_income_tax_states()
    assert states == ["AK", "FL", "NH", "NV", "SD", "TN", "TX", "WA", "WY"]


def test_no_income_tax_state_case_insensitive(tables: TaxTables):
    assert tables.is_no_income_tax_state("tx") is True
    assert tables.is_no_income_tax_state(" FL ") is True
    assert tables.is_no_income_tax_state("CA") is False
    assert tables.is_no_income_tax_state(None) is False


def test_state_flat_rates(tables: TaxTables):
    assert tables.state_flat_rate("CA") == Decimal("0.0930")
    assert tables.state_flat_rate("TX") == Decimal("0")
    assert tables.state_flat_rate("OH") == Decimal("0.05")
    assert tables.state_flat_rate(None) == Decimal("0")


def test_state_names(tables: TaxTables):
    assert tables.state_name("ca") == "California"
    assert tables.state_name("ZZ") is None
    assert len(tables.all_states()) == 51


# ── GSA per diem ────────────────────────────────────────────────────


def test_gsa_location_override(tables: TaxTables):
    rate = tables.gsa_rate("Boston, MA")
    assert rate.daily_lodging == Decimal("272")
    assert rate.daily_meals == Decimal("79")


def test_gsa_lookup_case_insensitive(tables: TaxTables):
    assert tables.gsa_rate("boston, ma").location == "Boston, MA"


def test_gsa_falls_back_to_default(tables: TaxTables):
    rate = tables.gsa_rate("Nowhere, ND", "ND")
    assert rate.location == "default"
    assert rate.weekly_limit == Decimal("1162")


def test_gsa_weekly_limit():
    rate = GSARate("Test", Decimal("100"), Decimal("50"))
    assert rate.weekly_limit == Decimal("1050")


def test_gsa_locations_sorted(tables: TaxTables):
    names = [r.location for r in tables.gsa_locations()]
    assert names == sorted(names)
    assert "default" in names
