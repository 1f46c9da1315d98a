"""
Static, versioned tax-year tables.

Holds the federal progressive brackets and standard deductions per filing
status, the set of states without a wage income tax, simplified flat state
rates for states that do tax wages, and GSA per-diem ceilings (a default
plus per-location overrides).

Sources: IRS Rev. Proc. 2023-34 (tax year 2024 brackets and standard
deductions), GSA FY2024 per-diem rates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from nurse_tax_engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class FilingStatus(Enum):
    SINGLE = "single"
    MARRIED_FILING_JOINTLY = "married_filing_jointly"
    HEAD_OF_HOUSEHOLD = "head_of_household"

    @property
    def display_name(self) -> str:
        return {
            FilingStatus.SINGLE: "Single",
            FilingStatus.MARRIED_FILING_JOINTLY: "Married Filing Jointly",
            FilingStatus.HEAD_OF_HOUSEHOLD: "Head of Household",
        }[self]

    @classmethod
    def parse(cls, value: str) -> "FilingStatus":
        """Accept enum values plus the short aliases used on the command line."""
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "married": cls.MARRIED_FILING_JOINTLY,
            "mfj": cls.MARRIED_FILING_JOINTLY,
            "hoh": cls.HEAD_OF_HOUSEHOLD,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ConfigurationError(
                f"Unknown filing status: {value}", details={"status": value}
            ) from None


@dataclass(frozen=True)
class TaxBracket:
    """One band of a progressive table. ``upper_bound`` is None for the top band."""

    lower_bound: Decimal
    upper_bound: Optional[Decimal]
    rate: Decimal  # decimal, e.g. 0.12 = 12%


@dataclass(frozen=True)
class GSARate:
    """Daily GSA per-diem ceilings for one location."""

    location: str
    daily_lodging: Decimal
    daily_meals: Decimal  # M&IE

    @property
    def weekly_limit(self) -> Decimal:
        return (self.daily_lodging + self.daily_meals) * 7


# ---------------------------------------------------------------------------
# Federal brackets: (lower, upper, rate) per tax year and filing status
# ---------------------------------------------------------------------------

_FEDERAL_BRACKETS: dict[int, dict[FilingStatus, list[tuple[str, Optional[str], str]]]] = {
    2024: {
        FilingStatus.SINGLE: [
            ("0", "11600", "0.10"),
            ("11600", "47150", "0.12"),
            ("47150", "100525", "0.22"),
            ("100525", "191950", "0.24"),
            ("191950", "243725", "0.32"),
            ("243725", "609350", "0.35"),
            ("609350", None, "0.37"),
        ],
        FilingStatus.MARRIED_FILING_JOINTLY: [
            ("0", "23200", "0.10"),
            ("23200", "94300", "0.12"),
            ("94300", "201050", "0.22"),
            ("201050", "383900", "0.24"),
            ("383900", "487450", "0.32"),
            ("487450", "731200", "0.35"),
            ("731200", None, "0.37"),
        ],
        FilingStatus.HEAD_OF_HOUSEHOLD: [
            ("0", "16550", "0.10"),
            ("16550", "63100", "0.12"),
            ("63100", "100500", "0.22"),
            ("100500", "191950", "0.24"),
            ("191950", "243700", "0.32"),
            ("243700", "609350", "0.35"),
            ("609350", None, "0.37"),
        ],
    },
}

_STANDARD_DEDUCTIONS: dict[int, dict[FilingStatus, str]] = {
    2024: {
        FilingStatus.SINGLE: "14600",
        FilingStatus.MARRIED_FILING_JOINTLY: "29200",
        FilingStatus.HEAD_OF_HOUSEHOLD: "21900",
    },
}

# No tax on wage income. NH and TN tax (or taxed) only interest/dividends.
_NO_INCOME_TAX_STATES = frozenset(
    {"AK", "FL", "NV", "NH", "SD", "TN", "TX", "WA", "WY"}
)

# Simplified average wage rates; everything not listed uses the default.
_STATE_FLAT_RATES: dict[str, str] = {
    "default": "0.05",
    "CA": "0.0930",
    "NY": "0.0685",
    "NJ": "0.0637",
    "OR": "0.0900",
    "MN": "0.0785",
    "MA": "0.0500",
    "HI": "0.0825",
    "CT": "0.0699",
}

_STATE_NAMES: dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut",
    "DE": "Delaware", "DC": "District of Columbia", "FL": "Florida",
    "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois",
    "IN": "Indiana", "IA": "Iowa", "KS": "Kansas", "KY": "Kentucky",
    "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana",
    "NE": "Nebraska", "NV": "Nevada", "NH": "New Hampshire",
    "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania",
    "RI": "Rhode Island", "SC": "South Carolina", "SD": "South Dakota",
    "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming",
}

# GSA per diem (lodging, M&IE). "default" is the standard CONUS rate.
_GSA_RATES: dict[int, dict[str, tuple[str, str]]] = {
    2024: {
        "default": ("107", "59"),
        "Boston, MA": ("272", "79"),
        "New York City, NY": ("258", "79"),
        "San Francisco, CA": ("272", "79"),
        "Seattle, WA": ("222", "79"),
        "Los Angeles, CA": ("191", "74"),
        "Chicago, IL": ("191", "79"),
        "Denver, CO": ("199", "79"),
        "Phoenix, AZ": ("132", "69"),
        "Houston, TX": ("129", "69"),
        "Miami, FL": ("148", "74"),
    },
}


def validate_brackets(
    brackets: list[TaxBracket], label: str = "custom"
) -> None:
    """
    Check that a bracket table is usable.

    The table must start at zero, each band must begin where the previous
    one ended, and only the last band may be open-ended.
    """
    if not brackets:
        raise ConfigurationError(f"Empty bracket table: {label}")

    if brackets[0].lower_bound != 0:
        raise ConfigurationError(
            f"Bracket table {label} does not start at zero",
            details={"lower_bound": brackets[0].lower_bound},
        )

    for i, bracket in enumerate(brackets):
        if not Decimal("0") <= bracket.rate <= Decimal("1"):
            raise ConfigurationError(
                f"Bracket rate out of range in {label}",
                details={"index": i, "rate": bracket.rate},
            )
        is_last = i == len(brackets) - 1
        if bracket.upper_bound is None:
            if not is_last:
                raise ConfigurationError(
                    f"Open-ended bracket before the top of {label}",
                    details={"index": i},
                )
            continue
        if is_last:
            raise ConfigurationError(
                f"Top bracket of {label} must have no upper bound",
                details={"upper_bound": bracket.upper_bound},
            )
        if bracket.upper_bound <= bracket.lower_bound:
            raise ConfigurationError(
                f"Empty or inverted bracket in {label}",
                details={"index": i},
            )
        next_lower = brackets[i + 1].lower_bound
        if next_lower != bracket.upper_bound:
            kind = "gap" if next_lower > bracket.upper_bound else "overlap"
            raise ConfigurationError(
                f"Bracket {kind} in {label} at {bracket.upper_bound}",
                details={"index": i, "next_lower_bound": next_lower},
            )


class TaxTables:
    """
    Queryable tables for one tax year.

    Tables are validated on construction; a malformed or missing table
    raises ``ConfigurationError`` rather than producing wrong numbers.
    """

    def __init__(self, tax_year: int = 2024) -> None:
        if tax_year not in _FEDERAL_BRACKETS:
            raise ConfigurationError(
                f"No bracket table for tax year {tax_year}",
                details={"available": sorted(_FEDERAL_BRACKETS)},
            )
        self.tax_year = tax_year
        self._brackets: dict[FilingStatus, list[TaxBracket]] = {}
        self._deductions: dict[FilingStatus, Decimal] = {}
        self._gsa: dict[str, GSARate] = {}
        self._load_tables()

    def _load_tables(self) -> None:
        for status, rows in _FEDERAL_BRACKETS[self.tax_year].items():
            self._brackets[status] = [
                TaxBracket(
                    lower_bound=Decimal(lower),
                    upper_bound=Decimal(upper) if upper is not None else None,
                    rate=Decimal(rate),
                )
                for lower, upper, rate in rows
            ]
        for status, amount in _STANDARD_DEDUCTIONS.get(self.tax_year, {}).items():
            self._deductions[status] = Decimal(amount)
        for location, (lodging, meals) in _GSA_RATES.get(self.tax_year, {}).items():
            self._gsa[location.lower()] = GSARate(
                location=location,
                daily_lodging=Decimal(lodging),
                daily_meals=Decimal(meals),
            )
        self.validate()
        logger.debug("Loaded %d tax tables for %d", len(self._brackets), self.tax_year)

    @classmethod
    def from_tables(
        cls,
        tax_year: int,
        brackets: dict[FilingStatus, list[TaxBracket]],
        standard_deductions: dict[FilingStatus, Decimal],
        gsa_rates: Optional[list[GSARate]] = None,
    ) -> "TaxTables":
        """Build tables from caller-supplied data instead of the built-ins."""
        tables = cls.__new__(cls)
        tables.tax_year = tax_year
        tables._brackets = {s: list(b) for s, b in brackets.items()}
        tables._deductions = dict(standard_deductions)
        tables._gsa = {r.location.lower(): r for r in (gsa_rates or [])}
        if "default" not in tables._gsa:
            tables._gsa["default"] = GSARate("default", Decimal("107"), Decimal("59"))
        tables.validate()
        return tables

    def validate(self) -> None:
        for status in FilingStatus:
            if status not in self._brackets:
                raise ConfigurationError(
                    f"Missing bracket table for {status.value} ({self.tax_year})"
                )
            if status not in self._deductions:
                raise ConfigurationError(
                    f"Missing standard deduction for {status.value} ({self.tax_year})"
                )
            validate_brackets(
                self._brackets[status], f"{status.value} {self.tax_year}"
            )
        if "default" not in self._gsa:
            raise ConfigurationError(
                f"Missing default GSA rate for {self.tax_year}"
            )

    # -- federal -----------------------------------------------------------

    def brackets(self, status: FilingStatus) -> list[TaxBracket]:
        """Return the ascending bracket table for a filing status."""
        if not isinstance(status, FilingStatus) or status not in self._brackets:
            raise ConfigurationError(
                f"Unknown filing status: {status!r}", details={"status": status}
            )
        return self._brackets[status]

    def standard_deduction(self, status: FilingStatus) -> Decimal:
        if not isinstance(status, FilingStatus) or status not in self._deductions:
            raise ConfigurationError(
                f"Unknown filing status: {status!r}", details={"status": status}
            )
        return self._deductions[status]

    def top_rate(self, status: FilingStatus) -> Decimal:
        return max(b.rate for b in self.brackets(status))

    # -- state -------------------------------------------------------------

    def is_no_income_tax_state(self, state_code: Optional[str]) -> bool:
        if not state_code:
            return False
        return state_code.strip().upper() in _NO_INCOME_TAX_STATES

    def no_income_tax_states(self) -> list[str]:
        return sorted(_NO_INCOME_TAX_STATES)

    def state_flat_rate(self, state_code: Optional[str]) -> Decimal:
        """Return the simplified wage tax rate for a state (0 for no-tax states)."""
        if not state_code:
            return Decimal("0")
        code = state_code.strip().upper()
        if code in _NO_INCOME_TAX_STATES:
            return Decimal("0")
        return Decimal(_STATE_FLAT_RATES.get(code, _STATE_FLAT_RATES["default"]))

    def state_name(self, state_code: str) -> Optional[str]:
        return _STATE_NAMES.get(state_code.strip().upper())

    def all_states(self) -> list[str]:
        return sorted(_STATE_NAMES)

    # -- GSA ---------------------------------------------------------------

    def gsa_rate(
        self,
        location: Optional[str] = None,
        state_code: Optional[str] = None,
    ) -> GSARate:
        """
        Resolve the per-diem ceiling for a location.

        Tries the exact location, then the state code, then falls back to
        the default CONUS rate.
        """
        for key in (location, state_code):
            if key and key.strip().lower() in self._gsa:
                return self._gsa[key.strip().lower()]
        return self._gsa["default"]

    def gsa_locations(self) -> list[GSARate]:
        return sorted(self._gsa.values(), key=lambda r: r.location)
