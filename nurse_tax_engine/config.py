"""
Engine configuration.

Every policy the engine applies is carried explicitly in a frozen
``EngineConfig``. Nothing is read from the environment and nothing is
changed after construction.

Two policies are left to the caller:

- ``partial_credit``: whether a PARTIAL checklist item earns half its
  weight or nothing.
- ``bonus_treatment``: whether one-time bonuses and travel reimbursement
  are added once to the annual figures or prorated per contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from nurse_tax_engine.exceptions import ConfigurationError


class PartialCredit(Enum):
    HALF_WEIGHT = "half_weight"  # PARTIAL earns weight / 2
    NONE = "none"  # PARTIAL counts like INCOMPLETE


class BonusTreatment(Enum):
    ONCE = "once"  # added a single time to annual totals
    PRORATED = "prorated"  # repeated for each contract worked in the year


@dataclass(frozen=True)
class EngineConfig:
    """
    Policy settings shared by the three engines.

    Attributes:
        tax_year: Year of the static tables to use (brackets, deductions,
            per-diem rates).
        partial_credit: Scoring policy for PARTIAL checklist items.
        bonus_treatment: How one-time pay is folded into annual figures.
        overtime_threshold_hours: Weekly hours above which an offer's
            overtime rate applies.
        risk_threshold_days: The 30-day tracker reports AT_RISK when this
            many days or fewer remain before a return is due.
        return_window_days: Maximum days allowed away from the tax home.
        default_weeks_worked: Weeks per year used when a caller does not
            supply one.
    """

    tax_year: int = 2024
    partial_credit: PartialCredit = PartialCredit.HALF_WEIGHT
    bonus_treatment: BonusTreatment = BonusTreatment.ONCE
    overtime_threshold_hours: Decimal = Decimal("40")
    risk_threshold_days: int = 7
    return_window_days: int = 30
    default_weeks_worked: int = 48

    def __post_init__(self) -> None:
        if self.overtime_threshold_hours < 0:
            raise ConfigurationError(
                "overtime_threshold_hours must not be negative",
                details={"overtime_threshold_hours": self.overtime_threshold_hours},
            )
        if self.return_window_days < 1:
            raise ConfigurationError(
                "return_window_days must be at least 1",
                details={"return_window_days": self.return_window_days},
            )
        if not 0 <= self.risk_threshold_days <= self.return_window_days:
            raise ConfigurationError(
                "risk_threshold_days must be between 0 and return_window_days",
                details={"risk_threshold_days": self.risk_threshold_days},
            )
        if not 1 <= self.default_weeks_worked <= 52:
            raise ConfigurationError(
                "default_weeks_worked must be between 1 and 52",
                details={"default_weeks_worked": self.default_weeks_worked},
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """Build a config from plain values (e.g. a parsed settings file)."""
        try:
            return cls(
                tax_year=int(data.get("tax_year", 2024)),
                partial_credit=PartialCredit(
                    data.get("partial_credit", PartialCredit.HALF_WEIGHT.value)
                ),
                bonus_treatment=BonusTreatment(
                    data.get("bonus_treatment", BonusTreatment.ONCE.value)
                ),
                overtime_threshold_hours=Decimal(
                    str(data.get("overtime_threshold_hours", "40"))
                ),
                risk_threshold_days=int(data.get("risk_threshold_days", 7)),
                return_window_days=int(data.get("return_window_days", 30)),
                default_weeks_worked=int(data.get("default_weeks_worked", 48)),
            )
        except (ValueError, InvalidOperation) as e:
            raise ConfigurationError(
                f"Invalid engine configuration: {e}", details=dict(data)
            ) from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "tax_year": self.tax_year,
            "partial_credit": self.partial_credit.value,
            "bonus_treatment": self.bonus_treatment.value,
            "overtime_threshold_hours": str(self.overtime_threshold_hours),
            "risk_threshold_days": self.risk_threshold_days,
            "return_window_days": self.return_window_days,
            "default_weeks_worked": self.default_weeks_worked,
        }
