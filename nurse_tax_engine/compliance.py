"""
Tax home compliance scoring.

Tracks:
- A weighted checklist of tax-home maintenance items, grouped by category
- The 30-day return rule as a day-counting state machine
- Days spent at the tax home during the tax year

All functions return new values; the caller persists them. Dates are
always passed in, never read from the clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional, Sequence, Union

from nurse_tax_engine.config import EngineConfig, PartialCredit

logger = logging.getLogger(__name__)


class ChecklistCategory(Enum):
    RESIDENCE = "residence"
    PRESENCE = "presence"
    TIES = "ties"
    FINANCIAL = "financial"
    DOCUMENTATION = "documentation"

    @property
    def display_name(self) -> str:
        return {
            ChecklistCategory.RESIDENCE: "Residence",
            ChecklistCategory.PRESENCE: "Physical Presence",
            ChecklistCategory.TIES: "Community Ties",
            ChecklistCategory.FINANCIAL: "Financial Ties",
            ChecklistCategory.DOCUMENTATION: "Documentation",
        }[self]


class ItemStatus(Enum):
    INCOMPLETE = "incomplete"
    PARTIAL = "partial"
    COMPLETE = "complete"
    NOT_APPLICABLE = "not_applicable"


class ComplianceLevel(Enum):
    EXCELLENT = "excellent"  # 90-100
    GOOD = "good"  # 70-89
    AT_RISK = "at_risk"  # 50-69
    NON_COMPLIANT = "non_compliant"  # below 50

    @property
    def minimum_score(self) -> int:
        return {
            ComplianceLevel.EXCELLENT: 90,
            ComplianceLevel.GOOD: 70,
            ComplianceLevel.AT_RISK: 50,
            ComplianceLevel.NON_COMPLIANT: 0,
        }[self]

    @property
    def description(self) -> str:
        return {
            ComplianceLevel.EXCELLENT: (
                "Tax home status is well documented and meets IRS guidelines."
            ),
            ComplianceLevel.GOOD: (
                "Tax home status is mostly compliant. Strengthen a few areas."
            ),
            ComplianceLevel.AT_RISK: (
                "Tax home status may be questioned. Take action to improve it."
            ),
            ComplianceLevel.NON_COMPLIANT: (
                "Tax home status does not meet IRS requirements. Act now."
            ),
        }[self]


class ThirtyDayState(Enum):
    COMPLIANT = "compliant"
    AT_RISK = "at_risk"
    VIOLATED = "violated"


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


@dataclass(frozen=True)
class ComplianceChecklistItem:
    """One weighted tax-home checklist entry."""

    item_id: str
    title: str
    description: str
    category: ChecklistCategory
    weight: int
    status: ItemStatus = ItemStatus.INCOMPLETE
    last_updated: Optional[datetime] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "weight": self.weight,
            "status": self.status.value,
            "last_updated": (
                self.last_updated.isoformat() if self.last_updated else None
            ),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComplianceChecklistItem":
        updated = data.get("last_updated")
        return cls(
            item_id=str(data["item_id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            category=ChecklistCategory(data["category"]),
            weight=int(data.get("weight", 0)),
            status=ItemStatus(data.get("status", ItemStatus.INCOMPLETE.value)),
            last_updated=datetime.fromisoformat(updated) if updated else None,
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class TaxHomeCompliance:
    """
    Compliance record for one tax year.

    ``days_since_last_visit`` is None until the record is first refreshed
    or a visit is recorded.
    Score and level are not stored here; see ``ComplianceScoringEngine.evaluate``.
    """

    tax_year: int
    checklist_items: tuple[ComplianceChecklistItem, ...] = ()
    days_at_tax_home: int = 0
    last_visit_date: Optional[date] = None
    days_since_last_visit: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tax_year": self.tax_year,
            "checklist_items": [i.to_dict() for i in self.checklist_items],
            "days_at_tax_home": self.days_at_tax_home,
            "last_visit_date": (
                self.last_visit_date.isoformat() if self.last_visit_date else None
            ),
            "days_since_last_visit": self.days_since_last_visit,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaxHomeCompliance":
        last_visit = data.get("last_visit_date")
        items = data.get("checklist_items")
        return cls(
            tax_year=int(data["tax_year"]),
            checklist_items=(
                tuple(ComplianceChecklistItem.from_dict(i) for i in items)
                if items is not None
                else tuple(default_checklist())
            ),
            days_at_tax_home=int(data.get("days_at_tax_home", 0)),
            last_visit_date=date.fromisoformat(last_visit) if last_visit else None,
            days_since_last_visit=data.get("days_since_last_visit"),
        )


@dataclass(frozen=True)
class ThirtyDayStatus:
    """Where the tax home stands against the 30-day return rule."""

    state: ThirtyDayState
    days_since_last_visit: int
    days_until_return: int
    has_visited: bool

    @property
    def message(self) -> str:
        if not self.has_visited and self.state is not ThirtyDayState.VIOLATED:
            return "Schedule your first tax home visit"
        if self.state is ThirtyDayState.VIOLATED:
            return "Overdue: visit your tax home immediately"
        if self.state is ThirtyDayState.AT_RISK:
            return f"{self.days_until_return} days remaining, schedule a visit soon"
        return f"{self.days_until_return} days until a visit is required"


@dataclass(frozen=True)
class ComplianceEvaluation:
    """Derived view of a compliance record as of a given date."""

    tax_year: int
    as_of: date
    score: int
    level: ComplianceLevel
    thirty_day: ThirtyDayStatus
    completed_items: int
    total_items: int
    completion_percentage: Decimal
    earned_weight: Decimal
    eligible_weight: int


# ---------------------------------------------------------------------------
# Checklist filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AllItems:
    pass


@dataclass(frozen=True)
class ByCategory:
    category: ChecklistCategory


@dataclass(frozen=True)
class ByStatus:
    status: ItemStatus


ChecklistFilter = Union[AllItems, ByCategory, ByStatus]


def filter_items(
    items: Sequence[ComplianceChecklistItem], item_filter: ChecklistFilter
) -> list[ComplianceChecklistItem]:
    if isinstance(item_filter, ByCategory):
        return [i for i in items if i.category is item_filter.category]
    if isinstance(item_filter, ByStatus):
        return [i for i in items if i.status is item_filter.status]
    return list(items)


def items_by_category(
    items: Sequence[ComplianceChecklistItem],
) -> dict[ChecklistCategory, list[ComplianceChecklistItem]]:
    """Group items by category, in category declaration order, skipping empty groups."""
    grouped: dict[ChecklistCategory, list[ComplianceChecklistItem]] = {}
    for category in ChecklistCategory:
        members = filter_items(items, ByCategory(category))
        if members:
            grouped[category] = members
    return grouped


def incomplete_items(
    items: Sequence[ComplianceChecklistItem],
) -> list[ComplianceChecklistItem]:
    return filter_items(items, ByStatus(ItemStatus.INCOMPLETE))


def checklist_progress(items: Sequence[ComplianceChecklistItem]) -> Decimal:
    """Share of items marked COMPLETE, as a percentage with two decimals."""
    if not items:
        return Decimal("0.00")
    completed = sum(1 for i in items if i.status is ItemStatus.COMPLETE)
    return (Decimal(completed) / Decimal(len(items)) * 100).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


# ---------------------------------------------------------------------------
# Default IRS tax home checklist
# ---------------------------------------------------------------------------

_DEFAULT_CHECKLIST: list[tuple[str, str, str, ChecklistCategory, int]] = [
    ("maintain_residence", "Maintain a residence at tax home",
     "You own or rent a home at your tax home location",
     ChecklistCategory.RESIDENCE, 15),
    ("pay_expenses", "Pay tax home expenses",
     "You pay mortgage/rent and utilities at your tax home",
     ChecklistCategory.RESIDENCE, 15),
    ("regular_visits", "Return regularly to tax home",
     "You return to your tax home at least once every 30 days",
     ChecklistCategory.PRESENCE, 15),
    ("family_ties", "Family at tax home",
     "Family members live at your tax home (spouse, children, etc.)",
     ChecklistCategory.TIES, 10),
    ("voter_registration", "Voter registration",
     "You're registered to vote at your tax home address",
     ChecklistCategory.TIES, 5),
    ("drivers_license", "Driver's license",
     "Your driver's license shows your tax home address",
     ChecklistCategory.TIES, 5),
    ("vehicle_registration", "Vehicle registration",
     "Your vehicle is registered at your tax home address",
     ChecklistCategory.TIES, 5),
    ("bank_accounts", "Bank accounts",
     "You have bank accounts at your tax home location",
     ChecklistCategory.TIES, 5),
    ("professional_affiliations", "Professional affiliations",
     "You maintain professional memberships at your tax home",
     ChecklistCategory.TIES, 5),
    ("religious_civic", "Community involvement",
     "You're involved in religious/civic organizations at tax home",
     ChecklistCategory.TIES, 5),
]


def default_checklist() -> list[ComplianceChecklistItem]:
    """The standard tax-home checklist, every item INCOMPLETE."""
    return [
        ComplianceChecklistItem(
            item_id=item_id,
            title=title,
            description=description,
            category=category,
            weight=weight,
        )
        for item_id, title, description, category, weight in _DEFAULT_CHECKLIST
    ]


def new_tax_year(tax_year: int) -> TaxHomeCompliance:
    return TaxHomeCompliance(
        tax_year=tax_year, checklist_items=tuple(default_checklist())
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ComplianceScoringEngine:
    """
    Weighted checklist scoring and 30-day rule tracking.

    Holds only its configuration; every method is a pure function of
    its arguments.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    # -- scoring -------------------------------------------------------

    def earned_weight(self, items: Sequence[ComplianceChecklistItem]) -> Decimal:
        earned = Decimal("0")
        for item in items:
            if item.status is ItemStatus.COMPLETE:
                earned += item.weight
            elif (
                item.status is ItemStatus.PARTIAL
                and self.config.partial_credit is PartialCredit.HALF_WEIGHT
            ):
                earned += Decimal(item.weight) / 2
        return earned

    @staticmethod
    def eligible_weight(items: Sequence[ComplianceChecklistItem]) -> int:
        return sum(
            item.weight
            for item in items
            if item.status is not ItemStatus.NOT_APPLICABLE
        )

    def compliance_score(self, items: Sequence[ComplianceChecklistItem]) -> int:
        """
        Weighted percentage of eligible items satisfied, 0-100.

        NOT_APPLICABLE items are excluded from both sides. With nothing
        eligible the score is 0.
        """
        eligible = self.eligible_weight(items)
        if eligible <= 0:
            return 0
        ratio = Decimal(100) * self.earned_weight(items) / Decimal(eligible)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @staticmethod
    def compliance_level(score: int) -> ComplianceLevel:
        if score >= 90:
            return ComplianceLevel.EXCELLENT
        if score >= 70:
            return ComplianceLevel.GOOD
        if score >= 50:
            return ComplianceLevel.AT_RISK
        return ComplianceLevel.NON_COMPLIANT

    # -- checklist mutations -------------------------------------------

    @staticmethod
    def _index_of(
        items: Sequence[ComplianceChecklistItem], item_id: str
    ) -> Optional[int]:
        for i, item in enumerate(items):
            if item.item_id == item_id:
                return i
        return None

    def toggle_item(
        self,
        items: Sequence[ComplianceChecklistItem],
        item_id: str,
        now: Optional[datetime] = None,
    ) -> Sequence[ComplianceChecklistItem]:
        """
        Flip an item between COMPLETE and INCOMPLETE.

        PARTIAL and NOT_APPLICABLE items are left as they are, as is the
        whole list when ``item_id`` is unknown.
        """
        index = self._index_of(items, item_id)
        if index is None:
            logger.debug("toggle_item: unknown item id %s", item_id)
            return items

        item = items[index]
        if item.status is ItemStatus.COMPLETE:
            new_status = ItemStatus.INCOMPLETE
        elif item.status is ItemStatus.INCOMPLETE:
            new_status = ItemStatus.COMPLETE
        else:
            return items

        updated = list(items)
        updated[index] = replace(
            item,
            status=new_status,
            last_updated=now if now is not None else item.last_updated,
        )
        return updated

    def set_item_status(
        self,
        items: Sequence[ComplianceChecklistItem],
        item_id: str,
        status: ItemStatus,
        notes: Optional[str] = None,
        *,
        now: datetime,
    ) -> Sequence[ComplianceChecklistItem]:
        """Set any status on an item and stamp it with ``now``."""
        index = self._index_of(items, item_id)
        if index is None:
            logger.debug("set_item_status: unknown item id %s", item_id)
            return items

        item = items[index]
        updated = list(items)
        updated[index] = replace(
            item,
            status=status,
            notes=notes if notes is not None else item.notes,
            last_updated=now,
        )
        return updated

    def with_items(
        self,
        compliance: TaxHomeCompliance,
        items: Sequence[ComplianceChecklistItem],
    ) -> TaxHomeCompliance:
        return replace(compliance, checklist_items=tuple(items))

    # -- 30-day rule ---------------------------------------------------

    @staticmethod
    def _counting_from(compliance: TaxHomeCompliance) -> date:
        if compliance.last_visit_date is not None:
            return compliance.last_visit_date
        return date(compliance.tax_year, 1, 1)

    @staticmethod
    def days_between(start: Union[date, datetime], end: Union[date, datetime]) -> int:
        return (_as_date(end) - _as_date(start)).days

    def thirty_day_status(
        self, compliance: TaxHomeCompliance, now: Union[date, datetime]
    ) -> ThirtyDayStatus:
        """
        Evaluate the return rule as of ``now``.

        Without any recorded visit, days are counted from January 1 of
        the tax year.
        """
        window = self.config.return_window_days
        has_visited = compliance.last_visit_date is not None
        days_since = max(self.days_between(self._counting_from(compliance), now), 0)
        days_until = max(window - days_since, 0)

        if days_since > window:
            state = ThirtyDayState.VIOLATED
        elif 0 < days_until <= self.config.risk_threshold_days:
            state = ThirtyDayState.AT_RISK
        else:
            state = ThirtyDayState.COMPLIANT

        return ThirtyDayStatus(
            state=state,
            days_since_last_visit=days_since,
            days_until_return=days_until,
            has_visited=has_visited,
        )

    def refresh(
        self, compliance: TaxHomeCompliance, now: Union[date, datetime]
    ) -> TaxHomeCompliance:
        """
        Advance ``days_since_last_visit`` to ``now``.

        Without a recorded visit the counter runs from January 1 of the
        tax year, matching ``thirty_day_status``.
        """
        days_since = max(self.days_between(self._counting_from(compliance), now), 0)
        return replace(compliance, days_since_last_visit=days_since)

    def record_visit(
        self,
        compliance: TaxHomeCompliance,
        visit_date: Union[date, datetime],
        days_stayed: int = 1,
    ) -> TaxHomeCompliance:
        """Record a stay at the tax home; resets the 30-day counter."""
        stayed = max(days_stayed, 0)
        logger.debug(
            "Recorded %d day(s) at tax home on %s", stayed, _as_date(visit_date)
        )
        return replace(
            compliance,
            last_visit_date=_as_date(visit_date),
            days_at_tax_home=compliance.days_at_tax_home + stayed,
            days_since_last_visit=0,
        )

    # -- combined ------------------------------------------------------

    def evaluate(
        self, compliance: TaxHomeCompliance, now: Union[date, datetime]
    ) -> ComplianceEvaluation:
        items = compliance.checklist_items
        score = self.compliance_score(items)
        return ComplianceEvaluation(
            tax_year=compliance.tax_year,
            as_of=_as_date(now),
            score=score,
            level=self.compliance_level(score),
            thirty_day=self.thirty_day_status(compliance, now),
            completed_items=sum(
                1 for i in items if i.status is ItemStatus.COMPLETE
            ),
            total_items=len(items),
            completion_percentage=checklist_progress(items),
            earned_weight=self.earned_weight(items),
            eligible_weight=self.eligible_weight(items),
        )
