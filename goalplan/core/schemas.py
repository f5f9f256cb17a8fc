from __future__ import annotations

import uuid
from datetime import date, datetime, UTC
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from goalplan.core.constants import CENT, DEFAULT_RETURN_RATES


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


# -------------------------
# Goal types
# -------------------------

class GoalType(str, Enum):
    HOUSE = "house"
    RETIREMENT = "retirement"
    VACATION = "vacation"
    EMERGENCY_FUND = "emergency_fund"
    BABY_FAMILY = "baby_family"
    DEBT = "debt"
    CAR = "car"
    EDUCATION = "education"
    HOBBY = "hobby"
    FITNESS = "fitness"
    GIFT = "gift"
    HOME_IMPROVEMENT = "home_improvement"
    INVESTMENT = "investment"
    CHARITY = "charity"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def default_annual_return_rate(self) -> Decimal:
        return DEFAULT_RETURN_RATES[self.value]

    @property
    def is_long_term(self) -> bool:
        return self in _LONG_TERM_TYPES

    @property
    def suggested_vehicle(self) -> str:
        return _SUGGESTED_VEHICLES[self]


_DISPLAY_NAMES = {
    GoalType.HOUSE: "House",
    GoalType.RETIREMENT: "Retirement",
    GoalType.VACATION: "Vacation",
    GoalType.EMERGENCY_FUND: "Emergency Fund",
    GoalType.BABY_FAMILY: "Baby & Family",
    GoalType.DEBT: "Debt Payoff",
    GoalType.CAR: "Vehicle",
    GoalType.EDUCATION: "Education",
    GoalType.HOBBY: "Hobby & Recreation",
    GoalType.FITNESS: "Health & Fitness",
    GoalType.GIFT: "Gift & Celebration",
    GoalType.HOME_IMPROVEMENT: "Home Improvement",
    GoalType.INVESTMENT: "Investment",
    GoalType.CHARITY: "Charitable Giving",
    GoalType.CUSTOM: "Custom Goal",
}

_LONG_TERM_TYPES = frozenset({
    GoalType.RETIREMENT,
    GoalType.BABY_FAMILY,
    GoalType.EDUCATION,
    GoalType.INVESTMENT,
})

_SUGGESTED_VEHICLES = {
    GoalType.HOUSE: "High-Yield Savings Account",
    GoalType.EMERGENCY_FUND: "High-Yield Savings Account",
    GoalType.RETIREMENT: "401(k) / IRA",
    GoalType.VACATION: "Savings Account",
    GoalType.HOBBY: "Savings Account",
    GoalType.FITNESS: "Savings Account",
    GoalType.GIFT: "Savings Account",
    GoalType.CAR: "Savings Account",
    GoalType.BABY_FAMILY: "529 Plan / Savings",
    GoalType.EDUCATION: "529 Plan / Savings",
    GoalType.DEBT: "Extra Payments",
    GoalType.HOME_IMPROVEMENT: "HELOC / Savings",
    GoalType.INVESTMENT: "Brokerage Account",
    GoalType.CHARITY: "Donor-Advised Fund",
    GoalType.CUSTOM: "Varies by timeline",
}


# -------------------------
# Financial profile
# -------------------------

# Legacy single-figure expenses are split 70/30 between needs and wants.
LEGACY_NEEDS_SHARE = Decimal("0.7")


class FinancialProfile(BaseModel):
    monthly_income: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_needs: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_wants: Decimal = Field(default=Decimal("0"), ge=0)
    current_savings: Decimal = Field(default=Decimal("0"), ge=0)
    retirement_balance: Optional[Decimal] = Field(default=None, ge=0)
    # When set (and positive) it replaces the computed savings pool.
    direct_savings_pool: Optional[Decimal] = Field(default=None, ge=0)
    last_updated: datetime = Field(default_factory=_now)

    @classmethod
    def from_expenses(
        cls,
        monthly_income: Any,
        monthly_expenses: Any,
        current_savings: Any = 0,
        **kwargs: Any,
    ) -> "FinancialProfile":
        expenses = Decimal(str(monthly_expenses))
        # wants takes the rounding remainder so the split sums back to expenses
        needs = (expenses * LEGACY_NEEDS_SHARE).quantize(CENT)
        return cls(
            monthly_income=monthly_income,
            monthly_needs=needs,
            monthly_wants=expenses - needs,
            current_savings=current_savings,
            **kwargs,
        )

    @property
    def monthly_expenses(self) -> Decimal:
        return self.monthly_needs + self.monthly_wants

    @property
    def raw_disposable(self) -> Decimal:
        """Income minus expenses, not clamped."""
        return self.monthly_income - self.monthly_expenses

    @property
    def savings_pool(self) -> Decimal:
        if self.direct_savings_pool is not None and self.direct_savings_pool > 0:
            return self.direct_savings_pool
        return max(self.raw_disposable, Decimal("0"))

    @property
    def monthly_disposable(self) -> Decimal:
        return self.savings_pool

    @property
    def has_disposable_income(self) -> bool:
        return self.savings_pool > 0

    @property
    def is_valid(self) -> bool:
        return all(
            v >= 0
            for v in (self.monthly_income, self.monthly_needs, self.monthly_wants, self.current_savings)
        )


# -------------------------
# Goals
# -------------------------

class Goal(BaseModel):
    id: str = Field(default_factory=_new_id)
    type: GoalType = GoalType.CUSTOM
    name: str = "My Goal"
    # Non-positive targets are accepted and always count as complete.
    target_amount: Decimal
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    desired_date: Optional[date] = None
    custom_return_rate: Optional[Decimal] = Field(default=None, ge=0)
    priority: int = 0
    created_at: datetime = Field(default_factory=_now)
    is_active: bool = True
    notes: Optional[str] = None

    @property
    def effective_return_rate(self) -> Decimal:
        if self.custom_return_rate is not None:
            return self.custom_return_rate
        return self.type.default_annual_return_rate

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))

    @property
    def is_completed(self) -> bool:
        return self.target_amount <= 0 or self.current_amount >= self.target_amount

    @property
    def progress_percentage(self) -> float:
        """0.0 to 1.0"""
        if self.target_amount <= 0:
            return 0.0
        return min(float(self.current_amount / self.target_amount), 1.0)

    @property
    def progress_percentage_int(self) -> int:
        return int(self.progress_percentage * 100)

    @property
    def has_progress(self) -> bool:
        return self.current_amount > 0

    def with_contribution(self, amount: Any) -> "Goal":
        """Copy of this goal after recording a contribution (negative = withdrawal)."""
        new_amount = max(self.current_amount + Decimal(str(amount)), Decimal("0"))
        return self.model_copy(update={"current_amount": new_amount})


# -------------------------
# Allocations + scenarios
# -------------------------

class Allocation(BaseModel):
    """Goal id -> monthly contribution. Amounts never go below zero."""

    amounts: Dict[str, Decimal] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_mapping(cls, data: Any) -> Any:
        # bare {"goal-1": 100} payloads
        if isinstance(data, dict) and "amounts" not in data:
            return {"amounts": data}
        return data

    @field_validator("amounts")
    @classmethod
    def _clamp_negative(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        return {k: max(amt, Decimal("0")) for k, amt in v.items()}

    def __getitem__(self, goal_id: str) -> Decimal:
        return self.amount(goal_id)

    def __setitem__(self, goal_id: str, amount: Any) -> None:
        self.set_amount(goal_id, amount)

    def __contains__(self, goal_id: object) -> bool:
        return goal_id in self.amounts

    def amount(self, goal_id: str) -> Decimal:
        return self.amounts.get(goal_id, Decimal("0"))

    def set_amount(self, goal_id: str, amount: Any) -> None:
        self.amounts[goal_id] = max(Decimal(str(amount)), Decimal("0"))

    def remove_allocation(self, goal_id: str) -> None:
        self.amounts.pop(goal_id, None)

    def clear_all(self) -> None:
        self.amounts.clear()

    @property
    def goal_ids(self) -> List[str]:
        return list(self.amounts.keys())

    @property
    def total_allocated(self) -> Decimal:
        return sum(self.amounts.values(), Decimal("0"))

    @property
    def allocated_goal_count(self) -> int:
        return len([a for a in self.amounts.values() if a > 0])

    @property
    def has_allocations(self) -> bool:
        return bool(self.amounts) and self.total_allocated > 0

    def would_over_allocate(self, adding: Any, disposable_income: Any) -> bool:
        return self.total_allocated + Decimal(str(adding)) > Decimal(str(disposable_income))

    def remaining_disposable(self, disposable_income: Any) -> Decimal:
        return max(Decimal(str(disposable_income)) - self.total_allocated, Decimal("0"))

    def to_dict(self) -> Dict[str, Decimal]:
        return dict(self.amounts)


class DecisionStatus(str, Enum):
    DRAFT = "draft"
    UNDER_REVIEW = "under_review"
    DECIDED = "decided"
    ARCHIVED = "archived"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class Scenario(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    allocations: Allocation = Field(default_factory=Allocation)
    notes: Optional[str] = None
    is_active: bool = False
    decision_status: DecisionStatus = DecisionStatus.DRAFT
    created_at: datetime = Field(default_factory=_now)
    last_modified: datetime = Field(default_factory=_now)
    created_by: str

    @property
    def is_editable(self) -> bool:
        return self.decision_status in (DecisionStatus.DRAFT, DecisionStatus.UNDER_REVIEW)

    @property
    def awaiting_partner_review(self) -> bool:
        return self.decision_status == DecisionStatus.UNDER_REVIEW

    def duplicate(self, new_name: str, by: str) -> "Scenario":
        return Scenario(
            name=new_name,
            allocations=self.allocations.model_copy(deep=True),
            notes=self.notes,
            is_active=False,
            decision_status=DecisionStatus.DRAFT,
            created_by=by,
        )


# -------------------------
# Errors
# -------------------------

class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
