from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from goalplan.core.constants import CENT, MAX_PROJECTION_MONTHS, MONTHS_PER_YEAR
from goalplan.core.schemas import Allocation, FinancialProfile, Goal


def _horizon_text(months: int, suffix: str = "") -> str:
    years, rest = divmod(months, MONTHS_PER_YEAR)
    if rest == 0:
        return f"{years}{suffix} years"
    return f"{months}{suffix} months"


class EngineInput(BaseModel):
    profile: FinancialProfile
    goals: List[Goal] = Field(default_factory=list)
    allocations: Allocation = Field(default_factory=Allocation)


class GoalProjection(BaseModel):
    goal_id: str
    months_to_complete: Optional[int] = None
    completion_date: Optional[date] = None
    projected_final_value: Decimal
    monthly_contribution: Decimal
    is_reachable: bool
    horizon_months: int = MAX_PROJECTION_MONTHS

    @model_validator(mode="after")
    def _dates_match_reachability(self) -> "GoalProjection":
        has_dates = self.months_to_complete is not None and self.completion_date is not None
        no_dates = self.months_to_complete is None and self.completion_date is None
        if self.is_reachable and not has_dates:
            raise ValueError("reachable projection needs months_to_complete and completion_date")
        if not self.is_reachable and not no_dates:
            raise ValueError("unreachable projection cannot carry months_to_complete/completion_date")
        return self

    @property
    def time_to_completion_text(self) -> str:
        months = self.months_to_complete
        if months is None:
            return _horizon_text(self.horizon_months, "+")
        if months == 0:
            return "Complete!"

        years, rest = divmod(months, MONTHS_PER_YEAR)
        if years == 0:
            return f"{rest} month{'' if rest == 1 else 's'}"
        if rest == 0:
            return f"{years} year{'' if years == 1 else 's'}"
        return f"{years}y {rest}m"


class WarningKind(str, Enum):
    OVER_ALLOCATED = "over_allocated"
    NEGATIVE_DISPOSABLE = "negative_disposable"
    NO_CONTRIBUTION_FOR_GOAL = "no_contribution_for_goal"
    GOAL_UNREACHABLE = "goal_unreachable"


_BLOCKERS = frozenset({WarningKind.OVER_ALLOCATED, WarningKind.NEGATIVE_DISPOSABLE})


class EngineWarning(BaseModel):
    kind: WarningKind
    goal_id: Optional[str] = None
    goal_name: Optional[str] = None
    excess: Optional[Decimal] = None
    horizon_months: int = MAX_PROJECTION_MONTHS

    @classmethod
    def over_allocated(cls, excess: Decimal) -> "EngineWarning":
        return cls(kind=WarningKind.OVER_ALLOCATED, excess=excess)

    @classmethod
    def negative_disposable(cls) -> "EngineWarning":
        return cls(kind=WarningKind.NEGATIVE_DISPOSABLE)

    @classmethod
    def no_contribution(cls, goal: Goal) -> "EngineWarning":
        return cls(kind=WarningKind.NO_CONTRIBUTION_FOR_GOAL, goal_id=goal.id, goal_name=goal.name)

    @classmethod
    def unreachable(cls, goal: Goal, horizon_months: int = MAX_PROJECTION_MONTHS) -> "EngineWarning":
        return cls(
            kind=WarningKind.GOAL_UNREACHABLE,
            goal_id=goal.id,
            goal_name=goal.name,
            horizon_months=horizon_months,
        )

    @property
    def message(self) -> str:
        if self.kind is WarningKind.OVER_ALLOCATED:
            return f"Over-allocated by ${self.excess.quantize(CENT)}"
        if self.kind is WarningKind.NEGATIVE_DISPOSABLE:
            return "Expenses exceed income"
        if self.kind is WarningKind.NO_CONTRIBUTION_FOR_GOAL:
            return f"No monthly contribution set for {self.goal_name}"
        return f"{self.goal_name} may take over {_horizon_text(self.horizon_months)} to reach"

    @property
    def is_blocker(self) -> bool:
        return self.kind in _BLOCKERS


class EngineOutput(BaseModel):
    projections: Dict[str, GoalProjection] = Field(default_factory=dict)
    warnings: List[EngineWarning] = Field(default_factory=list)
    total_allocated: Decimal = Decimal("0")
    # profile.monthly_disposable - total_allocated; negative means over-allocated
    remaining_disposable: Decimal = Decimal("0")
    calculated_at: date

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def has_blockers(self) -> bool:
        return any(w.is_blocker for w in self.warnings)

    def projection(self, goal_id: str) -> Optional[GoalProjection]:
        return self.projections.get(goal_id)

    def warnings_of(self, kind: WarningKind) -> List[EngineWarning]:
        return [w for w in self.warnings if w.kind is kind]

    @property
    def projections_by_completion_date(self) -> List[GoalProjection]:
        """Soonest first; unreachable goals last."""
        return sorted(
            self.projections.values(),
            key=lambda p: (p.completion_date is None, p.completion_date or date.max),
        )
