from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from goalplan.core.schemas import Goal
from goalplan.utils.calculations import months_between
from goalplan.utils.projection_engine import FinancialEngine
from goalplan.utils.projection_models import EngineOutput


class TrackingState(str, Enum):
    COMPLETED = "completed"
    NO_TARGET_DATE = "no_target_date"
    NOT_IN_PLAN = "not_in_plan"
    ON_TRACK = "on_track"
    BEHIND = "behind"


_LABELS = {
    TrackingState.COMPLETED: "Complete",
    TrackingState.NO_TARGET_DATE: "No Target Date",
    TrackingState.NOT_IN_PLAN: "Not in Plan",
    TrackingState.ON_TRACK: "On Track",
    TrackingState.BEHIND: "Behind",
}


class GoalTrackingStatus(BaseModel):
    """
    Where a goal stands against its desired date under a plan.

    projected_date is None for unreachable goals; months_difference is
    positive when the plan finishes early and None when it never finishes.
    """

    state: TrackingState
    projected_date: Optional[date] = None
    target_date: Optional[date] = None
    months_difference: Optional[int] = None
    current_contribution: Optional[Decimal] = None
    required_contribution: Optional[Decimal] = None

    @property
    def label(self) -> str:
        return _LABELS[self.state]

    @property
    def is_actionable(self) -> bool:
        return self.state is TrackingState.BEHIND

    @property
    def is_tracked_by_plan(self) -> bool:
        return self.state in (TrackingState.ON_TRACK, TrackingState.BEHIND)


def _month_index(d: date) -> int:
    return d.year * 12 + d.month


def tracking_status(
    goal: Goal,
    output: EngineOutput,
    engine: FinancialEngine,
    *,
    as_of: Optional[date] = None,
) -> GoalTrackingStatus:
    if goal.is_completed:
        return GoalTrackingStatus(state=TrackingState.COMPLETED)

    projection = output.projection(goal.id)
    target_date = goal.desired_date
    if target_date is None:
        return GoalTrackingStatus(
            state=TrackingState.NO_TARGET_DATE,
            projected_date=projection.completion_date if projection else None,
        )

    if projection is None or projection.monthly_contribution <= 0:
        return GoalTrackingStatus(state=TrackingState.NOT_IN_PLAN, target_date=target_date)

    as_of = as_of or output.calculated_at
    projected_date = projection.completion_date
    if projected_date is None:
        required = engine.required_monthly_contribution(goal, target_date, as_of=as_of)
        return GoalTrackingStatus(
            state=TrackingState.BEHIND,
            target_date=target_date,
            current_contribution=projection.monthly_contribution,
            required_contribution=required if required is not None else Decimal(0),
        )

    status = GoalTrackingStatus(
        state=TrackingState.ON_TRACK,
        projected_date=projected_date,
        target_date=target_date,
        months_difference=months_between(projected_date, target_date),
        current_contribution=projection.monthly_contribution,
    )

    # month granularity: finishing any day within the target month is on track
    if _month_index(projected_date) <= _month_index(target_date):
        return status

    required = engine.required_monthly_contribution(goal, target_date, as_of=as_of)
    return status.model_copy(update={
        "state": TrackingState.BEHIND,
        "required_contribution": required if required is not None else Decimal(0),
    })
