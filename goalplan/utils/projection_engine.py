from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from goalplan.core.constants import DEFAULT_ASSUMPTIONS, EngineAssumptions
from goalplan.core.schemas import FinancialProfile, Goal, Scenario
from goalplan.utils import calculations as calc
from goalplan.utils.calculations import _d
from goalplan.utils.logging import get_logger, reset_scenario, set_scenario
from goalplan.utils.projection_models import (
    EngineInput,
    EngineOutput,
    EngineWarning,
    GoalProjection,
)

logger = get_logger("projection_engine")


class FinancialEngine:
    """
    Deterministic goal projection engine.
    - No state between calls; inputs are never mutated
    - All money math in Decimal
    - Problems surface as warnings / is_reachable=False, never exceptions
    """

    def __init__(self, assumptions: Optional[EngineAssumptions] = None) -> None:
        self.assumptions = assumptions or DEFAULT_ASSUMPTIONS

    def effective_rate(self, goal: Goal) -> Decimal:
        if goal.custom_return_rate is not None:
            return goal.custom_return_rate
        return self.assumptions.default_rate(goal.type.value)

    # -------------------------
    # Main calculation
    # -------------------------

    def calculate(self, input: EngineInput, *, as_of: Optional[date] = None) -> EngineOutput:
        today = as_of or date.today()
        projections: Dict[str, GoalProjection] = {}
        goal_warnings: List[EngineWarning] = []
        total = Decimal(0)

        for goal in input.goals:
            if not goal.is_active:
                continue

            contribution = input.allocations.amount(goal.id)
            total += contribution

            projection = self.project_goal(goal, contribution, as_of=today)
            projections[goal.id] = projection

            if contribution <= 0 and not goal.is_completed:
                goal_warnings.append(EngineWarning.no_contribution(goal))
            if not projection.is_reachable:
                logger.info(f"Goal {goal.id} unreachable within {self.assumptions.max_projection_months} months")
                goal_warnings.append(EngineWarning.unreachable(goal, self.assumptions.max_projection_months))

        profile = input.profile
        disposable = profile.monthly_disposable

        warnings: List[EngineWarning] = []
        if profile.monthly_income < profile.monthly_expenses:
            warnings.append(EngineWarning.negative_disposable())
        if total > disposable:
            warnings.append(EngineWarning.over_allocated(total - disposable))
        warnings.extend(goal_warnings)

        logger.debug(
            f"calculate goals={len(projections)} total_allocated={total} "
            f"disposable={disposable} warnings={len(warnings)}"
        )

        return EngineOutput(
            projections=projections,
            warnings=warnings,
            total_allocated=total,
            remaining_disposable=disposable - total,
            calculated_at=today,
        )

    def project_goal(self, goal: Goal, monthly_contribution, *, as_of: Optional[date] = None) -> GoalProjection:
        today = as_of or date.today()
        contribution = max(_d(monthly_contribution), Decimal(0))
        current = goal.current_amount

        if goal.is_completed:
            return GoalProjection(
                goal_id=goal.id,
                months_to_complete=0,
                completion_date=today,
                projected_final_value=current,
                monthly_contribution=contribution,
                is_reachable=True,
            )

        annual = self.effective_rate(goal)
        convention = self.assumptions.rate_convention
        max_months = self.assumptions.max_projection_months

        months = calc.months_to_reach_target(
            goal.target_amount,
            current,
            contribution,
            annual,
            convention=convention,
            max_months=max_months,
        )

        mr = calc.monthly_rate(annual, convention)
        if months is None:
            # balance at the horizon, for display
            return GoalProjection(
                goal_id=goal.id,
                projected_final_value=calc.balance_after(current, contribution, mr, max_months),
                monthly_contribution=contribution,
                is_reachable=False,
                horizon_months=max_months,
            )

        return GoalProjection(
            goal_id=goal.id,
            months_to_complete=months,
            completion_date=calc.completion_date(months, today),
            projected_final_value=calc.balance_after(current, contribution, mr, months),
            monthly_contribution=contribution,
            is_reachable=True,
        )

    # -------------------------
    # Helpers built on calculate
    # -------------------------

    def required_monthly_contribution(
        self,
        goal: Goal,
        target_date: date,
        *,
        as_of: Optional[date] = None,
    ) -> Optional[Decimal]:
        """
        Monthly amount that reaches goal.target_amount by target_date.
        0 for completed goals, None when target_date is not in the future.
        """
        if goal.is_completed:
            return Decimal(0)

        today = as_of or date.today()
        months = calc.months_between(today, target_date)
        if months <= 0:
            return None

        return calc.required_monthly_contribution(
            goal.target_amount,
            goal.current_amount,
            months,
            self.effective_rate(goal),
            convention=self.assumptions.rate_convention,
        )

    def target_in_todays_money(self, goal: Goal, *, as_of: Optional[date] = None) -> Decimal:
        """Goal target deflated by the configured inflation rate over whole years to desired_date."""
        if goal.desired_date is None:
            return goal.target_amount
        today = as_of or date.today()
        years = calc.months_between(today, goal.desired_date) // 12
        return calc.inflation_adjusted(goal.target_amount, years, self.assumptions.inflation_rate)

    def compare_scenarios(
        self,
        scenario_a: Scenario,
        scenario_b: Scenario,
        profile: FinancialProfile,
        goals: List[Goal],
        *,
        as_of: Optional[date] = None,
    ) -> Tuple[EngineOutput, EngineOutput]:
        outputs = []
        for scenario in (scenario_a, scenario_b):
            token = set_scenario(scenario.id)
            try:
                outputs.append(self.calculate(
                    EngineInput(profile=profile, goals=goals, allocations=scenario.allocations),
                    as_of=as_of,
                ))
            finally:
                reset_scenario(token)
        return outputs[0], outputs[1]

    def simulate_allocation_change(
        self,
        goal_id: str,
        new_amount,
        input: EngineInput,
        *,
        as_of: Optional[date] = None,
    ) -> EngineOutput:
        allocations = input.allocations.model_copy(deep=True)
        allocations.set_amount(goal_id, new_amount)
        modified = input.model_copy(update={"allocations": allocations})
        return self.calculate(modified, as_of=as_of)
