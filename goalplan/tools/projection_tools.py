from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from goalplan.core.schemas import FinancialProfile, Goal, Scenario
from goalplan.utils.projection_engine import FinancialEngine
from goalplan.utils.projection_models import EngineInput, EngineOutput


def _profile(payload: Dict[str, Any]) -> FinancialProfile:
    p = dict(payload or {})

    # single-figure expenses -> needs/wants split
    if "monthly_expenses" in p and "monthly_needs" not in p and "monthly_wants" not in p:
        expenses = p.pop("monthly_expenses")
        income = p.pop("monthly_income", 0)
        savings = p.pop("current_savings", 0)
        return FinancialProfile.from_expenses(income, expenses, savings, **p)

    p.pop("monthly_expenses", None)
    return FinancialProfile(**p)


def _goals(rows: Optional[List[Dict[str, Any]]]) -> List[Goal]:
    out: List[Goal] = []
    for row in rows or []:
        g = dict(row)
        # common aliases
        if "goal_type" in g and "type" not in g:
            g["type"] = g.pop("goal_type")
        if "target" in g and "target_amount" not in g:
            g["target_amount"] = g.pop("target")
        if "current" in g and "current_amount" not in g:
            g["current_amount"] = g.pop("current")
        out.append(Goal(**g))
    return out


def _date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _engine_input(payload: Dict[str, Any]) -> EngineInput:
    return EngineInput(
        profile=_profile(payload.get("profile") or {}),
        goals=_goals(payload.get("goals")),
        allocations=payload.get("allocations") or {},
    )


def _dump(out: EngineOutput) -> Dict[str, Any]:
    d = out.model_dump(mode="json")
    d["warning_messages"] = [w.message for w in out.warnings]
    d["has_blockers"] = out.has_blockers
    for goal_id, proj in out.projections.items():
        d["projections"][goal_id]["time_to_completion_text"] = proj.time_to_completion_text
    return d


def tool_calculate(payload: Dict[str, Any], *, as_of: Any = None, engine: Optional[FinancialEngine] = None) -> Dict[str, Any]:
    engine = engine or FinancialEngine()
    out = engine.calculate(_engine_input(payload), as_of=_date(as_of))
    return _dump(out)


def tool_required_monthly_contribution(
    goal: Dict[str, Any],
    target_date: Any,
    *,
    as_of: Any = None,
    engine: Optional[FinancialEngine] = None,
) -> Dict[str, Any]:
    engine = engine or FinancialEngine()
    g = _goals([goal])[0]
    td = _date(target_date)
    req = engine.required_monthly_contribution(g, td, as_of=_date(as_of))
    return {
        "goal_id": g.id,
        "target_date": td.isoformat(),
        "required_monthly_contribution": None if req is None else str(req),
    }


def tool_compare_scenarios(payload: Dict[str, Any], *, as_of: Any = None, engine: Optional[FinancialEngine] = None) -> Dict[str, Any]:
    engine = engine or FinancialEngine()
    profile = _profile(payload.get("profile") or {})
    goals = _goals(payload.get("goals"))
    a = Scenario(**payload["scenario_a"])
    b = Scenario(**payload["scenario_b"])

    out_a, out_b = engine.compare_scenarios(a, b, profile, goals, as_of=_date(as_of))
    return {
        "scenario_a": {"id": a.id, "name": a.name, "output": _dump(out_a)},
        "scenario_b": {"id": b.id, "name": b.name, "output": _dump(out_b)},
    }


def tool_simulate_allocation_change(
    payload: Dict[str, Any],
    goal_id: str,
    new_amount: Any,
    *,
    as_of: Any = None,
    engine: Optional[FinancialEngine] = None,
) -> Dict[str, Any]:
    engine = engine or FinancialEngine()
    out = engine.simulate_allocation_change(goal_id, new_amount, _engine_input(payload), as_of=_date(as_of))
    return _dump(out)
