from datetime import date
from decimal import Decimal

from goalplan.core.constants import EngineAssumptions, RateConvention
from goalplan.core.schemas import Allocation, FinancialProfile, Goal, GoalType, Scenario
from goalplan.utils.calculations import monthly_rate
from goalplan.utils.logging import scenario_id_var
from goalplan.utils.projection_engine import FinancialEngine
from goalplan.utils.projection_models import EngineInput, GoalProjection, WarningKind

AS_OF = date(2026, 1, 15)


def make_profile(income="10000", expenses="6000", savings="5000"):
    return FinancialProfile.from_expenses(income, expenses, savings)


def make_goal(goal_id="g1", goal_type=GoalType.HOUSE, target="50000", current="10000", **kw):
    return Goal(id=goal_id, type=goal_type, name=f"Goal {goal_id}", target_amount=target, current_amount=current, **kw)


def run(goals, amounts, profile=None, engine=None):
    engine = engine or FinancialEngine()
    inp = EngineInput(profile=profile or make_profile(), goals=goals, allocations=Allocation(amounts=amounts))
    return engine.calculate(inp, as_of=AS_OF)


def test_single_goal_projection():
    out = run([make_goal()], {"g1": "2000"})
    p = out.projection("g1")
    assert p.is_reachable
    assert p.months_to_complete > 0
    assert p.monthly_contribution == Decimal("2000")
    assert out.total_allocated == Decimal("2000")
    assert out.remaining_disposable == Decimal("2000")
    assert out.calculated_at == AS_OF
    assert out.warnings == []


def test_multiple_goals():
    goals = [
        make_goal("house", GoalType.HOUSE, "60000", "10000"),
        make_goal("vacation", GoalType.VACATION, "5000", "1000"),
    ]
    out = run(goals, {"house": "2000", "vacation": "500"})
    assert set(out.projections) == {"house", "vacation"}
    assert out.total_allocated == Decimal("2500")


def test_completion_date_is_months_after_as_of():
    out = run([make_goal(goal_type=GoalType.DEBT, target="10000", current="1000")], {"g1": "700"})
    p = out.projection("g1")
    assert p.months_to_complete == 13
    assert p.completion_date == date(2027, 2, 15)


def test_projected_final_value_reports_overshoot():
    out = run([make_goal(goal_type=GoalType.DEBT, target="10000", current="1000")], {"g1": "700"})
    assert out.projection("g1").projected_final_value == Decimal("10100")


def test_projected_final_value_within_one_month_of_target():
    out = run([make_goal()], {"g1": "1000"})
    p = out.projection("g1")
    assert p.projected_final_value >= Decimal("50000")
    assert p.projected_final_value < Decimal("50000") + Decimal("1000") + Decimal("50000") * monthly_rate("0.045")


def test_unreachable_goal_reports_horizon_balance():
    out = run([make_goal(target="10000000", current="0")], {"g1": "10"})
    p = out.projection("g1")
    assert not p.is_reachable
    assert p.months_to_complete is None
    assert p.completion_date is None
    assert Decimal("6000") < p.projected_final_value < Decimal("10000000")


def test_completed_goal():
    out = run([make_goal(target="10000", current="15000")], {"g1": "500"})
    p = out.projection("g1")
    assert p.months_to_complete == 0
    assert p.completion_date == AS_OF
    assert p.projected_final_value == Decimal("15000")
    assert p.is_reachable


def test_non_positive_target_is_complete():
    goals = [make_goal("zero", target="0", current="0"), make_goal("neg", target="-500", current="0")]
    out = run(goals, {})
    for gid in ("zero", "neg"):
        assert out.projection(gid).months_to_complete == 0
        assert out.projection(gid).is_reachable
    assert out.warnings == []


def test_inactive_goal_excluded_from_projections_and_total():
    goals = [make_goal("on"), make_goal("off", is_active=False)]
    alloc = {"on": "500", "off": "1000"}
    out = run(goals, alloc)
    assert list(out.projections) == ["on"]
    assert out.total_allocated == Decimal("500")
    assert Allocation(amounts=alloc).total_allocated == Decimal("1500")


def test_zero_income_gives_zero_remaining():
    out = run([make_goal()], {"g1": "0"}, profile=make_profile("0", "0", "10000"))
    assert out.remaining_disposable == Decimal("0")


def test_large_amounts():
    profile = make_profile("100000", "50000", "1000000")
    out = run([make_goal(target="10000000", current="1000000")], {"g1": "40000"}, profile=profile)
    assert out.projection("g1").is_reachable


def test_goal_type_return_rate_used():
    goals = [make_goal("house", GoalType.HOUSE), make_goal("retirement", GoalType.RETIREMENT)]
    out = run(goals, {"house": "1000", "retirement": "1000"})
    assert out.projection("retirement").months_to_complete < out.projection("house").months_to_complete


def test_custom_return_rate_overrides_default():
    base = run([make_goal()], {"g1": "1000"}).projection("g1")
    custom = run([make_goal(custom_return_rate="0.10")], {"g1": "1000"}).projection("g1")
    assert custom.is_reachable
    assert custom.months_to_complete < base.months_to_complete


def test_custom_assumption_table():
    engine = FinancialEngine(EngineAssumptions(return_rates={"house": Decimal("0")}))
    out = run([make_goal(target="46000", current="10000")], {"g1": "1000"}, engine=engine)
    assert out.projection("g1").months_to_complete == 36


def test_linear_convention_is_slightly_faster_or_equal():
    geometric = run([make_goal()], {"g1": "1000"}).projection("g1")
    linear = run(
        [make_goal()], {"g1": "1000"},
        engine=FinancialEngine(EngineAssumptions(rate_convention=RateConvention.LINEAR)),
    ).projection("g1")
    assert linear.months_to_complete <= geometric.months_to_complete
    assert geometric.months_to_complete - linear.months_to_complete <= 1


def test_shorter_horizon_assumption_marks_goal_unreachable():
    engine = FinancialEngine(EngineAssumptions(max_projection_months=12))
    out = run([make_goal()], {"g1": "1000"}, engine=engine)
    assert not out.projection("g1").is_reachable
    assert [w.kind for w in out.warnings] == [WarningKind.GOAL_UNREACHABLE]


def test_calculate_does_not_mutate_input():
    goal = make_goal()
    inp = EngineInput(profile=make_profile(), goals=[goal], allocations=Allocation(amounts={"g1": "1000"}))
    before = inp.model_dump()
    FinancialEngine().calculate(inp, as_of=AS_OF)
    assert inp.model_dump() == before


def test_calculate_is_repeatable():
    engine = FinancialEngine()
    inp = EngineInput(profile=make_profile(), goals=[make_goal()], allocations=Allocation(amounts={"g1": "1000"}))
    assert engine.calculate(inp, as_of=AS_OF) == engine.calculate(inp, as_of=AS_OF)


def test_required_monthly_contribution():
    engine = FinancialEngine()
    goal = make_goal()
    req = engine.required_monthly_contribution(goal, date(2029, 1, 15), as_of=AS_OF)
    assert req is not None
    assert req > 0


def test_required_monthly_contribution_complete_goal_is_zero():
    engine = FinancialEngine()
    goal = make_goal(target="1000", current="2000")
    assert engine.required_monthly_contribution(goal, date(2020, 1, 1), as_of=AS_OF) == Decimal("0")


def test_required_monthly_contribution_past_or_too_soon_is_none():
    engine = FinancialEngine()
    goal = make_goal()
    assert engine.required_monthly_contribution(goal, date(2025, 6, 1), as_of=AS_OF) is None
    assert engine.required_monthly_contribution(goal, AS_OF, as_of=AS_OF) is None
    assert engine.required_monthly_contribution(goal, date(2026, 2, 10), as_of=AS_OF) is None


def test_compare_scenarios():
    engine = FinancialEngine()
    goal = make_goal()
    a = Scenario(name="Conservative", allocations=Allocation(amounts={"g1": "1000"}), created_by="user1")
    b = Scenario(name="Aggressive", allocations=Allocation(amounts={"g1": "2000"}), created_by="user1")

    out_a, out_b = engine.compare_scenarios(a, b, make_profile(), [goal], as_of=AS_OF)

    assert out_a.total_allocated == Decimal("1000")
    assert out_b.total_allocated == Decimal("2000")
    assert out_b.projection("g1").months_to_complete < out_a.projection("g1").months_to_complete


def test_simulate_allocation_change():
    engine = FinancialEngine()
    goal = make_goal()
    inp = EngineInput(profile=make_profile(), goals=[goal], allocations=Allocation(amounts={"g1": "1000"}))

    original = engine.calculate(inp, as_of=AS_OF)
    updated = engine.simulate_allocation_change("g1", Decimal("2000"), inp, as_of=AS_OF)

    assert updated.projection("g1").months_to_complete < original.projection("g1").months_to_complete
    assert updated.total_allocated == Decimal("2000")
    assert inp.allocations.amount("g1") == Decimal("1000")


def test_simulate_allocation_change_leaves_other_goals():
    engine = FinancialEngine()
    goals = [make_goal("a"), make_goal("b", GoalType.VACATION, "5000", "1000")]
    inp = EngineInput(profile=make_profile(), goals=goals, allocations=Allocation(amounts={"a": "1000", "b": "200"}))

    updated = engine.simulate_allocation_change("a", "-50", inp, as_of=AS_OF)

    assert updated.projection("a").monthly_contribution == Decimal("0")
    assert updated.projection("b").monthly_contribution == Decimal("200")
    assert updated.total_allocated == Decimal("200")


def test_time_to_completion_text():
    def text(months):
        return GoalProjection(
            goal_id="t",
            months_to_complete=months,
            completion_date=None if months is None else AS_OF,
            projected_final_value=Decimal("50000"),
            monthly_contribution=Decimal("1000"),
            is_reachable=months is not None,
        ).time_to_completion_text

    assert text(0) == "Complete!"
    assert text(1) == "1 month"
    assert text(8) == "8 months"
    assert text(12) == "1 year"
    assert text(36) == "3 years"
    assert text(26) == "2y 2m"
    assert text(None) == "50+ years"


def test_projections_by_completion_date():
    goals = [
        make_goal("slow", target="10000000", current="0"),
        make_goal("done", target="100", current="200"),
        make_goal("mid"),
    ]
    out = run(goals, {"slow": "10", "mid": "1000"})
    assert [p.goal_id for p in out.projections_by_completion_date] == ["done", "mid", "slow"]


def test_target_in_todays_money_uses_configured_inflation():
    g = Goal(id="h", type=GoalType.HOUSE, target_amount="1030", desired_date=date(2027, 1, 15))
    assert FinancialEngine(EngineAssumptions(inflation_rate=Decimal("0.03"))).target_in_todays_money(g, as_of=AS_OF) == Decimal("1000")
    assert FinancialEngine(EngineAssumptions(inflation_rate=Decimal("0"))).target_in_todays_money(g, as_of=AS_OF) == Decimal("1030")
    assert FinancialEngine().target_in_todays_money(g.model_copy(update={"desired_date": None}), as_of=AS_OF) == Decimal("1030")


def test_output_warning_queries():
    goals = [make_goal("a"), make_goal("b", target="10000000", current="0")]
    inp = EngineInput(profile=make_profile(), goals=goals, allocations=Allocation(amounts={"a": "4500", "b": "10"}))
    out = FinancialEngine().calculate(inp, as_of=AS_OF)

    assert out.has_warnings
    assert out.has_blockers
    assert [w.goal_id for w in out.warnings_of(WarningKind.GOAL_UNREACHABLE)] == ["b"]
    assert out.warnings_of(WarningKind.NEGATIVE_DISPOSABLE) == []


def test_rate_below_working_precision_behaves_like_zero_rate():
    engine = FinancialEngine(EngineAssumptions(rate_convention=RateConvention.LINEAR))
    g = make_goal(custom_return_rate="1e-29")

    out = run([g], {"g1": "1000"}, engine=engine)
    assert out.projection("g1").months_to_complete == 40
    assert out.projection("g1").completion_date == date(2029, 5, 15)

    out = run([g], {}, engine=engine)
    assert not out.projection("g1").is_reachable
    assert [w.kind for w in out.warnings] == [WarningKind.NO_CONTRIBUTION_FOR_GOAL, WarningKind.GOAL_UNREACHABLE]

    assert engine.required_monthly_contribution(g, date(2029, 1, 15), as_of=AS_OF) == Decimal("1111.12")


def test_unreachable_text_follows_configured_horizon():
    engine = FinancialEngine(EngineAssumptions(max_projection_months=120))
    out = run([make_goal("u", target="10000000", current="0")], {"u": "10"}, engine=engine)
    assert out.projection("u").time_to_completion_text == "10+ years"
    assert out.warnings[0].message == "Goal u may take over 10 years to reach"

    engine = FinancialEngine(EngineAssumptions(max_projection_months=18))
    out = run([make_goal("u", target="10000000", current="0")], {"u": "10"}, engine=engine)
    assert out.projection("u").time_to_completion_text == "18+ months"


def test_compare_scenarios_restores_scenario_log_context(monkeypatch):
    seen = []
    calculate = FinancialEngine.calculate

    def recording_calculate(self, input, *, as_of=None):
        seen.append(scenario_id_var.get())
        return calculate(self, input, as_of=as_of)

    monkeypatch.setattr(FinancialEngine, "calculate", recording_calculate)
    a = Scenario(name="A", allocations=Allocation(amounts={"g1": "1000"}), created_by="u")
    b = Scenario(name="B", allocations=Allocation(amounts={"g1": "2000"}), created_by="u")

    before = scenario_id_var.get()
    FinancialEngine().compare_scenarios(a, b, make_profile(), [make_goal()], as_of=AS_OF)

    assert seen == [a.id, b.id]
    assert scenario_id_var.get() == before


def test_over_allocation_amounts_are_in_cents():
    out = run([make_goal()], {"g1": "5000"})
    assert str(out.remaining_disposable) == "-1000.00"
    assert out.warnings[0].message == "Over-allocated by $1000.00"
