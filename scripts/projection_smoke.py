from __future__ import annotations

from goalplan.tools.projection_tools import (
    tool_calculate,
    tool_compare_scenarios,
    tool_required_monthly_contribution,
    tool_simulate_allocation_change,
)

def main():
    payload = {
        "profile": {"monthly_income": "10000", "monthly_expenses": "6000", "current_savings": "25000"},
        "goals": [
            {"id": "house", "type": "house", "name": "Down Payment", "target_amount": "60000", "current_amount": "15000"},
            {"id": "retire", "type": "retirement", "name": "Retirement Fund", "target_amount": "1000000", "current_amount": "50000"},
            {"id": "trip", "type": "vacation", "name": "Hawaii Trip", "target_amount": "8000", "current_amount": "2500"},
        ],
        "allocations": {"house": "1500", "retire": "1000", "trip": "300"},
    }

    out = tool_calculate(payload)
    for goal_id, p in out["projections"].items():
        print(f"{goal_id}: {p['time_to_completion_text']} -> {p['completion_date']}")
    print("Total allocated:", out["total_allocated"])
    print("Remaining disposable:", out["remaining_disposable"])
    for msg in out["warning_messages"]:
        print("Warning:", msg)

    req = tool_required_monthly_contribution(payload["goals"][0], "2029-12-31")
    print("Required monthly for house by 2029-12-31:", req["required_monthly_contribution"])

    sim = tool_simulate_allocation_change(payload, "trip", "800")
    print("Trip at 800/mo:", sim["projections"]["trip"]["time_to_completion_text"])

    cmp = tool_compare_scenarios({
        "profile": payload["profile"],
        "goals": payload["goals"],
        "scenario_a": {"name": "Balanced", "allocations": payload["allocations"], "created_by": "smoke"},
        "scenario_b": {"name": "House first", "allocations": {"house": "2500", "retire": "500", "trip": "300"}, "created_by": "smoke"},
    })
    for key in ("scenario_a", "scenario_b"):
        house = cmp[key]["output"]["projections"]["house"]
        print(f"{cmp[key]['name']}: house in {house['time_to_completion_text']}")

if __name__ == "__main__":
    main()
