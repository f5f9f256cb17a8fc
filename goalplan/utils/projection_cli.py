from __future__ import annotations

import argparse
import json
import uuid
from pathlib import Path
from typing import Any, Dict

from goalplan.core.config import SETTINGS
from goalplan.core.constants import EngineAssumptions
from goalplan.core.schemas import ErrorEnvelope
from goalplan.tools.projection_tools import (
    tool_calculate,
    tool_compare_scenarios,
    tool_required_monthly_contribution,
    tool_simulate_allocation_change,
)
from goalplan.utils.logging import get_logger, set_log_context, setup_logging
from goalplan.utils.projection_engine import FinancialEngine

logger = get_logger("projection_cli")


def _load(path: str) -> Dict[str, Any]:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _engine() -> FinancialEngine:
    return FinancialEngine(EngineAssumptions.from_settings(SETTINGS))


def _print_output(out: Dict[str, Any], as_json: bool, title: str = "") -> None:
    if as_json:
        print(json.dumps(out, indent=2))
        return

    if title:
        print(f"== {title}")
    for goal_id, proj in out["projections"].items():
        when = proj["completion_date"] or "-"
        print(f"{goal_id}: {proj['time_to_completion_text']} (by {when}) at {proj['monthly_contribution']}/mo")
    print(f"Total allocated: {out['total_allocated']}")
    print(f"Remaining disposable: {out['remaining_disposable']}")
    for msg in out["warning_messages"]:
        print(f"WARN: {msg}")


def cmd_project(args: argparse.Namespace) -> int:
    out = tool_calculate(_load(args.input), as_of=args.as_of, engine=_engine())
    _print_output(out, args.json)
    return 2 if args.strict and out["has_blockers"] else 0


def cmd_required(args: argparse.Namespace) -> int:
    out = tool_required_monthly_contribution(_load(args.goal), args.target_date, as_of=args.as_of, engine=_engine())
    if args.json:
        print(json.dumps(out, indent=2))
    elif out["required_monthly_contribution"] is None:
        print(f"Target date {out['target_date']} is not in the future.")
    else:
        print(f"Save {out['required_monthly_contribution']}/month to reach the goal by {out['target_date']}.")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    out = tool_compare_scenarios(_load(args.input), as_of=args.as_of, engine=_engine())
    if args.json:
        print(json.dumps(out, indent=2))
        return 0
    for key in ("scenario_a", "scenario_b"):
        _print_output(out[key]["output"], False, title=out[key]["name"])
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    out = tool_simulate_allocation_change(
        _load(args.input), args.goal_id, args.amount, as_of=args.as_of, engine=_engine()
    )
    _print_output(out, args.json)
    return 2 if args.strict and out["has_blockers"] else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="goalplan-cli", description="Savings goal projections")
    p.add_argument("--as_of", default=None, help="ISO date projections are measured from (default: today)")
    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("project", help="Project every active goal under an allocation")
    pr.add_argument("input", help="JSON file with profile, goals, allocations")
    pr.add_argument("--json", action="store_true")
    pr.add_argument("--strict", action="store_true", help="Exit 2 on blocking warnings")
    pr.set_defaults(func=cmd_project)

    rq = sub.add_parser("required", help="Monthly contribution needed to hit a date")
    rq.add_argument("goal", help="JSON file with a single goal")
    rq.add_argument("target_date", help="ISO date")
    rq.add_argument("--json", action="store_true")
    rq.set_defaults(func=cmd_required)

    cp = sub.add_parser("compare", help="Compare two scenarios")
    cp.add_argument("input", help="JSON file with profile, goals, scenario_a, scenario_b")
    cp.add_argument("--json", action="store_true")
    cp.set_defaults(func=cmd_compare)

    sm = sub.add_parser("simulate", help="What-if for one goal's allocation")
    sm.add_argument("input", help="JSON file with profile, goals, allocations")
    sm.add_argument("goal_id")
    sm.add_argument("amount")
    sm.add_argument("--json", action="store_true")
    sm.add_argument("--strict", action="store_true", help="Exit 2 on blocking warnings")
    sm.set_defaults(func=cmd_simulate)

    return p


def main(argv=None) -> None:
    setup_logging(SETTINGS.log_level)
    set_log_context(request_id=uuid.uuid4().hex[:12])

    args = build_parser().parse_args(argv)
    try:
        rc = args.func(args)
    except (OSError, ValueError, ArithmeticError, KeyError) as e:
        logger.error(f"{args.cmd} failed: {e}")
        err = ErrorEnvelope(code="INVALID_INPUT", message=str(e))
        print(err.model_dump_json(indent=2))
        rc = 1
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
