"""Election CLI — thin command-line adapter over the election service.

Usage:
    python -m election.cli phases
    python -m election.cli policy --preset permissive
    python -m election.cli run scenario.json --events events.jsonl

A scenario is a JSON document:

    {
      "admin": "admin",
      "preset": "strict",
      "steps": [
        {"op": "register_voter", "identity": "alice"},
        {"op": "advance_phase"},
        {"op": "add_proposal", "caller": "alice", "description": "Cats"},
        {"op": "cast_vote", "caller": "alice", "proposal_id": 2,
         "expect_error": "invalid_proposal_id"}
      ]
    }

Steps run against one in-memory election. caller defaults to the admin.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Callable

from election.errors import PolicyError
from election.log import configure_logging
from election.models.election import Phase
from election.persistence.event_log import EventLog
from election.policy.resolver import PolicyResolver
from election.service import ElectionService, ServiceResult


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"


def _make_resolver(config_dir: Path) -> PolicyResolver:
    if (config_dir / "election_policy.json").exists():
        return PolicyResolver.from_config_dir(config_dir)
    return PolicyResolver.default()


def _dispatch(service: ElectionService, admin: str, step: dict[str, Any]) -> ServiceResult:
    caller = step.get("caller", admin)
    op = step.get("op")
    handlers: dict[str, Callable[[], ServiceResult]] = {
        "register_voter": lambda: service.register_voter(caller, step["identity"]),
        "advance_phase": lambda: service.advance_phase(caller),
        "add_proposal": lambda: service.add_proposal(caller, step["description"]),
        "remove_proposal": lambda: service.remove_proposal(caller, step.get("proposal_id")),
        "cast_vote": lambda: service.cast_vote(caller, int(step["proposal_id"])),
        "reset_election": lambda: service.reset_election(caller),
        "show_vote": lambda: service.show_vote(step.get("identity", caller)),
        "get_winner": service.get_winner,
    }
    handler = handlers.get(op)
    if handler is None:
        return ServiceResult(
            success=False, errors=[f"Unknown operation: {op}"], data={"code": "unknown_op"}
        )
    try:
        return handler()
    except KeyError as e:
        return ServiceResult(
            success=False, errors=[f"Step is missing {e}"], data={"code": "invalid_step"}
        )
    except (ValueError, TypeError) as e:
        return ServiceResult(
            success=False, errors=[f"Malformed step: {e}"], data={"code": "invalid_step"}
        )


def cmd_phases(args: argparse.Namespace) -> int:
    for phase in Phase:
        print(f"{phase.ordinal}  {phase.value:<32} {phase.label}")
    return 0


def cmd_policy(args: argparse.Namespace) -> int:
    try:
        policy = _make_resolver(args.config).resolve(args.preset)
    except PolicyError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps(policy.to_dict(), indent=2))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    try:
        with args.scenario.open("r", encoding="utf-8") as f:
            scenario = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Failed to read scenario: {e}", file=sys.stderr)
        return 1

    admin = scenario.get("admin", "admin")
    try:
        service = ElectionService(
            _make_resolver(args.config),
            admin_id=admin,
            event_log=EventLog(storage_path=args.events) if args.events else None,
            preset=args.preset or scenario.get("preset"),
        )
    except (PolicyError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1

    failures = 0
    for index, step in enumerate(scenario.get("steps", []), 1):
        result = _dispatch(service, admin, step)
        expected = step.get("expect_error")
        label = f"[{index}] {step.get('op')}"
        if result.success and expected is None:
            print(f"{label}: ok {json.dumps(result.data, sort_keys=True)}")
        elif not result.success and expected == result.code:
            print(f"{label}: rejected as expected ({result.code})")
        elif result.success:
            failures += 1
            print(f"{label}: expected {expected}, but succeeded", file=sys.stderr)
        else:
            failures += 1
            print(f"{label}: failed ({result.code}): {'; '.join(result.errors)}", file=sys.stderr)

    print(json.dumps(service.status(), indent=2))
    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="election",
        description="Single-election voting workflow CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("ELECTION_LOG_LEVEL", "WARNING"),
        help="Log level (default: $ELECTION_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    sub = parser.add_subparsers(dest="command")

    # phases
    sub.add_parser("phases", help="List the election lifecycle phases")

    # policy
    p_policy = sub.add_parser("policy", help="Show the resolved election policy")
    p_policy.add_argument("--preset", help="Preset name (default: $ELECTION_POLICY or config default)")

    # run
    p_run = sub.add_parser("run", help="Run a JSON election scenario")
    p_run.add_argument("scenario", type=Path, help="Scenario JSON file")
    p_run.add_argument("--preset", help="Override the scenario's policy preset")
    p_run.add_argument("--events", type=Path, help="Append events to this JSONL file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.log_level, json=args.json_logs)

    commands = {
        "phases": cmd_phases,
        "policy": cmd_policy,
        "run": cmd_run,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
