"""Ratify CLI — command-line host for the ratification service.

Usage:
    python -m ratify.cli members
    python -m ratify.cli add-member --name "Dana D" --pin 1234
    python -m ratify.cli verify --name "Dana D" --pin 1234
    python -m ratify.cli candidates
    python -m ratify.cli create --first-name Jamie --last-initial S --notes "..."
    python -m ratify.cli vote --id abc1234 --member "Alice A" --yes
    python -m ratify.cli reopen --id abc1234
    python -m ratify.cli force-status --id abc1234 --status banned
    python -m ratify.cli resolve --id abc1234 --mode majority
    python -m ratify.cli delete --id abc1234
    python -m ratify.cli check-invariants
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from ratify.config import Settings
from ratify.engine.tally import TallyMode
from ratify.models.candidate import CandidateStatus
from ratify.persistence.event_log import EventLog
from ratify.persistence.snapshot_store import JsonSnapshotStore
from ratify.service import RatifyService, ServiceResult


def _make_service(args: argparse.Namespace) -> RatifyService:
    """Create a RatifyService backed by the configured files."""
    settings: Settings = args.settings
    data_path = args.data or settings.data_path
    event_log_path = args.events or settings.event_log_path
    event_log = EventLog(storage_path=event_log_path) if event_log_path else None
    return RatifyService(
        JsonSnapshotStore(data_path),
        event_log=event_log,
        settings=settings,
    )


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _report(result: ServiceResult) -> int:
    if result.success:
        _print_json(result.data)
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_members(args: argparse.Namespace) -> int:
    service = _make_service(args)
    _print_json({"members": service.get_members()})
    return 0


def cmd_add_member(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.add_member(args.name, pin=args.pin))


def cmd_verify(args: argparse.Namespace) -> int:
    service = _make_service(args)
    verified = service.verify_credential(args.name, args.pin)
    _print_json({"name": args.name, "verified": verified})
    return 0 if verified else 1


def cmd_candidates(args: argparse.Namespace) -> int:
    service = _make_service(args)
    candidates = service.list_candidates()
    if args.status:
        candidates = [c for c in candidates if c.status.value == args.status]
    _print_json({"candidates": [c.to_dict() for c in candidates]})
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args)
    candidate = service.get_candidate(args.id)
    if candidate is None:
        print(f"Failed: Candidate not found: {args.id}", file=sys.stderr)
        return 1
    _print_json({"candidate": candidate.to_dict()})
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.create_candidate(args.first_name, args.last_initial, args.notes))


def cmd_vote(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.record_vote(args.id, args.member, args.vote, pin=args.pin))


def cmd_reopen(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.reopen(args.id, admin_pin=args.admin_pin))


def cmd_force_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.force_status(args.id, args.status, admin_pin=args.admin_pin))


def cmd_resolve(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.resolve_by_tally(args.id, args.mode, admin_pin=args.admin_pin))


def cmd_delete(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.delete_candidate(args.id, admin_pin=args.admin_pin))


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Report data-model violations in the data file."""
    service = _make_service(args)
    errors = service.check_invariants()
    for error in errors:
        print(error, file=sys.stderr)
    _print_json({"ok": not errors, "violations": len(errors)})
    return 1 if errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ratify",
        description="Ratify — member voting on candidates",
    )
    parser.add_argument("--data", type=Path, help="Path to the data file (default: RATIFY_DATA_PATH)")
    parser.add_argument("--events", type=Path, help="Path to the audit log (default: RATIFY_EVENT_LOG_PATH)")
    parser.add_argument("--admin-pin", help="Admin PIN, if one is configured")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("members", help="List members")

    p_add = sub.add_parser("add-member", help="Add a member")
    p_add.add_argument("--name", required=True, help="Member name")
    p_add.add_argument("--pin", help="Member PIN")

    p_verify = sub.add_parser("verify", help="Verify a member PIN")
    p_verify.add_argument("--name", required=True, help="Member name")
    p_verify.add_argument("--pin", required=True, help="Member PIN")

    p_list = sub.add_parser("candidates", help="List candidates")
    p_list.add_argument(
        "--status", choices=[s.value for s in CandidateStatus],
        help="Only show candidates with this status",
    )

    p_show = sub.add_parser("show", help="Show one candidate")
    p_show.add_argument("--id", required=True, help="Candidate ID")

    p_create = sub.add_parser("create", help="Nominate a candidate")
    p_create.add_argument("--first-name", required=True, help="First name")
    p_create.add_argument("--last-initial", required=True, help="Last initial")
    p_create.add_argument("--notes", default="", help="Free-text notes")

    p_vote = sub.add_parser("vote", help="Record a vote")
    p_vote.add_argument("--id", required=True, help="Candidate ID")
    p_vote.add_argument("--member", required=True, help="Member name")
    choice = p_vote.add_mutually_exclusive_group(required=True)
    choice.add_argument("--yes", dest="vote", action="store_true", help="Vote yes")
    choice.add_argument("--no", dest="vote", action="store_false", help="Vote no")
    p_vote.add_argument("--pin", help="Member PIN")

    p_reopen = sub.add_parser("reopen", help="Clear all votes on a candidate")
    p_reopen.add_argument("--id", required=True, help="Candidate ID")

    p_force = sub.add_parser("force-status", help="Force a candidate's status")
    p_force.add_argument("--id", required=True, help="Candidate ID")
    p_force.add_argument(
        "--status", required=True,
        choices=[s.value for s in CandidateStatus],
    )

    p_resolve = sub.add_parser("resolve", help="Decide by majority of cast votes")
    p_resolve.add_argument("--id", required=True, help="Candidate ID")
    p_resolve.add_argument(
        "--mode", default=TallyMode.MAJORITY.value,
        choices=[m.value for m in TallyMode],
        help="majority (default) or opposite",
    )

    p_delete = sub.add_parser("delete", help="Delete a candidate")
    p_delete.add_argument("--id", required=True, help="Candidate ID")

    sub.add_parser("check-invariants", help="Check the data file for inconsistencies")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        args.settings = Settings.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    logging.basicConfig(
        level=getattr(logging, args.settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "members": cmd_members,
        "add-member": cmd_add_member,
        "verify": cmd_verify,
        "candidates": cmd_candidates,
        "show": cmd_show,
        "create": cmd_create,
        "vote": cmd_vote,
        "reopen": cmd_reopen,
        "force-status": cmd_force_status,
        "resolve": cmd_resolve,
        "delete": cmd_delete,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (OSError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
