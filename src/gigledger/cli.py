"""Gig ledger CLI: command-line host for a single ledger.

Usage:
    gigledger create-ledger --owner platform
    gigledger register-account --name alice
    gigledger fund-account --user 0 --amount 100
    gigledger post-gig --poster 0 --description "fix bug" --payment 40 --deadline 1767225600
    gigledger apply --user 1 --gig 0
    gigledger assign --gig 0 --user 1 --caller platform
    gigledger complete --gig 0 --applicant 1 --caller platform
    gigledger status
    gigledger check-invariants

State and the audit log live in the data directory from
config/ledger_settings.json (override with --data-dir or
GIGLEDGER_DATA_DIR).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

from gigledger.config import DEFAULT_CONFIG_DIR, LedgerSettings
from gigledger.models.ledger import GigStatus
from gigledger.persistence.event_log import EventKind, EventLog
from gigledger.persistence.state_store import StateStore
from gigledger.service import GigLedgerService, ServiceResult


def _load_settings(args: argparse.Namespace) -> LedgerSettings:
    settings = LedgerSettings.from_config_dir(args.config)
    if args.data_dir is not None:
        settings = replace(settings, data_dir=args.data_dir)
    return settings


def _make_service(settings: LedgerSettings) -> GigLedgerService:
    """Create a GigLedgerService with durable persistence."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    event_log = EventLog(storage_path=settings.event_log_path)
    state_store = StateStore(storage_path=settings.state_path)
    return GigLedgerService(event_log=event_log, state_store=state_store)


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, sort_keys=True))
        return 0
    kind = f" [{result.error_kind}]" if result.error_kind else ""
    print(f"Failed{kind}: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def _as_json(record: Any) -> dict[str, Any]:
    data = asdict(record)
    if "status" in data:
        data["status"] = record.status.value
    return data


def cmd_create_ledger(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.create_ledger(args.owner))


def cmd_register_account(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.register_account(args.name))


def cmd_fund_account(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.fund_account(args.user, args.amount))


def cmd_post_gig(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.post_gig(
        poster_id=args.poster,
        description=args.description,
        payment=args.payment,
        deadline=args.deadline,
    ))


def cmd_apply(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.apply_for_gig(args.user, args.gig))


def cmd_assign(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.assign_gig(args.gig, args.user, caller=args.caller))


def cmd_complete(service: GigLedgerService, args: argparse.Namespace) -> int:
    return _report(service.complete_gig(args.gig, args.applicant, caller=args.caller))


def cmd_status(service: GigLedgerService, args: argparse.Namespace) -> int:
    print(json.dumps(service.status(), indent=2, sort_keys=True))
    return 0


def cmd_show_account(service: GigLedgerService, args: argparse.Namespace) -> int:
    account = service.get_account(args.id)
    if account is None:
        print(f"Account not found: {args.id}", file=sys.stderr)
        return 1
    print(json.dumps(_as_json(account), indent=2, sort_keys=True))
    return 0


def cmd_show_gig(service: GigLedgerService, args: argparse.Namespace) -> int:
    gig = service.get_gig(args.id)
    if gig is None:
        print(f"Gig not found: {args.id}", file=sys.stderr)
        return 1
    print(json.dumps(_as_json(gig), indent=2, sort_keys=True))
    return 0


def cmd_list_gigs(service: GigLedgerService, args: argparse.Namespace) -> int:
    status = GigStatus(args.status) if args.status else None
    gigs = [_as_json(g) for g in service.list_gigs(status)]
    print(json.dumps(gigs, indent=2, sort_keys=True))
    return 0


def cmd_events(service: GigLedgerService, args: argparse.Namespace) -> int:
    kind = EventKind(args.kind) if args.kind else None
    for event in service.events(kind):
        print(json.dumps(event.to_dict(), sort_keys=True))
    return 0


def cmd_check_invariants(service: GigLedgerService, args: argparse.Namespace) -> int:
    errors = service.check_invariants()
    if errors:
        for error in errors:
            print(f"VIOLATION: {error}", file=sys.stderr)
        return 1
    print("All ledger invariants hold.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gigledger",
        description="Gig marketplace ledger CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_DIR,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Override the data directory from settings",
    )
    sub = parser.add_subparsers(dest="command")

    p_create = sub.add_parser("create-ledger", help="Create the ledger")
    p_create.add_argument("--owner", required=True, help="Owner identity")

    p_reg = sub.add_parser("register-account", help="Register an account")
    p_reg.add_argument("--name", required=True, help="Display name")

    p_fund = sub.add_parser("fund-account", help="Deposit currency into an account")
    p_fund.add_argument("--user", type=int, required=True, help="Account ID")
    p_fund.add_argument("--amount", type=int, required=True, help="Deposit amount")

    p_post = sub.add_parser("post-gig", help="Post a gig and escrow its payment")
    p_post.add_argument("--poster", type=int, required=True, help="Poster account ID")
    p_post.add_argument("--description", required=True, help="Gig description")
    p_post.add_argument("--payment", type=int, required=True, help="Payment amount")
    p_post.add_argument("--deadline", type=int, default=0, help="Deadline timestamp")

    p_apply = sub.add_parser("apply", help="Apply to a gig")
    p_apply.add_argument("--user", type=int, required=True, help="Applicant account ID")
    p_apply.add_argument("--gig", type=int, required=True, help="Gig ID")

    p_assign = sub.add_parser("assign", help="Assign an applicant to a gig (owner only)")
    p_assign.add_argument("--gig", type=int, required=True, help="Gig ID")
    p_assign.add_argument("--user", type=int, required=True, help="Applicant account ID")
    p_assign.add_argument("--caller", required=True, help="Caller identity")

    p_complete = sub.add_parser("complete", help="Complete a gig and pay out (owner only)")
    p_complete.add_argument("--gig", type=int, required=True, help="Gig ID")
    p_complete.add_argument("--applicant", type=int, required=True, help="Assigned applicant ID")
    p_complete.add_argument("--caller", required=True, help="Caller identity")

    sub.add_parser("status", help="Show ledger status")

    p_acct = sub.add_parser("show-account", help="Show one account")
    p_acct.add_argument("--id", type=int, required=True, help="Account ID")

    p_gig = sub.add_parser("show-gig", help="Show one gig")
    p_gig.add_argument("--id", type=int, required=True, help="Gig ID")

    p_list = sub.add_parser("list-gigs", help="List gigs")
    p_list.add_argument(
        "--status", choices=[s.value for s in GigStatus], help="Filter by status",
    )

    p_events = sub.add_parser("events", help="Print audit events as JSON lines")
    p_events.add_argument(
        "--kind", choices=[k.value for k in EventKind], help="Filter by event kind",
    )

    sub.add_parser("check-invariants", help="Verify ledger-wide invariants")

    return parser


COMMANDS = {
    "create-ledger": cmd_create_ledger,
    "register-account": cmd_register_account,
    "fund-account": cmd_fund_account,
    "post-gig": cmd_post_gig,
    "apply": cmd_apply,
    "assign": cmd_assign,
    "complete": cmd_complete,
    "status": cmd_status,
    "show-account": cmd_show_account,
    "show-gig": cmd_show_gig,
    "list-gigs": cmd_list_gigs,
    "events": cmd_events,
    "check-invariants": cmd_check_invariants,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        settings = _load_settings(args)
    except (OSError, ValueError) as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 1
    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        service = _make_service(settings)
    except (OSError, ValueError) as e:
        print(f"Failed to open ledger data in {settings.data_dir}: {e}", file=sys.stderr)
        return 1
    return handler(service, args)


if __name__ == "__main__":
    raise SystemExit(main())
