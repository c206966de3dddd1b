#!/usr/bin/env python3
"""
Operator commands for the approval and escalation engine.

Each command runs in its own transaction (session_scope): it commits on
success and rolls back on any error.  Typed kernel errors print
``CODE: message`` to stderr and exit 1.

Usage:
    python3 scripts/workflow_admin.py [--config PATH] [--db-url URL] <command> ...

Examples:
    # Create tables in the configured database
    python3 scripts/workflow_admin.py init-db

    # Submit a draft expense for approval
    python3 scripts/workflow_admin.py submit expense <document-id> --actor-id <user-id>

    # Show what the next reminder for an invoice would say, without sending
    python3 scripts/workflow_admin.py preview-reminder <invoice-id>

    # Send it, then show the reminder history
    python3 scripts/workflow_admin.py send-reminder <invoice-id> --actor-id <user-id>
    python3 scripts/workflow_admin.py list-reminders <invoice-id>
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from pathlib import Path
from uuid import UUID

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

ACTOR_ENV = "WORKFLOW_ACTOR_ID"


def _actor(value: UUID | None) -> UUID:
    if value is not None:
        return value
    raw = os.environ.get(ACTOR_ENV)
    if not raw:
        raise SystemExit(f"ERROR: --actor-id or {ACTOR_ENV} is required")
    try:
        return UUID(raw)
    except ValueError:
        raise SystemExit(f"ERROR: {ACTOR_ENV} is not a valid UUID: {raw!r}") from None


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Approval workflow and invoice reminder operations.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Engine config YAML (default: workflow_config/defaults.yaml).",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL; overrides the config file and WORKFLOW_DATABASE_URL.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create all tables.")

    submit = commands.add_parser("submit", help="Submit a draft document for approval.")
    submit.add_argument("entity_type", help="timesheet, expense or purchase_requisition.")
    submit.add_argument("document_id", type=UUID)
    submit.add_argument("--actor-id", type=UUID, default=None, help=f"Submitting user (default: ${ACTOR_ENV}).")

    send = commands.add_parser("send-reminder", help="Send the next reminder for an invoice.")
    send.add_argument("invoice_id", type=UUID)
    send.add_argument("--actor-id", type=UUID, default=None, help=f"Sending user (default: ${ACTOR_ENV}).")

    preview = commands.add_parser("preview-reminder", help="Show the next reminder without sending.")
    preview.add_argument("invoice_id", type=UUID)

    history = commands.add_parser("list-reminders", help="Reminder history, most recent first.")
    history.add_argument("invoice_id", type=UUID)

    return parser.parse_args(argv)


def _run(args: argparse.Namespace) -> int:
    from workflow_config import get_engine_config
    from workflow_config.bridges import build_reminder_policy, init_engine
    from workflow_kernel.db.engine import create_tables, session_scope
    from workflow_kernel.services.approval_engine import ApprovalEngine

    actor_id = _actor(args.actor_id) if args.command in ("submit", "send-reminder") else None

    config = get_engine_config(args.config)
    if args.db_url:
        config = dataclasses.replace(
            config, database=dataclasses.replace(config.database, url=args.db_url),
        )
    init_engine(config)

    if args.command == "init-db":
        create_tables()
        print("Tables created.")
        return 0

    policy = build_reminder_policy(config)

    with session_scope() as session:
        engine = ApprovalEngine(session, reminder_policy=policy)

        if args.command == "submit":
            result = engine.submit_document(args.entity_type, args.document_id, actor_id)
            print(f"{result.document.label} {result.document.document_id}: {result.document.status}")
            print(f"  Routing: {result.outcome.value}")
            if result.approval_request is not None:
                print(f"  Approval request: {result.approval_request.request_id}")
                print(f"  Approvers: {len(result.approver_ids)}, "
                      f"notified: {len(result.notifications.delivered)}, "
                      f"failed: {len(result.notifications.failed)}")

        elif args.command == "send-reminder":
            sent = engine.send_reminder(args.invoice_id, actor_id)
            print(f"Sent {sent.escalation_level.value} reminder to {sent.recipient}")
            print(f"  Subject: {sent.subject}")
            print(f"  Days overdue: {sent.days_overdue}")

        elif args.command == "preview-reminder":
            plan = engine.preview_reminder(args.invoice_id)
            step = f"step {plan.step.step_number}" if plan.step else "fallback"
            print(f"Invoice {plan.invoice_number}: {plan.days_overdue} days overdue ({step}, {plan.escalation_level.value})")
            print(f"  To: {plan.recipient_email}")
            print(f"  Subject: {plan.subject}")
            print()
            print(plan.body)

        elif args.command == "list-reminders":
            entries = engine.list_reminders(args.invoice_id)
            if not entries:
                print("No reminders sent.")
            for entry in entries:
                print(f"{entry.sent_at.isoformat()}  {entry.escalation_level.value:<8}  "
                      f"{entry.days_overdue:>4}d  {entry.recipient_email}  {entry.subject}")

    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from workflow_kernel.exceptions import WorkflowKernelError

    try:
        return _run(args)
    except WorkflowKernelError as e:
        print(f"{e.code}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
