"""Command-line interface for the rotational schedule engine."""

from __future__ import annotations

import argparse
import json

from rotaplan.calendar import as_date
from rotaplan.config import load_config
from rotaplan.domain.db import get_session, get_session_factory, init_database, reset_database
from rotaplan.domain.models import Group
from rotaplan.domain.repositories import GroupRepository
from rotaplan.domain.values import DATE_TYPES
from rotaplan.engine.materializer import add_schedule_date, materialize_schedule, remove_schedule_date
from rotaplan.engine.orchestrator import build_assignments
from rotaplan.engine.rebuild import REBUILD_MODES, rebuild_schedule
from rotaplan.engine.recalculator import recalculate_future_assignments
from rotaplan.errors import InputError
from rotaplan.io.export_csv import export_assignments_csv
from rotaplan.io.import_csv import import_members_csv
from rotaplan.services.configuration import seed_defaults
from rotaplan.services.impact import affected_schedule_dates
from rotaplan.validator import assignments_frame, summarize_assignments, unfilled_frame, validate_schedule


def _db_url(args: argparse.Namespace) -> str:
    return args.db or load_config(args.config).database_url


def _cmd_init_db(args: argparse.Namespace) -> None:
    """Initialize the database."""
    init_database(_db_url(args))


def _cmd_reset_db(args: argparse.Namespace) -> None:
    """Drop and recreate every table."""
    if not args.yes:
        raise InputError("reset-db deletes all data; pass --yes to confirm")
    reset_database(_db_url(args))


def _cmd_create_group(args: argparse.Namespace) -> None:
    session = get_session(_db_url(args))
    try:
        if GroupRepository.get_by_slug(session, args.slug) is not None:
            print(f"[ERROR] Group slug {args.slug!r} is already taken")
            raise InputError(f"Duplicate group slug {args.slug!r}")
        group = GroupRepository.create(session, Group(name=args.name, slug=args.slug))
        print(f"[OK] Created group {group.id} ({group.slug})")
    finally:
        session.close()


def _cmd_seed(args: argparse.Namespace) -> None:
    """Ensure one recurring event per weekday for a group."""
    session = get_session(_db_url(args))
    try:
        created = seed_defaults(session, args.group, load_config(args.config))
        print(f"[OK] Seeded {created} recurring events for group {args.group}")
    finally:
        session.close()


def _cmd_import_members(args: argparse.Namespace) -> None:
    """Import members CSV into database."""
    session = get_session(_db_url(args))
    try:
        count = import_members_csv(session, args.group, args.csv, load_config(args.config))
        print(f"[OK] Imported {count} members")
    except Exception as e:
        session.rollback()
        print(f"[ERROR] Import failed: {e}")
        raise
    finally:
        session.close()


def _cmd_materialize(args: argparse.Namespace) -> None:
    """Create the schedule dates of a month."""
    session = get_session(_db_url(args))
    try:
        rows = materialize_schedule(session, args.group, args.month, args.year, actor=args.actor)
        for row in rows:
            print(f"  {row.date.isoformat()}  {row.type:<13} {row.label or ''}")
    finally:
        session.close()


def _cmd_build(args: argparse.Namespace) -> None:
    """Build all assignments of a schedule."""
    session = get_session(_db_url(args))
    try:
        cfg = load_config(args.config)
        result = build_assignments(session, args.schedule, cfg, actor=args.actor)

        if result.unfilled:
            print("[WARN] Unfilled slots:")
            print(unfilled_frame(result.unfilled).to_string(index=False))

        # Export to CSV if requested
        if args.out:
            export_assignments_csv(session, args.out, args.schedule)

        print(f"[OK] Built {len(result.assignments)} assignments for schedule {args.schedule}")
    finally:
        session.close()


def _cmd_recalculate(args: argparse.Namespace) -> None:
    """Rebuild future assignments of a recurring event."""
    db_url = _db_url(args)
    session = get_session(db_url)
    try:
        cfg = load_config(args.config)
        result = recalculate_future_assignments(
            session,
            args.event,
            today=args.today,
            cfg=cfg,
            session_factory=get_session_factory(db_url),
            actor=args.actor,
        )
        print(json.dumps(result.to_dict(), indent=2))
        result.raise_for_failures()
    finally:
        session.close()


def _cmd_rebuild(args: argparse.Namespace) -> None:
    """Regenerate future assignments of one schedule."""
    session = get_session(_db_url(args))
    try:
        plan = rebuild_schedule(
            session,
            args.schedule,
            mode=args.mode,
            today=args.today,
            cfg=load_config(args.config),
            dry_run=args.dry_run,
            actor=args.actor,
        )
        print(json.dumps(plan.to_dict(), indent=2))
    finally:
        session.close()


def _cmd_add_date(args: argparse.Namespace) -> None:
    session = get_session(_db_url(args))
    try:
        add_schedule_date(session, args.schedule, as_date(args.date), args.type, label=args.label, actor=args.actor)
    finally:
        session.close()


def _cmd_remove_date(args: argparse.Namespace) -> None:
    session = get_session(_db_url(args))
    try:
        remove_schedule_date(session, args.schedule, as_date(args.date), actor=args.actor)
    finally:
        session.close()


def _cmd_impact(args: argparse.Namespace) -> None:
    """Report schedule dates referencing a recurring event."""
    session = get_session(_db_url(args))
    try:
        summary = affected_schedule_dates(session, args.event)
        print(json.dumps(summary.to_dict(), indent=2))
    finally:
        session.close()


def _cmd_export(args: argparse.Namespace) -> None:
    """Export assignments of a schedule to CSV."""
    session = get_session(_db_url(args))
    try:
        count = export_assignments_csv(session, args.out, args.schedule)
        print(f"[OK] Exported {count} assignments to {args.out}")
    finally:
        session.close()


def _cmd_summarize(args: argparse.Namespace) -> None:
    session = get_session(_db_url(args))
    try:
        print(summarize_assignments(assignments_frame(session, args.schedule)))
    finally:
        session.close()


def _cmd_validate(args: argparse.Namespace) -> None:
    """Validate persisted assignments of a schedule."""
    session = get_session(_db_url(args))
    try:
        conflicts = validate_schedule(session, args.schedule)
        for c in conflicts:
            print(f"[WARN] {c.date.isoformat()}: {c.member_name} is on holiday (role {c.role_id})")
        print(f"[OK] Validation passed for schedule {args.schedule}")
    except Exception as e:
        print(f"[ERROR] Validation failed: {e}")
        raise
    finally:
        session.close()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="rotaplan",
        description="Monthly rotational schedules for groups of members",
    )

    # Global options
    parser.add_argument("--db", help="Database URL (default: database_url from config)")
    parser.add_argument("--config", help="Path to config YAML or JSON (optional)")
    parser.add_argument("--actor", help="Name recorded in the schedule audit log")

    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Initialize database")
    init.set_defaults(func=_cmd_init_db)

    reset = sub.add_parser("reset-db", help="Drop and recreate all tables")
    reset.add_argument("--yes", action="store_true", help="Confirm that all data is deleted")
    reset.set_defaults(func=_cmd_reset_db)

    grp = sub.add_parser("create-group", help="Create a group")
    grp.add_argument("--name", required=True)
    grp.add_argument("--slug", required=True)
    grp.set_defaults(func=_cmd_create_group)

    seed = sub.add_parser("seed", help="Create default recurring events for a group")
    seed.add_argument("--group", type=int, required=True, help="Group id")
    seed.set_defaults(func=_cmd_seed)

    imp = sub.add_parser("import-members", help="Import members CSV into database")
    imp.add_argument("--group", type=int, required=True, help="Group id")
    imp.add_argument("--csv", required=True, help="Path to members CSV")
    imp.set_defaults(func=_cmd_import_members)

    mat = sub.add_parser("materialize", help="Create schedule dates for a month")
    mat.add_argument("--group", type=int, required=True, help="Group id")
    mat.add_argument("--month", type=int, required=True, help="Month (1-12)")
    mat.add_argument("--year", type=int, required=True, help="Year (e.g., 2026)")
    mat.set_defaults(func=_cmd_materialize)

    build = sub.add_parser("build", help="Build assignments for a schedule")
    build.add_argument("--schedule", type=int, required=True, help="Schedule id")
    build.add_argument("--out", help="Optional: export assignments to CSV")
    build.set_defaults(func=_cmd_build)

    rec = sub.add_parser("recalculate", help="Rebuild future assignments of a recurring event")
    rec.add_argument("--event", type=int, required=True, help="Recurring event id")
    rec.add_argument("--today", help="Cutoff date YYYY-MM-DD (default: today)")
    rec.set_defaults(func=_cmd_recalculate)

    reb = sub.add_parser("rebuild", help="Regenerate future assignments of a schedule")
    reb.add_argument("--schedule", type=int, required=True, help="Schedule id")
    reb.add_argument("--mode", choices=REBUILD_MODES, default="overwrite")
    reb.add_argument("--today", help="Cutoff date YYYY-MM-DD (default: today)")
    reb.add_argument("--dry-run", action="store_true", help="Preview without writing")
    reb.set_defaults(func=_cmd_rebuild)

    add = sub.add_parser("add-date", help="Add a one-off date to a schedule")
    add.add_argument("--schedule", type=int, required=True, help="Schedule id")
    add.add_argument("--date", required=True, help="YYYY-MM-DD")
    add.add_argument("--type", choices=DATE_TYPES, default="assignable")
    add.add_argument("--label")
    add.set_defaults(func=_cmd_add_date)

    rm = sub.add_parser("remove-date", help="Remove a date and its assignments from a schedule")
    rm.add_argument("--schedule", type=int, required=True, help="Schedule id")
    rm.add_argument("--date", required=True, help="YYYY-MM-DD")
    rm.set_defaults(func=_cmd_remove_date)

    imp_event = sub.add_parser("impact", help="Count schedule dates referencing a recurring event")
    imp_event.add_argument("--event", type=int, required=True, help="Recurring event id")
    imp_event.set_defaults(func=_cmd_impact)

    exp = sub.add_parser("export", help="Export assignments of a schedule to CSV")
    exp.add_argument("--schedule", type=int, required=True, help="Schedule id")
    exp.add_argument("--out", required=True, help="Output CSV path")
    exp.set_defaults(func=_cmd_export)

    summ = sub.add_parser("summarize", help="Print coverage and load of a schedule")
    summ.add_argument("--schedule", type=int, required=True, help="Schedule id")
    summ.set_defaults(func=_cmd_summarize)

    val = sub.add_parser("validate", help="Validate persisted assignments of a schedule")
    val.add_argument("--schedule", type=int, required=True, help="Schedule id")
    val.set_defaults(func=_cmd_validate)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
