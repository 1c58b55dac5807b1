"""Event materializer - expands active recurring events into schedule dates."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from rotaplan.calendar import get_schedule_dates, validate_month_year
from rotaplan.domain.models import RecurringEvent, Schedule, ScheduleDate
from rotaplan.domain.repositories import (
    RecurringEventRepository,
    ScheduleDateRepository,
    ScheduleRepository,
)
from rotaplan.domain.values import ASSIGNABLE, DATE_TYPES, FOR_EVERYONE, DateSlot, EventSnapshot
from rotaplan.errors import InputError
from rotaplan.services.configuration import log_schedule_action
from rotaplan.services.loader import require_group

from .locks import ScheduleLocks, default_locks


def plan_schedule_dates(events: Iterable[RecurringEvent], month: int, year: int) -> List[DateSlot]:
    """
    Dates a month gets from a set of recurring events.

    Active events are processed in ascending id; when two of them fall on the
    same weekday the first one keeps the date.

    Args:
        events: Recurring events of one group (inactive ones are ignored)
        month: 1-based month
        year: 4-digit year

    Returns:
        DateSlots in ascending date order, each carrying the event snapshot
    """
    planned: Dict[date, DateSlot] = {}
    for event in sorted(events, key=lambda e: e.id):
        if not event.active:
            continue
        weekday = event.weekday.name
        snapshot = event.current_snapshot()
        for iso in get_schedule_dates(month, year, [weekday]):
            day = date.fromisoformat(iso)
            if day in planned:
                continue
            planned[day] = DateSlot(
                date=day,
                weekday=weekday,
                snapshot=snapshot,
                recurring_event_id=event.id,
            )
    return [planned[d] for d in sorted(planned)]


def materialize_into(session: Session, schedule: Schedule) -> List[ScheduleDate]:
    """
    Add the missing schedule dates of a schedule. Flushes, does not commit.

    Dates that already exist are left alone, whatever their snapshot.

    Returns:
        Newly created ScheduleDate rows
    """
    events = RecurringEventRepository.get_by_group(session, schedule.group_id, active_only=True)
    existing = ScheduleDateRepository.existing_dates(session, schedule.id)

    new_rows = [
        ScheduleDate(
            schedule_id=schedule.id,
            date=slot.date,
            snapshot=slot.snapshot,
            recurring_event_id=slot.recurring_event_id,
        )
        for slot in plan_schedule_dates(events, schedule.month, schedule.year)
        if slot.date not in existing
    ]
    ScheduleDateRepository.bulk_create(session, new_rows, commit=False)
    return new_rows


def materialize_schedule(
    session: Session,
    group_id: int,
    month: int,
    year: int,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> List[ScheduleDate]:
    """
    Create (or complete) the draft schedule of a month.

    Args:
        session: Database session
        group_id: Group id
        month: 1-based month
        year: 4-digit year
        actor: Recorded in the audit log
        locks: Lock registry serializing writes per month

    Returns:
        All ScheduleDate rows of the schedule, ascending by date

    Raises:
        InputError: If month/year is malformed or the group is unknown
    """
    validate_month_year(month, year)
    require_group(session, group_id)

    print(f"[INFO] Materializing {year}-{month:02d} for group {group_id}")
    with locks.for_month(group_id, month, year):
        try:
            schedule = ScheduleRepository.get_by_month(session, group_id, month, year)
            if schedule is None:
                schedule = ScheduleRepository.create(
                    session,
                    Schedule(group_id=group_id, month=month, year=year, status="draft"),
                    commit=False,
                )
            created = materialize_into(session, schedule)
            log_schedule_action(
                session, schedule.id, "materialize", {"created": len(created)}, actor=actor, commit=False
            )
            session.commit()
        except Exception:
            session.rollback()
            raise

    rows = ScheduleDateRepository.get_by_schedule(session, schedule.id)
    print(f"[OK] Schedule {schedule.id}: {len(created)} new dates, {len(rows)} total")
    return rows


def _schedule_or_error(session: Session, schedule_id: int) -> Schedule:
    schedule = ScheduleRepository.get_by_id(session, schedule_id)
    if schedule is None:
        raise InputError(f"Unknown schedule id {schedule_id}")
    return schedule


def add_schedule_date(
    session: Session,
    schedule_id: int,
    day: date,
    date_type: str = ASSIGNABLE,
    label: Optional[str] = None,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> ScheduleDate:
    """
    Add a one-off date to a schedule, outside any recurring event.

    for_everyone dates default to the label "Ensayo". The new date has no
    assignments; build or rebuild the schedule to fill it.

    Raises:
        InputError: If the schedule is unknown, the type is invalid, the date
            lies outside the schedule's month or already exists
    """
    if date_type not in DATE_TYPES:
        raise InputError(f"Invalid date type {date_type!r}, expected one of {', '.join(DATE_TYPES)}")
    schedule = _schedule_or_error(session, schedule_id)
    if (day.year, day.month) != (schedule.year, schedule.month):
        raise InputError(f"{day} is outside schedule {schedule.id} ({schedule.year}-{schedule.month:02d})")
    if date_type == FOR_EVERYONE and not label:
        label = "Ensayo"

    with locks.for_schedule(schedule.id):
        if day in ScheduleDateRepository.existing_dates(session, schedule.id):
            raise InputError(f"Schedule {schedule.id} already has {day}")
        try:
            row = ScheduleDate(
                schedule_id=schedule.id,
                date=day,
                snapshot=EventSnapshot(date_type, label, "00:00", "23:59"),
                recurring_event_id=None,
            )
            ScheduleDateRepository.bulk_create(session, [row], commit=False)
            log_schedule_action(
                session, schedule.id, "add_date", {"date": day.isoformat(), "type": date_type}, actor=actor, commit=False
            )
            session.commit()
        except Exception:
            session.rollback()
            raise

    print(f"[OK] Added {date_type} date {day} to schedule {schedule.id}")
    return row


def remove_schedule_date(
    session: Session,
    schedule_id: int,
    day: date,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> int:
    """
    Remove a date and its assignments from a schedule.

    A date generated by a recurring event comes back on the next full build.

    Returns:
        Number of assignments removed with the date

    Raises:
        InputError: If the schedule or the date is unknown
    """
    schedule = _schedule_or_error(session, schedule_id)
    with locks.for_schedule(schedule.id):
        row = ScheduleDateRepository.get_by_date(session, schedule.id, day)
        if row is None:
            raise InputError(f"Schedule {schedule.id} has no date {day}")
        try:
            removed = len(row.assignments)
            session.delete(row)
            log_schedule_action(
                session,
                schedule.id,
                "remove_date",
                {"date": day.isoformat(), "assignments": removed},
                actor=actor,
                commit=False,
            )
            session.commit()
        except Exception:
            session.rollback()
            raise

    print(f"[OK] Removed {day} from schedule {schedule.id} ({removed} assignments)")
    return removed
