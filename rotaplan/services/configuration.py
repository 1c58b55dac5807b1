"""Configuration writes: recurring events, roles, priorities and audit entries."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from rotaplan.calendar import normalize_day_name
from rotaplan.config import SchedulerConfig
from rotaplan.domain.models import (
    EventRolePriority,
    RecurringEvent,
    Role,
    ScheduleAuditLog,
)
from rotaplan.domain.repositories import (
    AuditLogRepository,
    PriorityRepository,
    RecurringEventRepository,
    RoleRepository,
    ScheduleDateRepository,
    WeekdayRepository,
)
from rotaplan.domain.values import ASSIGNABLE, DATE_TYPES, FOR_EVERYONE
from rotaplan.errors import InputError

from .constraints import check_dependency_acyclic
from .loader import require_group
from .timeplan import parse_time_string

DEFAULT_ACTIVE_DAYS = {"Wednesday", "Friday", "Sunday"}
DEFAULT_LABEL = "Evento"


@dataclass(frozen=True)
class EventUpdate:
    """Outcome of an event edit; `needs_recalculation` drives the recalculator."""

    event: RecurringEvent
    weekday_changed: bool
    window_changed: bool
    type_changed: bool

    @property
    def needs_recalculation(self) -> bool:
        return self.weekday_changed or self.window_changed or self.type_changed


def _weekday_id(session: Session, day_name: str) -> int:
    weekday = WeekdayRepository.get_by_name(session, normalize_day_name(day_name))
    if weekday is None:
        raise InputError(f"Weekday {day_name!r} is not seeded; run init-db first")
    return weekday.id


def _check_event_fields(event_type: str, start: str, end: str) -> None:
    if event_type not in DATE_TYPES:
        raise InputError(f"Event type must be one of {DATE_TYPES}, got {event_type!r}")
    parse_time_string(start)
    parse_time_string(end)


def _check_weekday_free(session: Session, strict: bool, group_id: int, weekday_id: int,
                        exclude_id: Optional[int] = None) -> None:
    if not strict:
        return
    clash = RecurringEventRepository.get_active_on_weekday(session, group_id, weekday_id, exclude_id)
    if clash:
        raise InputError(
            f"Weekday already has active recurring event {clash[0].id} in group {group_id}"
        )


def seed_defaults(session: Session, group_id: int, cfg: Optional[SchedulerConfig] = None) -> int:
    """
    Ensure the group has a recurring event for every weekday.

    A group without events gets all seven, with Wednesday, Friday and Sunday
    active. Otherwise missing weekdays are added inactive. `for_everyone`
    events are always switched on so they show up in schedules.
    New events get the configured default window.

    Returns:
        Number of events created
    """
    cfg = cfg or SchedulerConfig()
    require_group(session, group_id)
    events = RecurringEventRepository.get_by_group(session, group_id)
    for e in events:
        if e.type == FOR_EVERYONE:
            e.active = True

    existing = {e.weekday_id for e in events}
    created = 0
    for weekday in WeekdayRepository.get_all(session):
        if weekday.id in existing:
            continue
        active = not events and weekday.name in DEFAULT_ACTIVE_DAYS
        session.add(
            RecurringEvent(
                group_id=group_id,
                weekday_id=weekday.id,
                active=active,
                type=ASSIGNABLE,
                label=DEFAULT_LABEL,
                start_time_utc=cfg.default_window.start,
                end_time_utc=cfg.default_window.end,
            )
        )
        created += 1
    session.commit()
    return created


def create_recurring_event(
    session: Session,
    group_id: int,
    day_name: str,
    event_type: str = ASSIGNABLE,
    label: Optional[str] = None,
    start_time_utc: Optional[str] = None,
    end_time_utc: Optional[str] = None,
    active: bool = True,
    strict_weekday: Optional[bool] = None,
    cfg: Optional[SchedulerConfig] = None,
) -> RecurringEvent:
    """
    Create a recurring event after validating its fields.

    Missing times come from `cfg.default_window`; `strict_weekday` defaults
    to `cfg.strict_weekday_events`.
    """
    cfg = cfg or SchedulerConfig()
    start_time_utc = start_time_utc or cfg.default_window.start
    end_time_utc = end_time_utc or cfg.default_window.end
    if strict_weekday is None:
        strict_weekday = cfg.strict_weekday_events
    require_group(session, group_id)
    _check_event_fields(event_type, start_time_utc, end_time_utc)
    weekday_id = _weekday_id(session, day_name)
    if active:
        _check_weekday_free(session, strict_weekday, group_id, weekday_id)
    return RecurringEventRepository.create(
        session,
        RecurringEvent(
            group_id=group_id,
            weekday_id=weekday_id,
            active=active,
            type=event_type,
            label=label,
            start_time_utc=start_time_utc,
            end_time_utc=end_time_utc,
        ),
    )


def update_recurring_event(
    session: Session,
    event_id: int,
    day_name: Optional[str] = None,
    event_type: Optional[str] = None,
    label: Optional[str] = None,
    start_time_utc: Optional[str] = None,
    end_time_utc: Optional[str] = None,
    active: Optional[bool] = None,
    strict_weekday: Optional[bool] = None,
    cfg: Optional[SchedulerConfig] = None,
) -> EventUpdate:
    """
    Edit a recurring event. Existing schedule dates keep their snapshot.

    Returns:
        EventUpdate telling the caller whether the recalculator should run
    """
    if strict_weekday is None:
        strict_weekday = (cfg or SchedulerConfig()).strict_weekday_events
    event = RecurringEventRepository.get_by_id(session, event_id)
    if event is None:
        raise InputError(f"Unknown recurring event id {event_id}")

    new_weekday = _weekday_id(session, day_name) if day_name is not None else event.weekday_id
    new_type = event_type if event_type is not None else event.type
    new_start = start_time_utc if start_time_utc is not None else event.start_time_utc
    new_end = end_time_utc if end_time_utc is not None else event.end_time_utc
    new_active = active if active is not None else event.active
    _check_event_fields(new_type, new_start, new_end)
    if new_active:
        _check_weekday_free(session, strict_weekday, event.group_id, new_weekday, exclude_id=event.id)

    result = EventUpdate(
        event=event,
        weekday_changed=new_weekday != event.weekday_id,
        window_changed=(new_start, new_end) != (event.start_time_utc, event.end_time_utc),
        type_changed=new_type != event.type,
    )
    event.weekday_id = new_weekday
    event.type = new_type
    event.start_time_utc = new_start
    event.end_time_utc = new_end
    event.active = new_active
    if label is not None:
        event.label = label
    session.commit()
    return result


def delete_recurring_event(session: Session, event_id: int, remove_schedule_dates: bool = False) -> int:
    """
    Delete a recurring event.

    Args:
        session: Database session
        event_id: Event to delete
        remove_schedule_dates: Also delete the schedule dates it generated
            (and their assignments). Otherwise their back-reference is cleared.

    Returns:
        Number of schedule dates removed
    """
    event = RecurringEventRepository.get_by_id(session, event_id)
    if event is None:
        raise InputError(f"Unknown recurring event id {event_id}")

    removed = 0
    for schedule_date in ScheduleDateRepository.get_by_event(session, event_id):
        if remove_schedule_dates:
            session.delete(schedule_date)
            removed += 1
        else:
            schedule_date.recurring_event_id = None
    session.flush()
    session.delete(event)
    session.commit()
    return removed


def create_role(
    session: Session,
    group_id: int,
    name: str,
    required_count: int = 1,
    display_order: int = 0,
    depends_on_role_id: Optional[int] = None,
    exclusive_group_id: Optional[int] = None,
    is_relevant: bool = False,
) -> Role:
    """Create a role, validating the depends-on link."""
    require_group(session, group_id)
    if required_count < 1:
        raise InputError(f"required_count must be >= 1, got {required_count}")
    if depends_on_role_id is not None:
        _check_anchor(session, group_id, None, depends_on_role_id)
    return RoleRepository.create(
        session,
        Role(
            group_id=group_id,
            name=name,
            required_count=required_count,
            display_order=display_order,
            depends_on_role_id=depends_on_role_id,
            exclusive_group_id=exclusive_group_id,
            is_relevant=is_relevant,
        ),
    )


def set_role_dependency(session: Session, role_id: int, depends_on_role_id: Optional[int]) -> Role:
    """Point a role at a new anchor (or clear it). Rejects cycles."""
    role = RoleRepository.get_by_id(session, role_id)
    if role is None:
        raise InputError(f"Unknown role id {role_id}")
    if depends_on_role_id is not None:
        _check_anchor(session, role.group_id, role.id, depends_on_role_id)
    role.depends_on_role_id = depends_on_role_id
    session.commit()
    return role


def _check_anchor(session: Session, group_id: int, role_id: Optional[int], anchor_id: int) -> None:
    anchor = RoleRepository.get_by_id(session, anchor_id)
    if anchor is None or anchor.group_id != group_id:
        raise InputError(f"Unknown role id {anchor_id} in group {group_id}")
    check_dependency_acyclic(RoleRepository.dependency_map(session, group_id), role_id, anchor_id)


def set_event_role_priority(session: Session, event_id: int, role_id: int, priority: int) -> EventRolePriority:
    event = RecurringEventRepository.get_by_id(session, event_id)
    if event is None:
        raise InputError(f"Unknown recurring event id {event_id}")
    role = RoleRepository.get_by_id(session, role_id)
    if role is None or role.group_id != event.group_id:
        raise InputError(f"Unknown role id {role_id} in group {event.group_id}")
    return PriorityRepository.upsert(session, event_id, role_id, int(priority))


def log_schedule_action(
    session: Session,
    schedule_id: int,
    action: str,
    detail: Any = None,
    actor: Optional[str] = None,
    commit: bool = True,
) -> ScheduleAuditLog:
    if detail is None or isinstance(detail, str):
        detail_str = detail
    else:
        detail_str = json.dumps(detail, default=str)
    return AuditLogRepository.create(
        session,
        ScheduleAuditLog(schedule_id=schedule_id, action=action, detail=detail_str, actor=actor),
        commit=commit,
    )


__all__ = [
    "EventUpdate",
    "seed_defaults",
    "create_recurring_event",
    "update_recurring_event",
    "delete_recurring_event",
    "create_role",
    "set_role_dependency",
    "set_event_role_priority",
    "log_schedule_action",
]
