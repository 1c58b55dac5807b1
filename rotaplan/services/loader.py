"""Load group configuration from the database as immutable engine inputs."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy.orm import Session

from rotaplan.calendar import day_name_for
from rotaplan.domain.models import ScheduleDate
from rotaplan.domain.repositories import (
    AssignmentRepository,
    GroupRepository,
    MemberRepository,
    PriorityRepository,
    RecurringEventRepository,
    RoleRepository,
    ScheduleRepository,
    WeekdayRepository,
)
from rotaplan.domain.values import DateSlot, HolidayRange, MemberProfile, RoleSpec
from rotaplan.errors import InputError

from .constraints import find_dependency_cycles


@dataclass(frozen=True)
class GroupConfig:
    """Everything the assigner needs about one group."""

    group_id: int
    roles: Tuple[RoleSpec, ...]
    members: Tuple[MemberProfile, ...]
    # recurring_event_id -> {role_id: priority}
    priorities: Dict[int, Dict[int, int]] = field(default_factory=dict)
    cyclic_roles: FrozenSet[int] = frozenset()

    def priorities_for(self, recurring_event_id: Optional[int]) -> Dict[int, int]:
        if recurring_event_id is None:
            return {}
        return self.priorities.get(recurring_event_id, {})


def require_group(session: Session, group_id: int):
    group = GroupRepository.get_by_id(session, group_id)
    if group is None:
        raise InputError(f"Unknown group id {group_id}")
    return group


def load_group_config(session: Session, group_id: int) -> GroupConfig:
    """
    Load roles, members and per-event priorities of a group.

    Args:
        session: Database session
        group_id: Group to load

    Returns:
        GroupConfig with plain values detached from the session

    Raises:
        InputError: If the group does not exist
    """
    require_group(session, group_id)
    weekday_names = WeekdayRepository.name_by_id(session)

    roles = tuple(
        RoleSpec(
            id=r.id,
            name=r.name,
            required_count=r.required_count,
            display_order=r.display_order,
            depends_on_role_id=r.depends_on_role_id,
            exclusive_group_id=r.exclusive_group_id,
        )
        for r in RoleRepository.get_by_group(session, group_id)
    )

    members: List[MemberProfile] = []
    for m in MemberRepository.get_by_group(session, group_id):
        by_day: Dict[str, List[Tuple[str, str]]] = defaultdict(list)
        for a in m.availability:
            by_day[weekday_names[a.weekday_id]].append((a.start_time_utc, a.end_time_utc))
        members.append(
            MemberProfile(
                id=m.id,
                name=m.name,
                role_ids=frozenset(r.id for r in m.roles),
                availability={day: tuple(windows) for day, windows in by_day.items()},
                holidays=tuple(HolidayRange(h.start_date, h.end_date) for h in m.holidays),
            )
        )

    event_ids = [e.id for e in RecurringEventRepository.get_by_group(session, group_id)]
    dependency_map = {r.id: r.depends_on_role_id for r in roles}

    return GroupConfig(
        group_id=group_id,
        roles=roles,
        members=tuple(members),
        priorities=PriorityRepository.get_for_events(session, event_ids),
        cyclic_roles=frozenset(find_dependency_cycles(dependency_map)),
    )


def slot_for(schedule_date: ScheduleDate) -> DateSlot:
    """Engine view of a persisted schedule date."""
    return DateSlot(
        date=schedule_date.date,
        weekday=day_name_for(schedule_date.date),
        snapshot=schedule_date.snapshot,
        schedule_date_id=schedule_date.id,
        recurring_event_id=schedule_date.recurring_event_id,
    )


def historical_counts(
    session: Session,
    group_id: int,
    exclude_schedule_id: Optional[int] = None,
    limit: Optional[int] = None,
    before: Optional[Tuple[int, int]] = None,
) -> Dict[int, int]:
    """
    Assignment counts per member across the group's committed schedules.

    Args:
        session: Database session
        group_id: Group id
        exclude_schedule_id: Schedule being built (never counted)
        limit: Only the N most recent committed schedules
        before: (year, month); only schedules of earlier months are counted

    Returns:
        member_id -> count
    """
    committed = ScheduleRepository.get_committed(session, group_id, exclude_id=exclude_schedule_id)
    if before is not None:
        committed = [s for s in committed if (s.year, s.month) < tuple(before)]
    if limit is not None:
        committed = committed[:limit]
    return AssignmentRepository.counts_by_member(session, [s.id for s in committed])
