"""Read-only reports on existing schedule data."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from rotaplan.domain.repositories import (
    AssignmentRepository,
    MemberRepository,
    RecurringEventRepository,
    ScheduleDateRepository,
    ScheduleRepository,
)
from rotaplan.errors import InputError


@dataclass(frozen=True)
class ScheduleImpact:
    schedule_id: int
    month: int
    year: int
    date_count: int


@dataclass(frozen=True)
class ImpactSummary:
    count: int
    schedules: List[ScheduleImpact] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "count": self.count,
            "schedules": [
                {
                    "scheduleId": s.schedule_id,
                    "month": s.month,
                    "year": s.year,
                    "dateCount": s.date_count,
                }
                for s in self.schedules
            ],
        }


def aggregate_affected_schedule_dates(rows: Iterable[Tuple[int, int, int]]) -> ImpactSummary:
    """Fold (schedule_id, month, year) rows, one per schedule date, into a summary."""
    by_schedule: Dict[int, List[int]] = {}
    for schedule_id, month, year in rows:
        entry = by_schedule.setdefault(schedule_id, [month, year, 0])
        entry[2] += 1
    schedules = [
        ScheduleImpact(schedule_id=sid, month=m, year=y, date_count=n)
        for sid, (m, y, n) in by_schedule.items()
    ]
    return ImpactSummary(count=sum(s.date_count for s in schedules), schedules=schedules)


def affected_schedule_dates(
    session: Session, recurring_event_id: int, group_id: Optional[int] = None
) -> ImpactSummary:
    """
    How many schedule dates reference a recurring event, per schedule.

    Args:
        session: Database session
        recurring_event_id: Event about to be deleted or edited
        group_id: When given, the event must belong to this group

    Raises:
        InputError: If the event is unknown (or in another group)
    """
    event = RecurringEventRepository.get_by_id(session, recurring_event_id)
    if event is None or (group_id is not None and event.group_id != group_id):
        raise InputError(f"Unknown recurring event id {recurring_event_id}")
    return aggregate_affected_schedule_dates(ScheduleDateRepository.impact_rows(session, recurring_event_id))


@dataclass(frozen=True)
class HolidayConflict:
    date: date
    member_id: int
    member_name: str
    role_id: int


def holiday_conflicts(session: Session, schedule_id: int) -> List[HolidayConflict]:
    """Existing assignments whose member is on holiday on that date."""
    schedule = ScheduleRepository.get_by_id(session, schedule_id)
    if schedule is None:
        raise InputError(f"Unknown schedule id {schedule_id}")

    members = {m.id: m for m in MemberRepository.get_by_group(session, schedule.group_id)}
    conflicts: List[HolidayConflict] = []
    for assignment in AssignmentRepository.get_by_schedule(session, schedule_id):
        member = members.get(assignment.member_id)
        if member is None:
            continue
        day = assignment.schedule_date.date
        if any(h.start_date <= day <= h.end_date for h in member.holidays):
            conflicts.append(
                HolidayConflict(date=day, member_id=member.id, member_name=member.name, role_id=assignment.role_id)
            )
    return conflicts
