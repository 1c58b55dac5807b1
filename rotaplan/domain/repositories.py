"""Repository classes for data access."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .models import (
    Assignment,
    EventRolePriority,
    Group,
    Member,
    RecurringEvent,
    Role,
    Schedule,
    ScheduleAuditLog,
    ScheduleDate,
    Weekday,
)


class GroupRepository:
    """Repository for group data access."""

    @staticmethod
    def get_by_id(session: Session, group_id: int) -> Optional[Group]:
        return session.get(Group, group_id)

    @staticmethod
    def get_by_slug(session: Session, slug: str) -> Optional[Group]:
        return session.query(Group).filter(Group.slug == slug).first()

    @staticmethod
    def create(session: Session, group: Group) -> Group:
        session.add(group)
        session.commit()
        session.refresh(group)
        return group


class WeekdayRepository:
    """Repository for weekday reference rows."""

    @staticmethod
    def get_all(session: Session) -> List[Weekday]:
        return session.query(Weekday).order_by(Weekday.display_order).all()

    @staticmethod
    def get_by_name(session: Session, name: str) -> Optional[Weekday]:
        return session.query(Weekday).filter(Weekday.name == name).first()

    @staticmethod
    def name_by_id(session: Session) -> Dict[int, str]:
        return {w.id: w.name for w in session.query(Weekday).all()}


class RecurringEventRepository:
    """Repository for recurring event data access."""

    @staticmethod
    def get_by_id(session: Session, event_id: int) -> Optional[RecurringEvent]:
        return session.get(RecurringEvent, event_id)

    @staticmethod
    def get_by_group(session: Session, group_id: int, active_only: bool = False) -> List[RecurringEvent]:
        """Events of a group in ascending id order."""
        query = session.query(RecurringEvent).filter(RecurringEvent.group_id == group_id)
        if active_only:
            query = query.filter(RecurringEvent.active.is_(True))
        return query.order_by(RecurringEvent.id).all()

    @staticmethod
    def get_active_on_weekday(
        session: Session, group_id: int, weekday_id: int, exclude_id: Optional[int] = None
    ) -> List[RecurringEvent]:
        query = session.query(RecurringEvent).filter(
            RecurringEvent.group_id == group_id,
            RecurringEvent.weekday_id == weekday_id,
            RecurringEvent.active.is_(True),
        )
        if exclude_id is not None:
            query = query.filter(RecurringEvent.id != exclude_id)
        return query.all()

    @staticmethod
    def create(session: Session, recurring_event: RecurringEvent, commit: bool = True) -> RecurringEvent:
        session.add(recurring_event)
        if commit:
            session.commit()
            session.refresh(recurring_event)
        else:
            session.flush()
        return recurring_event


class RoleRepository:
    """Repository for role data access."""

    @staticmethod
    def get_by_id(session: Session, role_id: int) -> Optional[Role]:
        return session.get(Role, role_id)

    @staticmethod
    def get_by_group(session: Session, group_id: int) -> List[Role]:
        return (
            session.query(Role)
            .filter(Role.group_id == group_id)
            .order_by(Role.display_order, Role.id)
            .all()
        )

    @staticmethod
    def dependency_map(session: Session, group_id: int) -> Dict[int, Optional[int]]:
        """role_id -> depends_on_role_id for every role of a group."""
        rows = session.query(Role.id, Role.depends_on_role_id).filter(Role.group_id == group_id).all()
        return {role_id: depends_on for role_id, depends_on in rows}

    @staticmethod
    def create(session: Session, role: Role, commit: bool = True) -> Role:
        session.add(role)
        if commit:
            session.commit()
            session.refresh(role)
        else:
            session.flush()
        return role


class PriorityRepository:
    """Repository for per-event role priorities."""

    @staticmethod
    def get_for_events(session: Session, event_ids: Sequence[int]) -> Dict[int, Dict[int, int]]:
        """recurring_event_id -> {role_id: priority}."""
        if not event_ids:
            return {}
        result: Dict[int, Dict[int, int]] = {}
        rows = (
            session.query(EventRolePriority)
            .filter(EventRolePriority.recurring_event_id.in_(list(event_ids)))
            .all()
        )
        for row in rows:
            result.setdefault(row.recurring_event_id, {})[row.role_id] = row.priority
        return result

    @staticmethod
    def upsert(session: Session, event_id: int, role_id: int, priority: int) -> EventRolePriority:
        row = (
            session.query(EventRolePriority)
            .filter(
                EventRolePriority.recurring_event_id == event_id,
                EventRolePriority.role_id == role_id,
            )
            .first()
        )
        if row is None:
            row = EventRolePriority(recurring_event_id=event_id, role_id=role_id, priority=priority)
            session.add(row)
        else:
            row.priority = priority
        session.commit()
        return row


class MemberRepository:
    """Repository for member data access."""

    @staticmethod
    def get_by_id(session: Session, member_id: int) -> Optional[Member]:
        return session.get(Member, member_id)

    @staticmethod
    def get_by_group(session: Session, group_id: int) -> List[Member]:
        """Members with roles, availability and holidays eagerly loaded."""
        return (
            session.query(Member)
            .options(
                selectinload(Member.roles),
                selectinload(Member.availability),
                selectinload(Member.holidays),
            )
            .filter(Member.group_id == group_id)
            .order_by(Member.id)
            .all()
        )

    @staticmethod
    def bulk_create(session: Session, members: List[Member], commit: bool = True) -> None:
        session.add_all(members)
        if commit:
            session.commit()
        else:
            session.flush()


class ScheduleRepository:
    """Repository for schedule data access."""

    @staticmethod
    def get_by_id(session: Session, schedule_id: int) -> Optional[Schedule]:
        return session.get(Schedule, schedule_id)

    @staticmethod
    def get_by_month(session: Session, group_id: int, month: int, year: int) -> Optional[Schedule]:
        return (
            session.query(Schedule)
            .filter(Schedule.group_id == group_id, Schedule.month == month, Schedule.year == year)
            .first()
        )

    @staticmethod
    def get_committed(session: Session, group_id: int, exclude_id: Optional[int] = None) -> List[Schedule]:
        """Committed schedules of a group, most recent first."""
        query = session.query(Schedule).filter(
            Schedule.group_id == group_id, Schedule.status == "committed"
        )
        if exclude_id is not None:
            query = query.filter(Schedule.id != exclude_id)
        return query.order_by(Schedule.year.desc(), Schedule.month.desc()).all()

    @staticmethod
    def create(session: Session, schedule: Schedule, commit: bool = True) -> Schedule:
        session.add(schedule)
        if commit:
            session.commit()
            session.refresh(schedule)
        else:
            session.flush()
        return schedule


class ScheduleDateRepository:
    """Repository for schedule date data access."""

    @staticmethod
    def get_by_schedule(session: Session, schedule_id: int, assignable_only: bool = False) -> List[ScheduleDate]:
        query = session.query(ScheduleDate).filter(ScheduleDate.schedule_id == schedule_id)
        if assignable_only:
            query = query.filter(ScheduleDate.type == "assignable")
        return query.order_by(ScheduleDate.date).all()

    @staticmethod
    def get_by_date(session: Session, schedule_id: int, day: date) -> Optional[ScheduleDate]:
        return (
            session.query(ScheduleDate)
            .filter(ScheduleDate.schedule_id == schedule_id, ScheduleDate.date == day)
            .first()
        )

    @staticmethod
    def existing_dates(session: Session, schedule_id: int) -> set[date]:
        rows = session.query(ScheduleDate.date).filter(ScheduleDate.schedule_id == schedule_id).all()
        return {row[0] for row in rows}

    @staticmethod
    def get_by_event(
        session: Session, recurring_event_id: int, on_or_after: Optional[date] = None
    ) -> List[ScheduleDate]:
        query = session.query(ScheduleDate).filter(ScheduleDate.recurring_event_id == recurring_event_id)
        if on_or_after is not None:
            query = query.filter(ScheduleDate.date >= on_or_after)
        return query.order_by(ScheduleDate.schedule_id, ScheduleDate.date).all()

    @staticmethod
    def impact_rows(session: Session, recurring_event_id: int) -> List[Tuple[int, int, int]]:
        """One (schedule_id, month, year) row per schedule date referencing the event."""
        return (
            session.query(ScheduleDate.schedule_id, Schedule.month, Schedule.year)
            .join(Schedule, ScheduleDate.schedule_id == Schedule.id)
            .filter(ScheduleDate.recurring_event_id == recurring_event_id)
            .order_by(ScheduleDate.schedule_id, ScheduleDate.date)
            .all()
        )

    @staticmethod
    def bulk_create(session: Session, schedule_dates: List[ScheduleDate], commit: bool = True) -> None:
        session.add_all(schedule_dates)
        if commit:
            session.commit()
        else:
            session.flush()


class AssignmentRepository:
    """Repository for assignment data access."""

    @staticmethod
    def get_by_schedule(session: Session, schedule_id: int) -> List[Assignment]:
        return (
            session.query(Assignment)
            .join(ScheduleDate)
            .filter(ScheduleDate.schedule_id == schedule_id)
            .order_by(ScheduleDate.date, Assignment.role_id, Assignment.member_id)
            .all()
        )

    @staticmethod
    def get_by_schedule_dates(session: Session, schedule_date_ids: Iterable[int]) -> List[Assignment]:
        ids = list(schedule_date_ids)
        if not ids:
            return []
        return session.query(Assignment).filter(Assignment.schedule_date_id.in_(ids)).all()

    @staticmethod
    def counts_by_member(session: Session, schedule_ids: Sequence[int]) -> Dict[int, int]:
        """Assignment count per member across the given schedules."""
        if not schedule_ids:
            return {}
        rows = (
            session.query(Assignment.member_id, func.count(Assignment.id))
            .join(ScheduleDate)
            .filter(ScheduleDate.schedule_id.in_(list(schedule_ids)))
            .group_by(Assignment.member_id)
            .all()
        )
        return {member_id: int(count) for member_id, count in rows}

    @staticmethod
    def bulk_create(session: Session, assignments: List[Assignment], commit: bool = True) -> None:
        session.add_all(assignments)
        if commit:
            session.commit()
        else:
            session.flush()

    @staticmethod
    def delete_by_schedule_dates(session: Session, schedule_date_ids: Iterable[int], commit: bool = True) -> int:
        """Delete assignments of the given schedule dates. Returns number of deleted rows."""
        ids = list(schedule_date_ids)
        if not ids:
            return 0
        count = (
            session.query(Assignment)
            .filter(Assignment.schedule_date_id.in_(ids))
            .delete(synchronize_session="fetch")
        )
        if commit:
            session.commit()
        return count


class AuditLogRepository:
    """Repository for schedule audit entries."""

    @staticmethod
    def get_by_schedule(session: Session, schedule_id: int) -> List[ScheduleAuditLog]:
        return (
            session.query(ScheduleAuditLog)
            .filter(ScheduleAuditLog.schedule_id == schedule_id)
            .order_by(ScheduleAuditLog.id)
            .all()
        )

    @staticmethod
    def create(session: Session, entry: ScheduleAuditLog, commit: bool = True) -> ScheduleAuditLog:
        session.add(entry)
        if commit:
            session.commit()
        else:
            session.flush()
        return entry
