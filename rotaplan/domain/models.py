"""SQLAlchemy models for group rotation schedules."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, composite, relationship

from .values import ASSIGNABLE, EventSnapshot


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


member_roles = Table(
    "member_roles",
    Base.metadata,
    Column("member_id", Integer, ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Group(Base):
    """A team whose members share roles and schedules."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, slug='{self.slug}')>"


class Weekday(Base):
    """Fixed weekday reference rows, Monday first."""

    __tablename__ = "weekdays"

    id = Column(Integer, primary_key=True)
    name = Column(String(20), nullable=False, unique=True)  # canonical English name
    local_name = Column(String(20), nullable=True)
    display_order = Column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Weekday(id={self.id}, name='{self.name}')>"


class RecurringEvent(Base):
    """Weekly template that generates dated occurrences."""

    __tablename__ = "recurring_events"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    weekday_id = Column(Integer, ForeignKey("weekdays.id"), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    type = Column(String(20), nullable=False, default=ASSIGNABLE)
    label = Column(String(200), nullable=True)
    start_time_utc = Column(String(5), nullable=False, default="00:00")
    end_time_utc = Column(String(5), nullable=False, default="23:59")

    weekday = relationship("Weekday")
    role_priorities = relationship(
        "EventRolePriority", back_populates="recurring_event", cascade="all, delete-orphan"
    )
    schedule_dates = relationship("ScheduleDate", back_populates="recurring_event", passive_deletes=True)

    def current_snapshot(self) -> EventSnapshot:
        return EventSnapshot(self.type, self.label, self.start_time_utc, self.end_time_utc)

    def __repr__(self) -> str:
        return f"<RecurringEvent(id={self.id}, weekday={self.weekday_id}, type='{self.type}', active={self.active})>"


class ExclusiveGroup(Base):
    """Set of roles of which a member may fill at most one per date."""

    __tablename__ = "exclusive_groups"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    roles = relationship("Role", back_populates="exclusive_group")


class Role(Base):
    """A role to be staffed on assignable dates."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    required_count = Column(Integer, nullable=False, default=1)
    display_order = Column(Integer, nullable=False, default=0)
    depends_on_role_id = Column(Integer, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    exclusive_group_id = Column(Integer, ForeignKey("exclusive_groups.id", ondelete="SET NULL"), nullable=True)
    is_relevant = Column(Boolean, nullable=False, default=False)  # display only

    depends_on = relationship("Role", remote_side=[id])
    exclusive_group = relationship("ExclusiveGroup", back_populates="roles")
    members = relationship("Member", secondary=member_roles, back_populates="roles")

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}', required={self.required_count})>"


class EventRolePriority(Base):
    """Per-event role priority; lower value is filled first."""

    __tablename__ = "event_role_priorities"

    id = Column(Integer, primary_key=True)
    recurring_event_id = Column(
        Integer, ForeignKey("recurring_events.id", ondelete="CASCADE"), nullable=False
    )
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    priority = Column(Integer, nullable=False, default=0)

    recurring_event = relationship("RecurringEvent", back_populates="role_priorities")
    role = relationship("Role")

    __table_args__ = (UniqueConstraint("recurring_event_id", "role_id", name="uq_event_role_priority"),)


class Member(Base):
    """A person who can be assigned to roles."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    roles = relationship("Role", secondary=member_roles, back_populates="members")
    availability = relationship("Availability", back_populates="member", cascade="all, delete-orphan")
    holidays = relationship("Holiday", back_populates="member", cascade="all, delete-orphan")
    assignments = relationship("Assignment", back_populates="member")

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, name='{self.name}')>"


class Availability(Base):
    """Weekly availability window of a member (UTC)."""

    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    weekday_id = Column(Integer, ForeignKey("weekdays.id"), nullable=False)
    start_time_utc = Column(String(5), nullable=False, default="00:00")
    end_time_utc = Column(String(5), nullable=False, default="23:59")

    member = relationship("Member", back_populates="availability")
    weekday = relationship("Weekday")


class Holiday(Base):
    """Inclusive date range during which a member cannot be assigned."""

    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)

    member = relationship("Member", back_populates="holidays")

    def __repr__(self) -> str:
        return f"<Holiday(member={self.member_id}, {self.start_date}..{self.end_date})>"


class Schedule(Base):
    """Monthly schedule of a group."""

    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="draft")  # draft, committed
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    dates = relationship(
        "ScheduleDate",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="ScheduleDate.date",
    )

    __table_args__ = (UniqueConstraint("group_id", "month", "year", name="uq_schedule_group_month"),)

    def __repr__(self) -> str:
        return f"<Schedule(id={self.id}, {self.year}-{self.month:02d}, status='{self.status}')>"


class ScheduleDate(Base):
    """One concrete date of a schedule with a snapshot of its generating event."""

    __tablename__ = "schedule_dates"

    id = Column(Integer, primary_key=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    type = Column(String(20), nullable=False, default=ASSIGNABLE)
    label = Column(String(200), nullable=True)
    start_time_utc = Column(String(5), nullable=False, default="00:00")
    end_time_utc = Column(String(5), nullable=False, default="23:59")
    recurring_event_id = Column(
        Integer, ForeignKey("recurring_events.id", ondelete="SET NULL"), nullable=True, index=True
    )
    note = Column(Text, nullable=True)

    snapshot = composite(EventSnapshot, type, label, start_time_utc, end_time_utc)

    schedule = relationship("Schedule", back_populates="dates")
    recurring_event = relationship("RecurringEvent", back_populates="schedule_dates")
    assignments = relationship("Assignment", back_populates="schedule_date", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint("schedule_id", "date", name="uq_schedule_date"),)

    def __repr__(self) -> str:
        return f"<ScheduleDate(id={self.id}, date={self.date}, type='{self.type}')>"


class Assignment(Base):
    """Member filling a role on a schedule date."""

    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_date_id = Column(
        Integer, ForeignKey("schedule_dates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)

    schedule_date = relationship("ScheduleDate", back_populates="assignments")
    role = relationship("Role")
    member = relationship("Member", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("schedule_date_id", "role_id", "member_id", name="uq_assignment"),
    )

    def __repr__(self) -> str:
        return f"<Assignment(id={self.id}, date={self.schedule_date_id}, role={self.role_id}, member={self.member_id})>"


class ScheduleAuditLog(Base):
    """Record of generation actions performed on a schedule."""

    __tablename__ = "schedule_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    actor = Column(String(200), nullable=True)
    action = Column(String(50), nullable=False)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
