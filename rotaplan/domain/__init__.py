"""Domain models and data access layer."""

from .models import (
    Assignment,
    Availability,
    Base,
    EventRolePriority,
    ExclusiveGroup,
    Group,
    Holiday,
    Member,
    RecurringEvent,
    Role,
    Schedule,
    ScheduleAuditLog,
    ScheduleDate,
    Weekday,
)
from .repositories import (
    AssignmentRepository,
    AuditLogRepository,
    GroupRepository,
    MemberRepository,
    PriorityRepository,
    RecurringEventRepository,
    RoleRepository,
    ScheduleDateRepository,
    ScheduleRepository,
    WeekdayRepository,
)
from .values import EventSnapshot

__all__ = [
    "Assignment",
    "Availability",
    "Base",
    "EventRolePriority",
    "EventSnapshot",
    "ExclusiveGroup",
    "Group",
    "Holiday",
    "Member",
    "RecurringEvent",
    "Role",
    "Schedule",
    "ScheduleAuditLog",
    "ScheduleDate",
    "Weekday",
    "AssignmentRepository",
    "AuditLogRepository",
    "GroupRepository",
    "MemberRepository",
    "PriorityRepository",
    "RecurringEventRepository",
    "RoleRepository",
    "ScheduleDateRepository",
    "ScheduleRepository",
    "WeekdayRepository",
]
