"""Immutable values exchanged between the loader, the engine and the repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Tuple

ASSIGNABLE = "assignable"
FOR_EVERYONE = "for_everyone"
DATE_TYPES = (ASSIGNABLE, FOR_EVERYONE)

UNDERSTAFFED = "understaffed"
DEPENDENCY_CYCLE = "dependency_cycle"
EXCLUSIVE_CONFLICT = "exclusive_conflict"
UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class EventSnapshot:
    """
    Copy of a recurring event's type, label and UTC window taken when a
    schedule date is materialized. Only the recalculator refreshes it.
    """

    type: str
    label: Optional[str]
    start_time_utc: str
    end_time_utc: str

    @property
    def window(self) -> Tuple[str, str]:
        return (self.start_time_utc, self.end_time_utc)

    @property
    def is_assignable(self) -> bool:
        return self.type == ASSIGNABLE


@dataclass(frozen=True)
class HolidayRange:
    start: date
    end: date

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class MemberProfile:
    id: int
    name: str
    role_ids: FrozenSet[int]
    # canonical weekday name -> [(start, end), ...]
    availability: Dict[str, Tuple[Tuple[str, str], ...]] = field(default_factory=dict)
    holidays: Tuple[HolidayRange, ...] = ()


@dataclass(frozen=True)
class RoleSpec:
    id: int
    name: str
    required_count: int = 1
    display_order: int = 0
    depends_on_role_id: Optional[int] = None
    exclusive_group_id: Optional[int] = None


@dataclass(frozen=True)
class DateSlot:
    """One assignable schedule date as seen by the assigner."""

    date: date
    weekday: str
    snapshot: EventSnapshot
    schedule_date_id: Optional[int] = None
    recurring_event_id: Optional[int] = None

    @property
    def iso(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class PlannedAssignment:
    date: date
    role_id: int
    member_id: int
    schedule_date_id: Optional[int] = None


@dataclass(frozen=True)
class UnfilledSlot:
    date: date
    role_id: int
    missing: int
    reason: str = UNDERSTAFFED


@dataclass
class BuildResult:
    assignments: List[PlannedAssignment] = field(default_factory=list)
    unfilled: List[UnfilledSlot] = field(default_factory=list)
    counts: Dict[int, int] = field(default_factory=dict)

    def extend(self, other: "BuildResult") -> None:
        self.assignments.extend(other.assignments)
        self.unfilled.extend(other.unfilled)
        self.counts = dict(other.counts)
