from __future__ import annotations

from typing import Iterable, List, Sequence

import pandas as pd
from sqlalchemy.orm import Session

from rotaplan.domain.repositories import AssignmentRepository, ScheduleRepository
from rotaplan.domain.values import BuildResult, PlannedAssignment, RoleSpec, UnfilledSlot
from rotaplan.errors import ConsistencyViolation, InputError
from rotaplan.services.constraints import validate_assignment_constraints
from rotaplan.services.impact import HolidayConflict, holiday_conflicts
from rotaplan.services.loader import load_group_config
from rotaplan.services.scoring import fairness_spread

ASSIGNMENT_COLUMNS = ["date", "label", "role_id", "role", "member_id", "member"]


def validate_assignments(result: BuildResult | Iterable[PlannedAssignment], roles: Sequence[RoleSpec]) -> None:
    """Raise ConsistencyViolation if any per-date invariant is broken."""
    assignments = result.assignments if isinstance(result, BuildResult) else list(result)
    validate_assignment_constraints(assignments, roles)


def validate_schedule(session: Session, schedule_id: int) -> List[HolidayConflict]:
    """
    Check the persisted assignments of a schedule.

    Hard invariants raise. Holiday conflicts (a holiday added after the build)
    are returned for a human to resolve.
    """
    schedule = ScheduleRepository.get_by_id(session, schedule_id)
    if schedule is None:
        raise InputError(f"Unknown schedule id {schedule_id}")
    group = load_group_config(session, schedule.group_id)
    planned = [
        PlannedAssignment(
            date=a.schedule_date.date,
            role_id=a.role_id,
            member_id=a.member_id,
            schedule_date_id=a.schedule_date_id,
        )
        for a in AssignmentRepository.get_by_schedule(session, schedule_id)
    ]
    validate_assignment_constraints(planned, group.roles)

    member_ids = {m.id for m in group.members}
    unknown = {p.member_id for p in planned} - member_ids
    if unknown:
        raise ConsistencyViolation(f"Assignments reference members outside the group: {sorted(unknown)}")
    return holiday_conflicts(session, schedule_id)


def assignments_frame(session: Session, schedule_id: int) -> pd.DataFrame:
    """Persisted assignments of a schedule as a DataFrame, ordered by date."""
    rows = [
        {
            "date": a.schedule_date.date.isoformat(),
            "label": a.schedule_date.label,
            "role_id": a.role_id,
            "role": a.role.name,
            "member_id": a.member_id,
            "member": a.member.name,
        }
        for a in AssignmentRepository.get_by_schedule(session, schedule_id)
    ]
    return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)


def unfilled_frame(unfilled: Iterable[UnfilledSlot]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"date": u.date.isoformat(), "role_id": u.role_id, "missing": u.missing, "reason": u.reason} for u in unfilled],
        columns=["date", "role_id", "missing", "reason"],
    )


def summarize_assignments(assignments_df: pd.DataFrame) -> str:
    if assignments_df.empty:
        return "No assignments."

    coverage = assignments_df.groupby(["date", "role"]).size().unstack(fill_value=0)
    load = assignments_df.groupby("member").size().sort_values(ascending=False)
    spread = fairness_spread(assignments_df.groupby("member_id").size().to_dict())

    lines = ["Coverage per date per role:"]
    lines.append(coverage.to_string())
    lines.append("")
    lines.append("Assignments per member:")
    lines.append(load.to_string())
    lines.append("")
    lines.append(f"Fairness spread (max - min): {spread}")
    return "\n".join(lines)


__all__ = [
    "validate_assignments",
    "validate_schedule",
    "assignments_frame",
    "unfilled_frame",
    "summarize_assignments",
    "fairness_spread",
    "holiday_conflicts",
]
