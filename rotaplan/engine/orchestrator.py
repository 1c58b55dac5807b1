"""Schedule builder - runs the assigner across all dates of a schedule."""

from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from rotaplan.config import SchedulerConfig
from rotaplan.domain.models import Assignment, ScheduleDate
from rotaplan.domain.repositories import AssignmentRepository, ScheduleDateRepository, ScheduleRepository
from rotaplan.domain.values import UNRESOLVED, BuildResult, DateSlot, PlannedAssignment, UnfilledSlot
from rotaplan.errors import ConsistencyViolation, InputError
from rotaplan.services.configuration import log_schedule_action
from rotaplan.services.constraints import validate_assignment_constraints
from rotaplan.services.loader import GroupConfig, historical_counts, load_group_config, slot_for
from rotaplan.services.requirements import build_requirements_for_event
from rotaplan.services.scoring import FairnessTally

from .base import BaseAssigner
from .cp_sat import CPSatAssigner
from .locks import ScheduleLocks, default_locks
from .materializer import materialize_into
from .rotation import RotationAssigner


def make_assigner(cfg: Optional[SchedulerConfig] = None) -> BaseAssigner:
    """Assigner selected by `cfg.assigner`."""
    cfg = cfg or SchedulerConfig()
    if cfg.assigner == "cp_sat":
        return CPSatAssigner(
            max_time_in_seconds=cfg.cp_sat.max_time_in_seconds,
            num_search_workers=cfg.cp_sat.num_search_workers,
        )
    return RotationAssigner()


def seed_tally(
    session: Session, group_id: int, schedule_id: Optional[int], cfg: Optional[SchedulerConfig] = None
) -> FairnessTally:
    """
    Starting fairness counter for a build.

    With `fairness.seed_from_history` off the counter starts empty, so the
    rotation is only fair within the month being built. Only committed
    schedules of earlier months are counted.
    """
    cfg = cfg or SchedulerConfig()
    if not cfg.fairness.seed_from_history:
        return FairnessTally()
    schedule = ScheduleRepository.get_by_id(session, schedule_id) if schedule_id is not None else None
    before = (schedule.year, schedule.month) if schedule is not None else None
    return FairnessTally(
        historical_counts(
            session,
            group_id,
            exclude_schedule_id=schedule_id,
            limit=cfg.fairness.history_limit,
            before=before,
        )
    )


class ScheduleBuilder:
    """
    Runs one assigner over schedule dates in chronological order.

    The fairness tally is passed in and a copy is threaded through the run,
    so the caller's counter is never mutated and a build can be replayed from
    the same starting snapshot.
    """

    def __init__(self, assigner: BaseAssigner | None = None):
        self.assigner = assigner or RotationAssigner()

    def build(
        self,
        slots: Iterable[DateSlot],
        group: GroupConfig,
        tally: FairnessTally | None = None,
        fixed: Optional[Dict[dt.date, Sequence[PlannedAssignment]]] = None,
    ) -> BuildResult:
        """
        Assign every assignable slot.

        Args:
            slots: Schedule dates (any order; for_everyone dates are skipped)
            group: Roles, members and priorities of the group
            tally: Starting fairness counter (empty when None)
            fixed: Assignments kept per date; only the remaining gaps are filled

        Returns:
            BuildResult with assignments, unfilled slots and final counts
        """
        running = tally.copy() if tally is not None else FairnessTally()
        fixed = fixed or {}
        result = BuildResult()

        for slot in sorted(slots, key=lambda s: s.date):
            if not slot.snapshot.is_assignable:
                continue
            roles = build_requirements_for_event(
                group.roles, group.priorities_for(slot.recurring_event_id), group.cyclic_roles
            )
            held = list(fixed.get(slot.date, ()))
            trial = running.copy()
            try:
                day = self.assigner.assign_date(slot, roles, group.members, trial, group.cyclic_roles, held)
            except ConsistencyViolation as e:
                print(f"[WARN] {slot.iso}: {e}")
                for r in roles:
                    missing = r.required_count - sum(1 for a in held if a.role_id == r.id)
                    if missing > 0:
                        result.unfilled.append(UnfilledSlot(slot.date, r.id, missing, UNRESOLVED))
                continue
            running = trial
            result.assignments.extend(day.assignments)
            result.unfilled.extend(day.unfilled)

        kept = [a for held in fixed.values() for a in held]
        validate_assignment_constraints(kept + result.assignments, group.roles)
        result.counts = running.snapshot()
        return result


def build_schedule(
    slots: Iterable[DateSlot],
    group: GroupConfig,
    tally: FairnessTally | None = None,
    assigner: BaseAssigner | None = None,
    fixed: Optional[Dict[dt.date, Sequence[PlannedAssignment]]] = None,
) -> BuildResult:
    """Convenience wrapper around ScheduleBuilder.build."""
    return ScheduleBuilder(assigner).build(slots, group, tally, fixed)


def replace_assignments(session: Session, rows: List[ScheduleDate], result: BuildResult) -> int:
    """
    Swap the assignments of `rows` for the ones in `result`. Flushes only.

    Returns:
        Number of assignments written
    """
    deleted = AssignmentRepository.delete_by_schedule_dates(session, [r.id for r in rows], commit=False)
    if deleted > 0:
        print(f"[INFO] Deleted {deleted} existing assignments")
    new_rows = [
        Assignment(schedule_date_id=a.schedule_date_id, role_id=a.role_id, member_id=a.member_id)
        for a in result.assignments
    ]
    AssignmentRepository.bulk_create(session, new_rows, commit=False)
    return len(new_rows)


def build_assignments(
    session: Session,
    schedule_id: int,
    cfg: Optional[SchedulerConfig] = None,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> BuildResult:
    """
    Materialize missing dates, then (re)build every assignment of a schedule.

    All writes for the schedule are one transaction: on any error nothing is
    kept and the exception propagates.

    Args:
        session: Database session
        schedule_id: Schedule to build
        cfg: SchedulerConfig (assigner and fairness policy)
        actor: Recorded in the audit log
        locks: Lock registry serializing builds per schedule

    Returns:
        BuildResult; unfilled slots are data, not errors

    Raises:
        InputError: If the schedule does not exist
    """
    schedule = ScheduleRepository.get_by_id(session, schedule_id)
    if schedule is None:
        raise InputError(f"Unknown schedule id {schedule_id}")
    cfg = cfg or SchedulerConfig()
    assigner = make_assigner(cfg)

    print(f"[INFO] Building schedule {schedule.id} ({schedule.year}-{schedule.month:02d}) with {assigner.get_name()}")
    with locks.for_month(schedule.group_id, schedule.month, schedule.year), locks.for_schedule(schedule.id):
        try:
            materialize_into(session, schedule)
            group = load_group_config(session, schedule.group_id)
            tally = seed_tally(session, schedule.group_id, schedule.id, cfg)
            rows = ScheduleDateRepository.get_by_schedule(session, schedule.id)

            result = ScheduleBuilder(assigner).build([slot_for(r) for r in rows], group, tally)
            written = replace_assignments(session, rows, result)
            log_schedule_action(
                session,
                schedule.id,
                "build",
                {"assignments": written, "unfilled": len(result.unfilled), "assigner": assigner.get_name()},
                actor=actor,
                commit=False,
            )
            session.commit()
        except Exception as e:
            session.rollback()
            print(f"[ERROR] Build of schedule {schedule_id} failed: {e}")
            raise

    print(f"[OK] Persisted {written} assignments, {len(result.unfilled)} unfilled slots")
    return result
