"""Rebuild - regenerate the future part of an existing schedule."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from rotaplan.calendar import as_date
from rotaplan.config import SchedulerConfig
from rotaplan.domain.models import Assignment, Schedule, ScheduleDate
from rotaplan.domain.repositories import AssignmentRepository, ScheduleDateRepository, ScheduleRepository
from rotaplan.domain.values import BuildResult, PlannedAssignment
from rotaplan.errors import InputError
from rotaplan.services.configuration import log_schedule_action
from rotaplan.services.loader import load_group_config, slot_for

from .locks import ScheduleLocks, default_locks
from .orchestrator import ScheduleBuilder, make_assigner, replace_assignments, seed_tally

OVERWRITE = "overwrite"
FILL_EMPTY = "fill_empty"
REBUILD_MODES = (OVERWRITE, FILL_EMPTY)


@dataclass
class RebuildPlan:
    """What a rebuild did, or would do on a dry run."""

    mode: str
    cutoff: date
    result: BuildResult = field(default_factory=BuildResult)
    removed_count: int = 0
    kept_count: int = 0
    dates: int = 0

    @property
    def added(self) -> int:
        return len(self.result.assignments)

    def to_dict(self) -> Dict:
        return {
            "mode": self.mode,
            "dates": self.dates,
            "removedCount": self.removed_count,
            "keptCount": self.kept_count,
            "added": self.added,
            "unfilled": len(self.result.unfilled),
        }


def plan_rebuild(
    session: Session,
    schedule: Schedule,
    mode: str,
    cutoff: date,
    cfg: SchedulerConfig,
) -> tuple[RebuildPlan, List[ScheduleDate]]:
    """
    Compute the new assignments of the assignable dates on or after `cutoff`.

    Assignments before the cutoff are kept and feed the fairness counter. In
    fill_empty mode the existing future assignments are kept as well, count
    toward each role's required count and feed the counter too.

    Returns:
        (plan, future rows)
    """
    if mode not in REBUILD_MODES:
        raise InputError(f"Unknown rebuild mode {mode!r}, expected one of {', '.join(REBUILD_MODES)}")

    rows = ScheduleDateRepository.get_by_schedule(session, schedule.id)
    future = [r for r in rows if r.snapshot.is_assignable and r.date >= cutoff]
    if not future:
        raise InputError(f"Schedule {schedule.id} has no assignable dates on or after {cutoff}")

    future_ids = {r.id for r in future}
    past_ids = [r.id for r in rows if r.id not in future_ids]
    past = Counter(a.member_id for a in AssignmentRepository.get_by_schedule_dates(session, past_ids))
    existing = AssignmentRepository.get_by_schedule_dates(session, future_ids)

    tally = seed_tally(session, schedule.group_id, schedule.id, cfg).merge(past)
    plan = RebuildPlan(mode=mode, cutoff=cutoff, dates=len(future))
    fixed: Dict[date, List[PlannedAssignment]] = defaultdict(list)
    if mode == FILL_EMPTY:
        by_id = {r.id: r for r in future}
        for a in existing:
            row = by_id[a.schedule_date_id]
            fixed[row.date].append(
                PlannedAssignment(date=row.date, role_id=a.role_id, member_id=a.member_id, schedule_date_id=row.id)
            )
        tally = tally.merge(Counter(a.member_id for a in existing))
        plan.kept_count = len(existing)
    else:
        plan.removed_count = len(existing)

    group = load_group_config(session, schedule.group_id)
    plan.result = ScheduleBuilder(make_assigner(cfg)).build([slot_for(r) for r in future], group, tally, fixed)
    return plan, future


def rebuild_schedule(
    session: Session,
    schedule_id: int,
    mode: str = OVERWRITE,
    today: date | str | None = None,
    cfg: Optional[SchedulerConfig] = None,
    dry_run: bool = False,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> RebuildPlan:
    """
    Regenerate the future assignments of one schedule.

    overwrite discards every assignment on or after `today` and builds the
    dates again. fill_empty keeps them and only fills the remaining gaps.
    Past dates are never touched. A dry run computes the same plan and
    writes nothing.

    Args:
        session: Database session
        schedule_id: Schedule to rebuild
        mode: "overwrite" or "fill_empty"
        today: Cutoff date (default: date.today())
        cfg: SchedulerConfig (assigner and fairness policy)
        dry_run: Preview only
        actor: Recorded in the audit log
        locks: Lock registry serializing writes per schedule

    Returns:
        RebuildPlan

    Raises:
        InputError: If the schedule or mode is unknown, or no assignable
            date is left on or after the cutoff
    """
    cutoff = as_date(today)
    cfg = cfg or SchedulerConfig()
    schedule = ScheduleRepository.get_by_id(session, schedule_id)
    if schedule is None:
        raise InputError(f"Unknown schedule id {schedule_id}")

    with locks.for_schedule(schedule.id):
        if dry_run:
            plan, _ = plan_rebuild(session, schedule, mode, cutoff, cfg)
            print(f"[INFO] Dry run of {mode} rebuild for schedule {schedule.id}: {plan.to_dict()}")
            return plan

        try:
            plan, future = plan_rebuild(session, schedule, mode, cutoff, cfg)
            if mode == OVERWRITE:
                replace_assignments(session, future, plan.result)
            else:
                AssignmentRepository.bulk_create(
                    session,
                    [
                        Assignment(schedule_date_id=a.schedule_date_id, role_id=a.role_id, member_id=a.member_id)
                        for a in plan.result.assignments
                    ],
                    commit=False,
                )
            log_schedule_action(
                session,
                schedule.id,
                "rebuild",
                {"mode": mode, "removedCount": plan.removed_count, "added": plan.added},
                actor=actor,
                commit=False,
            )
            session.commit()
        except Exception as e:
            session.rollback()
            print(f"[ERROR] Rebuild of schedule {schedule_id} failed: {e}")
            raise

    print(f"[OK] Rebuilt schedule {schedule.id} ({mode}): {plan.removed_count} removed, {plan.added} added")
    return plan
