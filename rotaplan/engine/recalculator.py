"""Recalculator - rebuilds future assignments after a recurring event changes."""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from rotaplan.calendar import as_date
from rotaplan.config import SchedulerConfig
from rotaplan.domain.repositories import (
    AssignmentRepository,
    RecurringEventRepository,
    ScheduleDateRepository,
    ScheduleRepository,
)
from rotaplan.domain.values import ASSIGNABLE, EventSnapshot
from rotaplan.errors import InputError, PartialRecalculationFailure
from rotaplan.services.configuration import log_schedule_action
from rotaplan.services.loader import load_group_config, slot_for

from .locks import ScheduleLocks, default_locks
from .orchestrator import ScheduleBuilder, make_assigner, replace_assignments, seed_tally


@dataclass
class RecalculationResult:
    """Outcome of a multi-schedule recalculation. Successes are kept even when some schedules fail."""

    schedules_updated: int = 0
    assignments_applied: int = 0
    failures: List[int] = field(default_factory=list)
    per_schedule: Dict[int, int] = field(default_factory=dict)
    messages: Dict[int, str] = field(default_factory=dict)

    @property
    def error(self) -> Optional[PartialRecalculationFailure]:
        if not self.failures:
            return None
        return PartialRecalculationFailure(self.failures, self.messages)

    def raise_for_failures(self) -> None:
        error = self.error
        if error is not None:
            raise error

    def to_dict(self) -> Dict:
        return {
            "schedulesUpdated": self.schedules_updated,
            "assignmentsApplied": self.assignments_applied,
            "failures": list(self.failures),
        }


def recalculate_schedule(
    session: Session,
    schedule_id: int,
    recurring_event_id: int,
    snapshot: EventSnapshot,
    today: date,
    cfg: Optional[SchedulerConfig] = None,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> int:
    """
    Rebuild one schedule's future dates of one event, as a single transaction.

    In-scope rows reference the event, fall on or after `today` and are
    assignable before or after the change. Their snapshot is refreshed to
    `snapshot`, their assignments are discarded and rebuilt. The fairness
    counter starts from history plus the schedule's other assignments.

    Returns:
        Number of assignments applied
    """
    cfg = cfg or SchedulerConfig()
    with locks.for_schedule(schedule_id):
        try:
            schedule = ScheduleRepository.get_by_id(session, schedule_id)
            if schedule is None:
                raise InputError(f"Unknown schedule id {schedule_id}")

            rows = [
                r
                for r in ScheduleDateRepository.get_by_event(session, recurring_event_id, on_or_after=today)
                if r.schedule_id == schedule_id and ASSIGNABLE in (r.type, snapshot.type)
            ]
            for row in rows:
                row.snapshot = snapshot
            session.flush()

            in_scope = {r.id for r in rows}
            others = [r.id for r in ScheduleDateRepository.get_by_schedule(session, schedule_id) if r.id not in in_scope]
            kept = Counter(a.member_id for a in AssignmentRepository.get_by_schedule_dates(session, others))

            group = load_group_config(session, schedule.group_id)
            tally = seed_tally(session, schedule.group_id, schedule_id, cfg).merge(kept)
            result = ScheduleBuilder(make_assigner(cfg)).build([slot_for(r) for r in rows], group, tally)

            applied = replace_assignments(session, rows, result)
            log_schedule_action(
                session,
                schedule_id,
                "recalculate",
                {"recurring_event_id": recurring_event_id, "dates": len(rows), "assignments": applied},
                actor=actor,
                commit=False,
            )
            session.commit()
            return applied
        except Exception:
            session.rollback()
            raise


def recalculate_future_assignments(
    session: Session,
    recurring_event_id: int,
    today: date | str | None = None,
    cfg: Optional[SchedulerConfig] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    actor: Optional[str] = None,
    locks: ScheduleLocks = default_locks,
) -> RecalculationResult:
    """
    Re-run the builder for every schedule with future dates of an event.

    Dates before `today` are never touched. Each schedule commits on its own;
    a failing schedule is rolled back and reported in `failures` while the
    others keep their new assignments.

    Args:
        session: Database session
        recurring_event_id: Event whose weekday, time window or type changed
        today: Cutoff date (default: date.today())
        cfg: SchedulerConfig (assigner, fairness and recalculation.max_workers)
        session_factory: Needed to process schedules in parallel; each worker
            opens its own session
        actor: Recorded in the audit log
        locks: Lock registry serializing writes per schedule

    Returns:
        RecalculationResult

    Raises:
        InputError: If the event is unknown or `today` is not a date
    """
    cutoff = as_date(today)
    cfg = cfg or SchedulerConfig()
    event = RecurringEventRepository.get_by_id(session, recurring_event_id)
    if event is None:
        raise InputError(f"Unknown recurring event id {recurring_event_id}")
    snapshot = event.current_snapshot()

    schedule_ids: List[int] = []
    for row in ScheduleDateRepository.get_by_event(session, recurring_event_id, on_or_after=cutoff):
        if ASSIGNABLE in (row.type, snapshot.type) and row.schedule_id not in schedule_ids:
            schedule_ids.append(row.schedule_id)

    result = RecalculationResult()
    if not schedule_ids:
        print(f"[INFO] No future dates reference event {recurring_event_id}")
        return result

    print(f"[INFO] Recalculating event {recurring_event_id} from {cutoff} in {len(schedule_ids)} schedule(s)")

    def run(schedule_id: int, worker_session: Session) -> int:
        return recalculate_schedule(
            worker_session, schedule_id, recurring_event_id, snapshot, cutoff, cfg, actor=actor, locks=locks
        )

    def run_isolated(schedule_id: int) -> int:
        with session_factory() as worker_session:
            return run(schedule_id, worker_session)

    workers = cfg.recalculation.max_workers
    if session_factory is not None and workers > 1 and len(schedule_ids) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {sid: pool.submit(run_isolated, sid) for sid in schedule_ids}
            outcomes = {}
            for sid, future in futures.items():
                try:
                    outcomes[sid] = future.result()
                except Exception as e:
                    outcomes[sid] = e
    else:
        outcomes = {}
        for sid in schedule_ids:
            try:
                outcomes[sid] = run(sid, session)
            except Exception as e:
                outcomes[sid] = e

    for sid in schedule_ids:
        outcome = outcomes[sid]
        if isinstance(outcome, Exception):
            print(f"[ERROR] Schedule {sid}: {outcome}")
            result.failures.append(sid)
            result.messages[sid] = str(outcome)
            continue
        result.per_schedule[sid] = outcome
        result.assignments_applied += outcome
        result.schedules_updated += 1

    status = "[OK]" if not result.failures else "[WARN]"
    print(
        f"{status} Recalculated {result.schedules_updated} schedule(s), "
        f"{result.assignments_applied} assignments, {len(result.failures)} failed"
    )
    return result
