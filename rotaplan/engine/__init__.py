"""Scheduling engine: materializer, assigners, schedule builder and recalculator."""

from .base import BaseAssigner
from .cp_sat import CPSatAssigner
from .locks import ScheduleLocks, default_locks
from .materializer import add_schedule_date, materialize_schedule, plan_schedule_dates, remove_schedule_date
from .orchestrator import ScheduleBuilder, build_assignments, build_schedule, make_assigner
from .rebuild import FILL_EMPTY, OVERWRITE, REBUILD_MODES, RebuildPlan, rebuild_schedule
from .recalculator import RecalculationResult, recalculate_future_assignments
from .rotation import RotationAssigner

__all__ = [
    "BaseAssigner",
    "RotationAssigner",
    "CPSatAssigner",
    "ScheduleLocks",
    "default_locks",
    "materialize_schedule",
    "plan_schedule_dates",
    "add_schedule_date",
    "remove_schedule_date",
    "ScheduleBuilder",
    "build_assignments",
    "build_schedule",
    "make_assigner",
    "RecalculationResult",
    "recalculate_future_assignments",
    "OVERWRITE",
    "FILL_EMPTY",
    "REBUILD_MODES",
    "RebuildPlan",
    "rebuild_schedule",
]
