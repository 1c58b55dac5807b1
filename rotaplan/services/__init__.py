"""Services for scheduling logic."""

from .constraints import (
    check_dependency_acyclic,
    filter_exclusive,
    find_dependency_cycles,
    validate_assignment_constraints,
)
from .eligibility import can_serve, eligible_members
from .impact import affected_schedule_dates, aggregate_affected_schedule_dates, holiday_conflicts
from .loader import GroupConfig, historical_counts, load_group_config
from .requirements import build_requirements_for_event
from .scoring import FairnessTally, fairness_spread, rank_candidates

__all__ = [
    "check_dependency_acyclic",
    "filter_exclusive",
    "find_dependency_cycles",
    "validate_assignment_constraints",
    "can_serve",
    "eligible_members",
    "affected_schedule_dates",
    "aggregate_affected_schedule_dates",
    "holiday_conflicts",
    "GroupConfig",
    "historical_counts",
    "load_group_config",
    "build_requirements_for_event",
    "FairnessTally",
    "fairness_spread",
    "rank_candidates",
]
