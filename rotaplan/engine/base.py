"""Base assigner interface that all per-date assigners must implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AbstractSet, Sequence

from rotaplan.domain.values import BuildResult, DateSlot, MemberProfile, PlannedAssignment, RoleSpec
from rotaplan.services.scoring import FairnessTally


class BaseAssigner(ABC):
    """
    Abstract base class for assigners.

    An assigner fills the roles of one schedule date. The schedule builder
    calls it once per date in chronological order and threads the same
    fairness tally through every call.
    """

    name: str | None = None  # Override in subclasses (e.g., "rotation", "cp_sat")

    @abstractmethod
    def assign_date(
        self,
        slot: DateSlot,
        roles: Sequence[RoleSpec],
        members: Sequence[MemberProfile],
        tally: FairnessTally,
        cyclic: AbstractSet[int] = frozenset(),
        preassigned: Sequence[PlannedAssignment] = (),
    ) -> BuildResult:
        """
        Assign members to the roles of one date.

        Args:
            slot: Schedule date with its weekday and event snapshot
            roles: Roles in processing order (see build_requirements_for_event)
            members: Member pool of the group
            tally: Fairness counter; incremented once per assignment made
            cyclic: Role ids on a dependency cycle, reported unfilled
            preassigned: Assignments already held on this date; they count
                toward required counts and are not returned again

        Returns:
            BuildResult with assignments and unfilled slots of this date only
        """
        pass

    def get_name(self) -> str:
        """Get the assigner name used in config and logs."""
        return self.name or "UNKNOWN"
