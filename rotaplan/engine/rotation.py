"""Greedy rotation assigner: priority order, then least-assigned member first."""

from __future__ import annotations

from collections import defaultdict
from typing import AbstractSet, Dict, List, Sequence, Set

from rotaplan.domain.values import (
    DEPENDENCY_CYCLE,
    EXCLUSIVE_CONFLICT,
    UNDERSTAFFED,
    BuildResult,
    DateSlot,
    MemberProfile,
    PlannedAssignment,
    RoleSpec,
    UnfilledSlot,
)
from rotaplan.services.constraints import dependency_candidates, filter_exclusive
from rotaplan.services.eligibility import eligible_members
from rotaplan.services.scoring import FairnessTally, rank_candidates

from .base import BaseAssigner


class RotationAssigner(BaseAssigner):
    """
    Fill roles one at a time in the given order.

    For each role: eligible members, minus those already in the role's
    exclusive group on this date. Anchor members are reused first for a
    dependent role, the remaining slots go to the lowest tally (ties by id).
    Not a globally optimal matching; CPSatAssigner is the optimal variant.
    """

    name = "rotation"

    def assign_date(
        self,
        slot: DateSlot,
        roles: Sequence[RoleSpec],
        members: Sequence[MemberProfile],
        tally: FairnessTally,
        cyclic: AbstractSet[int] = frozenset(),
        preassigned: Sequence[PlannedAssignment] = (),
    ) -> BuildResult:
        result = BuildResult()
        if not slot.snapshot.is_assignable:
            return result

        assigned_by_role: Dict[int, List[int]] = defaultdict(list)
        groups_by_member: Dict[int, Set[int]] = defaultdict(set)
        group_of = {r.id: r.exclusive_group_id for r in roles}
        for held in preassigned:
            assigned_by_role[held.role_id].append(held.member_id)
            if group_of.get(held.role_id) is not None:
                groups_by_member[held.member_id].add(group_of[held.role_id])

        for role in roles:
            needed = role.required_count - len(assigned_by_role[role.id])
            if needed <= 0:
                continue
            if role.id in cyclic:
                result.unfilled.append(UnfilledSlot(slot.date, role.id, needed, DEPENDENCY_CYCLE))
                continue

            eligible = eligible_members(slot, role.id, members)
            pool = filter_exclusive(eligible, role, groups_by_member) - set(assigned_by_role[role.id])

            chosen = dependency_candidates(role, assigned_by_role, pool)[:needed]
            open_slots = needed - len(chosen)
            if open_slots > 0:
                rest = [m for m in rank_candidates(pool, tally) if m not in chosen]
                chosen.extend(rest[:open_slots])

            for member_id in chosen:
                assigned_by_role[role.id].append(member_id)
                if role.exclusive_group_id is not None:
                    groups_by_member[member_id].add(role.exclusive_group_id)
                tally.increment(member_id)
                result.assignments.append(
                    PlannedAssignment(
                        date=slot.date,
                        role_id=role.id,
                        member_id=member_id,
                        schedule_date_id=slot.schedule_date_id,
                    )
                )

            missing = needed - len(chosen)
            if missing > 0:
                # Enough eligible members existed, the exclusive group took them
                blocked = len(eligible) >= role.required_count
                result.unfilled.append(
                    UnfilledSlot(slot.date, role.id, missing, EXCLUSIVE_CONFLICT if blocked else UNDERSTAFFED)
                )

        return result
