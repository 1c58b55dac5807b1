"""CP-SAT assigner: optimal per-date matching behind the rotation interface."""

from __future__ import annotations

from collections import defaultdict
from typing import AbstractSet, Dict, List, Sequence, Tuple

from ortools.sat.python import cp_model

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
from rotaplan.errors import ConsistencyViolation
from rotaplan.services.eligibility import eligible_members
from rotaplan.services.scoring import FairnessTally

from .base import BaseAssigner


class CPSatAssigner(BaseAssigner):
    """
    CP-SAT based assigner for one schedule date.

    Uses Google OR-Tools CP-SAT to choose all roles of a date at once.
    Objective, in decreasing weight:
    - Filled slots, weighted by role position (earlier roles weigh more)
    - Anchor member reused on the dependent role
    - Low fairness tally, then low member id

    Hard constraints: required count per role, one member per exclusive
    group, one slot per member per role.
    """

    name = "cp_sat"

    def __init__(self, max_time_in_seconds: float = 10.0, num_search_workers: int = 4):
        """
        Initialize CP-SAT assigner.

        Args:
            max_time_in_seconds: Solver time limit per date
            num_search_workers: Parallel search workers
        """
        self.max_time_in_seconds = max_time_in_seconds
        self.num_search_workers = num_search_workers

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

        held: Dict[int, List[int]] = defaultdict(list)
        held_groups: Dict[int, set] = defaultdict(set)
        group_of = {r.id: r.exclusive_group_id for r in roles}
        for a in preassigned:
            held[a.role_id].append(a.member_id)
            if group_of.get(a.role_id) is not None:
                held_groups[a.member_id].add(group_of[a.role_id])

        needed = {r.id: r.required_count - len(held[r.id]) for r in roles}
        active_roles = [r for r in roles if r.id not in cyclic and needed[r.id] > 0]
        for role in roles:
            if role.id in cyclic and needed[role.id] > 0:
                result.unfilled.append(
                    UnfilledSlot(slot.date, role.id, needed[role.id], DEPENDENCY_CYCLE)
                )

        eligible = {}
        for r in active_roles:
            eligible[r.id] = {
                m
                for m in eligible_members(slot, r.id, members)
                if m not in held[r.id] and r.exclusive_group_id not in held_groups[m]
            }
        if not any(eligible.values()):
            result.unfilled.extend(
                UnfilledSlot(slot.date, r.id, needed[r.id], UNDERSTAFFED) for r in active_roles
            )
            return result

        model = cp_model.CpModel()
        x = self._create_variables(model, active_roles, eligible)
        self._add_count_constraints(model, x, active_roles, needed)
        self._add_exclusive_constraints(model, x, active_roles)
        dependency_vars = self._add_dependency_bonus(model, x, active_roles, held)
        self._build_objective(model, x, dependency_vars, active_roles, tally)

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = float(self.max_time_in_seconds)
        solver.parameters.num_search_workers = int(self.num_search_workers)
        status = solver.Solve(model)
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            raise ConsistencyViolation(
                f"CP-SAT found no assignment for {slot.iso} (status: {solver.StatusName(status)})"
            )

        for role in active_roles:
            chosen = sorted(m for (r, m), var in x.items() if r == role.id and solver.Value(var) == 1)
            for member_id in chosen:
                tally.increment(member_id)
                result.assignments.append(
                    PlannedAssignment(
                        date=slot.date,
                        role_id=role.id,
                        member_id=member_id,
                        schedule_date_id=slot.schedule_date_id,
                    )
                )
            missing = needed[role.id] - len(chosen)
            if missing > 0:
                blocked = len(eligible[role.id]) >= needed[role.id]
                result.unfilled.append(
                    UnfilledSlot(slot.date, role.id, missing, EXCLUSIVE_CONFLICT if blocked else UNDERSTAFFED)
                )

        return result

    def _create_variables(
        self,
        model: cp_model.CpModel,
        roles: Sequence[RoleSpec],
        eligible: Dict[int, set],
    ) -> Dict[Tuple[int, int], cp_model.IntVar]:
        """One BoolVar per (role_id, member_id) with the member eligible."""
        x = {}
        for role in roles:
            for member_id in sorted(eligible[role.id]):
                x[(role.id, member_id)] = model.NewBoolVar(f"assign_r{role.id}_m{member_id}")
        return x

    def _add_count_constraints(self, model, x, roles: Sequence[RoleSpec], capacity: Dict[int, int]) -> None:
        for role in roles:
            role_vars = [var for (r, _), var in x.items() if r == role.id]
            if role_vars:
                model.Add(sum(role_vars) <= capacity[role.id])

    def _add_exclusive_constraints(self, model, x, roles: Sequence[RoleSpec]) -> None:
        by_group: Dict[int, List[int]] = defaultdict(list)
        for role in roles:
            if role.exclusive_group_id is not None:
                by_group[role.exclusive_group_id].append(role.id)

        for role_ids in by_group.values():
            if len(role_ids) < 2:
                continue
            per_member: Dict[int, list] = defaultdict(list)
            for (r, m), var in x.items():
                if r in role_ids:
                    per_member[m].append(var)
            for member_vars in per_member.values():
                if len(member_vars) > 1:
                    model.Add(sum(member_vars) <= 1)

    def _add_dependency_bonus(
        self, model, x, roles: Sequence[RoleSpec], held: Dict[int, List[int]]
    ) -> List[cp_model.IntVar]:
        """Indicator per member serving both a dependent role and its anchor."""
        bonus = []
        for role in roles:
            anchor = role.depends_on_role_id
            if anchor is None:
                continue
            for (r, m), var in x.items():
                if r != role.id:
                    continue
                if m in held.get(anchor, ()):
                    # anchor already held by this member
                    bonus.append(var)
                    continue
                if (anchor, m) not in x:
                    continue
                both = model.NewBoolVar(f"reuse_r{role.id}_m{m}")
                model.Add(both <= var)
                model.Add(both <= x[(anchor, m)])
                bonus.append(both)
        return bonus

    def _build_objective(self, model, x, dependency_vars, roles: Sequence[RoleSpec], tally: FairnessTally) -> None:
        member_ids = sorted({m for _, m in x})
        rank = {m: i for i, m in enumerate(member_ids)}

        # Per-assignment cost: tally first, member id as tie-break
        cost = {(r, m): tally.get(m) * (len(member_ids) + 1) + rank[m] for (r, m) in x}
        cost_cap = sum(cost.values()) + 1
        reuse_weight = cost_cap
        fill_unit = reuse_weight * (len(dependency_vars) + 1)

        terms = []
        for position, role in enumerate(roles):
            weight = (len(roles) - position) * fill_unit
            for (r, m), var in x.items():
                if r == role.id:
                    terms.append(var * (weight - cost[(r, m)]))
        terms.extend(var * reuse_weight for var in dependency_vars)
        model.Maximize(sum(terms))
