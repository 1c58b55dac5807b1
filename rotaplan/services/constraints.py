"""Hard constraints applied while assigning a date, plus post-build validation."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from rotaplan.domain.values import PlannedAssignment, RoleSpec
from rotaplan.errors import ConsistencyViolation, InputError


def filter_exclusive(
    candidates: Iterable[int],
    role: RoleSpec,
    groups_by_member: Mapping[int, Set[int]],
) -> Set[int]:
    """Drop candidates already serving another role of the same exclusive group on this date."""
    if role.exclusive_group_id is None:
        return set(candidates)
    return {m for m in candidates if role.exclusive_group_id not in groups_by_member.get(m, set())}


def dependency_candidates(
    role: RoleSpec,
    assigned_by_role: Mapping[int, Sequence[int]],
    candidates: Set[int],
) -> List[int]:
    """
    Members forced onto a dependent role by its anchor.

    Returns the anchor's members, in the order they were assigned, that are
    still in the candidate pool. Empty when the role has no anchor, the anchor
    is unfilled, or none of its members qualify.
    """
    if role.depends_on_role_id is None:
        return []
    anchor_members = assigned_by_role.get(role.depends_on_role_id, ())
    return [m for m in anchor_members if m in candidates]


def find_dependency_cycles(dependency_map: Mapping[int, Optional[int]]) -> Set[int]:
    """Role ids that sit on a depends-on cycle."""
    cyclic: Set[int] = set()
    for start in dependency_map:
        path: List[int] = []
        seen: Set[int] = set()
        node: Optional[int] = start
        while node is not None and node in dependency_map:
            if node in seen:
                cyclic.update(path[path.index(node):])
                break
            seen.add(node)
            path.append(node)
            node = dependency_map.get(node)
    return cyclic


def check_dependency_acyclic(
    dependency_map: Mapping[int, Optional[int]],
    role_id: Optional[int],
    depends_on_role_id: Optional[int],
) -> None:
    """
    Reject a depends-on link that would close a cycle.

    Walks the ownership chain from the proposed anchor with a visited set.

    Raises:
        InputError: If the role would depend on itself, directly or transitively
    """
    if depends_on_role_id is None:
        return
    if role_id is not None and depends_on_role_id == role_id:
        raise InputError(f"Role {role_id} cannot depend on itself")
    visited: Set[int] = set()
    node: Optional[int] = depends_on_role_id
    while node is not None:
        if role_id is not None and node == role_id:
            raise InputError(
                f"Role {role_id} cannot depend on role {depends_on_role_id}: dependency cycle"
            )
        if node in visited:
            raise InputError(f"Existing dependency cycle through role {node}")
        visited.add(node)
        node = dependency_map.get(node)


def validate_assignment_constraints(
    assignments: Iterable[PlannedAssignment],
    roles: Iterable[RoleSpec],
) -> None:
    """
    Validate a set of assignments against the per-date hard constraints.

    Args:
        assignments: Planned or persisted assignments (need date, role_id, member_id)
        roles: Role specs of the group

    Raises:
        ConsistencyViolation: If any constraint is violated
    """
    role_lookup = {r.id: r for r in roles}

    by_date_role: Dict[Tuple[date, int], List[int]] = defaultdict(list)
    for a in assignments:
        by_date_role[(a.date, a.role_id)].append(a.member_id)

    # 1. Required count and duplicates per role
    for (day, role_id), member_ids in by_date_role.items():
        role = role_lookup.get(role_id)
        if role is None:
            raise ConsistencyViolation(f"Assignment on {day} references unknown role {role_id}")
        if len(member_ids) > role.required_count:
            raise ConsistencyViolation(
                f"Role {role.name} on {day} has {len(member_ids)} assignments, "
                f"required {role.required_count}"
            )
        if len(set(member_ids)) != len(member_ids):
            raise ConsistencyViolation(f"Role {role.name} on {day} assigns the same member twice")

    # 2. Exclusive groups
    seen: Dict[Tuple[date, int, int], int] = {}
    for (day, role_id), member_ids in by_date_role.items():
        group_id = role_lookup[role_id].exclusive_group_id
        if group_id is None:
            continue
        for member_id in member_ids:
            key = (day, group_id, member_id)
            if key in seen and seen[key] != role_id:
                raise ConsistencyViolation(
                    f"Member {member_id} fills roles {seen[key]} and {role_id} "
                    f"of exclusive group {group_id} on {day}"
                )
            seen[key] = role_id
