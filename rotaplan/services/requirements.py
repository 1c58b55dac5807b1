"""Role processing order for a schedule date."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Mapping, Optional, Tuple

from rotaplan.domain.values import RoleSpec


def role_sort_key(role: RoleSpec, priorities: Optional[Mapping[int, int]] = None) -> Tuple[int, int, int, int]:
    """
    Ascending sort key for a role on a given event.

    Explicit priorities come first (lower = filled first). Roles without one
    follow, ranked by display order. Ties break on display order, then id.
    """
    priority = (priorities or {}).get(role.id)
    if priority is None:
        return (1, role.display_order, role.display_order, role.id)
    return (0, priority, role.display_order, role.id)


def build_requirements_for_event(
    roles: Iterable[RoleSpec],
    priorities: Optional[Mapping[int, int]] = None,
    cyclic: AbstractSet[int] = frozenset(),
) -> List[RoleSpec]:
    """
    Order the roles to fill on one date.

    Args:
        roles: Role specs of the group
        priorities: role_id -> priority for the date's recurring event
        cyclic: Role ids on a dependency cycle; they keep their rank position

    Returns:
        Roles by priority, with each dependent role moved just after its
        anchor when the anchor would otherwise be processed later
    """
    pending = sorted(roles, key=lambda r: role_sort_key(r, priorities))
    present = {r.id for r in pending}
    emitted: set[int] = set()
    ordered: List[RoleSpec] = []

    while pending:
        chosen = pending[0]
        for role in pending:
            anchor = role.depends_on_role_id
            if anchor is None or anchor not in present or anchor in emitted or role.id in cyclic:
                chosen = role
                break
        pending.remove(chosen)
        emitted.add(chosen.id)
        ordered.append(chosen)

    return ordered
