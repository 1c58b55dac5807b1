"""Tests for hard constraints and role ordering."""

import datetime as dt

import pytest

from rotaplan.domain.values import PlannedAssignment, RoleSpec
from rotaplan.errors import ConsistencyViolation, InputError
from rotaplan.services.constraints import (
    check_dependency_acyclic,
    dependency_candidates,
    filter_exclusive,
    find_dependency_cycles,
    validate_assignment_constraints,
)
from rotaplan.services.requirements import build_requirements_for_event

DAY = dt.date(2026, 2, 6)


def test_filter_exclusive_drops_members_in_group():
    role = RoleSpec(id=2, name="Bass", exclusive_group_id=9)
    assert filter_exclusive({1, 2, 3}, role, {1: {9}, 2: {4}}) == {2, 3}


def test_filter_exclusive_ignores_roles_without_group():
    role = RoleSpec(id=2, name="Bass")
    assert filter_exclusive({1, 2}, role, {1: {9}}) == {1, 2}


def test_dependency_candidates_follow_anchor_order():
    role = RoleSpec(id=2, name="Sound assistant", required_count=2, depends_on_role_id=1)
    assert dependency_candidates(role, {1: [7, 3]}, {3, 5, 7}) == [7, 3]
    assert dependency_candidates(role, {1: [7]}, {3, 5}) == []
    assert dependency_candidates(role, {}, {3, 5}) == []


def test_check_dependency_acyclic():
    deps = {1: None, 2: 1, 3: 2}
    check_dependency_acyclic(deps, 4, 3)
    with pytest.raises(InputError):
        check_dependency_acyclic(deps, 1, 3)
    with pytest.raises(InputError):
        check_dependency_acyclic(deps, 2, 2)


def test_find_dependency_cycles():
    assert find_dependency_cycles({1: 2, 2: 1, 3: 1, 4: None}) == {1, 2}
    assert find_dependency_cycles({1: None, 2: 1}) == set()


def test_roles_ordered_by_priority_then_display_order():
    roles = [
        RoleSpec(id=1, name="Vocals", display_order=2),
        RoleSpec(id=2, name="Piano", display_order=1),
        RoleSpec(id=3, name="Drums", display_order=0),
    ]
    ordered = build_requirements_for_event(roles, {1: 1, 2: 5})
    assert [r.id for r in ordered] == [1, 2, 3]
    assert [r.id for r in build_requirements_for_event(roles)] == [3, 2, 1]


def test_dependent_role_follows_its_anchor():
    roles = [
        RoleSpec(id=1, name="Assistant", display_order=0, depends_on_role_id=2),
        RoleSpec(id=2, name="Sound", display_order=1),
    ]
    assert [r.id for r in build_requirements_for_event(roles)] == [2, 1]


def test_validate_rejects_exclusive_group_violation():
    roles = [
        RoleSpec(id=1, name="Guitar", exclusive_group_id=9),
        RoleSpec(id=2, name="Bass", exclusive_group_id=9),
    ]
    assignments = [PlannedAssignment(DAY, 1, 5), PlannedAssignment(DAY, 2, 5)]
    with pytest.raises(ConsistencyViolation):
        validate_assignment_constraints(assignments, roles)


def test_validate_rejects_overfilled_role():
    roles = [RoleSpec(id=1, name="Vocals", required_count=1)]
    with pytest.raises(ConsistencyViolation):
        validate_assignment_constraints([PlannedAssignment(DAY, 1, 5), PlannedAssignment(DAY, 1, 6)], roles)


def test_validate_accepts_same_member_on_unrelated_roles():
    roles = [RoleSpec(id=1, name="Vocals"), RoleSpec(id=2, name="Guitar")]
    validate_assignment_constraints([PlannedAssignment(DAY, 1, 5), PlannedAssignment(DAY, 2, 5)], roles)
