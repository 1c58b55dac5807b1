"""Tests for the CP-SAT assigner."""

import datetime as dt

import pytest

from rotaplan.domain.values import (
    DEPENDENCY_CYCLE,
    EXCLUSIVE_CONFLICT,
    UNDERSTAFFED,
    DateSlot,
    EventSnapshot,
    HolidayRange,
    MemberProfile,
    PlannedAssignment,
    RoleSpec,
)
from rotaplan.engine.cp_sat import CPSatAssigner
from rotaplan.engine.orchestrator import build_schedule
from rotaplan.services.loader import GroupConfig
from rotaplan.services.scoring import FairnessTally

FRIDAYS = [dt.date(2026, 2, d) for d in (6, 13, 20)]
SERVICE = EventSnapshot("assignable", "Service", "18:00", "21:00")


@pytest.fixture
def assigner():
    return CPSatAssigner(max_time_in_seconds=5.0, num_search_workers=1)


def _slot(day=FRIDAYS[0]):
    return DateSlot(date=day, weekday="Friday", snapshot=SERVICE, recurring_event_id=1)


def _member(id, roles=(1,), holidays=()):
    return MemberProfile(
        id=id,
        name=f"m{id}",
        role_ids=frozenset(roles),
        availability={"Friday": (("17:00", "22:00"),)},
        holidays=tuple(holidays),
    )


def test_rotates_like_the_greedy_assigner(assigner):
    group = GroupConfig(
        group_id=1,
        roles=(RoleSpec(id=1, name="Vocals"),),
        members=(_member(2), _member(1), _member(3)),
    )
    result = build_schedule([_slot(d) for d in FRIDAYS], group, assigner=assigner)

    assert [a.member_id for a in result.assignments] == [1, 2, 3]


def test_exclusive_group_and_priority(assigner):
    roles = [
        RoleSpec(id=1, name="Guitar", exclusive_group_id=9),
        RoleSpec(id=2, name="Bass", exclusive_group_id=9),
    ]
    result = assigner.assign_date(_slot(), roles, [_member(1, roles=(1, 2))], FairnessTally())

    assert [(a.role_id, a.member_id) for a in result.assignments] == [(1, 1)]
    assert [(u.role_id, u.reason) for u in result.unfilled] == [(2, EXCLUSIVE_CONFLICT)]


def test_dependent_role_reuses_anchor_member(assigner):
    roles = [RoleSpec(id=1, name="Sound"), RoleSpec(id=2, name="Projection", depends_on_role_id=1)]
    members = [_member(5, roles=(1, 2)), _member(2, roles=(2,))]

    result = assigner.assign_date(_slot(), roles, members, FairnessTally())

    assert {a.role_id: a.member_id for a in result.assignments} == {1: 5, 2: 5}


def test_understaffed_and_cyclic_reported(assigner):
    roles = [
        RoleSpec(id=1, name="Choir", required_count=2),
        RoleSpec(id=2, name="Loop", depends_on_role_id=2),
    ]
    away = _member(2, holidays=[HolidayRange(FRIDAYS[0], FRIDAYS[0])])
    tally = FairnessTally()

    result = assigner.assign_date(_slot(), roles, [_member(1, roles=(1, 2)), away], tally, cyclic={2})

    assert [a.member_id for a in result.assignments] == [1]
    assert {(u.role_id, u.missing, u.reason) for u in result.unfilled} == {
        (1, 1, UNDERSTAFFED),
        (2, 1, DEPENDENCY_CYCLE),
    }
    assert tally.snapshot() == {1: 1}


def test_no_candidates_at_all(assigner):
    result = assigner.assign_date(_slot(), [RoleSpec(id=1, name="Vocals")], [], FairnessTally())
    assert result.assignments == []
    assert result.unfilled[0].missing == 1


def test_kept_assignments_count_toward_the_date(assigner):
    roles = [
        RoleSpec(id=1, name="Sound"),
        RoleSpec(id=2, name="Projection", depends_on_role_id=1),
        RoleSpec(id=3, name="Guitar", exclusive_group_id=9),
        RoleSpec(id=4, name="Bass", exclusive_group_id=9),
    ]
    members = [_member(1, roles=(1, 2, 3, 4)), _member(2, roles=(4,)), _member(7, roles=(1, 2))]
    kept = [
        PlannedAssignment(date=FRIDAYS[0], role_id=1, member_id=7),
        PlannedAssignment(date=FRIDAYS[0], role_id=3, member_id=1),
    ]

    result = assigner.assign_date(_slot(), roles, members, FairnessTally(), preassigned=kept)

    assert sorted((a.role_id, a.member_id) for a in result.assignments) == [(2, 7), (4, 2)]
    assert result.unfilled == []
