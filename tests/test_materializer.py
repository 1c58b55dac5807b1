"""Tests for the event materializer."""

import datetime as dt

import pytest

from rotaplan.domain.models import Assignment, ScheduleAuditLog
from rotaplan.domain.repositories import ScheduleRepository
from rotaplan.engine.materializer import (
    add_schedule_date,
    materialize_schedule,
    plan_schedule_dates,
    remove_schedule_date,
)
from rotaplan.engine.orchestrator import build_assignments
from rotaplan.errors import InputError


def test_february_2026_rehearsal(db_session, builder, feb_2026):
    builder.event("Friday", type="for_everyone", label="Rehearsal")

    rows = materialize_schedule(db_session, builder.group.id, 2, 2026)

    assert [r.date for r in rows] == feb_2026
    assert {r.type for r in rows} == {"for_everyone"}
    assert {r.label for r in rows} == {"Rehearsal"}


def test_rematerialize_is_idempotent(db_session, builder):
    builder.event("Friday")
    builder.event("Sunday")

    first = materialize_schedule(db_session, builder.group.id, 2, 2026)
    second = materialize_schedule(db_session, builder.group.id, 2, 2026)

    assert len(first) == len(second) == 8
    assert [r.id for r in first] == [r.id for r in second]
    actions = db_session.query(ScheduleAuditLog).filter_by(action="materialize").count()
    assert actions == 2


def test_new_event_only_adds_missing_dates(db_session, builder):
    builder.event("Friday")
    materialize_schedule(db_session, builder.group.id, 2, 2026)
    builder.event("Sunday")

    rows = materialize_schedule(db_session, builder.group.id, 2, 2026)

    assert len(rows) == 8
    assert {r.date.weekday() for r in rows} == {4, 6}


def test_same_weekday_lowest_event_id_wins(db_session, builder):
    first = builder.event("Friday", label="Service")
    builder.event("Friday", type="for_everyone", label="Rehearsal")

    rows = materialize_schedule(db_session, builder.group.id, 2, 2026)

    assert len(rows) == 4
    assert {r.recurring_event_id for r in rows} == {first.id}
    assert {r.label for r in rows} == {"Service"}


def test_inactive_events_produce_nothing(db_session, builder):
    builder.event("Friday", active=False)
    assert materialize_schedule(db_session, builder.group.id, 2, 2026) == []


def test_snapshot_survives_event_edit(db_session, builder):
    event = builder.event("Friday", start="18:00", end="21:00")
    materialize_schedule(db_session, builder.group.id, 2, 2026)

    event.start_time_utc = "19:00"
    db_session.commit()
    rows = materialize_schedule(db_session, builder.group.id, 2, 2026)

    assert {r.start_time_utc for r in rows} == {"18:00"}
    assert rows[0].snapshot.window == ("18:00", "21:00")


def test_plan_schedule_dates_carries_snapshot(db_session, builder):
    event = builder.event("Wednesday", label="Prayer", start="19:00", end="20:30")
    slots = plan_schedule_dates([event], 2, 2026)

    assert [s.date for s in slots] == [dt.date(2026, 2, d) for d in (4, 11, 18, 25)]
    assert slots[0].snapshot.label == "Prayer"
    assert slots[0].recurring_event_id == event.id


def test_invalid_input_rejected_before_write(db_session, builder):
    with pytest.raises(InputError):
        materialize_schedule(db_session, builder.group.id, 13, 2026)
    with pytest.raises(InputError):
        materialize_schedule(db_session, 999, 2, 2026)


def test_add_manual_date(db_session, builder):
    builder.event("Friday")
    materialize_schedule(db_session, builder.group.id, 2, 2026)
    schedule = ScheduleRepository.get_by_month(db_session, builder.group.id, 2, 2026)

    row = add_schedule_date(db_session, schedule.id, dt.date(2026, 2, 11), date_type="for_everyone", actor="ana")

    assert (row.type, row.label, row.recurring_event_id) == ("for_everyone", "Ensayo", None)
    rows = materialize_schedule(db_session, builder.group.id, 2, 2026)
    assert len(rows) == 5
    entry = db_session.query(ScheduleAuditLog).filter_by(action="add_date").one()
    assert entry.actor == "ana"
    assert "2026-02-11" in entry.detail


def test_add_manual_date_rejects_bad_input(db_session, builder):
    builder.event("Friday")
    materialize_schedule(db_session, builder.group.id, 2, 2026)
    schedule = ScheduleRepository.get_by_month(db_session, builder.group.id, 2, 2026)

    with pytest.raises(InputError, match="already has"):
        add_schedule_date(db_session, schedule.id, dt.date(2026, 2, 6))
    with pytest.raises(InputError, match="outside"):
        add_schedule_date(db_session, schedule.id, dt.date(2026, 3, 4))
    with pytest.raises(InputError):
        add_schedule_date(db_session, schedule.id, dt.date(2026, 2, 11), date_type="holiday")
    with pytest.raises(InputError):
        add_schedule_date(db_session, 999, dt.date(2026, 2, 11))
    assert db_session.query(ScheduleAuditLog).filter_by(action="add_date").count() == 0


def test_added_assignable_date_is_built(db_session, builder):
    builder.event("Friday")
    vocals = builder.role("Vocals")
    builder.member("Ana", roles=[vocals], days=("Friday", "Wednesday"))
    materialize_schedule(db_session, builder.group.id, 2, 2026)
    schedule = ScheduleRepository.get_by_month(db_session, builder.group.id, 2, 2026)

    add_schedule_date(db_session, schedule.id, dt.date(2026, 2, 11), label="Extra service")
    result = build_assignments(db_session, schedule.id)

    assert dt.date(2026, 2, 11) in {a.date for a in result.assignments}
    assert len(result.assignments) == 5


def test_remove_date_drops_its_assignments(db_session, builder, feb_2026):
    builder.event("Friday")
    vocals = builder.role("Vocals")
    builder.member("Ana", roles=[vocals])
    materialize_schedule(db_session, builder.group.id, 2, 2026)
    schedule = ScheduleRepository.get_by_month(db_session, builder.group.id, 2, 2026)
    build_assignments(db_session, schedule.id)

    assert remove_schedule_date(db_session, schedule.id, feb_2026[0]) == 1

    assert db_session.query(Assignment).count() == 3
    assert db_session.query(ScheduleAuditLog).filter_by(action="remove_date").count() == 1
    with pytest.raises(InputError, match="no date"):
        remove_schedule_date(db_session, schedule.id, feb_2026[0])
