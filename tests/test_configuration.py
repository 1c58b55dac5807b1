"""Tests for configuration writes."""

import pytest

from rotaplan.config import config_from_dict, load_config
from rotaplan.domain.models import RecurringEvent, Schedule, ScheduleAuditLog
from rotaplan.domain.repositories import PriorityRepository, RecurringEventRepository
from rotaplan.errors import InputError
from rotaplan.services.configuration import (
    create_recurring_event,
    create_role,
    log_schedule_action,
    seed_defaults,
    set_event_role_priority,
    set_role_dependency,
    update_recurring_event,
)
from rotaplan.services.loader import load_group_config


def test_seed_defaults_creates_all_weekdays(db_session, builder):
    assert seed_defaults(db_session, builder.group.id) == 7

    events = RecurringEventRepository.get_by_group(db_session, builder.group.id)
    active = sorted(e.weekday.name for e in events if e.active)
    assert active == ["Friday", "Sunday", "Wednesday"]
    assert seed_defaults(db_session, builder.group.id) == 0


def test_seed_defaults_adds_missing_inactive(db_session, builder):
    builder.event("Monday", type="for_everyone", active=False)
    assert seed_defaults(db_session, builder.group.id) == 6

    events = RecurringEventRepository.get_by_group(db_session, builder.group.id)
    assert [e.weekday.name for e in events if e.active] == ["Monday"]


def test_create_event_validates_fields(db_session, builder):
    with pytest.raises(InputError):
        create_recurring_event(db_session, builder.group.id, "Friday", start_time_utc="7pm")
    with pytest.raises(InputError):
        create_recurring_event(db_session, builder.group.id, "Friday", event_type="optional")
    with pytest.raises(InputError):
        create_recurring_event(db_session, builder.group.id, "Caturday")
    assert db_session.query(RecurringEvent).count() == 0


def test_strict_weekday_rejects_second_event(db_session, builder):
    create_recurring_event(db_session, builder.group.id, "viernes", strict_weekday=True)
    with pytest.raises(InputError):
        create_recurring_event(db_session, builder.group.id, "Friday", strict_weekday=True)
    # tolerated without strict mode
    create_recurring_event(db_session, builder.group.id, "Friday")


def test_configured_strict_weekday_rejects_second_event(db_session, builder, tmp_path):
    path = tmp_path / "rotaplan.yaml"
    path.write_text("strict_weekday_events: true\n")
    cfg = load_config(path)

    create_recurring_event(db_session, builder.group.id, "Friday", cfg=cfg)
    with pytest.raises(InputError):
        create_recurring_event(db_session, builder.group.id, "Friday", cfg=cfg)
    saturday = create_recurring_event(db_session, builder.group.id, "Saturday", cfg=cfg)
    with pytest.raises(InputError):
        update_recurring_event(db_session, saturday.id, day_name="Friday", cfg=cfg)


def test_default_window_from_config(db_session, builder):
    cfg = config_from_dict({"default_window": {"start": "18:00", "end": "20:00"}})

    event = create_recurring_event(db_session, builder.group.id, "Friday", cfg=cfg)
    assert (event.start_time_utc, event.end_time_utc) == ("18:00", "20:00")

    seed_defaults(db_session, builder.group.id, cfg=cfg)
    events = RecurringEventRepository.get_by_group(db_session, builder.group.id)
    assert len(events) == 7
    assert {(e.start_time_utc, e.end_time_utc) for e in events} == {("18:00", "20:00")}


def test_update_event_reports_changes(db_session, builder):
    event = builder.event("Friday", start="18:00", end="21:00")

    label_only = update_recurring_event(db_session, event.id, label="Evening")
    assert not label_only.needs_recalculation

    moved = update_recurring_event(db_session, event.id, day_name="Saturday")
    assert moved.weekday_changed and moved.needs_recalculation
    assert event.weekday.name == "Saturday"


def test_role_dependency_cycle_rejected(db_session, builder):
    sound = create_role(db_session, builder.group.id, "Sound")
    projection = create_role(db_session, builder.group.id, "Projection", depends_on_role_id=sound.id)

    with pytest.raises(InputError):
        set_role_dependency(db_session, sound.id, projection.id)
    with pytest.raises(InputError):
        set_role_dependency(db_session, sound.id, sound.id)

    set_role_dependency(db_session, projection.id, None)
    set_role_dependency(db_session, sound.id, projection.id)
    assert load_group_config(db_session, builder.group.id).cyclic_roles == frozenset()


def test_create_role_rejects_bad_count(db_session, builder):
    with pytest.raises(InputError):
        create_role(db_session, builder.group.id, "Nobody", required_count=0)


def test_set_event_role_priority_upserts(db_session, builder):
    event = builder.event("Friday")
    role = builder.role("Vocals")

    set_event_role_priority(db_session, event.id, role.id, 3)
    set_event_role_priority(db_session, event.id, role.id, 1)

    assert PriorityRepository.get_for_events(db_session, [event.id]) == {event.id: {role.id: 1}}


def test_priority_needs_role_of_same_group(db_session, builder):
    event = builder.event("Friday")
    with pytest.raises(InputError):
        set_event_role_priority(db_session, event.id, 999, 1)


def test_log_schedule_action_serializes_detail(db_session, builder):
    schedule = Schedule(group_id=builder.group.id, month=2, year=2026)
    db_session.add(schedule)
    db_session.commit()

    log_schedule_action(db_session, schedule.id, "publish", {"by": "admin"}, actor="ana")

    entry = db_session.query(ScheduleAuditLog).one()
    assert entry.detail == '{"by": "admin"}'
    assert entry.actor == "ana"
