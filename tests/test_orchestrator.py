"""Tests for build_assignments - full month schedule generation."""

import pytest

from rotaplan.config import config_from_dict
from rotaplan.domain.models import Assignment, Holiday, Schedule, ScheduleAuditLog
from rotaplan.domain.repositories import AssignmentRepository, ScheduleRepository
from rotaplan.engine.cp_sat import CPSatAssigner
from rotaplan.engine.materializer import materialize_schedule
from rotaplan.engine.orchestrator import build_assignments, make_assigner, seed_tally
from rotaplan.engine.rotation import RotationAssigner
from rotaplan.errors import InputError


@pytest.fixture
def worship(builder):
    """Friday service with vocals (1) and sound (1), three singers and one engineer."""
    builder.event("Friday", label="Service", start="18:00", end="21:00")
    vocals = builder.role("Vocals", display_order=0)
    sound = builder.role("Sound", display_order=1)
    singers = [builder.member(f"Singer {i}", roles=[vocals], window=("17:00", "22:00")) for i in range(3)]
    engineer = builder.member("Engineer", roles=[sound], window=("17:00", "22:00"))
    return {"vocals": vocals, "sound": sound, "singers": singers, "engineer": engineer}


def _schedule(db_session, builder, month=2, year=2026):
    materialize_schedule(db_session, builder.group.id, month, year)
    return ScheduleRepository.get_by_month(db_session, builder.group.id, month, year)


def test_build_assigns_every_friday(db_session, builder, worship, feb_2026):
    schedule = _schedule(db_session, builder)

    result = build_assignments(db_session, schedule.id)

    assert len(result.assignments) == 8
    assert result.unfilled == []
    persisted = AssignmentRepository.get_by_schedule(db_session, schedule.id)
    assert len(persisted) == 8
    assert sorted({a.schedule_date.date for a in persisted}) == feb_2026


def test_singers_rotate_fairly(db_session, builder, worship):
    schedule = _schedule(db_session, builder)

    result = build_assignments(db_session, schedule.id)

    singer_ids = [m.id for m in worship["singers"]]
    counts = [result.counts.get(i, 0) for i in singer_ids]
    assert max(counts) - min(counts) <= 1
    first_friday = [a for a in result.assignments if a.role_id == worship["vocals"].id][0]
    assert first_friday.member_id == min(singer_ids)


def test_build_materializes_missing_dates(db_session, builder, worship):
    schedule = ScheduleRepository.create(
        db_session, Schedule(group_id=builder.group.id, month=2, year=2026, status="draft")
    )

    result = build_assignments(db_session, schedule.id)

    assert len(result.assignments) == 8


def test_rebuild_replaces_assignments(db_session, builder, worship):
    schedule = _schedule(db_session, builder)
    build_assignments(db_session, schedule.id)
    build_assignments(db_session, schedule.id)

    assert db_session.query(Assignment).count() == 8
    builds = db_session.query(ScheduleAuditLog).filter_by(schedule_id=schedule.id, action="build").count()
    assert builds == 2


def test_engineer_holiday_reported_unfilled(db_session, builder, worship, feb_2026):
    schedule = _schedule(db_session, builder)
    engineer = worship["engineer"]

    engineer.holidays.append(Holiday(start_date=feb_2026[0], end_date=feb_2026[0]))
    db_session.commit()

    result = build_assignments(db_session, schedule.id)

    assert [(u.date, u.role_id, u.missing) for u in result.unfilled] == [(feb_2026[0], worship["sound"].id, 1)]
    assert len(result.assignments) == 7


def test_history_seeds_next_month(db_session, builder, worship):
    feb = _schedule(db_session, builder)
    build_assignments(db_session, feb.id)
    feb.status = "committed"
    db_session.commit()

    march = _schedule(db_session, builder, month=3)
    counts = seed_tally(db_session, builder.group.id, march.id).snapshot()
    singer_ids = [m.id for m in worship["singers"]]

    # February had four Fridays, so one singer sang twice
    assert sorted(counts.get(i, 0) for i in singer_ids) == [1, 1, 2]
    result = build_assignments(db_session, march.id)
    first_vocal = [a for a in result.assignments if a.role_id == worship["vocals"].id][0]
    assert counts.get(first_vocal.member_id, 0) == 1


def test_history_ignores_later_months(db_session, builder, worship):
    march = _schedule(db_session, builder, month=3)
    build_assignments(db_session, march.id)
    march.status = "committed"
    db_session.commit()

    feb = _schedule(db_session, builder)
    assert seed_tally(db_session, builder.group.id, feb.id).snapshot() == {}
    assert seed_tally(db_session, builder.group.id, None).snapshot() != {}


def test_history_seed_can_be_disabled(db_session, builder, worship):
    feb = _schedule(db_session, builder)
    build_assignments(db_session, feb.id)
    feb.status = "committed"
    db_session.commit()

    cfg = config_from_dict({"fairness": {"seed_from_history": False}})
    assert seed_tally(db_session, builder.group.id, None, cfg).snapshot() == {}


def test_unknown_schedule_rejected(db_session):
    with pytest.raises(InputError):
        build_assignments(db_session, 12345)


def test_make_assigner_from_config():
    assert isinstance(make_assigner(), RotationAssigner)
    cfg = config_from_dict({"assigner": "cp_sat", "cp_sat": {"num_search_workers": 1}})
    assigner = make_assigner(cfg)
    assert isinstance(assigner, CPSatAssigner)
    assert assigner.num_search_workers == 1
