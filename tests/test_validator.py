import datetime as dt

import pandas as pd
import pytest

from rotaplan.domain.models import Assignment, Holiday
from rotaplan.domain.repositories import AssignmentRepository, ScheduleRepository
from rotaplan.domain.values import PlannedAssignment, RoleSpec, UnfilledSlot
from rotaplan.engine.materializer import materialize_schedule
from rotaplan.engine.orchestrator import build_assignments
from rotaplan.errors import ConsistencyViolation
from rotaplan.validator import (
    assignments_frame,
    summarize_assignments,
    unfilled_frame,
    validate_assignments,
    validate_schedule,
)


@pytest.fixture
def built(db_session, builder):
    builder.event("Friday", label="Service")
    vocals = builder.role("Vocals")
    ana = builder.member("Ana", roles=[vocals])
    ben = builder.member("Ben", roles=[vocals])
    materialize_schedule(db_session, builder.group.id, 2, 2026)
    schedule = ScheduleRepository.get_by_month(db_session, builder.group.id, 2, 2026)
    build_assignments(db_session, schedule.id)
    return schedule, vocals, ana, ben


def test_duplicate_member_on_date_fails():
    day = dt.date(2026, 2, 6)
    roles = [RoleSpec(id=1, name="Vocals", required_count=2)]
    try:
        validate_assignments([PlannedAssignment(day, 1, 7), PlannedAssignment(day, 1, 7)], roles)
        assert False, "Should fail duplicate member"
    except ConsistencyViolation as e:
        assert "member" in str(e).lower()


def test_built_schedule_is_valid(db_session, built):
    schedule, *_ = built
    assert validate_schedule(db_session, schedule.id) == []


def test_holiday_added_after_build_is_reported(db_session, built):
    schedule, vocals, ana, ben = built
    ana.holidays.append(Holiday(start_date=dt.date(2026, 2, 1), end_date=dt.date(2026, 2, 10)))
    db_session.commit()

    conflicts = validate_schedule(db_session, schedule.id)

    assert [(c.date, c.member_name) for c in conflicts] == [(dt.date(2026, 2, 6), "Ana")]


def test_overfilled_role_raises(db_session, built):
    schedule, vocals, ana, ben = built
    first = AssignmentRepository.get_by_schedule(db_session, schedule.id)[0]
    other = ben if first.member_id == ana.id else ana
    db_session.add(Assignment(schedule_date_id=first.schedule_date_id, role_id=vocals.id, member_id=other.id))
    db_session.commit()

    with pytest.raises(ConsistencyViolation):
        validate_schedule(db_session, schedule.id)


def test_summary_text(db_session, built):
    schedule, *_ = built
    df = assignments_frame(db_session, schedule.id)
    assert len(df) == 4

    text = summarize_assignments(df)
    assert "Coverage per date per role:" in text
    assert "Ana" in text and "Ben" in text
    assert text.endswith("Fairness spread (max - min): 0")


def test_empty_frames():
    empty = pd.DataFrame(columns=["date", "label", "role_id", "role", "member_id", "member"])
    assert summarize_assignments(empty) == "No assignments."

    df = unfilled_frame([UnfilledSlot(date=dt.date(2026, 2, 6), role_id=3, missing=1, reason="understaffed")])
    assert df.to_dict("records") == [{"date": "2026-02-06", "role_id": 3, "missing": 1, "reason": "understaffed"}]
