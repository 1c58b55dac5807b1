"""Pytest configuration and shared fixtures."""

import datetime as dt

import pytest
from sqlalchemy.orm import sessionmaker

from rotaplan.domain.db import create_db_engine, init_schema
from rotaplan.domain.models import (
    Availability,
    ExclusiveGroup,
    Group,
    Holiday,
    Member,
    RecurringEvent,
    Role,
    Weekday,
)


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def db_url():
    """In-memory database by default; override in a module to use a file."""
    return "sqlite:///:memory:"


@pytest.fixture
def session_factory(db_url):
    engine = create_db_engine(db_url)
    init_schema(engine)
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create database session for testing."""
    session = session_factory()
    yield session
    session.close()


class GroupBuilder:
    """Small helper to populate a group in tests."""

    def __init__(self, session, group):
        self.session = session
        self.group = group

    def weekday_id(self, name):
        return self.session.query(Weekday).filter(Weekday.name == name).one().id

    def event(self, day, type="assignable", label=None, start="00:00", end="23:59", active=True):
        event = RecurringEvent(
            group_id=self.group.id,
            weekday_id=self.weekday_id(day),
            active=active,
            type=type,
            label=label,
            start_time_utc=start,
            end_time_utc=end,
        )
        self.session.add(event)
        self.session.commit()
        return event

    def exclusive_group(self, name="Stage"):
        group = ExclusiveGroup(group_id=self.group.id, name=name)
        self.session.add(group)
        self.session.commit()
        return group

    def role(self, name, required_count=1, display_order=0, depends_on=None, exclusive_group=None):
        role = Role(
            group_id=self.group.id,
            name=name,
            required_count=required_count,
            display_order=display_order,
            depends_on_role_id=depends_on.id if depends_on is not None else None,
            exclusive_group_id=exclusive_group.id if exclusive_group is not None else None,
        )
        self.session.add(role)
        self.session.commit()
        return role

    def member(self, name, roles=(), days=("Friday",), window=("00:00", "23:59"), holidays=()):
        member = Member(group_id=self.group.id, name=name)
        member.roles.extend(roles)
        for day in days:
            member.availability.append(
                Availability(weekday_id=self.weekday_id(day), start_time_utc=window[0], end_time_utc=window[1])
            )
        for start, end in holidays:
            member.holidays.append(Holiday(start_date=start, end_date=end))
        self.session.add(member)
        self.session.commit()
        return member


@pytest.fixture
def builder(db_session):
    group = Group(name="Worship Team", slug="worship")
    db_session.add(group)
    db_session.commit()
    return GroupBuilder(db_session, group)


@pytest.fixture
def feb_2026():
    """The four Fridays of February 2026."""
    return [dt.date(2026, 2, d) for d in (6, 13, 20, 27)]
