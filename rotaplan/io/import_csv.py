"""CSV import utilities to load members into the database."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from rotaplan.calendar import normalize_day_name
from rotaplan.config import SchedulerConfig
from rotaplan.domain.models import Availability, Holiday, Member
from rotaplan.domain.repositories import MemberRepository, RoleRepository, WeekdayRepository
from rotaplan.errors import InputError
from rotaplan.services.loader import require_group
from rotaplan.services.timeplan import FULL_DAY, parse_time_string

REQUIRED_COLUMNS = {"name"}


def _split(value) -> List[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return []
    return [part.strip() for part in str(value).split(";") if part.strip()]


def parse_availability(value, default_window: Tuple[str, str] = FULL_DAY) -> List[Tuple[str, str, str]]:
    """
    Parse "Friday 18:00-22:00;Sunday" into (weekday, start, end) triples.

    A weekday without a window gets `default_window`.
    """
    entries = []
    for part in _split(value):
        day, _, window = part.partition(" ")
        weekday = normalize_day_name(day)
        if not window.strip():
            entries.append((weekday, *default_window))
            continue
        start, sep, end = window.strip().partition("-")
        if not sep:
            raise InputError(f"Availability window must be HH:MM-HH:MM, got {window!r}")
        parse_time_string(start)
        parse_time_string(end)
        entries.append((weekday, start.strip(), end.strip()))
    return entries


def parse_holidays(value) -> List[Tuple[date, date]]:
    """Parse "2026-02-01..2026-02-07;2026-03-10" into inclusive (start, end) pairs."""
    ranges = []
    for part in _split(value):
        start, _, end = part.partition("..")
        try:
            start_date = pd.Timestamp(start.strip()).date()
            end_date = pd.Timestamp((end or start).strip()).date()
        except ValueError as e:
            raise InputError(f"Invalid holiday {part!r}: {e}") from e
        if end_date < start_date:
            raise InputError(f"Holiday ends before it starts: {part!r}")
        ranges.append((start_date, end_date))
    return ranges


def import_members_csv(
    session: Session, group_id: int, csv_path: str | Path, cfg: Optional[SchedulerConfig] = None
) -> int:
    """
    Import members of a group from CSV.

    Columns: name (required), roles, availability, holidays. List columns are
    ';'-separated; roles are matched by name within the group.

    Args:
        session: Database session
        group_id: Group receiving the members
        csv_path: Path to members CSV
        cfg: SchedulerConfig; its default_window fills availability without times

    Returns:
        Number of members imported

    Raises:
        InputError: On unknown roles, weekdays or malformed windows; nothing is written
    """
    cfg = cfg or SchedulerConfig()
    default_window = (cfg.default_window.start, cfg.default_window.end)
    require_group(session, group_id)
    df = pd.read_csv(csv_path, dtype=str)

    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise InputError(f"Members CSV is missing columns: {sorted(missing)}")

    roles_by_name = {r.name.lower(): r for r in RoleRepository.get_by_group(session, group_id)}
    weekday_ids = {w.name: w.id for w in WeekdayRepository.get_all(session)}
    if not weekday_ids:
        raise InputError("Weekdays are not seeded; run init-db first")

    members = []
    for _, row in df.iterrows():
        name = str(row["name"]).strip()
        if not name or name.lower() == "nan":
            continue
        member = Member(group_id=group_id, name=name)

        for role_name in _split(row.get("roles")):
            role = roles_by_name.get(role_name.lower())
            if role is None:
                raise InputError(f"Unknown role {role_name!r} for member {name!r}")
            member.roles.append(role)

        for weekday, start, end in parse_availability(row.get("availability"), default_window):
            member.availability.append(
                Availability(weekday_id=weekday_ids[weekday], start_time_utc=start, end_time_utc=end)
            )

        for start_date, end_date in parse_holidays(row.get("holidays")):
            member.holidays.append(Holiday(start_date=start_date, end_date=end_date))

        members.append(member)

    # Bulk insert
    MemberRepository.bulk_create(session, members)

    print(f"[INFO] Imported {len(members)} members from {csv_path}")
    return len(members)

