"""Weekday reference data and month date expansion."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List

import pandas as pd

from rotaplan.errors import InputError

# Canonical order, Monday first. Index is used for sorting and matching.
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

LOCALIZED_WEEKDAYS = {
    "es": ("Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"),
}

_ALIASES = {name.lower(): name for name in WEEKDAYS}
for _names in LOCALIZED_WEEKDAYS.values():
    for _canonical, _local in zip(WEEKDAYS, _names):
        _ALIASES[_local.lower()] = _canonical


def normalize_day_name(name: str) -> str:
    """Map an English or localized weekday name to its canonical English name."""
    canonical = _ALIASES.get(str(name).strip().lower())
    if canonical is None:
        raise InputError(f"Unknown weekday name: {name!r}")
    return canonical


def day_index(name: str) -> int:
    """Sort index of a weekday (0 = Monday)."""
    return WEEKDAYS.index(normalize_day_name(name))


def localized_name(name: str, locale: str = "es") -> str:
    return LOCALIZED_WEEKDAYS[locale][day_index(name)]


def day_name_for(value: str | date) -> str:
    """
    Canonical weekday name for an ISO date string or date.

    Dates are treated as naive calendar days, so the result does not depend on
    the server timezone.
    """
    return pd.Timestamp(value).day_name()


def as_date(value: date | str | None) -> date:
    """Parse a cutoff date; None means today."""
    if value is None:
        return date.today()
    try:
        return pd.Timestamp(value).date()
    except ValueError as e:
        raise InputError(f"Invalid date {value!r}: {e}") from e

def validate_month_year(month: int, year: int) -> None:
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise InputError(f"month must be an integer 1-12, got {month!r}")
    if not isinstance(year, int) or not 1900 <= year <= 9999:
        raise InputError(f"year must be an integer 1900-9999, got {year!r}")


def get_schedule_dates(month: int, year: int, active_days: Iterable[str]) -> List[str]:
    """
    All dates of a month falling on one of the active weekdays.

    Args:
        month: 1-based month
        year: 4-digit year
        active_days: Weekday names (English or localized). May be empty.

    Returns:
        Ascending ISO "YYYY-MM-DD" strings, no duplicates
    """
    validate_month_year(month, year)
    wanted = {normalize_day_name(d) for d in active_days}
    if not wanted:
        return []
    start = pd.Timestamp(year=year, month=month, day=1)
    days = pd.date_range(start, periods=start.days_in_month, freq="D")
    return [d.strftime("%Y-%m-%d") for d in days if d.day_name() in wanted]
