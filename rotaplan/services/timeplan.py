"""Time-of-day parsing and window arithmetic (all times are UTC "HH:MM")."""

from __future__ import annotations

from datetime import time
from typing import Tuple

from rotaplan.config import HHMM_RE
from rotaplan.errors import InputError

MINUTES_PER_DAY = 24 * 60
FULL_DAY = ("00:00", "23:59")


def parse_time_string(value: str) -> time:
    """Parse a strict "HH:MM" string."""
    match = HHMM_RE.match(str(value).strip())
    if not match:
        raise InputError(f"Time must be HH:MM, got {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def to_minutes(value: str) -> int:
    t = parse_time_string(value)
    return t.hour * 60 + t.minute


def window_bounds(start: str, end: str) -> Tuple[int, int]:
    """
    Minute offsets for a [start, end) window.

    A window whose end is not after its start crosses midnight, so the end is
    pushed into the next day.
    """
    lo, hi = to_minutes(start), to_minutes(end)
    if hi <= lo:
        hi += MINUTES_PER_DAY
    return lo, hi


def is_full_day(start: str, end: str) -> bool:
    return (start, end) == FULL_DAY


def window_contains(outer: Tuple[str, str], inner: Tuple[str, str]) -> bool:
    """True when the inner window lies entirely within the outer one."""
    o_lo, o_hi = window_bounds(*outer)
    i_lo, i_hi = window_bounds(*inner)
    # the part of an outer window past midnight belongs to the next weekday
    return o_lo <= i_lo and i_hi <= o_hi


def calculate_window_hours(start: str, end: str) -> float:
    lo, hi = window_bounds(start, end)
    return (hi - lo) / 60.0
