"""Eligibility of members for a role on a schedule date."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Set, Tuple

from rotaplan.domain.values import DateSlot, MemberProfile

from .timeplan import is_full_day, window_contains


def holds_role(member: MemberProfile, role_id: int) -> bool:
    return role_id in member.role_ids


def is_on_holiday(member: MemberProfile, day: date) -> bool:
    """Inclusive start/end comparison against every holiday of the member."""
    return any(h.covers(day) for h in member.holidays)


def is_available(member: MemberProfile, weekday: str, window: Tuple[str, str], full_day: bool = False) -> bool:
    """
    Check weekly availability for a weekday and event window.

    A member is available when one of their entries for the weekday contains
    the whole event window. Full-day events only need an entry on the weekday.
    """
    entries = member.availability.get(weekday, ())
    if not entries:
        return False
    if full_day or is_full_day(*window):
        return True
    return any(window_contains(entry, window) for entry in entries)


def can_serve(member: MemberProfile, slot: DateSlot, role_id: int) -> bool:
    """
    Check if a member is eligible for a role on a date.

    Args:
        member: Member profile
        slot: Schedule date with its weekday and event snapshot
        role_id: Role to fill

    Returns:
        True if the member holds the role, is available for the event window
        on that weekday and is not on holiday that day
    """
    # 1. Role held
    if not holds_role(member, role_id):
        return False

    # 2. Weekly availability covers the event
    full_day = not slot.snapshot.is_assignable
    if not is_available(member, slot.weekday, slot.snapshot.window, full_day=full_day):
        return False

    # 3. Holidays
    if is_on_holiday(member, slot.date):
        return False

    return True


def eligible_members(slot: DateSlot, role_id: int, members: Iterable[MemberProfile]) -> Set[int]:
    """Ids of all members eligible for the role on the date. Unordered."""
    return {m.id for m in members if can_serve(m, slot, role_id)}
