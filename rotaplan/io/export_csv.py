"""CSV export utilities."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.orm import Session

from rotaplan.domain.repositories import ScheduleRepository
from rotaplan.errors import InputError
from rotaplan.validator import assignments_frame


def export_assignments_csv(session: Session, csv_path: str | Path, schedule_id: int) -> int:
    """
    Export the assignments of a schedule to CSV.

    Args:
        session: Database session
        csv_path: Output path
        schedule_id: Schedule to export

    Returns:
        Number of rows written
    """
    if ScheduleRepository.get_by_id(session, schedule_id) is None:
        raise InputError(f"Unknown schedule id {schedule_id}")

    df = assignments_frame(session, schedule_id)
    df.to_csv(csv_path, index=False)

    print(f"[INFO] Exported {len(df)} assignments to {csv_path}")
    return len(df)
