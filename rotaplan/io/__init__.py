"""I/O utilities for CSV import/export."""

from .export_csv import export_assignments_csv
from .import_csv import import_members_csv, parse_availability, parse_holidays

__all__ = [
    "import_members_csv",
    "parse_availability",
    "parse_holidays",
    "export_assignments_csv",
]
