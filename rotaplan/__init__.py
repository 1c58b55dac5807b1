"""Rotational monthly schedule generation for groups of members.

Modules:
- config: load and validate configuration (YAML or JSON)
- calendar: weekday names and month date expansion
- errors: exception taxonomy
- domain: SQLAlchemy models, database helpers and repositories
- services: eligibility, constraints, fairness scoring, group loading, configuration writes, impact
- engine: event materializer, rotation and CP-SAT assigners, schedule builder, recalculator
- validator: post-build invariant checks and summaries
- io: CSV import/export
- cli: command-line interface entrypoints
"""

__version__ = "1.0.0"

__all__ = [
    "config",
    "calendar",
    "errors",
    "domain",
    "services",
    "engine",
    "validator",
    "io",
    "cli",
]
