"""Exception taxonomy for the scheduling core."""

from __future__ import annotations

from typing import Dict, List, Optional


class RotaplanError(Exception):
    """Base class for all scheduling errors."""


class InputError(RotaplanError, ValueError):
    """Malformed input or unknown identifier. Raised before any write."""


class ConsistencyViolation(RotaplanError, RuntimeError):
    """A hard invariant cannot be satisfied (dependency cycle, exclusive conflict)."""


class PartialRecalculationFailure(RotaplanError, RuntimeError):
    """One or more schedules failed during a multi-schedule recalculation."""

    def __init__(self, failures: List[int], messages: Optional[Dict[int, str]] = None):
        self.failures = list(failures)
        self.messages = dict(messages or {})
        detail = "; ".join(f"schedule {sid}: {msg}" for sid, msg in self.messages.items())
        super().__init__(
            f"Recalculation failed for {len(self.failures)} schedule(s)"
            + (f": {detail}" if detail else "")
        )
