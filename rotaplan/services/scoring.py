"""Fairness counter and candidate ranking."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional


class FairnessTally:
    """
    Per-member assignment counter threaded through a schedule build.

    Each build works on its own tally; `snapshot()` returns a plain dict so a
    run can be reproduced from the same starting counts.
    """

    def __init__(self, counts: Optional[Mapping[int, int]] = None):
        self._counts: Dict[int, int] = {int(k): int(v) for k, v in (counts or {}).items()}

    def get(self, member_id: int) -> int:
        return self._counts.get(member_id, 0)

    def increment(self, member_id: int, by: int = 1) -> None:
        self._counts[member_id] = self.get(member_id) + by

    def merge(self, counts: Mapping[int, int]) -> "FairnessTally":
        """New tally with `counts` added to this one."""
        merged = FairnessTally(self._counts)
        for member_id, count in counts.items():
            merged.increment(int(member_id), int(count))
        return merged

    def copy(self) -> "FairnessTally":
        return FairnessTally(self._counts)

    def snapshot(self) -> Dict[int, int]:
        return dict(self._counts)

    def __repr__(self) -> str:
        return f"<FairnessTally({self._counts})>"


def rank_candidates(candidates: Iterable[int], tally: FairnessTally) -> List[int]:
    """Least-assigned first; ties by ascending member id."""
    return sorted(candidates, key=lambda m: (tally.get(m), m))


def fairness_spread(counts: Mapping[int, int], member_ids: Optional[Iterable[int]] = None) -> int:
    """
    Max minus min assignment count.

    Args:
        counts: member_id -> count
        member_ids: Members to include (missing ones count as zero). Defaults to keys of counts.

    Returns:
        Spread (0 when fewer than two members)
    """
    ids = list(member_ids) if member_ids is not None else list(counts.keys())
    if len(ids) < 2:
        return 0
    values = [counts.get(m, 0) for m in ids]
    return max(values) - min(values)
