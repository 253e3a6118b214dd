"""
Time Conflict Detection.

This module answers the binary question: "Can Activity X sit next to what the
participant already holds?"
Two activities clash when they share a day-partition and their windows overlap.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from models import Activity, Selection
from .errors import RuleViolation


def overlaps(a: Activity, b: Activity) -> bool:
    """
    Half-open interval overlap inside the same day-partition.
    Touching endpoints (a ends exactly when b starts) do not clash.
    """
    if a.day != b.day:
        return False
    return a.start_time < b.end_time and a.end_time > b.start_time


class ConflictDetector:
    """
    Finds the existing selections that a candidate activity would collide with.
    """

    def find_conflict(
        self,
        candidate: Activity,
        selections: Iterable[Selection],
        activities: Dict[int, Activity]
    ) -> Optional[Selection]:
        """Returns the first clashing selection, or None if the slot is free."""
        hits = self.find_conflicts(candidate, selections, activities)
        return hits[0][0] if hits else None

    def find_conflicts(
        self,
        candidate: Activity,
        selections: Iterable[Selection],
        activities: Dict[int, Activity]
    ) -> List[Tuple[Selection, RuleViolation]]:
        """
        Every clashing selection with the reason it clashes.

        Held selections never clash with each other, but a candidate can still
        straddle two neighbours (e.g. 9:30-10:30 against 9-10 and 10-11).
        """
        hits = []
        for selection in selections:
            if selection.activity_id == candidate.id:
                continue

            existing = activities.get(selection.activity_id)
            if existing is None:
                # Activity was removed from the catalog; nothing to clash with
                continue

            if overlaps(candidate, existing):
                hits.append((selection, RuleViolation(
                    "Overlap",
                    f"{candidate.name} clashes with {existing.name} on {existing.day.value}",
                    existing.id,
                    existing.name,
                )))
        return hits
