"""
Program preview.

Pure, store-free simulation of a toggle on a set of selected activity ids,
driven by the same RuleSet and overlap rule as the engine. Meant for
interactive editing before an update_program() call; the engine stays the
authority and re-validates everything on save.
"""

from typing import Dict, Iterable, List, Set

from pydantic import BaseModel, Field

from models import Activity
from .conflicts import overlaps
from .rules import RuleSet


class PreviewResult(BaseModel):
    selected: List[int] = Field(default_factory=list)
    accepted: bool = True
    notices: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ProgramPreview:
    def __init__(self, rules: RuleSet, activities: Iterable[Activity]):
        self.rules = rules
        self.activities: Dict[int, Activity] = {a.id: a for a in activities}

    def initial(self, selected_ids: Iterable[int]) -> PreviewResult:
        """Current program plus every mandatory activity."""
        selected = set(selected_ids) | set(self.rules.mandatory_ids)
        return PreviewResult(selected=sorted(selected))

    def toggle(self, selected_ids: Iterable[int], activity_id: int) -> PreviewResult:
        selected = set(selected_ids)
        if activity_id in selected:
            return self._remove(selected, activity_id)
        return self._add(selected, activity_id)

    def _name(self, activity_id: int) -> str:
        activity = self.activities.get(activity_id)
        return activity.name if activity else f"#{activity_id}"

    def _reject(self, selected: Set[int], message: str) -> PreviewResult:
        return PreviewResult(selected=sorted(selected), accepted=False, warnings=[message])

    def _remove(self, selected: Set[int], activity_id: int) -> PreviewResult:
        if self.rules.is_mandatory(activity_id):
            return self._reject(selected, f"Cannot deselect required activity: {self._name(activity_id)}")

        # Cascade to everything that (transitively) requires the removed activity
        removed = {activity_id}
        changed = True
        while changed:
            changed = False
            for other in sorted(selected - removed):
                if not removed.intersection(self.rules.required_targets(other)):
                    continue
                if self.rules.is_mandatory(other):
                    return self._reject(
                        selected,
                        f"{self._name(activity_id)} is required by mandatory activity {self._name(other)}",
                    )
                removed.add(other)
                changed = True

        result = PreviewResult(selected=sorted(selected - removed))
        dependents = sorted(removed - {activity_id})
        if dependents:
            result.notices.append(f"Dependent activities deselected: {dependents}")
        return result

    def _add(self, selected: Set[int], activity_id: int) -> PreviewResult:
        activity = self.activities.get(activity_id)
        if activity is None:
            return self._reject(selected, f"Unknown activity {activity_id}")
        if self.rules.is_forbidden(activity_id):
            return self._reject(selected, f"{activity.name} is not available for your role")

        notices: List[str] = []
        warnings: List[str] = []
        working = set(selected)

        displaced = self._displaced_by(activity, working, protected=set())
        if displaced is None:
            return self._reject(selected, f"{activity.name} clashes with a required activity")
        for other in displaced:
            working.discard(other)
            notices.append(f"{self._name(other)} removed ({activity.name} takes its place)")
        working.add(activity_id)

        # Auto-picks mirror the engine's REQUIRES propagation
        placed = {activity_id}
        stack = [activity_id]
        while stack:
            source = stack.pop()
            for target_id in self.rules.auto_pick_targets(source):
                if target_id in working or target_id in placed:
                    continue
                target = self.activities.get(target_id)
                if target is None:
                    continue
                if self.rules.is_forbidden(target_id):
                    warnings.append(f"Required activity {target.name} is forbidden for your role")
                    continue
                evicted = self._displaced_by(target, working, protected=placed, evict_excluded=False)
                if evicted is None:
                    warnings.append(f"Required activity {target.name} could not be added")
                    continue
                working.difference_update(evicted)
                working.add(target_id)
                placed.add(target_id)
                stack.append(target_id)
                notices.append(f"Required activity {target.name} added automatically")

        return PreviewResult(selected=sorted(working), notices=notices, warnings=warnings)

    def _displaced_by(self, activity: Activity, selected: Set[int], protected: Set[int], evict_excluded: bool = True):
        """
        Ids that have to leave for `activity` to fit (time clashes and
        exclusions), or None if one of them is mandatory or protected.
        Auto-picks pass evict_excluded=False: an exclusion blocks them
        instead, like in the engine.
        """
        out = []
        for other_id in sorted(selected):
            other = self.activities.get(other_id)
            if other is None or other_id == activity.id:
                continue
            excluded = self.rules.excludes(activity.id, other_id)
            if excluded and not evict_excluded:
                return None
            if overlaps(activity, other) or excluded:
                if self.rules.is_mandatory(other_id) or other_id in protected:
                    return None
                out.append(other_id)
        return out
