"""
The Selection Engine.

Authoritative mutation of a participant's program:
1. select   - eagerly corrective: evicts the clashing slot, auto-picks REQUIRES targets.
2. deselect - conservatively protective: never lets a mandatory activity go.

Every call compiles a fresh RuleSet and re-reads the current selections, and
runs under the participant's lock so the read-then-write sequence cannot
interleave with another operation on the same participant.
"""

import logging
from typing import Collection, Dict, List, Optional

from pydantic import BaseModel

from models import Activity, Participant, Selection
from .conflicts import ConflictDetector
from .errors import Conflict, Forbidden, NotFound, RuleViolation
from .rules import RuleSet, compile_rules
from .store import CatalogStore, ParticipantDirectory, ParticipantLocks, SelectionStore

logger = logging.getLogger(__name__)


class DeselectResult(BaseModel):
    ok: bool = True
    removed: bool = False


class SelectionEngine:
    """
    Main selection engine.
    Ingests the catalog and the participant's current program, outputs program changes.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        selections: SelectionStore,
        participants: ParticipantDirectory,
        locks: Optional[ParticipantLocks] = None,
        detector: Optional[ConflictDetector] = None
    ):
        self.catalog = catalog
        self.selections = selections
        self.participants = participants
        self.locks = locks or ParticipantLocks()
        self.detector = detector or ConflictDetector()

    # --- Public Operations ---

    def select(self, participant_id: int, activity_id: int) -> Selection:
        """
        Add activity_id to the participant's program.
        Returns the selection of the requested activity (the existing one if already held).
        """
        with self.locks.hold(participant_id):
            participant = self.load_participant(participant_id)
            activity = self.load_activity(activity_id)
            rules = self.compile_for(participant)

            # 1. Role gate
            if rules.is_forbidden(activity.id):
                raise Forbidden(RuleViolation(
                    "Forbidden",
                    f"{activity.name} is not available for role {participant.role.value}",
                    activity.id, activity.name, "EXCLUDES",
                ))

            existing = self.selections.find_selection(participant.id, activity.id)
            if existing:
                return existing

            current = self.selections.list_selections(participant.id)
            activities = self.activity_map()

            # 2. Time slot (last write wins, except over a mandatory activity)
            evicted = []
            for clash, violation in self.detector.find_conflicts(activity, current, activities):
                if rules.is_mandatory(clash.activity_id):
                    raise Conflict(RuleViolation(
                        "Mandatory",
                        f"{activity.name} clashes with mandatory activity {violation.activity_name}",
                        violation.activity_id, violation.activity_name, "MANDATORY",
                    ))
                evicted.append(clash)

            # 3. Exclusions against what will remain selected
            evicted_ids = {s.id for s in evicted}
            remaining = {s.activity_id for s in current if s.id not in evicted_ids}
            blocker = rules.excluded_by(activity.id, remaining)
            if blocker is not None:
                other = activities.get(blocker)
                other_name = other.name if other else str(blocker)
                raise Conflict(RuleViolation(
                    "Excludes",
                    f"{activity.name} cannot be combined with {other_name} (exclusion rule)",
                    blocker, other_name, "EXCLUDES",
                ))

            # 4. Commit
            for selection in evicted:
                self.selections.delete_selection(selection.id)
                logger.info(f"Participant {participant.id}: {activity.name} replaces activity {selection.activity_id}")
            created = self.selections.create_selection(participant.id, activity.id)

            # 5. REQUIRES propagation
            self._propagate(participant, activity.id, rules, path=[activity.id], placed={activity.id})
            return created

    def deselect(self, participant_id: int, activity_id: int) -> DeselectResult:
        """Remove activity_id from the program. Absent selections are a no-op."""
        with self.locks.hold(participant_id):
            participant = self.load_participant(participant_id)
            activity = self.load_activity(activity_id)
            rules = self.compile_for(participant)

            if rules.is_mandatory(activity.id):
                raise Forbidden(RuleViolation(
                    "Mandatory",
                    f"Cannot deselect required activity: {activity.name}",
                    activity.id, activity.name, "MANDATORY",
                ))

            existing = self.selections.find_selection(participant.id, activity.id)
            if existing is None:
                return DeselectResult(ok=True, removed=False)

            self.selections.delete_selection(existing.id)
            logger.info(f"Participant {participant.id}: deselected {activity.name}")
            return DeselectResult(ok=True, removed=True)

    def get_program(self, participant_id: int) -> List[Selection]:
        self.load_participant(participant_id)
        return self.selections.list_selections(participant_id)

    def rules_for(self, participant_id: int) -> RuleSet:
        return self.compile_for(self.load_participant(participant_id))

    # --- Building Blocks (shared with the reconciler) ---

    def load_participant(self, participant_id: int) -> Participant:
        participant = self.participants.get_participant(participant_id)
        if participant is None:
            raise NotFound(RuleViolation("NotFound", f"Participant {participant_id} not found"))
        return participant

    def load_activity(self, activity_id: int) -> Activity:
        activity = self.catalog.get_activity(activity_id)
        if activity is None:
            raise NotFound(RuleViolation("NotFound", f"Activity {activity_id} not found", activity_id))
        return activity

    def compile_for(self, participant: Participant) -> RuleSet:
        return compile_rules(
            self.catalog.list_activities(),
            self.catalog.list_correlations(),
            participant.role,
        )

    def activity_map(self) -> Dict[int, Activity]:
        return {a.id: a for a in self.catalog.list_activities()}

    def place(
        self,
        participant: Participant,
        activity: Activity,
        rules: RuleSet,
        protected: Collection[int] = (),
        evict_excluded: bool = False
    ) -> Optional[Selection]:
        """
        Best-effort insertion used for automatic additions (auto-picks and
        mandatory fill). Never raises on rule clashes: it skips and logs instead.

        A clashing selection is evicted unless it is mandatory or listed in
        `protected`. Exclusions skip the insertion, or evict the excluding
        selection when `evict_excluded` is set (mandatory fill).
        """
        if rules.is_forbidden(activity.id):
            logger.warning(f"Skipping {activity.name}: forbidden for role {participant.role.value}")
            return None

        current = self.selections.list_selections(participant.id)
        to_evict = []

        for clash, violation in self.detector.find_conflicts(activity, current, self.activity_map()):
            if rules.is_mandatory(clash.activity_id) or clash.activity_id in protected:
                logger.warning(f"Skipping {activity.name}: {violation.reason}")
                return None
            to_evict.append(clash)

        evicted_ids = {s.id for s in to_evict}
        for selection in current:
            if selection.id in evicted_ids:
                continue
            if not rules.excludes(activity.id, selection.activity_id):
                continue
            if evict_excluded and not rules.is_mandatory(selection.activity_id) \
                    and selection.activity_id not in protected:
                to_evict.append(selection)
                continue
            logger.warning(f"Skipping {activity.name}: excluded by selected activity {selection.activity_id}")
            return None

        for selection in to_evict:
            self.selections.delete_selection(selection.id)
            logger.info(f"Participant {participant.id}: {activity.name} evicts activity {selection.activity_id}")

        return self.selections.create_selection(participant.id, activity.id)

    def _propagate(self, participant: Participant, source_id: int, rules: RuleSet, path: List[int], placed: set) -> None:
        """
        Walk REQUIRES targets transitively. `path` guards against catalog
        cycles, `placed` keeps the activities added by this operation from
        being evicted by their own dependents.
        """
        for target_id in rules.auto_pick_targets(source_id):
            if target_id in path:
                logger.warning(
                    f"REQUIRES cycle while auto-picking: {' -> '.join(str(i) for i in path + [target_id])}"
                )
                continue
            if target_id in placed:
                continue
            if self.selections.find_selection(participant.id, target_id):
                continue

            target = self.catalog.get_activity(target_id)
            if target is None:
                logger.warning(f"Required activity {target_id} is missing from the catalog")
                continue

            if self.place(participant, target, rules, protected=placed) is None:
                continue

            logger.info(f"Participant {participant.id}: auto-picked {target.name} (required by {source_id})")
            placed.add(target_id)
            self._propagate(participant, target_id, rules, path + [target_id], placed)
