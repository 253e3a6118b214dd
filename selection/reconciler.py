"""
Program Reconciler.

Batch operations on top of the Selection Engine:
1. ensure_required - fill in every mandatory activity (idempotent).
2. update_program  - turn a desired final program into the minimal add/remove diff.

update_program validates all removals before touching anything, but applies
additions one select() at a time without an overarching transaction: a
rejection half-way leaves the earlier additions in place. A relational backend
should wrap the whole batch in a single transaction to close that gap.
"""

import logging
from typing import Iterable, List

from pydantic import BaseModel, Field

from models import Selection
from .engine import SelectionEngine
from .errors import Conflict, RuleViolation

logger = logging.getLogger(__name__)


class RequiredResult(BaseModel):
    added: List[int] = Field(default_factory=list)


class ProgramReconciler:
    def __init__(self, engine: SelectionEngine):
        self.engine = engine

    def ensure_required(self, participant_id: int) -> RequiredResult:
        """Create the missing mandatory selections. A second call adds nothing."""
        with self.engine.locks.hold(participant_id):
            participant = self.engine.load_participant(participant_id)
            rules = self.engine.compile_for(participant)
            store = self.engine.selections

            added = []
            for activity_id in sorted(rules.mandatory_ids):
                if store.find_selection(participant.id, activity_id):
                    continue

                activity = self.engine.catalog.get_activity(activity_id)
                if activity is None:
                    logger.warning(f"Mandatory activity {activity_id} is missing from the catalog")
                    continue

                if self.engine.place(participant, activity, rules, evict_excluded=True):
                    added.append(activity_id)

            if added:
                logger.info(f"Participant {participant.id}: added mandatory activities {added}")
            return RequiredResult(added=added)

    def update_program(self, participant_id: int, desired_activity_ids: Iterable[int]) -> List[Selection]:
        """
        Make the program match desired_activity_ids, then re-assert mandatory
        selections. Additions go through the full select() pipeline in caller
        order, so the result is the fixed point of the rules rather than the
        literal input.
        """
        with self.engine.locks.hold(participant_id):
            participant = self.engine.load_participant(participant_id)
            rules = self.engine.compile_for(participant)
            store = self.engine.selections

            desired = list(dict.fromkeys(desired_activity_ids))
            desired_set = set(desired)
            current = store.list_selections(participant.id)
            current_ids = {s.activity_id for s in current}

            to_add = [a for a in desired if a not in current_ids]
            to_remove = [s for s in current if s.activity_id not in desired_set]

            # 1. Validate every removal before mutating anything
            for selection in to_remove:
                if not rules.is_mandatory(selection.activity_id):
                    continue
                activity = self.engine.catalog.get_activity(selection.activity_id)
                name = activity.name if activity else str(selection.activity_id)
                raise Conflict(RuleViolation(
                    "Mandatory",
                    f"Cannot remove required activity: {name}",
                    selection.activity_id, name, "MANDATORY",
                ))

            # 2. Removals
            for selection in to_remove:
                store.delete_selection(selection.id)
            if to_remove:
                logger.info(
                    f"Participant {participant.id}: removed {[s.activity_id for s in to_remove]}"
                )

            # 3. Additions, sequential and not rolled back on failure
            for activity_id in to_add:
                self.engine.select(participant.id, activity_id)

            self.ensure_required(participant.id)
            return store.list_selections(participant.id)
