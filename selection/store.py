"""
Store interfaces and in-memory implementations.

This module acts as the 'Memory' of the system:
1. Catalog access (read-only activities and correlations).
2. Selection rows (the only thing the engine writes).
3. Participant lookup.
4. Per-participant locks that serialize read-modify-write cycles.

The engine only talks to the Protocols, so a relational backend can be
plugged in without touching the selection logic.
"""

import itertools
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, List, Optional, Protocol

from models import Activity, ActivityCorrelation, EventCatalog, Participant, Selection
from .errors import DuplicateSelectionError


class CatalogStore(Protocol):
    def list_activities(self) -> List[Activity]: ...

    def get_activity(self, activity_id: int) -> Optional[Activity]: ...

    def list_correlations(self, activity_id: Optional[int] = None) -> List[ActivityCorrelation]: ...


class SelectionStore(Protocol):
    def list_selections(self, participant_id: int) -> List[Selection]: ...

    def find_selection(self, participant_id: int, activity_id: int) -> Optional[Selection]: ...

    def create_selection(self, participant_id: int, activity_id: int) -> Selection: ...

    def delete_selection(self, selection_id: int) -> None: ...

    def count_for_activity(self, activity_id: int) -> int: ...


class ParticipantDirectory(Protocol):
    def get_participant(self, participant_id: int) -> Optional[Participant]: ...


class InMemoryCatalog:
    """Read-only catalog backed by a validated EventCatalog snapshot."""

    def __init__(self, catalog: EventCatalog):
        self.catalog = catalog
        # Index for O(1) lookup
        self._activities = catalog.activity_map()

    def list_activities(self) -> List[Activity]:
        return list(self.catalog.activities)

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        return self._activities.get(activity_id)

    def list_correlations(self, activity_id: Optional[int] = None) -> List[ActivityCorrelation]:
        """All correlations, or only the ones touching activity_id as source or target."""
        if activity_id is None:
            return list(self.catalog.correlations)
        return [c for c in self.catalog.correlations if c.touches(activity_id)]


class InMemorySelectionStore:
    """
    Selection rows keyed by id, with a (participant, activity) index that
    enforces the one-row-per-pair invariant.
    """

    def __init__(self):
        self._rows: Dict[int, Selection] = {}
        self._by_pair: Dict[tuple, int] = {}
        self._ids = itertools.count(1)
        self._last_enrolled: Optional[datetime] = None
        self._mutex = threading.Lock()

    def list_selections(self, participant_id: int) -> List[Selection]:
        """Participant's program in enrolment order."""
        with self._mutex:
            rows = [s for s in self._rows.values() if s.participant_id == participant_id]
        return sorted(rows, key=lambda s: (s.enrolled_at, s.id))

    def find_selection(self, participant_id: int, activity_id: int) -> Optional[Selection]:
        with self._mutex:
            selection_id = self._by_pair.get((participant_id, activity_id))
            return self._rows.get(selection_id) if selection_id is not None else None

    def create_selection(self, participant_id: int, activity_id: int) -> Selection:
        with self._mutex:
            key = (participant_id, activity_id)
            if key in self._by_pair:
                raise DuplicateSelectionError(
                    f"Participant {participant_id} already holds activity {activity_id}"
                )
            # Enrolment instants never go backwards, so listing order is insertion order
            enrolled_at = datetime.now(timezone.utc)
            if self._last_enrolled is not None and enrolled_at <= self._last_enrolled:
                enrolled_at = self._last_enrolled + timedelta(microseconds=1)
            self._last_enrolled = enrolled_at

            selection = Selection(
                id=next(self._ids),
                participant_id=participant_id,
                activity_id=activity_id,
                enrolled_at=enrolled_at,
            )
            self._rows[selection.id] = selection
            self._by_pair[key] = selection.id
            return selection

    def delete_selection(self, selection_id: int) -> None:
        with self._mutex:
            selection = self._rows.pop(selection_id, None)
            if selection is not None:
                del self._by_pair[(selection.participant_id, selection.activity_id)]

    def count_for_activity(self, activity_id: int) -> int:
        with self._mutex:
            return sum(1 for s in self._rows.values() if s.activity_id == activity_id)

    def all_selections(self) -> List[Selection]:
        with self._mutex:
            return sorted(self._rows.values(), key=lambda s: s.id)

    def clear(self) -> None:
        """Reset state (useful for testing or re-running demos)."""
        with self._mutex:
            self._rows.clear()
            self._by_pair.clear()


class InMemoryParticipants:
    def __init__(self, participants: Optional[List[Participant]] = None):
        self._participants = {p.id: p for p in (participants or [])}

    def add(self, participant: Participant) -> None:
        self._participants[participant.id] = participant

    def get_participant(self, participant_id: int) -> Optional[Participant]:
        return self._participants.get(participant_id)


class ParticipantLocks:
    """
    One re-entrant lock per participant.
    Operations on the same participant run one at a time; different
    participants never wait on each other.
    """

    def __init__(self):
        self._locks: Dict[int, threading.RLock] = defaultdict(threading.RLock)
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, participant_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks[participant_id]
        with lock:
            yield
