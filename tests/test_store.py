"""Tests for the in-memory stores and participant locks."""

import threading
import time

import pytest

from models import EventCatalog, Participant, ParticipantRole
from selection import (
    DuplicateSelectionError,
    InMemoryCatalog,
    InMemoryParticipants,
    InMemorySelectionStore,
    ParticipantLocks,
    SelectionEngine,
)


def test_one_selection_per_pair():
    store = InMemorySelectionStore()
    store.create_selection(1, 10)

    with pytest.raises(DuplicateSelectionError):
        store.create_selection(1, 10)

    # Same activity for another participant is fine
    store.create_selection(2, 10)
    assert store.count_for_activity(10) == 2


def test_list_selections_in_enrolment_order():
    store = InMemorySelectionStore()
    for activity_id in [30, 10, 20]:
        store.create_selection(1, activity_id)
    store.create_selection(2, 40)

    rows = store.list_selections(1)

    assert [s.activity_id for s in rows] == [30, 10, 20]
    assert rows[0].enrolled_at < rows[1].enrolled_at < rows[2].enrolled_at


def test_delete_selection_frees_the_pair():
    store = InMemorySelectionStore()
    selection = store.create_selection(1, 10)

    store.delete_selection(selection.id)
    store.delete_selection(selection.id)

    assert store.find_selection(1, 10) is None
    assert store.create_selection(1, 10).id != selection.id


def test_clear_resets_rows():
    store = InMemorySelectionStore()
    store.create_selection(1, 10)

    store.clear()

    assert store.all_selections() == []
    store.create_selection(1, 10)


def test_catalog_lists_correlations_touching_activity(activity, correlation):
    catalog = InMemoryCatalog(EventCatalog(
        activities=[activity(1, "09:00", "10:00"), activity(2, "11:00", "12:00"), activity(3, "14:00", "15:00")],
        correlations=[correlation(1, "REQUIRES", 1, 2), correlation(2, "EXCLUDES", 3, 1)],
    ))

    assert [c.id for c in catalog.list_correlations(1)] == [1, 2]
    assert [c.id for c in catalog.list_correlations(2)] == [1]
    assert len(catalog.list_correlations()) == 2
    assert catalog.get_activity(9) is None


def test_participant_directory():
    directory = InMemoryParticipants()
    directory.add(Participant(id=5, role=ParticipantRole.OC, first_name="Ada"))

    assert directory.get_participant(5).display_name == "Ada"
    assert directory.get_participant(6) is None


def test_locks_are_reentrant():
    locks = ParticipantLocks()

    with locks.hold(1):
        with locks.hold(1):
            pass


def test_locks_serialize_one_participant():
    locks = ParticipantLocks()
    events = []

    def worker(name):
        with locks.hold(1):
            events.append(("enter", name))
            time.sleep(0.01)
            events.append(("exit", name))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for i in range(0, len(events), 2):
        assert events[i][0] == "enter"
        assert events[i + 1] == ("exit", events[i][1])


def test_concurrent_selects_never_double_book(activity):
    acts = [activity(i, "09:00", "10:00") for i in range(1, 9)]
    store = InMemorySelectionStore()
    engine = SelectionEngine(
        catalog=InMemoryCatalog(EventCatalog(activities=acts)),
        selections=store,
        participants=InMemoryParticipants([Participant(id=1, role=ParticipantRole.MEMBRE_JUNIOR)]),
    )

    threads = [threading.Thread(target=engine.select, args=(1, a.id)) for a in acts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.list_selections(1)) == 1
