"""Shared fixtures: tiny catalogs built inline and a wired-up engine."""

from datetime import datetime

import pytest

from models import (
    Activity,
    ActivityCorrelation,
    CorrelationRule,
    Day,
    EventCatalog,
    Participant,
    ParticipantRole,
)
from selection import (
    InMemoryCatalog,
    InMemoryParticipants,
    InMemorySelectionStore,
    ProgramReconciler,
    SelectionEngine,
)

DAYS = {Day.J_1: datetime(2026, 2, 20), Day.J_2: datetime(2026, 2, 21)}
PARTICIPANT_ID = 1


def _at(day: Day, hhmm: str) -> datetime:
    hour, minute = (int(x) for x in hhmm.split(":"))
    return DAYS[day].replace(hour=hour, minute=minute)


def build_activity(activity_id, start="09:00", end="10:00", day=Day.J_1, **kwargs) -> Activity:
    return Activity(
        id=activity_id,
        name=kwargs.pop("name", f"Activity {activity_id}"),
        start_time=_at(day, start),
        end_time=_at(day, end),
        activity_type_id=kwargs.pop("activity_type_id", 1 if day == Day.J_1 else 2),
        day=day,
        capacity=kwargs.pop("capacity", 50),
        **kwargs,
    )


def build_correlation(corr_id, rule, source, target=None, role=None, auto_pick_for_roles=()) -> ActivityCorrelation:
    return ActivityCorrelation(
        id=corr_id,
        rule=CorrelationRule(rule),
        source_activity_id=source,
        target_activity_id=target,
        role=role,
        auto_pick_for_roles=list(auto_pick_for_roles),
    )


class Harness:
    """Engine, reconciler and stores for one participant."""

    def __init__(self, activities, correlations=(), role=ParticipantRole.MEMBRE_JUNIOR):
        self.catalog = EventCatalog(activities=list(activities), correlations=list(correlations))
        self.participant = Participant(id=PARTICIPANT_ID, role=role)
        self.store = InMemorySelectionStore()
        self.engine = SelectionEngine(
            catalog=InMemoryCatalog(self.catalog),
            selections=self.store,
            participants=InMemoryParticipants([self.participant]),
        )
        self.reconciler = ProgramReconciler(self.engine)
        self.pid = PARTICIPANT_ID

    def program_ids(self):
        return [s.activity_id for s in self.store.list_selections(self.pid)]

    def assert_no_double_booking(self):
        held = [self.catalog.activity_map()[i] for i in self.program_ids()]
        for i, first in enumerate(held):
            for second in held[i + 1:]:
                same_day = first.day == second.day
                clash = first.start_time < second.end_time and first.end_time > second.start_time
                assert not (same_day and clash), f"{first.name} overlaps {second.name}"


@pytest.fixture
def activity():
    return build_activity


@pytest.fixture
def correlation():
    return build_correlation


@pytest.fixture
def harness():
    return Harness
