"""Validation rules of the catalog models."""

from datetime import datetime, time

import pytest
from pydantic import ValidationError

from models import (
    ActivityCorrelation,
    ActivityType,
    CorrelationRule,
    Day,
    EventCatalog,
    Participant,
    ParticipantRole,
)

JUNIOR = ParticipantRole.MEMBRE_JUNIOR


def test_activity_window_must_be_positive(activity):
    with pytest.raises(ValidationError):
        activity(1, "10:00", "10:00")
    with pytest.raises(ValidationError):
        activity(1, "11:00", "10:00")


def test_activity_capacity_cannot_be_negative(activity):
    with pytest.raises(ValidationError):
        activity(1, capacity=-1)


def test_activity_is_frozen(activity):
    act = activity(1)

    with pytest.raises(ValidationError):
        act.name = "Renamed"


def test_activity_mandatory_for_role(activity):
    assert activity(1, is_required=True).is_mandatory_for(ParticipantRole.OC)
    targeted = activity(2, required_for_roles=[JUNIOR])
    assert targeted.is_mandatory_for(JUNIOR)
    assert not targeted.is_mandatory_for(ParticipantRole.MEMBRE_SENIOR)


def test_activity_type_window():
    ActivityType(id=1, name="Workshops", day=Day.J_1, earliest_time=time(9), latest_time=time(18))

    with pytest.raises(ValidationError):
        ActivityType(id=1, name="Workshops", day=Day.J_1, earliest_time=time(18), latest_time=time(9))


def test_correlation_needs_target_or_role():
    with pytest.raises(ValidationError):
        ActivityCorrelation(id=1, rule=CorrelationRule.REQUIRES, source_activity_id=1)
    with pytest.raises(ValidationError):
        ActivityCorrelation(id=1, rule=CorrelationRule.REQUIRES, source_activity_id=1, target_activity_id=1)

    role_level = ActivityCorrelation(id=1, rule="EXCLUDES", source_activity_id=1, role=JUNIOR)
    assert role_level.is_role_level
    assert role_level.applies_to(JUNIOR)
    assert not role_level.applies_to(ParticipantRole.OC)


def test_correlation_auto_pick_roles(correlation):
    everyone = correlation(1, "REQUIRES", 1, 2)
    seniors = correlation(2, "REQUIRES", 1, 2, auto_pick_for_roles=[ParticipantRole.MEMBRE_SENIOR])

    assert everyone.auto_picks_for(JUNIOR)
    assert not seniors.auto_picks_for(JUNIOR)
    assert seniors.touches(2) and not seniors.touches(3)


def test_catalog_rejects_duplicate_ids(activity):
    with pytest.raises(ValidationError):
        EventCatalog(activities=[activity(1), activity(1, "11:00", "12:00")])


def test_catalog_rejects_dangling_correlation(activity, correlation):
    with pytest.raises(ValidationError):
        EventCatalog(activities=[activity(1)], correlations=[correlation(1, "REQUIRES", 1, 2)])
    with pytest.raises(ValidationError):
        EventCatalog(activities=[activity(1)], correlations=[correlation(1, "ALL", 5, role=JUNIOR)])


def test_catalog_checks_day_against_activity_type(activity):
    workshops = ActivityType(id=1, name="Workshops", day=Day.J_2)

    with pytest.raises(ValidationError):
        EventCatalog(activity_types=[workshops], activities=[activity(1, activity_type_id=1)])

    catalog = EventCatalog(activity_types=[workshops], activities=[activity(1, day=Day.J_2, activity_type_id=1)])
    assert catalog.activity_map()[1].day == Day.J_2


def test_catalog_round_trips_through_json(activity, correlation):
    catalog = EventCatalog(
        activities=[activity(1), activity(2, "11:00", "12:00")],
        correlations=[correlation(1, "REQUIRES", 1, 2)],
    )

    restored = EventCatalog.model_validate(catalog.model_dump(mode="json"))

    assert restored == catalog
    assert restored.activities[0].start_time == datetime(2026, 2, 20, 9, 0)


def test_participant_display_name():
    assert Participant(id=1, role=JUNIOR, first_name="Ada", last_name="Lovelace").display_name == "Ada Lovelace"
    assert Participant(id=2, role=JUNIOR).display_name == "participant #2"
