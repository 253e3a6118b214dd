"""
Data models package for the Event Program Engine.

This package exports the three pillars of the data architecture:
1. Catalog (Activity, ActivityType, ActivityCorrelation)
2. Actors (Participant, ParticipantRole)
3. Output (Selection)
"""

from .activity import (
    Activity,
    ActivityType,
    Day,
    ParticipantRole
)

from .correlation import (
    ActivityCorrelation,
    CorrelationRule
)

from .program import (
    Participant,
    Selection
)

from .catalog import EventCatalog

__all__ = [
    # --- Catalog Models ---
    "Activity",
    "ActivityType",
    "Day",
    "ActivityCorrelation",
    "CorrelationRule",
    "EventCatalog",

    # --- Actor Models ---
    "Participant",
    "ParticipantRole",

    # --- Output Models ---
    "Selection",
]
