"""
Reporting helpers.

Read-only views over the stores, shaped for JSON export:
1. Capacity overview (seats taken / left per activity).
2. A participant's program grouped by day.
"""

from collections import defaultdict
from typing import Any, Dict, List

from models import Participant
from .rules import RuleSet
from .store import CatalogStore, SelectionStore


def capacity_overview(catalog: CatalogStore, selections: SelectionStore) -> List[Dict[str, Any]]:
    """Enrolment per activity, ordered by day then start time."""
    rows = []
    for activity in sorted(catalog.list_activities(), key=lambda a: (a.day.value, a.start_time, a.id)):
        enrolled = selections.count_for_activity(activity.id)
        rows.append({
            "activity_id": activity.id,
            "name": activity.name,
            "day": activity.day.value,
            "capacity": activity.capacity,
            "enrolled": enrolled,
            # Capacity is informational only; the engine does not block on it
            "capacity_left": activity.capacity - enrolled,
        })
    return rows


def build_program_report(
    catalog: CatalogStore,
    selections: SelectionStore,
    participant: Participant,
    rules: RuleSet
) -> Dict[str, Any]:
    """
    Serializes a participant's program into a dashboard-friendly structure.
    """
    schedule: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    missing = []

    for selection in selections.list_selections(participant.id):
        activity = catalog.get_activity(selection.activity_id)
        if activity is None:
            missing.append(selection.activity_id)
            continue
        schedule[activity.day.value].append({
            "activity_id": activity.id,
            "name": activity.name,
            "start_time": activity.start_time.isoformat(),
            "end_time": activity.end_time.isoformat(),
            "mandatory": rules.is_mandatory(activity.id),
            "enrolled_at": selection.enrolled_at.isoformat(),
        })

    for entries in schedule.values():
        entries.sort(key=lambda e: e["start_time"])

    selected_ids = {e["activity_id"] for entries in schedule.values() for e in entries}
    return {
        "participant": {
            "id": participant.id,
            "name": participant.display_name,
            "role": participant.role.value,
        },
        "schedule": {day: schedule[day] for day in sorted(schedule)},
        "total_activities": len(selected_ids),
        "missing_mandatory": sorted(rules.mandatory_ids - selected_ids),
        "unknown_activities": missing,
        "warnings": [w.message for w in rules.warnings],
    }
