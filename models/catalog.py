"""
Catalog snapshot model.

Bundles activity types, activities and correlations into one validated
document. This is both the in-memory catalog source and the JSON cache format.
"""

from typing import List, Dict
from pydantic import BaseModel, Field, model_validator

from .activity import Activity, ActivityType
from .correlation import ActivityCorrelation


class EventCatalog(BaseModel):
    activity_types: List[ActivityType] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)
    correlations: List[ActivityCorrelation] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_references(self):
        """Ids are unique and every reference points at a known record."""
        for label, items in (
            ("activity type", self.activity_types),
            ("activity", self.activities),
            ("correlation", self.correlations),
        ):
            ids = [item.id for item in items]
            if len(ids) != len(set(ids)):
                raise ValueError(f"Duplicate {label} id in catalog")

        types = {t.id: t for t in self.activity_types}
        for act in self.activities:
            act_type = types.get(act.activity_type_id)
            # Types are optional in a snapshot; only check the ones we know
            if act_type and act_type.day != act.day:
                raise ValueError(
                    f"Activity {act.id} is on {act.day.value} but its type "
                    f"{act_type.name} is on {act_type.day.value}"
                )

        known = {a.id for a in self.activities}
        for corr in self.correlations:
            if corr.source_activity_id not in known:
                raise ValueError(f"Correlation {corr.id} references unknown source {corr.source_activity_id}")
            if corr.target_activity_id is not None and corr.target_activity_id not in known:
                raise ValueError(f"Correlation {corr.id} references unknown target {corr.target_activity_id}")
        return self

    def activity_map(self) -> Dict[int, Activity]:
        return {a.id: a for a in self.activities}
