"""
Activity and Activity Type data models for the Event Program Engine.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator, ConfigDict
from datetime import datetime, time


class ParticipantRole(str, Enum):
    """Closed set of participant roles. Every rule evaluation keys off one of these."""
    MEMBRE_JUNIOR = "MEMBRE_JUNIOR"
    MEMBRE_SENIOR = "MEMBRE_SENIOR"
    RESPONSABLE = "RESPONSABLE"
    QUARTET = "QUARTET"
    CDM = "CDM"
    ALUMNUS = "ALUMNUS"
    ALUMNA = "ALUMNA"
    BUREAU_NATIONAL = "BUREAU_NATIONAL"
    INTERNATIONAL_GUEST = "INTERNATIONAL_GUEST"
    OC = "OC"


class Day(str, Enum):
    """Day-partition used to scope time-conflict checks."""
    J_1 = "J_1"
    J_2 = "J_2"


class ActivityType(BaseModel):
    """A scheduling 'slot family' (e.g. Workshops, Plenary). Grouping only."""
    id: int = Field(description="Unique identifier")
    name: str = Field(min_length=1, description="Human-readable name")
    description: Optional[str] = Field(default=None)
    day: Day = Field(description="Day-partition every activity of this type belongs to")
    earliest_time: Optional[time] = Field(default=None, description="Earliest start of the family")
    latest_time: Optional[time] = Field(default=None, description="Latest end of the family")

    @model_validator(mode='after')
    def validate_window(self):
        if self.earliest_time and self.latest_time and self.latest_time <= self.earliest_time:
            raise ValueError("latest_time must be after earliest_time")
        return self


class Activity(BaseModel):
    """
    A single timed activity of the event catalog.
    Read-only from the engine's point of view; edited by admin workflows only.
    """

    # --- Core Identity ---
    id: int = Field(description="Unique identifier for the activity")
    name: str = Field(min_length=1, description="Human-readable name")
    description: Optional[str] = Field(default=None)

    # --- Timing ---
    start_time: datetime = Field(description="Start instant")
    end_time: datetime = Field(description="End instant (same timezone as start)")
    activity_type_id: int = Field(description="Slot family this activity belongs to")
    day: Day = Field(description="Day-partition, derived from the activity type")

    # --- Enrolment ---
    capacity: int = Field(default=0, ge=0, description="Seats available")
    is_required: bool = Field(default=False, description="Mandatory for every participant")
    required_for_roles: List[ParticipantRole] = Field(
        default_factory=list,
        description="Roles for which this activity is mandatory"
    )

    @model_validator(mode='after')
    def validate_time_window(self):
        """Ensure start and end form a valid window."""
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def is_mandatory_for(self, role: ParticipantRole) -> bool:
        return self.is_required or role in self.required_for_roles

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "id": 1,
            "name": "Opening Ceremony",
            "start_time": "2026-02-20T09:00:00",
            "end_time": "2026-02-20T10:00:00",
            "activity_type_id": 1,
            "day": "J_1",
            "capacity": 500,
            "is_required": True,
            "required_for_roles": []
        }
    })
