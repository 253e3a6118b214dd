"""
Program data models for the Event Program Engine.

This module defines the 'Output' of the selection engine:
the rows associating a participant with the activities they hold.
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from .activity import ParticipantRole


class Participant(BaseModel):
    """Caller identity, already authenticated upstream."""
    id: int
    role: ParticipantRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or f"participant #{self.id}"


class Selection(BaseModel):
    """
    A participant's claim on one activity (a 'program entry').
    Created and deleted by the engine, never mutated in place.
    """

    id: int = Field(description="Unique identifier of the row")
    participant_id: int
    activity_id: int
    enrolled_at: datetime = Field(description="Insertion instant, drives listing order")

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "id": 42,
            "participant_id": 3,
            "activity_id": 12,
            "enrolled_at": "2026-01-15T10:22:31+00:00"
        }
    })
