"""
Correlation rules between activities, or between a role and an activity.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator, ConfigDict

from .activity import ParticipantRole


class CorrelationRule(str, Enum):
    """Kind of constraint a correlation encodes."""
    REQUIRES = "REQUIRES"
    EXCLUDES = "EXCLUDES"
    ALL = "ALL"


class ActivityCorrelation(BaseModel):
    """
    Declared rule attached to a source activity.

    Without a target it is a role-level constraint on the source alone
    (REQUIRES/ALL make it mandatory, EXCLUDES makes it forbidden).
    With a target it links two activities (REQUIRES/ALL pull the target in,
    EXCLUDES keeps them apart in both directions).
    """

    id: int = Field(description="Unique identifier")
    rule: CorrelationRule
    source_activity_id: int
    target_activity_id: Optional[int] = Field(default=None)
    role: Optional[ParticipantRole] = Field(
        default=None,
        description="If set, the rule only applies to participants with this role"
    )
    auto_pick_for_roles: List[ParticipantRole] = Field(
        default_factory=list,
        description="Roles eligible for automatic propagation of a REQUIRES target (empty = everyone)"
    )
    description: Optional[str] = Field(default=None)

    @model_validator(mode='after')
    def validate_shape(self):
        if self.target_activity_id is None and self.role is None:
            raise ValueError("Either target activity or role must be specified")
        if self.target_activity_id == self.source_activity_id:
            raise ValueError("A correlation cannot target its own source activity")
        return self

    @property
    def is_role_level(self) -> bool:
        return self.target_activity_id is None

    def applies_to(self, role: ParticipantRole) -> bool:
        """Unset role means the rule applies to every participant."""
        return self.role is None or self.role == role

    def auto_picks_for(self, role: ParticipantRole) -> bool:
        return not self.auto_pick_for_roles or role in self.auto_pick_for_roles

    def touches(self, activity_id: int) -> bool:
        return activity_id in (self.source_activity_id, self.target_activity_id)

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "id": 7,
            "rule": "REQUIRES",
            "source_activity_id": 12,
            "target_activity_id": 13,
            "role": None,
            "auto_pick_for_roles": ["MEMBRE_JUNIOR"]
        }
    })
