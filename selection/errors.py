"""
Failure taxonomy of the selection engine.

Every rejection carries a RuleViolation so callers can render a user-facing
message (which activity, which rule) without re-querying anything.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RuleViolation:
    """Detailed reason for rejection."""
    constraint_type: str  # e.g., "Overlap", "Excludes", "Mandatory"
    reason: str
    activity_id: Optional[int] = None
    activity_name: Optional[str] = None
    rule: Optional[str] = None


class SelectionError(Exception):
    """Base class for engine rejections."""

    def __init__(self, violation: RuleViolation):
        super().__init__(violation.reason)
        self.violation = violation

    @property
    def activity_id(self) -> Optional[int]:
        return self.violation.activity_id


class NotFound(SelectionError):
    """Participant or activity absent."""


class Forbidden(SelectionError):
    """Selecting a forbidden activity, or deselecting a mandatory one."""


class Conflict(SelectionError):
    """An EXCLUDES rule or a protected activity blocks the request."""


class DuplicateSelectionError(ValueError):
    """The store already holds a selection for this (participant, activity) pair."""
