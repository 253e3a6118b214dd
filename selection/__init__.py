"""
Activity selection and correlation engine.
"""

from .conflicts import ConflictDetector, overlaps
from .engine import DeselectResult, SelectionEngine
from .errors import (
    Conflict,
    DuplicateSelectionError,
    Forbidden,
    NotFound,
    RuleViolation,
    SelectionError
)
from .preview import PreviewResult, ProgramPreview
from .reconciler import ProgramReconciler, RequiredResult
from .rules import ActivityDependencies, RuleSet, RuleWarning, compile_rules
from .store import (
    InMemoryCatalog,
    InMemoryParticipants,
    InMemorySelectionStore,
    ParticipantLocks
)

__all__ = [
    "ActivityDependencies",
    "Conflict",
    "ConflictDetector",
    "DeselectResult",
    "DuplicateSelectionError",
    "Forbidden",
    "InMemoryCatalog",
    "InMemoryParticipants",
    "InMemorySelectionStore",
    "NotFound",
    "ParticipantLocks",
    "PreviewResult",
    "ProgramPreview",
    "ProgramReconciler",
    "RequiredResult",
    "RuleSet",
    "RuleViolation",
    "RuleWarning",
    "SelectionEngine",
    "SelectionError",
    "compile_rules",
    "overlaps",
]
