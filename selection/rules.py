"""
Rule Compiler.

Turns the raw catalog (activities + correlations) into the per-role RuleSet
consumed by every other component. This is the only place where a
participant's role is compared against catalog data; the engine, the
reconciler and the preview only ever look at the derived sets.

The output is a plain value and is deterministic for a given catalog snapshot
and role, so the same structure can be serialized and shipped to a client
for previews.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import Activity, ActivityCorrelation, CorrelationRule, ParticipantRole
from .conflicts import overlaps

logger = logging.getLogger(__name__)


class ActivityDependencies(BaseModel):
    """Outgoing activity-to-activity constraints of one source activity."""
    required: List[int] = Field(default_factory=list)
    excluded: List[int] = Field(default_factory=list)


class RuleWarning(BaseModel):
    """Catalog-content problem spotted while compiling (never fatal)."""
    kind: str  # "forbidden_mandatory", "requires_cycle", "mandatory_overlap"
    message: str
    activity_ids: List[int] = Field(default_factory=list)


class RuleSet(BaseModel):
    """Per-role view of the catalog rules."""

    role: ParticipantRole
    mandatory_ids: FrozenSet[int] = Field(default_factory=frozenset)
    forbidden_ids: FrozenSet[int] = Field(default_factory=frozenset)
    dependencies: Dict[int, ActivityDependencies] = Field(default_factory=dict)

    # REQUIRES targets eligible for automatic selection for this role
    auto_picks: Dict[int, List[int]] = Field(default_factory=dict)

    warnings: List[RuleWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def is_mandatory(self, activity_id: int) -> bool:
        return activity_id in self.mandatory_ids

    def is_forbidden(self, activity_id: int) -> bool:
        return activity_id in self.forbidden_ids

    def required_targets(self, activity_id: int) -> List[int]:
        deps = self.dependencies.get(activity_id)
        return list(deps.required) if deps else []

    def auto_pick_targets(self, activity_id: int) -> List[int]:
        return list(self.auto_picks.get(activity_id, []))

    def excludes(self, a: int, b: int) -> bool:
        """EXCLUDES is symmetric: either side declaring it is enough."""
        deps_a = self.dependencies.get(a)
        if deps_a and b in deps_a.excluded:
            return True
        deps_b = self.dependencies.get(b)
        return bool(deps_b and a in deps_b.excluded)

    def excluded_by(self, activity_id: int, selected_ids: Iterable[int]) -> Optional[int]:
        """First selected id that is mutually exclusive with activity_id, if any."""
        for other in sorted(selected_ids):
            if other != activity_id and self.excludes(activity_id, other):
                return other
        return None


def compile_rules(
    activities: Iterable[Activity],
    correlations: Iterable[ActivityCorrelation],
    role: ParticipantRole
) -> RuleSet:
    """
    Derive mandatory, forbidden and dependency structures for one role.

    1. Activities flagged is_required, or listing the role, are mandatory.
    2. Correlations that apply to the role (role unset or equal):
       - no target: REQUIRES/ALL -> source mandatory, EXCLUDES -> source forbidden
       - with target: REQUIRES/ALL -> target required by source,
         EXCLUDES -> target excluded by source
    3. Forbidden wins over mandatory, and the clash is reported as a warning.
    """
    activity_list = sorted(activities, key=lambda a: a.id)
    correlation_list = sorted(correlations, key=lambda c: c.id)

    mandatory = set()
    forbidden = set()
    dependencies: Dict[int, ActivityDependencies] = {}
    auto_picks: Dict[int, List[int]] = {}
    warnings: List[RuleWarning] = []

    # 1. Activity-level flags
    for activity in activity_list:
        if activity.is_mandatory_for(role):
            mandatory.add(activity.id)

    # 2. Correlations
    for corr in correlation_list:
        if not corr.applies_to(role):
            continue

        source = corr.source_activity_id
        if corr.is_role_level:
            if corr.rule in (CorrelationRule.REQUIRES, CorrelationRule.ALL):
                mandatory.add(source)
            elif corr.rule == CorrelationRule.EXCLUDES:
                forbidden.add(source)
            continue

        target = corr.target_activity_id
        deps = dependencies.setdefault(source, ActivityDependencies())
        if corr.rule in (CorrelationRule.REQUIRES, CorrelationRule.ALL):
            if target not in deps.required:
                deps.required.append(target)
            if corr.rule == CorrelationRule.REQUIRES and corr.auto_picks_for(role):
                picks = auto_picks.setdefault(source, [])
                if target not in picks:
                    picks.append(target)
        elif corr.rule == CorrelationRule.EXCLUDES:
            if target not in deps.excluded:
                deps.excluded.append(target)

    # 3. Forbidden takes precedence
    clashing = sorted(mandatory & forbidden)
    for activity_id in clashing:
        msg = f"Activity {activity_id} is both mandatory and forbidden for {role.value}; treating it as forbidden"
        logger.warning(msg)
        warnings.append(RuleWarning(kind="forbidden_mandatory", message=msg, activity_ids=[activity_id]))
    mandatory -= forbidden

    warnings.extend(_find_requires_cycles(dependencies))
    warnings.extend(_find_mandatory_overlaps(activity_list, mandatory))

    return RuleSet(
        role=role,
        mandatory_ids=frozenset(mandatory),
        forbidden_ids=frozenset(forbidden),
        dependencies=dependencies,
        auto_picks=auto_picks,
        warnings=warnings,
    )


def _find_requires_cycles(dependencies: Dict[int, ActivityDependencies]) -> List[RuleWarning]:
    """Depth-first walk over required edges; every back edge closes a cycle."""
    warnings = []
    done = set()

    def visit(node: int, path: List[int]) -> None:
        deps = dependencies.get(node)
        for target in (deps.required if deps else []):
            if target in path:
                cycle = path[path.index(target):] + [target]
                msg = "REQUIRES cycle in catalog: " + " -> ".join(str(i) for i in cycle)
                logger.warning(msg)
                warnings.append(RuleWarning(kind="requires_cycle", message=msg, activity_ids=cycle[:-1]))
            elif target not in done:
                visit(target, path + [target])
        done.add(node)

    for source in sorted(dependencies):
        if source not in done:
            visit(source, [source])
    return warnings


def _find_mandatory_overlaps(activities: List[Activity], mandatory: set) -> List[RuleWarning]:
    required = [a for a in activities if a.id in mandatory]
    warnings = []
    for i, first in enumerate(required):
        for second in required[i + 1:]:
            if overlaps(first, second):
                msg = f"Mandatory activities {first.name} and {second.name} overlap on {first.day.value}"
                logger.warning(msg)
                warnings.append(RuleWarning(
                    kind="mandatory_overlap", message=msg, activity_ids=[first.id, second.id]
                ))
    return warnings
