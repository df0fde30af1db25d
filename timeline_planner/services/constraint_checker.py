"""
Overlap and dependency-order checks for proposed milestone bounds.

The checker never mutates anything. The interaction layer calls it on every
pointer move (advisory) and once more at commit (authoritative).
"""

from __future__ import annotations

from typing import Iterable

from timeline_planner.core.exceptions import DependencyOrderViolation, OverlapConflict
from timeline_planner.models.interaction import ConstraintReport
from timeline_planner.models.milestone import Milestone
from timeline_planner.services.milestone_store import MilestoneStore
from timeline_planner.utils.datetime_utils import intervals_overlap


def check_overlap(candidate: Milestone, siblings: Iterable[Milestone]) -> list[str]:
    """
    Find siblings whose interval intersects the candidate on more than an instant.

    Only milestones sharing the candidate's parent (and project) are lanes of
    the same track; anything else passed in is ignored.

    Args:
        candidate: Milestone with proposed bounds
        siblings: Milestones to compare against

    Returns:
        list[str]: Conflicting IDs, sorted
    """
    conflicts = []
    for other in siblings:
        if other.id == candidate.id:
            continue
        if other.parent_id != candidate.parent_id or other.project_id != candidate.project_id:
            continue
        if intervals_overlap(candidate.start, candidate.end, other.start, other.end):
            conflicts.append(other.id)
    return sorted(conflicts)


def check_dependency_order(candidate: Milestone, store: MilestoneStore) -> list[str]:
    """
    Find dependencies that end after the candidate starts.

    Unresolvable dependency IDs are skipped; violations are reported, not corrected.

    Returns:
        list[str]: Violating dependency IDs, sorted
    """
    violations = []
    for dep_id in candidate.dependencies:
        dependency = store.get(dep_id)
        if dependency is None:
            continue
        if dependency.end > candidate.start:
            violations.append(dep_id)
    return sorted(violations)


def check_dependent_order(candidate: Milestone, store: MilestoneStore) -> list[str]:
    """Find dependents that start before the candidate ends."""
    violations = []
    for dependent_id in store.dependents(candidate.id):
        dependent = store.get(dependent_id)
        if dependent is None:
            continue
        if candidate.end > dependent.start:
            violations.append(dependent_id)
    return sorted(violations)


def evaluate(candidate: Milestone, store: MilestoneStore) -> ConstraintReport:
    """Run every check for a candidate against the current store."""
    return ConstraintReport(
        conflicts=tuple(check_overlap(candidate, store.siblings(candidate))),
        violations=tuple(check_dependency_order(candidate, store)),
        dependent_violations=tuple(check_dependent_order(candidate, store)),
    )


def raise_for_report(milestone_id: str, report: ConstraintReport) -> None:
    """
    Raise the blocking error for an invalid report.

    Raises:
        OverlapConflict: If any sibling overlaps
        DependencyOrderViolation: If any dependency edge is out of order
    """
    if report.conflicts:
        raise OverlapConflict(milestone_id, list(report.conflicts))
    if report.violations or report.dependent_violations:
        raise DependencyOrderViolation(
            milestone_id, sorted(set(report.violations) | set(report.dependent_violations))
        )
