"""
Custom exceptions for the timeline planner.
"""

from datetime import datetime
from typing import Any, Optional


class PlannerError(Exception):
    """Base exception for timeline_planner."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(PlannerError):
    """Resource not found."""

    pass


class ValidationError(PlannerError):
    """Validation error."""

    pass


class ForbiddenError(PlannerError):
    """Operation not allowed by the milestone's capability flags."""

    pass


class InfrastructureError(PlannerError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class BusinessLogicError(PlannerError):
    """Business logic constraint violation."""

    pass


class CycleDetected(BusinessLogicError):
    """A parent or dependency edge would create a cycle."""

    def __init__(self, message: str, path: Optional[list[str]] = None):
        super().__init__(message, details={"path": path or []})
        self.path = path or []


class HasDependents(BusinessLogicError):
    """Delete blocked because other milestones depend on the target."""

    def __init__(self, milestone_id: str, dependents: set[str]):
        super().__init__(
            f"Milestone {milestone_id} has dependents: {', '.join(sorted(dependents))}",
            details={"dependents": sorted(dependents)},
        )
        self.milestone_id = milestone_id
        self.dependents = set(dependents)


class OverlapConflict(BusinessLogicError):
    """Proposed bounds intersect a sibling milestone."""

    def __init__(self, milestone_id: str, conflicts: list[str]):
        super().__init__(
            f"Milestone {milestone_id} overlaps siblings: {', '.join(conflicts)}",
            details={"conflicts": conflicts},
        )
        self.milestone_id = milestone_id
        self.conflicts = conflicts


class DependencyOrderViolation(BusinessLogicError):
    """Proposed bounds break the temporal order of a dependency edge."""

    def __init__(self, milestone_id: str, violations: list[str]):
        super().__init__(
            f"Milestone {milestone_id} violates dependency order with: {', '.join(violations)}",
            details={"violations": violations},
        )
        self.milestone_id = milestone_id
        self.violations = violations


class PersistenceFailure(InfrastructureError):
    """
    Save collaborator rejected a locally accepted commit.

    The local entry has been rolled back to its pre-drag bounds; the host may
    re-offer the same edit.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        milestone: Optional[Any] = None,
        origin_start: Optional[datetime] = None,
        origin_end: Optional[datetime] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message, details={"reason": reason})
        self.milestone = milestone
        self.origin_start = origin_start
        self.origin_end = origin_end
        self.reason = reason
