"""
Milestone graph validation utilities.

Validates parent and dependency edges to keep the hierarchy a forest and the
dependency graph acyclic.
"""

from typing import Callable, Iterable, Iterator, Optional

from timeline_planner.core.exceptions import CycleDetected, NotFoundError, ValidationError
from timeline_planner.models.milestone import Milestone

MilestoneLookup = Callable[[str], Optional[Milestone]]


class DependencyValidator:
    """Validator for milestone parent and dependency edges."""

    def __init__(self, lookup: MilestoneLookup):
        """
        Initialize validator with a milestone lookup.

        Args:
            lookup: Callable returning the current milestone for an ID, or None
        """
        self.lookup = lookup

    def validate_dependencies(self, milestone_id: str, dependency_ids: Iterable[str]) -> None:
        """
        Validate the dependency set of a milestone.

        Args:
            milestone_id: ID of the milestone being validated
            dependency_ids: Proposed dependency IDs

        Raises:
            CycleDetected: If the milestone depends on itself, directly or transitively
            NotFoundError: If a dependency does not exist
        """
        dependency_ids = sorted(set(dependency_ids))
        if not dependency_ids:
            return

        if milestone_id in dependency_ids:
            raise CycleDetected(
                f"Milestone {milestone_id} cannot depend on itself", path=[milestone_id, milestone_id]
            )

        for dep_id in dependency_ids:
            if self.lookup(dep_id) is None:
                raise NotFoundError(f"Dependency {dep_id} of milestone {milestone_id} not found")

        # A new edge dep -> milestone closes a cycle iff milestone already reaches dep's chain
        for dep_id in dependency_ids:
            path = self._find_dependency_path(dep_id, milestone_id)
            if path:
                raise CycleDetected(
                    f"Circular dependency detected: {' -> '.join([milestone_id] + path)}",
                    path=[milestone_id] + path,
                )

    def validate_parent(self, milestone_id: str, parent_id: Optional[str], project_id: str) -> None:
        """
        Validate that setting a parent keeps the hierarchy a forest.

        Args:
            milestone_id: Milestone being updated
            parent_id: Proposed parent ID (or None)
            project_id: Project of the milestone

        Raises:
            CycleDetected: If the milestone would become its own ancestor
            NotFoundError: If the parent does not exist
            ValidationError: If the parent belongs to another project
        """
        if parent_id is None:
            return

        if parent_id == milestone_id:
            raise CycleDetected(
                f"Milestone {milestone_id} cannot be its own parent", path=[milestone_id, milestone_id]
            )

        parent = self.lookup(parent_id)
        if parent is None:
            raise NotFoundError(f"Parent milestone {parent_id} not found")
        if parent.project_id != project_id:
            raise ValidationError(
                f"Parent milestone {parent_id} belongs to project {parent.project_id}, not {project_id}"
            )

        chain = [milestone_id, parent_id]
        current = parent
        while current.parent_id is not None:
            if current.parent_id == milestone_id:
                chain.append(milestone_id)
                raise CycleDetected(
                    f"Circular hierarchy detected: {' -> '.join(chain)}", path=chain
                )
            chain.append(current.parent_id)
            current = self.lookup(current.parent_id)
            if current is None:
                break

    def _find_dependency_path(self, start_id: str, goal_id: str) -> Optional[list[str]]:
        """Depth-first search along dependency edges from start to goal."""
        stack: list[tuple[str, list[str]]] = [(start_id, [start_id])]
        visited: set[str] = set()
        while stack:
            node_id, path = stack.pop()
            if node_id == goal_id:
                return path
            if node_id in visited:
                continue
            visited.add(node_id)
            node = self.lookup(node_id)
            if node is None:
                continue
            for dep_id in sorted(node.dependencies, reverse=True):
                if dep_id not in visited:
                    stack.append((dep_id, path + [dep_id]))
        return None


def detect_cycle(edges: dict[str, Iterable[str]]) -> Optional[tuple[str, ...]]:
    """
    Find one cycle in a directed graph, if any.

    Iterative depth-first search, so chain length is not bounded by the
    interpreter's recursion limit.

    Args:
        edges: Adjacency mapping node -> successors

    Returns:
        Tuple of node IDs forming the cycle (first node repeated at the end), or None
    """
    visited: set[str] = set()
    active: set[str] = set()
    trail: list[str] = []

    for root in sorted(edges.keys()):
        if root in visited:
            continue
        visited.add(root)
        active.add(root)
        trail.append(root)
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(sorted(edges.get(root, ()))))]
        while stack:
            node, successors = stack[-1]
            nxt = next(successors, None)
            if nxt is None:
                stack.pop()
                active.discard(node)
                trail.pop()
                continue
            if nxt in active:
                idx = trail.index(nxt)
                return tuple(trail[idx:] + [nxt])
            if nxt not in visited:
                visited.add(nxt)
                active.add(nxt)
                trail.append(nxt)
                stack.append((nxt, iter(sorted(edges.get(nxt, ())))))
    return None
