"""
In-memory milestone store.

Milestones live in one id-indexed arena; parent and dependency edges are plain
id references. Two indexes are maintained incrementally:
- children: parent ID (or project root) -> child IDs
- dependents: milestone ID -> IDs of milestones that depend on it

Every mutation validates first and writes second, so a rejected call leaves
the store untouched.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Iterable, Optional
from uuid import uuid4

from timeline_planner.core.exceptions import CycleDetected, HasDependents, NotFoundError, ValidationError
from timeline_planner.core.logger import setup_logger
from timeline_planner.models.milestone import Milestone, MilestoneCreate
from timeline_planner.utils.dependency_validator import DependencyValidator, detect_cycle

logger = setup_logger(__name__)


def _order_key(milestone: Milestone) -> tuple[datetime, str]:
    return (milestone.start, milestone.id)


class MilestoneStore:
    """Ordered, indexed collection of milestones for one or more projects."""

    def __init__(self, milestones: Optional[Iterable[Milestone]] = None):
        self._milestones: dict[str, Milestone] = {}
        self._children: dict[str, set[str]] = defaultdict(set)
        self._roots: dict[str, set[str]] = defaultdict(set)
        self._dependents: dict[str, set[str]] = defaultdict(set)
        self._validator = DependencyValidator(self.get)
        if milestones:
            self.load(milestones)

    def __len__(self) -> int:
        return len(self._milestones)

    def __contains__(self, milestone_id: object) -> bool:
        return milestone_id in self._milestones

    # ===========================================
    # Queries
    # ===========================================

    def get(self, milestone_id: str) -> Optional[Milestone]:
        return self._milestones.get(milestone_id)

    def require(self, milestone_id: str) -> Milestone:
        milestone = self._milestones.get(milestone_id)
        if milestone is None:
            raise NotFoundError(f"Milestone {milestone_id} not found")
        return milestone

    def children(self, milestone_id: str) -> list[Milestone]:
        """Direct children ordered by start, ties broken by ID."""
        return self._sorted(self._children.get(milestone_id, ()))

    def roots(self, project_id: str) -> list[Milestone]:
        """Top-level milestones of a project ordered by start, then ID."""
        return self._sorted(self._roots.get(project_id, ()))

    def siblings(self, milestone: Milestone) -> list[Milestone]:
        """Milestones sharing the same parent (or project root), excluding the milestone itself."""
        if milestone.parent_id is None:
            ids = self._roots.get(milestone.project_id, ())
        else:
            ids = self._children.get(milestone.parent_id, ())
        return self._sorted(i for i in ids if i != milestone.id)

    def dependents(self, milestone_id: str) -> set[str]:
        """IDs of milestones whose dependencies contain milestone_id."""
        return set(self._dependents.get(milestone_id, ()))

    def ancestors(self, milestone_id: str) -> list[Milestone]:
        """Parent chain from the direct parent up to the root."""
        chain: list[Milestone] = []
        current = self.get(milestone_id)
        while current is not None and current.parent_id is not None:
            current = self.get(current.parent_id)
            if current is not None:
                chain.append(current)
        return chain

    def depth(self, milestone_id: str) -> int:
        """True depth of the parent chain."""
        return len(self.ancestors(milestone_id))

    def is_visible(self, milestone_id: str) -> bool:
        """True when every ancestor is expanded."""
        return all(ancestor.is_expanded for ancestor in self.ancestors(milestone_id))

    def list_by_project(self, project_id: str, visible_only: bool = False) -> list[Milestone]:
        """
        List a project's milestones in display (depth-first tree) order.

        Args:
            project_id: Project to list
            visible_only: Skip descendants of collapsed milestones

        Returns:
            Milestones, parents before children, siblings by start then ID
        """
        ordered: list[Milestone] = []
        stack = list(reversed(self.roots(project_id)))
        while stack:
            milestone = stack.pop()
            ordered.append(milestone)
            if visible_only and not milestone.is_expanded:
                continue
            stack.extend(reversed(self.children(milestone.id)))
        return ordered

    def snapshot(self, project_id: Optional[str] = None) -> dict[str, dict[str, Any]]:
        """Comparable dump of the stored milestones."""
        return {
            milestone_id: milestone.model_dump()
            for milestone_id, milestone in sorted(self._milestones.items())
            if project_id is None or milestone.project_id == project_id
        }

    # ===========================================
    # Mutations
    # ===========================================

    def create(self, data: MilestoneCreate) -> Milestone:
        """Build a milestone from a create schema and insert it."""
        payload = data.model_dump(exclude={"id"})
        milestone = Milestone(id=data.id or str(uuid4()), **payload)
        if milestone.id in self._milestones:
            raise ValidationError(f"Milestone {milestone.id} already exists")
        return self.upsert(milestone)

    def upsert(self, milestone: Milestone) -> Milestone:
        """
        Insert or replace a milestone after validating graph invariants.

        Args:
            milestone: Milestone to store; its indent is recomputed

        Returns:
            Milestone: The stored milestone

        Raises:
            CycleDetected: If a parent or dependency edge would create a cycle
            NotFoundError: If a referenced parent or dependency does not exist
            ValidationError: If the project changes or the parent is in another project
        """
        existing = self.get(milestone.id)
        if existing is not None and existing.project_id != milestone.project_id:
            raise ValidationError(
                f"Milestone {milestone.id} cannot move from project {existing.project_id} to {milestone.project_id}"
            )

        self._validator.validate_parent(milestone.id, milestone.parent_id, milestone.project_id)
        self._validator.validate_dependencies(milestone.id, milestone.dependencies)

        parent = self.get(milestone.parent_id) if milestone.parent_id else None
        indent = parent.indent + 1 if parent is not None else 0
        stored = milestone if milestone.indent == indent else milestone.with_changes(indent=indent)

        if existing is not None:
            self._unlink(existing)
        self._link(stored)
        self._reindent_subtree(stored.id)
        logger.debug(f"Upserted milestone {stored.id} (indent={stored.indent})")
        return self._milestones[stored.id]

    def update_bounds(self, milestone_id: str, start: datetime, end: datetime) -> Milestone:
        """Replace only the temporal bounds of a milestone."""
        current = self.require(milestone_id)
        updated = current.with_bounds(start, end)
        self._replace(updated)
        return updated

    def set_expanded(self, milestone_id: str, expanded: bool) -> Milestone:
        current = self.require(milestone_id)
        if current.is_expanded == expanded:
            return current
        updated = current.with_changes(is_expanded=expanded)
        self._replace(updated)
        return updated

    def toggle_expanded(self, milestone_id: str) -> Milestone:
        current = self.require(milestone_id)
        return self.set_expanded(milestone_id, not current.is_expanded)

    def remove(self, milestone_id: str, force: bool = False) -> list[Milestone]:
        """
        Remove a milestone.

        Children are promoted to the removed milestone's parent. On forced
        removal, dependents drop the removed ID from their dependencies.

        Args:
            milestone_id: Milestone to remove
            force: Remove even when other milestones depend on it

        Returns:
            list[Milestone]: Other milestones changed by the removal

        Raises:
            NotFoundError: If the milestone does not exist
            HasDependents: If dependents exist and force is False
        """
        target = self.require(milestone_id)
        dependents = self.dependents(milestone_id)
        if dependents and not force:
            raise HasDependents(milestone_id, dependents)

        changed: dict[str, Milestone] = {}
        children = self.children(milestone_id)
        self._unlink(target)
        self._dependents.pop(milestone_id, None)

        for dependent_id in sorted(dependents):
            dependent = self._milestones[dependent_id]
            updated = dependent.with_changes(dependencies=dependent.dependencies - {milestone_id})
            self._milestones[dependent_id] = updated
            changed[dependent_id] = updated

        for child in children:
            current = self._milestones[child.id]
            promoted = current.with_changes(parent_id=target.parent_id)
            self._unlink(current)
            self._link(promoted)
            for updated in self._reindent_subtree(child.id):
                changed[updated.id] = updated
            changed[child.id] = self._milestones[child.id]
        self._children.pop(milestone_id, None)

        logger.info(
            f"Removed milestone {milestone_id} (force={force}, dependents={len(dependents)}, children={len(children)})"
        )
        return list(changed.values())

    def load(self, milestones: Iterable[Milestone]) -> list[Milestone]:
        """
        Atomically replace the contents of every project present in the batch.

        The batch is validated as a whole, so parents and dependencies may
        appear in any order.

        Raises:
            ValidationError: On duplicate IDs
            NotFoundError: On dangling parent or dependency references
            CycleDetected: If the hierarchy or dependency graph has a cycle
        """
        batch = list(milestones)
        project_ids = {m.project_id for m in batch}
        arena = {
            mid: m for mid, m in self._milestones.items() if m.project_id not in project_ids
        }
        for milestone in batch:
            if milestone.id in arena:
                raise ValidationError(f"Duplicate milestone ID {milestone.id}")
            arena[milestone.id] = milestone

        for milestone in batch:
            if milestone.parent_id is not None:
                parent = arena.get(milestone.parent_id)
                if parent is None:
                    raise NotFoundError(f"Parent milestone {milestone.parent_id} not found")
                if parent.project_id != milestone.project_id:
                    raise ValidationError(
                        f"Parent milestone {milestone.parent_id} belongs to another project"
                    )
            for dep_id in milestone.dependencies:
                if dep_id not in arena:
                    raise NotFoundError(f"Dependency {dep_id} of milestone {milestone.id} not found")

        parent_edges = {mid: ([m.parent_id] if m.parent_id else []) for mid, m in arena.items()}
        cycle = detect_cycle(parent_edges)
        if cycle:
            raise CycleDetected(f"Circular hierarchy detected: {' -> '.join(cycle)}", path=list(cycle))
        dependency_edges = {mid: sorted(m.dependencies) for mid, m in arena.items()}
        cycle = detect_cycle(dependency_edges)
        if cycle:
            raise CycleDetected(f"Circular dependency detected: {' -> '.join(cycle)}", path=list(cycle))

        self._milestones = arena
        self._rebuild_indexes()
        for root_ids in list(self._roots.values()):
            for root_id in list(root_ids):
                self._reindent_subtree(root_id)
        logger.info(f"Loaded {len(batch)} milestones for projects {sorted(project_ids)}")
        return [self._milestones[m.id] for m in batch]

    def clear(self, project_id: Optional[str] = None) -> None:
        if project_id is None:
            self._milestones = {}
        else:
            self._milestones = {
                mid: m for mid, m in self._milestones.items() if m.project_id != project_id
            }
        self._rebuild_indexes()

    # ===========================================
    # Index maintenance
    # ===========================================

    def _sorted(self, ids: Iterable[str]) -> list[Milestone]:
        return sorted((self._milestones[i] for i in ids), key=_order_key)

    def _replace(self, milestone: Milestone) -> None:
        """Swap in a copy whose graph edges are unchanged."""
        self._milestones[milestone.id] = milestone

    def _link(self, milestone: Milestone) -> None:
        self._milestones[milestone.id] = milestone
        if milestone.parent_id is None:
            self._roots[milestone.project_id].add(milestone.id)
        else:
            self._children[milestone.parent_id].add(milestone.id)
        for dep_id in milestone.dependencies:
            self._dependents[dep_id].add(milestone.id)

    def _unlink(self, milestone: Milestone) -> None:
        self._milestones.pop(milestone.id, None)
        if milestone.parent_id is None:
            self._roots[milestone.project_id].discard(milestone.id)
        else:
            self._children[milestone.parent_id].discard(milestone.id)
        for dep_id in milestone.dependencies:
            self._dependents[dep_id].discard(milestone.id)

    def _rebuild_indexes(self) -> None:
        self._children = defaultdict(set)
        self._roots = defaultdict(set)
        self._dependents = defaultdict(set)
        for milestone in self._milestones.values():
            if milestone.parent_id is None:
                self._roots[milestone.project_id].add(milestone.id)
            else:
                self._children[milestone.parent_id].add(milestone.id)
            for dep_id in milestone.dependencies:
                self._dependents[dep_id].add(milestone.id)

    def _reindent_subtree(self, milestone_id: str) -> list[Milestone]:
        """Recompute indent for a milestone and its descendants; returns the changed ones."""
        changed: list[Milestone] = []
        root = self._milestones[milestone_id]
        parent = self._milestones.get(root.parent_id) if root.parent_id else None
        stack = [(milestone_id, parent.indent + 1 if parent is not None else 0)]
        while stack:
            node_id, indent = stack.pop()
            node = self._milestones[node_id]
            if node.indent != indent:
                node = node.with_changes(indent=indent)
                self._milestones[node_id] = node
                changed.append(node)
            for child_id in self._children.get(node_id, ()):
                stack.append((child_id, indent + 1))
        return changed
