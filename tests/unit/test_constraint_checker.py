"""
Unit tests for overlap and dependency-order checks.
"""

import pytest

from timeline_planner.core.exceptions import DependencyOrderViolation, OverlapConflict
from timeline_planner.models.interaction import ConstraintReport
from timeline_planner.services.constraint_checker import (
    check_dependency_order,
    check_dependent_order,
    check_overlap,
    evaluate,
    raise_for_report,
)
from timeline_planner.services.milestone_store import MilestoneStore


def test_overlapping_siblings_conflict(make_milestone):
    a = make_milestone("a", 1, 5, parent_id="p")
    b = make_milestone("b", 4, 8, parent_id="p")

    assert check_overlap(a, [b]) == ["b"]


def test_overlap_ignored_across_parents(make_milestone):
    a = make_milestone("a", 1, 5, parent_id="p")
    b = make_milestone("b", 4, 8, parent_id="q")

    assert check_overlap(a, [b]) == []


def test_touching_intervals_do_not_conflict(make_milestone):
    a = make_milestone("a", 1, 5)
    b = make_milestone("b", 5, 8)

    assert check_overlap(a, [b]) == []


def test_overlap_excludes_candidate_itself(make_milestone):
    a = make_milestone("a", 1, 5)

    assert check_overlap(a.with_bounds(a.start, a.end), [a]) == []


def test_dependency_order(make_milestone):
    store = MilestoneStore()
    store.upsert(make_milestone("a", 1, 5))
    b = store.upsert(make_milestone("b", 6, 8, dependencies=("a",)))

    assert check_dependency_order(b, store) == []
    assert check_dependency_order(b.with_bounds(b.start.replace(day=4), b.end), store) == ["a"]
    # Dependent may start exactly when the dependency ends
    assert check_dependency_order(b.with_bounds(b.start.replace(day=5), b.end), store) == []


def test_dependent_order(make_milestone, day):
    store = MilestoneStore()
    a = store.upsert(make_milestone("a", 1, 5))
    store.upsert(make_milestone("b", 6, 8, dependencies=("a",)))

    assert check_dependent_order(a, store) == []
    assert check_dependent_order(a.with_bounds(day(1), day(7)), store) == ["b"]


def test_evaluate_collects_every_check(make_milestone, day):
    store = MilestoneStore()
    store.upsert(make_milestone("a", 1, 5))
    store.upsert(make_milestone("b", 6, 10, dependencies=("a",)))
    c = store.upsert(make_milestone("c", 11, 15, dependencies=("b",)))

    report = evaluate(c.with_bounds(day(9), day(12)), store)

    assert report.conflicts == ("b",)
    assert report.violations == ("b",)
    assert not report.is_valid
    assert evaluate(c, store).is_valid


def test_raise_for_report():
    with pytest.raises(OverlapConflict) as exc_info:
        raise_for_report("a", ConstraintReport(conflicts=("b",), violations=("c",)))
    assert exc_info.value.conflicts == ["b"]

    with pytest.raises(DependencyOrderViolation) as exc_info:
        raise_for_report("a", ConstraintReport(violations=("c",), dependent_violations=("b",)))
    assert exc_info.value.violations == ["b", "c"]

    raise_for_report("a", ConstraintReport())
