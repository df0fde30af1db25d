"""
Tests for milestone graph validation.

Tests circular dependency detection and parent-child consistency.
"""

import pytest

from timeline_planner.core.exceptions import CycleDetected, NotFoundError, ValidationError
from timeline_planner.utils.dependency_validator import DependencyValidator, detect_cycle


@pytest.fixture
def milestones(make_milestone):
    """phase > task, with review depending on task."""
    return {
        m.id: m
        for m in [
            make_milestone("phase", 1, 20),
            make_milestone("task", 2, 5, parent_id="phase"),
            make_milestone("review", 6, 8, parent_id="phase", dependencies=("task",)),
            make_milestone("elsewhere", 1, 3, project_id="p2"),
        ]
    }


@pytest.fixture
def validator(milestones):
    return DependencyValidator(milestones.get)


def test_valid_dependencies_pass(validator):
    validator.validate_dependencies("new", ["task", "review"])


def test_transitive_dependency_cycle(validator):
    with pytest.raises(CycleDetected) as exc_info:
        validator.validate_dependencies("task", ["review"])

    assert exc_info.value.path == ["task", "review", "task"]


def test_missing_dependency(validator):
    with pytest.raises(NotFoundError):
        validator.validate_dependencies("task", ["ghost"])


def test_parent_in_other_project(validator):
    with pytest.raises(ValidationError):
        validator.validate_parent("task", "elsewhere", "p1")


def test_descendant_as_parent_is_a_cycle(validator):
    with pytest.raises(CycleDetected) as exc_info:
        validator.validate_parent("phase", "task", "p1")

    assert exc_info.value.path == ["phase", "task", "phase"]


def test_detect_cycle():
    assert detect_cycle({"a": ["b"], "b": ["c"], "c": ["a"]}) == ("a", "b", "c", "a")
    assert detect_cycle({"a": ["b"], "b": ["c"], "c": []}) is None
    assert detect_cycle({"a": ["a"]}) == ("a", "a")


def test_detect_cycle_on_long_chains():
    chain = {f"n{i:05d}": [f"n{i + 1:05d}"] for i in range(3000)}
    chain["n03000"] = []

    assert detect_cycle(chain) is None

    chain["n03000"] = ["n00000"]
    cycle = detect_cycle(chain)

    assert len(cycle) == 3002
    assert cycle[0] == cycle[-1] == "n00000"
