"""
Standard milestone template for new projects.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from timeline_planner.core.logger import setup_logger
from timeline_planner.models.milestone import Milestone
from timeline_planner.utils.datetime_utils import ensure_utc

logger = setup_logger(__name__)


class MilestoneTemplate(NamedTuple):
    key: str
    title: str
    duration_days: int
    color: str
    parent: Optional[str] = None


STANDARD_MILESTONES: list[MilestoneTemplate] = [
    MilestoneTemplate("notice", "Notice to Proceed", 0, "#4f46e5"),
    MilestoneTemplate("projectStart", "Project Start", 0, "#3B82F6"),
    MilestoneTemplate("mobilization", "Mobilization", 10, "#EF4444"),
    MilestoneTemplate("mobilize", "Mobilize", 16, "#EF4444", "mobilization"),
    MilestoneTemplate("construction", "Construction", 34, "#EC4899"),
    MilestoneTemplate("belowGrade", "Below Grade", 13, "#8B5CF6", "construction"),
    MilestoneTemplate("gradeSite", "Grade Site", 8, "#3B82F6", "belowGrade"),
    MilestoneTemplate("setFoundations", "Set Foundations", 9, "#EF4444", "belowGrade"),
    MilestoneTemplate("installConduit", "Install Conduit", 3, "#10B981", "belowGrade"),
    MilestoneTemplate("digCableTrench", "Dig Cable Trench", 4, "#6366F1", "belowGrade"),
    MilestoneTemplate("aboveGrade", "Above Grade", 23, "#8B5CF6", "construction"),
    MilestoneTemplate("erectSteelStructures", "Erect Steel Structures", 8, "#3B82F6", "aboveGrade"),
    MilestoneTemplate("installEquipment", "Install Equipment", 6, "#EF4444", "aboveGrade"),
    MilestoneTemplate("installGrounding", "Install Grounding", 2, "#10B981", "aboveGrade"),
    MilestoneTemplate("installBusAndJumpers", "Install Bus and Jumpers", 8, "#6366F1", "aboveGrade"),
    MilestoneTemplate("layControlCable", "Lay Control Cable", 12, "#EC4899", "aboveGrade"),
    MilestoneTemplate("fence", "Fence", 7, "#8B5CF6", "construction"),
    MilestoneTemplate("installFence", "Install Fence", 7, "#3B82F6", "fence"),
    MilestoneTemplate("siteRestoration", "Site Restoration", 26, "#EF4444", "construction"),
    MilestoneTemplate("removeEquipment", "Remove Equipment", 5, "#10B981", "siteRestoration"),
    MilestoneTemplate("layStoning", "Lay Stoning", 2, "#6366F1", "siteRestoration"),
    MilestoneTemplate("layRoadway", "Lay Roadway", 4, "#EC4899", "siteRestoration"),
    MilestoneTemplate("projectCloseout", "Project Closeout", 10, "#8B5CF6"),
    MilestoneTemplate("substantialCompletion", "Substantial Completion", 18, "#EF4444", "projectCloseout"),
    MilestoneTemplate("projectComplete", "Project Complete", 0, "#10B981"),
]


def template_id(project_id: str, key: str) -> str:
    return f"{project_id}_{key}"


def generate_standard_milestones(
    project_id: str,
    project_name: Optional[str],
    start: datetime,
    templates: Optional[list[MilestoneTemplate]] = None,
) -> list[Milestone]:
    """
    Build the standard milestone set for a project.

    Top-level milestones run back to back from `start`. Children run back to
    back from their parent's start, so siblings never overlap.

    Args:
        project_id: Owning project ID
        project_name: Project label copied onto each milestone
        start: Project start instant
        templates: Template rows (defaults to STANDARD_MILESTONES); parents must precede children

    Returns:
        list[Milestone]: Milestones in template order, ready for MilestoneStore.load
    """
    templates = STANDARD_MILESTONES if templates is None else templates
    cursors: dict[Optional[str], datetime] = {None: ensure_utc(start)}
    milestones: list[Milestone] = []

    for template in templates:
        if template.parent is not None and template.parent not in cursors:
            logger.warning(f"Template {template.key} skipped: parent {template.parent} not generated")
            continue
        milestone_start = cursors[template.parent]
        milestone_end = milestone_start + timedelta(days=max(0, template.duration_days))
        cursors[template.parent] = milestone_end
        cursors[template.key] = milestone_start

        milestones.append(
            Milestone(
                id=template_id(project_id, template.key),
                title=template.title,
                start=milestone_start,
                end=milestone_end,
                project_id=project_id,
                project_name=project_name,
                parent_id=template_id(project_id, template.parent) if template.parent else None,
                color=template.color,
                key=template.key,
            )
        )

    logger.info(f"Generated {len(milestones)} standard milestones for project {project_id}")
    return milestones
