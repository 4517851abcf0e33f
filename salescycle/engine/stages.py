"""
Funnel stages, milestone categories and job classification.

Stages are string constants, not an Enum. A stage is a milestone category
narrowed by the job's current status; APPROVED jobs are "Approved" whatever
their status says.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Milestone categories (AccuLynx top-level job status)
LEAD = "LEAD"
PROSPECT = "PROSPECT"
APPROVED = "APPROVED"
COMPLETED = "COMPLETED"
INVOICED = "INVOICED"
CLOSED = "CLOSED"
UNKNOWN = "UNKNOWN"

MILESTONE_CATEGORIES: frozenset[str] = frozenset([
    LEAD, PROSPECT, APPROVED, COMPLETED, INVOICED, CLOSED,
])

# Milestones fetched into the catalog, in merge order (AccuLynx spelling)
TRACKED_MILESTONES: list[str] = ["Lead", "Prospect", "Approved", "Completed", "Invoiced"]

# Milestones whose jobs have been built/invoiced
POST_APPROVED_CATEGORIES: frozenset[str] = frozenset([APPROVED, COMPLETED, INVOICED])

# Stages
INITIAL_VISIT_SCHEDULED = "Initial Visit Scheduled"
ADJUSTER_MEETING_SCHEDULED = "Adjuster Meeting Scheduled"
BOUGHT_JOB = "Bought Job"
SCHEDULED_DESIGN_MEETING = "Scheduled Design Meeting"
COMPLETED_DESIGN_MEETING = "Completed Design Meeting"
APPROVED_STAGE = "Approved"

UNCLASSIFIED = "Unclassified"


@dataclass(frozen=True)
class StageDefinition:
    name: str
    milestone: str
    status_match: Optional[str]  # None = any status
    order: int


STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(INITIAL_VISIT_SCHEDULED, LEAD, "Initial Visit Scheduled", 1),
    StageDefinition(ADJUSTER_MEETING_SCHEDULED, PROSPECT, "Adjuster Meeting Scheduled", 2),
    StageDefinition(BOUGHT_JOB, PROSPECT, "Bought Job", 3),
    StageDefinition(SCHEDULED_DESIGN_MEETING, PROSPECT, "Scheduled Design Meeting", 4),
    StageDefinition(COMPLETED_DESIGN_MEETING, PROSPECT, "Completed Design Meeting", 5),
    StageDefinition(APPROVED_STAGE, APPROVED, None, 6),
)

# stage name -> order (1-indexed)
STAGE_INDEX: dict[str, int] = {s.name: s.order for s in STAGES}

FINAL_STAGE_ORDER = max(STAGE_INDEX.values())


def stage_by_name(name: str) -> Optional[StageDefinition]:
    for stage in STAGES:
        if stage.name == name:
            return stage
    return None


def stage_order(stage: str) -> Optional[int]:
    """Order of a stage, or None for Unclassified/unknown names."""
    return STAGE_INDEX.get(stage)


def milestone_category(milestone: Optional[str]) -> str:
    """Map an AccuLynx currentMilestone to a category, UNKNOWN if unrecognised."""
    upper = (milestone or "").strip().upper()
    if upper in MILESTONE_CATEGORIES:
        return upper
    return UNKNOWN


def classify(category: str, status_name: Optional[str]) -> str:
    """
    Resolve the funnel stage for a milestone category and status name.

    APPROVED is "Approved" unconditionally. Otherwise the first stage whose
    milestone matches and whose status_match equals status_name
    (case-insensitive) wins. Anything else is Unclassified.
    """
    if category == APPROVED:
        return APPROVED_STAGE

    status_l = (status_name or "").lower()
    for stage in STAGES:
        if stage.milestone == category and stage.status_match is not None:
            if status_l == stage.status_match.lower():
                return stage.name

    return UNCLASSIFIED
