"""
Project Plan Generator.

Expands an assessment snapshot plus per-section completion into a strictly
linear milestone chain. Each milestone starts at the week cursor, depends on
the milestone before it, and its due date is ``start_date + end_week * 7``
days. Conditional milestones only appear when the matching gap exists.

``total_weeks`` never drops below the ecosystem's typical timeline.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import date, datetime, timedelta, timezone

from authpack.services.assessment import (
    AssessmentSnapshot,
    ReadinessStatus,
    SmcrStatus,
    TrainingStatus,
)

logger = logging.getLogger(__name__)


PHASE_ASSESSMENT = "Assessment & Scoping"
PHASE_NARRATIVE = "Narrative & Business Plan"
PHASE_POLICIES = "Policies & Evidence"
PHASE_GOVERNANCE = "Governance & SMCR"
PHASE_SUBMISSION = "Review & Submission"

NARRATIVE_SECTIONS_PER_WEEK = 6
NARRATIVE_GAP_MAX_WEEKS = 4
EVIDENCE_SECTIONS_PER_WEEK = 8
EVIDENCE_GAP_MAX_WEEKS = 3

# readiness key → milestone emitted while the item is not complete
READINESS_MILESTONES = (
    {
        "key": "businessPlanDraft",
        "title": "Draft the business plan narrative",
        "description": "Capture the gold-standard narrative in the pack workspace.",
        "phase": PHASE_NARRATIVE,
        "duration_weeks": 3,
    },
    {
        "key": "financialModel",
        "title": "Finalize financial model & projections",
        "description": "Complete capital, revenue, and stress testing assumptions.",
        "phase": PHASE_NARRATIVE,
        "duration_weeks": 2,
    },
    {
        "key": "technologyStack",
        "title": "Confirm technology stack readiness",
        "description": "Document architecture, vendors, and operational resilience controls.",
        "phase": PHASE_NARRATIVE,
        "duration_weeks": 2,
    },
    {
        "key": "safeguardingSetup",
        "title": "Safeguarding setup & reconciliation",
        "description": "Confirm safeguarding accounts and reconciliation cadence.",
        "phase": PHASE_POLICIES,
        "duration_weeks": 2,
    },
    {
        "key": "amlFramework",
        "title": "AML/CTF framework readiness",
        "description": "Document AML controls, monitoring, and reporting.",
        "phase": PHASE_POLICIES,
        "duration_weeks": 2,
    },
    {
        "key": "riskFramework",
        "title": "Risk & compliance framework",
        "description": "Finalize risk appetite, monitoring, and reporting cadence.",
        "phase": PHASE_GOVERNANCE,
        "duration_weeks": 2,
    },
    {
        "key": "governancePack",
        "title": "Governance and board pack",
        "description": "Finalize governance documentation, committee terms, and MI pack.",
        "phase": PHASE_GOVERNANCE,
        "duration_weeks": 2,
    },
)


class _PlanBuilder:
    def __init__(self, start_date: date, id_factory):
        self.start_date = start_date
        self.id_factory = id_factory
        self.week_cursor = 1
        self.previous_id = None
        self.milestones = []

    def push(self, title, description, phase, duration_weeks=1):
        start_week = self.week_cursor
        end_week = start_week + duration_weeks - 1
        milestone_id = self.id_factory()
        self.milestones.append({
            "id": milestone_id,
            "title": title,
            "description": description,
            "phase": phase,
            "status": "pending",
            "startWeek": start_week,
            "durationWeeks": duration_weeks,
            "endWeek": end_week,
            "dueDate": (self.start_date + timedelta(weeks=end_week)).isoformat(),
            "dependencies": [self.previous_id] if self.previous_id else [],
        })
        self.previous_id = milestone_id
        self.week_cursor = end_week + 1


def _gap_weeks(count, per_week, cap):
    return min(cap, max(1, math.ceil(count / per_week)))


def build_project_plan(
    snapshot: AssessmentSnapshot,
    sections,
    typical_timeline_weeks=None,
    *,
    default_timeline_weeks=12,
    start_date: date | None = None,
    id_factory=None,
) -> dict:
    """Build the milestone plan.

    ``sections`` is a list of dicts carrying ``narrativeCompletion`` and
    ``evidenceCompletion``. ``start_date`` defaults to today (UTC) and
    ``id_factory`` to uuid4 strings; pass both for reproducible output.
    """
    start_date = start_date or datetime.now(timezone.utc).date()
    builder = _PlanBuilder(start_date, id_factory or (lambda: str(uuid.uuid4())))

    builder.push(
        "Complete firm assessment",
        "Confirm current-state readiness and evidence baseline.",
        PHASE_ASSESSMENT,
    )
    builder.push(
        "Confirm FCA permission scope",
        "Align permissions, activity boundaries, and submission strategy.",
        PHASE_ASSESSMENT,
    )
    builder.push(
        "Draft business plan narrative",
        "Complete the narrative spine across all required sections.",
        PHASE_NARRATIVE,
        3,
    )

    incomplete = [s for s in sections if s.get("narrativeCompletion", 0) < 100]
    missing_evidence = [s for s in sections if s.get("evidenceCompletion", 0) < 100]

    if incomplete:
        builder.push(
            f"Complete {len(incomplete)} narrative sections",
            "Fill remaining narrative gaps and validate narrative consistency.",
            PHASE_NARRATIVE,
            _gap_weeks(len(incomplete), NARRATIVE_SECTIONS_PER_WEEK, NARRATIVE_GAP_MAX_WEEKS),
        )

    for item in READINESS_MILESTONES:
        if snapshot.readiness.get(item["key"]) is ReadinessStatus.COMPLETE:
            continue
        builder.push(item["title"], item["description"], item["phase"], item["duration_weeks"])

    for policy, status in snapshot.policies.items():
        if status is ReadinessStatus.COMPLETE:
            continue
        builder.push(
            f"Policy suite: {policy}",
            "Draft, review, and approve the required policy document.",
            PHASE_POLICIES,
        )

    builder.push(
        "Evidence checklist & annex mapping",
        "Upload evidence, assign annex numbers, and confirm completeness.",
        PHASE_POLICIES,
        2,
    )

    if missing_evidence:
        builder.push(
            f"Resolve {len(missing_evidence)} evidence gaps",
            "Collect missing evidence items and confirm review-ready status.",
            PHASE_POLICIES,
            _gap_weeks(len(missing_evidence), EVIDENCE_SECTIONS_PER_WEEK, EVIDENCE_GAP_MAX_WEEKS),
        )

    for training, status in snapshot.training.items():
        if status is TrainingStatus.COMPLETE:
            continue
        builder.push(
            f"Training rollout: {training}",
            "Complete training requirements and evidence staff completion.",
            PHASE_GOVERNANCE,
        )

    for role, status in snapshot.smcr.items():
        if status is SmcrStatus.ASSIGNED:
            continue
        builder.push(
            f"Assign SMCR role: {role}",
            "Confirm role holder, responsibilities, and approval workflow.",
            PHASE_GOVERNANCE,
        )

    builder.push(
        "Internal QA review",
        "Run consultant QA review across narrative, evidence, and governance.",
        PHASE_SUBMISSION,
        2,
    )
    builder.push(
        "Final pack sign-off",
        "Finalize the submission pack and confirm FCA readiness.",
        PHASE_SUBMISSION,
    )

    typical = default_timeline_weeks if typical_timeline_weeks is None else typical_timeline_weeks
    return {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "startDate": start_date.isoformat(),
        "totalWeeks": max(typical, builder.week_cursor - 1),
        "milestones": builder.milestones,
    }
