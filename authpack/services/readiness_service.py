"""
Readiness scoring — Completion Aggregator + Readiness Calculator.

Per section instance three ratios are derived from live rows:

    narrative = required prompts with a non-empty response / required prompts
    evidence  = items uploaded or approved / all evidence items
    review    = approved gates / all gates

Each is an integer percentage (half-up); a zero denominator yields 0.

Pack readiness averages the ratios over all sections and weights them with
``READINESS_WEIGHTS``. Two override sources can only *raise* the result:

- the owning project's business-plan profile completion raises narrative;
- a generated opinion-pack document counts as 100 for narrative and review.

Nothing is cached: every call recomputes from the current store state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import case, func, select

from authpack.models import db
from authpack.models.pack import (
    OPINION_PACK_SECTION_CODE,
    EvidenceItem,
    EvidenceStatus,
    GateState,
    PackDocument,
    PromptResponse,
    ReviewGate,
    SectionInstance,
)
from authpack.models.project import AuthorizationProject
from authpack.models.template import Prompt
from authpack.services import questionnaire
from authpack.utils.helpers import percent, round_half_up

logger = logging.getLogger(__name__)


READINESS_WEIGHTS = {"narrative": 0.4, "evidence": 0.4, "review": 0.2}

_DELIVERED_EVIDENCE = [status.value for status in EvidenceStatus if status.is_delivered]


@dataclass
class SectionProgress:
    """Raw counts for one section instance."""
    section_id: str
    required_prompts: int = 0
    answered_prompts: int = 0
    evidence_total: int = 0
    evidence_done: int = 0
    gates_total: int = 0
    gates_approved: int = 0

    @property
    def narrative(self) -> int:
        return percent(self.answered_prompts, self.required_prompts)

    @property
    def evidence(self) -> int:
        return percent(self.evidence_done, self.evidence_total)

    @property
    def review(self) -> int:
        return percent(self.gates_approved, self.gates_total)

    def to_dict(self) -> dict:
        return {
            "narrativeCompletion": self.narrative,
            "evidenceCompletion": self.evidence,
            "reviewCompletion": self.review,
            "requiredPrompts": self.required_prompts,
            "answeredPrompts": self.answered_prompts,
            "evidenceTotal": self.evidence_total,
            "evidenceUploaded": self.evidence_done,
            "reviewGatesTotal": self.gates_total,
            "reviewGatesApproved": self.gates_approved,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Completion Aggregator
# ═════════════════════════════════════════════════════════════════════════════


def section_progress(pack_id: str) -> dict[str, SectionProgress]:
    """Counts for every section instance of a pack, keyed by instance id."""
    section_ids = db.session.execute(
        select(SectionInstance.id).where(SectionInstance.pack_id == pack_id)
    ).scalars().all()
    progress = {sid: SectionProgress(section_id=sid) for sid in section_ids}
    if not progress:
        return progress

    required = db.session.execute(
        select(SectionInstance.id, func.count(Prompt.id))
        .join(Prompt, Prompt.section_template_id == SectionInstance.section_template_id)
        .where(SectionInstance.pack_id == pack_id, Prompt.required.is_(True))
        .group_by(SectionInstance.id)
    ).all()
    for sid, count in required:
        progress[sid].required_prompts = count

    answered = db.session.execute(
        select(PromptResponse.section_instance_id, func.count(PromptResponse.id))
        .join(Prompt, Prompt.id == PromptResponse.prompt_id)
        .join(SectionInstance, SectionInstance.id == PromptResponse.section_instance_id)
        .where(
            SectionInstance.pack_id == pack_id,
            Prompt.required.is_(True),
            PromptResponse.value.is_not(None),
            PromptResponse.value != "",
        )
        .group_by(PromptResponse.section_instance_id)
    ).all()
    for sid, count in answered:
        progress[sid].answered_prompts = count

    evidence = db.session.execute(
        select(
            EvidenceItem.section_instance_id,
            func.count(EvidenceItem.id),
            func.sum(case((EvidenceItem.status.in_(_DELIVERED_EVIDENCE), 1), else_=0)),
        )
        .where(EvidenceItem.pack_id == pack_id, EvidenceItem.section_instance_id.is_not(None))
        .group_by(EvidenceItem.section_instance_id)
    ).all()
    for sid, total, done in evidence:
        if sid in progress:
            progress[sid].evidence_total = total
            progress[sid].evidence_done = int(done or 0)

    gates = db.session.execute(
        select(
            ReviewGate.section_instance_id,
            func.count(ReviewGate.id),
            func.sum(case((ReviewGate.state == GateState.APPROVED.value, 1), else_=0)),
        )
        .join(SectionInstance, SectionInstance.id == ReviewGate.section_instance_id)
        .where(SectionInstance.pack_id == pack_id)
        .group_by(ReviewGate.section_instance_id)
    ).all()
    for sid, total, approved in gates:
        progress[sid].gates_total = total
        progress[sid].gates_approved = int(approved or 0)

    return progress


# ═════════════════════════════════════════════════════════════════════════════
# Readiness Calculator
# ═════════════════════════════════════════════════════════════════════════════


def _mean(values) -> int:
    values = list(values)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def weighted_overall(narrative: int, evidence: int, review: int) -> int:
    total = (
        narrative * READINESS_WEIGHTS["narrative"]
        + evidence * READINESS_WEIGHTS["evidence"]
        + review * READINESS_WEIGHTS["review"]
    )
    # round(…, 6) strips float noise such as 37.99999999 before the half-up step
    return round_half_up(round(total, 6))


def compute_readiness(sections, profile_completion=None, opinion_completion=None) -> dict:
    """Combine per-section progress and override sources into one readiness dict.

    ``sections`` is an iterable of SectionProgress. Overrides are None when
    the source does not exist.
    """
    sections = list(sections)
    overrides = [value for value in (profile_completion, opinion_completion) if value is not None]

    if not sections:
        fallback = max(overrides) if overrides else 0
        return {
            "overall": fallback,
            "narrative": fallback,
            "evidence": 0,
            "review": opinion_completion or 0,
        }

    narrative = _mean(section.narrative for section in sections)
    evidence = _mean(section.evidence for section in sections)
    review = _mean(section.review for section in sections)

    if overrides:
        narrative = max([narrative] + overrides)
    if opinion_completion is not None:
        review = max(review, opinion_completion)

    return {
        "overall": weighted_overall(narrative, evidence, review),
        "narrative": narrative,
        "evidence": evidence,
        "review": review,
    }


def profile_completion_for_pack(pack_id: str):
    """Business-plan profile completion of the project wrapping this pack, or None."""
    project = db.session.execute(
        select(AuthorizationProject)
        .where(AuthorizationProject.pack_id == pack_id, AuthorizationProject.not_deleted())
        .order_by(AuthorizationProject.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if project is None:
        return None
    profile = (project.assessment_data or {}).get("businessPlanProfile") or {}
    return questionnaire.profile_completion(project.permission_code, profile.get("responses"))


def opinion_completion_for_pack(pack_id: str):
    """100 when a generated opinion pack document exists, else None."""
    document_id = db.session.execute(
        select(PackDocument.id)
        .where(
            PackDocument.pack_id == pack_id,
            PackDocument.section_code == OPINION_PACK_SECTION_CODE,
            PackDocument.storage_key.is_not(None),
            PackDocument.storage_key != "",
            PackDocument.not_deleted(),
        )
        .limit(1)
    ).scalar_one_or_none()
    return 100 if document_id else None


def get_pack_readiness(pack_id: str) -> dict:
    """``{overall, narrative, evidence, review}`` for a pack.

    Used by both project listing and project detail so the two always agree.
    """
    readiness = compute_readiness(
        section_progress(pack_id).values(),
        profile_completion=profile_completion_for_pack(pack_id),
        opinion_completion=opinion_completion_for_pack(pack_id),
    )
    logger.debug("Pack readiness computed", extra={"pack_id": pack_id, "overall": readiness["overall"]})
    return readiness
