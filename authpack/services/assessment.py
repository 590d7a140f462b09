"""
Assessment snapshot — typed view over ``AuthorizationProject.assessment_data``.

The JSON column stays the storage format; ``AssessmentSnapshot`` is the
record every calculation works on. Status values are coerced into closed
enums on load so unknown strings can never count as "complete".

Completion percentage
---------------------
Units in the denominator:

- every basics key in ``required_basics_keys(basics)`` (a fixed base list
  plus keys unlocked by ``CONDITIONAL_BASICS``);
- one per readiness / policy / training item (done when ``complete``);
- one per SMCR role (done when ``assigned``);
- the question bank's visible required questions (done when answered).

``round_half_up(100 * done / total)``, or 0 when there is nothing to count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from authpack.services.questionnaire import build_question_context
from authpack.utils.helpers import percent

logger = logging.getLogger(__name__)


SNAPSHOT_VERSION = 1


class ReadinessStatus(str, Enum):
    MISSING = "missing"
    PARTIAL = "partial"
    COMPLETE = "complete"


class TrainingStatus(str, Enum):
    MISSING = "missing"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


class SmcrStatus(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"


READINESS_KEYS = (
    "businessPlanDraft",
    "financialModel",
    "technologyStack",
    "safeguardingSetup",
    "amlFramework",
    "riskFramework",
    "governancePack",
)

BASE_BASICS_KEYS = (
    "legalName",
    "priorFcaApplications",
    "firmType",
    "incorporationDate",
    "incorporationPlace",
    "registeredNumberExists",
    "financialYearEnd",
    "registeredOfficeSameAsHeadOffice",
    "primaryJurisdiction",
    "primaryContact",
    "contactEmail",
    "firmStage",
    "regulatedActivities",
    "headcount",
    "website",
    "previouslyRegulated",
    "usedProfessionalAdviser",
    "pspType",
    "paymentServicesActivities",
    "currentlyProvidingPIS",
    "currentlyProvidingAIS",
)

# (trigger key, trigger value, keys that become required)
CONDITIONAL_BASICS = (
    ("registeredNumberExists", "yes", ("companyNumber",)),
    (
        "registeredOfficeSameAsHeadOffice", "no",
        ("headOfficeAddressLine1", "headOfficeCity", "headOfficePostcode", "headOfficePhone", "headOfficeEmail"),
    ),
    ("usedProfessionalAdviser", "yes", ("adviserFirmName", "adviserCopyCorrespondence", "adviserContactDetails")),
    ("currentlyProvidingPIS", "yes", ("pisStartDate",)),
    ("currentlyProvidingAIS", "yes", ("aisStartDate",)),
)


def _coerce(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _coerce_map(raw, enum_cls, default) -> dict:
    if not isinstance(raw, dict):
        return {}
    return {str(key): _coerce(enum_cls, value, default) for key, value in raw.items()}


def _coerce_version(value) -> int:
    try:
        return int(value or SNAPSHOT_VERSION)
    except (TypeError, ValueError):
        return SNAPSHOT_VERSION


def is_filled(value) -> bool:
    return value is not None and len(str(value).strip()) > 0


def required_basics_keys(basics: dict) -> list[str]:
    keys = list(BASE_BASICS_KEYS)
    for trigger, trigger_value, unlocked in CONDITIONAL_BASICS:
        if basics.get(trigger) == trigger_value:
            keys.extend(unlocked)
    return keys


@dataclass
class AssessmentSnapshot:
    basics: dict[str, Any] = field(default_factory=dict)
    readiness: dict[str, ReadinessStatus] = field(default_factory=dict)
    policies: dict[str, ReadinessStatus] = field(default_factory=dict)
    training: dict[str, TrainingStatus] = field(default_factory=dict)
    smcr: dict[str, SmcrStatus] = field(default_factory=dict)
    question_responses: dict[str, Any] = field(default_factory=dict)
    business_plan_profile: dict[str, Any] | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    version: int = SNAPSHOT_VERSION

    @classmethod
    def from_dict(cls, data: dict | None) -> AssessmentSnapshot:
        data = data or {}
        basics = data.get("basics")
        question_responses = data.get("questionResponses")
        meta = data.get("meta")
        profile = data.get("businessPlanProfile")
        return cls(
            basics=dict(basics) if isinstance(basics, dict) else {},
            readiness=_coerce_map(data.get("readiness"), ReadinessStatus, ReadinessStatus.MISSING),
            policies=_coerce_map(data.get("policies"), ReadinessStatus, ReadinessStatus.MISSING),
            training=_coerce_map(data.get("training"), TrainingStatus, TrainingStatus.MISSING),
            smcr=_coerce_map(data.get("smcr"), SmcrStatus, SmcrStatus.UNASSIGNED),
            question_responses=dict(question_responses) if isinstance(question_responses, dict) else {},
            business_plan_profile=dict(profile) if isinstance(profile, dict) else None,
            meta=dict(meta) if isinstance(meta, dict) else {},
            version=_coerce_version(data.get("version")),
        )

    def to_dict(self) -> dict:
        data = {
            "version": self.version,
            "basics": dict(self.basics),
            "readiness": {key: status.value for key, status in self.readiness.items()},
            "policies": {key: status.value for key, status in self.policies.items()},
            "training": {key: status.value for key, status in self.training.items()},
            "smcr": {key: status.value for key, status in self.smcr.items()},
            "questionResponses": dict(self.question_responses),
            "meta": dict(self.meta),
        }
        if self.business_plan_profile is not None:
            data["businessPlanProfile"] = dict(self.business_plan_profile)
        return data


def normalize_assessment(snapshot: AssessmentSnapshot, ecosystem) -> AssessmentSnapshot:
    """Fill readiness, policy, training and SMCR checklists with their defaults.

    ``ecosystem`` is a PermissionEcosystem (or None). Existing statuses are
    kept; only missing keys are added.
    """
    for key in READINESS_KEYS:
        snapshot.readiness.setdefault(key, ReadinessStatus.MISSING)
    if ecosystem is not None:
        for policy in ecosystem.policy_templates or []:
            snapshot.policies.setdefault(policy, ReadinessStatus.MISSING)
        for item in ecosystem.training_requirements or []:
            snapshot.training.setdefault(item, TrainingStatus.MISSING)
        for role in ecosystem.smcr_roles or []:
            snapshot.smcr.setdefault(role, SmcrStatus.UNASSIGNED)
    return snapshot


def completion_counts(snapshot: AssessmentSnapshot, permission_code=None) -> tuple[int, int]:
    """Return ``(completed, total)`` units for the completion percentage."""
    basics_keys = required_basics_keys(snapshot.basics)
    completed = sum(1 for key in basics_keys if is_filled(snapshot.basics.get(key)))
    total = len(basics_keys)

    completed += sum(1 for status in snapshot.readiness.values() if status is ReadinessStatus.COMPLETE)
    completed += sum(1 for status in snapshot.policies.values() if status is ReadinessStatus.COMPLETE)
    completed += sum(1 for status in snapshot.training.values() if status is TrainingStatus.COMPLETE)
    completed += sum(1 for status in snapshot.smcr.values() if status is SmcrStatus.ASSIGNED)
    total += len(snapshot.readiness) + len(snapshot.policies) + len(snapshot.training) + len(snapshot.smcr)

    context = build_question_context(snapshot.basics, snapshot.question_responses, permission_code)
    completed += context["answeredCount"]
    total += context["requiredCount"]
    return completed, total


def calculate_assessment_completion(snapshot: AssessmentSnapshot, permission_code=None) -> int:
    completed, total = completion_counts(snapshot, permission_code)
    return percent(completed, total)
