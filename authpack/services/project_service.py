"""Authorization project service layer.

A project binds an organization, a permission code and exactly one pack. It
carries the assessment snapshot (``assessment_data``) and the generated plan
(``project_plan``), both JSON columns that are always reassigned as new dicts.

Readiness shown on the list and on the detail view comes from the same
``readiness_service.get_pack_readiness`` call so the two never disagree.
"""
import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import select

from authpack.catalog.business_plan_profile import PROFILE_VERSION
from authpack.core.exceptions import NotFoundError, ValidationError
from authpack.models import db
from authpack.models.project import AuthorizationProject, ProjectStatus
from authpack.services import pack_service, questionnaire, readiness_service, template_sync_service
from authpack.services.assessment import (
    AssessmentSnapshot,
    calculate_assessment_completion,
    normalize_assessment,
)
from authpack.services.project_plan import build_project_plan
from authpack.utils.helpers import parse_date

logger = logging.getLogger(__name__)


def _utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


def _readiness(project):
    if not project.pack_id:
        return readiness_service.compute_readiness([])
    return readiness_service.get_pack_readiness(project.pack_id)


def _get_or_raise(project_id, organization_id=None):
    project = get_project(project_id, organization_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def _snapshot(project, ecosystem):
    snapshot = AssessmentSnapshot.from_dict(project.assessment_data)
    return normalize_assessment(snapshot, ecosystem)


def _stamp_completion(snapshot, permission_code):
    snapshot.meta["completion"] = calculate_assessment_completion(snapshot, permission_code)
    snapshot.meta["updatedAt"] = _utcnow_iso()
    return snapshot


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_authorization_project(organization_id, data, actor_id=None):
    """Create a project and the pack it wraps.

    Raises:
        ValidationError: name or permission code missing.
        NotFoundError: unknown permission ecosystem.
    """
    name = (data.get("name") or "").strip()
    permission_code = (data.get("permission_code") or "").strip()
    if not name or not permission_code:
        raise ValidationError(
            "name and permission_code are required",
            details={"name": bool(name), "permission_code": bool(permission_code)},
        )

    template_sync_service.ensure_ecosystems()
    ecosystem = template_sync_service.get_ecosystem(permission_code)
    if ecosystem is None:
        raise NotFoundError(resource="Permission ecosystem", resource_id=permission_code)

    target_date = parse_date(data.get("target_submission_date"))
    pack = pack_service.create_pack(
        organization_id, ecosystem.pack_template_type, name,
        target_submission_date=target_date, actor_id=actor_id,
    )

    snapshot = _stamp_completion(normalize_assessment(AssessmentSnapshot(), ecosystem), permission_code)
    try:
        project = AuthorizationProject(
            organization_id=organization_id,
            name=name,
            permission_code=permission_code,
            pack_id=pack.id,
            status=ProjectStatus.ASSESSMENT.value,
            target_submission_date=target_date,
            assessment_data=snapshot.to_dict(),
            project_plan={},
        )
        db.session.add(project)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Authorization project created",
        extra={"project_id": project.id, "pack_id": pack.id, "organization_id": organization_id},
    )
    return project


def get_project(project_id, organization_id=None):
    stmt = select(AuthorizationProject).where(
        AuthorizationProject.id == project_id, AuthorizationProject.not_deleted(),
    )
    if organization_id is not None:
        stmt = stmt.where(AuthorizationProject.organization_id == organization_id)
    return db.session.execute(stmt).scalar_one_or_none()


def list_authorization_projects(organization_id):
    projects = db.session.execute(
        select(AuthorizationProject)
        .where(AuthorizationProject.organization_id == organization_id, AuthorizationProject.not_deleted())
        .order_by(AuthorizationProject.created_at.desc())
    ).scalars().all()

    result = []
    for project in projects:
        row = project.to_dict()
        row.pop("assessment_data")
        row.pop("project_plan")
        row["readiness"] = _readiness(project)
        row["assessmentCompletion"] = (project.assessment_data or {}).get("meta", {}).get("completion", 0)
        result.append(row)
    return result


def get_authorization_project(project_id, organization_id=None):
    """Project detail with ecosystem, readiness, sections, assessment and plan.

    Returns None when the project does not exist.
    """
    project = get_project(project_id, organization_id)
    if project is None:
        return None
    ecosystem = template_sync_service.get_ecosystem(project.permission_code)
    snapshot = _snapshot(project, ecosystem)

    detail = project.to_dict()
    detail.pop("assessment_data")
    detail.pop("project_plan")
    return {
        "project": detail,
        "ecosystem": ecosystem.to_dict() if ecosystem else None,
        "readiness": _readiness(project),
        "sections": pack_service.get_sections(project.pack_id) if project.pack_id else [],
        "assessment": snapshot.to_dict(),
        "plan": project.project_plan or {},
    }


def update_project(project_id, data, organization_id=None):
    project = _get_or_raise(project_id, organization_id)
    if data.get("name"):
        project.name = data["name"]
    if "status" in data:
        try:
            project.status = ProjectStatus(data["status"]).value
        except ValueError:
            raise ValidationError("Invalid project status", details={"status": data["status"]}) from None
    if "target_submission_date" in data:
        project.target_submission_date = parse_date(data["target_submission_date"])
    db.session.flush()
    return project


def soft_delete_project(project_id, organization_id=None):
    project = _get_or_raise(project_id, organization_id)
    project.soft_delete()
    db.session.flush()
    logger.info("Authorization project soft-deleted", extra={"project_id": project_id})
    return project


# ── Assessment ───────────────────────────────────────────────────────────────


def save_assessment(project_id, data, organization_id=None):
    """Replace the assessment snapshot and recompute its completion.

    The business-plan profile is stored on the same snapshot but saved through
    ``save_business_plan_profile``; it is carried over when ``data`` omits it.
    """
    project = _get_or_raise(project_id, organization_id)
    ecosystem = template_sync_service.get_ecosystem(project.permission_code)

    snapshot = AssessmentSnapshot.from_dict(data)
    if snapshot.business_plan_profile is None:
        snapshot.business_plan_profile = (project.assessment_data or {}).get("businessPlanProfile")
    normalize_assessment(snapshot, ecosystem)
    _stamp_completion(snapshot, project.permission_code)

    project.assessment_data = snapshot.to_dict()
    db.session.flush()
    logger.info(
        "Assessment saved",
        extra={"project_id": project.id, "completion": snapshot.meta["completion"]},
    )
    return snapshot.to_dict()


# ── Project plan ─────────────────────────────────────────────────────────────


def generate_project_plan(project_id, start_date=None, organization_id=None):
    """Build and persist the milestone plan, moving the project to planning.

    Any previous plan is overwritten.
    """
    project = _get_or_raise(project_id, organization_id)
    ecosystem = template_sync_service.get_ecosystem(project.permission_code)
    snapshot = _snapshot(project, ecosystem)
    sections = pack_service.get_sections(project.pack_id) if project.pack_id else []

    plan = build_project_plan(
        snapshot,
        sections,
        ecosystem.typical_timeline_weeks if ecosystem else None,
        default_timeline_weeks=current_app.config.get("DEFAULT_PLAN_TIMELINE_WEEKS", 12),
        start_date=parse_date(start_date),
    )
    try:
        project.project_plan = plan
        project.status = ProjectStatus.PLANNING.value
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Project plan generated",
        extra={"project_id": project.id, "milestones": len(plan["milestones"]), "total_weeks": plan["totalWeeks"]},
    )
    return plan


# ── Business-plan profile ────────────────────────────────────────────────────


def _profile_payload(project):
    profile = (project.assessment_data or {}).get("businessPlanProfile") or {
        "version": PROFILE_VERSION,
        "responses": {},
        "updatedAt": None,
    }
    return {
        "profile": profile,
        "insights": questionnaire.build_profile_insights(project.permission_code, profile.get("responses")),
        "sections": questionnaire.get_profile_sections(project.permission_code),
        "questions": questionnaire.get_profile_questions(project.permission_code),
    }


def get_business_plan_profile(project_id, organization_id=None):
    project = get_project(project_id, organization_id)
    if project is None:
        return None
    return _profile_payload(project)


def save_business_plan_profile(project_id, responses, organization_id=None):
    if not isinstance(responses, dict):
        raise ValidationError("responses must be an object")
    project = _get_or_raise(project_id, organization_id)

    assessment = dict(project.assessment_data or {})
    assessment["businessPlanProfile"] = {
        "version": PROFILE_VERSION,
        "responses": responses,
        "updatedAt": _utcnow_iso(),
    }
    project.assessment_data = assessment
    db.session.flush()
    logger.info("Business plan profile saved", extra={"project_id": project.id, "answers": len(responses)})
    return _profile_payload(project)
