"""
Authorization Pack Service
Project blueprint — authorization projects, assessment, plan and profile.

Endpoints summary:
    PROJECT     /api/v1/projects                              GET, POST
                /api/v1/projects/<id>                         GET, PATCH, DELETE
    ASSESSMENT  /api/v1/projects/<id>/assessment              GET, PUT
    PLAN        /api/v1/projects/<id>/plan                    GET, POST (generate)
    PROFILE     /api/v1/projects/<id>/business-plan-profile   GET, PUT
"""

import logging

from flask import Blueprint, jsonify, request

from authpack.auth import current_organization_id, current_user_id, require_role
from authpack.blueprints import register_error_handlers
from authpack.models import db
from authpack.services import project_service
from authpack.utils.errors import E, api_error
from authpack.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")
register_error_handlers(project_bp)


def _get_detail_or_404(project_id):
    return get_or_404(
        project_service.get_authorization_project(project_id, current_organization_id()), "Project",
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT CRUD
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
def list_projects():
    items = project_service.list_authorization_projects(current_organization_id())
    return jsonify({"items": items, "total": len(items)})


@project_bp.route("/projects", methods=["POST"])
@require_role("member")
def create_project():
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")
    if not data.get("permission_code"):
        return api_error(E.VALIDATION_REQUIRED, "permission_code is required")

    project = project_service.create_authorization_project(
        current_organization_id(), data, actor_id=current_user_id(),
    )
    return jsonify(project_service.get_authorization_project(project.id)), 201


@project_bp.route("/projects/<project_id>", methods=["GET"])
def get_project(project_id):
    detail, err = _get_detail_or_404(project_id)
    if err:
        return err
    return jsonify(detail)


@project_bp.route("/projects/<project_id>", methods=["PATCH"])
@require_role("member")
def update_project(project_id):
    data = request.get_json(silent=True) or {}
    project = project_service.update_project(project_id, data, current_organization_id())
    db.session.commit()
    return jsonify(project.to_dict())


@project_bp.route("/projects/<project_id>", methods=["DELETE"])
@require_role("admin")
def delete_project(project_id):
    project_service.soft_delete_project(project_id, current_organization_id())
    db.session.commit()
    return jsonify({"message": "Project deleted", "id": project_id})


# ═══════════════════════════════════════════════════════════════════════════
#  ASSESSMENT & PLAN
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<project_id>/assessment", methods=["GET"])
def get_assessment(project_id):
    detail, err = _get_detail_or_404(project_id)
    if err:
        return err
    return jsonify(detail["assessment"])


@project_bp.route("/projects/<project_id>/assessment", methods=["PUT"])
@require_role("member")
def save_assessment(project_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "assessment must be a JSON object")
    assessment = project_service.save_assessment(project_id, data, current_organization_id())
    db.session.commit()
    return jsonify(assessment)


@project_bp.route("/projects/<project_id>/plan", methods=["GET"])
def get_plan(project_id):
    detail, err = _get_detail_or_404(project_id)
    if err:
        return err
    return jsonify(detail["plan"])


@project_bp.route("/projects/<project_id>/plan", methods=["POST"])
@require_role("member")
def generate_plan(project_id):
    data = request.get_json(silent=True) or {}
    plan = project_service.generate_project_plan(
        project_id, start_date=data.get("start_date"), organization_id=current_organization_id(),
    )
    return jsonify(plan), 201


# ═══════════════════════════════════════════════════════════════════════════
#  BUSINESS-PLAN PROFILE
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<project_id>/business-plan-profile", methods=["GET"])
def get_business_plan_profile(project_id):
    payload, err = get_or_404(
        project_service.get_business_plan_profile(project_id, current_organization_id()), "Project",
    )
    if err:
        return err
    return jsonify(payload)


@project_bp.route("/projects/<project_id>/business-plan-profile", methods=["PUT"])
@require_role("member")
def save_business_plan_profile(project_id):
    data = request.get_json(silent=True) or {}
    payload = project_service.save_business_plan_profile(
        project_id, data.get("responses"), current_organization_id(),
    )
    db.session.commit()
    return jsonify(payload)
