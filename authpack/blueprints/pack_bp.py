"""
Authorization Pack Service
Pack blueprint — pack workspace endpoints.

Endpoints summary:
    PACK      /api/v1/packs                                   GET, POST
              /api/v1/packs/<id>                              GET, PATCH, DELETE
              /api/v1/packs/<id>/restore                      POST
              /api/v1/packs/<id>/sync                         POST   (template backfill)
              /api/v1/packs/<id>/readiness                    GET

    SECTION   /api/v1/packs/<id>/sections                     GET
              /api/v1/packs/<id>/sections/<sid>               GET (workspace), PATCH
              /api/v1/packs/<id>/sections/<sid>/prompts/<prompt_id>   PUT
              /api/v1/packs/<id>/sections/<sid>/review-gates/reset    POST

    EVIDENCE  /api/v1/packs/<id>/evidence                     GET
              /api/v1/packs/<id>/evidence/<eid>               GET, PATCH
              /api/v1/packs/<id>/evidence/<eid>/versions      GET, POST

    TASK      /api/v1/packs/<id>/tasks                        GET, POST
              /api/v1/packs/<id>/tasks/<tid>                  PATCH

    REVIEW    /api/v1/packs/<id>/review-queue                 GET
              /api/v1/packs/<id>/review-gates/<gid>           PATCH

    EXPORT    /api/v1/packs/<id>/export/narrative             GET
              /api/v1/packs/<id>/export/annex-index           GET
              /api/v1/packs/<id>/export/evidence-files        GET

    DOCUMENT  /api/v1/packs/<id>/documents                    GET, POST
              /api/v1/packs/<id>/documents/<did>              DELETE

    ACTIVITY  /api/v1/packs/<id>/activity                     GET
"""

import logging

from flask import Blueprint, jsonify, request

from authpack.auth import current_organization_id, current_user_id, require_role
from authpack.blueprints import register_error_handlers
from authpack.models import db
from authpack.services import pack_service, readiness_service
from authpack.utils.errors import E, api_error
from authpack.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

pack_bp = Blueprint("pack", __name__, url_prefix="/api/v1")
register_error_handlers(pack_bp)


def _get_pack_or_404(pack_id):
    return get_or_404(pack_service.get_pack(pack_id, current_organization_id()), "Pack")


def _get_section_or_404(pack_id, section_id):
    return get_or_404(pack_service.get_pack_section(pack_id, section_id), "Section")


# ═══════════════════════════════════════════════════════════════════════════
#  PACK
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs", methods=["GET"])
def list_packs():
    packs = pack_service.list_packs(current_organization_id())
    return jsonify({"items": [p.to_dict() for p in packs], "total": len(packs)})


@pack_bp.route("/packs", methods=["POST"])
@require_role("member")
def create_pack():
    data = request.get_json(silent=True) or {}
    if not data.get("template_type"):
        return api_error(E.VALIDATION_REQUIRED, "template_type is required")
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    pack = pack_service.create_pack(
        current_organization_id(),
        data["template_type"],
        data["name"],
        target_submission_date=data.get("target_submission_date"),
        actor_id=current_user_id(),
    )
    return jsonify(pack.to_dict()), 201


@pack_bp.route("/packs/<pack_id>", methods=["GET"])
def get_pack(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    result = pack.to_dict()
    result["readiness"] = readiness_service.get_pack_readiness(pack.id)
    return jsonify(result)


@pack_bp.route("/packs/<pack_id>", methods=["PATCH"])
@require_role("member")
def update_pack(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    pack_service.update_pack(pack, data, actor_id=current_user_id())
    db.session.commit()
    return jsonify(pack.to_dict())


@pack_bp.route("/packs/<pack_id>", methods=["DELETE"])
@require_role("admin")
def delete_pack(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    pack_service.soft_delete_pack(pack.id, actor_id=current_user_id())
    db.session.commit()
    return jsonify({"message": "Pack deleted", "id": pack_id})


@pack_bp.route("/packs/<pack_id>/restore", methods=["POST"])
@require_role("admin")
def restore_pack(pack_id):
    pack = pack_service.restore_pack(
        pack_id, actor_id=current_user_id(), organization_id=current_organization_id(),
    )
    db.session.commit()
    return jsonify(pack.to_dict())


@pack_bp.route("/packs/<pack_id>/sync", methods=["POST"])
@require_role("member")
def sync_pack(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify(pack_service.sync_pack_from_template(pack.id, actor_id=current_user_id()))


@pack_bp.route("/packs/<pack_id>/readiness", methods=["GET"])
def pack_readiness(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify(readiness_service.get_pack_readiness(pack.id))


# ═══════════════════════════════════════════════════════════════════════════
#  SECTIONS
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs/<pack_id>/sections", methods=["GET"])
def list_sections(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify({"sections": pack_service.get_sections(pack.id)})


@pack_bp.route("/packs/<pack_id>/sections/<section_id>", methods=["GET"])
def section_workspace(pack_id, section_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    workspace, err = get_or_404(pack_service.get_section_workspace(pack.id, section_id), "Section")
    if err:
        return err
    return jsonify(workspace)


@pack_bp.route("/packs/<pack_id>/sections/<section_id>", methods=["PATCH"])
@require_role("member")
def update_section(pack_id, section_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    section, err = _get_section_or_404(pack.id, section_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    pack_service.update_section_state(section.id, data, actor_id=current_user_id())
    db.session.commit()
    return jsonify(section.to_dict())


@pack_bp.route("/packs/<pack_id>/sections/<section_id>/prompts/<prompt_id>", methods=["PUT"])
@require_role("member")
def save_prompt_response(pack_id, section_id, prompt_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    section, err = _get_section_or_404(pack.id, section_id)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return api_error(E.VALIDATION_REQUIRED, "value is required")
    expected_version = data.get("expected_version")
    if expected_version is not None:
        try:
            expected_version = int(expected_version)
        except (TypeError, ValueError):
            return api_error(E.VALIDATION_INVALID, "expected_version must be an integer")

    response = pack_service.save_prompt_response(
        section.id, prompt_id, data["value"],
        updated_by=current_user_id(), expected_version=expected_version,
    )
    db.session.commit()
    return jsonify(response.to_dict())


@pack_bp.route("/packs/<pack_id>/sections/<section_id>/review-gates/reset", methods=["POST"])
@require_role("admin")
def reset_review_gates(pack_id, section_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    section, err = _get_section_or_404(pack.id, section_id)
    if err:
        return err
    pack_service.reset_review_gates(section.id, actor_id=current_user_id())
    db.session.commit()
    return jsonify(pack_service.get_section_workspace(pack.id, section.id)["reviewGates"])


# ═══════════════════════════════════════════════════════════════════════════
#  EVIDENCE
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs/<pack_id>/evidence", methods=["GET"])
def list_evidence(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify({"evidence": pack_service.list_evidence(pack.id)})


@pack_bp.route("/packs/<pack_id>/evidence/<evidence_id>", methods=["GET"])
def get_evidence(pack_id, evidence_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    item, err = get_or_404(pack_service.get_evidence_item(pack.id, evidence_id), "Evidence item")
    if err:
        return err
    return jsonify(item.to_dict())


@pack_bp.route("/packs/<pack_id>/evidence/<evidence_id>", methods=["PATCH"])
@require_role("member")
def update_evidence(pack_id, evidence_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    item = pack_service.update_evidence_status(pack.id, evidence_id, data["status"], actor_id=current_user_id())
    db.session.commit()
    return jsonify(item.to_dict())


@pack_bp.route("/packs/<pack_id>/evidence/<evidence_id>/versions", methods=["GET"])
def list_evidence_versions(pack_id, evidence_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    item, err = get_or_404(pack_service.get_evidence_item(pack.id, evidence_id), "Evidence item")
    if err:
        return err
    versions = pack_service.list_evidence_versions(item.id)
    return jsonify({"versions": [v.to_dict() for v in versions]})


@pack_bp.route("/packs/<pack_id>/evidence/<evidence_id>/versions", methods=["POST"])
@require_role("member")
def add_evidence_version(pack_id, evidence_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    for field in ("filename", "file_path"):
        if not data.get(field):
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
    version = pack_service.add_evidence_version(pack.id, evidence_id, data, uploaded_by=current_user_id())
    db.session.commit()
    return jsonify(version.to_dict()), 201


# ═══════════════════════════════════════════════════════════════════════════
#  TASKS
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs/<pack_id>/tasks", methods=["GET"])
def list_tasks(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    tasks = pack_service.list_tasks(pack.id, status=request.args.get("status"))
    return jsonify({"tasks": [t.to_dict() for t in tasks]})


@pack_bp.route("/packs/<pack_id>/tasks", methods=["POST"])
@require_role("member")
def create_task(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("title"):
        return api_error(E.VALIDATION_REQUIRED, "title is required")
    task = pack_service.create_task(pack.id, data, actor_id=current_user_id())
    db.session.commit()
    return jsonify(task.to_dict()), 201


@pack_bp.route("/packs/<pack_id>/tasks/<task_id>", methods=["PATCH"])
@require_role("member")
def update_task(pack_id, task_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    task = pack_service.update_task_status(pack.id, task_id, data["status"], actor_id=current_user_id())
    db.session.commit()
    return jsonify(task.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  REVIEW
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs/<pack_id>/review-queue", methods=["GET"])
def review_queue(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify({"gates": pack_service.list_review_queue(pack.id)})


@pack_bp.route("/packs/<pack_id>/review-gates/<gate_id>", methods=["PATCH"])
@require_role("member")
def update_review_gate(pack_id, gate_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    gate, err = get_or_404(pack_service.get_review_gate(pack.id, gate_id), "Review gate")
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("state"):
        return api_error(E.VALIDATION_REQUIRED, "state is required")
    gate = pack_service.update_review_gate(
        gate.id,
        data["state"],
        reviewer_id=current_user_id(),
        notes=data.get("notes"),
        client_notes=data.get("client_notes"),
    )
    return jsonify(gate.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  EXPORT
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs/<pack_id>/export/narrative", methods=["GET"])
def export_narrative(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify({"pack": pack.to_dict(), "rows": pack_service.get_narrative_export_rows(pack.id)})


@pack_bp.route("/packs/<pack_id>/export/annex-index", methods=["GET"])
def export_annex_index(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify({"rows": pack_service.get_annex_index_rows(pack.id)})


@pack_bp.route("/packs/<pack_id>/export/evidence-files", methods=["GET"])
def export_evidence_files(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    if request.args.get("include_versions") in ("1", "true"):
        return jsonify({"files": pack_service.list_evidence_versions_for_export(pack.id)})
    items = pack_service.list_evidence_files_for_export(pack.id)
    return jsonify({"files": [i.to_dict() for i in items]})


# ═══════════════════════════════════════════════════════════════════════════
#  DOCUMENTS & ACTIVITY
# ═══════════════════════════════════════════════════════════════════════════

@pack_bp.route("/packs/<pack_id>/documents", methods=["GET"])
def list_documents(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    return jsonify({"documents": [d.to_dict() for d in pack_service.list_pack_documents(pack.id)]})


@pack_bp.route("/packs/<pack_id>/documents", methods=["POST"])
@require_role("member")
def add_document(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")
    document = pack_service.add_pack_document(pack.id, data, uploaded_by=current_user_id())
    db.session.commit()
    return jsonify(document.to_dict()), 201


@pack_bp.route("/packs/<pack_id>/documents/<document_id>", methods=["DELETE"])
@require_role("member")
def delete_document(pack_id, document_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    pack_service.soft_delete_pack_document(pack.id, document_id, actor_id=current_user_id())
    db.session.commit()
    return jsonify({"message": "Document deleted", "id": document_id})


@pack_bp.route("/packs/<pack_id>/activity", methods=["GET"])
def list_activity(pack_id):
    pack, err = _get_pack_or_404(pack_id)
    if err:
        return err
    try:
        limit = min(int(request.args.get("limit", 50)), 500)
    except (TypeError, ValueError):
        limit = 50
    return jsonify({"activity": [a.to_dict() for a in pack_service.list_activity(pack.id, limit)]})
