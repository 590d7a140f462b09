"""
Authorization Pack Service
Reference blueprint — read-only catalog lookups.

Endpoints summary:
    TEMPLATES   /api/v1/reference/templates                          GET
                /api/v1/reference/templates/<type>                   GET
    ECOSYSTEMS  /api/v1/reference/ecosystems                         GET
                /api/v1/reference/ecosystems/<code>                  GET
    TRAINING    /api/v1/reference/training/modules                   GET  (?category= ?difficulty= ?persona=)
                /api/v1/reference/training/modules/<id>              GET
                /api/v1/reference/training/modules/<id>/prerequisites GET
                /api/v1/reference/training/pathways                  GET
                /api/v1/reference/training/personas/<persona>        GET
                /api/v1/reference/training/featured                  GET
    CHECKLIST   /api/v1/reference/fca-checklist                      GET
                /api/v1/reference/fca-checklist/completion           POST {statuses, completed_statuses?}
    QUESTIONS   /api/v1/reference/question-bank/context              POST {basics, question_responses, permission_code}
                /api/v1/reference/business-plan-profile              GET  (?permission=)
                /api/v1/reference/business-plan-profile/insights     POST {permission, responses}
"""

import logging

from flask import Blueprint, jsonify, request

from authpack.blueprints import register_error_handlers
from authpack.catalog import fca_checklist, training_content
from authpack.catalog.business_plan_profile import SECTION_DEPENDENCIES
from authpack.services import questionnaire, template_sync_service
from authpack.utils.errors import E, api_error
from authpack.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

reference_bp = Blueprint("reference", __name__, url_prefix="/api/v1/reference")
register_error_handlers(reference_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  TEMPLATES & ECOSYSTEMS
# ═══════════════════════════════════════════════════════════════════════════

@reference_bp.route("/templates", methods=["GET"])
def list_templates():
    template_sync_service.ensure_templates()
    return jsonify({"templates": [t.to_dict() for t in template_sync_service.list_pack_templates()]})


@reference_bp.route("/templates/<template_type>", methods=["GET"])
def get_template(template_type):
    template_sync_service.ensure_templates()
    template, err = get_or_404(template_sync_service.get_pack_template_by_type(template_type), "Template")
    if err:
        return err
    result = template.to_dict()
    result["sections"] = [
        {
            **section.to_dict(),
            "prompts": [p.to_dict() for p in section.prompts],
            "required_evidence": [r.to_dict() for r in section.required_evidence],
        }
        for section in template.sections
    ]
    return jsonify(result)


@reference_bp.route("/ecosystems", methods=["GET"])
def list_ecosystems():
    template_sync_service.ensure_ecosystems()
    return jsonify({"ecosystems": [e.to_dict() for e in template_sync_service.list_ecosystems()]})


@reference_bp.route("/ecosystems/<permission_code>", methods=["GET"])
def get_ecosystem(permission_code):
    template_sync_service.ensure_ecosystems()
    ecosystem, err = get_or_404(template_sync_service.get_ecosystem(permission_code), "Permission ecosystem")
    if err:
        return err
    return jsonify(ecosystem.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  TRAINING REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

@reference_bp.route("/training/modules", methods=["GET"])
def list_training_modules():
    category = request.args.get("category")
    difficulty = request.args.get("difficulty")
    persona = request.args.get("persona")
    if category:
        modules = training_content.get_modules_by_category(category)
    elif difficulty:
        modules = training_content.get_modules_by_difficulty(difficulty)
    elif persona:
        modules = training_content.get_modules_by_persona(persona)
    else:
        modules = training_content.get_all_training_modules()
    return jsonify({"modules": modules, "categories": training_content.TRAINING_CATEGORIES})


@reference_bp.route("/training/modules/<module_id>", methods=["GET"])
def get_training_module(module_id):
    module, err = get_or_404(training_content.get_training_module(module_id), "Training module")
    if err:
        return err
    return jsonify(module)


@reference_bp.route("/training/modules/<module_id>/prerequisites", methods=["GET"])
def get_training_prerequisites(module_id):
    _, err = get_or_404(training_content.get_training_module(module_id), "Training module")
    if err:
        return err
    return jsonify({"prerequisites": training_content.get_module_prerequisites(module_id)})


@reference_bp.route("/training/pathways", methods=["GET"])
def list_pathways():
    return jsonify({"pathways": list(training_content.LEARNING_PATHWAYS.values())})


@reference_bp.route("/training/personas/<persona>", methods=["GET"])
def persona_recommendations(persona):
    return jsonify({"persona": persona, "modules": training_content.get_recommended_modules(persona)})


@reference_bp.route("/training/featured", methods=["GET"])
def featured_modules():
    return jsonify({"modules": training_content.get_featured_modules()})


# ═══════════════════════════════════════════════════════════════════════════
#  FCA CHECKLIST
# ═══════════════════════════════════════════════════════════════════════════

@reference_bp.route("/fca-checklist", methods=["GET"])
def fca_checklist_catalog():
    return jsonify({
        "categories": fca_checklist.FCA_API_CHECKLIST,
        "phases": fca_checklist.TIMELINE_PHASES,
        "statuses": list(fca_checklist.CHECKLIST_STATUSES),
        "totalItems": fca_checklist.get_total_item_count(),
    })


@reference_bp.route("/fca-checklist/completion", methods=["POST"])
def fca_checklist_completion():
    data = request.get_json(silent=True) or {}
    statuses = data.get("statuses") or {}
    if not isinstance(statuses, dict):
        return api_error(E.VALIDATION_INVALID, "statuses must be an object of item id -> status")
    completed = tuple(data.get("completed_statuses") or fca_checklist.DEFAULT_COMPLETED_STATUSES)

    return jsonify({
        "overall": fca_checklist.calculate_completion_percentage(statuses, completed),
        "categories": {
            category["id"]: fca_checklist.calculate_category_completion(category["id"], statuses, completed)
            for category in fca_checklist.FCA_API_CHECKLIST
        },
        "phases": {
            phase["id"]: fca_checklist.calculate_phase_completion(phase["name"], statuses, completed)
            for phase in fca_checklist.TIMELINE_PHASES
        },
    })


# ═══════════════════════════════════════════════════════════════════════════
#  QUESTIONNAIRES
# ═══════════════════════════════════════════════════════════════════════════

@reference_bp.route("/question-bank/context", methods=["POST"])
def question_bank_context():
    data = request.get_json(silent=True) or {}
    return jsonify(questionnaire.build_question_context(
        data.get("basics") or {},
        data.get("question_responses") or {},
        data.get("permission_code"),
    ))


@reference_bp.route("/business-plan-profile", methods=["GET"])
def business_plan_profile_catalog():
    permission = request.args.get("permission")
    return jsonify({
        "sections": questionnaire.get_profile_sections(permission),
        "questions": questionnaire.get_profile_questions(permission),
        "dependencies": SECTION_DEPENDENCIES,
    })


@reference_bp.route("/business-plan-profile/insights", methods=["POST"])
def business_plan_profile_insights():
    data = request.get_json(silent=True) or {}
    responses = data.get("responses") or {}
    if not isinstance(responses, dict):
        return api_error(E.VALIDATION_INVALID, "responses must be an object")
    return jsonify(questionnaire.build_profile_insights(data.get("permission"), responses))
