"""
Authorization Pack Service
Training blueprint — backlinks into training lessons.

Endpoints:
    GET /api/training/lessons/<lesson_id>/links   (member)
"""

import logging

from flask import Blueprint, jsonify

from authpack.auth import current_organization_id, require_role
from authpack.blueprints import register_error_handlers
from authpack.services import entity_link_service

logger = logging.getLogger(__name__)

training_bp = Blueprint("training", __name__, url_prefix="/api/training")
register_error_handlers(training_bp)


@training_bp.route("/lessons/<lesson_id>/links", methods=["GET"])
@require_role("member")
def lesson_links(lesson_id):
    """Links that point at this training lesson within the caller's organization."""
    links = entity_link_service.list_training_lesson_backlinks(current_organization_id(), lesson_id)
    return jsonify({"links": [link.to_dict() for link in links]})
