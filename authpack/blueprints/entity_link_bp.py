"""
Authorization Pack Service
Entity link blueprint — organization-scoped links between compliance objects.

Endpoints:
    GET    /api/v1/entity-links            (?entity_type=&entity_id=)
    PUT    /api/v1/entity-links            upsert {from_type, from_id, to_type, to_id, metadata}
    DELETE /api/v1/entity-links/<id>
"""

import logging

from flask import Blueprint, jsonify, request

from authpack.auth import current_organization_id, require_role
from authpack.blueprints import register_error_handlers
from authpack.models import db
from authpack.services import entity_link_service

logger = logging.getLogger(__name__)

entity_link_bp = Blueprint("entity_link", __name__, url_prefix="/api/v1/entity-links")
register_error_handlers(entity_link_bp)


@entity_link_bp.route("", methods=["GET"])
def list_links():
    links = entity_link_service.list_links(
        current_organization_id(),
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id"),
    )
    return jsonify({"links": [link.to_dict() for link in links]})


@entity_link_bp.route("", methods=["PUT"])
@require_role("member")
def upsert_link():
    data = request.get_json(silent=True) or {}
    link = entity_link_service.upsert_link(current_organization_id(), data)
    db.session.commit()
    return jsonify(link.to_dict())


@entity_link_bp.route("/<link_id>", methods=["DELETE"])
@require_role("member")
def delete_link(link_id):
    entity_link_service.delete_link(current_organization_id(), link_id)
    db.session.commit()
    return jsonify({"message": "Link deleted", "id": link_id})
