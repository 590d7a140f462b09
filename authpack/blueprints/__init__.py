"""
Authorization Pack Service
Blueprint registry and the error handlers every JSON blueprint shares.
"""

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from authpack.core.exceptions import (
    ConflictError,
    NotFoundError,
    PromptResponseConflictError,
    ValidationError,
)
from authpack.models import db
from authpack.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map service exceptions to JSON responses on ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        db.session.rollback()
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return api_error(E.UNPROCESSABLE, str(error), details=error.details)

    @bp.errorhandler(PromptResponseConflictError)
    def _handle_version_conflict(error: PromptResponseConflictError):
        db.session.rollback()
        return jsonify(error.to_dict()), 409

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp
