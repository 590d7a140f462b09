"""Shared helpers for blueprints and services.

get_or_404:     tuple-return lookup used by every blueprint
parse_date:     lenient ISO date parsing (None on bad input)
round_half_up:  integer percentage rounding, .5 always rounds up
percent:        round_half_up(100 * done / total), 0 when total is 0
"""
import logging
import math
from datetime import date, datetime

from flask import jsonify

from authpack.utils.errors import E

logger = logging.getLogger(__name__)


def get_or_404(obj, label):
    """Turn an optional service lookup result into the tuple-return pattern.

    - Success: (obj, None)
    - Failure: (None, (jsonify_response, 404))

        pack, err = get_or_404(pack_service.get_pack(pack_id), "Pack")
        if err:
            return err
    """
    if obj is None:
        return None, (jsonify({"error": f"{label} not found", "code": E.NOT_FOUND}), 404)
    return obj, None


def parse_date(value):
    """Parse YYYY-MM-DD or an ISO datetime to a date. None for empty/invalid input."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def percent(done: int, total: int) -> int:
    if not total:
        return 0
    return round_half_up(100 * done / total)
