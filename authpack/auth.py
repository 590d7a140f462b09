"""
Authorization Pack Service
Authentication & role middleware.

Provides:
    - API key authentication via X-API-Key header
    - Organization scoping (g.organization_id) for every API request
    - Role-based access control decorator

Security model:
    - /api/v1/* and /api/training/* require a valid API key
      (except /api/v1/health)
    - Each key is bound to one role and one organization

Configuration (env vars):
    API_KEYS          — comma-separated list of valid API keys
                        e.g. "k1:owner:acme,k2:member:acme,k3:viewer:beta"
                        Format: "<key>:<role>:<organization>"
                        role is owner|admin|member|viewer
    API_AUTH_ENABLED  — set to "false" to disable auth (development only).
                        The caller is then "admin" and the organization is
                        read from X-Organization-ID (default "default-org").
"""

import functools
import logging
import os
from typing import Optional

from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

# ── Roles ────────────────────────────────────────────────────────────────────

ROLES = {"owner", "admin", "member", "viewer"}

# Role hierarchy: owner > admin > member > viewer
ROLE_HIERARCHY = {
    "owner": {"owner", "admin", "member", "viewer"},
    "admin": {"admin", "member", "viewer"},
    "member": {"member", "viewer"},
    "viewer": {"viewer"},
}

DEFAULT_ORGANIZATION_ID = "default-org"

_GUARDED_PREFIXES = ("/api/v1/", "/api/training/")


def _parse_api_keys() -> dict[str, tuple[str, str]]:
    """
    Parse API_KEYS env var into {key: (role, organization_id)}.

    Keys without a role default to 'viewer'; keys without an organization
    belong to the default organization.
    """
    raw = os.getenv("API_KEYS", "")
    if not raw.strip():
        return {}

    keys = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = [p.strip() for p in entry.split(":")]
        key = parts[0]
        role = parts[1].lower() if len(parts) > 1 and parts[1] else "viewer"
        org = parts[2] if len(parts) > 2 and parts[2] else DEFAULT_ORGANIZATION_ID
        if role not in ROLES:
            logger.warning("Unknown role '%s' for API key, defaulting to 'viewer'", role)
            role = "viewer"
        keys[key] = (role, org)
    return keys


def _is_auth_enabled() -> bool:
    """Check whether authentication is enabled (env var or app config)."""
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in ("false", "0", "no", "off")
    try:
        return current_app.config.get("API_AUTH_ENABLED", "true").lower() not in ("false", "0", "no", "off")
    except RuntimeError:
        # Outside app context
        return True


def _get_api_key_from_request() -> Optional[str]:
    return request.headers.get("X-API-Key", "").strip() or None


def _authenticate():
    """Populate g with role/organization/user. Returns an error response or None."""
    g.user_id = request.headers.get("X-User-ID", "").strip() or None

    if not _is_auth_enabled():
        g.current_user_role = "admin"
        g.organization_id = request.headers.get("X-Organization-ID", "").strip() or DEFAULT_ORGANIZATION_ID
        g.api_key = "dev-mode"
        return None

    api_key = _get_api_key_from_request()
    if not api_key:
        return jsonify({"error": "Authentication required. Provide X-API-Key header."}), 401

    api_keys = _parse_api_keys()
    if not api_keys:
        logger.error("API_KEYS env var is not configured but API_AUTH_ENABLED=true")
        return jsonify({"error": "Server authentication not configured"}), 500

    entry = api_keys.get(api_key)
    if entry is None:
        logger.warning("Invalid API key attempt: %s...", api_key[:8])
        return jsonify({"error": "Invalid API key"}), 401

    g.current_user_role, g.organization_id = entry
    g.api_key = api_key
    return None


# ── Decorators ───────────────────────────────────────────────────────────────

def require_auth(f):
    """Decorator: authenticate the request if the middleware has not already."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user_role", None) is None:
            error = _authenticate()
            if error is not None:
                return error
        return f(*args, **kwargs)

    return decorated


def require_role(minimum_role: str):
    """
    Decorator: require a minimum role level.

    Usage:
        @require_role("member")
        def lesson_links(lesson_id): ...

    Role hierarchy: owner > admin > member > viewer
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_role = getattr(g, "current_user_role", None)
            if not user_role:
                return jsonify({"error": "Authentication required"}), 401

            allowed = ROLE_HIERARCHY.get(user_role, set())
            if minimum_role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    user_role, minimum_role, request.path,
                )
                return jsonify({"error": "Insufficient permissions"}), 403

            return f(*args, **kwargs)
        return decorated
    return decorator


def current_organization_id() -> str:
    return getattr(g, "organization_id", None) or DEFAULT_ORGANIZATION_ID


def current_user_id() -> Optional[str]:
    return getattr(g, "user_id", None)


# ── App-level before_request hook installer ──────────────────────────────────

def init_auth(app):
    """
    Install authentication middleware on the Flask app.

    - Attaches a before_request hook for API routes
    - Skips health checks and CORS pre-flight requests
    """
    @app.before_request
    def _before_request_auth():
        if not request.path.startswith(_GUARDED_PREFIXES):
            return None
        if request.path == "/api/v1/health" or request.path.startswith("/api/v1/health/"):
            return None
        if request.method == "OPTIONS":
            return None
        return _authenticate()

    logger.info("Auth middleware installed (enabled=%s)", _is_auth_enabled())
