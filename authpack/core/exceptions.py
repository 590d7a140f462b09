"""
Service-layer exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere.

Usage:
    from authpack.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Pack", resource_id=pack_id)
    raise ValidationError("status must be one of ...", details={"status": "..."})
"""

from authpack.utils.errors import E


class NotFoundError(Exception):
    """Raised when a resource a mutating operation depends on does not exist.

    Plain lookups (``get_pack``, ``get_authorization_project`` ...) return
    None instead; this is for writers such as "Template not found" during
    pack creation.

    Args:
        resource: Human-readable entity name (e.g. "Pack", "Template").
        resource_id: The key that was looked up. Included in logs.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        if resource_id is not None:
            msg = f"{resource} id={resource_id} not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Well-formed input that violates a business rule. Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown (field name -> description).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write collides with existing state. Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field whose value collides.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class PromptResponseConflictError(ConflictError):
    """A prompt response write carried a stale expected version.

    Carries the stored version and the identity of the last editor so the
    caller can offer a merge or overwrite.
    """

    def __init__(self, current_version: int, updated_by: str | None = None) -> None:
        super().__init__("PromptResponse", "version", str(current_version))
        self.current_version = current_version
        self.updated_by = updated_by
        self.args = (
            f"Prompt response was modified by another user (current version {current_version})",
        )

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "code": E.CONFLICT_VERSION,
            "currentVersion": self.current_version,
            "updatedBy": self.updated_by,
        }
