"""
Template & ecosystem sync — writes the static ``authpack.catalog`` into the
reference tables.

Sync is an upsert keyed by natural keys (template type, section key, prompt
key, normalised evidence name, permission code): existing rows keep their ids
so pack instances pointing at them stay valid; display order is rewritten
from catalog order on every run.

``ensure_templates`` / ``ensure_ecosystems`` run the sync once per process.
The guard is a ``SyncState`` behind a lock; resetting it only causes one more
(idempotent) sync.
"""

import logging
import threading
from enum import Enum

from sqlalchemy import delete, select

from authpack.catalog.pack_templates import CORE_SPINE, PACK_TEMPLATES
from authpack.catalog.permission_ecosystems import PERMISSION_ECOSYSTEMS
from authpack.models import db
from authpack.models.entity_link import EntityLink
from authpack.models.pack import (
    ActivityLog,
    EvidenceItem,
    EvidenceVersion,
    Pack,
    PackDocument,
    PromptResponse,
    ReviewGate,
    SectionInstance,
    Task,
)
from authpack.models.project import AuthorizationProject
from authpack.models.template import (
    PackTemplate,
    PermissionEcosystem,
    Prompt,
    RequiredEvidence,
    SectionTemplate,
)

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    UNSYNCED = "unsynced"
    SYNCING = "syncing"
    SYNCED = "synced"


_CORE_SECTION_KEYS = frozenset(section["key"] for section in CORE_SPINE)

_lock = threading.RLock()
_state = {"templates": SyncState.UNSYNCED, "ecosystems": SyncState.UNSYNCED}


def get_sync_state(kind: str) -> SyncState:
    return _state[kind]


def reset_sync_state():
    """Forget that the catalog was synced in this process."""
    with _lock:
        _state["templates"] = SyncState.UNSYNCED
        _state["ecosystems"] = SyncState.UNSYNCED


def _normalise_name(name: str) -> str:
    return " ".join((name or "").lower().split())


# ── Templates ────────────────────────────────────────────────────────────────


def _sync_prompts(section_template, definitions):
    existing = {prompt.prompt_key: prompt for prompt in section_template.prompts}
    for order, definition in enumerate(definitions, start=1):
        prompt = existing.get(definition["key"])
        if prompt is None:
            prompt = Prompt(prompt_key=definition["key"])
            section_template.prompts.append(prompt)
        prompt.title = definition["title"]
        prompt.guidance = definition.get("guidance")
        prompt.input_type = definition.get("input_type", "rich-text")
        prompt.required = bool(definition.get("required", True))
        prompt.weight = int(definition.get("weight", 1))
        prompt.display_order = order


def _sync_evidence(section_template, definitions):
    existing = {_normalise_name(item.name): item for item in section_template.required_evidence}
    for order, definition in enumerate(definitions, start=1):
        item = existing.get(_normalise_name(definition["name"]))
        if item is None:
            item = RequiredEvidence(name=definition["name"])
            section_template.required_evidence.append(item)
        item.description = definition.get("description")
        item.is_mandatory = bool(definition.get("is_mandatory", True))
        item.display_order = order


def _sync_template(definition):
    template = db.session.execute(
        select(PackTemplate).where(PackTemplate.type == definition["type"])
    ).scalar_one_or_none()
    if template is None:
        template = PackTemplate(type=definition["type"], name=definition["name"])
        db.session.add(template)
    template.name = definition["name"]
    template.description = definition.get("description")

    existing = {section.section_key: section for section in template.sections}
    for order, section_def in enumerate(definition["sections"], start=1):
        section = existing.get(section_def["key"])
        if section is None:
            section = SectionTemplate(section_key=section_def["key"])
            template.sections.append(section)
        section.title = section_def["title"]
        section.description = section_def.get("description")
        section.display_order = order
        section.is_addon = section_def["key"] not in _CORE_SECTION_KEYS
        section.addon_trigger = definition["type"] if section.is_addon else None
        _sync_prompts(section, section_def.get("prompts", []))
        _sync_evidence(section, section_def.get("evidence", []))
    return template


def sync_templates():
    """Upsert every catalog pack template. Returns the number of templates."""
    try:
        for definition in PACK_TEMPLATES:
            _sync_template(definition)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Pack templates synced", extra={"count": len(PACK_TEMPLATES)})
    return len(PACK_TEMPLATES)


# ── Ecosystems ───────────────────────────────────────────────────────────────


def sync_ecosystems():
    """Upsert permission ecosystems; section keys come from the pack template."""
    templates_by_type = {template["type"]: template for template in PACK_TEMPLATES}
    try:
        for definition in PERMISSION_ECOSYSTEMS:
            template = templates_by_type.get(definition["pack_template_type"])
            section_keys = [section["key"] for section in template["sections"]] if template else []

            ecosystem = db.session.execute(
                select(PermissionEcosystem).where(PermissionEcosystem.permission_code == definition["code"])
            ).scalar_one_or_none()
            if ecosystem is None:
                ecosystem = PermissionEcosystem(permission_code=definition["code"])
                db.session.add(ecosystem)
            ecosystem.name = definition["name"]
            ecosystem.description = definition.get("description")
            ecosystem.pack_template_type = definition["pack_template_type"]
            ecosystem.section_keys = section_keys
            ecosystem.policy_templates = list(definition["policy_templates"])
            ecosystem.training_requirements = list(definition["training_requirements"])
            ecosystem.smcr_roles = list(definition["smcr_roles"])
            ecosystem.typical_timeline_weeks = definition.get("typical_timeline_weeks")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Permission ecosystems synced", extra={"count": len(PERMISSION_ECOSYSTEMS)})
    return len(PERMISSION_ECOSYSTEMS)


# ── Once-per-process guards ──────────────────────────────────────────────────


def _ensure(kind, sync_fn):
    if _state[kind] is SyncState.SYNCED:
        return
    with _lock:
        # re-entrant: ensure_ecosystems calls ensure_templates while holding the lock
        if _state[kind] is not SyncState.UNSYNCED:
            return
        _state[kind] = SyncState.SYNCING
        try:
            sync_fn()
        except Exception:
            _state[kind] = SyncState.UNSYNCED
            raise
        _state[kind] = SyncState.SYNCED


def ensure_templates():
    _ensure("templates", sync_templates)


def ensure_ecosystems():
    with _lock:
        ensure_templates()
        _ensure("ecosystems", sync_ecosystems)


def ensure_reference_data(app=None):
    """Seed templates and ecosystems unless AUTO_SYNC_TEMPLATES is off."""
    if app is not None and not app.config.get("AUTO_SYNC_TEMPLATES", True):
        return
    ensure_ecosystems()


# ── Listing ──────────────────────────────────────────────────────────────────


def list_pack_templates():
    return db.session.execute(select(PackTemplate).order_by(PackTemplate.name)).scalars().all()


def get_pack_template_by_type(template_type):
    return db.session.execute(
        select(PackTemplate).where(PackTemplate.type == template_type)
    ).scalar_one_or_none()


def list_ecosystems():
    return db.session.execute(
        select(PermissionEcosystem).order_by(PermissionEcosystem.name)
    ).scalars().all()


def get_ecosystem(permission_code):
    return db.session.execute(
        select(PermissionEcosystem).where(PermissionEcosystem.permission_code == permission_code)
    ).scalar_one_or_none()


# ── Reset ────────────────────────────────────────────────────────────────────

# children before parents
_RESET_ORDER = (
    EntityLink,
    ActivityLog,
    Task,
    ReviewGate,
    EvidenceVersion,
    EvidenceItem,
    PromptResponse,
    SectionInstance,
    PackDocument,
    AuthorizationProject,
    Pack,
    RequiredEvidence,
    Prompt,
    SectionTemplate,
    PackTemplate,
    PermissionEcosystem,
)


def reset_authorization_data(reseed=True):
    """Delete all pack, project and template data, then optionally re-seed.

    Returns ``{table_name: deleted_rows}``.
    """
    counts = {}
    try:
        for model in _RESET_ORDER:
            result = db.session.execute(delete(model))
            counts[model.__tablename__] = result.rowcount
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    reset_sync_state()
    logger.warning("Authorization data reset", extra={"tables": len(counts)})
    if reseed:
        ensure_ecosystems()
    return counts
