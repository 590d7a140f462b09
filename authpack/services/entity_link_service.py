"""Entity link service — organization-scoped links between compliance objects.

``upsert_link`` is idempotent on (organization, from, to); a repeat call only
replaces the metadata. Backlinks are links read from the target side.
"""
import logging

from sqlalchemy import or_, select

from authpack.core.exceptions import NotFoundError, ValidationError
from authpack.models import db
from authpack.models.entity_link import EntityLink, EntityType

logger = logging.getLogger(__name__)


def _entity_type(value, field):
    try:
        return EntityType(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in EntityType)
        raise ValidationError(f"{field} must be one of: {allowed}", details={field: value}) from None


def upsert_link(organization_id, data):
    from_type = _entity_type(data.get("from_type"), "from_type")
    to_type = _entity_type(data.get("to_type"), "to_type")
    from_id = str(data.get("from_id") or "").strip()
    to_id = str(data.get("to_id") or "").strip()
    if not from_id or not to_id:
        raise ValidationError("from_id and to_id are required")

    link = db.session.execute(
        select(EntityLink).where(
            EntityLink.organization_id == organization_id,
            EntityLink.from_type == from_type,
            EntityLink.from_id == from_id,
            EntityLink.to_type == to_type,
            EntityLink.to_id == to_id,
        )
    ).scalar_one_or_none()
    if link is None:
        link = EntityLink(
            organization_id=organization_id,
            from_type=from_type,
            from_id=from_id,
            to_type=to_type,
            to_id=to_id,
        )
        db.session.add(link)
    link.link_metadata = dict(data.get("metadata") or {})
    db.session.flush()
    return link


def list_links(organization_id, entity_type=None, entity_id=None):
    """Links touching an entity from either side, or all links of the organization."""
    stmt = select(EntityLink).where(EntityLink.organization_id == organization_id)
    if entity_type and entity_id:
        stmt = stmt.where(or_(
            (EntityLink.from_type == entity_type) & (EntityLink.from_id == entity_id),
            (EntityLink.to_type == entity_type) & (EntityLink.to_id == entity_id),
        ))
    return db.session.execute(stmt.order_by(EntityLink.created_at)).scalars().all()


def list_backlinks(organization_id, to_type, to_id):
    return db.session.execute(
        select(EntityLink)
        .where(
            EntityLink.organization_id == organization_id,
            EntityLink.to_type == to_type,
            EntityLink.to_id == to_id,
        )
        .order_by(EntityLink.created_at)
    ).scalars().all()


def list_training_lesson_backlinks(organization_id, lesson_id):
    return list_backlinks(organization_id, EntityType.TRAINING.value, lesson_id)


def delete_link(organization_id, link_id):
    link = db.session.execute(
        select(EntityLink).where(EntityLink.id == link_id, EntityLink.organization_id == organization_id)
    ).scalar_one_or_none()
    if link is None:
        raise NotFoundError(resource="Entity link", resource_id=link_id)
    db.session.delete(link)
    db.session.flush()
    logger.info("Entity link deleted", extra={"organization_id": organization_id})
