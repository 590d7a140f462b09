"""
Entity links — directed, organization-scoped references between compliance
objects (policies, risks, controls, training lessons, evidence).

Backlinks are the same rows read from the ``to`` side.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from authpack.models import db


__all__ = ["EntityType", "EntityLink"]


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class EntityType(str, Enum):
    POLICY = "policy"
    RISK = "risk"
    CONTROL = "control"
    TRAINING = "training"
    EVIDENCE = "evidence"


class EntityLink(db.Model):
    __tablename__ = "entity_links"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    organization_id = db.Column(db.String(64), nullable=False, index=True)
    from_type = db.Column(db.String(20), nullable=False)
    from_id = db.Column(db.String(100), nullable=False)
    to_type = db.Column(db.String(20), nullable=False)
    to_id = db.Column(db.String(100), nullable=False)
    # "metadata" is reserved on declarative classes
    link_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint(
            "organization_id", "from_type", "from_id", "to_type", "to_id",
            name="uq_entity_link",
        ),
        db.Index("ix_entity_link_target", "organization_id", "to_type", "to_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "fromType": self.from_type,
            "fromId": self.from_id,
            "toType": self.to_type,
            "toId": self.to_id,
            "metadata": self.link_metadata or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<EntityLink {self.from_type}:{self.from_id} -> {self.to_type}:{self.to_id}>"
