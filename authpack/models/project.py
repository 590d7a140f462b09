"""
Authorization Project — wraps exactly one Pack with the firm's assessment
snapshot and its generated project plan.

``assessment_data`` and ``project_plan`` are JSON columns; always assign a
new dict when changing them so SQLAlchemy flags the column as dirty.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from authpack.models import db
from authpack.models.soft_delete import SoftDeleteMixin


__all__ = ["ProjectStatus", "AuthorizationProject"]


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class ProjectStatus(str, Enum):
    ASSESSMENT = "assessment"
    PLANNING = "planning"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"


class AuthorizationProject(SoftDeleteMixin, db.Model):
    __tablename__ = "authorization_projects"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    organization_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    permission_code = db.Column(db.String(50), nullable=False)
    pack_id = db.Column(
        db.String(36), db.ForeignKey("packs.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    status = db.Column(
        db.String(20), nullable=False, default=ProjectStatus.ASSESSMENT.value,
        comment="assessment | planning | in-progress | submitted",
    )
    target_submission_date = db.Column(db.Date, nullable=True)
    assessment_data = db.Column(db.JSON, nullable=False, default=dict)
    project_plan = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    pack = db.relationship("Pack", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "permission_code": self.permission_code,
            "pack_id": self.pack_id,
            "pack_name": self.pack.name if self.pack else None,
            "pack_status": self.pack.status if self.pack else None,
            "status": self.status,
            "target_submission_date": (
                self.target_submission_date.isoformat() if self.target_submission_date else None
            ),
            "assessment_data": self.assessment_data or {},
            "project_plan": self.project_plan or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<AuthorizationProject {self.id} {self.permission_code}>"
