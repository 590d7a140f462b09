"""
Authorization Pack — workspace models.

A Pack is the per-organization realization of a PackTemplate:

    Pack
     ├── SectionInstance (one per SectionTemplate)
     │    ├── PromptResponse   (one per Prompt, optimistic `version`)
     │    ├── ReviewGate       (client-review + consultant-review)
     │    └── Task
     ├── EvidenceItem (one per RequiredEvidence, pack-unique annex number)
     │    └── EvidenceVersion  (append-only upload history)
     ├── PackDocument (generated/uploaded documents, soft delete)
     └── ActivityLog

Status fields are stored as strings but always written from the closed
enums below; aggregation code matches on the enums, never on raw literals.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from authpack.models import db
from authpack.models.soft_delete import SoftDeleteMixin


__all__ = [
    "PackStatus",
    "SectionStatus",
    "ReviewState",
    "EvidenceStatus",
    "GateState",
    "TaskStatus",
    "TaskPriority",
    "TaskSource",
    "Pack",
    "SectionInstance",
    "PromptResponse",
    "EvidenceItem",
    "EvidenceVersion",
    "ReviewGate",
    "Task",
    "PackDocument",
    "ActivityLog",
    "REVIEW_STAGES",
    "OPINION_PACK_SECTION_CODE",
]


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Closed status types ──────────────────────────────────────────────────────

class PackStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"


class SectionStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


class ReviewState(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in-review"
    CHANGES_REQUESTED = "changes-requested"
    APPROVED = "approved"


class EvidenceStatus(str, Enum):
    REQUIRED = "required"
    UPLOADED = "uploaded"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_delivered(self) -> bool:
        return self in (EvidenceStatus.UPLOADED, EvidenceStatus.APPROVED)


class GateState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskSource(str, Enum):
    MANUAL = "manual"
    AUTO_PROMPT = "auto-prompt"
    AUTO_EVIDENCE = "auto-evidence"
    REVIEW = "review"


# (stage, reviewer_role): every section instance gets exactly these gates
REVIEW_STAGES = (
    ("client-review", "client"),
    ("consultant-review", "consultant"),
)

# Section code marking a generated perimeter opinion pack document
OPINION_PACK_SECTION_CODE = "perimeter-opinion"


# ── Pack ─────────────────────────────────────────────────────────────────────

class Pack(SoftDeleteMixin, db.Model):
    """An authorization submission workspace."""

    __tablename__ = "packs"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    template_id = db.Column(
        db.String(36), db.ForeignKey("pack_templates.id"), nullable=False, index=True,
    )
    organization_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default=PackStatus.DRAFT.value,
        comment="draft | in-progress | submitted",
    )
    target_submission_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    template = db.relationship("PackTemplate", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "template_type": self.template.type if self.template else None,
            "template_name": self.template.name if self.template else None,
            "organization_id": self.organization_id,
            "name": self.name,
            "status": self.status,
            "target_submission_date": (
                self.target_submission_date.isoformat() if self.target_submission_date else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Pack {self.id} {self.name!r}>"


class SectionInstance(db.Model):
    """Per-pack realization of a section template."""

    __tablename__ = "section_instances"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    pack_id = db.Column(
        db.String(36), db.ForeignKey("packs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    section_template_id = db.Column(
        db.String(36), db.ForeignKey("section_templates.id"), nullable=False,
    )
    section_key = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(
        db.String(20), nullable=False, default=SectionStatus.NOT_STARTED.value,
        comment="not-started | in-progress | complete",
    )
    owner_id = db.Column(db.String(64), nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    review_state = db.Column(
        db.String(20), nullable=False, default=ReviewState.DRAFT.value,
        comment="draft | in-review | changes-requested | approved (derived from gates)",
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("pack_id", "section_template_id", name="uq_section_instance_pack_template"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "pack_id": self.pack_id,
            "section_template_id": self.section_template_id,
            "section_key": self.section_key,
            "title": self.title,
            "display_order": self.display_order,
            "status": self.status,
            "owner_id": self.owner_id,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "review_state": self.review_state,
        }

    def __repr__(self):
        return f"<SectionInstance {self.section_key} pack={self.pack_id}>"


class PromptResponse(db.Model):
    """Answer text for one prompt in one section instance.

    `version` starts at 1 and is bumped by exactly one on every accepted
    write; writers pass the version they last read.
    """

    __tablename__ = "prompt_responses"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    section_instance_id = db.Column(
        db.String(36), db.ForeignKey("section_instances.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    prompt_id = db.Column(
        db.String(36), db.ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False,
    )
    value = db.Column(db.Text, nullable=True)
    version = db.Column(db.Integer, nullable=False, default=1)
    updated_by = db.Column(db.String(64), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("section_instance_id", "prompt_id", name="uq_prompt_response_section_prompt"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "section_instance_id": self.section_instance_id,
            "prompt_id": self.prompt_id,
            "value": self.value,
            "version": self.version,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<PromptResponse prompt={self.prompt_id} v{self.version}>"


class EvidenceItem(db.Model):
    """Per-pack evidence instance with a pack-unique annex number."""

    __tablename__ = "evidence_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    pack_id = db.Column(
        db.String(36), db.ForeignKey("packs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    section_instance_id = db.Column(
        db.String(36), db.ForeignKey("section_instances.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    required_evidence_id = db.Column(
        db.String(36), db.ForeignKey("required_evidence.id", ondelete="SET NULL"), nullable=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default=EvidenceStatus.REQUIRED.value,
        comment="required | uploaded | approved | rejected",
    )
    annex_number = db.Column(db.String(20), nullable=True, comment="Annex-001, Annex-002, ...")
    file_path = db.Column(db.String(500), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    file_type = db.Column(db.String(100), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    versions = db.relationship(
        "EvidenceVersion", backref="evidence_item", lazy="select",
        cascade="all, delete-orphan", order_by="EvidenceVersion.version.desc()",
    )

    __table_args__ = (
        db.UniqueConstraint("pack_id", "annex_number", name="uq_evidence_pack_annex"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "pack_id": self.pack_id,
            "section_instance_id": self.section_instance_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "annex_number": self.annex_number,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "file_type": self.file_type,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "version": self.version,
        }

    def __repr__(self):
        return f"<EvidenceItem {self.annex_number} {self.name!r}>"


class EvidenceVersion(db.Model):
    """One uploaded file for an evidence item. Append-only."""

    __tablename__ = "evidence_versions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    evidence_item_id = db.Column(
        db.String(36), db.ForeignKey("evidence_items.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    version = db.Column(db.Integer, nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    file_type = db.Column(db.String(100), nullable=True)
    uploaded_by = db.Column(db.String(64), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("evidence_item_id", "version", name="uq_evidence_version"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "evidence_item_id": self.evidence_item_id,
            "version": self.version,
            "filename": self.filename,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "file_type": self.file_type,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<EvidenceVersion item={self.evidence_item_id} v{self.version}>"


class ReviewGate(db.Model):
    """One of the two sign-off gates on a section instance."""

    __tablename__ = "review_gates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    section_instance_id = db.Column(
        db.String(36), db.ForeignKey("section_instances.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    stage = db.Column(db.String(50), nullable=False, comment="client-review | consultant-review")
    state = db.Column(
        db.String(30), nullable=False, default=GateState.PENDING.value,
        comment="pending | approved | changes_requested",
    )
    reviewer_role = db.Column(db.String(30), nullable=True)
    reviewer_id = db.Column(db.String(64), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    client_notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("section_instance_id", "stage", name="uq_review_gate_section_stage"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "section_instance_id": self.section_instance_id,
            "stage": self.stage,
            "state": self.state,
            "reviewer_role": self.reviewer_role,
            "reviewer_id": self.reviewer_id,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "notes": self.notes,
            "client_notes": self.client_notes,
        }

    def __repr__(self):
        return f"<ReviewGate {self.stage} {self.state}>"


class Task(db.Model):
    """A unit of work on a pack, optionally tied to a section."""

    __tablename__ = "tasks"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    pack_id = db.Column(
        db.String(36), db.ForeignKey("packs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    section_instance_id = db.Column(
        db.String(36), db.ForeignKey("section_instances.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    title = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default=TaskStatus.PENDING.value,
        comment="pending | in-progress | completed",
    )
    priority = db.Column(
        db.String(10), nullable=False, default=TaskPriority.MEDIUM.value,
        comment="low | medium | high",
    )
    owner_id = db.Column(db.String(64), nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    source = db.Column(
        db.String(20), nullable=False, default=TaskSource.MANUAL.value,
        comment="manual | auto-prompt | auto-evidence | review",
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    section = db.relationship("SectionInstance", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "pack_id": self.pack_id,
            "section_instance_id": self.section_instance_id,
            "section_title": self.section.title if self.section else None,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "owner_id": self.owner_id,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "source": self.source,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<Task {self.title!r} {self.status}>"


class PackDocument(SoftDeleteMixin, db.Model):
    """A generated or uploaded document attached to a pack."""

    __tablename__ = "pack_documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    pack_id = db.Column(
        db.String(36), db.ForeignKey("packs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    section_code = db.Column(
        db.String(100), nullable=True,
        comment="perimeter-opinion marks a generated opinion pack",
    )
    name = db.Column(db.String(255), nullable=False)
    storage_key = db.Column(db.String(500), nullable=True)
    file_type = db.Column(db.String(100), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    uploaded_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "pack_id": self.pack_id,
            "section_code": self.section_code,
            "name": self.name,
            "storage_key": self.storage_key,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<PackDocument {self.section_code} {self.name!r}>"


class ActivityLog(db.Model):
    """Append-only record of changes made inside a pack."""

    __tablename__ = "activity_log"

    id = db.Column(db.Integer, primary_key=True)
    pack_id = db.Column(
        db.String(36), db.ForeignKey("packs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    actor_id = db.Column(db.String(64), nullable=True)
    action = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(50), nullable=True)
    entity_id = db.Column(db.String(36), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "pack_id": self.pack_id,
            "actor_id": self.actor_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.action} pack={self.pack_id}>"
