"""
Authorization Pack — template and reference models.

PackTemplate → SectionTemplate → Prompt / RequiredEvidence describe what a
pack of a given type must contain. PermissionEcosystem maps an FCA
permission code onto a pack template type plus the policy, training and
SMCR-role checklists that seed a new assessment.

All rows are written by ``template_sync_service`` from the static catalog in
``authpack.catalog``; nothing else mutates them.
"""

import uuid
from datetime import datetime, timezone

from authpack.models import db


__all__ = [
    "PackTemplate",
    "SectionTemplate",
    "Prompt",
    "RequiredEvidence",
    "PermissionEcosystem",
]


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class PackTemplate(db.Model):
    """A pack blueprint for one regulatory application type."""

    __tablename__ = "pack_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    type = db.Column(
        db.String(50), nullable=False, unique=True,
        comment="payments-emi | investment | consumer-credit | insurance-distribution | crypto-registration",
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    sections = db.relationship(
        "SectionTemplate", backref="template", lazy="select",
        cascade="all, delete-orphan", order_by="SectionTemplate.display_order",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
        }

    def __repr__(self):
        return f"<PackTemplate {self.type}>"


class SectionTemplate(db.Model):
    """A named, ordered section within a pack template."""

    __tablename__ = "section_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    template_id = db.Column(
        db.String(36), db.ForeignKey("pack_templates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    section_key = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_addon = db.Column(db.Boolean, nullable=False, default=False)
    addon_trigger = db.Column(db.String(50), nullable=True)

    prompts = db.relationship(
        "Prompt", backref="section_template", lazy="select",
        cascade="all, delete-orphan", order_by="Prompt.display_order",
    )
    required_evidence = db.relationship(
        "RequiredEvidence", backref="section_template", lazy="select",
        cascade="all, delete-orphan", order_by="RequiredEvidence.display_order",
    )

    __table_args__ = (
        db.UniqueConstraint("template_id", "section_key", name="uq_section_template_key"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "section_key": self.section_key,
            "title": self.title,
            "description": self.description,
            "display_order": self.display_order,
            "is_addon": self.is_addon,
        }

    def __repr__(self):
        return f"<SectionTemplate {self.section_key}>"


class Prompt(db.Model):
    """A narrative question attached to a section template."""

    __tablename__ = "prompts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    section_template_id = db.Column(
        db.String(36), db.ForeignKey("section_templates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    prompt_key = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    guidance = db.Column(db.Text, nullable=True)
    example_answer = db.Column(db.Text, nullable=True)
    input_type = db.Column(
        db.String(20), nullable=False, default="rich-text",
        comment="rich-text | short-text | number | date",
    )
    required = db.Column(db.Boolean, nullable=False, default=True)
    weight = db.Column(db.Integer, nullable=False, default=1)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("section_template_id", "prompt_key", name="uq_prompt_section_key"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "prompt_key": self.prompt_key,
            "title": self.title,
            "guidance": self.guidance,
            "input_type": self.input_type,
            "required": self.required,
            "weight": self.weight,
            "display_order": self.display_order,
        }

    def __repr__(self):
        return f"<Prompt {self.prompt_key}>"


class RequiredEvidence(db.Model):
    """An evidence requirement defined on a section template."""

    __tablename__ = "required_evidence"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    section_template_id = db.Column(
        db.String(36), db.ForeignKey("section_templates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    file_types = db.Column(db.String(255), nullable=True)
    is_mandatory = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_mandatory": self.is_mandatory,
            "display_order": self.display_order,
        }

    def __repr__(self):
        return f"<RequiredEvidence {self.name!r}>"


class PermissionEcosystem(db.Model):
    """Reference record: permission code → template type + checklists."""

    __tablename__ = "permission_ecosystems"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    permission_code = db.Column(db.String(50), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    pack_template_type = db.Column(db.String(50), nullable=False)
    section_keys = db.Column(db.JSON, nullable=False, default=list)
    policy_templates = db.Column(db.JSON, nullable=False, default=list)
    training_requirements = db.Column(db.JSON, nullable=False, default=list)
    smcr_roles = db.Column(db.JSON, nullable=False, default=list)
    typical_timeline_weeks = db.Column(db.Integer, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "permission_code": self.permission_code,
            "name": self.name,
            "description": self.description,
            "pack_template_type": self.pack_template_type,
            "section_keys": list(self.section_keys or []),
            "policy_templates": list(self.policy_templates or []),
            "training_requirements": list(self.training_requirements or []),
            "smcr_roles": list(self.smcr_roles or []),
            "typical_timeline_weeks": self.typical_timeline_weeks,
        }

    def __repr__(self):
        return f"<PermissionEcosystem {self.permission_code}>"
