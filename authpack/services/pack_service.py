"""Pack service layer — instantiation, template backfill and workspace CRUD.

Transaction policy: writers that touch several tables (``create_pack``,
``sync_pack_from_template``, ``update_review_gate``) commit once and roll back
on any exception. Single-row writers flush; the route handler commits.

Operations:
- Pack create / list / get / soft delete / restore
- Template backfill (missing sections and evidence only)
- Section listing with completion ratios, section workspace
- Prompt responses with optimistic version check
- Evidence items, versions and status
- Tasks, review gates (section review state derived from gates)
- Export rows (narrative, annex index, evidence files)
- Pack documents, activity log
"""
import logging
import re
from datetime import datetime, timezone

from sqlalchemy import and_, func, select, update

from authpack.core.exceptions import (
    NotFoundError,
    PromptResponseConflictError,
    ValidationError,
)
from authpack.models import db
from authpack.models.pack import (
    REVIEW_STAGES,
    ActivityLog,
    EvidenceItem,
    EvidenceStatus,
    EvidenceVersion,
    GateState,
    Pack,
    PackDocument,
    PackStatus,
    PromptResponse,
    ReviewGate,
    ReviewState,
    SectionInstance,
    SectionStatus,
    Task,
    TaskPriority,
    TaskSource,
    TaskStatus,
)
from authpack.models.template import PackTemplate, Prompt, RequiredEvidence, SectionTemplate
from authpack.services import readiness_service, template_sync_service
from authpack.utils.helpers import parse_date

logger = logging.getLogger(__name__)

_ANNEX_RE = re.compile(r"(\d+)$")
# "Annex-" plus zero padding: shorter labels carry smaller numbers.
_ANNEX_ORDER = (func.length(EvidenceItem.annex_number), EvidenceItem.annex_number)


def _utcnow():
    return datetime.now(timezone.utc)


def format_annex(number: int) -> str:
    return f"Annex-{number:03d}"


def parse_annex(value) -> int:
    """Numeric part of an annex label, 0 when it has none."""
    match = _ANNEX_RE.search(value or "")
    return int(match.group(1)) if match else 0


def _check_enum(enum_cls, value, field):
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"{field} must be one of: {allowed}", details={field: value},
        ) from None


def _log_activity(pack_id, action, *, entity_type=None, entity_id=None, actor_id=None, details=None):
    db.session.add(ActivityLog(
        pack_id=pack_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    ))


# ── Instantiation helpers ────────────────────────────────────────────────────


def _add_section(pack_id, section_template):
    section = SectionInstance(
        pack_id=pack_id,
        section_template_id=section_template.id,
        section_key=section_template.section_key,
        title=section_template.title,
        display_order=section_template.display_order,
    )
    db.session.add(section)
    db.session.flush()

    for stage, reviewer_role in REVIEW_STAGES:
        db.session.add(ReviewGate(
            section_instance_id=section.id,
            stage=stage,
            reviewer_role=reviewer_role,
            state=GateState.PENDING.value,
        ))
    db.session.add(Task(
        pack_id=pack_id,
        section_instance_id=section.id,
        title=f"Draft narrative for {section.title}",
        description=section_template.description,
        status=TaskStatus.PENDING.value,
        priority=TaskPriority.MEDIUM.value,
        source=TaskSource.AUTO_PROMPT.value,
    ))
    return section


def _add_evidence(pack_id, section_id, requirement, annex_number):
    item = EvidenceItem(
        pack_id=pack_id,
        section_instance_id=section_id,
        required_evidence_id=requirement.id,
        name=requirement.name,
        description=requirement.description,
        status=EvidenceStatus.REQUIRED.value,
        annex_number=format_annex(annex_number),
    )
    db.session.add(item)
    return item


def _evidence_task(pack_id, section_id, name):
    return Task(
        pack_id=pack_id,
        section_instance_id=section_id,
        title=f"Upload evidence: {name}",
        status=TaskStatus.PENDING.value,
        priority=TaskPriority.MEDIUM.value,
        source=TaskSource.AUTO_EVIDENCE.value,
    )


def _ordered_requirements(template_id):
    """Required evidence of a template, in section order then display order."""
    return db.session.execute(
        select(RequiredEvidence)
        .join(SectionTemplate, SectionTemplate.id == RequiredEvidence.section_template_id)
        .where(SectionTemplate.template_id == template_id)
        .order_by(SectionTemplate.display_order, RequiredEvidence.display_order)
    ).scalars().all()


# ═════════════════════════════════════════════════════════════════════════════
# Packs
# ═════════════════════════════════════════════════════════════════════════════


def create_pack(organization_id, template_type, name, target_submission_date=None, actor_id=None):
    """Instantiate a pack from the template of ``template_type``.

    Creates one section per section template (two pending review gates and a
    narrative task each) and one evidence item per required evidence with
    annex numbers Annex-001, Annex-002, ... plus an upload task.

    Raises:
        NotFoundError: no template of that type exists.
    """
    template_sync_service.ensure_templates()
    template = template_sync_service.get_pack_template_by_type(template_type)
    if template is None:
        raise NotFoundError(resource="Template", resource_id=template_type)

    try:
        pack = Pack(
            template_id=template.id,
            organization_id=organization_id,
            name=name,
            status=PackStatus.DRAFT.value,
            target_submission_date=parse_date(target_submission_date),
        )
        db.session.add(pack)
        db.session.flush()

        sections_by_template = {}
        for section_template in sorted(template.sections, key=lambda s: s.display_order):
            sections_by_template[section_template.id] = _add_section(pack.id, section_template)

        annex = 0
        for requirement in _ordered_requirements(template.id):
            section = sections_by_template.get(requirement.section_template_id)
            if section is None:
                continue
            annex += 1
            _add_evidence(pack.id, section.id, requirement, annex)
            db.session.add(_evidence_task(pack.id, section.id, requirement.name))

        _log_activity(
            pack.id, "pack_created", entity_type="pack", entity_id=pack.id, actor_id=actor_id,
            details={"templateType": template_type, "sections": len(sections_by_template), "evidence": annex},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Pack created",
        extra={"pack_id": pack.id, "organization_id": organization_id, "template_type": template_type},
    )
    return pack


def list_packs(organization_id):
    return db.session.execute(
        select(Pack)
        .where(Pack.organization_id == organization_id, Pack.not_deleted())
        .order_by(Pack.created_at.desc())
    ).scalars().all()


def get_pack(pack_id, organization_id=None):
    """Pack by id, or None when missing, soft-deleted or in another organization."""
    stmt = select(Pack).where(Pack.id == pack_id, Pack.not_deleted())
    if organization_id is not None:
        stmt = stmt.where(Pack.organization_id == organization_id)
    return db.session.execute(stmt).scalar_one_or_none()


def update_pack(pack, data, actor_id=None):
    if "name" in data and data["name"]:
        pack.name = data["name"]
    if "status" in data:
        pack.status = _check_enum(PackStatus, data["status"], "status")
    if "target_submission_date" in data:
        pack.target_submission_date = parse_date(data["target_submission_date"])
    _log_activity(pack.id, "pack_updated", entity_type="pack", entity_id=pack.id, actor_id=actor_id)
    db.session.flush()
    return pack


def soft_delete_pack(pack_id, actor_id=None):
    pack = get_pack(pack_id)
    if pack is None:
        raise NotFoundError(resource="Pack", resource_id=pack_id)
    pack.soft_delete()
    _log_activity(pack.id, "pack_deleted", entity_type="pack", entity_id=pack.id, actor_id=actor_id)
    db.session.flush()
    logger.info("Pack soft-deleted", extra={"pack_id": pack_id})
    return pack


def restore_pack(pack_id, actor_id=None, organization_id=None):
    pack = db.session.get(Pack, pack_id)
    if pack is None or (organization_id is not None and pack.organization_id != organization_id):
        raise NotFoundError(resource="Pack", resource_id=pack_id)
    pack.restore()
    _log_activity(pack.id, "pack_restored", entity_type="pack", entity_id=pack.id, actor_id=actor_id)
    db.session.flush()
    return pack


# ── Template backfill ────────────────────────────────────────────────────────


def sync_pack_from_template(pack_id, actor_id=None):
    """Bring a pack in line with its (re-synced) template.

    Existing section instances keep their ids and only get key, title and
    order refreshed. Missing sections are added with gates and a narrative
    task; missing evidence items continue the pack's annex sequence.
    """
    pack = get_pack(pack_id)
    if pack is None:
        raise NotFoundError(resource="Pack", resource_id=pack_id)
    template_sync_service.sync_templates()

    added_sections = 0
    added_evidence = 0
    try:
        template = db.session.get(PackTemplate, pack.template_id)
        existing = {
            section.section_template_id: section
            for section in db.session.execute(
                select(SectionInstance).where(SectionInstance.pack_id == pack_id)
            ).scalars()
        }
        for section_template in sorted(template.sections, key=lambda s: s.display_order):
            section = existing.get(section_template.id)
            if section is None:
                existing[section_template.id] = _add_section(pack_id, section_template)
                added_sections += 1
                continue
            section.section_key = section_template.section_key
            section.title = section_template.title
            section.display_order = section_template.display_order

        # annex sequence continues from the highest number issued in this pack
        annexes = db.session.execute(
            select(EvidenceItem.annex_number).where(EvidenceItem.pack_id == pack_id)
        ).scalars().all()
        next_annex = max((parse_annex(annex) for annex in annexes), default=0) + 1

        linked = set(db.session.execute(
            select(EvidenceItem.required_evidence_id)
            .where(EvidenceItem.pack_id == pack_id, EvidenceItem.required_evidence_id.is_not(None))
        ).scalars().all())
        task_keys = set(db.session.execute(
            select(Task.section_instance_id, Task.title).where(Task.pack_id == pack_id)
        ).all())

        for requirement in _ordered_requirements(template.id):
            if requirement.id in linked:
                continue
            section = existing.get(requirement.section_template_id)
            if section is None:
                continue
            _add_evidence(pack_id, section.id, requirement, next_annex)
            next_annex += 1
            added_evidence += 1
            task = _evidence_task(pack_id, section.id, requirement.name)
            if (section.id, task.title) not in task_keys:
                db.session.add(task)
                task_keys.add((section.id, task.title))

        _log_activity(
            pack_id, "pack_synced", entity_type="pack", entity_id=pack_id, actor_id=actor_id,
            details={"addedSections": added_sections, "addedEvidence": added_evidence},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Pack synced from template",
        extra={"pack_id": pack_id, "added_sections": added_sections, "added_evidence": added_evidence},
    )
    return {"packId": pack_id, "addedSections": added_sections, "addedEvidence": added_evidence}


# ═════════════════════════════════════════════════════════════════════════════
# Sections
# ═════════════════════════════════════════════════════════════════════════════


def get_sections(pack_id):
    """Section instances in display order, each with its completion ratios."""
    progress = readiness_service.section_progress(pack_id)
    sections = db.session.execute(
        select(SectionInstance)
        .where(SectionInstance.pack_id == pack_id)
        .order_by(SectionInstance.display_order)
    ).scalars().all()
    result = []
    for section in sections:
        row = section.to_dict()
        row.update(progress[section.id].to_dict())
        result.append(row)
    return result


def get_section(section_id):
    return db.session.get(SectionInstance, section_id)


def get_pack_section(pack_id, section_id):
    return db.session.execute(
        select(SectionInstance).where(SectionInstance.id == section_id, SectionInstance.pack_id == pack_id)
    ).scalar_one_or_none()


def get_section_workspace(pack_id, section_id):
    """Everything needed to edit one section, or None if it is not in the pack."""
    section = get_pack_section(pack_id, section_id)
    if section is None:
        return None

    section_template = db.session.get(SectionTemplate, section.section_template_id)
    rows = db.session.execute(
        select(Prompt, PromptResponse)
        .outerjoin(
            PromptResponse,
            and_(PromptResponse.prompt_id == Prompt.id, PromptResponse.section_instance_id == section.id),
        )
        .where(Prompt.section_template_id == section.section_template_id)
        .order_by(Prompt.display_order)
    ).all()
    prompts = []
    for prompt, response in rows:
        item = prompt.to_dict()
        item["value"] = response.value if response else None
        item["version"] = response.version if response else 0
        item["updated_by"] = response.updated_by if response else None
        item["updated_at"] = response.updated_at.isoformat() if response and response.updated_at else None
        prompts.append(item)

    evidence = db.session.execute(
        select(EvidenceItem)
        .where(EvidenceItem.section_instance_id == section.id)
        .order_by(*_ANNEX_ORDER)
    ).scalars().all()
    tasks = db.session.execute(
        select(Task).where(Task.section_instance_id == section.id).order_by(Task.created_at)
    ).scalars().all()
    gates = db.session.execute(
        select(ReviewGate).where(ReviewGate.section_instance_id == section.id).order_by(ReviewGate.stage)
    ).scalars().all()

    section_dict = section.to_dict()
    section_dict["description"] = section_template.description if section_template else None
    return {
        "section": section_dict,
        "prompts": prompts,
        "evidence": [item.to_dict() for item in evidence],
        "tasks": [task.to_dict() for task in tasks],
        "reviewGates": [gate.to_dict() for gate in gates],
    }


def update_section_state(section_id, data, actor_id=None):
    """Partial update: only keys present in ``data`` are written."""
    section = get_section(section_id)
    if section is None:
        raise NotFoundError(resource="Section", resource_id=section_id)
    if "status" in data:
        section.status = _check_enum(SectionStatus, data["status"], "status")
    if "review_state" in data:
        section.review_state = _check_enum(ReviewState, data["review_state"], "review_state")
    if "owner_id" in data:
        section.owner_id = data["owner_id"]
    if "due_date" in data:
        section.due_date = parse_date(data["due_date"])
    _log_activity(
        section.pack_id, "section_updated", entity_type="section", entity_id=section.id,
        actor_id=actor_id, details={"fields": sorted(data)},
    )
    db.session.flush()
    return section


# ── Prompt responses ─────────────────────────────────────────────────────────


def save_prompt_response(section_id, prompt_id, value, updated_by=None, expected_version=None):
    """Write a prompt response, guarding against lost updates.

    ``expected_version`` is the version the caller last read (0 for "no
    response yet"). The write is a conditional UPDATE on the version column;
    when it matches nothing the stored row is left untouched and
    PromptResponseConflictError carries the current version and editor.
    ``expected_version=None`` writes unconditionally.

    Returns the saved PromptResponse (version bumped by exactly one).
    """
    section = get_section(section_id)
    if section is None:
        raise NotFoundError(resource="Section", resource_id=section_id)
    prompt = db.session.get(Prompt, prompt_id)
    if prompt is None or prompt.section_template_id != section.section_template_id:
        raise NotFoundError(resource="Prompt", resource_id=prompt_id)

    response = db.session.execute(
        select(PromptResponse).where(
            PromptResponse.section_instance_id == section_id,
            PromptResponse.prompt_id == prompt_id,
        )
    ).scalar_one_or_none()

    if response is None:
        if expected_version not in (None, 0):
            raise PromptResponseConflictError(current_version=0)
        response = PromptResponse(
            section_instance_id=section_id,
            prompt_id=prompt_id,
            value=value,
            version=1,
            updated_by=updated_by,
        )
        db.session.add(response)
    else:
        stmt = update(PromptResponse).where(PromptResponse.id == response.id)
        if expected_version is not None:
            stmt = stmt.where(PromptResponse.version == expected_version)
        result = db.session.execute(
            stmt.values(
                value=value,
                version=PromptResponse.version + 1,
                updated_by=updated_by,
                updated_at=_utcnow(),
            ).execution_options(synchronize_session=False)
        )
        db.session.refresh(response)
        if result.rowcount == 0:
            logger.info(
                "Prompt response version conflict",
                extra={"pack_id": section.pack_id, "expected": expected_version, "current": response.version},
            )
            raise PromptResponseConflictError(
                current_version=response.version, updated_by=response.updated_by,
            )

    if section.status == SectionStatus.NOT_STARTED.value:
        section.status = SectionStatus.IN_PROGRESS.value
    _log_activity(
        section.pack_id, "prompt_response_saved", entity_type="prompt", entity_id=prompt_id,
        actor_id=updated_by, details={"sectionId": section_id},
    )
    db.session.flush()
    return response


# ═════════════════════════════════════════════════════════════════════════════
# Evidence
# ═════════════════════════════════════════════════════════════════════════════


def list_evidence(pack_id):
    rows = db.session.execute(
        select(EvidenceItem, SectionInstance.section_key, SectionInstance.title)
        .join(SectionInstance, SectionInstance.id == EvidenceItem.section_instance_id)
        .where(EvidenceItem.pack_id == pack_id)
        .order_by(SectionInstance.display_order, EvidenceItem.created_at, *_ANNEX_ORDER)
    ).all()
    result = []
    for item, section_key, section_title in rows:
        row = item.to_dict()
        row["section_key"] = section_key
        row["section_title"] = section_title
        result.append(row)
    return result


def get_evidence_item(pack_id, evidence_id):
    return db.session.execute(
        select(EvidenceItem).where(EvidenceItem.id == evidence_id, EvidenceItem.pack_id == pack_id)
    ).scalar_one_or_none()


def add_evidence_version(pack_id, evidence_id, data, uploaded_by=None):
    """Record a new upload. The item takes the file fields and version + 1."""
    item = get_evidence_item(pack_id, evidence_id)
    if item is None:
        raise NotFoundError(resource="Evidence item", resource_id=evidence_id)

    next_version = (item.version or 0) + 1
    version = EvidenceVersion(
        evidence_item_id=item.id,
        version=next_version,
        filename=data["filename"],
        file_path=data["file_path"],
        file_size=int(data.get("file_size") or 0),
        file_type=data.get("file_type"),
        uploaded_by=uploaded_by,
        notes=data.get("notes"),
    )
    db.session.add(version)

    item.status = EvidenceStatus.UPLOADED.value
    item.file_path = version.file_path
    item.file_size = version.file_size
    item.file_type = version.file_type
    item.uploaded_at = _utcnow()
    item.version = next_version

    _log_activity(
        pack_id, "evidence_uploaded", entity_type="evidence", entity_id=item.id,
        actor_id=uploaded_by, details={"version": next_version, "annex": item.annex_number},
    )
    db.session.flush()
    return version


def list_evidence_versions(evidence_id):
    return db.session.execute(
        select(EvidenceVersion)
        .where(EvidenceVersion.evidence_item_id == evidence_id)
        .order_by(EvidenceVersion.version.desc())
    ).scalars().all()


def update_evidence_status(pack_id, evidence_id, status, actor_id=None):
    item = get_evidence_item(pack_id, evidence_id)
    if item is None:
        raise NotFoundError(resource="Evidence item", resource_id=evidence_id)
    item.status = _check_enum(EvidenceStatus, status, "status")
    _log_activity(
        pack_id, "evidence_status_changed", entity_type="evidence", entity_id=item.id,
        actor_id=actor_id, details={"status": item.status},
    )
    db.session.flush()
    return item


# ═════════════════════════════════════════════════════════════════════════════
# Tasks
# ═════════════════════════════════════════════════════════════════════════════


def list_tasks(pack_id, status=None):
    stmt = select(Task).where(Task.pack_id == pack_id)
    if status:
        stmt = stmt.where(Task.status == status)
    return db.session.execute(stmt.order_by(Task.created_at)).scalars().all()


def create_task(pack_id, data, actor_id=None):
    task = Task(
        pack_id=pack_id,
        section_instance_id=data.get("section_instance_id"),
        title=data["title"],
        description=data.get("description"),
        status=_check_enum(TaskStatus, data.get("status", TaskStatus.PENDING.value), "status"),
        priority=_check_enum(TaskPriority, data.get("priority", TaskPriority.MEDIUM.value), "priority"),
        owner_id=data.get("owner_id"),
        due_date=parse_date(data.get("due_date")),
        source=TaskSource.MANUAL.value,
    )
    db.session.add(task)
    db.session.flush()
    _log_activity(pack_id, "task_created", entity_type="task", entity_id=task.id, actor_id=actor_id)
    db.session.flush()
    return task


def update_task_status(pack_id, task_id, status, actor_id=None):
    task = db.session.execute(
        select(Task).where(Task.id == task_id, Task.pack_id == pack_id)
    ).scalar_one_or_none()
    if task is None:
        raise NotFoundError(resource="Task", resource_id=task_id)
    task.status = _check_enum(TaskStatus, status, "status")
    task.completed_at = _utcnow() if task.status == TaskStatus.COMPLETED.value else None
    _log_activity(
        pack_id, "task_status_changed", entity_type="task", entity_id=task.id,
        actor_id=actor_id, details={"status": task.status},
    )
    db.session.flush()
    return task


# ═════════════════════════════════════════════════════════════════════════════
# Review gates
# ═════════════════════════════════════════════════════════════════════════════


def derive_review_state(gate_states, current):
    """Section review state implied by its gates.

    Any gate with changes requested wins, then all-approved, then
    some-approved; with no approvals the current state is kept.
    """
    states = [GateState(state) for state in gate_states]
    if any(state is GateState.CHANGES_REQUESTED for state in states):
        return ReviewState.CHANGES_REQUESTED.value
    if states and all(state is GateState.APPROVED for state in states):
        return ReviewState.APPROVED.value
    if any(state is GateState.APPROVED for state in states):
        return ReviewState.IN_REVIEW.value
    return current


def get_review_gate(pack_id, gate_id):
    return db.session.execute(
        select(ReviewGate)
        .join(SectionInstance, SectionInstance.id == ReviewGate.section_instance_id)
        .where(ReviewGate.id == gate_id, SectionInstance.pack_id == pack_id)
    ).scalar_one_or_none()


def list_review_queue(pack_id):
    rows = db.session.execute(
        select(ReviewGate, SectionInstance)
        .join(SectionInstance, SectionInstance.id == ReviewGate.section_instance_id)
        .where(SectionInstance.pack_id == pack_id)
        .order_by(SectionInstance.display_order, ReviewGate.stage)
    ).all()
    result = []
    for gate, section in rows:
        row = gate.to_dict()
        row["section_key"] = section.section_key
        row["section_title"] = section.title
        row["section_review_state"] = section.review_state
        result.append(row)
    return result


def update_review_gate(gate_id, state, reviewer_id=None, notes=None, client_notes=None):
    """Record a reviewer decision and re-derive the section review state.

    A changes_requested decision opens one high-priority review task for the
    section unless an open one already exists.
    """
    state = _check_enum(GateState, state, "state")
    gate = db.session.get(ReviewGate, gate_id)
    if gate is None:
        raise NotFoundError(resource="Review gate", resource_id=gate_id)
    section = db.session.get(SectionInstance, gate.section_instance_id)

    try:
        gate.state = state
        gate.reviewer_id = reviewer_id
        gate.reviewed_at = _utcnow()
        if notes is not None:
            gate.notes = notes
        if client_notes is not None:
            gate.client_notes = client_notes
        db.session.flush()

        gate_states = db.session.execute(
            select(ReviewGate.state).where(ReviewGate.section_instance_id == section.id)
        ).scalars().all()
        section.review_state = derive_review_state(gate_states, section.review_state)

        if state == GateState.CHANGES_REQUESTED.value:
            open_review_task = db.session.execute(
                select(Task.id).where(
                    Task.section_instance_id == section.id,
                    Task.source == TaskSource.REVIEW.value,
                    Task.status != TaskStatus.COMPLETED.value,
                ).limit(1)
            ).scalar_one_or_none()
            if open_review_task is None:
                db.session.add(Task(
                    pack_id=section.pack_id,
                    section_instance_id=section.id,
                    title=f"Address review feedback: {section.title}",
                    description=f"Review stage: {gate.stage.replace('-', ' ', 1)}",
                    status=TaskStatus.PENDING.value,
                    priority=TaskPriority.HIGH.value,
                    source=TaskSource.REVIEW.value,
                ))

        _log_activity(
            section.pack_id, "review_gate_updated", entity_type="review_gate", entity_id=gate.id,
            actor_id=reviewer_id, details={"stage": gate.stage, "state": state},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Review gate updated",
        extra={"pack_id": section.pack_id, "stage": gate.stage, "state": state},
    )
    return gate


def reset_review_gates(section_id, actor_id=None):
    section = get_section(section_id)
    if section is None:
        raise NotFoundError(resource="Section", resource_id=section_id)
    db.session.execute(
        update(ReviewGate)
        .where(ReviewGate.section_instance_id == section_id)
        .values(state=GateState.PENDING.value, reviewed_at=None, notes=None, client_notes=None)
        .execution_options(synchronize_session="fetch")
    )
    _log_activity(
        section.pack_id, "review_gates_reset", entity_type="section", entity_id=section_id, actor_id=actor_id,
    )
    db.session.flush()
    return section


# ═════════════════════════════════════════════════════════════════════════════
# Export rows
# ═════════════════════════════════════════════════════════════════════════════


def get_narrative_export_rows(pack_id):
    rows = db.session.execute(
        select(
            SectionInstance.title,
            SectionInstance.display_order,
            Prompt.title,
            Prompt.display_order,
            PromptResponse.value,
        )
        .join(Prompt, Prompt.section_template_id == SectionInstance.section_template_id)
        .outerjoin(
            PromptResponse,
            and_(
                PromptResponse.prompt_id == Prompt.id,
                PromptResponse.section_instance_id == SectionInstance.id,
            ),
        )
        .where(SectionInstance.pack_id == pack_id)
        .order_by(SectionInstance.display_order, Prompt.display_order)
    ).all()
    return [
        {
            "section_title": section_title,
            "section_order": section_order,
            "prompt_title": prompt_title,
            "prompt_order": prompt_order,
            "response_value": value,
        }
        for section_title, section_order, prompt_title, prompt_order, value in rows
    ]


def get_annex_index_rows(pack_id):
    rows = db.session.execute(
        select(EvidenceItem, SectionInstance.title)
        .join(SectionInstance, SectionInstance.id == EvidenceItem.section_instance_id)
        .where(EvidenceItem.pack_id == pack_id)
        .order_by(*_ANNEX_ORDER)
    ).all()
    return [
        {
            "annex_number": item.annex_number,
            "name": item.name,
            "description": item.description,
            "status": item.status,
            "version": item.version,
            "file_path": item.file_path,
            "section_title": section_title,
        }
        for item, section_title in rows
    ]


def list_evidence_files_for_export(pack_id):
    """Evidence items that carry a file, in annex order."""
    return db.session.execute(
        select(EvidenceItem)
        .where(EvidenceItem.pack_id == pack_id, EvidenceItem.file_path.is_not(None))
        .order_by(*_ANNEX_ORDER)
    ).scalars().all()


def list_evidence_versions_for_export(pack_id):
    rows = db.session.execute(
        select(EvidenceVersion, EvidenceItem.annex_number, EvidenceItem.name)
        .join(EvidenceItem, EvidenceItem.id == EvidenceVersion.evidence_item_id)
        .where(EvidenceItem.pack_id == pack_id)
        .order_by(*_ANNEX_ORDER, EvidenceVersion.version)
    ).all()
    result = []
    for version, annex_number, name in rows:
        row = version.to_dict()
        row["annex_number"] = annex_number
        row["evidence_name"] = name
        result.append(row)
    return result


# ═════════════════════════════════════════════════════════════════════════════
# Pack documents & activity
# ═════════════════════════════════════════════════════════════════════════════


def add_pack_document(pack_id, data, uploaded_by=None):
    document = PackDocument(
        pack_id=pack_id,
        section_code=data.get("section_code"),
        name=data["name"],
        storage_key=data.get("storage_key"),
        file_type=data.get("file_type"),
        file_size=data.get("file_size"),
        uploaded_by=uploaded_by,
    )
    db.session.add(document)
    db.session.flush()
    _log_activity(
        pack_id, "document_added", entity_type="document", entity_id=document.id,
        actor_id=uploaded_by, details={"sectionCode": document.section_code},
    )
    db.session.flush()
    return document


def list_pack_documents(pack_id):
    return db.session.execute(
        select(PackDocument)
        .where(PackDocument.pack_id == pack_id, PackDocument.not_deleted())
        .order_by(PackDocument.created_at.desc())
    ).scalars().all()


def soft_delete_pack_document(pack_id, document_id, actor_id=None):
    document = db.session.execute(
        select(PackDocument).where(
            PackDocument.id == document_id,
            PackDocument.pack_id == pack_id,
            PackDocument.not_deleted(),
        )
    ).scalar_one_or_none()
    if document is None:
        raise NotFoundError(resource="Document", resource_id=document_id)
    document.soft_delete()
    _log_activity(pack_id, "document_deleted", entity_type="document", entity_id=document.id, actor_id=actor_id)
    db.session.flush()
    return document


def list_activity(pack_id, limit=50):
    return db.session.execute(
        select(ActivityLog)
        .where(ActivityLog.pack_id == pack_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
    ).scalars().all()
