"""
Authorization Pack Service
Tests — pack service layer.

Covers:
    - Pack instantiation from catalog and custom templates
    - Annex numbering (unique, strictly increasing, continued by sync)
    - Template backfill via sync_pack_from_template
    - Prompt responses with optimistic version check
    - Review gates: derived section state + review task
    - Evidence versions, tasks, partial section updates
    - Export rows, pack documents, soft delete / restore, activity log
"""

import pytest
from sqlalchemy import func, select

from authpack.core.exceptions import NotFoundError, PromptResponseConflictError, ValidationError
from authpack.models import db as _db
from authpack.models.pack import (
    ActivityLog,
    EvidenceItem,
    PromptResponse,
    ReviewGate,
    SectionInstance,
    Task,
)
from authpack.models.template import PackTemplate, Prompt, RequiredEvidence, SectionTemplate
from authpack.services import pack_service
from authpack.services.pack_service import derive_review_state, format_annex, parse_annex

ORG = "test-org"


def _make_template(template_type="unit-pack", sections=2, evidence_per_section=2):
    template = PackTemplate(type=template_type, name="Unit template")
    for s in range(1, sections + 1):
        section = SectionTemplate(section_key=f"sec-{s}", title=f"Section {s}", display_order=s)
        section.prompts.append(Prompt(prompt_key="narrative", title="Narrative", required=True, display_order=1))
        section.prompts.append(Prompt(prompt_key="controls", title="Controls", required=True, display_order=2))
        for e in range(1, evidence_per_section + 1):
            section.required_evidence.append(RequiredEvidence(name=f"Doc {s}.{e}", display_order=e))
        template.sections.append(section)
    _db.session.add(template)
    _db.session.commit()
    return template


def _make_pack(template_type="unit-pack", **kw):
    _make_template(template_type, **kw)
    return pack_service.create_pack(ORG, template_type, "Unit pack", target_submission_date="2027-03-31")


def _first_section(pack):
    return _db.session.execute(
        select(SectionInstance).where(SectionInstance.pack_id == pack.id).order_by(SectionInstance.display_order)
    ).scalars().first()


def _first_prompt_id(pack, section):
    return pack_service.get_section_workspace(pack.id, section.id)["prompts"][0]["id"]


# ═════════════════════════════════════════════════════════════════════════════
# PACK CREATION
# ═════════════════════════════════════════════════════════════════════════════

class TestCreatePack:
    def test_creates_sections_gates_evidence_and_tasks(self):
        pack = _make_pack()
        sections = pack_service.get_sections(pack.id)
        assert [s["title"] for s in sections] == ["Section 1", "Section 2"]

        gates = _db.session.execute(select(ReviewGate)).scalars().all()
        assert len(gates) == 4
        assert {g.stage for g in gates} == {"client-review", "consultant-review"}
        assert all(g.state == "pending" for g in gates)

        evidence = pack_service.list_evidence(pack.id)
        assert len(evidence) == 4
        assert all(e["status"] == "required" for e in evidence)

        tasks = pack_service.list_tasks(pack.id)
        titles = [t.title for t in tasks]
        assert "Draft narrative for Section 1" in titles
        assert "Upload evidence: Doc 2.2" in titles
        assert len(tasks) == 2 + 4

    def test_unknown_template_raises(self):
        with pytest.raises(NotFoundError):
            pack_service.create_pack(ORG, "no-such-template", "Pack")

    def test_catalog_template_pack(self):
        pack = pack_service.create_pack(ORG, "payments-emi", "Payments pack")
        assert pack.template.type == "payments-emi"
        assert len(pack_service.get_sections(pack.id)) > 0

    def test_target_date_parsed(self):
        pack = _make_pack()
        assert pack.target_submission_date.isoformat() == "2027-03-31"

    def test_creation_logged(self):
        pack = _make_pack()
        actions = [a.action for a in pack_service.list_activity(pack.id)]
        assert "pack_created" in actions


class TestAnnexNumbering:
    def test_format_and_parse(self):
        assert format_annex(7) == "Annex-007"
        assert parse_annex("Annex-012") == 12
        assert parse_annex(None) == 0

    def test_annex_numbers_unique_and_increasing(self):
        pack = pack_service.create_pack(ORG, "payments-emi", "Payments pack")
        numbers = [parse_annex(row["annex_number"]) for row in pack_service.get_annex_index_rows(pack.id)]
        assert numbers == list(range(1, len(numbers) + 1))

    def test_annex_follows_section_order(self):
        pack = _make_pack()
        evidence = pack_service.list_evidence(pack.id)
        assert [e["annex_number"] for e in evidence] == ["Annex-001", "Annex-002", "Annex-003", "Annex-004"]
        assert [e["section_title"] for e in evidence][:2] == ["Section 1", "Section 1"]

    def test_four_digit_annexes_sort_numerically(self):
        pack = _make_pack(sections=1)
        section = _first_section(pack)
        first, second = _db.session.execute(
            select(EvidenceItem).where(EvidenceItem.pack_id == pack.id).order_by(EvidenceItem.annex_number)
        ).scalars().all()
        first.annex_number, first.file_path = "Annex-1000", "uploads/a.pdf"
        second.annex_number, second.file_path = "Annex-101", "uploads/b.pdf"
        _db.session.commit()

        expected = ["Annex-101", "Annex-1000"]
        assert [r["annex_number"] for r in pack_service.get_annex_index_rows(pack.id)] == expected
        workspace = pack_service.get_section_workspace(pack.id, section.id)
        assert [e["annex_number"] for e in workspace["evidence"]] == expected
        files = pack_service.list_evidence_files_for_export(pack.id)
        assert [e.annex_number for e in files] == expected


# ═════════════════════════════════════════════════════════════════════════════
# TEMPLATE BACKFILL
# ═════════════════════════════════════════════════════════════════════════════

class TestSyncPackFromTemplate:
    def test_nothing_missing(self):
        pack = _make_pack()
        assert pack_service.sync_pack_from_template(pack.id) == {
            "packId": pack.id, "addedSections": 0, "addedEvidence": 0,
        }

    def test_adds_missing_section_and_evidence(self):
        pack = _make_pack()
        template = _db.session.execute(select(PackTemplate).where(PackTemplate.type == "unit-pack")).scalar_one()
        new_section = SectionTemplate(section_key="sec-3", title="Section 3", display_order=3)
        new_section.required_evidence.append(RequiredEvidence(name="Doc 3.1", display_order=1))
        template.sections.append(new_section)
        template.sections[0].required_evidence.append(RequiredEvidence(name="Doc 1.3", display_order=3))
        _db.session.commit()

        result = pack_service.sync_pack_from_template(pack.id)
        assert result["addedSections"] == 1
        assert result["addedEvidence"] == 2

        numbers = [parse_annex(row["annex_number"]) for row in pack_service.get_annex_index_rows(pack.id)]
        assert sorted(numbers) == [1, 2, 3, 4, 5, 6]
        assert len(set(numbers)) == len(numbers)

        added = _db.session.execute(
            select(EvidenceItem).where(EvidenceItem.name == "Doc 1.3")
        ).scalar_one()
        assert added.annex_number in ("Annex-005", "Annex-006")

        gates = _db.session.execute(
            select(func.count(ReviewGate.id))
            .join(SectionInstance, SectionInstance.id == ReviewGate.section_instance_id)
            .where(SectionInstance.section_key == "sec-3")
        ).scalar_one()
        assert gates == 2

    def test_refreshes_existing_section_title(self):
        pack = _make_pack()
        template = _db.session.execute(select(PackTemplate).where(PackTemplate.type == "unit-pack")).scalar_one()
        section_id = _first_section(pack).id
        template.sections[0].title = "Renamed"
        _db.session.commit()

        pack_service.sync_pack_from_template(pack.id)
        section = _db.session.get(SectionInstance, section_id)
        assert section.title == "Renamed"

    def test_sync_missing_pack_raises(self):
        with pytest.raises(NotFoundError):
            pack_service.sync_pack_from_template("missing")


# ═════════════════════════════════════════════════════════════════════════════
# PROMPT RESPONSES
# ═════════════════════════════════════════════════════════════════════════════

class TestPromptResponses:
    def test_first_save_is_version_one(self):
        pack = _make_pack()
        section = _first_section(pack)
        response = pack_service.save_prompt_response(section.id, _first_prompt_id(pack, section), "Draft")
        assert response.version == 1
        assert _db.session.get(SectionInstance, section.id).status == "in-progress"

    def test_stale_version_rejected_then_current_version_succeeds(self):
        pack = _make_pack()
        section = _first_section(pack)
        prompt_id = _first_prompt_id(pack, section)
        pack_service.save_prompt_response(section.id, prompt_id, "v1", updated_by="alice", expected_version=0)
        pack_service.save_prompt_response(section.id, prompt_id, "v2", updated_by="alice", expected_version=1)
        _db.session.commit()

        with pytest.raises(PromptResponseConflictError) as exc_info:
            pack_service.save_prompt_response(section.id, prompt_id, "stale", updated_by="bob", expected_version=1)
        assert exc_info.value.current_version == 2
        assert exc_info.value.updated_by == "alice"
        _db.session.rollback()

        stored = _db.session.execute(
            select(PromptResponse).where(PromptResponse.prompt_id == prompt_id)
        ).scalar_one()
        assert stored.value == "v2"
        assert stored.version == 2

        response = pack_service.save_prompt_response(
            section.id, prompt_id, "v3", updated_by="bob", expected_version=2,
        )
        assert response.version == 3
        assert response.value == "v3"
        assert response.updated_by == "bob"

    def test_expected_version_on_missing_response_conflicts(self):
        pack = _make_pack()
        section = _first_section(pack)
        with pytest.raises(PromptResponseConflictError) as exc_info:
            pack_service.save_prompt_response(section.id, _first_prompt_id(pack, section), "x", expected_version=3)
        assert exc_info.value.current_version == 0

    def test_unconditional_write_still_bumps_version(self):
        pack = _make_pack()
        section = _first_section(pack)
        prompt_id = _first_prompt_id(pack, section)
        pack_service.save_prompt_response(section.id, prompt_id, "a")
        response = pack_service.save_prompt_response(section.id, prompt_id, "b")
        assert response.version == 2

    def test_prompt_from_other_template_rejected(self):
        pack = _make_pack()
        other = _make_template("unit-other", sections=1)
        foreign_prompt = other.sections[0].prompts[0]
        with pytest.raises(NotFoundError):
            pack_service.save_prompt_response(_first_section(pack).id, foreign_prompt.id, "x")

    def test_conflict_payload(self):
        error = PromptResponseConflictError(current_version=4, updated_by="carol")
        assert error.to_dict()["currentVersion"] == 4
        assert error.to_dict()["updatedBy"] == "carol"
        assert error.to_dict()["code"] == "ERR_CONFLICT_VERSION"


# ═════════════════════════════════════════════════════════════════════════════
# REVIEW GATES
# ═════════════════════════════════════════════════════════════════════════════

class TestReviewGates:
    @pytest.mark.parametrize("states, current, expected", [
        (["pending", "pending"], "draft", "draft"),
        (["approved", "pending"], "draft", "in-review"),
        (["approved", "approved"], "in-review", "approved"),
        (["changes_requested", "approved"], "approved", "changes-requested"),
        ([], "draft", "draft"),
    ])
    def test_derive_review_state(self, states, current, expected):
        assert derive_review_state(states, current) == expected

    def _gates(self, pack, section):
        return pack_service.get_section_workspace(pack.id, section.id)["reviewGates"]

    def test_changes_requested_opens_single_review_task(self):
        pack = _make_pack()
        section = _first_section(pack)
        client_gate, consultant_gate = self._gates(pack, section)

        pack_service.update_review_gate(client_gate["id"], "changes_requested", reviewer_id="r1", notes="Thin")
        pack_service.update_review_gate(consultant_gate["id"], "changes_requested", reviewer_id="r2")

        section = _db.session.get(SectionInstance, section.id)
        assert section.review_state == "changes-requested"
        review_tasks = _db.session.execute(
            select(Task).where(Task.section_instance_id == section.id, Task.source == "review")
        ).scalars().all()
        assert len(review_tasks) == 1
        assert review_tasks[0].title == "Address review feedback: Section 1"
        assert review_tasks[0].description == "Review stage: client review"
        assert review_tasks[0].priority == "high"

    def test_new_review_task_after_previous_completed(self):
        pack = _make_pack()
        section = _first_section(pack)
        gate = self._gates(pack, section)[0]
        pack_service.update_review_gate(gate["id"], "changes_requested")
        task = _db.session.execute(select(Task).where(Task.source == "review")).scalar_one()
        pack_service.update_task_status(pack.id, task.id, "completed")
        _db.session.commit()

        pack_service.update_review_gate(gate["id"], "changes_requested")
        count = _db.session.execute(select(func.count(Task.id)).where(Task.source == "review")).scalar_one()
        assert count == 2

    def test_all_approved(self):
        pack = _make_pack()
        section = _first_section(pack)
        for gate in self._gates(pack, section):
            pack_service.update_review_gate(gate["id"], "approved", reviewer_id="r")
        assert _db.session.get(SectionInstance, section.id).review_state == "approved"

    def test_invalid_state_rejected(self):
        pack = _make_pack()
        gate = self._gates(pack, _first_section(pack))[0]
        with pytest.raises(ValidationError):
            pack_service.update_review_gate(gate["id"], "maybe")

    def test_reset_review_gates(self):
        pack = _make_pack()
        section = _first_section(pack)
        gate = self._gates(pack, section)[0]
        pack_service.update_review_gate(gate["id"], "approved", notes="ok", client_notes="fine")
        pack_service.reset_review_gates(section.id)
        _db.session.commit()
        for row in self._gates(pack, section):
            assert row["state"] == "pending"
            assert row["reviewed_at"] is None
            assert row["notes"] is None
            assert row["client_notes"] is None

    def test_review_queue_order(self):
        pack = _make_pack()
        queue = pack_service.list_review_queue(pack.id)
        assert [(q["section_title"], q["stage"]) for q in queue] == [
            ("Section 1", "client-review"), ("Section 1", "consultant-review"),
            ("Section 2", "client-review"), ("Section 2", "consultant-review"),
        ]


# ═════════════════════════════════════════════════════════════════════════════
# EVIDENCE, TASKS, SECTIONS
# ═════════════════════════════════════════════════════════════════════════════

class TestEvidence:
    def test_add_version_updates_item(self):
        pack = _make_pack()
        item = pack_service.list_evidence(pack.id)[0]
        pack_service.add_evidence_version(
            pack.id, item["id"], {"filename": "a.pdf", "file_path": "p/a.pdf", "file_size": 10, "file_type": "pdf"},
        )
        version = pack_service.add_evidence_version(
            pack.id, item["id"], {"filename": "b.pdf", "file_path": "p/b.pdf", "file_size": 20},
        )
        assert version.version == 2

        stored = pack_service.get_evidence_item(pack.id, item["id"])
        assert stored.status == "uploaded"
        assert stored.version == 2
        assert stored.file_path == "p/b.pdf"
        assert stored.uploaded_at is not None
        assert [v.version for v in pack_service.list_evidence_versions(item["id"])] == [2, 1]

    def test_missing_item(self):
        pack = _make_pack()
        assert pack_service.get_evidence_item(pack.id, "missing") is None
        with pytest.raises(NotFoundError):
            pack_service.add_evidence_version(pack.id, "missing", {"filename": "a", "file_path": "b"})

    def test_invalid_status(self):
        pack = _make_pack()
        item = pack_service.list_evidence(pack.id)[0]
        with pytest.raises(ValidationError):
            pack_service.update_evidence_status(pack.id, item["id"], "lost")

    def test_export_only_items_with_files(self):
        pack = _make_pack()
        item = pack_service.list_evidence(pack.id)[1]
        pack_service.add_evidence_version(pack.id, item["id"], {"filename": "a", "file_path": "files/a"})
        files = pack_service.list_evidence_files_for_export(pack.id)
        assert [f.id for f in files] == [item["id"]]
        versions = pack_service.list_evidence_versions_for_export(pack.id)
        assert versions[0]["annex_number"] == "Annex-002"


class TestTasksAndSections:
    def test_completed_at_set_and_cleared(self):
        pack = _make_pack()
        task = pack_service.create_task(pack.id, {"title": "Book board meeting", "priority": "high"})
        assert task.source == "manual"
        pack_service.update_task_status(pack.id, task.id, "completed")
        assert task.completed_at is not None
        pack_service.update_task_status(pack.id, task.id, "in-progress")
        assert task.completed_at is None

    def test_partial_section_update(self):
        pack = _make_pack()
        section = _first_section(pack)
        pack_service.update_section_state(section.id, {"owner_id": "owner-1"})
        pack_service.update_section_state(section.id, {"due_date": "2027-01-15"})
        section = _db.session.get(SectionInstance, section.id)
        assert section.owner_id == "owner-1"
        assert section.due_date.isoformat() == "2027-01-15"
        assert section.status == "not-started"

    def test_sections_carry_ratios(self):
        pack = _make_pack()
        row = pack_service.get_sections(pack.id)[0]
        assert row["requiredPrompts"] == 2
        assert row["evidenceTotal"] == 2
        assert row["reviewGatesTotal"] == 2
        assert row["narrativeCompletion"] == 0

    def test_workspace_for_other_pack_is_none(self):
        first = _make_pack()
        second = pack_service.create_pack(ORG, "unit-pack", "Second")
        assert pack_service.get_section_workspace(second.id, _first_section(first).id) is None

    def test_narrative_export_rows(self):
        pack = _make_pack()
        section = _first_section(pack)
        pack_service.save_prompt_response(section.id, _first_prompt_id(pack, section), "Hello")
        rows = pack_service.get_narrative_export_rows(pack.id)
        assert len(rows) == 4
        assert rows[0] == {
            "section_title": "Section 1", "section_order": 1,
            "prompt_title": "Narrative", "prompt_order": 1, "response_value": "Hello",
        }
        assert rows[1]["response_value"] is None


# ═════════════════════════════════════════════════════════════════════════════
# PACK LIFECYCLE
# ═════════════════════════════════════════════════════════════════════════════

class TestPackLifecycle:
    def test_soft_delete_hides_pack(self):
        pack = _make_pack()
        pack_service.soft_delete_pack(pack.id)
        _db.session.commit()
        assert pack_service.get_pack(pack.id) is None
        assert pack_service.list_packs(ORG) == []

        pack_service.restore_pack(pack.id)
        _db.session.commit()
        assert pack_service.get_pack(pack.id) is not None

    def test_list_is_organization_scoped(self):
        _make_pack()
        assert len(pack_service.list_packs(ORG)) == 1
        assert pack_service.list_packs("other-org") == []

    def test_documents(self):
        pack = _make_pack()
        document = pack_service.add_pack_document(pack.id, {"name": "Board minutes", "storage_key": "k"})
        assert [d.id for d in pack_service.list_pack_documents(pack.id)] == [document.id]
        pack_service.soft_delete_pack_document(pack.id, document.id)
        assert pack_service.list_pack_documents(pack.id) == []
        with pytest.raises(NotFoundError):
            pack_service.soft_delete_pack_document(pack.id, document.id)

    def test_mutations_append_activity(self):
        pack = _make_pack()
        section = _first_section(pack)
        pack_service.save_prompt_response(section.id, _first_prompt_id(pack, section), "x", updated_by="u1")
        _db.session.commit()
        entry = _db.session.execute(
            select(ActivityLog).where(ActivityLog.action == "prompt_response_saved")
        ).scalar_one()
        assert entry.actor_id == "u1"
        assert entry.pack_id == pack.id
