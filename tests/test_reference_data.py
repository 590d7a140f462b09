"""
Authorization Pack Service
Tests — reference data: template/ecosystem sync, FCA checklist, training
registry, business-plan profile insights and the reference API.
"""

from sqlalchemy import func, select

from authpack.catalog import fca_checklist, training_content
from authpack.catalog.pack_templates import PACK_TEMPLATES
from authpack.catalog.permission_ecosystems import PERMISSION_ECOSYSTEMS
from authpack.models import db as _db
from authpack.models.pack import Pack
from authpack.models.template import PackTemplate, PermissionEcosystem, SectionTemplate
from authpack.services import pack_service, questionnaire, template_sync_service
from authpack.services.template_sync_service import SyncState
from authpack.utils.helpers import percent


# ═════════════════════════════════════════════════════════════════════════════
# TEMPLATE / ECOSYSTEM SYNC
# ═════════════════════════════════════════════════════════════════════════════

class TestTemplateSync:
    def test_sync_is_idempotent(self):
        template_sync_service.sync_templates()
        first = {s.id for s in _db.session.execute(select(SectionTemplate)).scalars()}
        template_sync_service.sync_templates()
        second = {s.id for s in _db.session.execute(select(SectionTemplate)).scalars()}
        assert first == second
        count = _db.session.execute(select(func.count(PackTemplate.id))).scalar_one()
        assert count == len(PACK_TEMPLATES)

    def test_ecosystem_section_keys_follow_template(self):
        template_sync_service.ensure_ecosystems()
        ecosystem = template_sync_service.get_ecosystem("payments")
        template = template_sync_service.get_pack_template_by_type(ecosystem.pack_template_type)
        assert ecosystem.section_keys == [s.section_key for s in template.sections]

    def test_every_ecosystem_synced(self):
        template_sync_service.ensure_ecosystems()
        codes = {e.permission_code for e in template_sync_service.list_ecosystems()}
        assert codes == {definition["code"] for definition in PERMISSION_ECOSYSTEMS}

    def test_ensure_marks_state(self):
        assert template_sync_service.get_sync_state("templates") is SyncState.UNSYNCED
        template_sync_service.ensure_ecosystems()
        assert template_sync_service.get_sync_state("templates") is SyncState.SYNCED
        assert template_sync_service.get_sync_state("ecosystems") is SyncState.SYNCED

    def test_ensure_reference_data_respects_flag(self, app):
        app.config["AUTO_SYNC_TEMPLATES"] = False
        try:
            template_sync_service.ensure_reference_data(app)
        finally:
            app.config["AUTO_SYNC_TEMPLATES"] = True
        assert template_sync_service.get_sync_state("templates") is SyncState.UNSYNCED

    def test_reset_and_reseed(self):
        pack_service.create_pack("test-org", "payments-emi", "Pack")
        counts = template_sync_service.reset_authorization_data(reseed=True)
        assert counts["packs"] == 1
        assert _db.session.execute(select(func.count(Pack.id))).scalar_one() == 0
        assert _db.session.execute(select(func.count(PermissionEcosystem.id))).scalar_one() == len(
            PERMISSION_ECOSYSTEMS
        )

    def test_reset_without_reseed(self):
        template_sync_service.ensure_ecosystems()
        template_sync_service.reset_authorization_data(reseed=False)
        assert _db.session.execute(select(func.count(PackTemplate.id))).scalar_one() == 0


# ═════════════════════════════════════════════════════════════════════════════
# FCA CHECKLIST
# ═════════════════════════════════════════════════════════════════════════════

class TestFcaChecklist:
    def test_total_matches_ids(self):
        ids = fca_checklist.get_all_checklist_item_ids()
        assert len(ids) == fca_checklist.get_total_item_count()
        assert len(set(ids)) == len(ids)

    def test_completion_ignores_unknown_ids(self):
        first_id = fca_checklist.get_all_checklist_item_ids()[0]
        statuses = {first_id: "submitted", "made-up": "submitted"}
        expected = percent(1, fca_checklist.get_total_item_count())
        assert fca_checklist.calculate_completion_percentage(statuses) == expected

    def test_draft_is_not_complete(self):
        first_id = fca_checklist.get_all_checklist_item_ids()[0]
        assert fca_checklist.calculate_completion_percentage({first_id: "draft"}) == 0

    def test_unknown_category(self):
        assert fca_checklist.calculate_category_completion("nope", {}) == {"completed": 0, "total": 0}

    def test_phase_totals_cover_categories(self):
        total = sum(
            fca_checklist.calculate_phase_completion(phase["name"], {})["total"]
            for phase in fca_checklist.TIMELINE_PHASES
        )
        assert total == fca_checklist.get_total_item_count()


# ═════════════════════════════════════════════════════════════════════════════
# TRAINING & PROFILE
# ═════════════════════════════════════════════════════════════════════════════

class TestTrainingRegistry:
    def test_prerequisites_resolve(self):
        for module in training_content.get_all_training_modules():
            for prerequisite in training_content.get_module_prerequisites(module["id"]):
                assert prerequisite["id"] in training_content.TRAINING_MODULES

    def test_unknown_module(self):
        assert training_content.get_training_module("nope") is None
        assert training_content.get_module_prerequisites("nope") == []

    def test_find_lesson(self):
        module = training_content.get_all_training_modules()[0]
        lesson = module["lessons"][0]
        assert training_content.find_lesson(lesson["id"]) == lesson
        assert training_content.find_lesson("no-such-lesson") is None


class TestProfileInsights:
    def test_empty_profile(self):
        insights = questionnaire.build_profile_insights("payments", {})
        assert insights["completionPercent"] == 0
        assert insights["conflicts"] == []

    def test_profile_completion_none_without_answers(self):
        assert questionnaire.profile_completion("payments", {}) is None
        assert questionnaire.profile_completion("payments", {"x": "  "}) is None

    def test_answering_raises_completion(self):
        question = next(q for q in questionnaire.get_profile_questions("payments") if q["required"])
        answer = question["options"][0]["value"] if question.get("options") else "Detailed answer"
        insights = questionnaire.build_profile_insights("payments", {question["id"]: answer})
        assert insights["completionPercent"] > 0


# ═════════════════════════════════════════════════════════════════════════════
# REFERENCE API
# ═════════════════════════════════════════════════════════════════════════════

class TestReferenceAPI:
    def test_templates(self, client, org_headers):
        res = client.get("/api/v1/reference/templates", headers=org_headers)
        assert res.status_code == 200
        assert len(res.get_json()["templates"]) == len(PACK_TEMPLATES)

    def test_unknown_ecosystem(self, client, org_headers):
        assert client.get("/api/v1/reference/ecosystems/nope", headers=org_headers).status_code == 404

    def test_checklist_completion(self, client, org_headers):
        first_id = fca_checklist.get_all_checklist_item_ids()[0]
        res = client.post("/api/v1/reference/fca-checklist/completion",
                          json={"statuses": {first_id: "final_ready"}}, headers=org_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["overall"] >= 1
        assert set(data["phases"]) == {phase["id"] for phase in fca_checklist.TIMELINE_PHASES}

    def test_question_context(self, client, org_headers):
        res = client.post("/api/v1/reference/question-bank/context",
                          json={"permission_code": "payments"}, headers=org_headers)
        assert res.status_code == 200
        assert res.get_json()["answeredCount"] == 0

    def test_training_module_missing(self, client, org_headers):
        assert client.get("/api/v1/reference/training/modules/nope", headers=org_headers).status_code == 404
