"""
Authorization Pack Service
Tests — readiness scoring (completion aggregator + readiness calculator).

Covers:
    - Per-section narrative / evidence / review ratios from live rows
    - Weighted overall readiness (0.4 / 0.4 / 0.2)
    - Business-plan profile and opinion-pack overrides (raise only)
    - Zero-section and zero-denominator edge cases
"""

import pytest
from sqlalchemy import select

from authpack.models import db as _db
from authpack.models.pack import OPINION_PACK_SECTION_CODE, SectionInstance
from authpack.models.project import AuthorizationProject
from authpack.models.template import PackTemplate, Prompt, RequiredEvidence, SectionTemplate
from authpack.services import pack_service, readiness_service
from authpack.services.readiness_service import SectionProgress, compute_readiness, weighted_overall
from authpack.utils.helpers import round_half_up

ORG = "test-org"


def _make_template(template_type="unit-single", required_prompts=2, optional_prompts=1, evidence=4, sections=1):
    template = PackTemplate(type=template_type, name=f"Template {template_type}")
    for s in range(1, sections + 1):
        section = SectionTemplate(section_key=f"section-{s}", title=f"Section {s}", display_order=s)
        order = 0
        for p in range(required_prompts):
            order += 1
            section.prompts.append(Prompt(prompt_key=f"req-{p}", title=f"Required {p}", required=True,
                                          weight=1, display_order=order))
        for p in range(optional_prompts):
            order += 1
            section.prompts.append(Prompt(prompt_key=f"opt-{p}", title=f"Optional {p}", required=False,
                                          weight=1, display_order=order))
        for e in range(evidence):
            section.required_evidence.append(RequiredEvidence(name=f"Evidence {s}.{e}", display_order=e + 1))
        template.sections.append(section)
    _db.session.add(template)
    _db.session.commit()
    return template


def _make_scenario_pack():
    """One section: 2 required prompts (1 answered), 4 evidence items (1 uploaded), 2 pending gates."""
    _make_template()
    pack = pack_service.create_pack(ORG, "unit-single", "Scenario pack")
    section = _db.session.execute(
        select(SectionInstance).where(SectionInstance.pack_id == pack.id)
    ).scalar_one()
    workspace = pack_service.get_section_workspace(pack.id, section.id)
    required = [p for p in workspace["prompts"] if p["required"]]
    pack_service.save_prompt_response(section.id, required[0]["id"], "Our business model is ...")
    pack_service.add_evidence_version(
        pack.id, workspace["evidence"][0]["id"],
        {"filename": "org-chart.pdf", "file_path": "packs/org-chart.pdf", "file_size": 1024},
    )
    _db.session.commit()
    return pack, section


# ═════════════════════════════════════════════════════════════════════════════
# PURE CALCULATOR
# ═════════════════════════════════════════════════════════════════════════════

class TestComputeReadiness:
    def test_no_sections_no_overrides_is_all_zero(self):
        assert compute_readiness([]) == {"overall": 0, "narrative": 0, "evidence": 0, "review": 0}

    def test_no_sections_falls_back_to_largest_override(self):
        result = compute_readiness([], profile_completion=40)
        assert result["overall"] == 40
        assert result["narrative"] == 40
        assert result["evidence"] == 0

    def test_scenario_weights(self):
        progress = SectionProgress("s1", required_prompts=2, answered_prompts=1,
                                   evidence_total=4, evidence_done=1, gates_total=2, gates_approved=0)
        assert compute_readiness([progress]) == {"overall": 30, "narrative": 50, "evidence": 25, "review": 0}

    def test_profile_override_raises_narrative(self):
        progress = SectionProgress("s1", required_prompts=2, answered_prompts=1,
                                   evidence_total=4, evidence_done=1, gates_total=2, gates_approved=0)
        result = compute_readiness([progress], profile_completion=70)
        assert result["narrative"] == 70
        assert result["overall"] == 38

    def test_profile_override_never_lowers_narrative(self):
        progress = SectionProgress("s1", required_prompts=2, answered_prompts=2)
        assert compute_readiness([progress], profile_completion=10)["narrative"] == 100

    def test_opinion_override_raises_narrative_and_review(self):
        progress = SectionProgress("s1", required_prompts=2, answered_prompts=0, gates_total=2)
        result = compute_readiness([progress], opinion_completion=100)
        assert result["narrative"] == 100
        assert result["review"] == 100
        assert result["evidence"] == 0
        assert result["overall"] == 60

    def test_zero_denominators_report_zero(self):
        progress = SectionProgress("s1")
        assert (progress.narrative, progress.evidence, progress.review) == (0, 0, 0)

    def test_section_ratios_round_half_up(self):
        progress = SectionProgress("s1", required_prompts=8, answered_prompts=1)
        assert progress.narrative == 13  # 12.5

    def test_half_up_not_bankers(self):
        assert [round_half_up(v) for v in (0.5, 1.5, 2.5, 2.4999)] == [1, 2, 3, 2]

    def test_mean_over_sections(self):
        sections = [
            SectionProgress("a", required_prompts=2, answered_prompts=2),
            SectionProgress("b", required_prompts=2, answered_prompts=1),
        ]
        assert compute_readiness(sections)["narrative"] == 75

    @pytest.mark.parametrize("axis", ["narrative", "evidence", "review"])
    def test_overall_is_monotonic_in_each_axis(self, axis):
        base = {"narrative": 40, "evidence": 40, "review": 40}
        previous = weighted_overall(**base)
        for value in range(41, 101):
            current = weighted_overall(**{**base, axis: value})
            assert current >= previous
            previous = current


# ═════════════════════════════════════════════════════════════════════════════
# STORE-BACKED READINESS
# ═════════════════════════════════════════════════════════════════════════════

class TestPackReadiness:
    def test_scenario_pack(self):
        pack, _ = _make_scenario_pack()
        assert readiness_service.get_pack_readiness(pack.id) == {
            "overall": 30, "narrative": 50, "evidence": 25, "review": 0,
        }

    def test_section_progress_counts(self):
        pack, section = _make_scenario_pack()
        progress = readiness_service.section_progress(pack.id)[section.id]
        assert progress.required_prompts == 2
        assert progress.answered_prompts == 1
        assert progress.evidence_total == 4
        assert progress.evidence_done == 1
        assert progress.gates_total == 2
        assert progress.gates_approved == 0

    def test_empty_response_is_not_answered(self):
        pack, section = _make_scenario_pack()
        workspace = pack_service.get_section_workspace(pack.id, section.id)
        second = [p for p in workspace["prompts"] if p["required"]][1]
        pack_service.save_prompt_response(section.id, second["id"], "")
        _db.session.commit()
        assert readiness_service.get_pack_readiness(pack.id)["narrative"] == 50

    def test_whitespace_response_counts_as_answered(self):
        pack, section = _make_scenario_pack()
        workspace = pack_service.get_section_workspace(pack.id, section.id)
        second = [p for p in workspace["prompts"] if p["required"]][1]
        pack_service.save_prompt_response(section.id, second["id"], "   ")
        _db.session.commit()
        assert readiness_service.get_pack_readiness(pack.id)["narrative"] == 100

    def test_service_uses_template_prompt_model(self):
        assert readiness_service.Prompt is Prompt

    def test_optional_prompt_does_not_count(self):
        pack, section = _make_scenario_pack()
        workspace = pack_service.get_section_workspace(pack.id, section.id)
        optional = [p for p in workspace["prompts"] if not p["required"]][0]
        pack_service.save_prompt_response(section.id, optional["id"], "Extra detail")
        _db.session.commit()
        assert readiness_service.get_pack_readiness(pack.id)["narrative"] == 50

    def test_approved_evidence_counts_as_delivered(self):
        pack, section = _make_scenario_pack()
        evidence = pack_service.get_section_workspace(pack.id, section.id)["evidence"]
        pack_service.update_evidence_status(pack.id, evidence[1]["id"], "approved")
        _db.session.commit()
        assert readiness_service.get_pack_readiness(pack.id)["evidence"] == 50

    def test_profile_completion_override(self, monkeypatch):
        pack, _ = _make_scenario_pack()
        _db.session.add(AuthorizationProject(
            organization_id=ORG, name="Project", permission_code="payments", pack_id=pack.id,
            assessment_data={"businessPlanProfile": {"version": 1, "responses": {"core-model": "x"}}},
            project_plan={},
        ))
        _db.session.commit()
        monkeypatch.setattr(readiness_service.questionnaire, "profile_completion", lambda permission, responses: 70)

        assert readiness_service.get_pack_readiness(pack.id) == {
            "overall": 38, "narrative": 70, "evidence": 25, "review": 0,
        }

    def test_project_without_profile_responses_has_no_override(self):
        pack, _ = _make_scenario_pack()
        _db.session.add(AuthorizationProject(
            organization_id=ORG, name="Project", permission_code="payments", pack_id=pack.id,
            assessment_data={}, project_plan={},
        ))
        _db.session.commit()
        assert readiness_service.profile_completion_for_pack(pack.id) is None

    def test_opinion_pack_document_override(self):
        pack, _ = _make_scenario_pack()
        pack_service.add_pack_document(pack.id, {
            "name": "Perimeter opinion.pdf",
            "section_code": OPINION_PACK_SECTION_CODE,
            "storage_key": "opinions/perimeter.pdf",
        })
        _db.session.commit()
        assert readiness_service.get_pack_readiness(pack.id) == {
            "overall": 70, "narrative": 100, "evidence": 25, "review": 100,
        }

    def test_opinion_document_without_storage_key_is_ignored(self):
        pack, _ = _make_scenario_pack()
        pack_service.add_pack_document(pack.id, {
            "name": "Draft opinion", "section_code": OPINION_PACK_SECTION_CODE, "storage_key": "",
        })
        _db.session.commit()
        assert readiness_service.opinion_completion_for_pack(pack.id) is None

    def test_deleted_opinion_document_is_ignored(self):
        pack, _ = _make_scenario_pack()
        document = pack_service.add_pack_document(pack.id, {
            "name": "Opinion", "section_code": OPINION_PACK_SECTION_CODE, "storage_key": "k",
        })
        pack_service.soft_delete_pack_document(pack.id, document.id)
        _db.session.commit()
        assert readiness_service.get_pack_readiness(pack.id)["overall"] == 30

    def test_pack_with_zero_sections(self):
        _db.session.add(PackTemplate(type="unit-empty", name="Empty"))
        _db.session.commit()
        pack = pack_service.create_pack(ORG, "unit-empty", "Empty pack")
        assert readiness_service.get_pack_readiness(pack.id) == {
            "overall": 0, "narrative": 0, "evidence": 0, "review": 0,
        }

    def test_readiness_is_recomputed_on_every_read(self):
        pack, section = _make_scenario_pack()
        assert readiness_service.get_pack_readiness(pack.id)["review"] == 0
        gates = pack_service.get_section_workspace(pack.id, section.id)["reviewGates"]
        for gate in gates:
            pack_service.update_review_gate(gate["id"], "approved", reviewer_id="reviewer")
        assert readiness_service.get_pack_readiness(pack.id)["review"] == 100
