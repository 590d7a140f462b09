"""
Authorization Pack Service
Tests — assessment snapshot, completion and question-bank visibility.
"""

import pytest

from authpack.services.assessment import (
    BASE_BASICS_KEYS,
    AssessmentSnapshot,
    ReadinessStatus,
    SmcrStatus,
    TrainingStatus,
    calculate_assessment_completion,
    completion_counts,
    normalize_assessment,
    required_basics_keys,
)
from authpack.services.questionnaire import build_question_context, is_question_answered, is_question_visible


class _Ecosystem:
    policy_templates = ["AML policy", "Complaints policy"]
    training_requirements = ["AML awareness"]
    smcr_roles = ["SMF16"]


# ═════════════════════════════════════════════════════════════════════════════
# REQUIRED BASICS
# ═════════════════════════════════════════════════════════════════════════════

class TestRequiredBasics:
    def test_base_list(self):
        assert len(required_basics_keys({})) == 21
        assert tuple(required_basics_keys({})) == BASE_BASICS_KEYS

    def test_company_number_unlocked(self):
        keys = required_basics_keys({"registeredNumberExists": "yes"})
        assert len(keys) == 22
        assert "companyNumber" in keys

    def test_adviser_keys_only_when_adviser_used(self):
        basics = {"registeredNumberExists": "yes", "usedProfessionalAdviser": "no"}
        assert len(required_basics_keys(basics)) == 22
        basics["usedProfessionalAdviser"] = "yes"
        keys = required_basics_keys(basics)
        assert len(keys) == 25
        assert "adviserFirmName" in keys

    def test_head_office_keys_when_different_office(self):
        keys = required_basics_keys({"registeredOfficeSameAsHeadOffice": "no"})
        assert len(keys) == 26
        assert "headOfficePostcode" in keys

    def test_deterministic(self):
        basics = {"currentlyProvidingPIS": "yes", "currentlyProvidingAIS": "yes"}
        assert required_basics_keys(basics) == required_basics_keys(dict(basics))


# ═════════════════════════════════════════════════════════════════════════════
# SNAPSHOT
# ═════════════════════════════════════════════════════════════════════════════

class TestSnapshot:
    def test_unknown_status_coerced_to_default(self):
        snapshot = AssessmentSnapshot.from_dict({
            "readiness": {"amlFramework": "done-ish"},
            "smcr": {"SMF16": "assigned"},
        })
        assert snapshot.readiness["amlFramework"] is ReadinessStatus.MISSING
        assert snapshot.smcr["SMF16"] is SmcrStatus.ASSIGNED

    def test_non_dict_parts_ignored(self):
        snapshot = AssessmentSnapshot.from_dict({"basics": "nope", "questionResponses": [1, 2]})
        assert snapshot.basics == {}
        assert snapshot.question_responses == {}

    def test_to_dict_keeps_profile(self):
        snapshot = AssessmentSnapshot.from_dict({"businessPlanProfile": {"version": 1, "responses": {}}})
        assert snapshot.to_dict()["businessPlanProfile"]["version"] == 1
        assert "businessPlanProfile" not in AssessmentSnapshot().to_dict()

    def test_unparseable_version_falls_back(self):
        assert AssessmentSnapshot.from_dict({"version": "v2"}).version == 1
        assert AssessmentSnapshot.from_dict({"version": {"major": 2}}).version == 1
        assert AssessmentSnapshot.from_dict({"version": "3"}).version == 3

    def test_normalize_adds_missing_keys_only(self):
        snapshot = AssessmentSnapshot.from_dict({"policies": {"AML policy": "complete"}})
        normalize_assessment(snapshot, _Ecosystem())
        assert snapshot.policies == {
            "AML policy": ReadinessStatus.COMPLETE,
            "Complaints policy": ReadinessStatus.MISSING,
        }
        assert snapshot.training == {"AML awareness": TrainingStatus.MISSING}
        assert snapshot.smcr == {"SMF16": SmcrStatus.UNASSIGNED}
        assert len(snapshot.readiness) == 7

    def test_normalize_without_ecosystem(self):
        snapshot = normalize_assessment(AssessmentSnapshot(), None)
        assert snapshot.policies == {}
        assert len(snapshot.readiness) == 7


# ═════════════════════════════════════════════════════════════════════════════
# COMPLETION
# ═════════════════════════════════════════════════════════════════════════════

class TestAssessmentCompletion:
    def test_empty_snapshot_is_zero(self):
        assert calculate_assessment_completion(AssessmentSnapshot(), "payments") == 0

    def test_counts_checklists(self):
        snapshot = normalize_assessment(AssessmentSnapshot(), _Ecosystem())
        completed, total = completion_counts(snapshot)
        context = build_question_context({}, {}, None)
        assert completed == 0
        assert total == 21 + 7 + 2 + 1 + 1 + context["requiredCount"]

    def test_completed_units_raise_percentage(self):
        snapshot = normalize_assessment(AssessmentSnapshot(), _Ecosystem())
        before = calculate_assessment_completion(snapshot)
        snapshot.basics["legalName"] = "Acme Payments Ltd"
        snapshot.smcr["SMF16"] = SmcrStatus.ASSIGNED
        snapshot.readiness["amlFramework"] = ReadinessStatus.COMPLETE
        assert calculate_assessment_completion(snapshot) > before

    def test_blank_basics_not_filled(self):
        snapshot = AssessmentSnapshot(basics={"legalName": "   ", "website": "x"})
        completed, _ = completion_counts(snapshot)
        assert completed == 1

    def test_partial_status_is_not_complete(self):
        snapshot = AssessmentSnapshot.from_dict({"readiness": {"amlFramework": "partial"}})
        completed, _ = completion_counts(snapshot)
        assert completed == 0


# ═════════════════════════════════════════════════════════════════════════════
# QUESTION VISIBILITY
# ═════════════════════════════════════════════════════════════════════════════

class TestQuestionVisibility:
    question_values = {"id": "q", "conditional_on": {"question_id": "trigger", "values": ["yes"]}}
    question_not_values = {"id": "q", "conditional_on": {"question_id": "trigger", "not_values": ["no"]}}

    def test_unconditional_always_visible(self):
        assert is_question_visible({"id": "q"}, {}, {})

    def test_values_hidden_when_reference_missing(self):
        assert not is_question_visible(self.question_values, {}, {})

    def test_not_values_visible_when_reference_missing(self):
        assert is_question_visible(self.question_not_values, {}, {})

    def test_response_takes_precedence_over_basics(self):
        assert is_question_visible(self.question_values, {"trigger": "no"}, {"trigger": "yes"})
        assert not is_question_visible(self.question_not_values, {"trigger": "yes"}, {"trigger": "no"})

    def test_falls_back_to_basics(self):
        assert is_question_visible(self.question_values, {"trigger": "yes"}, {})

    def test_list_answers(self):
        assert is_question_visible(self.question_values, {}, {"trigger": ["maybe", "yes"]})

    @pytest.mark.parametrize("value, expected", [
        (0, True), ("", False), ("  ", False), ([], False), (["a"], True), (None, False), (False, True),
    ])
    def test_is_question_answered(self, value, expected):
        assert is_question_answered(value) is expected

    def test_context_counts_are_consistent(self):
        context = build_question_context({}, {}, "payments")
        assert context["requiredCount"] == sum(s["requiredCount"] for s in context["sections"])
        assert context["answeredCount"] == 0
