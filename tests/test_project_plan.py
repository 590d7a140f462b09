"""
Authorization Pack Service
Tests — project plan generator.
"""

import itertools
from datetime import date, timedelta

from authpack.services.assessment import (
    AssessmentSnapshot,
    ReadinessStatus,
    SmcrStatus,
    normalize_assessment,
)
from authpack.services.project_plan import READINESS_MILESTONES, build_project_plan

START = date(2027, 1, 4)


class _Ecosystem:
    policy_templates = ["AML policy"]
    training_requirements = ["AML awareness"]
    smcr_roles = ["SMF16", "SMF17"]


def _id_factory():
    counter = itertools.count(1)
    return lambda: f"m-{next(counter)}"


def _plan(snapshot=None, sections=(), typical=None):
    snapshot = snapshot or normalize_assessment(AssessmentSnapshot(), _Ecosystem())
    return build_project_plan(
        snapshot, list(sections), typical, start_date=START, id_factory=_id_factory(),
    )


def _all_complete():
    snapshot = normalize_assessment(AssessmentSnapshot(), _Ecosystem())
    for key in snapshot.readiness:
        snapshot.readiness[key] = ReadinessStatus.COMPLETE
    for key in snapshot.policies:
        snapshot.policies[key] = ReadinessStatus.COMPLETE
    snapshot.training = {}
    for key in snapshot.smcr:
        snapshot.smcr[key] = SmcrStatus.ASSIGNED
    return snapshot


class TestPlanShape:
    def test_chain_is_linear(self):
        milestones = _plan()["milestones"]
        assert milestones[0]["dependencies"] == []
        for previous, current in zip(milestones, milestones[1:]):
            assert current["dependencies"] == [previous["id"]]
            assert current["startWeek"] == previous["endWeek"] + 1

    def test_due_date_is_start_plus_end_week(self):
        for milestone in _plan()["milestones"]:
            expected = START + timedelta(weeks=milestone["endWeek"])
            assert milestone["dueDate"] == expected.isoformat()
            assert milestone["endWeek"] == milestone["startWeek"] + milestone["durationWeeks"] - 1

    def test_fixed_bookends(self):
        titles = [m["title"] for m in _plan()["milestones"]]
        assert titles[:3] == [
            "Complete firm assessment", "Confirm FCA permission scope", "Draft business plan narrative",
        ]
        assert titles[-2:] == ["Internal QA review", "Final pack sign-off"]

    def test_all_pending(self):
        assert {m["status"] for m in _plan()["milestones"]} == {"pending"}

    def test_deterministic(self):
        first, second = _plan(), _plan()
        first.pop("generatedAt")
        second.pop("generatedAt")
        assert first == second


class TestConditionalMilestones:
    def test_complete_assessment_has_only_fixed_milestones(self):
        titles = [m["title"] for m in _plan(_all_complete())["milestones"]]
        assert titles == [
            "Complete firm assessment",
            "Confirm FCA permission scope",
            "Draft business plan narrative",
            "Evidence checklist & annex mapping",
            "Internal QA review",
            "Final pack sign-off",
        ]

    def test_gaps_emit_readiness_policy_training_smcr(self):
        titles = [m["title"] for m in _plan()["milestones"]]
        for item in READINESS_MILESTONES:
            assert item["title"] in titles
        assert "Policy suite: AML policy" in titles
        assert "Training rollout: AML awareness" in titles
        assert "Assign SMCR role: SMF16" in titles
        assert "Assign SMCR role: SMF17" in titles

    def test_narrative_gap_sizing(self):
        sections = [{"narrativeCompletion": 50, "evidenceCompletion": 100}] * 13
        milestone = next(m for m in _plan(_all_complete(), sections)["milestones"]
                         if m["title"] == "Complete 13 narrative sections")
        assert milestone["durationWeeks"] == 3

    def test_narrative_gap_capped(self):
        sections = [{"narrativeCompletion": 0, "evidenceCompletion": 100}] * 40
        milestone = next(m for m in _plan(_all_complete(), sections)["milestones"]
                         if m["title"].startswith("Complete 40"))
        assert milestone["durationWeeks"] == 4

    def test_evidence_gap_sizing(self):
        sections = [{"narrativeCompletion": 100, "evidenceCompletion": 10}] * 9
        milestones = _plan(_all_complete(), sections)["milestones"]
        milestone = next(m for m in milestones if m["title"] == "Resolve 9 evidence gaps")
        assert milestone["durationWeeks"] == 2
        assert not any(m["title"].endswith("narrative sections") for m in milestones)


class TestTotalWeeks:
    def test_typical_timeline_is_a_floor(self):
        plan = _plan(_all_complete(), typical=30)
        assert plan["totalWeeks"] == 30

    def test_long_chain_exceeds_typical(self):
        plan = _plan(typical=4)
        assert plan["totalWeeks"] == plan["milestones"][-1]["endWeek"]
        assert plan["totalWeeks"] > 4

    def test_default_when_ecosystem_has_no_timeline(self):
        plan = build_project_plan(
            _all_complete(), [], None, default_timeline_weeks=16, start_date=START, id_factory=_id_factory(),
        )
        assert plan["totalWeeks"] == 16
        assert plan["startDate"] == "2027-01-04"

    def test_zero_typical_timeline_is_kept(self):
        plan = build_project_plan(
            _all_complete(), [], 0, default_timeline_weeks=16, start_date=START, id_factory=_id_factory(),
        )
        assert plan["totalWeeks"] == plan["milestones"][-1]["endWeek"]
        assert plan["totalWeeks"] == 10
