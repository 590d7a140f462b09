"""
Authorization Pack Service
Tests — Project API.

Covers:
    - Project CRUD + organization scoping
    - Assessment save / normalization
    - Plan generation (status → planning)
    - Business-plan profile save / read + readiness override
    - Readiness consistency between list and detail views
"""

import pytest

from authpack.models import db as _db
from authpack.models.project import AuthorizationProject
from authpack.services import project_service

ORG = "test-org"


def _create_project(client, headers, **kw):
    payload = {"name": "Acme Payments", "permission_code": "payments", "target_submission_date": "2027-06-30"}
    payload.update(kw)
    res = client.post("/api/v1/projects", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# PROJECT CRUD
# ═════════════════════════════════════════════════════════════════════════════

class TestProjectCRUD:
    def test_create_project(self, client, org_headers):
        detail = _create_project(client, org_headers)
        project = detail["project"]
        assert project["name"] == "Acme Payments"
        assert project["permission_code"] == "payments"
        assert project["organization_id"] == ORG
        assert project["pack_id"]
        assert project["status"] == "assessment"
        assert detail["ecosystem"]["permission_code"] == "payments"
        assert detail["sections"]
        assert detail["plan"] == {}
        assert set(detail["readiness"]) == {"overall", "narrative", "evidence", "review"}

    def test_create_requires_name(self, client, org_headers):
        res = client.post("/api/v1/projects", json={"permission_code": "payments"}, headers=org_headers)
        assert res.status_code == 400

    def test_create_unknown_permission(self, client, org_headers):
        res = client.post("/api/v1/projects", json={"name": "X", "permission_code": "nope"}, headers=org_headers)
        assert res.status_code == 404

    def test_assessment_is_normalized_on_create(self, client, org_headers):
        detail = _create_project(client, org_headers)
        assessment = detail["assessment"]
        assert len(assessment["readiness"]) == 7
        assert set(assessment["policies"].values()) == {"missing"}
        assert set(assessment["smcr"].values()) == {"unassigned"}

    def test_list_projects(self, client, org_headers):
        _create_project(client, org_headers)
        _create_project(client, org_headers, name="Second")
        res = client.get("/api/v1/projects", headers=org_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 2
        assert "assessment_data" not in data["items"][0]
        assert "assessmentCompletion" in data["items"][0]

    def test_projects_scoped_by_organization(self, client, org_headers):
        detail = _create_project(client, org_headers)
        other = {"X-Organization-ID": "other-org"}
        assert client.get("/api/v1/projects", headers=other).get_json()["total"] == 0
        res = client.get(f"/api/v1/projects/{detail['project']['id']}", headers=other)
        assert res.status_code == 404

    def test_get_missing_project(self, client, org_headers):
        res = client.get("/api/v1/projects/missing", headers=org_headers)
        assert res.status_code == 404

    def test_update_project(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.patch(f"/api/v1/projects/{project_id}", json={"name": "Renamed", "status": "in-progress"},
                           headers=org_headers)
        assert res.status_code == 200
        assert res.get_json()["name"] == "Renamed"
        assert res.get_json()["status"] == "in-progress"

    def test_update_invalid_status(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.patch(f"/api/v1/projects/{project_id}", json={"status": "finished"}, headers=org_headers)
        assert res.status_code == 422

    def test_delete_project(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        assert client.delete(f"/api/v1/projects/{project_id}", headers=org_headers).status_code == 200
        assert client.get(f"/api/v1/projects/{project_id}", headers=org_headers).status_code == 404

    def test_detail_readiness_matches_list(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        detail = client.get(f"/api/v1/projects/{project_id}", headers=org_headers).get_json()
        listed = client.get("/api/v1/projects", headers=org_headers).get_json()["items"][0]
        assert detail["readiness"] == listed["readiness"]


# ═════════════════════════════════════════════════════════════════════════════
# ASSESSMENT & PLAN
# ═════════════════════════════════════════════════════════════════════════════

class TestAssessmentAndPlan:
    def test_save_assessment_stamps_completion(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.put(f"/api/v1/projects/{project_id}/assessment", json={
            "basics": {"legalName": "Acme Payments Ltd", "firmType": "company"},
            "readiness": {"amlFramework": "complete"},
        }, headers=org_headers)
        assert res.status_code == 200
        assessment = res.get_json()
        assert assessment["basics"]["legalName"] == "Acme Payments Ltd"
        assert assessment["readiness"]["amlFramework"] == "complete"
        assert assessment["meta"]["completion"] > 0
        assert assessment["meta"]["updatedAt"]

        listed = client.get("/api/v1/projects", headers=org_headers).get_json()["items"][0]
        assert listed["assessmentCompletion"] == assessment["meta"]["completion"]

    def test_save_assessment_keeps_profile(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        client.put(f"/api/v1/projects/{project_id}/business-plan-profile",
                   json={"responses": {"core-model": "wallet"}}, headers=org_headers)
        client.put(f"/api/v1/projects/{project_id}/assessment", json={"basics": {}}, headers=org_headers)
        profile = client.get(f"/api/v1/projects/{project_id}/business-plan-profile",
                             headers=org_headers).get_json()["profile"]
        assert profile["responses"] == {"core-model": "wallet"}

    def test_save_assessment_rejects_non_object(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.put(f"/api/v1/projects/{project_id}/assessment", json=[1, 2], headers=org_headers)
        assert res.status_code == 400

    def test_save_assessment_with_free_form_version(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.put(f"/api/v1/projects/{project_id}/assessment", json={"version": "v2", "basics": {}},
                         headers=org_headers)
        assert res.status_code == 200
        assert res.get_json()["version"] == 1

    def test_generate_plan(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.post(f"/api/v1/projects/{project_id}/plan", json={"start_date": "2027-01-04"},
                          headers=org_headers)
        assert res.status_code == 201
        plan = res.get_json()
        assert plan["startDate"] == "2027-01-04"
        assert plan["totalWeeks"] >= 16
        assert plan["milestones"][0]["title"] == "Complete firm assessment"

        detail = client.get(f"/api/v1/projects/{project_id}", headers=org_headers).get_json()
        assert detail["project"]["status"] == "planning"
        assert detail["plan"]["milestones"] == plan["milestones"]

    def test_plan_for_missing_project(self, client, org_headers):
        res = client.post("/api/v1/projects/missing/plan", json={}, headers=org_headers)
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# BUSINESS-PLAN PROFILE
# ═════════════════════════════════════════════════════════════════════════════

class TestBusinessPlanProfile:
    def test_empty_profile(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.get(f"/api/v1/projects/{project_id}/business-plan-profile", headers=org_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["profile"]["responses"] == {}
        assert data["questions"]
        assert "insights" in data

    def test_save_profile(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.put(f"/api/v1/projects/{project_id}/business-plan-profile",
                         json={"responses": {"core-model": "wallet"}}, headers=org_headers)
        assert res.status_code == 200
        profile = res.get_json()["profile"]
        assert profile["version"] == 1
        assert profile["updatedAt"]

    def test_save_profile_requires_object(self, client, org_headers):
        project_id = _create_project(client, org_headers)["project"]["id"]
        res = client.put(f"/api/v1/projects/{project_id}/business-plan-profile",
                         json={"responses": "nope"}, headers=org_headers)
        assert res.status_code == 422

    def test_profile_completion_raises_narrative(self, client, org_headers, monkeypatch):
        from authpack.services import readiness_service

        project_id = _create_project(client, org_headers)["project"]["id"]
        client.put(f"/api/v1/projects/{project_id}/business-plan-profile",
                   json={"responses": {"core-model": "wallet"}}, headers=org_headers)
        monkeypatch.setattr(readiness_service.questionnaire, "profile_completion", lambda permission, responses: 90)

        readiness = client.get(f"/api/v1/projects/{project_id}", headers=org_headers).get_json()["readiness"]
        assert readiness["narrative"] == 90


# ═════════════════════════════════════════════════════════════════════════════
# SERVICE LAYER
# ═════════════════════════════════════════════════════════════════════════════

class TestProjectService:
    def test_create_requires_fields(self):
        from authpack.core.exceptions import ValidationError

        with pytest.raises(ValidationError):
            project_service.create_authorization_project(ORG, {"name": "x"})

    def test_create_links_pack(self):
        project = project_service.create_authorization_project(ORG, {"name": "P", "permission_code": "investments"})
        stored = _db.session.get(AuthorizationProject, project.id)
        assert stored.pack is not None
        assert stored.pack.organization_id == ORG

    def test_detail_none_for_missing(self):
        assert project_service.get_authorization_project("missing") is None
