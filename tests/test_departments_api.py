# test_departments_api.py
# API tests for /api/departments
#
# Covers admin ownership scoping, the cross-admin read scenario, uniqueness
# conflicts, the upload-context widening for teachers and blocked deletes.
#
# @see: eduportal/departments/service.py - DepartmentService

from eduportal import config


NEW_DEPARTMENT = {"name": "Electrical", "code": "EE", "description": "Circuits"}


class TestDepartmentReads:
    def test_admin_lists_only_own(self, client, portal):
        response = client.get("/api/departments", headers=portal.headers["admin1"])
        assert response.status_code == 200
        assert [d["id"] for d in response.json()] == ["cs"]

    def test_master_lists_all_newest_first(self, client, portal):
        response = client.get("/api/departments", headers=portal.headers["master"])
        assert [d["id"] for d in response.json()] == ["me", "cs"]

    def test_teacher_sees_departments_of_taught_subjects(self, client, portal):
        response = client.get("/api/departments", headers=portal.headers["teacher1"])
        assert [d["id"] for d in response.json()] == ["cs"]

    def test_teacher_upload_context_lists_all(self, client, portal):
        headers = {**portal.headers["teacher1"], "x-content-upload": "true"}
        response = client.get("/api/departments", headers=headers)
        assert sorted(d["id"] for d in response.json()) == ["cs", "me"]

    def test_missing_token_is_401(self, client, portal):
        response = client.get("/api/departments")
        assert response.status_code == 401
        assert response.json()["error"]

    def test_garbage_token_is_401(self, client, portal):
        response = client.get("/api/departments", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_public_listing_needs_no_auth(self, client, portal):
        response = client.get("/api/departments/public")
        assert response.status_code == 200
        assert [d["code"] for d in response.json()] == ["CS", "ME"]


class TestCrossAdmin:
    def test_other_admins_department_is_forbidden(self, client, portal):
        created = client.post(
            "/api/departments",
            json={"name": "Civil", "code": "CS01", "description": "Bridges"},
            headers=portal.headers["admin1"],
        )
        assert created.status_code == 201
        department_id = created.json()["id"]

        foreign = client.get(f"/api/departments/{department_id}", headers=portal.headers["admin2"])
        assert foreign.status_code == 403

        own = client.get(f"/api/departments/{department_id}", headers=portal.headers["admin1"])
        assert own.status_code == 200
        assert own.json()["code"] == "CS01"
        assert own.json()["createdBy"] == "admin1"

    def test_forbidden_read_concealed_as_404(self, client, portal, monkeypatch):
        monkeypatch.setattr(config, "CONCEAL_FORBIDDEN_RECORDS", True)
        response = client.get("/api/departments/me", headers=portal.headers["admin1"])
        assert response.status_code == 404

    def test_admin_cannot_update_foreign_department(self, client, portal):
        response = client.put(
            "/api/departments/me", json={"name": "Hijacked"}, headers=portal.headers["admin1"]
        )
        assert response.status_code == 403
        assert portal.stores.departments.get("me")["name"] == "Mechanical"


class TestDepartmentWrites:
    def test_teacher_cannot_create(self, client, portal):
        response = client.post("/api/departments", json=NEW_DEPARTMENT, headers=portal.headers["teacher1"])
        assert response.status_code == 403

    def test_create_validates_fields(self, client, portal):
        response = client.post(
            "/api/departments",
            json={"name": "", "code": "TOO-LONG-CODE", "description": "x"},
            headers=portal.headers["admin1"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_duplicate_code_conflicts(self, client, portal):
        response = client.post(
            "/api/departments",
            json={"name": "Another", "code": "CS", "description": "dup"},
            headers=portal.headers["admin2"],
        )
        assert response.status_code == 409

    def test_update_own_department(self, client, portal):
        response = client.put(
            "/api/departments/cs", json={"description": "Updated"}, headers=portal.headers["admin1"]
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Updated"

    def test_invalid_id_is_400(self, client, portal):
        response = client.get("/api/departments/bad$id", headers=portal.headers["master"])
        assert response.status_code == 400

    def test_delete_with_subjects_is_blocked(self, client, portal):
        response = client.delete("/api/departments/cs", headers=portal.headers["admin1"])
        assert response.status_code == 400
        assert portal.stores.departments.get("cs") is not None
        assert portal.stores.subjects.get("algo") is not None

    def test_delete_empty_department(self, client, portal):
        created = client.post("/api/departments", json=NEW_DEPARTMENT, headers=portal.headers["admin2"])
        department_id = created.json()["id"]
        response = client.delete(f"/api/departments/{department_id}", headers=portal.headers["admin2"])
        assert response.status_code == 200
        assert portal.stores.departments.get(department_id) is None
