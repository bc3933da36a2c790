# test_subjects_api.py
# API tests for /api/subjects
#
# Teacher visibility with and without the upload header, admin department
# ownership, teacher assignment validation, department moves carrying
# content along, and the content-blocked delete.
#
# @see: eduportal/subjects/service.py - SubjectService


def _subject_payload(**overrides):
    payload = {
        "name": "Operating Systems",
        "code": "CS305",
        "description": "Processes and memory",
        "department": "cs",
        "semester": 5,
        "year": 3,
        "teachers": ["teacher1"],
    }
    payload.update(overrides)
    return payload


class TestSubjectVisibility:
    def test_teacher_sees_only_taught_subjects(self, client, portal):
        response = client.get("/api/subjects", headers=portal.headers["teacher1"])
        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == ["algo"]

    def test_teacher_upload_context_sees_all(self, client, portal):
        headers = {**portal.headers["teacher1"], "x-content-upload": "true"}
        response = client.get("/api/subjects", headers=headers)
        assert sorted(s["id"] for s in response.json()) == ["algo", "db", "thermo"]

    def test_upload_header_must_be_true(self, client, portal):
        headers = {**portal.headers["teacher1"], "x-content-upload": "yes"}
        response = client.get("/api/subjects", headers=headers)
        assert [s["id"] for s in response.json()] == ["algo"]

    def test_admin_subjects_follow_departments(self, client, portal):
        response = client.get("/api/subjects", headers=portal.headers["admin2"])
        assert [s["id"] for s in response.json()] == ["thermo"]

    def test_admin_filter_on_foreign_department_denied(self, client, portal):
        response = client.get("/api/subjects?department=cs", headers=portal.headers["admin2"])
        assert response.status_code == 403

    def test_list_is_ordered_by_year_and_semester(self, client, portal):
        response = client.get("/api/subjects?department=cs", headers=portal.headers["admin1"])
        assert [s["id"] for s in response.json()] == ["algo", "db"]

    def test_populate_expands_references(self, client, portal):
        response = client.get("/api/subjects?populate=true", headers=portal.headers["teacher1"])
        subject = response.json()[0]
        assert subject["department"] == {"id": "cs", "name": "Computer Science", "code": "CS"}
        assert subject["teachers"] == [{"id": "teacher1", "name": "Teacher1", "email": "teacher1@school.edu"}]

    def test_teacher_get_untaught_subject_denied(self, client, portal):
        response = client.get("/api/subjects/db", headers=portal.headers["teacher1"])
        assert response.status_code == 403

    def test_public_listing(self, client, portal):
        response = client.get("/api/subjects/public?department=me")
        assert response.status_code == 200
        assert [s["code"] for s in response.json()] == ["ME201"]


class TestSubjectWrites:
    def test_admin_creates_in_own_department(self, client, portal):
        response = client.post("/api/subjects", json=_subject_payload(), headers=portal.headers["admin1"])
        assert response.status_code == 201
        body = response.json()
        assert body["department"] == "cs"
        assert body["teachers"] == ["teacher1"]

    def test_admin_cannot_create_in_foreign_department(self, client, portal):
        response = client.post(
            "/api/subjects", json=_subject_payload(department="me"), headers=portal.headers["admin1"]
        )
        assert response.status_code == 403

    def test_missing_department_is_404(self, client, portal):
        response = client.post(
            "/api/subjects", json=_subject_payload(department="nowhere"), headers=portal.headers["master"]
        )
        assert response.status_code == 404

    def test_teacher_cannot_create(self, client, portal):
        response = client.post("/api/subjects", json=_subject_payload(), headers=portal.headers["teacher1"])
        assert response.status_code == 403

    def test_duplicate_code_in_department_conflicts(self, client, portal):
        response = client.post(
            "/api/subjects", json=_subject_payload(code="CS201"), headers=portal.headers["admin1"]
        )
        assert response.status_code == 409

    def test_same_code_in_other_department_allowed(self, client, portal):
        response = client.post(
            "/api/subjects",
            json=_subject_payload(code="CS201", department="me", teachers=[]),
            headers=portal.headers["admin2"],
        )
        assert response.status_code == 201

    def test_teachers_must_be_teacher_accounts(self, client, portal):
        response = client.post(
            "/api/subjects", json=_subject_payload(teachers=["admin2"]), headers=portal.headers["admin1"]
        )
        assert response.status_code == 400

    def test_semester_out_of_range(self, client, portal):
        response = client.post(
            "/api/subjects", json=_subject_payload(semester=9), headers=portal.headers["admin1"]
        )
        assert response.status_code == 400

    def test_teacher_cannot_update_subject(self, client, portal):
        response = client.put("/api/subjects/algo", json={"name": "X"}, headers=portal.headers["teacher1"])
        assert response.status_code == 403

    def test_assign_teachers(self, client, portal):
        response = client.put(
            "/api/subjects/algo", json={"teachers": ["teacher1", "teacher2"]}, headers=portal.headers["admin1"]
        )
        assert response.status_code == 200
        assert response.json()["teachers"] == ["teacher1", "teacher2"]

    def test_department_move_carries_content(self, client, portal):
        response = client.put("/api/subjects/algo", json={"department": "me"}, headers=portal.headers["master"])
        assert response.status_code == 200
        assert response.json()["department"] == "me"
        assert portal.stores.content.get("c_algo")["department"] == "me"

    def test_admin_cannot_move_into_foreign_department(self, client, portal):
        response = client.put("/api/subjects/algo", json={"department": "me"}, headers=portal.headers["admin1"])
        assert response.status_code == 403
        assert portal.stores.subjects.get("algo")["department"] == "cs"

    def test_delete_with_content_is_blocked(self, client, portal):
        response = client.delete("/api/subjects/algo", headers=portal.headers["admin1"])
        assert response.status_code == 400
        assert portal.stores.subjects.get("algo") is not None
        assert len(portal.stores.chapters.find([("subject", "==", "algo")])) == 3

    def test_delete_removes_chapters(self, client, portal):
        portal.stores.content.delete("c_algo")
        response = client.delete("/api/subjects/algo", headers=portal.headers["admin1"])
        assert response.status_code == 200
        assert portal.stores.subjects.get("algo") is None
        assert portal.stores.chapters.find([("subject", "==", "algo")]) == []
