# test_users_api.py
# API tests for /api/users and /api/auth
#
# Covers role assignment limits (nobody can create or promote to
# master-admin, admins create teachers only), createdBy scoping for
# admins, email-password sign-in against the mock backend and /me.
#
# @see: eduportal/users/service.py - UserService
# @see: eduportal/auth.py - authenticate(), get_current_user()

import pytest

from eduportal import config
from eduportal.models import Role
from eduportal.security import hash_password


def _new_user(role="teacher", email="new.teacher@school.edu"):
    return {"name": "New Person", "email": email, "password": "secret123", "role": role}


class TestUserCreation:
    def test_admin_creates_teacher(self, client, portal):
        response = client.post("/api/users", json=_new_user(), headers=portal.headers["admin1"])
        assert response.status_code == 201
        body = response.json()
        assert body["role"] == "teacher"
        assert body["createdBy"] == "admin1"
        assert "passwordHash" not in body

        stored = portal.stores.users.get(body["id"])
        assert stored["passwordHash"].startswith("$2")
        assert config.get_auth().get_user(body["id"]).email == "new.teacher@school.edu"

    def test_admin_cannot_create_admin(self, client, portal):
        response = client.post("/api/users", json=_new_user(role="admin"), headers=portal.headers["admin1"])
        assert response.status_code == 403

    @pytest.mark.parametrize("actor", ["master", "admin1"])
    def test_nobody_creates_master_admin(self, client, portal, actor):
        response = client.post("/api/users", json=_new_user(role="master-admin"), headers=portal.headers[actor])
        assert response.status_code == 403
        assert portal.stores.users.find([("role", "==", Role.MASTER_ADMIN.value)])[0]["id"] == "master"
        assert portal.stores.users.count([("role", "==", Role.MASTER_ADMIN.value)]) == 1

    def test_master_creates_admin(self, client, portal):
        response = client.post(
            "/api/users", json=_new_user(role="admin", email="boss@school.edu"), headers=portal.headers["master"]
        )
        assert response.status_code == 201
        assert response.json()["role"] == "admin"

    def test_teacher_cannot_manage_users(self, client, portal):
        assert client.get("/api/users", headers=portal.headers["teacher1"]).status_code == 403
        assert client.post("/api/users", json=_new_user(), headers=portal.headers["teacher1"]).status_code == 403

    def test_duplicate_email_conflicts(self, client, portal):
        response = client.post(
            "/api/users", json=_new_user(email="teacher1@school.edu"), headers=portal.headers["admin1"]
        )
        assert response.status_code == 409

    def test_invalid_email_rejected(self, client, portal):
        response = client.post("/api/users", json=_new_user(email="not-an-email"), headers=portal.headers["admin1"])
        assert response.status_code == 400

    def test_role_field_not_accepted_on_update(self, client, portal):
        response = client.put(
            "/api/users/teacher1", json={"role": "master-admin"}, headers=portal.headers["admin1"]
        )
        assert response.status_code == 400
        assert portal.stores.users.get("teacher1")["role"] == "teacher"


class TestUserScope:
    def test_admin_lists_only_created_users(self, client, portal):
        response = client.get("/api/users", headers=portal.headers["admin1"])
        assert sorted(u["id"] for u in response.json()) == ["teacher1", "teacher2"]

    def test_master_lists_everyone(self, client, portal):
        response = client.get("/api/users?role=teacher", headers=portal.headers["master"])
        assert sorted(u["id"] for u in response.json()) == ["teacher1", "teacher2", "teacher3"]

    def test_admin_cannot_read_foreign_user(self, client, portal):
        response = client.get("/api/users/teacher3", headers=portal.headers["admin1"])
        assert response.status_code == 403

    def test_admin_updates_own_teacher(self, client, portal):
        response = client.put("/api/users/teacher1", json={"name": "Renamed"}, headers=portal.headers["admin1"])
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"


class TestRoleChanges:
    def test_master_promotes_teacher(self, client, portal):
        response = client.patch("/api/users/teacher3/role", json={"role": "admin"}, headers=portal.headers["master"])
        assert response.status_code == 200
        assert portal.stores.users.get("teacher3")["role"] == "admin"

    def test_promotion_to_master_admin_refused(self, client, portal):
        response = client.patch(
            "/api/users/admin1/role", json={"role": "master-admin"}, headers=portal.headers["master"]
        )
        assert response.status_code == 403
        assert portal.stores.users.get("admin1")["role"] == "admin"

    def test_admin_cannot_change_roles(self, client, portal):
        response = client.patch("/api/users/teacher1/role", json={"role": "admin"}, headers=portal.headers["admin1"])
        assert response.status_code == 403

    def test_role_change_takes_effect_on_next_request(self, client, portal):
        client.patch("/api/users/teacher1/role", json={"role": "admin"}, headers=portal.headers["master"])
        # Same token, role now read from the record
        response = client.get("/api/users", headers=portal.headers["teacher1"])
        assert response.status_code == 200


class TestUserDelete:
    def test_self_delete_refused(self, client, portal):
        response = client.delete("/api/users/master", headers=portal.headers["master"])
        assert response.status_code == 400
        assert portal.stores.users.get("master") is not None

    def test_master_admin_accounts_are_read_only(self, client, portal):
        portal.stores.users.create({"name": "Backup", "email": "backup@school.edu", "role": "master-admin"}, doc_id="backup")
        assert client.delete("/api/users/backup", headers=portal.headers["master"]).status_code == 403
        assert client.put("/api/users/backup", json={"name": "X"}, headers=portal.headers["master"]).status_code == 403
        assert portal.stores.users.get("backup")["name"] == "Backup"

    def test_admin_deletes_own_teacher(self, client, portal):
        response = client.delete("/api/users/teacher2", headers=portal.headers["admin1"])
        assert response.status_code == 200
        assert portal.stores.users.get("teacher2") is None

    def test_admin_cannot_delete_foreign_teacher(self, client, portal):
        response = client.delete("/api/users/teacher3", headers=portal.headers["admin1"])
        assert response.status_code == 403


class TestAuthentication:
    def test_login_and_me(self, client, portal):
        portal.stores.users.update("teacher1", {"passwordHash": hash_password("letmein1")})
        response = client.post("/api/auth/login", json={"email": "Teacher1@school.edu", "password": "letmein1"})
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == "teacher1"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["role"] == "teacher"

    def test_wrong_password_is_401(self, client, portal):
        portal.stores.users.update("teacher1", {"passwordHash": hash_password("letmein1")})
        response = client.post("/api/auth/login", json={"email": "teacher1@school.edu", "password": "nope"})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_unknown_email_is_401(self, client, portal):
        response = client.post("/api/auth/login", json={"email": "ghost@school.edu", "password": "x"})
        assert response.status_code == 401

    def test_token_for_deleted_user_is_401(self, client, portal):
        portal.stores.users.delete("teacher2")
        response = client.get("/api/auth/me", headers=portal.headers["teacher2"])
        assert response.status_code == 401

    def test_created_user_can_sign_in(self, client, portal):
        client.post("/api/users", json=_new_user(), headers=portal.headers["admin1"])
        response = client.post(
            "/api/auth/login", json={"email": "new.teacher@school.edu", "password": "secret123"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "teacher"
