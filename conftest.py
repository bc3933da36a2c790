# conftest.py
# Pytest configuration for the EduPortal test environment
#
# Forces mock Firebase, disables rate limiting and points uploads at a temp
# directory before eduportal.config is imported, then provides a seeded
# portal (two departments owned by two admins, three teachers, subjects,
# chapters and content) plus bearer headers for every actor.
#
# @see: eduportal/mock_firestore.py - MockAuth token format
# @note: Every test gets a fresh in-memory database via config.reset_clients()

import os
import tempfile
from types import SimpleNamespace

os.environ["USE_REAL_FIREBASE"] = "false"
os.environ["MOCK_DB_FILE"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["MASTER_ADMIN_EMAIL"] = ""
os.environ["MASTER_ADMIN_PASSWORD"] = ""
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="eduportal-uploads-"))

import pytest
from fastapi.testclient import TestClient

from eduportal import config
from eduportal.blob_store import LocalBlobStore, get_blob_store
from eduportal.main import app
from eduportal.models import CurrentUser, Role
from eduportal.store import PortalStores


def token_for(role: str, uid: str) -> str:
    return f"mock-token-{role}-{uid}"


def bearer(role: str, uid: str) -> dict:
    return {"Authorization": f"Bearer {token_for(role, uid)}"}


@pytest.fixture(autouse=True)
def fresh_clients():
    """Fresh mock Firestore and MockAuth for each test."""
    config.reset_clients()
    yield
    config.reset_clients()
    app.dependency_overrides.clear()


@pytest.fixture
def stores() -> PortalStores:
    return PortalStores()


@pytest.fixture
def blob_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def client(blob_dir):
    """TestClient with uploads written below tmp_path."""
    blobs = LocalBlobStore(blob_dir)
    app.dependency_overrides[get_blob_store] = lambda: blobs
    return TestClient(app)


def _user(stores, uid, role, created_by=None):
    return stores.users.create(
        {
            "name": uid.capitalize(),
            "email": f"{uid}@school.edu",
            "role": role.value,
            "createdBy": created_by,
            "createdAt": "2024-01-01T00:00:00+00:00",
            "updatedAt": "2024-01-01T00:00:00+00:00",
        },
        doc_id=uid,
    )


@pytest.fixture
def portal(stores):
    """
    Seeded hierarchy:

        cs (admin1)  algo [teacher1]  ch1, ch2, ch3   c_algo (teacher1, ch1)
                     db   [teacher2]                  c_db   (teacher2)
        me (admin2)  thermo [teacher3]                c_me   (admin2)
    """
    _user(stores, "master", Role.MASTER_ADMIN)
    _user(stores, "admin1", Role.ADMIN, "master")
    _user(stores, "admin2", Role.ADMIN, "master")
    _user(stores, "teacher1", Role.TEACHER, "admin1")
    _user(stores, "teacher2", Role.TEACHER, "admin1")
    _user(stores, "teacher3", Role.TEACHER, "admin2")

    stamp = "2024-02-01T00:00:00+00:00"
    stores.departments.create(
        {"name": "Computer Science", "code": "CS", "description": "Computing",
         "createdBy": "admin1", "createdAt": stamp, "updatedAt": stamp},
        doc_id="cs",
    )
    stores.departments.create(
        {"name": "Mechanical", "code": "ME", "description": "Machines",
         "createdBy": "admin2", "createdAt": "2024-02-02T00:00:00+00:00", "updatedAt": stamp},
        doc_id="me",
    )

    def subject(doc_id, name, code, department, teachers, semester=3, year=2):
        stores.subjects.create(
            {"name": name, "code": code, "description": name, "department": department,
             "semester": semester, "year": year, "teachers": teachers,
             "createdBy": "master", "createdAt": stamp, "updatedAt": stamp},
            doc_id=doc_id,
        )

    subject("algo", "Algorithms", "CS201", "cs", ["teacher1"])
    subject("db", "Databases", "CS301", "cs", ["teacher2"], semester=5, year=3)
    subject("thermo", "Thermodynamics", "ME201", "me", ["teacher3"])

    for order in (1, 2, 3):
        stores.chapters.create(
            {"title": f"Chapter {order}", "description": "", "subject": "algo", "order": order,
             "learningOutcomes": [], "isActive": True, "createdBy": "teacher1",
             "createdAt": stamp, "updatedAt": stamp},
            doc_id=f"ch{order}",
        )

    def content(doc_id, subject_id, department, created_by, chapter=None, created_at=stamp):
        stores.content.create(
            {"title": doc_id, "description": "file", "department": department,
             "subject": subject_id, "chapter": chapter, "semester": 3, "year": 2,
             "contentType": "notes", "fileUrl": f"/uploads/notes/{doc_id}.pdf",
             "publicId": None, "createdBy": created_by,
             "createdAt": created_at, "updatedAt": created_at},
            doc_id=doc_id,
        )

    content("c_algo", "algo", "cs", "teacher1", chapter="ch1", created_at="2024-03-01T00:00:00+00:00")
    content("c_db", "db", "cs", "teacher2", created_at="2024-03-02T00:00:00+00:00")
    content("c_me", "thermo", "me", "admin2", created_at="2024-03-03T00:00:00+00:00")

    return SimpleNamespace(
        stores=stores,
        headers={
            "master": bearer("master-admin", "master"),
            "admin1": bearer("admin", "admin1"),
            "admin2": bearer("admin", "admin2"),
            "teacher1": bearer("teacher", "teacher1"),
            "teacher2": bearer("teacher", "teacher2"),
            "teacher3": bearer("teacher", "teacher3"),
        },
        actors={
            "master": CurrentUser(id="master", email="master@school.edu", role=Role.MASTER_ADMIN),
            "admin1": CurrentUser(id="admin1", email="admin1@school.edu", role=Role.ADMIN),
            "admin2": CurrentUser(id="admin2", email="admin2@school.edu", role=Role.ADMIN),
            "teacher1": CurrentUser(id="teacher1", email="teacher1@school.edu", role=Role.TEACHER),
            "teacher2": CurrentUser(id="teacher2", email="teacher2@school.edu", role=Role.TEACHER),
            "teacher3": CurrentUser(id="teacher3", email="teacher3@school.edu", role=Role.TEACHER),
        },
    )
