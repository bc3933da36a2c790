# test_chapters_api.py
# API tests for /api/chapters
#
# Ordering is the interesting part: append-at-end numbering, gap closing
# on delete, and all-or-nothing reorder with dense 1..N validation.
#
# @see: eduportal/chapters/service.py - ChapterService

from unittest.mock import patch

import pytest

from eduportal.chapters.models import ChapterCreate, ChapterOrder, ReorderRequest
from eduportal.chapters.service import ChapterService
from eduportal.errors import Invalid


def _orders(stores, subject_id="algo"):
    chapters = stores.chapters.find([("subject", "==", subject_id)], order_by=["order"])
    return [(chapter["id"], chapter["order"]) for chapter in chapters]


class TestChapterNumbering:
    def test_first_chapter_gets_order_one(self, client, portal):
        response = client.post(
            "/api/chapters",
            json={"title": "Intro", "description": "Basics", "subject": "db"},
            headers=portal.headers["teacher2"],
        )
        assert response.status_code == 201
        assert response.json()["order"] == 1

    def test_new_chapter_appends_after_max(self, client, portal):
        response = client.post(
            "/api/chapters",
            json={"title": "Graphs", "description": "BFS, DFS", "subject": "algo",
                  "learningOutcomes": ["  traverse graphs ", ""]},
            headers=portal.headers["teacher1"],
        )
        assert response.status_code == 201
        body = response.json()
        assert body["order"] == 4
        assert body["learningOutcomes"] == ["traverse graphs"]

    def test_teacher_of_other_subject_cannot_create(self, client, portal):
        response = client.post(
            "/api/chapters",
            json={"title": "X", "description": "Y", "subject": "algo"},
            headers=portal.headers["teacher2"],
        )
        assert response.status_code == 403

    def test_missing_subject_is_404(self, client, portal):
        response = client.post(
            "/api/chapters",
            json={"title": "X", "description": "Y", "subject": "nothing"},
            headers=portal.headers["master"],
        )
        assert response.status_code == 404


class TestChapterReads:
    def test_list_by_subject_in_order(self, client, portal):
        response = client.get("/api/chapters?subject=algo", headers=portal.headers["teacher1"])
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == ["ch1", "ch2", "ch3"]

    def test_untaught_subject_filter_denied(self, client, portal):
        response = client.get("/api/chapters?subject=algo", headers=portal.headers["teacher2"])
        assert response.status_code == 403

    def test_upload_context_opens_chapters(self, client, portal):
        headers = {**portal.headers["teacher2"], "x-content-upload": "true"}
        response = client.get("/api/chapters?subject=algo", headers=headers)
        assert response.status_code == 200
        assert len(response.json()) == 3

    def test_list_populates_subject(self, client, portal):
        response = client.get("/api/chapters?subject=algo&populate=true", headers=portal.headers["admin1"])
        assert response.json()[0]["subject"]["code"] == "CS201"


class TestChapterDelete:
    def test_delete_closes_the_gap(self, client, portal):
        response = client.delete("/api/chapters/ch2", headers=portal.headers["teacher1"])
        assert response.status_code == 200
        assert _orders(portal.stores) == [("ch1", 1), ("ch3", 2)]

    def test_delete_first_chapter(self, client, portal):
        client.delete("/api/chapters/ch1", headers=portal.headers["admin1"])
        assert _orders(portal.stores) == [("ch2", 1), ("ch3", 2)]

    def test_delete_unlinks_content(self, client, portal):
        client.delete("/api/chapters/ch1", headers=portal.headers["teacher1"])
        content = portal.stores.content.get("c_algo")
        assert content["chapter"] is None
        assert content["subject"] == "algo"

    def test_foreign_admin_cannot_delete(self, client, portal):
        response = client.delete("/api/chapters/ch1", headers=portal.headers["admin2"])
        assert response.status_code == 403
        assert len(_orders(portal.stores)) == 3


class TestChapterReorder:
    def test_full_permutation(self, client, portal):
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": [
                {"id": "ch1", "order": 3}, {"id": "ch2", "order": 1}, {"id": "ch3", "order": 2},
            ]},
            headers=portal.headers["teacher1"],
        )
        assert response.status_code == 200
        assert [c["id"] for c in response.json()["chapters"]] == ["ch2", "ch3", "ch1"]
        assert _orders(portal.stores) == [("ch2", 1), ("ch3", 2), ("ch1", 3)]

    def test_partial_swap(self, client, portal):
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": [{"id": "ch1", "order": 2}, {"id": "ch2", "order": 1}]},
            headers=portal.headers["admin1"],
        )
        assert response.status_code == 200
        assert _orders(portal.stores) == [("ch2", 1), ("ch1", 2), ("ch3", 3)]

    def test_gap_is_rejected_and_nothing_changes(self, client, portal):
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": [{"id": "ch3", "order": 7}]},
            headers=portal.headers["teacher1"],
        )
        assert response.status_code == 400
        assert _orders(portal.stores) == [("ch1", 1), ("ch2", 2), ("ch3", 3)]

    def test_duplicate_order_rejected(self, client, portal):
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": [{"id": "ch1", "order": 2}, {"id": "ch3", "order": 2}]},
            headers=portal.headers["teacher1"],
        )
        assert response.status_code == 400

    def test_foreign_chapter_rejected(self, client, portal):
        portal.stores.chapters.create(
            {"title": "Other", "description": "", "subject": "db", "order": 1,
             "learningOutcomes": [], "isActive": True},
            doc_id="other",
        )
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": [{"id": "other", "order": 1}]},
            headers=portal.headers["master"],
        )
        assert response.status_code == 400

    def test_unassigned_teacher_denied(self, client, portal):
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": [{"id": "ch1", "order": 1}]},
            headers=portal.headers["teacher3"],
        )
        assert response.status_code == 403

    def test_empty_order_list_rejected(self, client, portal):
        response = client.post(
            "/api/chapters/reorder",
            json={"subjectId": "algo", "chapterOrders": []},
            headers=portal.headers["teacher1"],
        )
        assert response.status_code == 400


def _interleave(service, interfere):
    """
    Make service's first sibling read inside a transaction run interfere()
    to completion before returning, so the service commits against data
    that has already changed underneath it.
    """
    original = service._siblings
    pending = [interfere]

    def read_then_interfere(subject_id, transaction=None):
        siblings = original(subject_id, transaction)
        if transaction is not None and pending:
            pending.pop()()
        return siblings

    return patch.object(service, "_siblings", side_effect=read_then_interfere)


class TestConcurrentChapterWrites:
    def test_overlapping_deletes_leave_dense_orders(self, portal):
        teacher = portal.actors["teacher1"]
        first, second = ChapterService(portal.stores), ChapterService(portal.stores)

        with _interleave(first, lambda: second.delete(teacher, "ch1")):
            first.delete(teacher, "ch2")

        assert _orders(portal.stores) == [("ch3", 1)]

    def test_overlapping_creates_get_distinct_orders(self, portal):
        teacher = portal.actors["teacher1"]
        first, second = ChapterService(portal.stores), ChapterService(portal.stores)

        def chapter(title):
            return ChapterCreate(title=title, description="d", subject="algo")

        with _interleave(first, lambda: second.create(teacher, chapter("Graphs"))):
            created = first.create(teacher, chapter("Trees"))

        assert created["order"] == 5
        assert [order for _, order in _orders(portal.stores)] == [1, 2, 3, 4, 5]

    def test_reorder_rechecks_after_concurrent_delete(self, portal):
        teacher = portal.actors["teacher1"]
        reorderer, deleter = ChapterService(portal.stores), ChapterService(portal.stores)
        request = ReorderRequest(
            subjectId="algo",
            chapterOrders=[ChapterOrder(id="ch1", order=3), ChapterOrder(id="ch3", order=1)],
        )

        # Swapping 1 and 3 is only valid while ch2 still holds position 2
        with _interleave(reorderer, lambda: deleter.delete(teacher, "ch2")):
            with pytest.raises(Invalid):
                reorderer.reorder(teacher, request)

        assert _orders(portal.stores) == [("ch1", 1), ("ch3", 2)]
