"""
============================================================================
FILE: dashboard.py
LOCATION: eduportal/dashboard.py
============================================================================

PURPOSE:
    Read-only aggregate views: role-shaped counters for the staff
    dashboard and the public catalogue tree for the student site.

ROLE IN PROJECT:
    GET /api/dashboard/stats  (authenticated)
    GET /api/student/data     (public)

KEY COMPONENTS:
    - DashboardService.stats(): Counts restricted to the actor's scopes
    - DashboardService.student_catalogue(): departments -> subjects ->
      active chapters, plus the distinct semesters and years

USAGE:
    service = DashboardService(stores)
    service.stats(actor)
============================================================================
"""

import typing

from fastapi import APIRouter, Depends

from eduportal.access import ScopeResolver
from eduportal.auth import get_current_user
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser, Role
from eduportal.store import PortalStores, get_stores


logger = get_logger("dashboard")

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
student_router = APIRouter(prefix="/api/student", tags=["student"])


class DashboardService:
    """Counters and catalogue built on the same scopes as the list endpoints."""

    def __init__(self, stores: PortalStores):
        self.stores = stores
        self.resolver = ScopeResolver(stores)

    def stats(self, actor: CurrentUser) -> typing.Dict[str, int]:
        stores = self.stores
        content_count = stores.content.count(self.resolver.content(actor).filters())

        if actor.role is Role.MASTER_ADMIN:
            users = stores.users.find([("role", "!=", Role.MASTER_ADMIN.value)])
            return {
                "contentItems": content_count,
                "departments": stores.departments.count(),
                "subjects": stores.subjects.count(),
                "users": len(users),
                "admins": sum(1 for user in users if user.get("role") == Role.ADMIN.value),
                "teachers": sum(1 for user in users if user.get("role") == Role.TEACHER.value),
            }
        if actor.role is Role.ADMIN:
            created = stores.users.find([("createdBy", "==", actor.id)])
            return {
                "contentItems": content_count,
                "departments": stores.departments.count(self.resolver.departments(actor).filters()),
                "subjects": stores.subjects.count(self.resolver.subjects(actor).filters()),
                "users": len(created),
                "teachers": sum(1 for user in created if user.get("role") == Role.TEACHER.value),
            }
        if actor.role is Role.TEACHER:
            return {
                "contentItems": content_count,
                "teacherContent": stores.content.count([("createdBy", "==", actor.id)]),
                "teacherSubjects": len(self.resolver.taught_subjects(actor)),
            }
        raise AssertionError(f"No dashboard for role {actor.role!r}")

    def student_catalogue(self) -> dict:
        """
        Public browse tree.

        Returns:
            {"departments": [{id, name, code, subjects: [{..., chapters}], teachers}],
             "semesters": [...], "years": [...]}
        """
        departments = self.stores.departments.find(order_by=["name"])
        subjects = self.stores.subjects.find(order_by=["name"])
        chapters = self.stores.chapters.find([("isActive", "==", True)], order_by=["order"])
        teachers = self.stores.users.get_many(
            teacher_id for subject in subjects for teacher_id in subject.get("teachers") or []
        )

        chapters_by_subject: typing.Dict[str, list] = {}
        for chapter in chapters:
            chapters_by_subject.setdefault(chapter.get("subject"), []).append({
                "id": chapter["id"],
                "title": chapter.get("title"),
                "order": chapter.get("order"),
            })

        tree = []
        for department in departments:
            own_subjects = [s for s in subjects if s.get("department") == department["id"]]
            teacher_ids = dict.fromkeys(
                teacher_id for subject in own_subjects for teacher_id in subject.get("teachers") or []
            )
            tree.append({
                "id": department["id"],
                "name": department.get("name"),
                "code": department.get("code"),
                "subjects": [
                    {
                        "id": subject["id"],
                        "name": subject.get("name"),
                        "code": subject.get("code"),
                        "semester": subject.get("semester"),
                        "year": subject.get("year"),
                        "chapters": chapters_by_subject.get(subject["id"], []),
                    }
                    for subject in own_subjects
                ],
                "teachers": sorted(
                    (
                        {"id": teacher_id, "name": teachers[teacher_id].get("name"),
                         "email": teachers[teacher_id].get("email")}
                        for teacher_id in teacher_ids if teacher_id in teachers
                    ),
                    key=lambda teacher: teacher["name"] or "",
                ),
            })

        return {
            "departments": tree,
            "semesters": sorted({s["semester"] for s in subjects if s.get("semester")}),
            "years": sorted({s["year"] for s in subjects if s.get("year")}),
        }


def get_dashboard_service(stores: PortalStores = Depends(get_stores)) -> DashboardService:
    """Dependency for getting DashboardService instance."""
    return DashboardService(stores)


@router.get("/stats")
async def dashboard_stats(
    actor: CurrentUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    stats = service.stats(actor)
    logger.debug("Dashboard stats for %s: %s", actor.id, stats)
    return stats


@student_router.get("/data")
async def student_data(service: DashboardService = Depends(get_dashboard_service)):
    return service.student_catalogue()
