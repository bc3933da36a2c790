# service.py
# Business logic for subjects

# A subject hangs off one department; its effective owner is that
# department's creator. Teachers are attached through the "teachers" id
# list, which drives teacher visibility and write access further down
# (chapters, content). (department, code) is unique.

# @see: access.py - ScopeResolver.subjects(), OwnershipWalker.authorize_subject()
# @note: Moving a subject to another department also moves its content,
#        keeping content.department == subject.department

from typing import List, Optional

from eduportal.access import OwnershipWalker, ScopeResolver, ensure_visible
from eduportal.errors import Conflict, Denied, Invalid, NotFound
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser, Role
from eduportal.store import PortalStores, utc_now
from eduportal.validators import validate_id, validate_ids

from .models import SubjectCreate, SubjectUpdate


logger = get_logger("subjects")

LIST_ORDER = ["department", "year", "semester", "name"]


class SubjectService:
    """Subject CRUD with department ownership and teacher assignment."""

    def __init__(self, stores: PortalStores):
        self.stores = stores
        self.subjects = stores.subjects
        self.resolver = ScopeResolver(stores)
        self.walker = OwnershipWalker(stores)

    def _owned_department(self, actor: CurrentUser, department_id: str) -> dict:
        validate_id(department_id, "department id")
        department = self.stores.departments.get(department_id)
        if department is None:
            raise NotFound("Department not found")
        self.walker.authorize_department(actor, department)
        return department

    def _check_code(self, department_id: str, code: str, exclude_id: Optional[str] = None) -> None:
        duplicates = self.subjects.find([
            ("department", "==", department_id),
            ("code", "==", code),
        ])
        if any(record["id"] != exclude_id for record in duplicates):
            raise Conflict("Subject with this code already exists in this department")

    def _check_teachers(self, teacher_ids: List[str]) -> List[str]:
        teacher_ids = validate_ids(teacher_ids, "teacher id")
        users = self.stores.users.get_many(teacher_ids)
        for teacher_id in teacher_ids:
            user = users.get(teacher_id)
            if user is None or user.get("role") != Role.TEACHER.value:
                raise Invalid("Teachers must reference existing teacher accounts", details=teacher_id)
        return teacher_ids

    def populate(self, records: List[dict]) -> List[dict]:
        self.stores.departments.populate(records, "department", ("name", "code"))
        self.stores.users.populate(records, "teachers", ("name", "email"))
        return records

    def list(
        self,
        actor: CurrentUser,
        department: Optional[str] = None,
        semester: Optional[int] = None,
        year: Optional[int] = None,
        upload: bool = False,
        populate: bool = False,
    ) -> List[dict]:
        """
        Subjects visible to the actor.

        Args:
            actor: Current user
            department: Only this department (must be inside the scope)
            semester: Only this semester
            year: Only this year
            upload: Content-upload context (lifts teacher restriction)
            populate: Expand department and teacher references

        Raises:
            Denied: Requested department lies outside the actor's scope
        """
        scope = self.resolver.subjects(actor, upload=upload)
        filters = scope.filters()
        if department:
            validate_id(department, "department id")
            if not scope.permits("department", department):
                raise Denied("Not authorized to view subjects for this department")
            filters.append(("department", "==", department))
        if semester is not None:
            filters.append(("semester", "==", semester))
        if year is not None:
            filters.append(("year", "==", year))

        records = self.subjects.find(filters, order_by=LIST_ORDER)
        return self.populate(records) if populate else records

    def list_public(self, department: Optional[str] = None) -> List[dict]:
        filters = []
        if department:
            validate_id(department, "department id")
            filters.append(("department", "==", department))
        return self.subjects.find(filters, order_by=["semester", "name"])

    def get(self, actor: CurrentUser, subject_id: str, upload: bool = False) -> dict:
        validate_id(subject_id, "subject id")
        return ensure_visible(
            self.resolver.subjects(actor, upload=upload),
            self.subjects.get(subject_id),
            "Subject",
        )

    def create(self, actor: CurrentUser, data: SubjectCreate) -> dict:
        """
        Raises:
            NotFound: Department does not exist
            Denied: Admin does not own the department
            Conflict: Code already used in the department
            Invalid: A teacher id is not a teacher account
        """
        self._owned_department(actor, data.department)
        self._check_code(data.department, data.code)
        teachers = self._check_teachers(data.teachers)

        now = utc_now()
        record = self.subjects.create({
            "name": data.name,
            "code": data.code,
            "description": data.description,
            "department": data.department,
            "semester": data.semester,
            "year": data.year,
            "teachers": teachers,
            "createdBy": actor.id,
            "createdAt": now,
            "updatedAt": now,
        })
        logger.info("Subject %s (%s) created by %s", record["id"], data.code, actor.id)
        return record

    def update(self, actor: CurrentUser, subject_id: str, data: SubjectUpdate) -> dict:
        subject = self.get(actor, subject_id)
        self.walker.authorize_subject(actor, subject)

        fields = data.model_dump(exclude_none=True)
        if not fields:
            return subject

        new_department = fields.get("department", subject.get("department"))
        moving = new_department != subject.get("department")
        if moving:
            self._owned_department(actor, new_department)
        if moving or fields.get("code", subject.get("code")) != subject.get("code"):
            self._check_code(new_department, fields.get("code", subject.get("code")), subject_id)
        if "teachers" in fields:
            fields["teachers"] = self._check_teachers(fields["teachers"])
        fields["updatedAt"] = utc_now()

        batch = self.stores.batch()
        batch.update(self.subjects.ref(subject_id), fields)
        if moving:
            for content in self.stores.content.find([("subject", "==", subject_id)]):
                batch.update(
                    self.stores.content.ref(content["id"]),
                    {"department": new_department, "updatedAt": fields["updatedAt"]},
                )
        batch.commit()

        if moving:
            logger.info("Subject %s moved to department %s by %s", subject_id, new_department, actor.id)
        return self.subjects.get(subject_id)

    def delete(self, actor: CurrentUser, subject_id: str) -> None:
        subject = self.get(actor, subject_id)
        self.walker.authorize_subject(actor, subject)

        if self.stores.content.exists([("subject", "==", subject_id)]):
            raise Invalid(
                "Cannot delete subject with associated content",
                details="Remove all content first",
            )

        batch = self.stores.batch()
        batch.delete(self.subjects.ref(subject_id))
        for chapter in self.stores.chapters.find([("subject", "==", subject_id)]):
            batch.delete(self.stores.chapters.ref(chapter["id"]))
        batch.commit()
        logger.info("Subject %s deleted by %s", subject_id, actor.id)
