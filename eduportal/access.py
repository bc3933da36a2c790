"""
============================================================================
FILE: access.py
LOCATION: eduportal/access.py
============================================================================

PURPOSE:
    Authorization core of the portal: who may see which records and who
    may change them.

ROLE IN PROJECT:
    Every resource service asks the ScopeResolver for a Scope before
    listing or fetching, and asks the OwnershipWalker before writing.
    Decisions are recomputed from live documents on every request and
    never cached.

KEY COMPONENTS:
    - Scope: Visible subset of a collection as a single filter predicate
    - ScopeResolver: One role-exhaustive rule per resource type
    - OwnershipWalker: Content/Chapter -> Subject -> Department -> createdBy
    - ensure_visible: NotFound / Denied decision for a single record

VISIBILITY RULES:
    users        master: all | admin: createdBy == actor | teacher: denied
    departments  master: all | admin: createdBy == actor
                 teacher: departments of taught subjects (all when uploading)
    subjects     master: all | admin: department in owned departments
                 teacher: teachers contains actor (all when uploading)
    chapters     visible iff the parent subject is visible
    content      master: all | admin: department in owned departments
                 teacher: subject in taught subjects

WRITE RULES:
    master   always (master-admin accounts stay read-only, see users)
    admin    department.createdBy == actor
    teacher  actor in subject.teachers, or actor created the content
             (the creator check runs first and survives reassignment)
    A broken reference anywhere in the chain denies the write.

USAGE:
    resolver = ScopeResolver(stores)
    scope = resolver.subjects(actor, upload=True)
    records = stores.subjects.find(scope.filters())
============================================================================
"""

import dataclasses
import typing

from eduportal import config
from eduportal.errors import Denied, NotFound
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser, Role
from eduportal.store import Filter, PortalStores


logger = get_logger("access")


def _unhandled_role(actor: CurrentUser) -> AssertionError:
    return AssertionError(f"No access rule for role {actor.role!r}")


@dataclasses.dataclass(frozen=True)
class Scope:
    """A collection subset: everything, or records where field <op> value."""

    field: typing.Optional[str] = None
    op: str = "=="
    value: typing.Any = None
    unrestricted: bool = False

    @classmethod
    def everything(cls) -> "Scope":
        return cls(unrestricted=True)

    @classmethod
    def where(cls, field: str, op: str, value: typing.Any) -> "Scope":
        if op == "in":
            value = frozenset(value)
        return cls(field=field, op=op, value=value)

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and self.op == "in" and not self.value

    def filters(self) -> list[Filter]:
        if self.unrestricted:
            return []
        value = sorted(self.value) if self.op == "in" else self.value
        return [(self.field, self.op, value)]

    def matches(self, record: dict) -> bool:
        if self.unrestricted:
            return True
        actual = record.get(self.field)
        if self.op == "==":
            return actual == self.value
        if self.op == "in":
            return actual in self.value
        if self.op == "array_contains":
            return isinstance(actual, list) and self.value in actual
        raise ValueError(f"Unsupported scope operator: {self.op}")

    def permits(self, field: str, value: typing.Any) -> bool:
        """Whether an explicit field == value filter can overlap this scope.

        Only decidable when the scope constrains the same field; any other
        combination simply narrows the result.
        """
        if self.unrestricted or self.field != field:
            return True
        return self.matches({field: value})


def ensure_visible(scope: Scope, record: typing.Optional[dict], label: str) -> dict:
    """Single-record read check.

    Args:
        scope: Actor's scope over the record's collection.
        record: The fetched record, or None if it does not exist.
        label: Resource name for messages ("Subject", "Chapter", ...).

    Returns:
        dict: The record, when visible.

    Raises:
        NotFound: Record missing (or out of scope while concealing).
        Denied: Record exists but lies outside the scope.
    """
    if record is None:
        raise NotFound(f"{label} not found")
    if scope.matches(record):
        return record
    logger.debug(
        "Read of %s %s denied by scope", label.lower(), record.get("id"),
        extra={"resource": label.lower(), "resource_id": record.get("id")},
    )
    if config.CONCEAL_FORBIDDEN_RECORDS:
        raise NotFound(f"{label} not found")
    raise Denied(f"Not authorized to access this {label.lower()}")


class ScopeResolver:
    """Computes read scopes from live ownership and teaching data."""

    def __init__(self, stores: PortalStores):
        self.stores = stores

    def owned_department_ids(self, actor: CurrentUser) -> frozenset:
        records = self.stores.departments.find([("createdBy", "==", actor.id)])
        return frozenset(record["id"] for record in records)

    def taught_subjects(self, actor: CurrentUser) -> list[dict]:
        return self.stores.subjects.find([("teachers", "array_contains", actor.id)])

    def taught_subject_ids(self, actor: CurrentUser) -> frozenset:
        return frozenset(record["id"] for record in self.taught_subjects(actor))

    def users(self, actor: CurrentUser) -> Scope:
        if actor.role is Role.MASTER_ADMIN:
            return Scope.everything()
        if actor.role is Role.ADMIN:
            return Scope.where("createdBy", "==", actor.id)
        if actor.role is Role.TEACHER:
            raise Denied("Not authorized to manage users")
        raise _unhandled_role(actor)

    def departments(self, actor: CurrentUser, upload: bool = False) -> Scope:
        if actor.role is Role.MASTER_ADMIN:
            return Scope.everything()
        if actor.role is Role.ADMIN:
            return Scope.where("createdBy", "==", actor.id)
        if actor.role is Role.TEACHER:
            if upload:
                return Scope.everything()
            departments = {
                subject.get("department") for subject in self.taught_subjects(actor)
            }
            return Scope.where("id", "in", departments - {None})
        raise _unhandled_role(actor)

    def subjects(self, actor: CurrentUser, upload: bool = False) -> Scope:
        if actor.role is Role.MASTER_ADMIN:
            return Scope.everything()
        if actor.role is Role.ADMIN:
            return Scope.where("department", "in", self.owned_department_ids(actor))
        if actor.role is Role.TEACHER:
            # Uploading teachers browse every subject, not just their own
            if upload:
                return Scope.everything()
            return Scope.where("teachers", "array_contains", actor.id)
        raise _unhandled_role(actor)

    def chapters(self, actor: CurrentUser, upload: bool = False) -> Scope:
        subject_scope = self.subjects(actor, upload=upload)
        if subject_scope.unrestricted:
            return Scope.everything()
        visible = self.stores.subjects.find(subject_scope.filters())
        return Scope.where("subject", "in", {record["id"] for record in visible})

    def content(self, actor: CurrentUser) -> Scope:
        if actor.role is Role.MASTER_ADMIN:
            return Scope.everything()
        if actor.role is Role.ADMIN:
            return Scope.where("department", "in", self.owned_department_ids(actor))
        if actor.role is Role.TEACHER:
            return Scope.where("subject", "in", self.taught_subject_ids(actor))
        raise _unhandled_role(actor)


@dataclasses.dataclass
class OwnershipChain:
    """Records found while walking up from a chapter or content item."""

    subject: typing.Optional[dict] = None
    department: typing.Optional[dict] = None

    @property
    def owner_id(self) -> typing.Optional[str]:
        return (self.department or {}).get("createdBy")


class OwnershipWalker:
    """Write authorization by walking parent references to the owning admin."""

    def __init__(self, stores: PortalStores):
        self.stores = stores

    def _subject(self, subject_id: typing.Optional[str]) -> typing.Optional[dict]:
        return self.stores.subjects.get(subject_id)

    def _department(self, department_id: typing.Optional[str]) -> typing.Optional[dict]:
        return self.stores.departments.get(department_id)

    def walk(self, subject: typing.Optional[dict]) -> OwnershipChain:
        """Resolve the department above a subject; missing hops stay None."""
        if subject is None:
            return OwnershipChain()
        return OwnershipChain(subject, self._department(subject.get("department")))

    def _deny(self, actor: CurrentUser, message: str) -> Denied:
        logger.debug("Write denied: %s", message, extra={"actor": actor.id, "role": actor.role.value})
        return Denied(message)

    def authorize_department(self, actor: CurrentUser, department: dict) -> None:
        """Edit/delete a department, or create/move subjects into it."""
        if actor.role is Role.MASTER_ADMIN:
            return
        if actor.role is Role.ADMIN:
            if department.get("createdBy") != actor.id:
                raise self._deny(actor, "Not authorized to manage this department")
            return
        if actor.role is Role.TEACHER:
            raise self._deny(actor, "Not authorized to manage departments")
        raise _unhandled_role(actor)

    def authorize_subject(self, actor: CurrentUser, subject: dict) -> OwnershipChain:
        """Edit/delete the subject record itself (admins and master only)."""
        chain = self.walk(subject)
        if actor.role is Role.MASTER_ADMIN:
            return chain
        if actor.role is Role.ADMIN:
            if chain.department is None:
                raise self._deny(actor, "Subject has no valid department")
            if chain.owner_id != actor.id:
                raise self._deny(actor, "Not authorized to manage this subject")
            return chain
        if actor.role is Role.TEACHER:
            raise self._deny(actor, "Not authorized to manage subjects")
        raise _unhandled_role(actor)

    def authorize_subject_content(
        self,
        actor: CurrentUser,
        subject: typing.Optional[dict],
    ) -> OwnershipChain:
        """Create or change chapters and content under a subject."""
        chain = self.walk(subject)
        if actor.role is Role.MASTER_ADMIN:
            return chain
        if chain.subject is None or chain.department is None:
            raise self._deny(actor, "Broken subject or department reference")
        if actor.role is Role.ADMIN:
            if chain.owner_id != actor.id:
                raise self._deny(actor, "Not authorized for this department")
            return chain
        if actor.role is Role.TEACHER:
            if actor.id not in (chain.subject.get("teachers") or []):
                raise self._deny(actor, "You are not assigned to this subject")
            return chain
        raise _unhandled_role(actor)

    def authorize_chapter(self, actor: CurrentUser, chapter: dict) -> OwnershipChain:
        return self.authorize_subject_content(actor, self._subject(chapter.get("subject")))

    def authorize_content(self, actor: CurrentUser, content: dict) -> OwnershipChain:
        # Creators keep write access after unassignment or a subject move
        if content.get("createdBy") == actor.id:
            return self.walk(self._subject(content.get("subject")))
        return self.authorize_subject_content(actor, self._subject(content.get("subject")))
