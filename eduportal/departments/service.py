# service.py
# Business logic for departments

# A department belongs to the admin who created it (createdBy). Name and
# code are each unique across the deployment. Deletion is refused while
# any subject still points at the department.

# @see: access.py - ScopeResolver.departments(), OwnershipWalker.authorize_department()

from typing import List

from eduportal.access import OwnershipWalker, ScopeResolver, ensure_visible
from eduportal.errors import Conflict, Invalid
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser
from eduportal.store import PortalStores, utc_now
from eduportal.validators import validate_id

from .models import DepartmentCreate, DepartmentUpdate


logger = get_logger("departments")


class DepartmentService:
    """Department CRUD scoped to the creating admin."""

    def __init__(self, stores: PortalStores):
        self.stores = stores
        self.departments = stores.departments
        self.resolver = ScopeResolver(stores)
        self.walker = OwnershipWalker(stores)

    def _check_unique(self, name=None, code=None, exclude_id=None) -> None:
        for field, value in (("name", name), ("code", code)):
            if value is None:
                continue
            for record in self.departments.find([(field, "==", value)]):
                if record["id"] != exclude_id:
                    raise Conflict("Department with this name or code already exists")

    def list(self, actor: CurrentUser, upload: bool = False) -> List[dict]:
        scope = self.resolver.departments(actor, upload=upload)
        return self.departments.find(scope.filters(), order_by=["-createdAt"])

    def list_public(self) -> List[dict]:
        return self.departments.find(order_by=["name"])

    def get(self, actor: CurrentUser, department_id: str, upload: bool = False) -> dict:
        validate_id(department_id, "department id")
        return ensure_visible(
            self.resolver.departments(actor, upload=upload),
            self.departments.get(department_id),
            "Department",
        )

    def create(self, actor: CurrentUser, data: DepartmentCreate) -> dict:
        self._check_unique(name=data.name, code=data.code)
        now = utc_now()
        record = self.departments.create({
            "name": data.name,
            "code": data.code,
            "description": data.description,
            "createdBy": actor.id,
            "createdAt": now,
            "updatedAt": now,
        })
        logger.info("Department %s (%s) created by %s", record["id"], data.code, actor.id)
        return record

    def update(self, actor: CurrentUser, department_id: str, data: DepartmentUpdate) -> dict:
        department = self.get(actor, department_id)
        self.walker.authorize_department(actor, department)

        fields = data.model_dump(exclude_none=True)
        if not fields:
            return department
        self._check_unique(
            name=fields.get("name"),
            code=fields.get("code"),
            exclude_id=department_id,
        )
        fields["updatedAt"] = utc_now()
        return self.departments.update(department_id, fields)

    def delete(self, actor: CurrentUser, department_id: str) -> None:
        department = self.get(actor, department_id)
        self.walker.authorize_department(actor, department)

        if self.stores.subjects.exists([("department", "==", department_id)]):
            raise Invalid(
                "Cannot delete department with existing subjects",
                details="Delete or move its subjects first",
            )
        self.departments.delete(department_id)
        logger.info("Department %s deleted by %s", department_id, actor.id)
