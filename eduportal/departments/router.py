# router.py
# FastAPI router for department endpoints

# GET    /api/departments          - departments in the caller's scope
# GET    /api/departments/public   - id, name, code of every department (no auth)
# POST   /api/departments          - admin / master-admin
# GET    /api/departments/{id}
# PUT    /api/departments/{id}     - owning admin / master-admin
# DELETE /api/departments/{id}     - blocked while subjects exist

# @see: service.py - DepartmentService

from typing import List

from fastapi import APIRouter, Depends, status

from eduportal.auth import get_current_user, get_upload_context, require_manager
from eduportal.models import CurrentUser
from eduportal.store import PortalStores, get_stores

from .models import DepartmentCreate, DepartmentResponse, DepartmentSummary, DepartmentUpdate
from .service import DepartmentService


router = APIRouter(prefix="/api/departments", tags=["departments"])


def get_department_service(stores: PortalStores = Depends(get_stores)) -> DepartmentService:
    """Dependency for getting DepartmentService instance."""
    return DepartmentService(stores)


@router.get("", response_model=List[DepartmentResponse])
async def list_departments(
    actor: CurrentUser = Depends(get_current_user),
    upload: bool = Depends(get_upload_context),
    service: DepartmentService = Depends(get_department_service),
):
    return service.list(actor, upload=upload)


@router.get("/public", response_model=List[DepartmentSummary])
async def list_public_departments(
    service: DepartmentService = Depends(get_department_service),
):
    """Department names and codes for the student catalogue."""
    return service.list_public()


@router.post("", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreate,
    actor: CurrentUser = Depends(require_manager),
    service: DepartmentService = Depends(get_department_service),
):
    return service.create(actor, payload)


@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: str,
    actor: CurrentUser = Depends(get_current_user),
    upload: bool = Depends(get_upload_context),
    service: DepartmentService = Depends(get_department_service),
):
    return service.get(actor, department_id, upload=upload)


@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: str,
    payload: DepartmentUpdate,
    actor: CurrentUser = Depends(require_manager),
    service: DepartmentService = Depends(get_department_service),
):
    return service.update(actor, department_id, payload)


@router.delete("/{department_id}")
async def delete_department(
    department_id: str,
    actor: CurrentUser = Depends(require_manager),
    service: DepartmentService = Depends(get_department_service),
):
    service.delete(actor, department_id)
    return {"message": "Department deleted successfully"}
