# router.py
# FastAPI router for subject endpoints

# GET    /api/subjects            - ?department=&semester=&year=&populate=
#                                   header x-content-upload: true widens teacher scope
# GET    /api/subjects/public     - ?department= (no auth)
# POST   /api/subjects            - admin of the department / master-admin
# GET    /api/subjects/{id}
# PUT    /api/subjects/{id}
# DELETE /api/subjects/{id}       - blocked while content exists

# @see: service.py - SubjectService

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from eduportal.auth import get_current_user, get_upload_context, require_manager
from eduportal.models import CurrentUser
from eduportal.store import PortalStores, get_stores

from .models import SubjectCreate, SubjectResponse, SubjectSummary, SubjectUpdate
from .service import SubjectService


router = APIRouter(prefix="/api/subjects", tags=["subjects"])


def get_subject_service(stores: PortalStores = Depends(get_stores)) -> SubjectService:
    """Dependency for getting SubjectService instance."""
    return SubjectService(stores)


@router.get("", response_model=List[SubjectResponse])
async def list_subjects(
    department: Optional[str] = Query(None, description="Filter by department id"),
    semester: Optional[int] = Query(None, ge=1, le=8),
    year: Optional[int] = Query(None, ge=1, le=4),
    populate: bool = Query(False, description="Expand department and teachers"),
    actor: CurrentUser = Depends(get_current_user),
    upload: bool = Depends(get_upload_context),
    service: SubjectService = Depends(get_subject_service),
):
    """
    Subjects visible to the caller, ordered by department, year,
    semester and name.
    """
    return service.list(
        actor,
        department=department,
        semester=semester,
        year=year,
        upload=upload,
        populate=populate,
    )


@router.get("/public", response_model=List[SubjectSummary])
async def list_public_subjects(
    department: Optional[str] = Query(None, description="Filter by department id"),
    service: SubjectService = Depends(get_subject_service),
):
    return service.list_public(department)


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    payload: SubjectCreate,
    actor: CurrentUser = Depends(require_manager),
    service: SubjectService = Depends(get_subject_service),
):
    return service.create(actor, payload)


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: str,
    populate: bool = Query(False, description="Expand department and teachers"),
    actor: CurrentUser = Depends(get_current_user),
    upload: bool = Depends(get_upload_context),
    service: SubjectService = Depends(get_subject_service),
):
    subject = service.get(actor, subject_id, upload=upload)
    return service.populate([subject])[0] if populate else subject


@router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: str,
    payload: SubjectUpdate,
    actor: CurrentUser = Depends(require_manager),
    service: SubjectService = Depends(get_subject_service),
):
    return service.update(actor, subject_id, payload)


@router.delete("/{subject_id}")
async def delete_subject(
    subject_id: str,
    actor: CurrentUser = Depends(require_manager),
    service: SubjectService = Depends(get_subject_service),
):
    service.delete(actor, subject_id)
    return {"message": "Subject deleted successfully"}
