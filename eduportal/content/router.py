# router.py
# FastAPI router for content endpoints

# GET    /api/content             - ?department=&subject=&chapter=&semester=&year=&type=
# GET    /api/content/public      - no auth, ?department=&subject=&type=
# POST   /api/content             - fileUrl/publicId come from POST /api/upload
# GET    /api/content/{id}
# PUT    /api/content/{id}        - creator, subject teacher, department admin, master
# DELETE /api/content/{id}        - also removes the stored file

# @see: service.py - ContentService

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from eduportal.auth import get_current_user
from eduportal.blob_store import get_blob_store
from eduportal.models import ContentType, CurrentUser
from eduportal.store import PortalStores, get_stores

from .models import ContentCreate, ContentResponse, ContentUpdate, PublicContent
from .service import ContentService


router = APIRouter(prefix="/api/content", tags=["content"])


def get_content_service(
    stores: PortalStores = Depends(get_stores),
    blobs=Depends(get_blob_store),
) -> ContentService:
    """Dependency for getting ContentService instance."""
    return ContentService(stores, blobs)


@router.get("", response_model=List[ContentResponse])
async def list_content(
    department: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    chapter: Optional[str] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=8),
    year: Optional[int] = Query(None, ge=1, le=4),
    content_type: Optional[ContentType] = Query(None, alias="type"),
    actor: CurrentUser = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    return service.list(
        actor,
        department=department,
        subject=subject,
        chapter=chapter,
        semester=semester,
        year=year,
        content_type=content_type,
    )


@router.get("/public", response_model=List[PublicContent])
async def list_public_content(
    department: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    content_type: Optional[ContentType] = Query(None, alias="type"),
    service: ContentService = Depends(get_content_service),
):
    """Catalogue for the student-facing site. No authentication."""
    return service.list_public(department=department, subject=subject, content_type=content_type)


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    payload: ContentCreate,
    actor: CurrentUser = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    return service.create(actor, payload)


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(
    content_id: str,
    actor: CurrentUser = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    return service.get(actor, content_id)


@router.put("/{content_id}", response_model=ContentResponse)
async def update_content(
    content_id: str,
    payload: ContentUpdate,
    actor: CurrentUser = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    return service.update(actor, content_id, payload)


@router.delete("/{content_id}")
async def delete_content(
    content_id: str,
    actor: CurrentUser = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    service.delete(actor, content_id)
    return {"message": "Content deleted successfully"}
