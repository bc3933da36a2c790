# router.py
# FastAPI router for chapter endpoints

# GET    /api/chapters            - ?subject=&populate=, honours x-content-upload
# POST   /api/chapters            - teacher of the subject, department admin, master
# POST   /api/chapters/reorder    - {subjectId, chapterOrders: [{id, order}]}
# GET    /api/chapters/{id}
# PUT    /api/chapters/{id}       - title, description, learningOutcomes, isActive
# DELETE /api/chapters/{id}       - renumbers remaining chapters

# @see: service.py - ChapterService

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from eduportal.auth import get_current_user, get_upload_context
from eduportal.models import CurrentUser
from eduportal.store import PortalStores, get_stores

from .models import ChapterCreate, ChapterResponse, ChapterUpdate, ReorderRequest
from .service import ChapterService


router = APIRouter(prefix="/api/chapters", tags=["chapters"])


def get_chapter_service(stores: PortalStores = Depends(get_stores)) -> ChapterService:
    """Dependency for getting ChapterService instance."""
    return ChapterService(stores)


@router.get("", response_model=List[ChapterResponse])
async def list_chapters(
    subject: Optional[str] = Query(None, description="Filter by subject id"),
    populate: bool = Query(False, description="Expand the subject reference"),
    actor: CurrentUser = Depends(get_current_user),
    upload: bool = Depends(get_upload_context),
    service: ChapterService = Depends(get_chapter_service),
):
    return service.list(actor, subject=subject, upload=upload, populate=populate)


@router.post("", response_model=ChapterResponse, status_code=status.HTTP_201_CREATED)
async def create_chapter(
    payload: ChapterCreate,
    actor: CurrentUser = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    """Create a chapter at the end of its subject's sequence."""
    return service.create(actor, payload)


@router.post("/reorder")
async def reorder_chapters(
    payload: ReorderRequest,
    actor: CurrentUser = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    chapters = service.reorder(actor, payload)
    return {
        "message": "Chapters reordered successfully",
        "chapters": [ChapterResponse(**chapter) for chapter in chapters],
    }


@router.get("/{chapter_id}", response_model=ChapterResponse)
async def get_chapter(
    chapter_id: str,
    actor: CurrentUser = Depends(get_current_user),
    upload: bool = Depends(get_upload_context),
    service: ChapterService = Depends(get_chapter_service),
):
    return service.get(actor, chapter_id, upload=upload)


@router.put("/{chapter_id}", response_model=ChapterResponse)
async def update_chapter(
    chapter_id: str,
    payload: ChapterUpdate,
    actor: CurrentUser = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    return service.update(actor, chapter_id, payload)


@router.delete("/{chapter_id}")
async def delete_chapter(
    chapter_id: str,
    actor: CurrentUser = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    service.delete(actor, chapter_id)
    return {"message": "Chapter deleted successfully"}
