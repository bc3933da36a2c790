# models.py
# Pydantic schemas for chapters and chapter reordering

# @see: service.py - ChapterService
# @see: router.py - /api/chapters endpoints

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from eduportal.subjects.models import RefSummary


class ChapterCreate(BaseModel):
    """Request model for creating a chapter. order is assigned by the server."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    subject: str = Field(..., description="Subject id")
    learningOutcomes: List[str] = Field(default_factory=list)
    isActive: bool = True


class ChapterUpdate(BaseModel):
    """Editable chapter fields. subject, order and createdBy are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    learningOutcomes: Optional[List[str]] = None
    isActive: Optional[bool] = None


class ChapterOrder(BaseModel):
    id: str
    order: int = Field(..., ge=1)


class ReorderRequest(BaseModel):
    """Body of POST /api/chapters/reorder."""

    subjectId: str
    chapterOrders: List[ChapterOrder] = Field(..., min_length=1)


class ChapterResponse(BaseModel):
    id: str
    title: str
    description: str = ""
    subject: Union[RefSummary, str, None] = None
    order: int
    learningOutcomes: List[str] = Field(default_factory=list)
    isActive: bool = True
    createdBy: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
