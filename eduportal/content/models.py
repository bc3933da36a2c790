# models.py
# Pydantic schemas for content items

# A content item is one uploaded file (notes, video, assignment, question
# or answer paper) filed under a department and subject, optionally a
# chapter. fileUrl and publicId come from POST /api/upload.

# @see: service.py - ContentService
# @see: router.py - /api/content endpoints

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from eduportal.models import ContentType
from eduportal.subjects.models import RefSummary


class ContentCreate(BaseModel):
    """Request model for creating a content item."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    department: str = Field(..., description="Department id; must match the subject's")
    subject: str = Field(..., description="Subject id")
    chapter: Optional[str] = Field(None, description="Chapter id under the subject")
    semester: Optional[int] = Field(None, ge=1, le=8)
    year: Optional[int] = Field(None, ge=1, le=4)
    contentType: ContentType
    fileUrl: str = Field(..., min_length=1)
    publicId: Optional[str] = Field(None, description="Storage path returned by the upload")


class ContentUpdate(BaseModel):
    """
    Editable content fields. Changing subject re-derives department;
    the chapter is kept only if it still belongs to the subject.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    subject: Optional[str] = None
    chapter: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=8)
    year: Optional[int] = Field(None, ge=1, le=4)
    contentType: Optional[ContentType] = None
    fileUrl: Optional[str] = Field(None, min_length=1)
    publicId: Optional[str] = None


class ContentResponse(BaseModel):
    id: str
    title: str
    description: str = ""
    department: Union[RefSummary, str, None] = None
    subject: Union[RefSummary, str, None] = None
    chapter: Union[RefSummary, str, None] = None
    semester: Optional[int] = None
    year: Optional[int] = None
    contentType: ContentType
    fileUrl: str
    publicId: Optional[str] = None
    createdBy: Union[RefSummary, str, None] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "c0ffee12",
                "title": "Week 1 lecture notes",
                "description": "Introduction and course outline",
                "department": {"id": "d1", "name": "Computer Science", "code": "CS"},
                "subject": {"id": "s1", "name": "Algorithms", "code": "CS201"},
                "chapter": None,
                "semester": 3,
                "year": 2,
                "contentType": "notes",
                "fileUrl": "/uploads/notes/u7/1718000000000-ab12cd.pdf",
                "publicId": "notes/u7/1718000000000-ab12cd.pdf",
                "createdBy": {"id": "u7", "name": "A. Teacher", "email": "teacher@school.edu"},
                "createdAt": "2024-06-10T08:00:00+00:00",
            }
        }
    )


class PublicContent(BaseModel):
    """Unauthenticated listing entry."""

    id: str
    title: str
    description: str = ""
    contentType: ContentType
    fileUrl: str
    subject: Union[RefSummary, str, None] = None
    createdAt: Optional[str] = None
