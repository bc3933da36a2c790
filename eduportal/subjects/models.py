# models.py
# Pydantic schemas for subjects

# department and teachers are stored as ids. List/get responses replace
# them with {"id", "name", ...} objects when population is requested, so
# the response fields accept either shape.

# @see: service.py - SubjectService
# @see: router.py - /api/subjects endpoints

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SubjectCreate(BaseModel):
    """Request model for creating a subject."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=20, description="Unique within the department")
    description: str = Field(..., min_length=1, max_length=500)
    department: str = Field(..., description="Department id")
    semester: int = Field(..., ge=1, le=8)
    year: int = Field(..., ge=1, le=4)
    teachers: List[str] = Field(default_factory=list, description="Teacher user ids")


class SubjectUpdate(BaseModel):
    """Request model for updating a subject; omitted fields are kept."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    department: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=8)
    year: Optional[int] = Field(None, ge=1, le=4)
    teachers: Optional[List[str]] = None


class RefSummary(BaseModel):
    """Populated reference: id plus display fields."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None


class SubjectResponse(BaseModel):
    id: str
    name: str
    code: str
    description: str = ""
    department: Union[RefSummary, str, None] = None
    semester: int
    year: int
    teachers: List[Union[RefSummary, str]] = Field(default_factory=list)
    createdBy: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class SubjectSummary(BaseModel):
    """Public listing entry."""

    id: str
    name: str
    code: str
    department: Optional[str] = None
    semester: int
    year: int
