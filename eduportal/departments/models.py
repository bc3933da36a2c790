# models.py
# Pydantic schemas for departments

# @see: service.py - DepartmentService
# @see: router.py - /api/departments endpoints

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DepartmentCreate(BaseModel):
    """Request model for creating a department."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50, description="Unique department name")
    code: str = Field(..., min_length=1, max_length=10, description="Unique short code")
    description: str = Field(..., min_length=1, max_length=500)


class DepartmentUpdate(BaseModel):
    """Request model for updating a department; omitted fields are kept."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    code: Optional[str] = Field(None, min_length=1, max_length=10)
    description: Optional[str] = Field(None, min_length=1, max_length=500)


class DepartmentResponse(BaseModel):
    id: str
    name: str
    code: str
    description: str = ""
    createdBy: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "k2Jd9sQe0a",
                "name": "Computer Science",
                "code": "CS01",
                "description": "Department of Computer Science",
                "createdBy": "u-admin-1",
                "createdAt": "2026-01-10T09:30:00+00:00",
            }
        }
    )


class DepartmentSummary(BaseModel):
    """Public listing entry."""

    id: str
    name: str
    code: str
