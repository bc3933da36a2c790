# models.py
# Pydantic schemas for user management and sign-in

# Request models forbid unknown fields, so role and createdBy can only be
# written through the dedicated paths (create, master-only role change).

# @see: service.py - UserService consumes these models
# @see: router.py - /api/users and /api/auth endpoints

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eduportal.models import Role, UserPublic


class UserCreate(BaseModel):
    """Request model for creating a user."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr = Field(..., description="Login email, unique")
    password: str = Field(..., min_length=6, max_length=128, description="Initial password")
    role: Role = Field(Role.TEACHER, description="admin or teacher")


class UserUpdate(BaseModel):
    """Request model for editing profile fields. Role is not accepted here."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)


class RoleChange(BaseModel):
    """Request model for the master-only role change endpoint."""

    model_config = ConfigDict(extra="forbid")

    role: Role


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str
    user: UserPublic
