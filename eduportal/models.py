"""
============================================================================
FILE: models.py
LOCATION: eduportal/models.py
============================================================================

PURPOSE:
    Shared domain types: the closed Role variant, the content type
    vocabulary and the authenticated actor passed to every resolver.

ROLE IN PROJECT:
    Imported by auth.py (identity), access.py (scope and ownership rules)
    and every resource package.

KEY COMPONENTS:
    - Role: master-admin, admin, teacher
    - ContentType: notes, video, assignment, question-paper, answer-paper
    - CurrentUser: The actor resolved from a bearer credential
    - UserPublic: User document as returned over HTTP

USAGE:
    from eduportal.models import CurrentUser, Role
============================================================================
"""

import enum
import typing

import pydantic


class Role(str, enum.Enum):
    MASTER_ADMIN = "master-admin"
    ADMIN = "admin"
    TEACHER = "teacher"


# Roles that can be granted through any write path
ASSIGNABLE_ROLES = (Role.ADMIN, Role.TEACHER)


class ContentType(str, enum.Enum):
    NOTES = "notes"
    VIDEO = "video"
    ASSIGNMENT = "assignment"
    QUESTION_PAPER = "question-paper"
    ANSWER_PAPER = "answer-paper"


class CurrentUser(pydantic.BaseModel):
    """The authenticated actor for one request."""

    model_config = pydantic.ConfigDict(frozen=True)

    id: str = pydantic.Field(..., description="User document id")
    email: str = pydantic.Field(..., description="User email address")
    name: str = pydantic.Field("", description="Display name")
    role: Role = pydantic.Field(..., description="Live role from the user record")

    @property
    def is_master(self) -> bool:
        return self.role is Role.MASTER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role is Role.TEACHER


class UserPublic(pydantic.BaseModel):
    """User document without credentials."""

    id: str
    name: str
    email: str
    role: Role
    createdBy: typing.Optional[str] = None
    createdAt: typing.Optional[str] = None
    updatedAt: typing.Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "UserPublic":
        return cls(
            id=record["id"],
            name=record.get("name", ""),
            email=record.get("email", ""),
            role=record["role"],
            createdBy=record.get("createdBy"),
            createdAt=record.get("createdAt"),
            updatedAt=record.get("updatedAt"),
        )
