"""
============================================================================
FILE: validators.py
LOCATION: eduportal/validators.py
============================================================================

PURPOSE:
    Validation helpers shared by the resource services.

KEY COMPONENTS:
    - validate_id: Reject malformed document ids before any lookup
    - validate_ids: Same for lists of ids
    - validate_role_assignment: Which roles an actor may grant

USAGE:
    from eduportal.validators import validate_id
============================================================================
"""

import re
import typing

from eduportal.errors import Denied, Invalid
from eduportal.models import ASSIGNABLE_ROLES, CurrentUser, Role


_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_id(value: typing.Any, label: str = "id") -> str:
    """Validate a document id.

    Args:
        value: Candidate id.
        label: Field name used in the error message.

    Returns:
        str: The id unchanged.

    Raises:
        Invalid: If the id is empty or contains unsupported characters.
    """
    if not isinstance(value, str) or not _ID_PATTERN.match(value):
        raise Invalid(f"Invalid {label}", details=f"{label} must be a document id")
    return value


def validate_ids(values: typing.Iterable[typing.Any], label: str = "id") -> list[str]:
    """Validate a list of document ids, dropping duplicates but keeping order."""
    return list(dict.fromkeys(validate_id(value, label) for value in values))


def validate_role_assignment(actor: CurrentUser, role: Role) -> None:
    """Check that the actor may give a user the requested role.

    Args:
        actor: The user performing the write.
        role: Role being granted.

    Raises:
        Denied: For master-admin, or an admin granting anything but teacher.
    """
    if role not in ASSIGNABLE_ROLES:
        raise Denied("Cannot assign the master-admin role")

    if actor.role is Role.MASTER_ADMIN:
        return
    if actor.role is Role.ADMIN:
        if role is not Role.TEACHER:
            raise Denied("Only the master admin can create admin accounts")
        return
    raise Denied("Not authorized to manage users")
