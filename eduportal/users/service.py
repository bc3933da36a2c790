# service.py
# Business logic for user accounts

# Users live in the "users" collection keyed by their auth uid. Every
# account also exists in the identity provider (Firebase Auth, or MockAuth
# in mock mode); the Firestore record carries the role, the bcrypt hash and
# createdBy, which is what the scope rules look at.

# @see: access.py - ScopeResolver.users()
# @see: validators.py - validate_role_assignment()
# @note: master-admin accounts are read-only through every path here

from typing import List, Optional

from eduportal import config
from eduportal.access import ScopeResolver, ensure_visible
from eduportal.errors import Conflict, Denied, Invalid
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser, Role
from eduportal.security import hash_password
from eduportal.store import PortalStores, utc_now
from eduportal.validators import validate_id, validate_role_assignment

from .models import UserCreate, UserUpdate


logger = get_logger("users")


class UserService:
    """User CRUD with createdBy scoping for admins."""

    def __init__(self, stores: PortalStores, auth_client=None):
        self.stores = stores
        self.users = stores.users
        self.auth = auth_client or config.get_auth()
        self.resolver = ScopeResolver(stores)

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            record["id"] != exclude_id
            for record in self.users.find([("email", "==", email)])
        )

    def _sync_account(self, uid: str, **fields) -> None:
        try:
            self.auth.update_user(uid, **fields)
        except self.auth.UserNotFoundError:
            logger.warning("No identity account for user %s; profile updated in store only", uid)

    def _load_editable(self, actor: CurrentUser, user_id: str) -> dict:
        validate_id(user_id, "user id")
        record = ensure_visible(self.resolver.users(actor), self.users.get(user_id), "User")
        if record.get("role") == Role.MASTER_ADMIN.value:
            raise Denied("Master admin accounts cannot be modified")
        return record

    def list(self, actor: CurrentUser, role: Optional[Role] = None) -> List[dict]:
        filters = self.resolver.users(actor).filters()
        if role is not None:
            filters.append(("role", "==", role.value))
        return self.users.find(filters, order_by=["-createdAt"])

    def get(self, actor: CurrentUser, user_id: str) -> dict:
        validate_id(user_id, "user id")
        return ensure_visible(self.resolver.users(actor), self.users.get(user_id), "User")

    def create(self, actor: CurrentUser, data: UserCreate) -> dict:
        """
        Create an account on behalf of an admin or the master admin.

        Raises:
            Denied: master-admin role requested, or admin creating an admin
            Conflict: Email already registered
        """
        validate_role_assignment(actor, data.role)

        email = data.email.lower()
        if self._email_taken(email):
            raise Conflict("User with this email already exists")

        try:
            account = self.auth.create_user(
                email=email,
                password=data.password,
                display_name=data.name,
            )
        except self.auth.EmailAlreadyExistsError as exc:
            raise Conflict("User with this email already exists") from exc

        now = utc_now()
        try:
            record = self.users.create(
                {
                    "name": data.name.strip(),
                    "email": email,
                    "passwordHash": hash_password(data.password),
                    "role": data.role.value,
                    "createdBy": actor.id,
                    "createdAt": now,
                    "updatedAt": now,
                },
                doc_id=account.uid,
            )
        except Exception:
            self.auth.delete_user(account.uid)
            raise

        logger.info("User %s (%s) created by %s", record["id"], data.role.value, actor.id)
        return record

    def update(self, actor: CurrentUser, user_id: str, data: UserUpdate) -> dict:
        record = self._load_editable(actor, user_id)

        fields = {}
        account_fields = {}
        if data.name is not None:
            fields["name"] = data.name.strip()
            account_fields["display_name"] = fields["name"]
        if data.email is not None:
            email = data.email.lower()
            if email != record.get("email") and self._email_taken(email, exclude_id=user_id):
                raise Conflict("User with this email already exists")
            fields["email"] = email
            account_fields["email"] = email
        if data.password is not None:
            fields["passwordHash"] = hash_password(data.password)
            account_fields["password"] = data.password

        if not fields:
            return record

        if account_fields:
            self._sync_account(user_id, **account_fields)
        fields["updatedAt"] = utc_now()
        return self.users.update(user_id, fields)

    def change_role(self, actor: CurrentUser, user_id: str, role: Role) -> dict:
        """Master-only role change between admin and teacher."""
        if actor.role is not Role.MASTER_ADMIN:
            raise Denied("Only the master admin can change roles")
        validate_role_assignment(actor, role)
        record = self._load_editable(actor, user_id)
        if record.get("role") == role.value:
            return record
        logger.info("User %s role %s -> %s by %s", user_id, record.get("role"), role.value, actor.id)
        return self.users.update(user_id, {"role": role.value, "updatedAt": utc_now()})

    def delete(self, actor: CurrentUser, user_id: str) -> None:
        if user_id == actor.id:
            raise Invalid("Cannot delete your own account")
        self._load_editable(actor, user_id)

        self.users.delete(user_id)
        try:
            self.auth.delete_user(user_id)
        except self.auth.UserNotFoundError:
            logger.warning("No identity account to delete for user %s", user_id)
        logger.info("User %s deleted by %s", user_id, actor.id)
