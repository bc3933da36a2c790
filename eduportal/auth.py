"""
============================================================================
FILE: auth.py
LOCATION: eduportal/auth.py
============================================================================

PURPOSE:
    Identity context: turns a bearer credential into the current actor,
    and signs users in with email and password.

ROLE IN PROJECT:
    Provides FastAPI dependencies for protected endpoints. The role is
    always read from the live user document, never from token claims, so
    a role change takes effect on the next request.

KEY COMPONENTS:
    - verify_token(): Verify a Firebase (or mock) ID token
    - get_current_user(): Dependency returning CurrentUser or raising 401
    - require_role(): Factory for role-checking dependencies
    - require_manager: Admin or master-admin
    - get_upload_context(): Reads the x-content-upload hint header
    - authenticate(): Email/password sign-in returning (token, user record)

DEPENDENCIES:
    - External: fastapi, requests, firebase_admin (via config.get_auth)
    - Internal: config.py, store.py, security.py, errors.py

USAGE:
    from eduportal.auth import get_current_user, require_manager

    @router.get("/api/users")
    async def list_users(actor: CurrentUser = Depends(require_manager)):
        ...
============================================================================
"""

import typing

import requests
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from eduportal import config
from eduportal.errors import Denied, Unauthenticated, Unexpected
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser, Role
from eduportal.security import verify_password
from eduportal.store import PortalStores, get_stores


logger = get_logger("auth")

# auto_error=False so a missing header becomes our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)

FIREBASE_SIGN_IN_URL = (
    "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
)
SIGN_IN_TIMEOUT_SECONDS = 10


def verify_token(token: str) -> dict:
    """
    Verify an ID token and return decoded claims.

    Args:
        token: Firebase ID token (or mock token in mock mode)

    Returns:
        dict: Decoded claims containing at least uid

    Raises:
        Unauthenticated: If the token is malformed, expired or revoked
    """
    auth_client = config.get_auth()
    try:
        # Allow 10 seconds of clock skew to prevent "Token used too early" errors
        return auth_client.verify_id_token(token, clock_skew_seconds=10)
    except (ValueError, auth_client.InvalidIdTokenError) as exc:
        logger.debug("Rejected bearer token: %s", exc)
        raise Unauthenticated("Invalid or expired session") from exc


def resolve_identity(token: typing.Optional[str], stores: PortalStores) -> CurrentUser:
    """Resolve a bearer token to the actor described by the live user record."""
    if not token:
        raise Unauthenticated("Not authenticated")

    claims = verify_token(token)
    uid = claims.get("uid")
    if not uid:
        raise Unauthenticated("Token missing uid claim")

    record = stores.users.get(uid)
    if record is None:
        raise Unauthenticated("User not found")

    try:
        role = Role(record.get("role"))
    except ValueError:
        raise Denied("User has no valid role")

    return CurrentUser(
        id=uid,
        email=record.get("email", ""),
        name=record.get("name", ""),
        role=role,
    )


async def get_current_user(
    credentials: typing.Optional[HTTPAuthorizationCredentials] = Depends(security),
    stores: PortalStores = Depends(get_stores),
) -> CurrentUser:
    """
    Extract and verify the current user from the Authorization header.

    Usage:
        @router.get("/protected")
        async def protected_route(actor: CurrentUser = Depends(get_current_user)):
            return {"message": f"Hello {actor.name}"}
    """
    token = credentials.credentials if credentials else None
    return resolve_identity(token, stores)


def require_role(*allowed_roles: Role):
    async def role_checker(
        actor: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if actor.role not in allowed_roles:
            raise Denied("Insufficient role for this action")
        return actor
    return role_checker


require_manager = require_role(Role.MASTER_ADMIN, Role.ADMIN)
require_master = require_role(Role.MASTER_ADMIN)


def get_upload_context(
    x_content_upload: typing.Optional[str] = Header(None),
) -> bool:
    """True when the client flags the request as part of a content upload flow."""
    return (x_content_upload or "").strip().lower() == "true"


def _firebase_sign_in(email: str, password: str) -> str:
    """Exchange email/password for a Firebase ID token via Identity Toolkit."""
    if not config.FIREBASE_WEB_API_KEY:
        raise Unexpected("Sign-in is not configured")
    try:
        response = requests.post(
            FIREBASE_SIGN_IN_URL,
            params={"key": config.FIREBASE_WEB_API_KEY},
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=SIGN_IN_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        logger.error("Identity provider unreachable: %s", exc)
        raise Unexpected("Identity provider unavailable") from exc

    if response.status_code == 400:
        raise Unauthenticated("Invalid email or password")
    if not response.ok:
        logger.error("Identity provider returned %s", response.status_code)
        raise Unexpected("Identity provider unavailable")
    return response.json()["idToken"]


def authenticate(email: str, password: str, stores: PortalStores) -> tuple[str, dict]:
    """
    Sign a user in.

    Args:
        email: Account email (case-insensitive)
        password: Plain-text password
        stores: Portal stores

    Returns:
        tuple: (bearer token, user record)

    Raises:
        Unauthenticated: Unknown email or wrong password
    """
    email = email.strip().lower()
    if config.USE_MOCK_DB:
        record = stores.users.find_one([("email", "==", email)])
        if record is None or not verify_password(password, record.get("passwordHash")):
            logger.info("Failed sign-in for %s", email)
            raise Unauthenticated("Invalid email or password")
        token = config.get_auth().mint_id_token(record["id"], record["role"])
        return token, record

    token = _firebase_sign_in(email, password)
    record = stores.users.get(verify_token(token).get("uid"))
    if record is None:
        raise Unauthenticated("Invalid email or password")
    return token, record
