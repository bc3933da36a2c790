# router.py
# FastAPI routers for sign-in and user management

# auth_router: /api/auth/login (rate limited) and /api/auth/me
# router:      /api/users CRUD plus PATCH /api/users/{id}/role (master only)

# @see: service.py - UserService business rules
# @see: ../auth.py - Identity dependencies and authenticate()

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from eduportal import config
from eduportal.auth import authenticate, get_current_user, require_manager, require_master
from eduportal.errors import NotFound
from eduportal.limiter import limiter
from eduportal.models import CurrentUser, Role, UserPublic
from eduportal.store import PortalStores, get_stores

from .models import LoginRequest, LoginResponse, RoleChange, UserCreate, UserUpdate
from .service import UserService


router = APIRouter(prefix="/api/users", tags=["users"])
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_user_service(stores: PortalStores = Depends(get_stores)) -> UserService:
    """Dependency for getting UserService instance."""
    return UserService(stores)


# ========== AUTH ==========


@auth_router.post("/login", response_model=LoginResponse)
@limiter.limit(config.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    stores: PortalStores = Depends(get_stores),
):
    """Exchange email and password for a bearer token."""
    token, record = authenticate(payload.email, payload.password, stores)
    return LoginResponse(token=token, user=UserPublic.from_record(record))


@auth_router.get("/me", response_model=UserPublic)
async def get_me(
    actor: CurrentUser = Depends(get_current_user),
    stores: PortalStores = Depends(get_stores),
):
    """Current user's profile, read from the live record."""
    record = stores.users.get(actor.id)
    if record is None:
        raise NotFound("User not found")
    return UserPublic.from_record(record)


# ========== USERS ==========


@router.get("", response_model=List[UserPublic])
async def list_users(
    role: Optional[Role] = Query(None, description="Filter by role"),
    actor: CurrentUser = Depends(require_manager),
    service: UserService = Depends(get_user_service),
):
    """Users visible to the caller, newest first."""
    return [UserPublic.from_record(record) for record in service.list(actor, role)]


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    actor: CurrentUser = Depends(require_manager),
    service: UserService = Depends(get_user_service),
):
    return UserPublic.from_record(service.create(actor, payload))


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: str,
    actor: CurrentUser = Depends(require_manager),
    service: UserService = Depends(get_user_service),
):
    return UserPublic.from_record(service.get(actor, user_id))


@router.put("/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    actor: CurrentUser = Depends(require_manager),
    service: UserService = Depends(get_user_service),
):
    """Update name, email or password. Roles change only via PATCH .../role."""
    return UserPublic.from_record(service.update(actor, user_id, payload))


@router.patch("/{user_id}/role", response_model=UserPublic)
async def change_user_role(
    user_id: str,
    payload: RoleChange,
    actor: CurrentUser = Depends(require_master),
    service: UserService = Depends(get_user_service),
):
    return UserPublic.from_record(service.change_role(actor, user_id, payload.role))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    actor: CurrentUser = Depends(require_manager),
    service: UserService = Depends(get_user_service),
):
    service.delete(actor, user_id)
    return {"message": "User deleted successfully"}
