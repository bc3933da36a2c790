# users/__init__.py
# Package exports for user management and sign-in

from .router import auth_router, router as users_router
from .service import UserService

__all__ = [
    "UserService",
    "auth_router",
    "users_router",
]
