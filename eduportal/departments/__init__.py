# departments/__init__.py
# Package exports for department management

from .router import router as departments_router
from .service import DepartmentService

__all__ = [
    "DepartmentService",
    "departments_router",
]
