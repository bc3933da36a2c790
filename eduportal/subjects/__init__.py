# subjects/__init__.py
# Package exports for subject management

from .router import router as subjects_router
from .service import SubjectService

__all__ = [
    "SubjectService",
    "subjects_router",
]
