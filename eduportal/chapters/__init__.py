# chapters/__init__.py
# Package exports for chapter management

from .router import router as chapters_router
from .service import ChapterService

__all__ = [
    "ChapterService",
    "chapters_router",
]
