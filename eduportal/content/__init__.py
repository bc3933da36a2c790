# content/__init__.py
# Package exports for content management

from .router import router as content_router
from .service import ContentService

__all__ = [
    "ContentService",
    "content_router",
]
