"""
HTTP routers.
"""

from .committee_inquiry import router as committee_inquiry_router
from .project_inquiry import router as project_inquiry_router
from .files import router as files_router

__all__ = ["committee_inquiry_router", "project_inquiry_router", "files_router"]
