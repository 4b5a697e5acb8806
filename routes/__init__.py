"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.imports import router as imports_router
from routes.catalogs import router as catalogs_router

__all__ = [
    "imports_router",
    "catalogs_router",
]
