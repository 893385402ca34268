"""
app/api/routers package marker.
"""

from app.api.routers.audit import router as audit_router
from app.api.routers.reports import router as reports_router
from app.api.routers.upload import router as upload_router

__all__ = [
    "audit_router",
    "reports_router",
    "upload_router",
]
