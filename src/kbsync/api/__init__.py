"""HTTP surface: FastAPI router for search, sync and maintenance."""

from .app import create_app
from .router import (
    get_engine,
    get_organization_id,
    get_retrieval_service,
    get_sync_service,
    router,
)

__all__ = [
    "create_app",
    "get_engine",
    "get_organization_id",
    "get_retrieval_service",
    "get_sync_service",
    "router",
]
