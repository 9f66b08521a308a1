"""
API Routes Module
"""
from .health import router as health_router
from .facts import router as facts_router
from .mart import router as mart_router
from .reports import router as reports_router
from .analytics import router as analytics_router

__all__ = [
    "health_router",
    "facts_router",
    "mart_router",
    "reports_router",
    "analytics_router",
]
