"""API routes module for the Nexus HR service.

This module exports all API routers for registration in main.py.
"""

from src.api.routes.health import router as health_router
from src.api.routes.talent_search import router as talent_search_router


__all__ = [
    "health_router",
    "talent_search_router",
]
