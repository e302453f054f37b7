"""Bot handlers module."""

from .admin import router as admin_router
from .duels import router as duels_router
from .team import router as team_router

__all__ = ["admin_router", "duels_router", "team_router"]
