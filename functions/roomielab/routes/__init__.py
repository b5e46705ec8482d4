"""
Resource routers mounted by ``roomielab.app.create_app``.
"""

from roomielab.routes.auth import router as auth_router
from roomielab.routes.designs import router as designs_router
from roomielab.routes.favorites import router as favorites_router
from roomielab.routes.furniture import router as furniture_router
from roomielab.routes.projects import router as projects_router
from roomielab.routes.users import router as users_router

__all__ = [
    "auth_router",
    "designs_router",
    "favorites_router",
    "furniture_router",
    "projects_router",
    "users_router",
]
