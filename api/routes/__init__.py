"""
API Routes Package

This package contains all the route modules organized by functionality.
"""

from api.routes.workflows import workflows_router
from api.routes.executions import executions_router
from api.routes.steps import router as steps_router
from api.routes.system import router as system_router

__all__ = [
    "workflows_router",
    "executions_router",
    "steps_router",
    "system_router"
]
