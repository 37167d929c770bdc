"""
Workflow routes package.
"""

from api.routes.workflows.definitions import router as definitions_router
from api.routes.workflows.execution import router as execution_router

from fastapi import APIRouter

workflows_router = APIRouter(prefix="/workflows", tags=["Workflows"])

workflows_router.include_router(definitions_router)
workflows_router.include_router(execution_router)

__all__ = [
    "workflows_router",
    "definitions_router",
    "execution_router"
]
