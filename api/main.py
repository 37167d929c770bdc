"""
Main FastAPI application for the workflow engine.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import (
    workflows_router,
    executions_router,
    steps_router,
    system_router
)
from api.dependencies import get_registry
from api.middleware import add_logging_middleware
from core.logging_config import get_logger

logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Workflow Engine API",
    description="Store workflow graphs, run them in-process and export them as standalone Python modules.",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "Workflows",
            "description": "Store, validate, execute and compile workflow graphs"
        },
        {
            "name": "Executions",
            "description": "Run history and per-node execution logs"
        },
        {
            "name": "Steps",
            "description": "Registered action types"
        },
        {
            "name": "System",
            "description": "Health checks"
        }
    ]
)

@app.on_event("startup")
async def startup_event():
    """Initialize services when the server starts"""
    logger.info("🚀 Starting workflow engine API server...")

    # Build and validate the step registry before the first request
    registry = get_registry()
    logger.info(f"📚 Steps: {', '.join(registry.action_types())}")

    logger.info("🎉 Workflow engine API server startup complete!")

@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup services when the server shuts down"""
    logger.info("👋 Workflow engine API server shutdown complete!")

# Add logging middleware first (for request tracking)
add_logging_middleware(app)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all route modules
app.include_router(workflows_router)
app.include_router(executions_router)
app.include_router(steps_router)
app.include_router(system_router)

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Workflow Engine API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }
