#!/usr/bin/env python3
"""
Startup script for the workflow engine API server
"""

import sys
from pathlib import Path

import uvicorn

if __name__ == "__main__":
    # Add the project root to Python path so we can import api modules
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

    from core.config import settings

    print(f"Starting workflow engine API server on {settings.api_host}:{settings.api_port}")
    print(f"API documentation available at http://localhost:{settings.api_port}/docs")

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
