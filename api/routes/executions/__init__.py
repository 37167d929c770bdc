"""
Execution history routes.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from services.executor import ExecutionLogStore
from api.dependencies import get_log_store
from api.models import NodeLogResponse, RunResponse

executions_router = APIRouter(prefix="/executions", tags=["Executions"])


@executions_router.get("/{run_id}", response_model=RunResponse)
async def get_execution(run_id: str, log_store: ExecutionLogStore = Depends(get_log_store)):
    """Get a workflow run by ID"""
    run = log_store.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunResponse(**run.to_dict())


@executions_router.get("/{run_id}/logs", response_model=List[NodeLogResponse])
async def get_execution_logs(run_id: str, log_store: ExecutionLogStore = Depends(get_log_store)):
    """Per-node log entries of a run, in the order nodes started"""
    if log_store.get_run(run_id) is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return [NodeLogResponse(**entry.to_dict()) for entry in log_store.get_logs(run_id)]


__all__ = ["executions_router"]
