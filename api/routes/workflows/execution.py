"""
Workflow execution route.
"""

from fastapi import APIRouter, Depends, HTTPException

from core.errors import GraphValidationError, NoTriggerNodesError
from core.logging_config import get_logger
from services.executor import (
    ExecutionLogStore,
    StaticCredentialResolver,
    WorkflowExecutor,
    create_credential_resolver,
)
from services.steps import StepRegistry
from api.dependencies import get_log_store, get_registry, get_workflow_store
from api.models import ExecuteRequest, ExecuteResponse, NodeResult
from api.routes.workflows.definitions import load_workflow
from api.store import WorkflowStore

logger = get_logger(__name__)

router = APIRouter()


@router.post("/{workflow_id}/execute", response_model=ExecuteResponse)
async def execute_workflow(
    workflow_id: str,
    request: ExecuteRequest,
    store: WorkflowStore = Depends(get_workflow_store),
    registry: StepRegistry = Depends(get_registry),
    log_store: ExecutionLogStore = Depends(get_log_store),
) -> ExecuteResponse:
    """
    Run a stored workflow with a trigger payload.

    Graph defects answer 422 with the validation issues; step failures are
    part of a normal 200 response.
    """
    record = await load_workflow(workflow_id, store)

    if request.credentials is not None:
        resolver = StaticCredentialResolver(request.credentials)
    else:
        resolver = create_credential_resolver()
    executor = WorkflowExecutor(registry=registry, credential_resolver=resolver, log_store=log_store)

    try:
        result = await executor.execute(record.graph, request.trigger_input, workflow_id=workflow_id)
    except NoTriggerNodesError as e:
        raise HTTPException(status_code=422, detail={"code": e.code, "message": str(e)})
    except GraphValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "issues": [issue.to_dict() for issue in e.issues]},
        )

    return ExecuteResponse(
        run_id=result.run_id,
        status=result.status.value,
        success=result.success,
        output=result.output,
        error=result.error,
        results={
            node_id: NodeResult(success=step.success, data=step.data, error=step.error)
            for node_id, step in result.results.items()
        },
    )
