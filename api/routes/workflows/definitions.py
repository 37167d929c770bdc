"""
Workflow definition routes: store, fetch, validate and compile graphs.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from core.logging_config import get_logger
from core.validator import validate_graph
from services.codegen import WorkflowCompiler
from services.steps import StepRegistry
from api.dependencies import get_compiler, get_registry, get_workflow_store
from api.models import CodeResponse, WorkflowDocument, WorkflowRecord
from api.store import WorkflowStore

logger = get_logger(__name__)

router = APIRouter()


async def load_workflow(workflow_id: str, store: WorkflowStore) -> WorkflowRecord:
    """Fetch a stored workflow or answer 404"""
    record = await store.get(workflow_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Workflow {workflow_id} not found")
    return record


@router.put("/{workflow_id}")
async def put_workflow(
    workflow_id: str,
    document: WorkflowDocument,
    store: WorkflowStore = Depends(get_workflow_store),
) -> Dict[str, Any]:
    """Store a workflow graph, replacing any previous version"""
    record = await store.put(workflow_id, document.to_graph(), name=document.name)
    return record.model_dump(mode="json")


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
) -> Dict[str, Any]:
    """Fetch a stored workflow graph"""
    record = await load_workflow(workflow_id, store)
    return record.model_dump(mode="json")


@router.post("/{workflow_id}/validate")
async def validate_workflow(
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
    registry: StepRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """
    Validate a stored graph.

    Always answers 200; the report's ``ok`` flag says whether the graph
    can run.
    """
    record = await load_workflow(workflow_id, store)
    report = validate_graph(record.graph, registry)
    logger.info(
        f"🔍 Validated workflow {workflow_id}: "
        f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
    )
    return report.to_dict()


@router.get("/{workflow_id}/code", response_model=CodeResponse)
async def get_workflow_code(
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
    compiler: WorkflowCompiler = Depends(get_compiler),
) -> CodeResponse:
    """Generated Python source for a stored graph"""
    record = await load_workflow(workflow_id, store)
    if record.name:
        compiler.options.module_header = f"Workflow: {record.name}"
    generated = compiler.compile(record.graph)
    return CodeResponse(
        workflow_id=workflow_id,
        function_name=generated.function_name,
        code=generated.code,
        variables=generated.variables,
        imports=generated.imports,
        report=generated.report.to_dict(),
    )
