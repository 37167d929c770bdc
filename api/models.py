"""
API models for the workflow engine
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.graph import Edge, Node, WorkflowGraph

# ============================================================================
# Workflow Models
# ============================================================================

class WorkflowDocument(BaseModel):
    """A workflow graph as stored and served by the API"""
    name: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    def to_graph(self) -> WorkflowGraph:
        return WorkflowGraph(nodes=self.nodes, edges=self.edges)


class WorkflowRecord(BaseModel):
    workflow_id: str
    name: Optional[str] = None
    graph: WorkflowGraph
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

# ============================================================================
# Execution Models
# ============================================================================

class ExecuteRequest(BaseModel):
    trigger_input: Optional[Any] = Field(default=None, description="Payload handed to every trigger node")
    credentials: Optional[Dict[str, Dict[str, str]]] = Field(
        default=None,
        description="Per-integration secret bundles; when given they replace the system credentials for this run"
    )


class NodeResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class ExecuteResponse(BaseModel):
    run_id: str
    status: str
    success: bool
    output: Optional[Any] = None
    error: Optional[str] = None
    results: Dict[str, NodeResult] = Field(default_factory=dict)


class RunResponse(BaseModel):
    run_id: str
    workflow_id: Optional[str] = None
    status: str
    started_at: str
    finished_at: Optional[str] = None
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None


class NodeLogResponse(BaseModel):
    log_id: str
    node_id: str
    node_name: str
    node_type: str
    status: str
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None
    started_at: str
    completed_at: Optional[str] = None
    duration_ms: Optional[float] = None

# ============================================================================
# Code Generation Models
# ============================================================================

class CodeResponse(BaseModel):
    workflow_id: str
    function_name: str
    code: str
    variables: Dict[str, str] = Field(default_factory=dict)
    imports: List[str] = Field(default_factory=list)
    report: Dict[str, Any] = Field(default_factory=dict)
