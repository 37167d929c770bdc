"""
Workflow graph persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.graph import WorkflowGraph
from core.logging_config import get_logger
from api.models import WorkflowRecord

logger = get_logger(__name__)


class WorkflowStore(ABC):
    """Record store for workflow graphs keyed by workflow id"""

    @abstractmethod
    async def get(self, workflow_id: str) -> Optional[WorkflowRecord]:
        pass

    @abstractmethod
    async def put(self, workflow_id: str, graph: WorkflowGraph, name: Optional[str] = None) -> WorkflowRecord:
        pass

    @abstractmethod
    async def delete(self, workflow_id: str) -> bool:
        pass

    @abstractmethod
    async def list_ids(self) -> List[str]:
        pass


class InMemoryWorkflowStore(WorkflowStore):
    """In-memory workflow store (replace with database in production)"""

    def __init__(self):
        self.records: Dict[str, WorkflowRecord] = {}

    async def get(self, workflow_id: str) -> Optional[WorkflowRecord]:
        return self.records.get(workflow_id)

    async def put(self, workflow_id: str, graph: WorkflowGraph, name: Optional[str] = None) -> WorkflowRecord:
        """Store a graph, replacing whatever was there"""
        record = WorkflowRecord(
            workflow_id=workflow_id,
            name=name,
            graph=graph,
            updated_at=datetime.now(timezone.utc),
        )
        self.records[workflow_id] = record
        logger.info(f"💾 Stored workflow {workflow_id} ({len(graph.nodes)} nodes, {len(graph.edges)} edges)")
        return record

    async def delete(self, workflow_id: str) -> bool:
        return self.records.pop(workflow_id, None) is not None

    async def list_ids(self) -> List[str]:
        return list(self.records)
