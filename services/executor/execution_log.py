"""
Append-only execution log for workflow runs.

One NodeExecutionLog entry is opened when a node starts running and closed
when it settles. The store is in memory; a database-backed store only has
to provide the same async methods.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)


class NodeStatus(str, Enum):
    """Node execution status"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class RunStatus(str, Enum):
    """Workflow run status"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NodeExecutionLog:
    """One node's passage through running into success or error"""
    log_id: str
    run_id: str
    node_id: str
    node_name: str
    node_type: str
    status: NodeStatus
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat() if self.completed_at else None
        return data


@dataclass
class WorkflowRun:
    """Represents a workflow execution run"""
    run_id: str
    workflow_id: Optional[str]
    status: RunStatus
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "input": self.input,
            "output": self.output,
            "error": self.error,
        }


class ExecutionLogStore:
    """In-memory execution log (replace with database in production)"""

    def __init__(self):
        self.runs: Dict[str, WorkflowRun] = {}
        self.entries: Dict[str, List[NodeExecutionLog]] = {}
        self._by_log_id: Dict[str, NodeExecutionLog] = {}

    async def start_run(self, run_id: str, workflow_id: Optional[str], trigger_input: Any) -> WorkflowRun:
        """Persist a workflow run in the running state"""
        run = WorkflowRun(run_id=run_id, workflow_id=workflow_id, status=RunStatus.RUNNING, input=trigger_input)
        self.runs[run_id] = run
        self.entries.setdefault(run_id, [])
        return run

    async def finish_run(self, run_id: str, status: RunStatus, output: Any = None,
                         error: Optional[str] = None):
        """Close a run with its final status"""
        run = self.runs.get(run_id)
        if run is None:
            logger.warning(f"Cannot finish unknown run {run_id}")
            return
        run.status = status
        run.output = output
        run.error = error
        run.finished_at = utc_now()

    async def log_start(self, run_id: str, node_id: str, node_name: str, node_type: str,
                        node_input: Any = None) -> str:
        """Open a log entry for a node entering the running state"""
        entry = NodeExecutionLog(
            log_id=str(uuid.uuid4()),
            run_id=run_id,
            node_id=node_id,
            node_name=node_name,
            node_type=node_type,
            status=NodeStatus.RUNNING,
            input=node_input,
        )
        self.entries.setdefault(run_id, []).append(entry)
        self._by_log_id[entry.log_id] = entry
        return entry.log_id

    async def log_complete(self, log_id: str, status: NodeStatus, output: Any = None,
                           error: Optional[str] = None):
        """Settle an open log entry"""
        entry = self._by_log_id.get(log_id)
        if entry is None:
            logger.warning(f"Cannot complete unknown log entry {log_id}")
            return
        entry.status = status
        entry.output = output
        entry.error = error
        entry.completed_at = utc_now()
        entry.duration_ms = (entry.completed_at - entry.started_at).total_seconds() * 1000

    def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        return self.runs.get(run_id)

    def get_logs(self, run_id: str) -> List[NodeExecutionLog]:
        """All log entries of a run, in the order nodes started"""
        return list(self.entries.get(run_id, []))

    def delete_run(self, run_id: str):
        for entry in self.entries.pop(run_id, []):
            self._by_log_id.pop(entry.log_id, None)
        self.runs.pop(run_id, None)
