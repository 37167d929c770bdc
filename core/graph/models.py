"""
Pydantic models for the workflow graph exchange format.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class NodeKind(str, Enum):
    """Kinds of node a workflow graph can contain"""
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    TRANSFORM = "transform"


class BranchRole(str, Enum):
    """Explicit role of an edge leaving a condition node"""
    TRUE = "true"
    FALSE = "false"


class Node(BaseModel):
    """A single step of a workflow"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: NodeKind
    label: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def unwrap_editor_envelope(cls, value: Any) -> Any:
        """Accept the editor's ``{id, data: {type, label, config}}`` shape."""
        if not isinstance(value, dict) or "data" not in value or "kind" in value:
            return value
        data = value.get("data") or {}
        normalized = {
            "id": value.get("id"),
            "kind": data.get("type") or value.get("type"),
            "label": data.get("label", ""),
            "config": data.get("config") or {},
            "enabled": data.get("enabled", True) is not False,
            "description": data.get("description"),
        }
        return normalized

    @field_validator("kind", mode="before")
    @classmethod
    def lowercase_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @property
    def action_type(self) -> Optional[str]:
        return self.config.get("actionType")

    @property
    def display_name(self) -> str:
        """Label, falling back to the action/trigger type, then the kind"""
        return (
            self.label
            or self.config.get("actionType")
            or self.config.get("triggerType")
            or self.kind.value
        )


class Edge(BaseModel):
    """A directed connection between two nodes"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    branch: Optional[BranchRole] = Field(default=None, alias="sourceHandle")

    @field_validator("branch", mode="before")
    @classmethod
    def ignore_unknown_handles(cls, value: Any) -> Any:
        # Editor handles other than true/false carry no branch meaning
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower()
        return None


class WorkflowGraph(BaseModel):
    """Nodes plus edges, wholly replaced between runs"""

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None
