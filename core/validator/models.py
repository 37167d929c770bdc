"""
Type definitions for workflow graph validation
"""

from typing import Any, Dict, List, Optional
from enum import Enum
from dataclasses import dataclass, field


class Severity(str, Enum):
    """How serious a validation finding is"""
    ERROR = "ERROR"
    WARNING = "WARNING"


@dataclass
class ValidationIssue:
    """A single validation finding"""
    code: str
    path: str
    message: str
    severity: Severity = Severity.ERROR
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "path": self.path,
            "message": self.message,
            "severity": self.severity.value,
            "meta": self.meta,
        }


@dataclass
class ValidateResponse:
    """Response from validation operation"""
    ok: bool
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    def has_error(self, code: str) -> bool:
        return any(issue.code == code for issue in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }
