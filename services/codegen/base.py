"""
Base compiler class with common functionality and interfaces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CompilerReport:
    """Report from compiler operations"""
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)

    def add_error(self, code: str, path: str, message: str, hint: Optional[str] = None):
        """Add an error to the report"""
        self.errors.append({
            "code": code,
            "path": path,
            "message": message,
            "hint": hint
        })

    def add_warning(self, code: str, path: str, message: str, hint: Optional[str] = None):
        """Add a warning to the report"""
        self.warnings.append({
            "code": code,
            "path": path,
            "message": message,
            "hint": hint
        })

    def add_hint(self, hint: str):
        """Add a hint to the report"""
        if hint not in self.hints:
            self.hints.append(hint)

    @property
    def has_errors(self) -> bool:
        """Check if there are any errors"""
        return len(self.errors) > 0

    @property
    def is_success(self) -> bool:
        """Check if compilation was successful"""
        return not self.has_errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "hints": list(self.hints),
        }


class BaseCompiler(ABC):
    """Base class for all compilers"""

    def __init__(self):
        self.report = CompilerReport()

    @abstractmethod
    def compile(self, graph: Any) -> Any:
        """Main compilation method - must be implemented by subclasses"""
        pass

    def _reset_report(self) -> CompilerReport:
        self.report = CompilerReport()
        return self.report

    def _comment_text(self, text: Any) -> str:
        """Collapse text onto one line so it is safe inside a ``#`` comment"""
        return " ".join(str(text).split())
