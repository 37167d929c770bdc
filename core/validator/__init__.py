"""
Workflow graph validator.

Structural checks that must pass before a graph is run or compiled, plus
warnings for constructs that run but probably do not do what was meant.
"""

from .validator import ensure_valid, validate_graph
from .models import Severity, ValidateResponse, ValidationIssue

__version__ = "1.0.0"
__all__ = [
    "ensure_valid",
    "validate_graph",
    "Severity",
    "ValidateResponse",
    "ValidationIssue",
]
