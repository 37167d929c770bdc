"""
Step catalog: the side-effecting functions action nodes dispatch to.
"""

from .registry import StepDefinition, StepHandler, StepRegistry, StepResult
from .catalog import BUILTIN_STEPS, default_registry

__all__ = [
    "StepDefinition",
    "StepHandler",
    "StepRegistry",
    "StepResult",
    "BUILTIN_STEPS",
    "default_registry",
]
