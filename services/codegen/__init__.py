"""
Code Generation Engine Package

Compiles workflow graphs into standalone async Python modules that follow
the same execution plan as the in-process interpreter.

Main exports:
- WorkflowCompiler: Compiler class
- CompileOptions: Per-compilation options
- GeneratedCode: Compilation output with its report
- generate_workflow_module: One-call helper returning module source
"""

from .base import BaseCompiler, CompilerReport
from .generator import CompileOptions, GeneratedCode, WorkflowCompiler, generate_workflow_module
from .naming import VariableNamer, to_identifier
from .usage import referenced_node_ids

__all__ = [
    "BaseCompiler",
    "CompilerReport",
    "CompileOptions",
    "GeneratedCode",
    "WorkflowCompiler",
    "generate_workflow_module",
    "VariableNamer",
    "to_identifier",
    "referenced_node_ids",
]

__version__ = "1.0.0"
