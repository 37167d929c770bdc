"""
CLI interface for the workflow engine.

Usage:
    workflow-engine run graph.json --input payload.json
    workflow-engine compile graph.json --out workflow.py --name run_order_flow
    workflow-engine validate graph.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from core.errors import GraphValidationError
from core.graph import WorkflowGraph
from core.logging_config import get_logger
from core.validator import validate_graph
from services.codegen import CompileOptions, WorkflowCompiler
from services.executor import execute_workflow_sync
from services.steps import default_registry

logger = get_logger(__name__)


def load_json_file(file_path: str) -> Any:
    """Load and parse a JSON file"""
    try:
        with open(file_path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {file_path}: {e}")
        sys.exit(1)


def load_graph(file_path: str) -> WorkflowGraph:
    """Load a graph in exchange format"""
    data = load_json_file(file_path)
    try:
        return WorkflowGraph.model_validate(data)
    except ValidationError as e:
        logger.error(f"{file_path} is not a workflow graph: {e}")
        sys.exit(1)


def print_json(data: Dict[str, Any]):
    print(json.dumps(data, indent=2, default=str))


def run_command(args):
    """Run a graph in-process and print the run result"""
    graph = load_graph(args.graph)
    trigger_input = load_json_file(args.input) if args.input else {}

    try:
        result = execute_workflow_sync(graph, trigger_input, workflow_id=args.workflow_id)
    except GraphValidationError as e:
        logger.error(f"Cannot run workflow: {e}")
        for issue in e.issues:
            logger.error(f"  {issue.path}: {issue.message}")
        sys.exit(1)

    print_json(result.to_dict())
    logger.info(f"Run {result.run_id} finished with status {result.status.value}")


def compile_command(args):
    """Compile a graph into a Python module"""
    graph = load_graph(args.graph)
    options = CompileOptions(
        function_name=args.name,
        module_header=f"Workflow: {args.workflow_name}" if args.workflow_name else None,
        concurrent_branches=False if args.sequential else None,
    )
    generated = WorkflowCompiler(options=options).compile(graph)

    if args.out:
        Path(args.out).write_text(generated.code)
        logger.info(f"Output saved to: {args.out}")
    else:
        print(generated.code, end="")

    report = generated.report
    if report.errors:
        logger.warning("Errors:")
        for error in report.errors:
            logger.warning(f"  {error['path']}: {error['message']}")
    if report.warnings:
        logger.warning("Warnings:")
        for warning in report.warnings:
            logger.warning(f"  {warning['path']}: {warning['message']}")
    if report.hints:
        logger.info("Hints:")
        for hint in report.hints:
            logger.info(f"  {hint}")

    logger.info(f"Compiled {generated.function_name}() successfully!")


def validate_command(args):
    """Validate a graph and print the report"""
    graph = load_graph(args.graph)
    report = validate_graph(graph, default_registry())
    print_json(report.to_dict())
    if not report.ok:
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog="workflow-engine",
        description="Run, compile and validate workflow graphs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a workflow with a trigger payload
  workflow-engine run graph.json --input payload.json

  # Export a workflow as a standalone module
  workflow-engine compile graph.json --out workflow.py --name run_order_flow

  # Check a graph before storing it
  workflow-engine validate graph.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    run_parser = subparsers.add_parser("run", help="Execute a graph in-process")
    run_parser.add_argument("graph", help="Graph file ({nodes, edges})")
    run_parser.add_argument("--input", help="Trigger payload file")
    run_parser.add_argument("--workflow-id", help="Workflow id recorded in the execution log")
    run_parser.set_defaults(func=run_command)

    compile_parser = subparsers.add_parser("compile", help="Generate Python source for a graph")
    compile_parser.add_argument("graph", help="Graph file ({nodes, edges})")
    compile_parser.add_argument("--out", help="Output file (default: stdout)")
    compile_parser.add_argument("--name", help="Name of the generated function")
    compile_parser.add_argument("--workflow-name", help="Workflow name for the module header")
    compile_parser.add_argument("--sequential", action="store_true", help="Join fan-out branches one at a time")
    compile_parser.set_defaults(func=compile_command)

    validate_parser = subparsers.add_parser("validate", help="Validate a graph")
    validate_parser.add_argument("graph", help="Graph file ({nodes, edges})")
    validate_parser.set_defaults(func=validate_command)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
