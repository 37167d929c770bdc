"""
Tests for the command line interface.
"""
import ast
import json

import pytest

from services.cli import main
from factories import action, edge, trigger, transform


def write_json(path, data):
    path.write_text(json.dumps(data))
    return str(path)


@pytest.fixture
def transform_graph(tmp_path):
    """A graph that only uses built-in behaviour with no external calls"""
    return write_json(tmp_path / "graph.json", {
        "nodes": [trigger("T"), transform("X", "Shape", "uppercase")],
        "edges": [edge("T", "X")],
    })


@pytest.fixture
def http_graph(tmp_path):
    return write_json(tmp_path / "http.json", {
        "nodes": [
            trigger("T"),
            action("A", "Call Hook", "HTTP Request", endpoint="https://example.test/{{$T.id}}", httpMethod="GET"),
            action("B", "Fan Out", "HTTP Request", endpoint="https://example.test/b"),
            action("C", "Fan Out Too", "HTTP Request", endpoint="https://example.test/c"),
        ],
        "edges": [edge("T", "A"), edge("A", "B"), edge("A", "C")],
    })


class TestRunCommand:
    """Test the run subcommand."""

    def test_run_prints_result(self, transform_graph, tmp_path, capsys):
        """Test that the run result is printed as JSON."""
        payload = write_json(tmp_path / "payload.json", {"name": "Ada"})
        main(["run", transform_graph, "--input", payload])

        out = capsys.readouterr().out
        assert '"status": "success"' in out
        assert '"transformType": "uppercase"' in out

    def test_run_rejects_graph_without_triggers(self, tmp_path):
        """Test the exit code for a graph that cannot run."""
        graph_file = write_json(tmp_path / "graph.json", {"nodes": [transform("X", "Shape")], "edges": []})

        with pytest.raises(SystemExit) as exc_info:
            main(["run", graph_file])
        assert exc_info.value.code == 1

    def test_missing_file(self, tmp_path):
        """Test the exit code for a file that does not exist."""
        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(tmp_path / "nope.json")])
        assert exc_info.value.code == 1

    def test_invalid_graph(self, tmp_path):
        """Test the exit code for JSON that is not a graph."""
        graph_file = write_json(tmp_path / "graph.json", {"nodes": [{"id": "x", "kind": "robot"}]})

        with pytest.raises(SystemExit) as exc_info:
            main(["run", graph_file])
        assert exc_info.value.code == 1


class TestCompileCommand:
    """Test the compile subcommand."""

    def test_compile_to_file(self, http_graph, tmp_path):
        """Test that the module is written and parses."""
        out_file = tmp_path / "workflow.py"
        main(["compile", http_graph, "--out", str(out_file), "--name", "call hooks", "--workflow-name", "Hooks"])

        code = out_file.read_text()
        ast.parse(code)
        assert "from services.steps.http import http_request" in code
        assert "async def call_hooks(payload):" in code
        assert "# Workflow: Hooks" in code.splitlines()
        assert "concurrent=True" in code

    def test_compile_sequential(self, http_graph, tmp_path):
        """Test the sequential join option."""
        out_file = tmp_path / "workflow.py"
        main(["compile", http_graph, "--out", str(out_file), "--sequential"])
        assert "concurrent=False" in out_file.read_text()

    def test_compile_to_stdout(self, transform_graph, capsys):
        """Test that the module goes to stdout without --out."""
        main(["compile", transform_graph])
        assert "async def run_workflow(payload):" in capsys.readouterr().out


class TestValidateCommand:
    """Test the validate subcommand."""

    def test_valid_graph(self, http_graph, capsys):
        """Test a passing validation."""
        main(["validate", http_graph])
        assert '"ok": true' in capsys.readouterr().out

    def test_invalid_graph_exits_non_zero(self, tmp_path, capsys):
        """Test that a failing validation exits with status 1."""
        graph_file = write_json(tmp_path / "graph.json", {"nodes": [trigger("T")], "edges": [edge("T", "ghost")]})

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", graph_file])

        assert exc_info.value.code == 1
        assert "DANGLING_EDGE_TARGET" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    """Test that running without a subcommand shows usage."""
    with pytest.raises(SystemExit):
        main([])
    assert "workflow-engine" in capsys.readouterr().out
