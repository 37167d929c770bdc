"""
Tests for the workflow executor.
"""
import pytest

import recording_steps
from core.errors import GraphValidationError, NoTriggerNodesError
from services.executor import (
    EnvironmentCredentialResolver,
    ExecutionLogStore,
    NodeStatus,
    RunStatus,
    StaticCredentialResolver,
    WorkflowExecutor,
    execute_workflow_sync,
)
from factories import (
    action,
    branching_graph,
    condition,
    diamond_graph,
    edge,
    graph,
    linear_email_graph,
    transform,
    trigger,
)


def messages():
    return [args["message"] for name, args in recording_steps.CALLS if name == "notify"]


class TestWorkflowExecution:
    """Test end-to-end runs of the interpreter."""

    @pytest.mark.asyncio
    async def test_trigger_payload_reaches_action(self, executor):
        """Test that templates resolve against the trigger output."""
        result = await executor.execute(linear_email_graph(), {"email": "a@b.com", "name": "Ada"})

        assert result.success
        assert recording_steps.CALLS == [
            ("record_email", {"email_to": "a@b.com", "email_subject": "Hello Ada", "email_body": None}),
        ]
        assert result.output == {"id": "email-1", "to": "a@b.com"}
        assert result.outputs["T"].data["triggered"] is True
        assert isinstance(result.outputs["T"].data["timestamp"], int)

    @pytest.mark.asyncio
    async def test_accepts_exchange_format_dict(self, executor):
        """Test that a plain dict graph is accepted."""
        result = await executor.execute(linear_email_graph().model_dump(by_alias=True), {"email": "x@y.z"})
        assert result.success
        assert recording_steps.CALLS[0][1]["email_to"] == "x@y.z"

    @pytest.mark.asyncio
    async def test_missing_payload_field_stays_literal(self, executor):
        """Test that an unresolved reference is passed through as written."""
        await executor.execute(linear_email_graph(), {"email": "a@b.com"})
        assert recording_steps.CALLS[0][1]["email_subject"] == "Hello {{$T.name}}"

    @pytest.mark.asyncio
    async def test_diamond_runs_join_once(self, executor):
        """Test that a node reachable along two paths runs exactly once."""
        result = await executor.execute(diamond_graph())

        assert result.success
        assert sorted(messages()[:2]) == ["left", "right"]
        assert messages()[2:] == ["join"]
        assert result.output == {"message": "join", "delivered": True}

    @pytest.mark.asyncio
    async def test_serial_branches_run_before_join(self, registry):
        """Test that serial mode runs each branch in turn, then the join."""
        executor = WorkflowExecutor(
            registry=registry,
            credential_resolver=EnvironmentCredentialResolver(environ={}),
            concurrent_branches=False,
        )
        await executor.execute(diamond_graph())
        assert messages() == ["left", "right", "join"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count, expected", [(5, "high 5"), (1, "low")])
    async def test_output_comes_from_branch_taken(self, executor, count, expected):
        """Test that the run output is the last node that actually ran."""
        result = await executor.execute(branching_graph(), {"count": count})
        assert result.output == {"message": expected, "delivered": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count, expected", [(5, "high 5"), (1, "low")])
    async def test_condition_picks_one_branch(self, executor, count, expected):
        """Test that only the chosen condition branch runs."""
        result = await executor.execute(branching_graph(), {"count": count})

        assert messages() == [expected]
        assert result.outputs["check"].data == {"condition": f"{count} > 3", "result": count > 3}

    @pytest.mark.asyncio
    async def test_transform_stamps_trigger_input(self, executor):
        """Test that a transform passes the trigger input through."""
        workflow = graph(
            [trigger("T"), transform("X", "Shape", "uppercase")],
            [edge("T", "X")],
        )
        result = await executor.execute(workflow, {"name": "Ada"})

        assert result.output["name"] == "Ada"
        assert result.output["transformType"] == "uppercase"
        assert result.output["transformed"] is True

    @pytest.mark.asyncio
    async def test_disabled_node_stops_branch(self, executor):
        """Test that nodes after a disabled node never run."""
        disabled = action("A", "Skipped", "Notify", message="skipped")
        disabled["enabled"] = False
        workflow = graph(
            [trigger("T"), disabled, action("B", "After", "Notify", message="after")],
            [edge("T", "A"), edge("A", "B")],
        )
        result = await executor.execute(workflow)

        assert result.success
        assert messages() == []
        assert set(result.results) == {"T"}

    @pytest.mark.asyncio
    async def test_multiple_triggers_share_visited_nodes(self, executor):
        """Test that a node reachable from two triggers runs once."""
        workflow = graph(
            [trigger("T1", "First"), trigger("T2", "Second"), action("A", "Shared", "Notify", message="shared")],
            [edge("T1", "A"), edge("T2", "A")],
        )
        result = await executor.execute(workflow)

        assert messages() == ["shared"]
        assert set(result.results) == {"T1", "T2", "A"}

    @pytest.mark.asyncio
    async def test_no_trigger_nodes(self, executor):
        """Test that a graph without triggers is rejected before running."""
        with pytest.raises(NoTriggerNodesError):
            await executor.execute(graph([action("A", "A", "Notify", message="x")], []))
        assert recording_steps.CALLS == []

    @pytest.mark.asyncio
    async def test_dangling_edge_rejected(self, executor):
        """Test that structural errors are rejected before running."""
        with pytest.raises(GraphValidationError):
            await executor.execute(graph([trigger("T")], [edge("T", "ghost")]))

    def test_sync_wrapper(self, executor):
        """Test the synchronous entry point."""
        result = execute_workflow_sync(diamond_graph(), executor=executor)
        assert result.status == RunStatus.SUCCESS


class TestFailureHandling:
    """Test how failures stop branches."""

    @pytest.mark.asyncio
    async def test_failed_node_short_circuits_branch(self, executor):
        """Test that successors of a failed node do not run."""
        workflow = graph(
            [
                trigger("T"),
                action("A", "Fails", "Notify", message="first", fail=True),
                action("B", "Never", "Notify", message="second"),
            ],
            [edge("T", "A"), edge("A", "B")],
        )
        result = await executor.execute(workflow)

        assert result.status == RunStatus.FAILED
        assert result.error == "1 node(s) failed: A"
        assert result.results["A"].error == "could not deliver first"
        assert result.outputs["A"].data is None
        assert "B" not in result.results
        assert result.output is None

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self, executor):
        """Test that a raising step is recorded as a failed node."""
        workflow = graph([trigger("T"), action("X", "Boom", "Explode", message="go")], [edge("T", "X")])
        result = await executor.execute(workflow)

        assert result.results["X"].success is False
        assert result.results["X"].error == "step blew up"

    @pytest.mark.asyncio
    async def test_unknown_action_type(self, executor):
        """Test that an unregistered action type fails its node."""
        workflow = graph([trigger("T"), action("A", "Mystery", "Teleport")], [edge("T", "A")])
        result = await executor.execute(workflow)

        assert result.results["A"].error == "Unknown action type: Teleport"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrent", [True, False])
    async def test_join_runs_when_one_branch_fails(self, registry, concurrent):
        """Test that a join still runs through the branch that succeeded."""
        executor = WorkflowExecutor(
            registry=registry,
            credential_resolver=EnvironmentCredentialResolver(environ={}),
            concurrent_branches=concurrent,
        )
        workflow = graph(
            [
                trigger("T"),
                action("L", "Left", "Notify", message="left", fail=True),
                action("R", "Right", "Notify", message="right"),
                action("J", "Join", "Notify", message="join"),
            ],
            [edge("T", "L"), edge("T", "R"), edge("L", "J"), edge("R", "J")],
        )
        result = await executor.execute(workflow)

        assert result.status == RunStatus.FAILED
        assert result.results["R"].success
        assert result.results["J"].success
        assert messages()[-1] == "join"
        assert result.output == {"message": "join", "delivered": True}

    @pytest.mark.asyncio
    async def test_join_skipped_when_every_branch_fails(self, executor):
        """Test that a join with no successful predecessor does not run."""
        workflow = graph(
            [
                trigger("T"),
                action("L", "Left", "Notify", message="left", fail=True),
                action("R", "Right", "Notify", message="right", fail=True),
                action("J", "Join", "Notify", message="join"),
            ],
            [edge("T", "L"), edge("T", "R"), edge("L", "J"), edge("R", "J")],
        )
        result = await executor.execute(workflow)

        assert sorted(messages()) == ["left", "right"]
        assert "J" not in result.results
        assert result.output is None

    @pytest.mark.asyncio
    async def test_failure_later_in_arm_does_not_cancel_join(self, executor):
        """Test that a join entered from a condition arm runs even if the arm fails afterwards."""
        workflow = graph(
            [
                trigger("T"),
                condition("C", "Check", "true"),
                action("A", "Yes", "Notify", message="yes"),
                action("X", "Breaks", "Notify", message="breaks", fail=True),
                action("B", "No", "Notify", message="no"),
                action("J", "Join", "Notify", message="join"),
            ],
            [
                edge("T", "C"), edge("C", "A", "true"), edge("C", "B", "false"),
                edge("A", "J"), edge("A", "X"), edge("B", "J"),
            ],
        )
        result = await executor.execute(workflow)

        assert messages() == ["yes", "breaks", "join"]
        assert result.results["X"].success is False
        assert result.output == {"message": "join", "delivered": True}

    @pytest.mark.asyncio
    async def test_reference_to_failed_node_stays_literal(self, executor):
        """Test that a later trigger sees no data for a failed node."""
        workflow = graph(
            [
                trigger("T1"),
                action("A", "Fails", "Notify", message="a", fail=True),
                trigger("T2"),
                action("B", "Reader", "Notify", message="saw {{$A.message}}"),
            ],
            [edge("T1", "A"), edge("T2", "B")],
        )
        await executor.execute(workflow)
        assert messages() == ["a", "saw {{$A.message}}"]


class TestCredentials:
    """Test credential resolution around step calls."""

    @pytest.mark.asyncio
    async def test_user_bundle_reaches_step(self, registry, log_store):
        """Test that secrets are resolved per node and kept out of logs."""
        executor = WorkflowExecutor(
            registry=registry,
            credential_resolver=StaticCredentialResolver({"resend": {"RESEND_API_KEY": "re_secret"}}),
            log_store=log_store,
        )
        result = await executor.execute(linear_email_graph(), {"email": "a@b.com"})

        assert recording_steps.SECRETS == ["re_secret"]
        assert "re_secret" not in str(result.to_dict())
        entries = [entry.to_dict() for entry in log_store.get_logs(result.run_id)]
        assert "re_secret" not in str(entries)

    @pytest.mark.asyncio
    async def test_integration_id_selects_bundle(self, registry):
        """Test that config.integrationId overrides the step's default integration."""
        workflow = graph(
            [trigger("T"), action("A", "Send", "Send Email", emailTo="a@b.com", integrationId="team-mail")],
            [edge("T", "A")],
        )
        executor = WorkflowExecutor(
            registry=registry,
            credential_resolver=StaticCredentialResolver({
                "resend": {"RESEND_API_KEY": "re_default"},
                "team-mail": {"RESEND_API_KEY": "re_team"},
            }),
        )
        await executor.execute(workflow)
        assert recording_steps.SECRETS == ["re_team"]

    @pytest.mark.asyncio
    async def test_environment_resolver(self):
        """Test lookups against an explicit environment mapping."""
        resolver = EnvironmentCredentialResolver(environ={"RESEND_API_KEY": "re_env", "EMPTY": ""})
        assert await resolver.resolve("resend", ["RESEND_API_KEY", "EMPTY", "OTHER"]) == {"RESEND_API_KEY": "re_env"}


class TestObservability:
    """Test status callbacks and the execution log."""

    @pytest.mark.asyncio
    async def test_node_update_sequence(self, executor):
        """Test that every node goes pending, running, then settles."""
        updates = []
        await executor.execute(
            linear_email_graph(), {"email": "a@b.com"},
            on_node_update=lambda node_id, status: updates.append((node_id, status)),
        )

        assert updates == [
            ("T", NodeStatus.PENDING),
            ("A", NodeStatus.PENDING),
            ("T", NodeStatus.RUNNING),
            ("T", NodeStatus.SUCCESS),
            ("A", NodeStatus.RUNNING),
            ("A", NodeStatus.SUCCESS),
        ]

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self, executor):
        """Test that coroutine callbacks are supported."""
        updates = []

        async def on_update(node_id, status):
            updates.append(status)

        workflow = graph([trigger("T"), action("A", "A", "Notify", fail=True, message="x")], [edge("T", "A")])
        await executor.execute(workflow, on_node_update=on_update)
        assert updates[-1] == NodeStatus.ERROR

    @pytest.mark.asyncio
    async def test_execution_log(self, executor, log_store):
        """Test that the run and each node are logged with resolved input."""
        result = await executor.execute(linear_email_graph(), {"email": "a@b.com"}, workflow_id="wf-1")

        run = log_store.get_run(result.run_id)
        assert run.workflow_id == "wf-1"
        assert run.status == RunStatus.SUCCESS
        assert run.finished_at is not None
        assert run.output == result.output

        entries = log_store.get_logs(result.run_id)
        assert [entry.node_id for entry in entries] == ["T", "A"]
        assert all(entry.status == NodeStatus.SUCCESS for entry in entries)
        assert entries[1].input["emailTo"] == "a@b.com"
        assert entries[1].node_type == "action"
        assert entries[1].duration_ms >= 0

    @pytest.mark.asyncio
    async def test_log_store_errors_do_not_fail_the_run(self, registry):
        """Test that a broken log store only loses log entries."""

        class BrokenLogStore(ExecutionLogStore):
            async def log_start(self, *args, **kwargs):
                raise RuntimeError("disk full")

        executor = WorkflowExecutor(
            registry=registry,
            credential_resolver=EnvironmentCredentialResolver(environ={}),
            log_store=BrokenLogStore(),
        )
        result = await executor.execute(diamond_graph())
        assert result.success

    @pytest.mark.asyncio
    async def test_runs_do_not_share_state(self, executor):
        """Test that outputs of one run are invisible to the next."""
        first = await executor.execute(linear_email_graph(), {"email": "first@x.y"})
        second = await executor.execute(linear_email_graph(), {"email": "second@x.y"})

        assert first.run_id != second.run_id
        assert second.outputs["A"].data["to"] == "second@x.y"
