"""
Tests for the step registry and the built-in steps.
"""
import json
from unittest.mock import patch

import httpx
import pytest

from core.errors import StepNotFoundError, StepRegistryError
from services.steps import StepDefinition, StepRegistry, StepResult, default_registry
from services.steps.database import database_query
from services.steps.http import http_request
from services.steps.messaging import send_email, send_slack_message
from services.steps.tickets import create_ticket


def mock_transport(handler):
    """Patch httpx.AsyncClient so every client created routes through ``handler``"""
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    return patch("httpx.AsyncClient", side_effect=factory)


async def echo(message: str) -> StepResult:
    return StepResult.ok(message)


class TestStepRegistry:
    """Test registration and lookup."""

    def test_lookup_by_alias(self, registry):
        """Test that legacy names resolve to the canonical step."""
        assert registry.get("resend/send-email").action_type == "Send Email"
        assert registry.has("Notify")
        assert registry.find("Teleport") is None

    def test_get_unknown_raises(self, registry):
        """Test that get raises for unregistered types."""
        with pytest.raises(StepNotFoundError, match="Unknown action type: Teleport"):
            registry.get("Teleport")

    def test_build_arguments_maps_and_drops_nulls(self, registry):
        """Test the config key to keyword mapping."""
        definition = registry.get("Send Email")
        arguments = definition.build_arguments({
            "actionType": "Send Email",
            "emailTo": "a@b.com",
            "emailSubject": None,
            "unrelated": "x",
        })
        assert arguments == {"email_to": "a@b.com"}
        assert definition.build_credential_arguments({"RESEND_API_KEY": "re_1"}) == {"api_key": "re_1"}
        assert definition.build_credential_arguments({"RESEND_API_KEY": ""}) == {}

    def test_validate_rejects_unknown_keywords(self):
        """Test that a mapping to a keyword the handler lacks fails validation."""
        registry = StepRegistry()
        registry.register(StepDefinition(
            action_type="Echo", handler=echo, function_name="echo",
            import_path=__name__, arguments={"text": "text"},
        ))
        with pytest.raises(StepRegistryError, match="text"):
            registry.validate()

    def test_validate_rejects_sync_handlers(self):
        """Test that handlers must be coroutine functions."""
        registry = StepRegistry()
        registry.register(StepDefinition(
            action_type="Sync", handler=lambda: None, function_name="sync", import_path=__name__,
        ))
        with pytest.raises(StepRegistryError, match="async"):
            registry.validate()

    def test_validate_rejects_dangling_alias(self):
        """Test that aliases must point at registered steps."""
        registry = StepRegistry()
        registry.aliases["old"] = "Missing"
        with pytest.raises(StepRegistryError, match="old"):
            registry.validate()

    def test_default_registry(self):
        """Test that the built-in catalog validates and is importable by path."""
        registry = default_registry()

        assert {"HTTP Request", "Send Email", "Database Query"} <= set(registry.action_types())
        assert registry.get("linear/create-ticket").action_type == "Create Ticket"
        for action_type in registry.action_types():
            definition = registry.get(action_type)
            assert definition.handler.__module__ == definition.import_path
            assert definition.handler.__name__ == definition.function_name

    def test_to_dict_hides_nothing_secret(self, registry):
        """Test that listings carry secret names only."""
        data = registry.get("Send Email").to_dict()
        assert data["credentials"] == ["RESEND_API_KEY"]
        assert data["integration"] == "resend"


class TestHttpRequestStep:
    """Test the HTTP request step."""

    @pytest.mark.asyncio
    async def test_posts_json_body(self):
        """Test a POST with a JSON body given as text."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["header"] = request.headers.get("x-token")
            return httpx.Response(201, json={"created": True})

        with mock_transport(handler):
            result = await http_request(
                "https://example.test/items", body='{"name": "Ada"}', headers='{"X-Token": "abc"}'
            )

        assert result.success
        assert result.data == {"status": 201, "data": {"created": True}}
        assert seen == {"method": "POST", "body": {"name": "Ada"}, "header": "abc"}

    @pytest.mark.asyncio
    async def test_error_status_fails(self):
        """Test that a 4xx response is a step failure."""
        with mock_transport(lambda request: httpx.Response(404, text="nope")):
            result = await http_request("https://example.test/missing", method="get")

        assert not result.success
        assert "404" in result.error

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        """Test that malformed JSON text is rejected before any request."""
        result = await http_request("https://example.test", body="{not json")
        assert not result.success
        assert "body is not valid JSON" in result.error


class TestMessagingSteps:
    """Test the email and Slack steps."""

    @pytest.mark.asyncio
    async def test_send_email_requires_key(self):
        """Test that a missing key fails without a request."""
        result = await send_email("a@b.com")
        assert result.error == "RESEND_API_KEY is not configured"

    @pytest.mark.asyncio
    async def test_send_email(self):
        """Test the Resend request payload."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_1"})

        with mock_transport(handler):
            result = await send_email("a@b.com, c@d.com", "Hi", "Body", api_key="re_key")

        assert result.data == {"id": "email_1", "to": ["a@b.com", "c@d.com"], "subject": "Hi"}
        assert seen["auth"] == "Bearer re_key"
        assert seen["body"]["to"] == ["a@b.com", "c@d.com"]
        assert seen["body"]["from"] == "onboarding@resend.dev"

    @pytest.mark.asyncio
    async def test_slack_error_reported_with_http_200(self):
        """Test that Slack's ok=false is a failure."""
        with mock_transport(lambda request: httpx.Response(200, json={"ok": False, "error": "channel_not_found"})):
            result = await send_slack_message("#nowhere", "hi", api_key="xoxb")

        assert not result.success
        assert result.error == "Slack error: channel_not_found"


class TestTicketStep:
    """Test the Linear ticket step."""

    @pytest.mark.asyncio
    async def test_creates_issue_in_first_team(self):
        """Test that the first team is looked up when none is configured."""
        queries = []

        def handler(request):
            body = json.loads(request.content)
            queries.append(body)
            if "teams" in body["query"]:
                return httpx.Response(200, json={"data": {"teams": {"nodes": [{"id": "team-1", "name": "Eng"}]}}})
            return httpx.Response(200, json={"data": {"issueCreate": {
                "success": True,
                "issue": {"id": "i1", "identifier": "ENG-1", "url": "https://linear.test/ENG-1", "title": "Bug"},
            }}})

        with mock_transport(handler):
            result = await create_ticket("Bug", "Broken", ticket_priority="High", api_key="lin_key")

        assert result.data["identifier"] == "ENG-1"
        assert queries[1]["variables"]["input"] == {
            "title": "Bug", "description": "Broken", "teamId": "team-1", "priority": 2,
        }

    @pytest.mark.asyncio
    async def test_graphql_errors_fail(self):
        """Test that GraphQL errors become a step failure."""
        with mock_transport(lambda request: httpx.Response(200, json={"errors": [{"message": "bad input"}]})):
            result = await create_ticket("Bug", api_key="lin_key", team_id="team-1")

        assert result.error == "Failed to create issue: bad input"


class TestDatabaseStep:
    """Test the SQLAlchemy query step."""

    @pytest.mark.asyncio
    async def test_select_rows(self):
        """Test a query returning rows against in-memory SQLite."""
        result = await database_query("SELECT 1 AS one, 'x' AS label", database_url="sqlite://")
        assert result.data == {"rows": [{"one": 1, "label": "x"}], "count": 1}

    @pytest.mark.asyncio
    async def test_bad_sql_fails(self):
        """Test that SQL errors become a step failure."""
        result = await database_query("SELEC nothing", database_url="sqlite://")
        assert not result.success
        assert result.error.startswith("Database query failed")

    @pytest.mark.asyncio
    async def test_requires_url(self):
        """Test that a missing URL fails."""
        result = await database_query("SELECT 1")
        assert result.error == "DATABASE_URL is not configured"
