"""
Issue tracker step backed by the Linear GraphQL API.
"""

from typing import Any, Dict, Optional

import httpx

from core.config import settings
from core.logging_config import get_logger
from .registry import StepResult

logger = get_logger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"

TEAMS_QUERY = "query { teams(first: 1) { nodes { id name } } }"

CREATE_ISSUE_MUTATION = """
mutation CreateIssue($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id identifier url title }
  }
}
"""

# Linear priorities: 0 none, 1 urgent, 2 high, 3 medium, 4 low
PRIORITIES = {"none": 0, "urgent": 1, "high": 2, "medium": 3, "low": 4}


async def _graphql(client: httpx.AsyncClient, api_key: str, query: str,
                   variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response = await client.post(
        LINEAR_API_URL,
        json={"query": query, "variables": variables or {}},
        headers={"Authorization": api_key},
    )
    response.raise_for_status()
    result = response.json()
    if result.get("errors"):
        raise ValueError(result["errors"][0].get("message", "Linear API error"))
    return result["data"]


async def create_ticket(ticket_title: str, ticket_description: str = "",
                        ticket_priority: Optional[str] = None,
                        api_key: Optional[str] = None,
                        team_id: Optional[str] = None) -> StepResult:
    """Create a Linear issue, defaulting to the workspace's first team"""
    if not api_key:
        return StepResult.fail("LINEAR_API_KEY is not configured")

    async with httpx.AsyncClient(timeout=settings.step_timeout_seconds) as client:
        try:
            if not team_id:
                teams = (await _graphql(client, api_key, TEAMS_QUERY))["teams"]["nodes"]
                if not teams:
                    return StepResult.fail("No teams found in Linear workspace")
                team_id = teams[0]["id"]

            issue_input: Dict[str, Any] = {
                "title": ticket_title,
                "description": ticket_description,
                "teamId": team_id,
            }
            if ticket_priority:
                issue_input["priority"] = PRIORITIES.get(str(ticket_priority).lower(), 0)

            logger.info(f"Creating Linear issue: {ticket_title}")
            created = (await _graphql(client, api_key, CREATE_ISSUE_MUTATION, {"input": issue_input}))["issueCreate"]
        except (httpx.HTTPError, ValueError) as e:
            return StepResult.fail(f"Failed to create issue: {e}")

    if not created.get("success") or not created.get("issue"):
        return StepResult.fail("Failed to create issue")
    return StepResult.ok(created["issue"])
