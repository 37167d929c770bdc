"""
Messaging steps: email through Resend and chat messages through Slack.
"""

from typing import Optional

import httpx

from core.config import settings
from core.logging_config import get_logger
from .registry import StepResult

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com"
SLACK_API_URL = "https://slack.com/api"
DEFAULT_FROM_EMAIL = "onboarding@resend.dev"


async def send_email(email_to: str, email_subject: str = "Notification",
                     email_body: str = "", email_from: Optional[str] = None,
                     api_key: Optional[str] = None) -> StepResult:
    """Send a plain-text email with the Resend API"""
    if not api_key:
        return StepResult.fail("RESEND_API_KEY is not configured")

    payload = {
        "from": email_from or DEFAULT_FROM_EMAIL,
        "to": [address.strip() for address in email_to.split(",") if address.strip()],
        "subject": email_subject,
        "text": email_body,
    }

    logger.info(f"Sending email to {len(payload['to'])} recipient(s)")
    async with httpx.AsyncClient(timeout=settings.step_timeout_seconds) as client:
        try:
            response = await client.post(
                f"{RESEND_API_URL}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return StepResult.fail(f"Resend rejected the email: {e.response.status_code} {e.response.text}")
        except httpx.HTTPError as e:
            return StepResult.fail(f"Failed to reach Resend: {e}")

    result = response.json()
    return StepResult.ok({"id": result.get("id"), "to": payload["to"], "subject": email_subject})


async def send_slack_message(slack_channel: str, slack_message: str,
                             api_key: Optional[str] = None) -> StepResult:
    """Post a message to a Slack channel"""
    if not api_key:
        return StepResult.fail("SLACK_API_KEY is not configured")

    logger.info(f"Posting Slack message to {slack_channel}")
    async with httpx.AsyncClient(timeout=settings.step_timeout_seconds) as client:
        try:
            response = await client.post(
                f"{SLACK_API_URL}/chat.postMessage",
                json={"channel": slack_channel, "text": slack_message},
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            return StepResult.fail(f"Failed to reach Slack: {e}")

    result = response.json()
    # Slack reports API errors with HTTP 200 and ok=false
    if not result.get("ok"):
        return StepResult.fail(f"Slack error: {result.get('error', 'unknown_error')}")
    return StepResult.ok({"channel": result.get("channel"), "ts": result.get("ts"), "message": slack_message})
