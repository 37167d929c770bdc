"""
Step handlers that record their calls instead of reaching real services.

Generated workflow modules import these by module name, so the same
functions serve the interpreter and compiled code.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from services.steps import StepDefinition, StepRegistry, StepResult

CALLS: List[Tuple[str, Dict[str, Any]]] = []
SECRETS: List[Optional[str]] = []


def reset():
    CALLS.clear()
    SECRETS.clear()


async def notify(message: str, fail: bool = False, delay: float = 0) -> StepResult:
    CALLS.append(("notify", {"message": message}))
    if delay:
        await asyncio.sleep(float(delay))
    if fail:
        return StepResult.fail(f"could not deliver {message}")
    return StepResult.ok({"message": message, "delivered": True})


async def fetch_count(count: Any) -> StepResult:
    CALLS.append(("fetch_count", {"count": count}))
    return StepResult.ok({"count": int(count), "items": [{"title": "first"}, {"title": "second"}]})


async def record_email(email_to: str, email_subject: Optional[str] = None, email_body: Optional[str] = None,
                       api_key: Optional[str] = None) -> StepResult:
    CALLS.append(("record_email", {"email_to": email_to, "email_subject": email_subject, "email_body": email_body}))
    SECRETS.append(api_key)
    return StepResult.ok({"id": f"email-{len(CALLS)}", "to": email_to})


async def explode(message: str) -> StepResult:
    CALLS.append(("explode", {"message": message}))
    raise RuntimeError("step blew up")


def build_registry() -> StepRegistry:
    """Registry whose steps all live in this module"""
    registry = StepRegistry()
    registry.register(StepDefinition(
        action_type="Notify",
        handler=notify,
        function_name="notify",
        import_path=notify.__module__,
        arguments={"message": "message", "fail": "fail", "delay": "delay"},
    ))
    registry.register(StepDefinition(
        action_type="Fetch Count",
        handler=fetch_count,
        function_name="fetch_count",
        import_path=fetch_count.__module__,
        arguments={"count": "count"},
    ))
    registry.register(StepDefinition(
        action_type="Send Email",
        handler=record_email,
        function_name="record_email",
        import_path=record_email.__module__,
        arguments={"emailTo": "email_to", "emailSubject": "email_subject", "emailBody": "email_body"},
        credentials={"RESEND_API_KEY": "api_key"},
        integration="resend",
    ), aliases=["resend/send-email"])
    registry.register(StepDefinition(
        action_type="Explode",
        handler=explode,
        function_name="explode",
        import_path=explode.__module__,
        arguments={"message": "message"},
    ))
    registry.validate()
    return registry
