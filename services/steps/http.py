"""
HTTP request step.
"""

import json
from typing import Any, Dict, Optional, Union

import httpx

from core.config import settings
from core.logging_config import get_logger
from .registry import StepResult

logger = get_logger(__name__)


def _parse_json_option(value: Union[str, Dict[str, Any], None], name: str) -> Any:
    if value is None or isinstance(value, (dict, list)):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} is not valid JSON: {e}")


async def http_request(endpoint: str, method: str = "POST",
                       headers: Union[str, Dict[str, Any], None] = None,
                       body: Union[str, Dict[str, Any], None] = None) -> StepResult:
    """
    Call an HTTP endpoint

    Args:
        endpoint: URL to call
        method: HTTP method
        headers: Header map, or a JSON object as text
        body: JSON body, or a JSON document as text; ignored for GET

    Returns:
        StepResult whose data is ``{"status": int, "data": parsed body}``
    """
    method = (method or "POST").upper()
    try:
        header_map = _parse_json_option(headers, "headers") or {}
        payload = _parse_json_option(body, "body") if method != "GET" else None
    except ValueError as e:
        return StepResult.fail(str(e))

    logger.info(f"HTTP {method} {endpoint}")
    async with httpx.AsyncClient(timeout=settings.step_timeout_seconds) as client:
        try:
            response = await client.request(method, endpoint, headers=header_map, json=payload)
        except httpx.HTTPError as e:
            return StepResult.fail(f"HTTP request failed: {e}")

    try:
        content: Any = response.json()
    except ValueError:
        content = response.text

    if response.status_code >= 400:
        return StepResult.fail(f"HTTP request failed with status {response.status_code}")
    return StepResult.ok({"status": response.status_code, "data": content})
