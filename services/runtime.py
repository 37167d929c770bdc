"""
Runtime helpers shared by the interpreter and generated workflow modules.

The code generator copies these functions into every generated module, so
each one must be self-contained: standard library only, referencing no
module globals other than ``asyncio``, ``logger`` and ``time`` and the
other helpers defined here.
"""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class StepFailed(Exception):
    """A step reported failure; the branch it ran on stops"""


def now_ms():
    """Milliseconds since the epoch"""
    return int(time.time() * 1000)


def stamp_output(payload, **fields):
    """Copy a payload and add ``fields`` plus a millisecond timestamp"""
    data = dict(payload) if isinstance(payload, dict) else {"input": payload}
    data.update(fields)
    data["timestamp"] = now_ms()
    return data


def unwrap_step_result(result):
    """Data of a successful step result; raises StepFailed otherwise"""
    if isinstance(result, dict) and "success" in result:
        success, data, error = result.get("success"), result.get("data"), result.get("error")
    elif hasattr(result, "success"):
        success, data, error = result.success, getattr(result, "data", None), getattr(result, "error", None)
    else:
        return result
    if not success:
        raise StepFailed(error or "Step failed")
    return data


async def join_branches(*branches, concurrent=True):
    """
    Await every branch and report which of them finished.

    Branches run together when ``concurrent`` is true and one after another
    otherwise; in both cases a failing branch never stops its siblings, and
    nothing is raised. Returns one flag per branch, in order.
    """
    if concurrent:
        outcomes = await asyncio.gather(*branches, return_exceptions=True)
    else:
        outcomes = []
        for branch in branches:
            try:
                outcomes.append(await branch)
            except Exception as exc:
                outcomes.append(exc)
    for position, outcome in enumerate(outcomes, start=1):
        if isinstance(outcome, Exception):
            logger.error(f"Branch {position} of {len(outcomes)} stopped: {outcome}")
    return [not isinstance(outcome, Exception) and outcome is not False for outcome in outcomes]


async def run_isolated(label, branch):
    """Run everything reachable from one trigger; failures are logged, not raised"""
    try:
        await branch
        return True
    except Exception as exc:
        logger.error(f"Workflow branch from {label!r} stopped: {exc}")
        return False
