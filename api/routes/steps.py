"""
Step catalog routes.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from services.steps import StepRegistry
from api.dependencies import get_registry

router = APIRouter(prefix="/steps", tags=["Steps"])


@router.get("")
async def list_steps(registry: StepRegistry = Depends(get_registry)) -> Dict[str, Any]:
    """Registered action types with their argument mapping and legacy aliases"""
    aliases: Dict[str, list] = {}
    for alias, action_type in registry.aliases.items():
        aliases.setdefault(action_type, []).append(alias)

    steps = []
    for action_type in registry.action_types():
        entry = registry.get(action_type).to_dict()
        entry["aliases"] = aliases.get(action_type, [])
        steps.append(entry)

    return {"steps": steps, "total": len(steps)}
