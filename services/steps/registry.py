"""
Step registry - maps action types to step functions.

The interpreter looks a step up by ``config.actionType`` and calls its
handler with keyword arguments built from the resolved node config. The
code generator looks up the same definition to emit an import of the
handler and a call with the same keyword arguments.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.errors import StepNotFoundError, StepRegistryError
from core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class StepResult:
    """Outcome of one step invocation"""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "StepResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "StepResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "data": self.data, "error": self.error}


StepHandler = Callable[..., Awaitable[StepResult]]


@dataclass
class StepDefinition:
    """
    How to run one action type.

    Attributes:
        action_type: Value of ``config.actionType`` this step serves
        handler: Async function taking keyword arguments, returning StepResult
        function_name: Name to import the handler under in generated code
        import_path: Module the handler is importable from
        arguments: Config key -> handler keyword argument
        credentials: Secret name -> handler keyword argument
        integration: Credential reference used when the node does not name one
        description: One-line summary for listings
    """
    action_type: str
    handler: StepHandler
    function_name: str
    import_path: str
    arguments: Dict[str, str] = field(default_factory=dict)
    credentials: Dict[str, str] = field(default_factory=dict)
    integration: Optional[str] = None
    description: str = ""

    def build_arguments(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Keyword arguments for the handler from a resolved config"""
        return {
            keyword: config[key]
            for key, keyword in self.arguments.items()
            if key in config and config[key] is not None
        }

    def build_credential_arguments(self, secrets: Dict[str, Any]) -> Dict[str, Any]:
        return {
            keyword: secrets[name]
            for name, keyword in self.credentials.items()
            if secrets.get(name)
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_type": self.action_type,
            "function_name": self.function_name,
            "import_path": self.import_path,
            "arguments": dict(self.arguments),
            "credentials": sorted(self.credentials),
            "integration": self.integration,
            "description": self.description,
        }


class StepRegistry:
    """Registry of step definitions keyed by action type"""

    def __init__(self):
        self.steps: Dict[str, StepDefinition] = {}
        self.aliases: Dict[str, str] = {}

    def register(self, definition: StepDefinition, aliases: Optional[List[str]] = None):
        """Register a step, optionally under additional legacy names"""
        if definition.action_type in self.steps:
            logger.warning(f"Replacing step registered for {definition.action_type!r}")
        self.steps[definition.action_type] = definition
        for alias in aliases or []:
            self.aliases[alias] = definition.action_type

    def resolve_type(self, action_type: Optional[str]) -> Optional[str]:
        if not action_type:
            return None
        if action_type in self.steps:
            return action_type
        return self.aliases.get(action_type)

    def has(self, action_type: Optional[str]) -> bool:
        return self.resolve_type(action_type) is not None

    def get(self, action_type: Optional[str]) -> StepDefinition:
        """
        Look up a step definition

        Raises:
            StepNotFoundError: nothing is registered under that name
        """
        canonical = self.resolve_type(action_type)
        if canonical is None:
            raise StepNotFoundError(action_type or "")
        return self.steps[canonical]

    def find(self, action_type: Optional[str]) -> Optional[StepDefinition]:
        canonical = self.resolve_type(action_type)
        return self.steps[canonical] if canonical else None

    def action_types(self) -> List[str]:
        return list(self.steps)

    def validate(self):
        """
        Check every definition against its handler's signature.

        Raises:
            StepRegistryError: a mapped keyword is not accepted by the handler,
                or the handler is not a coroutine function
        """
        for action_type, definition in self.steps.items():
            if not inspect.iscoroutinefunction(definition.handler):
                raise StepRegistryError(f"Step {action_type!r} handler must be an async function")

            parameters = inspect.signature(definition.handler).parameters
            accepts_any = any(p.kind == inspect.Parameter.VAR_KEYWORD for p in parameters.values())
            keywords = list(definition.arguments.values()) + list(definition.credentials.values())
            missing = [kw for kw in keywords if kw not in parameters and not accepts_any]
            if missing:
                raise StepRegistryError(
                    f"Step {action_type!r} maps keywords its handler does not accept: {', '.join(missing)}"
                )

        for alias, target in self.aliases.items():
            if target not in self.steps:
                raise StepRegistryError(f"Alias {alias!r} points at unregistered step {target!r}")

        logger.debug(f"Validated {len(self.steps)} step definitions")
