"""
Credential resolution for step invocations.

Secrets are looked up one node at a time, immediately before the node's
step runs. Resolvers never cache and never log the values they return.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from dotenv import load_dotenv

from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


class CredentialResolver(ABC):
    """Looks up a secret bundle from an opaque integration reference"""

    @abstractmethod
    async def resolve(self, reference: Optional[str], names: Iterable[str]) -> Dict[str, str]:
        """
        Fetch secrets for one step invocation

        Args:
            reference: Integration reference from the node config, or the
                step's default integration
            names: Secret names the step can use

        Returns:
            The subset of ``names`` that has a non-empty value
        """


class EnvironmentCredentialResolver(CredentialResolver):
    """System credentials read from the process environment"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None,
                 env_file: Optional[Union[str, Path]] = None):
        if environ is None and env_file is not None:
            # Values already in the environment take precedence over the file
            load_dotenv(env_file, override=False)
        self.environ = environ if environ is not None else os.environ

    async def resolve(self, reference: Optional[str], names: Iterable[str]) -> Dict[str, str]:
        secrets = {name: self.environ[name] for name in names if self.environ.get(name)}
        logger.debug(f"Resolved {len(secrets)} credential(s) for {reference or 'default'} from environment")
        return secrets


class StaticCredentialResolver(CredentialResolver):
    """User credentials supplied per run, keyed by integration reference"""

    def __init__(self, bundles: Dict[str, Dict[str, str]]):
        self.bundles = bundles

    async def resolve(self, reference: Optional[str], names: Iterable[str]) -> Dict[str, str]:
        bundle = self.bundles.get(reference or "", {})
        secrets = {name: bundle[name] for name in names if bundle.get(name)}
        logger.debug(f"Resolved {len(secrets)} credential(s) for {reference or 'default'} from user bundle")
        return secrets


def create_credential_resolver(source: Optional[str] = None,
                               bundles: Optional[Dict[str, Dict[str, str]]] = None) -> CredentialResolver:
    """Resolver for the configured credential source ("system" or "user")"""
    source = source or settings.credential_source
    if source == "user":
        return StaticCredentialResolver(bundles or {})
    if source != "system":
        raise ValueError(f"Unknown credential source: {source}")
    return EnvironmentCredentialResolver(env_file=".env")
