"""MCP resource registry for promptmesh.

MCP resources expose read-only data at well-known URIs.  Each resource
module exposes a ``RESOURCE`` instance implementing the ``BaseResource``
protocol.

After all resource modules are imported the ``RESOURCE_REGISTRY`` dict
maps resource URI -> instance.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any, Dict, Protocol

if TYPE_CHECKING:
    from promptmesh.runtime import Runtime

logger = logging.getLogger(__name__)


class BaseResource(Protocol):
    """Minimal interface every resource must satisfy."""

    uri: str
    name: str
    description: str

    async def read(self, runtime: "Runtime") -> Dict[str, Any]:
        """Return the resource data as a JSON-serialisable dict."""
        ...


RESOURCE_REGISTRY: Dict[str, BaseResource] = {}

_RESOURCE_MODULES = [
    "promptmesh.resources.registry_info",
    "promptmesh.resources.context_info",
]


def register_resource(resource: BaseResource) -> BaseResource:
    """Add *resource* to the global registry.

    Raises ``ValueError`` on duplicate URIs so mis-configuration is caught
    at import time.
    """
    if resource.uri in RESOURCE_REGISTRY:
        raise ValueError(
            f"Duplicate resource URI '{resource.uri}': "
            f"{RESOURCE_REGISTRY[resource.uri]!r} and {resource!r}"
        )
    RESOURCE_REGISTRY[resource.uri] = resource
    logger.debug("Registered resource: %s -> %s", resource.uri, resource.name)
    return resource


def get_all_resources() -> list[BaseResource]:
    """Import every resource module and return the registered instances.

    Safe to call multiple times.
    """
    for mod in _RESOURCE_MODULES:
        try:
            importlib.import_module(mod)
        except Exception:
            logger.exception("Failed to import resource module %s", mod)
    return list(RESOURCE_REGISTRY.values())
