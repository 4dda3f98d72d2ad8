"""MCP resource: registry

Lists every active record in the resource registry at:
    promptmesh://registry
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict

from promptmesh.resources import register_resource

if TYPE_CHECKING:
    from promptmesh.runtime import Runtime


@dataclass
class RegistryResource:
    """MCP resource that returns the merged resource registry."""

    uri: str = "promptmesh://registry"
    name: str = "registry"
    description: str = (
        "Every discovered role, thought, execution and knowledge resource "
        "after tier/priority merging, with its location and origin."
    )

    async def read(self, runtime: "Runtime") -> Dict[str, Any]:
        records = sorted(runtime.registry.list(), key=lambda r: r.id)
        return {
            "stats": runtime.registry.stats(),
            "resources": [r.model_dump(mode="json") for r in records],
        }


# Register the resource at import time
RESOURCE = register_resource(RegistryResource())
