"""MCP resource: context

Exposes the persisted session context (current role, project root, learned
resources, memory count) at:
    promptmesh://context
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict

from promptmesh.resources import register_resource

if TYPE_CHECKING:
    from promptmesh.runtime import Runtime


@dataclass
class ContextResource:
    """MCP resource that returns a summary of the persisted context."""

    uri: str = "promptmesh://context"
    name: str = "context"
    description: str = (
        "The persisted session context: project root, current role, learned "
        "resources and number of stored memories."
    )

    async def read(self, runtime: "Runtime") -> Dict[str, Any]:
        context = runtime.store.snapshot()
        memories = context.pop("memories", [])
        context["memory_count"] = len(memories)
        context["state_file"] = str(runtime.store.path)
        return context


# Register the resource at import time
RESOURCE = register_resource(ContextResource())
