"""Handlers backed by the resource registry.

``role://writer`` looks up ``role:writer`` in the registry and loads the
location it points at.  The registry's override rule is the only place
tier precedence is decided; these handlers never scan tiers themselves.

``resource://<id>`` does the same for any registry identifier, e.g.
``resource://knowledge:glossary``.
"""

from __future__ import annotations

from promptmesh.protocols.base import (
    ProtocolHandler,
    ResolutionContext,
    ResolvedContent,
    Scheme,
)
from promptmesh.protocols.references import expand_references
from promptmesh.registry import ResourceRegistry


class RegistryProtocol(ProtocolHandler):
    """Resolve ``<scheme>://<name>`` through the registry entry ``<scheme>:<name>``."""

    def __init__(self, scheme: Scheme, registry: ResourceRegistry) -> None:
        self.scheme = scheme
        super().__init__()
        self._registry = registry

    def identifier(self, path: str) -> str:
        return f"{self.scheme.value}:{path}"

    async def resolve(self, path: str, ctx: ResolutionContext) -> ResolvedContent:
        record = self._registry.get(self.identifier(path))
        loaded = await ctx.resolver.load_nested(record.reference, ctx)
        content = await expand_references(loaded.content, ctx)
        return ResolvedContent(
            uri=self.uri(path),
            scheme=self.scheme,
            location=record.reference,
            content=content,
            tier=record.tier,
        )


class ResourceProtocol(RegistryProtocol):
    """``resource://<kind>:<name>``: address any registry record by its id."""

    def __init__(self, registry: ResourceRegistry) -> None:
        super().__init__(Scheme.RESOURCE, registry)

    def identifier(self, path: str) -> str:
        return path
