"""Protocol resolver: ``<scheme>://<path>`` -> content.

Nine schemes are recognised, each served by exactly one handler from a
table built when the resolver is constructed:

    role, thought, execution, knowledge   registry lookup + reference expansion
    resource                              registry lookup by full identifier
    prompt                                package prompt templates
    package, project, user                files relative to a tier root

Unsupported schemes fail with ``UnsupportedSchemeError`` before any handler
runs.

Usage:
    resolver = ProtocolResolver(registry, package_root=..., user_root=...)
    resolved = await resolver.resolve("role://writer")
    print(resolved.content)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict

from promptmesh.errors import ContentResolutionError
from promptmesh.protocols.base import (
    ProtocolHandler,
    ResolutionContext,
    ResolvedContent,
    Scheme,
    parse_identifier,
)
from promptmesh.protocols.files import (
    PackageProtocol,
    ProjectProtocol,
    PromptProtocol,
    UserProtocol,
)
from promptmesh.protocols.registry_backed import RegistryProtocol, ResourceProtocol
from promptmesh.protocols.remote import RemoteLoader, is_remote
from promptmesh.registry import ResourceRegistry, ResourceTier

logger = logging.getLogger(__name__)

# Limit on nested resolutions; each inline reference costs two levels
# (registry lookup + file load)
MAX_DEPTH = 10


class ProtocolResolver:
    """Dispatch identifiers to their scheme handler."""

    def __init__(
        self,
        registry: ResourceRegistry,
        package_root: Path,
        user_root: Path,
        project_root: Callable[[], Path | None] = lambda: None,
        remote: RemoteLoader | None = None,
    ) -> None:
        self.registry = registry
        self.remote = remote or RemoteLoader()

        handlers: list[ProtocolHandler] = [
            RegistryProtocol(Scheme.ROLE, registry),
            RegistryProtocol(Scheme.THOUGHT, registry),
            RegistryProtocol(Scheme.EXECUTION, registry),
            RegistryProtocol(Scheme.KNOWLEDGE, registry),
            ResourceProtocol(registry),
            PromptProtocol(lambda: package_root / "prompt"),
            PackageProtocol(lambda: package_root),
            ProjectProtocol(project_root),
            UserProtocol(lambda: user_root),
        ]
        self._handlers: Dict[Scheme, ProtocolHandler] = {h.scheme: h for h in handlers}

        missing = set(Scheme) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for schemes: {sorted(s.value for s in missing)}")

    @property
    def schemes(self) -> list[str]:
        return [s.value for s in self._handlers]

    def handler(self, scheme: Scheme) -> ProtocolHandler:
        return self._handlers[scheme]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, identifier: str) -> ResolvedContent:
        """Resolve a fully-qualified ``<scheme>://<path>`` identifier.

        Raises:
            UnsupportedSchemeError: Scheme is not one of the nine.
            NotFoundError: A registry-backed identifier is not registered.
            ContentResolutionError: The handler could not load the content.
        """
        return await self.resolve_nested(identifier, ResolutionContext(self))

    async def load(self, location: str) -> ResolvedContent:
        """Load a location reference: any of the nine schemes, or http(s)."""
        return await self.load_nested(location, ResolutionContext(self))

    # ------------------------------------------------------------------
    # Nested resolution (used by handlers)
    # ------------------------------------------------------------------

    async def resolve_nested(self, identifier: str, ctx: ResolutionContext) -> ResolvedContent:
        scheme, path = parse_identifier(identifier)
        key = f"{scheme.value}://{path}"
        if key in ctx.stack:
            chain = " -> ".join(ctx.stack + (key,))
            raise ContentResolutionError(key, f"circular reference: {chain}")
        if len(ctx.stack) >= MAX_DEPTH:
            raise ContentResolutionError(key, f"reference depth exceeds {MAX_DEPTH}")

        handler = self._handlers[scheme]
        logger.debug("Resolving %s via %r", key, handler)
        return await handler.resolve(
            path, ResolutionContext(self, ctx.stack + (key,))
        )

    async def load_nested(self, location: str, ctx: ResolutionContext) -> ResolvedContent:
        if is_remote(location):
            content = await self.remote.fetch(location)
            return ResolvedContent(
                uri=location,
                scheme=Scheme.RESOURCE,
                location=location,
                content=content,
                tier=ResourceTier.INTERNET,
            )
        return await self.resolve_nested(location, ctx)

    def __repr__(self) -> str:
        return f"<ProtocolResolver: {len(self._handlers)} schemes>"


__all__ = [
    "MAX_DEPTH",
    "ProtocolHandler",
    "ProtocolResolver",
    "RemoteLoader",
    "ResolutionContext",
    "ResolvedContent",
    "Scheme",
    "parse_identifier",
]
