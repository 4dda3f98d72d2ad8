"""Runtime wiring.

A ``Runtime`` owns one registry, one context store, one resolver and one
dispatcher.  Nothing here is a process-wide singleton: the server builds a
runtime at startup and tests build as many as they need.

Usage:
    runtime = build_runtime(settings)
    await runtime.start()
    envelope = await runtime.dispatcher.execute("welcome")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from promptmesh.commands.base import BaseCommand, CommandContext
from promptmesh.commands.dispatcher import CommandDispatcher
from promptmesh.config import PROJECT_DIR, Settings
from promptmesh.discovery import DiscoveryReport, DiscoveryService
from promptmesh.protocols import ProtocolResolver
from promptmesh.protocols.remote import RemoteLoader
from promptmesh.registry import ResourceRegistry
from promptmesh.state import ContextStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    registry: ResourceRegistry
    discovery: DiscoveryService
    resolver: ProtocolResolver
    store: ContextStore
    dispatcher: CommandDispatcher

    async def start(self) -> DiscoveryReport:
        """Run the initial discovery scan."""
        report = await self.discovery.refresh(self.registry)
        logger.info(
            "Runtime started: %d resources (%s)",
            len(self.registry),
            ", ".join(f"{k}={v}" for k, v in report.counts.items()),
        )
        for failure in report.failures:
            logger.warning("Discovery source %s unavailable: %s", failure.source, failure.error)
        return report


def build_runtime(
    settings: Settings,
    commands: Iterable[BaseCommand] | None = None,
    remote: RemoteLoader | None = None,
) -> Runtime:
    """Construct a fully wired runtime from *settings*.

    The project root comes from settings, falling back to the one a
    previous ``init`` persisted in the context store.
    """
    store = ContextStore(settings.state_path)
    registry = ResourceRegistry()
    discovery = DiscoveryService.from_settings(settings)

    if discovery.project_root is None:
        stored_root = store.get("project_root")
        if stored_root:
            discovery.set_project_root(Path(stored_root) / PROJECT_DIR)
    else:
        configured = str(Path(settings.project_root).expanduser().resolve())
        if store.get("project_root") != configured:
            store.update(project_root=configured)

    resolver = ProtocolResolver(
        registry,
        package_root=settings.package_path,
        user_root=settings.user_path,
        project_root=lambda: discovery.project_root,
        remote=remote or RemoteLoader(timeout=settings.http_timeout),
    )
    ctx = CommandContext(
        settings=settings,
        registry=registry,
        resolver=resolver,
        store=store,
        discovery=discovery,
    )
    dispatcher = CommandDispatcher(ctx, commands=commands)
    return Runtime(
        settings=settings,
        registry=registry,
        discovery=discovery,
        resolver=resolver,
        store=store,
        dispatcher=dispatcher,
    )
