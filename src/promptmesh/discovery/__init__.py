"""Layered resource discovery.

Sources (one per tier) are scanned concurrently and merged into a
``ResourceRegistry`` in the fixed order USER -> PROJECT -> PACKAGE ->
INTERNET.  A failing source never aborts the merge: it contributes nothing
and is reported as a ``DiscoveryFailure`` on the returned report.

Usage:
    from promptmesh.discovery import DiscoveryService

    service = DiscoveryService.from_settings(settings)
    report = await service.refresh(registry)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from promptmesh.config import Settings
from promptmesh.discovery.base import (
    BaseDiscovery,
    DiscoveryFailure,
    DiscoveryReport,
    DiscoveryResult,
)
from promptmesh.discovery.filesystem import (
    RESOURCE_KINDS,
    FileSystemDiscovery,
    PackageDiscovery,
    ProjectDiscovery,
    UserDiscovery,
)
from promptmesh.discovery.internet import InternetDiscovery
from promptmesh.registry import TIER_PRECEDENCE, ResourceRegistry

logger = logging.getLogger(__name__)

# Default for refresh(): keep the current project root
_KEEP = object()


async def discover_resources(
    sources: Sequence[BaseDiscovery],
    registry: ResourceRegistry,
) -> DiscoveryReport:
    """Scan *sources* in parallel and merge their results into *registry*.

    Returns:
        A ``DiscoveryReport`` with per-source counts, the number of records
        registered and discarded, and one failure marker per failed source.
    """
    report = DiscoveryReport()
    outcomes = await asyncio.gather(
        *(source.discover() for source in sources), return_exceptions=True
    )

    results: List[DiscoveryResult] = []
    for source, outcome in zip(sources, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning("Discovery source %s failed: %s", source.name, outcome)
            report.failures.append(
                DiscoveryFailure(source=source.name, tier=source.tier, error=str(outcome))
            )
            results.append(DiscoveryResult(source=source.name, tier=source.tier))
            continue
        results.append(outcome)

    # Single fan-in point: apply results strongest tier first
    results.sort(key=lambda r: r.tier.rank)
    for result in results:
        report.counts[result.source] = len(result)
        for record in result.records:
            # Merge order assumes every record carries its source's tier
            if record.tier is not result.tier:
                message = (
                    f"{record.id}: {result.tier.value} source {result.source} "
                    f"produced a {record.tier.value} record"
                )
                logger.error("Merge order inconsistency: %s", message)
                report.inconsistencies.append(message)

            if registry.register(record):
                report.registered += 1
            else:
                report.discarded += 1

    logger.info(
        "Discovery merged: %d registered, %d discarded, %d failed sources",
        report.registered,
        report.discarded,
        len(report.failures),
    )
    return report


class DiscoveryService:
    """Owns the discovery sources for one runtime.

    The project source depends on the project root, which the ``init``
    command can change at runtime; ``set_project_root()`` rebuilds it.
    """

    def __init__(
        self,
        package_root: Path,
        user_root: Path,
        project_root: Path | None = None,
        index_url: str = "",
        default_priority: int = 100,
        http_timeout: float = 60.0,
    ) -> None:
        self.package_root = package_root
        self.user_root = user_root
        self.project_root = project_root
        self.index_url = index_url
        self.default_priority = default_priority
        self.http_timeout = http_timeout
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DiscoveryService":
        return cls(
            package_root=settings.package_path,
            user_root=settings.user_path,
            project_root=settings.project_path,
            index_url=settings.registry_index_url,
            default_priority=settings.default_priority,
            http_timeout=settings.http_timeout,
        )

    def set_project_root(self, project_root: Path | None) -> None:
        self.project_root = project_root
        logger.info("Project root set to %s", project_root)

    def sources(self) -> List[BaseDiscovery]:
        """Build the source list in merge order."""
        sources: List[BaseDiscovery] = [
            UserDiscovery(self.user_root, priority=self.default_priority),
        ]
        if self.project_root is not None:
            sources.append(ProjectDiscovery(self.project_root, priority=self.default_priority))
        sources.append(PackageDiscovery(self.package_root, priority=self.default_priority))
        if self.index_url:
            sources.append(
                InternetDiscovery(
                    self.index_url,
                    priority=self.default_priority,
                    timeout=self.http_timeout,
                )
            )
        return sources

    async def refresh(
        self,
        registry: ResourceRegistry,
        sources: Iterable[BaseDiscovery] | None = None,
        project_root: Path | None | object = _KEEP,
        commit: Callable[[], None] | None = None,
    ) -> DiscoveryReport:
        """Rescan every tier and swap the result into *registry*.

        Refreshes are serialised. Setting *project_root*, scanning, swapping
        and running *commit* (a blocking callable, run in a worker thread)
        happen as one step under the service lock.
        """
        async with self._lock:
            if project_root is not _KEEP:
                self.set_project_root(project_root)  # type: ignore[arg-type]
            staging = ResourceRegistry()
            if sources is None:
                sources = self.sources()
            report = await discover_resources(list(sources), staging)
            registry.replace_with(staging)
            if commit is not None:
                await asyncio.to_thread(commit)
            return report


__all__ = [
    "BaseDiscovery",
    "DiscoveryFailure",
    "DiscoveryReport",
    "DiscoveryResult",
    "DiscoveryService",
    "FileSystemDiscovery",
    "InternetDiscovery",
    "PackageDiscovery",
    "ProjectDiscovery",
    "RESOURCE_KINDS",
    "TIER_PRECEDENCE",
    "UserDiscovery",
    "discover_resources",
]
