"""File-system discovery for the package, project and user tiers.

Each tier root holds a ``resource/`` directory.  Any file named
``<name>.<kind>.md`` below it is discovered, where kind is one of
``role``, ``thought``, ``execution`` or ``knowledge``::

    <root>/resource/role/writer/writer.role.md
        -> id        role:writer
        -> reference package://resource/role/writer/writer.role.md
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from promptmesh.discovery.base import BaseDiscovery, DiscoveryResult
from promptmesh.errors import DiscoverySourceError
from promptmesh.registry import ResourceRecord, ResourceTier

RESOURCE_KINDS = ("role", "thought", "execution", "knowledge")
RESOURCE_DIR = "resource"


class FileSystemDiscovery(BaseDiscovery):
    """Scan ``<root>/resource`` for ``<name>.<kind>.md`` files."""

    def __init__(
        self,
        root: Path,
        priority: int = 100,
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        self.root = Path(root)
        self.priority = priority

    async def discover(self) -> DiscoveryResult:
        # Directory walks block; run them off the event loop so sources
        # really scan in parallel.
        records = await asyncio.to_thread(self._scan)
        self.logger.info("Discovered %d resources under %s", len(records), self.root)
        return self._result(records)

    def _scan(self) -> List[ResourceRecord]:
        resource_dir = self.root / RESOURCE_DIR
        if not resource_dir.exists():
            self.logger.debug("No resource directory at %s", resource_dir)
            return []
        if not resource_dir.is_dir():
            raise DiscoverySourceError(self.name, f"{resource_dir} is not a directory")

        records: List[ResourceRecord] = []
        try:
            for path in sorted(resource_dir.rglob("*.md")):
                parsed = self._parse_name(path.name)
                if parsed is None or not path.is_file():
                    continue
                kind, name = parsed
                rel = path.relative_to(self.root).as_posix()
                mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                records.append(
                    ResourceRecord(
                        id=f"{kind}:{name}",
                        reference=f"{self.tier.value}://{rel}",
                        tier=self.tier,
                        priority=self.priority,
                        registered_at=mtime,
                        source=self.name,
                        metadata={"path": rel},
                    )
                )
        except OSError as exc:
            raise DiscoverySourceError(self.name, str(exc)) from exc
        return records

    @staticmethod
    def _parse_name(filename: str) -> tuple[str, str] | None:
        """Split ``writer.role.md`` into ``("role", "writer")``."""
        stem = filename[: -len(".md")]
        name, dot, kind = stem.rpartition(".")
        if not dot or not name or kind not in RESOURCE_KINDS:
            return None
        return kind, name


class PackageDiscovery(FileSystemDiscovery):
    """Resources bundled with the installed package."""

    tier = ResourceTier.PACKAGE


class ProjectDiscovery(FileSystemDiscovery):
    """Resources under ``<project>/.promptmesh``."""

    tier = ResourceTier.PROJECT


class UserDiscovery(FileSystemDiscovery):
    """Resources under the user's home directory (``~/.promptmesh``)."""

    tier = ResourceTier.USER
