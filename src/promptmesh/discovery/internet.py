"""Internet discovery: a remote JSON index of resources.

The index is a JSON document of the form::

    {"resources": [
        {"id": "role:reviewer", "url": "https://example.org/reviewer.role.md",
         "priority": 50}
    ]}

Entries without an ``id`` or ``url``, or with a non-integer ``priority``,
are skipped with a warning.
"""

from __future__ import annotations

from typing import Any, List

import httpx

from promptmesh.discovery.base import BaseDiscovery, DiscoveryResult
from promptmesh.errors import DiscoverySourceError
from promptmesh.registry import ResourceRecord, ResourceTier


class InternetDiscovery(BaseDiscovery):
    """Fetch and parse a remote resource index."""

    tier = ResourceTier.INTERNET

    def __init__(
        self,
        index_url: str,
        priority: int = 100,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        self.index_url = index_url
        self.priority = priority
        self.timeout = timeout
        self._transport = transport

    async def discover(self) -> DiscoveryResult:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.get(self.index_url)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise DiscoverySourceError(self.name, f"{self.index_url}: {exc}") from exc
        except ValueError as exc:
            raise DiscoverySourceError(self.name, f"invalid JSON index: {exc}") from exc

        records = self._parse_index(payload)
        self.logger.info("Discovered %d resources from %s", len(records), self.index_url)
        return self._result(records)

    def _parse_index(self, payload: Any) -> List[ResourceRecord]:
        if not isinstance(payload, dict) or not isinstance(payload.get("resources"), list):
            raise DiscoverySourceError(self.name, "index must contain a 'resources' list")

        records: List[ResourceRecord] = []
        for entry in payload["resources"]:
            if not isinstance(entry, dict) or not entry.get("id") or not entry.get("url"):
                self.logger.warning("Skipping malformed index entry: %r", entry)
                continue
            try:
                record = ResourceRecord(
                    id=str(entry["id"]),
                    reference=str(entry["url"]),
                    tier=self.tier,
                    priority=int(entry.get("priority", self.priority)),
                    source=self.name,
                    metadata={"index": self.index_url},
                )
            except (TypeError, ValueError) as exc:
                self.logger.warning("Skipping invalid index entry %r: %s", entry, exc)
                continue
            records.append(record)
        return records
