"""Abstract base and result types for discovery sources."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from promptmesh.registry import ResourceRecord, ResourceTier


@dataclass(frozen=True)
class DiscoveryResult:
    """Records produced by one scan of one source.  Immutable once built."""

    source: str
    tier: ResourceTier
    records: Tuple[ResourceRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class DiscoveryFailure:
    """Isolated failure marker for a source that could not be scanned."""

    source: str
    tier: ResourceTier
    error: str

    def to_dict(self) -> dict:
        return {"source": self.source, "tier": self.tier.value, "error": self.error}


@dataclass
class DiscoveryReport:
    """Outcome of one discovery fan-out and merge."""

    counts: dict = field(default_factory=dict)
    registered: int = 0
    discarded: int = 0
    failures: List[DiscoveryFailure] = field(default_factory=list)
    inconsistencies: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return {
            "counts": dict(self.counts),
            "registered": self.registered,
            "discarded": self.discarded,
            "failures": [f.to_dict() for f in self.failures],
            "inconsistencies": list(self.inconsistencies),
        }


class BaseDiscovery(abc.ABC):
    """A collaborator that scans one tier for available resources.

    Subclasses set class-level ``tier`` and implement ``discover()``.
    """

    tier: ResourceTier

    def __init__(self, name: str | None = None) -> None:
        self.name = name or self.tier.value
        self.logger = logging.getLogger(f"promptmesh.discovery.{self.name}")

    @abc.abstractmethod
    async def discover(self) -> DiscoveryResult:
        """Scan the tier once and return every record found.

        Implementations raise ``DiscoverySourceError`` (or anything else) on
        failure; the merge step isolates the failure.
        """
        ...

    def _result(self, records) -> DiscoveryResult:
        return DiscoveryResult(source=self.name, tier=self.tier, records=tuple(records))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self.name}>"
