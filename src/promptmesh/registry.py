"""In-memory resource registry with tier/priority override resolution.

Every discovered resource is stored as a ``ResourceRecord`` keyed by its
identifier (``<kind>:<name>``, e.g. ``role:writer``).  When two records
share an identifier the registry keeps exactly one, decided in order by:

1. tier:     USER > PROJECT > PACKAGE > INTERNET
2. priority: smaller value wins
3. time:     later ``registered_at`` wins

The registry performs no I/O.  Mutations are serialized with a lock so the
override decision is atomic under concurrent registration.

Usage:
    from promptmesh.registry import ResourceRegistry, ResourceRecord, ResourceTier

    registry = ResourceRegistry()
    registry.register(ResourceRecord(
        id="role:writer",
        reference="package://resource/role/writer/writer.role.md",
        tier=ResourceTier.PACKAGE,
    ))
    registry.resolve("role:writer")
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import NotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

class ResourceTier(str, Enum):
    """Origin of a resource, listed from highest to lowest precedence."""

    USER = "user"
    PROJECT = "project"
    PACKAGE = "package"
    INTERNET = "internet"

    @property
    def rank(self) -> int:
        """Position in the precedence order; 0 is the strongest tier."""
        return _TIER_ORDER.index(self)


_TIER_ORDER = [
    ResourceTier.USER,
    ResourceTier.PROJECT,
    ResourceTier.PACKAGE,
    ResourceTier.INTERNET,
]

# Merge order for discovery results
TIER_PRECEDENCE: tuple[ResourceTier, ...] = tuple(_TIER_ORDER)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class ResourceRecord(BaseModel):
    """A single registered resource."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier, '<kind>:<name>'")
    reference: str = Field(description="Location reference, e.g. package://... or https://...")
    tier: ResourceTier
    priority: int = 100
    registered_at: datetime = Field(default_factory=_utcnow)
    source: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("registered_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC so every pair stays comparable."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def kind(self) -> str:
        """The part of the identifier before the first colon."""
        kind, sep, _ = self.id.partition(":")
        return kind if sep else ""

    @property
    def name(self) -> str:
        _, sep, name = self.id.partition(":")
        return name if sep else self.id

    def outranks(self, other: "ResourceRecord") -> bool:
        """Return True if this record should replace *other*.

        An exact tie on all three fields keeps the existing record.
        """
        if self.tier is not other.tier:
            return self.tier.rank < other.tier.rank
        if self.priority != other.priority:
            return self.priority < other.priority
        return self.registered_at > other.registered_at


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class RegistryView:
    """Lazy, restartable view over the records of a registry.

    Each iteration takes a fresh snapshot, so iterating twice reflects any
    registrations made in between.
    """

    def __init__(
        self,
        registry: "ResourceRegistry",
        kind: str | None = None,
        tier: ResourceTier | None = None,
    ):
        self._registry = registry
        self._kind = kind
        self._tier = tier

    def __iter__(self) -> Iterator[ResourceRecord]:
        for record in self._registry._snapshot():
            if self._kind is not None and record.kind != self._kind:
                continue
            if self._tier is not None and record.tier is not self._tier:
                continue
            yield record

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"<RegistryView kind={self._kind!r} tier={self._tier!r}>"


class ResourceRegistry:
    """Thread-safe identifier -> record index with override resolution."""

    def __init__(self) -> None:
        self._records: Dict[str, ResourceRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def register(self, record: ResourceRecord) -> bool:
        """Insert *record* or override the existing one if it outranks it.

        Returns:
            True if *record* is now the active record for its identifier,
            False if the existing record was kept.
        """
        with self._lock:
            current = self._records.get(record.id)
            if current is not None and not record.outranks(current):
                logger.debug(
                    "Kept %s from %s/%d over %s/%d",
                    record.id,
                    current.tier.value,
                    current.priority,
                    record.tier.value,
                    record.priority,
                )
                return False
            self._records[record.id] = record

        if current is None:
            logger.debug("Registered %s -> %s", record.id, record.reference)
        else:
            logger.debug(
                "Overrode %s: %s -> %s", record.id, current.reference, record.reference
            )
        return True

    def unregister(self, identifier: str) -> bool:
        """Remove *identifier*.  Returns True if it was present."""
        with self._lock:
            return self._records.pop(identifier, None) is not None

    def clear(self) -> int:
        """Drop every record.  Returns the number removed."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
        return count

    def replace_with(self, other: "ResourceRegistry") -> None:
        """Swap in the records of *other* in a single step.

        Used by refresh so readers never observe a half-populated index.
        """
        records = {r.id: r for r in other._snapshot()}
        with self._lock:
            self._records = records

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, identifier: str) -> ResourceRecord:
        """Return the active record for *identifier*.

        Raises:
            NotFoundError: If nothing is registered under *identifier*.
        """
        with self._lock:
            record = self._records.get(identifier)
        if record is None:
            raise NotFoundError(identifier)
        return record

    def resolve(self, identifier: str) -> str:
        """Return the location reference registered for *identifier*."""
        return self.get(identifier).reference

    def list(
        self,
        kind: str | None = None,
        tier: ResourceTier | None = None,
    ) -> RegistryView:
        """Return a restartable view over the current records."""
        return RegistryView(self, kind=kind, tier=tier)

    def stats(self) -> dict:
        """Return record counts overall, per tier and per kind."""
        records = self._snapshot()
        return {
            "total": len(records),
            "by_tier": dict(Counter(r.tier.value for r in records)),
            "by_kind": dict(Counter(r.kind for r in records)),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _snapshot(self) -> list[ResourceRecord]:
        with self._lock:
            return list(self._records.values())

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __repr__(self) -> str:
        return f"<ResourceRegistry: {len(self)} records>"
