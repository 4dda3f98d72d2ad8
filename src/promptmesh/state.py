"""Persisted process context.

The context is a JSON mapping (current role, project root, learned
resources, memories, ...) that survives restarts.  It is read once when the
store is opened and rewritten in full after every mutation.

On-disk format::

    {"schema_version": 1, "context": {...}}

Writes go to a temporary file in the same directory which is flushed,
fsynced and atomically moved over the real file, so a crash mid-write leaves
the previous state intact.

Usage:
    store = ContextStore(Path("~/.promptmesh/state.json").expanduser())
    store.update(current_role="writer")
    store.get("current_role")
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from .errors import StateError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Migrations: version N -> N + 1
# ---------------------------------------------------------------------------

def _migrate_v0(document: Dict[str, Any]) -> Dict[str, Any]:
    """Version 0 stored the context mapping bare, without a wrapper."""
    return {"schema_version": 1, "context": document}


_MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    0: _migrate_v0,
}


def migrate(document: Dict[str, Any]) -> tuple[Dict[str, Any], bool]:
    """Bring *document* up to ``SCHEMA_VERSION``.

    Returns:
        The migrated document and whether any migration ran.

    Raises:
        StateError: If the document is newer than this code understands or
            a migration step is missing.
    """
    if "schema_version" in document and "context" in document:
        version = document["schema_version"]
    else:
        version = 0
    if not isinstance(version, int) or version > SCHEMA_VERSION:
        raise StateError(
            f"State schema version {version!r} is newer than supported ({SCHEMA_VERSION})"
        )

    migrated = False
    while version < SCHEMA_VERSION:
        step = _MIGRATIONS.get(version)
        if step is None:
            raise StateError(f"No migration from state schema version {version}")
        document = step(document)
        logger.info("Migrated state schema %d -> %d", version, document["schema_version"])
        version = document["schema_version"]
        migrated = True
    return document, migrated


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class ContextStore:
    """File-backed context mapping with atomic full rewrites."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._context: Dict[str, Any] = self._load()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._context.get(key, default)
        return copy.deepcopy(value)

    def snapshot(self) -> Dict[str, Any]:
        """Return a deep copy of the whole context."""
        with self._lock:
            return copy.deepcopy(self._context)

    def update(self, changes: Mapping[str, Any] | None = None, **kwargs: Any) -> Dict[str, Any]:
        """Merge *changes* into the context and persist it.

        A value of ``None`` removes the key.

        Returns:
            A snapshot of the context after the update.
        """
        merged = dict(changes or {}, **kwargs)
        with self._lock:
            context = copy.deepcopy(self._context)
            for key, value in merged.items():
                if value is None:
                    context.pop(key, None)
                else:
                    context[key] = value
            self._write(context)
            self._context = context
            return copy.deepcopy(context)

    def mutate(self, fn: Callable[[Dict[str, Any]], None]) -> Dict[str, Any]:
        """Apply *fn* to a copy of the context under the lock and persist it.

        Used for read-modify-write updates such as appending to a list.
        """
        with self._lock:
            context = copy.deepcopy(self._context)
            fn(context)
            self._write(context)
            self._context = context
            return copy.deepcopy(context)

    def reload(self) -> Dict[str, Any]:
        with self._lock:
            self._context = self._load()
            return copy.deepcopy(self._context)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.info("Creating context store at %s", self.path)
            self._write({})
            return {}

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StateError(f"Cannot read state file {self.path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StateError(f"State file {self.path} does not contain a JSON object")

        document, migrated = migrate(document)
        context = document.get("context")
        if not isinstance(context, dict):
            raise StateError(f"State file {self.path} has no context mapping")
        if migrated:
            self._write(context)
        logger.debug("Loaded %d context keys from %s", len(context), self.path)
        return context

    def _write(self, context: Dict[str, Any]) -> None:
        try:
            payload = json.dumps(
                {"schema_version": SCHEMA_VERSION, "context": context},
                ensure_ascii=False,
                indent=2,
                sort_keys=True,
            )
        except (TypeError, ValueError) as exc:
            raise StateError(f"Context is not JSON-serialisable: {exc}") from exc

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __repr__(self) -> str:
        return f"<ContextStore: {self.path}>"
