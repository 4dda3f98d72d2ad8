"""Exception taxonomy for promptmesh.

Registry and resolver errors propagate up to the command dispatcher, which
turns them into error envelopes.  Discovery errors never escape the merge
step; they are collected as failure markers on the discovery report.
"""

from __future__ import annotations


class PromptMeshError(Exception):
    """Base class for every promptmesh error."""


class NotFoundError(PromptMeshError, LookupError):
    """An identifier is not present in the resource registry."""

    def __init__(self, identifier: str):
        super().__init__(f"Resource not found: {identifier}")
        self.identifier = identifier


class UnsupportedSchemeError(PromptMeshError, ValueError):
    """An identifier uses a scheme outside the supported set."""

    def __init__(self, scheme: str, identifier: str = ""):
        message = f"Unsupported scheme '{scheme}'"
        if identifier:
            message += f" in '{identifier}'"
        super().__init__(message)
        self.scheme = scheme
        self.identifier = identifier


class ContentResolutionError(PromptMeshError):
    """A protocol handler could not produce content for a location."""

    def __init__(self, location: str, reason: str):
        super().__init__(f"Cannot resolve '{location}': {reason}")
        self.location = location
        self.reason = reason


class DiscoverySourceError(PromptMeshError):
    """A discovery source failed to scan its tier."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Discovery source '{source}' failed: {reason}")
        self.source = source
        self.reason = reason


class ConstructionError(PromptMeshError, TypeError):
    """A command definition is incomplete and cannot be registered."""


class StateError(PromptMeshError):
    """The persisted context file is unreadable or from a newer version."""
