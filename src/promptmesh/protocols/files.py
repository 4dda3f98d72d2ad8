"""Handlers that read files relative to a tier root.

    package://<path>  ->  <package root>/<path>
    project://<path>  ->  <project root>/.promptmesh/<path>
    user://<path>     ->  <user root>/<path>
    prompt://<path>   ->  <package root>/prompt/<path>

Paths may not escape their root.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

from promptmesh.errors import ContentResolutionError
from promptmesh.protocols.base import (
    ProtocolHandler,
    ResolutionContext,
    ResolvedContent,
    Scheme,
)
from promptmesh.registry import ResourceTier

RootProvider = Callable[[], "Path | None"]


class FileProtocol(ProtocolHandler):
    """Read ``<root>/<path>`` as UTF-8 text."""

    tier: ResourceTier | None = None

    def __init__(self, root: RootProvider) -> None:
        super().__init__()
        self._root = root

    def locate(self, path: str) -> Path:
        """Map *path* to a file under the root, rejecting traversal."""
        root = self._root()
        if root is None:
            raise ContentResolutionError(self.uri(path), f"{self.scheme.value} root is not configured")

        root = root.expanduser().resolve()
        target = (root / path.lstrip("/")).resolve()
        if not target.is_relative_to(root):
            raise ContentResolutionError(self.uri(path), "path escapes its root")
        return target

    async def resolve(self, path: str, ctx: ResolutionContext) -> ResolvedContent:
        target = self.locate(path)
        try:
            content = await asyncio.to_thread(target.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise ContentResolutionError(self.uri(path), f"file not found: {target}") from None
        except (OSError, UnicodeDecodeError) as exc:
            raise ContentResolutionError(self.uri(path), str(exc)) from exc

        self.logger.debug("Read %s (%d chars)", target, len(content))
        return ResolvedContent(
            uri=self.uri(path),
            scheme=self.scheme,
            location=str(target),
            content=content,
            tier=self.tier,
        )


class PackageProtocol(FileProtocol):
    scheme = Scheme.PACKAGE
    tier = ResourceTier.PACKAGE


class ProjectProtocol(FileProtocol):
    scheme = Scheme.PROJECT
    tier = ResourceTier.PROJECT


class UserProtocol(FileProtocol):
    scheme = Scheme.USER
    tier = ResourceTier.USER


class PromptProtocol(FileProtocol):
    """Prompt templates shipped in the package ``prompt/`` directory."""

    scheme = Scheme.PROMPT
    tier = ResourceTier.PACKAGE
