"""Scheme enum, identifier parsing and the protocol handler interface."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Tuple

from pydantic import BaseModel

from promptmesh.errors import ContentResolutionError, UnsupportedSchemeError
from promptmesh.registry import ResourceTier

if TYPE_CHECKING:
    from promptmesh.protocols import ProtocolResolver


class Scheme(str, Enum):
    """The nine identifier schemes the resolver understands."""

    ROLE = "role"
    THOUGHT = "thought"
    EXECUTION = "execution"
    KNOWLEDGE = "knowledge"
    RESOURCE = "resource"
    PROMPT = "prompt"
    PACKAGE = "package"
    PROJECT = "project"
    USER = "user"


# Loading-semantics prefixes accepted in front of an identifier:
#   @!  mandatory, @?  lazy, @  default
LOADING_PREFIXES = ("@!", "@?", "@")


class ResolvedContent(BaseModel):
    """Content produced by a protocol handler."""

    uri: str
    scheme: Scheme
    location: str
    content: str
    tier: ResourceTier | None = None


def parse_identifier(identifier: str) -> Tuple[Scheme, str]:
    """Split ``<scheme>://<path>`` into a ``Scheme`` and a path.

    Raises:
        UnsupportedSchemeError: If the scheme is missing or not one of the nine.
        ContentResolutionError: If the path is empty.
    """
    text = identifier.strip()
    for prefix in LOADING_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):]
            break

    scheme_text, sep, path = text.partition("://")
    if not sep:
        raise UnsupportedSchemeError("", identifier)
    try:
        scheme = Scheme(scheme_text.lower())
    except ValueError:
        raise UnsupportedSchemeError(scheme_text, identifier) from None

    path = path.strip()
    if not path:
        raise ContentResolutionError(identifier, "empty path")
    return scheme, path


@dataclass(frozen=True)
class ResolutionContext:
    """Carried through nested resolutions for cycle detection."""

    resolver: "ProtocolResolver"
    stack: Tuple[str, ...] = ()


class ProtocolHandler(abc.ABC):
    """Resolves the path part of one scheme to content.

    Subclasses set a class-level ``scheme`` and implement ``resolve()``.
    """

    scheme: Scheme

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"promptmesh.protocols.{self.scheme.value}")

    @abc.abstractmethod
    async def resolve(self, path: str, ctx: ResolutionContext) -> ResolvedContent:
        """Locate and load the content addressed by *path*.

        Raises ``ContentResolutionError`` when the content cannot be loaded
        and ``NotFoundError`` when a registry lookup misses.
        """
        ...

    def uri(self, path: str) -> str:
        return f"{self.scheme.value}://{path}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self.scheme.value}>"
