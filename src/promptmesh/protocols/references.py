"""Inline reference expansion for role, thought, execution and knowledge text.

A document may embed other resources by identifier:

    @!thought://remember     mandatory: replaced by the content; failure raises
    @execution://review      default:   replaced by the content; failure leaves a marker
    @?knowledge://glossary   lazy:      left untouched for the client to load

Nested references are expanded recursively; cycles are rejected by the
resolver.
"""

from __future__ import annotations

import logging
import re

from promptmesh.errors import ContentResolutionError, PromptMeshError
from promptmesh.protocols.base import ResolutionContext, Scheme

logger = logging.getLogger(__name__)

_SCHEMES = "|".join(s.value for s in Scheme)
REFERENCE_PATTERN = re.compile(
    rf"(?<![\w@])@(?P<mode>[!?]?)(?P<uri>(?:{_SCHEMES})://[^\s<>\"'`)\]]+)"
)


async def expand_references(text: str, ctx: ResolutionContext) -> str:
    """Return *text* with mandatory and default references inlined."""
    parts: list[str] = []
    pos = 0
    for match in REFERENCE_PATTERN.finditer(text):
        mode = match.group("mode")
        if mode == "?":
            continue

        uri = match.group("uri").rstrip(".,;:")
        parts.append(text[pos:match.start()])
        try:
            resolved = await ctx.resolver.resolve_nested(uri, ctx)
        except PromptMeshError as exc:
            if mode == "!":
                raise ContentResolutionError(uri, f"mandatory reference failed: {exc}") from exc
            logger.warning("Leaving unresolved reference %s: %s", uri, exc)
            parts.append(match.group(0))
            parts.append(f" <!-- unresolved: {exc} -->")
        else:
            parts.append(resolved.content.strip())
            # Keep any punctuation the URI pattern swallowed
            parts.append(match.group("uri")[len(uri):])
        pos = match.end()

    parts.append(text[pos:])
    return "".join(parts)
