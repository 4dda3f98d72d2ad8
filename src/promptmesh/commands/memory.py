"""Memory commands.

Commands:
    remember: store a memory item in the persisted context
    recall:   search stored memories; an empty query returns everything
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, Field, field_validator

from promptmesh.commands import register_command
from promptmesh.commands.base import Affordance, BaseCommand, CommandContext


def _clean_tags(tags: List[str]) -> List[str]:
    seen: List[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# ---------------------------------------------------------------------- #
# remember
# ---------------------------------------------------------------------- #


class RememberArguments(BaseModel):
    content: str = Field(description="What to remember")
    tags: List[str] = Field(default_factory=list, description="Optional tags")

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content must not be empty")
        return value

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: List[str]) -> List[str]:
        return _clean_tags(value)


@register_command
class Remember(BaseCommand):
    name = "remember"
    description = "Remember a piece of information so it can be recalled in later sessions."
    arguments = RememberArguments

    def purpose(self) -> str:
        return "Persist a memory item that survives restarts"

    async def content(self, args: RememberArguments, ctx: CommandContext) -> Dict[str, Any]:
        item = {
            "id": uuid.uuid4().hex[:12],
            "content": args.content,
            "tags": args.tags,
            "role": ctx.store.get("current_role"),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        def _append(context: Dict[str, Any]) -> None:
            context.setdefault("memories", []).append(item)

        context = await asyncio.to_thread(ctx.store.mutate, _append)
        self.logger.info("Stored memory %s (%d total)", item["id"], len(context["memories"]))
        return {"memory": item, "total": len(context["memories"])}

    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        affordances = self._setup_affordances(context)
        affordances.append(self._next("recall", "Check what has been remembered", query=""))
        affordances.append(self._next("remember", "Remember something else", content="<text>"))
        return affordances


# ---------------------------------------------------------------------- #
# recall
# ---------------------------------------------------------------------- #


class RecallArguments(BaseModel):
    query: str | None = Field(None, description="Words to search for; empty means no filter")
    tags: List[str] = Field(default_factory=list, description="Only memories with all these tags")
    limit: int | None = Field(None, ge=1, le=1000, description="Maximum memories returned")

    @field_validator("query")
    @classmethod
    def _blank_is_absent(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: List[str]) -> List[str]:
        return _clean_tags(value)


def matches(item: Mapping[str, Any], terms: List[str], tags: List[str]) -> bool:
    """True if every term occurs in the content or tags, and every tag is present."""
    item_tags = [t.lower() for t in item.get("tags", [])]
    if any(tag not in item_tags for tag in tags):
        return False
    haystack = " ".join([str(item.get("content", ""))] + item_tags).lower()
    return all(term in haystack for term in terms)


@register_command
class Recall(BaseCommand):
    name = "recall"
    description = (
        "Recall remembered information.  Every query word must match; an "
        "empty query returns the most recent memories."
    )
    arguments = RecallArguments

    def purpose(self) -> str:
        return "Retrieve previously remembered information"

    async def content(self, args: RecallArguments, ctx: CommandContext) -> Dict[str, Any]:
        memories = ctx.store.get("memories", []) or []
        terms = args.query.lower().split() if args.query else []
        found = [m for m in memories if matches(m, terms, args.tags)]
        found.reverse()  # newest first

        limit = args.limit or ctx.settings.recall_limit
        return {
            "query": args.query,
            "tags": args.tags,
            "filtered": bool(terms or args.tags),
            "total": len(found),
            "memories": found[:limit],
        }

    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        affordances = self._setup_affordances(context)
        affordances.append(self._next("remember", "Save something new", content="<text>"))
        if context.get("current_role"):
            affordances.append(self._next("learn", "Learn a resource to go deeper", uri="<scheme>://<name>"))
        else:
            affordances.append(self._next("welcome", "Pick a role to work with"))
        return affordances
