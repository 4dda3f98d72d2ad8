"""Learning commands.

Commands:
    learn: resolve any resource identifier and return its content
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, Field, field_validator

from promptmesh.commands import register_command
from promptmesh.commands.base import Affordance, BaseCommand, CommandContext

# Number of learned identifiers kept in the context
LEARNED_HISTORY = 50


class LearnArguments(BaseModel):
    uri: str = Field(
        description="Resource identifier, e.g. thought://remember or knowledge://glossary"
    )

    @field_validator("uri")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("uri must not be empty")
        return value


@register_command
class Learn(BaseCommand):
    name = "learn"
    description = (
        "Learn a resource by identifier (role://, thought://, execution://, "
        "knowledge://, resource://, prompt://, package://, project://, user://)."
    )
    arguments = LearnArguments

    def purpose(self) -> str:
        return "Load a resource into the conversation so it can be applied"

    async def content(self, args: LearnArguments, ctx: CommandContext) -> Dict[str, Any]:
        resolved = await ctx.resolver.resolve(args.uri)

        def _record(context: Dict[str, Any]) -> None:
            learned = [u for u in context.get("learned", []) if u != resolved.uri]
            learned.append(resolved.uri)
            context["learned"] = learned[-LEARNED_HISTORY:]

        await asyncio.to_thread(ctx.store.mutate, _record)
        return {
            "uri": resolved.uri,
            "scheme": resolved.scheme.value,
            "tier": resolved.tier.value if resolved.tier else None,
            "location": resolved.location,
            "content": resolved.content,
        }

    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        affordances = self._setup_affordances(context)
        if not context.get("current_role"):
            affordances.append(
                self._next("action", "Activate a role to apply what was learned", role="<role>")
            )
        affordances.extend([
            self._next("learn", "Learn another resource", uri="<scheme>://<name>"),
            self._next("remember", "Save a takeaway from this resource", content="<text>"),
        ])
        return affordances
