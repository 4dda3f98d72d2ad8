"""Role commands.

Commands:
    welcome: list the roles available across all tiers
    action:  activate a role and return its expanded prompt
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, Field, field_validator

from promptmesh.commands import register_command
from promptmesh.commands.base import Affordance, BaseCommand, CommandContext
from promptmesh.registry import TIER_PRECEDENCE


# ---------------------------------------------------------------------- #
# welcome
# ---------------------------------------------------------------------- #


@register_command
class Welcome(BaseCommand):
    name = "welcome"
    description = "List every role that can be activated, grouped by tier."

    def purpose(self) -> str:
        return "Show which roles are available and where each one comes from"

    async def content(self, args: BaseModel, ctx: CommandContext) -> Dict[str, Any]:
        roles = sorted(ctx.registry.list(kind="role"), key=lambda r: r.name)

        by_tier: Dict[str, List[str]] = {tier.value: [] for tier in TIER_PRECEDENCE}
        listing = []
        for record in roles:
            by_tier[record.tier.value].append(record.name)
            listing.append({
                "role": record.name,
                "tier": record.tier.value,
                "source": record.source,
                "reference": record.reference,
            })

        return {
            "current_role": ctx.store.get("current_role"),
            "roles": listing,
            "by_tier": {tier: names for tier, names in by_tier.items() if names},
            "registry": ctx.registry.stats(),
        }

    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        affordances = self._setup_affordances(context)
        affordances.append(
            self._next("action", "Activate one of the listed roles", role="<role>")
        )
        if context.get("current_role"):
            affordances.append(
                self._next("recall", "Recall memories saved under the current role", query="")
            )
        return affordances


# ---------------------------------------------------------------------- #
# action
# ---------------------------------------------------------------------- #


class ActionArguments(BaseModel):
    role: str = Field(description="Role name, e.g. 'writer' or 'role:writer'")

    @field_validator("role")
    @classmethod
    def _normalise(cls, value: str) -> str:
        value = value.strip()
        for prefix in ("@!role://", "@role://", "role://", "role:"):
            if value.startswith(prefix):
                value = value[len(prefix):]
                break
        if not value:
            raise ValueError("role must not be empty")
        return value


@register_command
class Action(BaseCommand):
    name = "action"
    description = (
        "Activate a role: load its definition with all referenced thoughts, "
        "executions and knowledge inlined, and make it the current role."
    )
    arguments = ActionArguments

    def purpose(self) -> str:
        return "Activate a role and hand its full prompt to the client"

    async def content(self, args: ActionArguments, ctx: CommandContext) -> Dict[str, Any]:
        resolved = await ctx.resolver.resolve(f"role://{args.role}")
        await asyncio.to_thread(
            ctx.store.update,
            current_role=args.role,
            role_activated_at=datetime.now(timezone.utc).isoformat(),
        )
        self.logger.info("Activated role %s from %s", args.role, resolved.location)
        return {
            "role": args.role,
            "tier": resolved.tier.value if resolved.tier else None,
            "location": resolved.location,
            "prompt": resolved.content,
        }

    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        affordances = self._setup_affordances(context)
        role = context.get("current_role")
        if role:
            affordances.extend([
                self._next("learn", "Load more thoughts or knowledge for this role", uri="knowledge://<name>"),
                self._next("recall", f"Recall what role '{role}' remembered before", query=""),
                self._next("remember", "Save something worth keeping", content="<text>"),
            ])
        affordances.append(self._next("welcome", "Switch to another role"))
        return affordances
