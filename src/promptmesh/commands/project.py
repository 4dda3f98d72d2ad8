"""Project commands.

Commands:
    init: bind the server to a project directory and rediscover resources
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, Field

from promptmesh.commands import register_command
from promptmesh.commands.base import Affordance, BaseCommand, CommandContext
from promptmesh.config import PROJECT_DIR
from promptmesh.errors import ContentResolutionError


class InitArguments(BaseModel):
    project_root: str = Field(
        "",
        description="Absolute path of the project; empty keeps the current one",
    )


@register_command
class Init(BaseCommand):
    name = "init"
    description = (
        "Initialise promptmesh for a project directory: records the project "
        "root and rescans the user, project and package resource tiers."
    )
    arguments = InitArguments

    def purpose(self) -> str:
        return "Bind the session to a project and refresh the resource registry"

    async def content(self, args: InitArguments, ctx: CommandContext) -> Dict[str, Any]:
        root_text = args.project_root.strip() or ctx.store.get("project_root") or ""
        if not root_text:
            project_root = None
            report = await ctx.discovery.refresh(ctx.registry)
        else:
            project_root = Path(root_text).expanduser().resolve()
            if not project_root.is_dir():
                raise ContentResolutionError(root_text, "project root is not a directory")
            report = await ctx.discovery.refresh(
                ctx.registry,
                project_root=project_root / PROJECT_DIR,
                commit=partial(ctx.store.update, project_root=str(project_root)),
            )

        self.logger.info(
            "Initialised project %s: %d resources", project_root, len(ctx.registry)
        )
        return {
            "project_root": str(project_root) if project_root else None,
            "discovery": report.to_dict(),
            "registry": ctx.registry.stats(),
        }

    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        affordances = self._setup_affordances(context)
        affordances.append(self._next("welcome", "List the roles that can be activated"))
        role = context.get("current_role")
        if role:
            affordances.append(
                self._next("action", f"Re-activate the current role '{role}'", role=role)
            )
        return affordances
