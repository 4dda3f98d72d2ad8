"""MCP prompt: welcome

Renders the bundled ``prompt://core/welcome.md`` template followed by the
roles currently available.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from promptmesh.prompts import register_prompt

if TYPE_CHECKING:
    from promptmesh.runtime import Runtime

WELCOME_TEMPLATE = "prompt://core/welcome.md"


@dataclass
class WelcomePrompt:
    """Introduce promptmesh and list the roles that can be activated."""

    name: str = "welcome"
    description: str = "Introduce promptmesh and list the roles that can be activated."

    async def render(self, runtime: "Runtime") -> str:
        resolved = await runtime.resolver.resolve(WELCOME_TEMPLATE)
        roles = sorted(runtime.registry.list(kind="role"), key=lambda r: r.name)
        lines = [resolved.content.rstrip(), "", "## Available roles"]
        if roles:
            lines.extend(f"- `{r.name}` ({r.tier.value})" for r in roles)
        else:
            lines.append("- none discovered yet; call `init` to scan the resource tiers")
        return "\n".join(lines) + "\n"


PROMPT = register_prompt(WelcomePrompt())
