"""MCP prompt: activate_role

Renders a role's full definition, with its thoughts, executions and
knowledge inlined, as a system-style prompt.  Unlike the ``action`` command
it does not change the current role.
"""

from dataclasses import dataclass
from textwrap import dedent
from typing import TYPE_CHECKING

from promptmesh.prompts import register_prompt

if TYPE_CHECKING:
    from promptmesh.runtime import Runtime


@dataclass
class ActivateRolePrompt:
    """Prompt template that puts the model into a role."""

    name: str = "activate_role"
    description: str = (
        "Take on a promptmesh role: its definition with all referenced "
        "thoughts, executions and knowledge inlined."
    )

    async def render(self, runtime: "Runtime", role: str) -> str:
        """Render the role prompt.

        Args:
            runtime: Runtime whose resolver loads the role.
            role: Role name, e.g. ``writer``.

        Returns:
            Fully rendered prompt string.
        """
        resolved = await runtime.resolver.resolve(f"role://{role.strip()}")
        header = dedent(f"""
            You are now acting as the `{role.strip()}` role.
            The definition below was loaded from {resolved.location}.
            Follow it until asked to switch roles.
        """).strip()
        return f"{header}\n\n---\n\n{resolved.content.strip()}\n"


PROMPT = register_prompt(ActivateRolePrompt())
