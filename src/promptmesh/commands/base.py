"""Abstract base and envelope models for PATEOAS commands.

Every command answers three questions, and the dispatcher packages the
answers into one ``CommandEnvelope``:

    purpose()              what this command is for (pure, constant)
    content(args, ctx)     the payload (may do I/O, may fail)
    affordances(context)   which commands make sense next (pure function
                           of the persisted context)

Affordances depend only on persisted context, so a client reconnecting
after a restart is offered the same next steps.
"""

from __future__ import annotations

import abc
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Type

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from promptmesh.config import Settings
    from promptmesh.discovery import DiscoveryService
    from promptmesh.protocols import ProtocolResolver
    from promptmesh.registry import ResourceRegistry
    from promptmesh.state import ContextStore


# ---------------------------------------------------------------------------
# Envelope models
# ---------------------------------------------------------------------------

class Affordance(BaseModel):
    """A hint for a command that is meaningfully callable next."""

    command: str
    hint: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class CommandEnvelope(BaseModel):
    """Response of one command invocation."""

    command: str
    success: bool
    purpose: str
    content: Any = None
    affordances: List[Affordance] = Field(default_factory=list)
    error: str | None = None
    error_type: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float | None = None

    def to_markdown(self) -> str:
        """Render the envelope as Markdown for LLM-facing transports."""
        lines = [f"## Purpose\n{self.purpose}", ""]
        if self.success:
            lines.append("## Content")
            if isinstance(self.content, str):
                lines.append(self.content)
            else:
                body = json.dumps(self.content, ensure_ascii=False, indent=2, default=str)
                lines.append(f"```json\n{body}\n```")
        else:
            lines.append("## Error")
            lines.append(f"{self.error_type or 'Error'}: {self.error}")

        if self.affordances:
            lines.append("")
            lines.append("## Next")
            for affordance in self.affordances:
                args = ", ".join(f"{k}={v!r}" for k, v in affordance.arguments.items())
                call = f"`{affordance.command}({args})`"
                lines.append(f"- {call}: {affordance.hint}")
        return "\n".join(lines).strip() + "\n"


class NoArguments(BaseModel):
    """Argument model for commands that take none."""

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Execution context
# ---------------------------------------------------------------------------

@dataclass
class CommandContext:
    """Collaborators a command may use while computing its content.

    Owned by the dispatcher and passed explicitly to every call.
    """

    settings: "Settings"
    registry: "ResourceRegistry"
    resolver: "ProtocolResolver"
    store: "ContextStore"
    discovery: "DiscoveryService"


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BaseCommand(abc.ABC):
    """Abstract base for all PATEOAS commands.

    Subclasses must set class-level ``name`` and ``description`` (and
    ``arguments`` if they take any), and implement ``purpose()``,
    ``content()`` and ``affordances()``.

    Example::

        @register_command
        class Welcome(BaseCommand):
            name = "welcome"
            description = "List available roles"

            def purpose(self) -> str:
                return "Show which roles can be activated"

            async def content(self, args, ctx):
                ...

            def affordances(self, context):
                return [self._next("action", "Activate a role", role="<role>")]
    """

    name: str
    description: str
    arguments: Type[BaseModel] = NoArguments

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"promptmesh.commands.{self.name}")

    @abc.abstractmethod
    def purpose(self) -> str:
        """Human-readable purpose.  Pure; no I/O."""
        ...

    @abc.abstractmethod
    async def content(self, args: BaseModel, ctx: CommandContext) -> Any:
        """Compute the payload.  May raise; the dispatcher converts errors."""
        ...

    @abc.abstractmethod
    def affordances(self, context: Mapping[str, Any]) -> List[Affordance]:
        """Next commands, derived only from the persisted *context*."""
        ...

    # ------------------------------------------------------------------ #
    # Helpers available to every command
    # ------------------------------------------------------------------ #

    @staticmethod
    def _next(command: str, hint: str, **arguments: Any) -> Affordance:
        return Affordance(command=command, hint=hint, arguments=arguments)

    @classmethod
    def _setup_affordances(cls, context: Mapping[str, Any]) -> List[Affordance]:
        """Affordances every command offers before a project is initialised."""
        if context.get("project_root"):
            return []
        return [
            cls._next(
                "init",
                "Initialise a project so its .promptmesh resources are discovered",
                project_root="<absolute project path>",
            )
        ]

    def __repr__(self) -> str:
        return f"<Command: {self.name}>"
