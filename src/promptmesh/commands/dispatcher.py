"""Command dispatcher: command id + arguments -> ``CommandEnvelope``.

Each call runs Idle -> Executing -> Idle on its own; the dispatcher keeps
no state between calls.  The three computations of a command run in order
purpose -> content -> affordances.  Any failure while validating arguments
or computing content becomes an error envelope, so the transport always
receives a well-formed response.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import ValidationError

from promptmesh.commands import get_all_commands, validate_command_class
from promptmesh.commands.base import (
    Affordance,
    BaseCommand,
    CommandContext,
    CommandEnvelope,
)
from promptmesh.errors import PromptMeshError

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Execute registered commands against an explicitly owned context."""

    def __init__(
        self,
        ctx: CommandContext,
        commands: Iterable[BaseCommand] | None = None,
    ) -> None:
        self.ctx = ctx
        self._commands: Dict[str, BaseCommand] = {}
        if commands is None:
            commands = [cls() for cls in get_all_commands()]
        for command in commands:
            self.register(command)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, command: BaseCommand) -> None:
        """Add a command instance.

        Raises:
            ConstructionError: If the command is incomplete.
            ValueError: If a command with the same name is already registered.
        """
        validate_command_class(type(command))
        if command.name in self._commands:
            raise ValueError(f"Command '{command.name}' is already registered")
        self._commands[command.name] = command
        logger.debug("Dispatcher registered command: %s", command.name)

    def get(self, command_id: str) -> BaseCommand | None:
        return self._commands.get(command_id)

    @property
    def commands(self) -> List[BaseCommand]:
        return list(self._commands.values())

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        command_id: str,
        args: Mapping[str, Any] | None = None,
    ) -> CommandEnvelope:
        """Run *command_id* with *args* and package the result."""
        started = time.perf_counter()
        command = self._commands.get(command_id)
        if command is None:
            return self._unknown_command(command_id, started)

        purpose = command.purpose()
        logger.info("Executing command: %s", command_id)

        content: Any = None
        error: str | None = None
        error_type: str | None = None
        try:
            parsed = command.arguments.model_validate(dict(args or {}))
            content = await command.content(parsed, self.ctx)
        except ValidationError as exc:
            error_type = "ValidationError"
            error = _format_validation_error(exc)
            logger.info("Invalid arguments for %s: %s", command_id, error)
        except PromptMeshError as exc:
            error_type = type(exc).__name__
            error = str(exc)
            logger.warning("Command %s failed: %s", command_id, exc)
        except Exception as exc:
            error_type = type(exc).__name__
            error = f"Command execution failed: {exc}"
            logger.exception("Command %s raised", command_id)

        return CommandEnvelope(
            command=command_id,
            success=error is None,
            purpose=purpose,
            content=content,
            affordances=self._affordances(command),
            error=error,
            error_type=error_type,
            duration_ms=_elapsed_ms(started),
        )

    def available(self) -> List[Affordance]:
        """Every registered command as an affordance."""
        return [
            Affordance(command=c.name, hint=c.description) for c in self._commands.values()
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _affordances(self, command: BaseCommand) -> List[Affordance]:
        context = self.ctx.store.snapshot()
        try:
            return list(command.affordances(context))
        except Exception:
            logger.exception("Affordances for %s failed; offering all commands", command.name)
            return self.available()

    def _unknown_command(self, command_id: str, started: float) -> CommandEnvelope:
        logger.warning("Unknown command: %s", command_id)
        return CommandEnvelope(
            command=command_id,
            success=False,
            purpose="Report an unknown command and list the available ones",
            affordances=self.available(),
            error=(
                f"Unknown command '{command_id}'. "
                f"Available: {', '.join(sorted(self._commands))}"
            ),
            error_type="NotFoundError",
            duration_ms=_elapsed_ms(started),
        )

    def __repr__(self) -> str:
        return f"<CommandDispatcher: {len(self._commands)} commands>"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
