"""PATEOAS command registry with auto-discovery.

Commands self-register via the ``@register_command`` class decorator.
After all command modules are imported the ``COMMAND_REGISTRY`` dict maps
command name -> class.  The dispatcher instantiates from this table at
startup.

To add a new command:
1. Create a module in this package with a class inheriting from BaseCommand.
2. Apply the ``@register_command`` decorator to the class.
3. Add the module to ``_COMMAND_MODULES``.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from typing import TYPE_CHECKING, Dict, Type

from promptmesh.errors import ConstructionError

if TYPE_CHECKING:
    from .base import BaseCommand

logger = logging.getLogger(__name__)

COMMAND_REGISTRY: Dict[str, Type["BaseCommand"]] = {}

REQUIRED_COMPUTATIONS = ("purpose", "content", "affordances")

_COMMAND_MODULES = [
    "promptmesh.commands.project",
    "promptmesh.commands.roles",
    "promptmesh.commands.learning",
    "promptmesh.commands.memory",
]


def validate_command_class(cls: type) -> None:
    """Fail fast if *cls* cannot be a complete command.

    Raises:
        ConstructionError: If the class lacks a name or description, or
            leaves any of purpose/content/affordances unimplemented.
    """
    name = getattr(cls, "name", None)
    if not isinstance(name, str) or not name:
        raise ConstructionError(f"{cls.__qualname__} is missing a 'name' class attribute")
    if not isinstance(getattr(cls, "description", None), str):
        raise ConstructionError(f"Command '{name}' is missing a 'description'")

    abstract = set(getattr(cls, "__abstractmethods__", ()))
    missing = [
        attr
        for attr in REQUIRED_COMPUTATIONS
        if attr in abstract or not callable(getattr(cls, attr, None))
    ]
    if missing:
        raise ConstructionError(
            f"Command '{name}' does not implement: {', '.join(missing)}"
        )
    if not inspect.iscoroutinefunction(getattr(cls, "content")):
        raise ConstructionError(f"Command '{name}' content() must be async")


def register_command(cls: Type["BaseCommand"]) -> Type["BaseCommand"]:
    """Class decorator that adds *cls* to the global command table.

    Incomplete commands raise ``ConstructionError`` and duplicate names
    raise ``ValueError`` at import time so mis-configuration is caught early.
    """
    validate_command_class(cls)
    if cls.name in COMMAND_REGISTRY and COMMAND_REGISTRY[cls.name] is not cls:
        raise ValueError(
            f"Duplicate command name '{cls.name}': "
            f"{COMMAND_REGISTRY[cls.name].__qualname__} and {cls.__qualname__}"
        )
    COMMAND_REGISTRY[cls.name] = cls
    logger.debug("Registered command: %s -> %s", cls.name, cls.__qualname__)
    return cls


_imported = False


def _import_all() -> None:
    """Import every command module so ``@register_command`` decorators fire."""
    global _imported
    for mod in _COMMAND_MODULES:
        try:
            importlib.import_module(mod)
        except ConstructionError:
            raise
        except Exception:
            logger.exception("Failed to import command module %s", mod)
    _imported = True


def get_all_commands() -> list[Type["BaseCommand"]]:
    """Return all registered command classes.

    Triggers a lazy import of every command module on first call.
    """
    if not _imported:
        _import_all()
    return list(COMMAND_REGISTRY.values())


__all__ = [
    "COMMAND_REGISTRY",
    "REQUIRED_COMPUTATIONS",
    "get_all_commands",
    "register_command",
    "validate_command_class",
]
