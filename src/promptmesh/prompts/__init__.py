"""MCP prompt registry for promptmesh.

Prompts are MCP prompt templates rendered from promptmesh resources.  Each
prompt module exposes a ``PROMPT`` instance implementing the
``BasePrompt`` protocol.

After all prompt modules are imported the ``PROMPT_REGISTRY`` dict maps
prompt name -> instance.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any, Dict, Protocol

if TYPE_CHECKING:
    from promptmesh.runtime import Runtime

logger = logging.getLogger(__name__)


class BasePrompt(Protocol):
    """Minimal interface every prompt must satisfy.

    ``render`` takes the runtime first; its remaining parameters become the
    MCP prompt arguments.
    """

    name: str
    description: str

    async def render(self, runtime: "Runtime", **kwargs: Any) -> str:
        """Return the fully-rendered prompt string."""
        ...


PROMPT_REGISTRY: Dict[str, BasePrompt] = {}

_PROMPT_MODULES = [
    "promptmesh.prompts.welcome",
    "promptmesh.prompts.activate_role",
]


def register_prompt(prompt: BasePrompt) -> BasePrompt:
    """Add *prompt* to the global registry.

    Raises ``ValueError`` on duplicate names so mis-configuration is caught
    at import time.
    """
    if prompt.name in PROMPT_REGISTRY:
        raise ValueError(
            f"Duplicate prompt name '{prompt.name}': "
            f"{PROMPT_REGISTRY[prompt.name]!r} and {prompt!r}"
        )
    PROMPT_REGISTRY[prompt.name] = prompt
    logger.debug("Registered prompt: %s", prompt.name)
    return prompt


def get_all_prompts() -> list[BasePrompt]:
    """Return all registered prompt instances.

    Triggers lazy discovery on first call, like ``get_all_commands()``.
    """
    if not PROMPT_REGISTRY:
        for mod in _PROMPT_MODULES:
            try:
                importlib.import_module(mod)
            except Exception:
                logger.exception("Failed to import prompt module %s", mod)
    return list(PROMPT_REGISTRY.values())
