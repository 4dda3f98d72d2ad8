"""FastMCP server entry point for promptmesh.

Creates and runs the MCP server with:
- one MCP tool per PATEOAS command (init, welcome, action, learn, recall,
  remember) returning purpose/content/affordances envelopes
- MCP resources for the merged registry and the persisted context
- MCP prompts rendered from bundled prompt templates and roles
- REST API endpoints for direct integration
- CORS enabled for LAN use

Usage:
    python -m promptmesh.main
    PROMPTMESH_TRANSPORT=stdio promptmesh
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from functools import wraps
from typing import Any, List

from fastmcp import FastMCP

from . import __version__
from .commands.base import BaseCommand
from .config import Settings, settings
from .errors import ContentResolutionError, NotFoundError, UnsupportedSchemeError
from .prompts import get_all_prompts
from .registry import ResourceTier
from .resources import get_all_resources
from .runtime import Runtime, build_runtime

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Lightweight instrument_command (no external telemetry dependency)
# ---------------------------------------------------------------------------

def instrument_command(command_name: str):
    """Decorator that wraps a command handler for logging.

    Uses ``@wraps`` so that ``inspect.signature()`` follows ``__wrapped__``
    and FastMCP sees the generated parameter signature.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger.debug("Command invoked over MCP: %s", command_name)
            try:
                return await func(*args, **kwargs)
            except Exception:
                logger.exception("Command %s failed", command_name)
                raise

        return wrapper

    return decorator


def command_signature(command: BaseCommand) -> inspect.Signature:
    """Build a keyword-only signature from a command's argument model."""
    params = []
    for field_name, field in command.arguments.model_fields.items():
        default = (
            inspect.Parameter.empty
            if field.is_required()
            else field.get_default(call_default_factory=True)
        )
        params.append(
            inspect.Parameter(
                field_name,
                inspect.Parameter.KEYWORD_ONLY,
                default=default,
                annotation=field.annotation,
            )
        )
    return inspect.Signature(params)


def _make_command_handler(runtime: Runtime, command: BaseCommand):
    """Return an async callable FastMCP can register for *command*."""
    markdown = runtime.settings.response_format.lower() == "markdown"

    async def _handler(**kwargs: Any):
        envelope = await runtime.dispatcher.execute(command.name, kwargs)
        if markdown:
            return envelope.to_markdown()
        return envelope.model_dump(mode="json")

    sig = command_signature(command)
    return_type = str if markdown else dict
    _handler.__name__ = f"command_{command.name}"
    _handler.__doc__ = command.description
    _handler.__signature__ = sig.replace(return_annotation=return_type)
    _handler.__annotations__ = {
        name: param.annotation for name, param in sig.parameters.items()
    }
    _handler.__annotations__["return"] = return_type
    return _handler


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(runtime: Runtime) -> FastMCP:
    """Create and configure the FastMCP application.

    Args:
        runtime: Wired runtime whose dispatcher backs every tool.

    Returns:
        Configured FastMCP instance.
    """
    configure_logging(runtime.settings.log_level)
    logger.info("Starting promptmesh server v%s", __version__)

    mcp = FastMCP(
        name="promptmesh",
        instructions=(
            "This MCP server serves AI roles, thoughts, executions and knowledge "
            "from layered resource tiers (user > project > package > internet).\n\n"
            "Every tool returns an envelope with three parts:\n"
            "- purpose: what the command is for\n"
            "- content: the result\n"
            "- affordances: the commands that make sense next\n\n"
            "Typical flow: init -> welcome -> action(role) -> learn / recall / remember.\n"
            "Resource identifiers look like role://writer, thought://remember, "
            "knowledge://glossary, resource://role:writer, prompt://core/welcome.md.\n"
        ),
    )

    # ------------------------------------------------------------------
    # Register commands as MCP tools
    # ------------------------------------------------------------------
    logger.info("Registering commands...")
    for command in runtime.dispatcher.commands:
        handler = _make_command_handler(runtime, command)
        instrumented = instrument_command(command.name)(handler)
        mcp.tool(
            name=command.name,
            description=command.description,
        )(instrumented)
        logger.info("  Registered command: %s", command.name)

    # ------------------------------------------------------------------
    # Register resources
    # ------------------------------------------------------------------
    logger.info("Registering resources...")
    for resource in get_all_resources():

        async def _reader(_r=resource) -> dict:
            return await _r.read(runtime)

        _reader.__name__ = f"resource_{resource.name}"
        _reader.__signature__ = inspect.Signature([], return_annotation=dict)
        mcp.resource(
            resource.uri,
            name=resource.name,
            description=resource.description,
            mime_type="application/json",
        )(_reader)
        logger.info("  Registered resource: %s", resource.uri)

    # ------------------------------------------------------------------
    # Register prompts
    # ------------------------------------------------------------------
    logger.info("Registering prompts...")
    for prompt in get_all_prompts():

        async def _prompt_renderer(_p=prompt, **kwargs) -> str:
            return await _p.render(runtime, **kwargs)

        _prompt_renderer.__name__ = f"prompt_{prompt.name}"
        # The runtime is bound here; the remaining parameters are the prompt's
        render_params = [
            param
            for name, param in inspect.signature(prompt.render).parameters.items()
            if name != "runtime"
        ]
        _prompt_renderer.__annotations__ = {
            param.name: (
                param.annotation
                if param.annotation is not inspect.Parameter.empty
                else str
            )
            for param in render_params
        }
        _prompt_renderer.__annotations__["return"] = str
        _prompt_renderer.__signature__ = inspect.Signature(
            render_params, return_annotation=str
        )

        mcp.prompt(name=prompt.name, description=prompt.description)(
            _prompt_renderer
        )
        logger.info("  Registered prompt: %s", prompt.name)

    # ------------------------------------------------------------------
    # Health-check tool (always present)
    # ------------------------------------------------------------------
    @mcp.tool(name="health", description="Health check for the promptmesh server")
    async def health_check() -> dict:
        return _health(runtime)

    logger.info("MCP server configured successfully")
    return mcp


def _health(runtime: Runtime) -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "resources": len(runtime.registry),
        "project_root": runtime.store.get("project_root"),
    }


# ---------------------------------------------------------------------------
# REST API layer (Starlette routes mounted on the FastMCP HTTP app)
# ---------------------------------------------------------------------------

def build_rest_routes(runtime: Runtime) -> list:
    """Build the REST routes served next to the MCP endpoint."""
    from starlette.requests import Request
    from starlette.responses import JSONResponse
    from starlette.routing import Route

    dispatcher = runtime.dispatcher

    async def rest_health(request: Request) -> JSONResponse:
        """GET /api/health"""
        return JSONResponse(_health(runtime))

    async def rest_list_commands(request: Request) -> JSONResponse:
        """GET /api/commands -- commands with their argument schemas."""
        return JSONResponse(
            {
                "commands": [
                    {
                        "name": c.name,
                        "description": c.description,
                        "arguments": c.arguments.model_json_schema(),
                    }
                    for c in dispatcher.commands
                ]
            }
        )

    async def rest_command_handler(request: Request) -> JSONResponse:
        """POST /api/commands/{command} -- execute a command."""
        name = request.path_params["command"]
        try:
            body = await request.json() if await request.body() else {}
        except ValueError:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"error": "Body must be a JSON object"}, status_code=400)

        envelope = await dispatcher.execute(name, body)
        status = 200
        if dispatcher.get(name) is None:
            status = 404
        elif envelope.error_type == "ValidationError":
            status = 422
        return JSONResponse(envelope.model_dump(mode="json"), status_code=status)

    async def rest_list_resources(request: Request) -> JSONResponse:
        """GET /api/resources?kind=role&tier=user -- registry listing."""
        kind = request.query_params.get("kind") or None
        tier_text = request.query_params.get("tier") or None
        try:
            tier = ResourceTier(tier_text) if tier_text else None
        except ValueError:
            return JSONResponse({"error": f"Unknown tier: {tier_text}"}, status_code=400)

        records = sorted(runtime.registry.list(kind=kind, tier=tier), key=lambda r: r.id)
        return JSONResponse(
            {"resources": [r.model_dump(mode="json") for r in records]}
        )

    async def rest_resolve(request: Request) -> JSONResponse:
        """GET /api/resolve?uri=role://writer -- resolve one identifier."""
        uri = request.query_params.get("uri")
        if not uri:
            return JSONResponse({"error": "\"uri\" query parameter is required"}, status_code=400)
        try:
            resolved = await runtime.resolver.resolve(uri)
        except UnsupportedSchemeError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except NotFoundError as e:
            return JSONResponse({"error": str(e)}, status_code=404)
        except ContentResolutionError as e:
            return JSONResponse({"error": str(e)}, status_code=422)
        except Exception as e:
            logger.exception("Failed to resolve %s", uri)
            return JSONResponse({"error": str(e)}, status_code=500)
        return JSONResponse(resolved.model_dump(mode="json"))

    async def rest_openapi(request: Request) -> JSONResponse:
        """GET /openapi.json -- dynamically generated OpenAPI spec."""
        return JSONResponse(build_openapi_spec(runtime))

    return [
        Route("/api/health", rest_health, methods=["GET"]),
        Route("/api/commands", rest_list_commands, methods=["GET"]),
        Route("/api/commands/{command}", rest_command_handler, methods=["POST"]),
        Route("/api/resources", rest_list_resources, methods=["GET"]),
        Route("/api/resolve", rest_resolve, methods=["GET"]),
        Route("/openapi.json", rest_openapi, methods=["GET"]),
    ]


def main() -> None:
    """Entry point: build the runtime, create the FastMCP app, serve it."""
    configure_logging(settings.log_level)
    runtime = build_runtime(settings)
    asyncio.run(runtime.start())
    mcp = create_app(runtime)

    if settings.transport.lower() == "stdio":
        logger.info("Serving MCP over stdio")
        mcp.run()
        return

    import uvicorn
    from starlette.middleware.cors import CORSMiddleware

    app = mcp.http_app()
    app.routes.extend(build_rest_routes(runtime))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    logger.info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# OpenAPI spec builder
# ---------------------------------------------------------------------------

_ENVELOPE_SCHEMA = {
    "type": "object",
    "properties": {
        "command": {"type": "string"},
        "success": {"type": "boolean"},
        "purpose": {"type": "string"},
        "content": {},
        "affordances": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "command": {"type": "string"},
                    "hint": {"type": "string"},
                    "arguments": {"type": "object"},
                },
            },
        },
        "error": {"type": ["string", "null"]},
        "error_type": {"type": ["string", "null"]},
        "timestamp": {"type": "string", "format": "date-time"},
        "duration_ms": {"type": ["number", "null"]},
    },
}


def _json_response(description: str, schema: dict) -> dict:
    return {
        "description": description,
        "content": {"application/json": {"schema": schema}},
    }


def build_openapi_spec(runtime: Runtime, config: Settings | None = None) -> dict:
    """Generate a minimal OpenAPI 3.1 spec from the command table."""
    config = config or runtime.settings
    paths: dict[str, Any] = {
        "/api/health": {
            "get": {
                "summary": "Health check",
                "operationId": "health",
                "responses": {"200": _json_response("Server health status", {"type": "object"})},
            }
        },
        "/api/resources": {
            "get": {
                "summary": "List registered resources",
                "operationId": "list_resources",
                "parameters": [
                    {"name": "kind", "in": "query", "schema": {"type": "string"}},
                    {
                        "name": "tier",
                        "in": "query",
                        "schema": {"type": "string", "enum": [t.value for t in ResourceTier]},
                    },
                ],
                "responses": {"200": _json_response("Registry records", {"type": "object"})},
            }
        },
        "/api/resolve": {
            "get": {
                "summary": "Resolve a <scheme>://<path> identifier",
                "operationId": "resolve",
                "parameters": [
                    {"name": "uri", "in": "query", "required": True, "schema": {"type": "string"}}
                ],
                "responses": {
                    "200": _json_response("Resolved content", {"type": "object"}),
                    "400": {"description": "Unsupported scheme"},
                    "404": {"description": "Identifier not registered"},
                    "422": {"description": "Content could not be loaded"},
                },
            }
        },
    }

    commands: List[BaseCommand] = runtime.dispatcher.commands
    for command in commands:
        paths[f"/api/commands/{command.name}"] = {
            "post": {
                "summary": command.description,
                "operationId": f"command_{command.name}",
                "requestBody": {
                    "required": False,
                    "content": {
                        "application/json": {"schema": command.arguments.model_json_schema()}
                    },
                },
                "responses": {
                    "200": _json_response("Command envelope", _ENVELOPE_SCHEMA),
                    "422": _json_response("Invalid arguments", _ENVELOPE_SCHEMA),
                },
            }
        }

    return {
        "openapi": "3.1.0",
        "info": {
            "title": "promptmesh",
            "version": __version__,
            "description": (
                "REST API for layered prompt resources and PATEOAS commands."
            ),
        },
        "servers": [{"url": f"http://localhost:{config.port}"}],
        "paths": paths,
    }


if __name__ == "__main__":
    main()
