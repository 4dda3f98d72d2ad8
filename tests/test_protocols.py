"""Tests for the protocol resolver.

These tests verify:
- Every one of the nine schemes has exactly one handler
- Unsupported schemes fail before any handler runs
- Registry-backed schemes follow the registry's override decision
- Inline references expand by loading mode (mandatory, default, lazy)
- Cycles and path traversal are rejected
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from promptmesh.discovery import DiscoveryService
from promptmesh.errors import (
    ContentResolutionError,
    NotFoundError,
    UnsupportedSchemeError,
)
from promptmesh.protocols import ProtocolResolver, Scheme, parse_identifier
from promptmesh.protocols.remote import RemoteLoader
from promptmesh.registry import ResourceRecord, ResourceRegistry, ResourceTier
from tests import write_resource


def make_resolver(tiers, registry, project=False, remote=None):
    return ProtocolResolver(
        registry,
        package_root=tiers.package,
        user_root=tiers.user,
        project_root=(lambda: tiers.project_resources) if project else (lambda: None),
        remote=remote,
    )


async def discovered(tiers, project=False) -> ResourceRegistry:
    registry = ResourceRegistry()
    service = DiscoveryService(
        package_root=tiers.package,
        user_root=tiers.user,
        project_root=tiers.project_resources if project else None,
    )
    await service.refresh(registry)
    return registry


class TestParseIdentifier:

    @pytest.mark.parametrize(
        "identifier, scheme, path",
        [
            ("role://writer", Scheme.ROLE, "writer"),
            ("@!thought://remember", Scheme.THOUGHT, "remember"),
            ("@?knowledge://basics", Scheme.KNOWLEDGE, "basics"),
            ("@execution://deliberate", Scheme.EXECUTION, "deliberate"),
            ("resource://role:writer", Scheme.RESOURCE, "role:writer"),
            ("prompt://core/welcome.md", Scheme.PROMPT, "core/welcome.md"),
            ("package://resource/role/writer.role.md", Scheme.PACKAGE, "resource/role/writer.role.md"),
            ("project://notes.md", Scheme.PROJECT, "notes.md"),
            ("user://notes.md", Scheme.USER, "notes.md"),
        ],
    )
    def test_supported(self, identifier, scheme, path):
        assert parse_identifier(identifier) == (scheme, path)

    @pytest.mark.parametrize("identifier", ["ftp://host/file", "https://example.org/x", "writer"])
    def test_unsupported(self, identifier):
        with pytest.raises(UnsupportedSchemeError):
            parse_identifier(identifier)

    def test_empty_path(self):
        with pytest.raises(ContentResolutionError):
            parse_identifier("role://")


class TestResolver:

    def test_handler_table_covers_all_schemes(self, tiers, registry):
        resolver = make_resolver(tiers, registry)
        assert sorted(resolver.schemes) == sorted(s.value for s in Scheme)

    @pytest.mark.asyncio
    async def test_unsupported_scheme_runs_no_handler(self, tiers, registry):
        resolver = make_resolver(tiers, registry)
        spies = {}
        for scheme in Scheme:
            handler = resolver.handler(scheme)
            spies[scheme] = handler.resolve = AsyncMock(side_effect=AssertionError("called"))
        with pytest.raises(UnsupportedSchemeError):
            await resolver.resolve("ftp://host/file")
        assert not any(spy.called for spy in spies.values())

    @pytest.mark.asyncio
    async def test_resolve_role_expands_mandatory_reference(self, package_resources):
        registry = await discovered(package_resources)
        resolved = await make_resolver(package_resources, registry).resolve("role://writer")
        assert resolved.scheme is Scheme.ROLE
        assert resolved.tier is ResourceTier.PACKAGE
        assert resolved.location == "package://resource/role/writer.role.md"
        assert "You write clearly." in resolved.content
        assert "Remember what matters." in resolved.content
        assert "@!thought://remember" not in resolved.content

    @pytest.mark.asyncio
    async def test_lazy_reference_left_untouched(self, package_resources):
        registry = await discovered(package_resources)
        resolved = await make_resolver(package_resources, registry).resolve("role://assistant")
        assert "Work step by step." in resolved.content
        assert "@?knowledge://basics" in resolved.content
        assert "Tiers:" not in resolved.content

    @pytest.mark.asyncio
    async def test_role_follows_registry_override(self, package_resources):
        tiers = package_resources
        write_resource(tiers.user, "role", "writer", "# User writer\n")
        registry = await discovered(tiers)
        resolved = await make_resolver(tiers, registry).resolve("role://writer")
        assert resolved.tier is ResourceTier.USER
        assert resolved.content.strip() == "# User writer"

    @pytest.mark.asyncio
    async def test_unknown_role_raises_not_found(self, package_resources):
        registry = await discovered(package_resources)
        with pytest.raises(NotFoundError):
            await make_resolver(package_resources, registry).resolve("role://nobody")

    @pytest.mark.asyncio
    async def test_resource_scheme_uses_full_identifier(self, package_resources):
        registry = await discovered(package_resources)
        resolved = await make_resolver(package_resources, registry).resolve(
            "resource://knowledge:basics"
        )
        assert resolved.content.startswith("Tiers:")

    @pytest.mark.asyncio
    async def test_prompt_scheme_reads_package_prompt(self, package_resources):
        resolver = make_resolver(package_resources, ResourceRegistry())
        resolved = await resolver.resolve("prompt://core/welcome.md")
        assert resolved.content == "Welcome!\n"

    @pytest.mark.asyncio
    async def test_user_scheme_reads_user_root(self, tiers, registry):
        (tiers.user / "notes.md").write_text("user notes")
        resolved = await make_resolver(tiers, registry).resolve("user://notes.md")
        assert resolved.content == "user notes"
        assert resolved.tier is ResourceTier.USER

    @pytest.mark.asyncio
    async def test_project_scheme_without_project_root(self, tiers, registry):
        with pytest.raises(ContentResolutionError, match="root is not configured"):
            await make_resolver(tiers, registry).resolve("project://notes.md")

    @pytest.mark.asyncio
    async def test_project_scheme_with_project_root(self, tiers, registry):
        tiers.project_resources.mkdir()
        (tiers.project_resources / "notes.md").write_text("project notes")
        resolver = make_resolver(tiers, registry, project=True)
        resolved = await resolver.resolve("project://notes.md")
        assert resolved.content == "project notes"

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, tiers, registry):
        (tiers.user.parent / "secret.txt").write_text("secret")
        with pytest.raises(ContentResolutionError, match="escapes"):
            await make_resolver(tiers, registry).resolve("user://../secret.txt")

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tiers, registry):
        with pytest.raises(ContentResolutionError, match="file not found"):
            await make_resolver(tiers, registry).resolve("package://nothing.md")


class TestReferences:

    @pytest.mark.asyncio
    async def test_failed_mandatory_reference_fails_resolution(self, tiers):
        write_resource(tiers.package, "role", "broken", "Start\n@!thought://missing\n")
        registry = await discovered(tiers)
        with pytest.raises(ContentResolutionError, match="mandatory reference failed"):
            await make_resolver(tiers, registry).resolve("role://broken")

    @pytest.mark.asyncio
    async def test_failed_default_reference_leaves_marker(self, tiers):
        write_resource(tiers.package, "role", "partial", "Start @thought://missing.\n")
        registry = await discovered(tiers)
        resolved = await make_resolver(tiers, registry).resolve("role://partial")
        assert "@thought://missing" in resolved.content
        assert "<!-- unresolved:" in resolved.content

    @pytest.mark.asyncio
    async def test_trailing_punctuation_is_kept(self, tiers):
        write_resource(tiers.package, "thought", "short", "Be brief")
        write_resource(tiers.package, "role", "terse", "Rule: @thought://short.\n")
        registry = await discovered(tiers)
        resolved = await make_resolver(tiers, registry).resolve("role://terse")
        assert resolved.content == "Rule: Be brief.\n"

    @pytest.mark.asyncio
    async def test_email_addresses_are_not_references(self, tiers):
        write_resource(tiers.package, "role", "mail", "Contact me@role://x or @@role://y\n")
        registry = await discovered(tiers)
        resolved = await make_resolver(tiers, registry).resolve("role://mail")
        assert resolved.content == "Contact me@role://x or @@role://y\n"

    @pytest.mark.asyncio
    async def test_cycle_detected(self, tiers):
        write_resource(tiers.package, "thought", "a", "A needs @!thought://b\n")
        write_resource(tiers.package, "thought", "b", "B needs @!thought://a\n")
        registry = await discovered(tiers)
        with pytest.raises(ContentResolutionError, match="circular reference"):
            await make_resolver(tiers, registry).resolve("thought://a")

    @pytest.mark.asyncio
    async def test_self_reference_detected(self, tiers):
        write_resource(tiers.package, "knowledge", "loop", "@!knowledge://loop\n")
        registry = await discovered(tiers)
        with pytest.raises(ContentResolutionError, match="circular reference"):
            await make_resolver(tiers, registry).resolve("knowledge://loop")

    @pytest.mark.asyncio
    async def test_cycle_with_default_mode_keeps_marker(self, tiers):
        write_resource(tiers.package, "thought", "a", "A @thought://b\n")
        write_resource(tiers.package, "thought", "b", "B @thought://a\n")
        registry = await discovered(tiers)
        resolved = await make_resolver(tiers, registry).resolve("thought://a")
        assert resolved.content.startswith("A B @thought://a <!-- unresolved:")


class TestRemote:

    @pytest.mark.asyncio
    async def test_internet_record_is_fetched(self, tiers):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://example.org/reviewer.role.md"
            return httpx.Response(200, text="Review carefully. @!thought://remember")

        write_resource(tiers.package, "thought", "remember", "Remember.")
        registry = await discovered(tiers)
        registry.register(
            ResourceRecord(
                id="role:reviewer",
                reference="https://example.org/reviewer.role.md",
                tier=ResourceTier.INTERNET,
            )
        )
        resolver = make_resolver(
            tiers, registry, remote=RemoteLoader(transport=httpx.MockTransport(handler))
        )
        resolved = await resolver.resolve("role://reviewer")
        assert resolved.tier is ResourceTier.INTERNET
        assert resolved.content == "Review carefully. Remember."

    @pytest.mark.asyncio
    async def test_unreachable_remote_raises(self, tiers, registry):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        resolver = make_resolver(
            tiers, registry, remote=RemoteLoader(transport=httpx.MockTransport(handler))
        )
        with pytest.raises(ContentResolutionError, match="unreachable"):
            await resolver.load("https://example.org/x.md")

    @pytest.mark.asyncio
    async def test_http_is_not_a_resolvable_scheme(self, tiers, registry):
        with pytest.raises(UnsupportedSchemeError):
            await make_resolver(tiers, registry).resolve("https://example.org/x.md")
