"""Pytest configuration and fixtures for promptmesh tests.

This module provides fixtures for:
- Temporary package / user / project tier directories
- Settings pointing at those directories
- Fully wired runtimes (discovery has not run yet; tests await ``start()``)
"""

from types import SimpleNamespace

import pytest

from promptmesh.config import Settings
from promptmesh.registry import ResourceRegistry
from promptmesh.runtime import build_runtime
from tests import write_resource


@pytest.fixture
def tiers(tmp_path):
    """Empty package, user and project tier roots under *tmp_path*.

    ``project`` is the project directory; its resources live under
    ``project_resources`` (``<project>/.promptmesh``).
    """
    package = tmp_path / "package"
    user = tmp_path / "user"
    project = tmp_path / "project"
    for root in (package, user, project):
        root.mkdir()
    return SimpleNamespace(
        package=package,
        user=user,
        project=project,
        project_resources=project / ".promptmesh",
        state_file=tmp_path / "state" / "state.json",
    )


@pytest.fixture
def package_resources(tiers):
    """A small package tier: two roles, thoughts, an execution and knowledge."""
    write_resource(
        tiers.package,
        "role",
        "writer",
        "# Writer\n\nYou write clearly.\n\n@!thought://remember\n",
    )
    write_resource(
        tiers.package,
        "role",
        "assistant",
        "# Assistant\n\n@!thought://remember\n@execution://deliberate\n@?knowledge://basics\n",
    )
    write_resource(tiers.package, "thought", "remember", "Remember what matters.\n")
    write_resource(tiers.package, "execution", "deliberate", "Work step by step.\n")
    write_resource(tiers.package, "knowledge", "basics", "Tiers: user > project > package.\n")
    prompt = tiers.package / "prompt" / "core" / "welcome.md"
    prompt.parent.mkdir(parents=True)
    prompt.write_text("Welcome!\n", encoding="utf-8")
    return tiers


@pytest.fixture
def settings(tiers):
    """Settings confined to the temporary tier directories."""
    return Settings(
        _env_file=None,
        package_root=str(tiers.package),
        user_root=str(tiers.user),
        project_root="",
        state_file=str(tiers.state_file),
        registry_index_url="",
        recall_limit=20,
        response_format="json",
    )


@pytest.fixture
def runtime(settings, package_resources):
    """A runtime over the package resources.  Call ``await runtime.start()``."""
    return build_runtime(settings)


@pytest.fixture
def registry():
    return ResourceRegistry()
