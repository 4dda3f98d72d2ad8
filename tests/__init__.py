"""promptmesh test suite."""

from pathlib import Path
from typing import Any, Dict, Union

from promptmesh.commands.base import CommandEnvelope


def write_resource(root: Path, kind: str, name: str, text: str) -> Path:
    """Create ``<root>/resource/<kind>/<name>.<kind>.md`` and return its path."""
    path = root / "resource" / kind / f"{name}.{kind}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestEnvelopeTemplate:
    """Base class for command tests with common envelope assertions.

    Handles both CommandEnvelope objects and their JSON dict form.
    """

    @staticmethod
    def _as_dict(result: Union[CommandEnvelope, Dict[str, Any]]) -> Dict[str, Any]:
        if isinstance(result, CommandEnvelope):
            return result.model_dump(mode="json")
        assert isinstance(result, dict), "Command must return an envelope or a dict"
        return result

    @classmethod
    def assert_success(cls, result: Union[CommandEnvelope, Dict[str, Any]]) -> None:
        """Assert that a command envelope indicates success."""
        data = cls._as_dict(result)
        assert data["success"], f"Command returned error: {data.get('error')}"
        assert data["purpose"], "Envelope must carry a purpose"

    @classmethod
    def assert_error(
        cls,
        result: Union[CommandEnvelope, Dict[str, Any]],
        error_substring: str = "",
        error_type: str = "",
    ) -> None:
        """Assert that a command envelope indicates an error."""
        data = cls._as_dict(result)
        assert not data["success"], "Command should indicate error"
        assert data["error"], "Error envelope must carry a message"
        if error_substring:
            assert error_substring.lower() in data["error"].lower(), \
                f"Expected error to contain '{error_substring}', got: {data['error']}"
        if error_type:
            assert data["error_type"] == error_type, \
                f"Expected error type {error_type}, got: {data['error_type']}"

    @classmethod
    def get_content(cls, result: Union[CommandEnvelope, Dict[str, Any]]) -> Any:
        return cls._as_dict(result)["content"]

    @classmethod
    def affordance_commands(cls, result: Union[CommandEnvelope, Dict[str, Any]]) -> list:
        return [a["command"] for a in cls._as_dict(result)["affordances"]]


__all__ = ["TestEnvelopeTemplate", "write_resource"]
