"""Configuration for the promptmesh server via environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

# Directory under a project root that holds its resources
PROJECT_DIR = ".promptmesh"


class Settings(BaseSettings):
    """Server configuration loaded from environment variables."""

    # Tier roots.  An empty package_root means the assets bundled with
    # the package; an empty project_root means no project until `init`.
    package_root: str = ""
    project_root: str = ""
    user_root: str = "~/.promptmesh"

    # Persisted context.  Defaults to <user_root>/state.json
    state_file: str = ""

    # Optional internet index; the internet tier is disabled when empty
    registry_index_url: str = ""
    # Per-request timeout (seconds) for index and remote resource fetches
    http_timeout: float = 60.0

    # Priority assigned to discovered records that do not carry their own
    default_priority: int = 100

    # Commands
    recall_limit: int = 20
    response_format: str = "json"

    # "http" serves MCP plus the REST API; "stdio" serves MCP only
    transport: str = "http"

    # Server
    host: str = "0.0.0.0"
    port: int = 8890
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "PROMPTMESH_",
        "env_file": ".env",
        "extra": "ignore",
        "case_sensitive": False,
    }

    # ------------------------------------------------------------------ #
    # Derived paths
    # ------------------------------------------------------------------ #

    @property
    def package_path(self) -> Path:
        if self.package_root:
            return Path(self.package_root).expanduser()
        return Path(__file__).parent / "assets"

    @property
    def project_path(self) -> Path | None:
        if not self.project_root:
            return None
        return Path(self.project_root).expanduser() / PROJECT_DIR

    @property
    def user_path(self) -> Path:
        return Path(self.user_root).expanduser()

    @property
    def state_path(self) -> Path:
        if self.state_file:
            return Path(self.state_file).expanduser()
        return self.user_path / "state.json"


settings = Settings()
