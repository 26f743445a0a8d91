"""
Runtime configuration for the blueprint studio.

Everything is read from environment variables so the API server, the MCP
server and the CLI agree on where things live:

- BLUEPRINT_HOST / BLUEPRINT_PORT: where the HTTP API listens
- BLUEPRINT_PROJECTS_DIR: default directory for projects and exports
- BLUEPRINT_ORGANIZATION / BLUEPRINT_USER: used in export filenames
- BLUEPRINT_LOG_LEVEL: root log level for entry points
- BLUEPRINT_CORS_ORIGINS: comma separated extra origins for the browser UI
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"]

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass
class StudioConfig:
    """Settings shared by every entry point."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    projects_dir: Path = field(default_factory=lambda: Path("~/blueprints").expanduser())
    organization_name: str = "Org"
    user_name: str = "User"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def api_base(self) -> str:
        return f"http://{self.host}:{self.port}/api"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "StudioConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        port_text = env.get("BLUEPRINT_PORT", str(DEFAULT_PORT))
        try:
            port = int(port_text)
        except ValueError:
            raise ValueError(f"BLUEPRINT_PORT must be an integer, got {port_text!r}") from None

        origins = list(DEFAULT_CORS_ORIGINS)
        extra = env.get("BLUEPRINT_CORS_ORIGINS", "")
        origins.extend(o.strip() for o in extra.split(",") if o.strip())

        return cls(
            host=env.get("BLUEPRINT_HOST", DEFAULT_HOST),
            port=port,
            projects_dir=Path(env.get("BLUEPRINT_PROJECTS_DIR", "~/blueprints")).expanduser(),
            organization_name=env.get("BLUEPRINT_ORGANIZATION", "Org"),
            user_name=env.get("BLUEPRINT_USER", "User"),
            log_level=env.get("BLUEPRINT_LOG_LEVEL", "INFO").upper(),
            cors_origins=origins,
        )


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for an entry point (API server or CLI)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
