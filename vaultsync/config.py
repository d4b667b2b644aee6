"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """VaultSync application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=list)

    # Remote repository
    remote_backend: Literal["github", "git"] = "github"
    github_owner: str = ""
    github_repo: str = ""
    remote_ref: str = "main"
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    local_repo_dir: Path | None = None
    remote_timeout: float = Field(default=30.0, gt=0)

    # Vault layout
    article_root: str = "Article/"
    image_root: str = "Attachment/"

    # Content store
    store_backend: Literal["memory", "disk", "sql"] = "memory"
    store_dir: Path = Path("./data/cache")
    database_url: str = "sqlite+aiosqlite:///data/db/vaultsync.db"

    # Content pipeline
    pipeline_mode: Literal["document", "raw"] = "document"
    pandoc_port: int = Field(default=3031, ge=1, le=65535)
    pandoc_timeout: int = Field(default=10, ge=1)
    default_timezone: str = "UTC"
    debug_dir: Path | None = None

    # Sync
    sync_concurrency: int = Field(default=8, ge=1, le=64)
    sync_on_startup: bool = True
    sync_token: str = ""

    def validate_runtime(self) -> None:
        """Reject configurations that cannot run or are unsafe in production."""
        violations: list[str] = []
        if self.remote_backend == "github" and not (self.github_owner and self.github_repo):
            violations.append("GITHUB_OWNER and GITHUB_REPO must be set for the github backend")
        if self.remote_backend == "git" and self.local_repo_dir is None:
            violations.append("LOCAL_REPO_DIR must be set for the git backend")
        if not self.article_root.endswith("/") or not self.image_root.endswith("/"):
            violations.append("ARTICLE_ROOT and IMAGE_ROOT must end with '/'")

        if not self.debug:
            if self.sync_token and len(self.sync_token) < 32:
                violations.append("SYNC_TOKEN must be a high-entropy value (>=32 chars)")
            if not self.trusted_hosts:
                violations.append("TRUSTED_HOSTS must be configured in production")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Invalid configuration: {joined}")
