"""Configuration loader for ghbackport."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Literal, TypeAlias

import tomlkit
from pydantic import BaseModel, Field, field_validator

from ghbackport.core.paths import get_config_path

LogLevelLiteral: TypeAlias = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_LEVEL_VALUES = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})
DEFAULT_GH_TIMEOUT_SECONDS = 60.0


def atomic_write(path: Path, content: str) -> None:
    """Write file atomically to avoid partial/corrupt writes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        Path(tmp_path).replace(path)
    except Exception:
        Path(tmp_path).unlink(missing_ok=True)
        raise


class GitHubConfig(BaseModel):
    """How the GitHub API is reached."""

    gh_path: str | None = Field(
        default=None, description="Path to the gh executable (None = look it up on PATH)"
    )
    hostname: str = Field(default="github.com", description="GitHub host to talk to")
    timeout_seconds: float = Field(
        default=DEFAULT_GH_TIMEOUT_SECONDS,
        description="Timeout for a single gh api call",
    )

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def validate_timeout_seconds(cls, value: object) -> float:
        """Coerce missing or non-positive timeouts to the default."""
        match value:
            case int() | float() as seconds if not isinstance(seconds, bool) and seconds > 0:
                return float(seconds)
            case _:
                pass
        return DEFAULT_GH_TIMEOUT_SECONDS

    @field_validator("hostname", mode="before")
    @classmethod
    def validate_hostname(cls, value: object) -> str:
        match value:
            case str() as hostname if hostname.strip():
                return hostname.strip()
            case _:
                pass
        return "github.com"


class GitConfig(BaseModel):
    """Local clone used to cherry-pick commits."""

    remote: str = Field(default="origin", description="Remote that mirrors the GitHub repository")
    worktree_base: str | None = Field(
        default=None, description="Directory for temporary worktrees (None = platform default)"
    )


class LoggingConfig(BaseModel):
    """Log output settings for the CLI."""

    level: LogLevelLiteral = Field(default="WARNING")

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, value: object) -> str:
        """Gracefully coerce unknown level names to WARNING."""
        match value:
            case str() as level if level.upper() in LOG_LEVEL_VALUES:
                return level.upper()
            case _:
                pass
        return "WARNING"

    @property
    def level_number(self) -> int:
        return logging.getLevelNamesMapping()[self.level]


class BackportConfig(BaseModel):
    """Root configuration model."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> BackportConfig:
        """Load configuration from TOML file or use defaults."""
        if config_path is None:
            config_path = get_config_path()

        if config_path.exists():
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            return cls.model_validate(data)

        return cls()

    def to_toml(self) -> str:
        """Render the configuration as TOML, omitting unset optional values."""
        doc = tomlkit.document()
        for section_name in ("github", "git", "logging"):
            section: BaseModel = getattr(self, section_name)
            table = tomlkit.table()
            for key, value in section.model_dump().items():
                if value is not None:
                    table[key] = value
            doc[section_name] = table
        return tomlkit.dumps(doc)

    async def save(self, path: Path) -> None:
        """Serialize current config to TOML file.

        Args:
            path: Path to write config file (created if missing)
        """
        await asyncio.to_thread(atomic_write, path, self.to_toml())


__all__ = [
    "BackportConfig",
    "GitConfig",
    "GitHubConfig",
    "LoggingConfig",
    "atomic_write",
]
