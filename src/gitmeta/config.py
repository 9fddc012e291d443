"""Configuration management with pydantic-settings for gitmeta.

Loads from (in order of precedence):
1. Environment variables (highest priority)
2. .env file in the working directory
3. Default values (lowest priority)

References:
- Pydantic Settings: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_USER_AGENT",
    "GitMetaConfig",
    "get_config",
    "reset_config",
]

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "gitmeta-ingest"
DEFAULT_OUTPUT_DIR = ".gitmeta"
DEFAULT_TOKEN_CACHE = "~/.config/gitmeta/tokens.json"


class GitMetaConfig(BaseSettings):
    """Configuration for gitmeta exports.

    Attributes:
        github_token: Optional GitHub token sent as a Bearer header
        github_api_url: REST API base URL (override for GitHub Enterprise)
        github_user_agent: User-Agent header sent with every request
        request_timeout: httpx timeout in seconds for each request
        output_dir: Directory the CLI writes digests and archives into
        token_cache_path: JSON file holding previously seen tokens
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json or text)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    github_token: SecretStr | None = Field(
        default=None,
        description="GitHub token (classic or fine-grained); anonymous when unset",
    )
    github_api_url: str = Field(
        default=DEFAULT_API_URL,
        description="GitHub REST API base URL",
    )
    github_user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        description="User-Agent header value",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Per-request transport timeout in seconds",
    )

    output_dir: Path = Field(
        default=Path(DEFAULT_OUTPUT_DIR),
        description="Directory for gitmeta.txt and the zip archive",
    )
    token_cache_path: Path = Field(
        default=Path(DEFAULT_TOKEN_CACHE),
        description="Token cache file",
    )

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_format: str = Field(
        default="text",
        pattern="^(json|text)$",
        description="Log format: json (machines), text (terminals)",
    )

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the API base URL so paths can be appended."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"GITHUB_API_URL must be an http(s) URL, got {v!r}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        """Accept lowercase level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("output_dir", "token_cache_path", mode="before")
    @classmethod
    def expand_user_paths(cls, v):
        """Expand ~ and environment variables in paths."""
        if isinstance(v, (str, Path)):
            return Path(os.path.expanduser(os.path.expandvars(str(v))))
        return v

    def token_value(self) -> str | None:
        """Return the configured token as plain text, or None when blank."""
        if self.github_token is None:
            return None
        value = self.github_token.get_secret_value().strip()
        return value or None


@lru_cache(maxsize=1)
def get_config() -> GitMetaConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ValidationError: If configuration values are invalid.
    """
    return GitMetaConfig()


def reset_config() -> None:
    """Reset configuration singleton for testing."""
    get_config.cache_clear()
