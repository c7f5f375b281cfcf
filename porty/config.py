"""Configuration management for porty."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ENV_ALLOWLIST = (
    "NODE_ENV,PORT,DATABASE_URL,RAILS_ENV,FLASK_ENV,DJANGO_SETTINGS_MODULE,"
    "PYTHON_ENV,GO_ENV,RUST_ENV,PATH,HOME,USER,PWD,LANG"
)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PORTY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    debug: bool = False
    json_logs: bool = False

    # External tools
    lsof_bin: str = "lsof"
    ps_bin: str = "ps"
    pgrep_bin: str = "pgrep"
    docker_bin: str = "docker"

    # Per-invocation timeout (seconds); None waits for the tool to finish
    command_timeout: float | None = None

    # Termination
    kill_grace_seconds: float = 0.3

    # Detail view
    parent_chain_limit: int = 10
    env_allowlist: str = DEFAULT_ENV_ALLOWLIST  # Comma-separated variable names

    @field_validator("lsof_bin", "ps_bin", "pgrep_bin", "docker_bin")
    @classmethod
    def validate_binary(cls, v: str) -> str:
        """Reject empty tool names."""
        if not v.strip():
            raise ValueError("Tool binary name must not be empty")
        return v.strip()

    @field_validator("parent_chain_limit")
    @classmethod
    def validate_chain_limit(cls, v: int) -> int:
        """Parent chain walk needs at least one hop."""
        if v < 1:
            raise ValueError("parent_chain_limit must be at least 1")
        return v

    @field_validator("kill_grace_seconds")
    @classmethod
    def validate_grace(cls, v: float) -> float:
        if v < 0:
            raise ValueError("kill_grace_seconds must not be negative")
        return v

    @field_validator("command_timeout")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("command_timeout must be positive")
        return v


settings = Settings()


def get_env_allowlist() -> list[str]:
    """Environment variable names shown in the detail view."""
    return [name.strip() for name in settings.env_allowlist.split(",") if name.strip()]
