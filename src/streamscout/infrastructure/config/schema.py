"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from streamscout.domain.entities.features import Target
from streamscout.domain.entities.run import ProxyConfig, RunOverrides

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


def _split_ids(value: Any) -> Any:
    """Accept ``"a, b"`` as well as ``["a", "b"]`` for id lists."""
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class ProxySettings(BaseModel):
    """Stream proxy endpoints (YAML section: proxy.*)."""

    base_url: Optional[str] = Field(
        default=None,
        description="Proxy that rewrites header-bearing streams. Unset = no proxying.",
    )
    m3u8_proxy_url: Optional[str] = Field(
        default=None,
        description="Host for /m3u8-proxy URLs (falls back to base_url).",
    )

    def to_proxy_config(self) -> ProxyConfig:
        return ProxyConfig(base_url=self.base_url, m3u8_proxy_url=self.m3u8_proxy_url)


class RunnerConfig(BaseModel):
    """Resolution defaults (YAML section: runner.*)."""

    source_order: list[str] = Field(
        default_factory=list,
        description="Source ids tried first, in this order.",
    )
    embed_order: list[str] = Field(
        default_factory=list,
        description="Embed ids tried first, in this order.",
    )
    timeout_ms: Optional[int] = Field(
        default=None,
        description="Time budget for one resolution (ms). Unset = unbounded.",
    )
    provider_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Cap for a single source/embed attempt (seconds).",
    )

    @field_validator("source_order", "embed_order", mode="before")
    @classmethod
    def _validate_order(cls, v: Any) -> Any:
        return _split_ids(v)

    @field_validator("timeout_ms")
    @classmethod
    def _validate_timeout(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("runner.timeout_ms must be >= 0")
        return v

    @field_validator("provider_timeout_seconds")
    @classmethod
    def _validate_provider_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("runner.provider_timeout_seconds must be > 0")
        return v

    def to_overrides(self) -> RunOverrides:
        return RunOverrides(
            source_order=tuple(self.source_order),
            embed_order=tuple(self.embed_order),
            timeout_ms=self.timeout_ms,
        )


class ValidationConfig(BaseModel):
    """Stream playability probing (YAML section: validation.*)."""

    enabled: bool = Field(default=True, description="Probe streams before returning.")
    skip_ids: list[str] = Field(
        default_factory=list,
        description="Provider ids whose streams are trusted without probing.",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Per-request probe timeout in seconds.",
    )

    @field_validator("skip_ids", mode="before")
    @classmethod
    def _validate_skip_ids(cls, v: Any) -> Any:
        return _split_ids(v)

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("validation.timeout_seconds must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (providers/http/proxy/runner/validation/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="streamscout", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )
    target: Target = Field(
        default="native",
        description="Playback target the provider set is selected for.",
    )
    consistent_ip: bool = Field(
        default=False,
        description="Requests and playback leave from the same IP (enables ip-locked).",
    )
    fetch_proxy_url: Optional[str] = Field(
        default=None,
        description="Simple proxy backing the proxied fetcher. Unset = direct.",
    )

    # Providers (YAML section: providers.*)
    provider_dir: Path = Field(
        default=Path("./providers"),
        validation_alias=AliasChoices(
            "provider_dir",
            AliasPath("providers", "provider_dir"),
        ),
        description="Directory containing Python provider modules.",
    )
    external_sources: Union[Literal["all"], list[str]] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "external_sources",
            AliasPath("providers", "external_sources"),
        ),
        description="External sources to enable: 'all' or a list of ids.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default timeout for provider HTTP requests.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    @field_validator("provider_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("external_sources", mode="before")
    @classmethod
    def _validate_external_sources(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() == "all":
            return "all"
        return _split_ids(v)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "target": self.target,
            "consistent_ip": self.consistent_ip,
            "fetch_proxy_url": self.fetch_proxy_url,
            "providers": {
                "provider_dir": str(self.provider_dir),
                "external_sources": self.external_sources,
            },
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "proxy": self.proxy.model_dump(),
            "runner": self.runner.model_dump(),
            "validation": self.validation.model_dump(),
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read STREAMSCOUT_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - STREAMSCOUT_PROVIDER_DIR
    - STREAMSCOUT_TARGET
    - STREAMSCOUT_PROXY_BASE_URL
    - STREAMSCOUT_RUNNER_SOURCE_ORDER (comma-separated ids)
    - STREAMSCOUT_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMSCOUT_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None
    target: Optional[Target] = None
    consistent_ip: Optional[bool] = None
    fetch_proxy_url: Optional[str] = None

    provider_dir: Optional[Path] = None
    external_sources: Optional[str] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    proxy_base_url: Optional[str] = None
    proxy_m3u8_proxy_url: Optional[str] = None

    runner_source_order: Optional[str] = None
    runner_embed_order: Optional[str] = None
    runner_timeout_ms: Optional[int] = None
    runner_provider_timeout_seconds: Optional[float] = None

    validation_enabled: Optional[bool] = None
    validation_skip_ids: Optional[str] = None
    validation_timeout_seconds: Optional[float] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    @field_validator("provider_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
