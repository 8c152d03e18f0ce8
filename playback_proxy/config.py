"""Application configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from playback_proxy.models import ProxyMode

IGNORED_HEADERS_DEFAULT: frozenset[str] = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "keep-alive",
        "transfer-encoding",
        "accept-encoding",
        "user-agent",
        "date",
        "x-request-id",
        "x-trace-id",
        "traceparent",
        "tracestate",
    }
)

CONFIG_FILES = ("proxy.yaml", "proxy.yml")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        yaml_file=CONFIG_FILES,
        extra="ignore",
    )

    mode: ProxyMode = ProxyMode.PLAYBACK
    host: str = "0.0.0.0"
    port: int = 8099

    recordings_dir: Path = Path("recordings")
    storage_type: Literal["filesystem", "memory"] = "filesystem"

    tls_skip_verify: bool = True
    proxy_timeout: float = 30.0

    fingerprint_ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT
    history_size: int = 1000

    log_level: str = "info"
    log_format: str = "json"

    @field_validator("fingerprint_ignore_headers")
    @classmethod
    def _lowercase_header_names(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(name.lower() for name in v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"
