"""Application settings loaded from YAML and the environment."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List, Literal, Mapping, Optional
from urllib.parse import quote

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

DEFAULT_ACCESS_SECRET = "change-me-access-secret"
DEFAULT_REFRESH_SECRET = "change-me-refresh-secret"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(h|m|s|ms)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def _parse_duration(value: Any) -> Any:
    """Accept seconds or Go-style duration strings such as ``6h`` or ``1h30m``."""

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return timedelta(seconds=int(text))
        parts = _DURATION_PART.findall(text)
        if parts and "".join(number + unit for number, unit in parts) == text:
            return timedelta(seconds=sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts))
        raise ValueError(f"Invalid duration: {value!r}")
    return value


Duration = Annotated[timedelta, BeforeValidator(_parse_duration)]


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    rest_port: int = Field(default=8080, ge=1, le=65535)
    shutdown_timeout: Duration = timedelta(seconds=30)


class DatabaseSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    host: Optional[str] = None
    port: int = 5432
    user: str = "storefront"
    password: str = ""
    dbname: str = "storefront"
    sslmode: str = "disable"
    statement_timeout: Optional[Duration] = None
    echo: bool = False

    @property
    def dsn(self) -> str:
        """Return the SQLAlchemy connection URL."""

        if self.url:
            return self.url
        if self.host:
            credentials = quote(self.user, safe="")
            if self.password:
                credentials += ":" + quote(self.password, safe="")
            return (
                f"postgresql+psycopg2://{credentials}@{self.host}:{self.port}/{self.dbname}"
                f"?sslmode={self.sslmode}"
            )
        return "sqlite:///./storefront.db"


class AuthSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    jwt_secret: str = Field(default=DEFAULT_ACCESS_SECRET, min_length=1)
    jwt_expiry: Duration = timedelta(hours=6)
    jwt_refresh_secret: str = Field(default=DEFAULT_REFRESH_SECRET, min_length=1)
    jwt_refresh_expiry: Duration = timedelta(days=7)


class OIDCSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    provider_url: str = "https://accounts.google.com"
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://localhost:8080/auth/oidc/callback"
    scopes: List[str] = Field(default_factory=lambda: ["openid", "profile", "email"])

    @field_validator("scopes", mode="before")
    @classmethod
    def split_scopes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [scope.strip() for scope in value.split(",") if scope.strip()]
        return value


class OrderSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    number_strategy: Literal["suffix", "monotonic"] = "suffix"
    number_attempts: int = Field(default=5, ge=1, le=50)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal["debug", "info", "warning", "error", "critical"] = "info"

    @field_validator("level", mode="before")
    @classmethod
    def lowercase_level(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class Settings(BaseModel):
    """Application settings."""

    model_config = ConfigDict(frozen=True)

    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    oidc: OIDCSettings = Field(default_factory=OIDCSettings)
    orders: OrderSettings = Field(default_factory=OrderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Environment variable -> (section, option)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "REST_PORT": ("server", "rest_port"),
    "SHUTDOWN_TIMEOUT": ("server", "shutdown_timeout"),
    "DATABASE_URL": ("database", "url"),
    "DB_HOST": ("database", "host"),
    "DB_PORT": ("database", "port"),
    "DB_USER": ("database", "user"),
    "DB_PASSWORD": ("database", "password"),
    "DB_NAME": ("database", "dbname"),
    "DB_SSL_MODE": ("database", "sslmode"),
    "DB_STATEMENT_TIMEOUT": ("database", "statement_timeout"),
    "JWT_SECRET": ("auth", "jwt_secret"),
    "JWT_EXPIRY": ("auth", "jwt_expiry"),
    "JWT_REFRESH_SECRET": ("auth", "jwt_refresh_secret"),
    "JWT_REFRESH_EXPIRY": ("auth", "jwt_refresh_expiry"),
    "OIDC_ENABLED": ("oidc", "enabled"),
    "OIDC_PROVIDER_URL": ("oidc", "provider_url"),
    "OIDC_CLIENT_ID": ("oidc", "client_id"),
    "OIDC_CLIENT_SECRET": ("oidc", "client_secret"),
    "OIDC_REDIRECT_URL": ("oidc", "redirect_url"),
    "OIDC_SCOPES": ("oidc", "scopes"),
    "ORDER_NUMBER_STRATEGY": ("orders", "number_strategy"),
    "ORDER_NUMBER_ATTEMPTS": ("orders", "number_attempts"),
    "LOG_LEVEL": ("logging", "level"),
}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise RuntimeError(f"Configuration file {path} does not exist") from exc
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Failed to parse configuration file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Configuration file {path} must contain a mapping at the top level")
    return data


def load_settings(path: Optional[Path | str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from an optional YAML file overlaid with environment variables.

    When ``environ`` is omitted the process environment is used, after loading
    a ``.env`` file from the working directory if one exists.  The YAML path
    falls back to ``STOREFRONT_CONFIG``.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ

    config_path = path or environ.get("STOREFRONT_CONFIG")
    data: dict[str, Any] = _read_yaml(Path(config_path)) if config_path else {}

    for variable, (section, option) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value is None or value == "":
            continue
        section_data = data.setdefault(section, {})
        if not isinstance(section_data, dict):
            raise RuntimeError(f"Configuration section {section!r} must be a mapping")
        section_data[option] = value

    return Settings.model_validate(data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Provide process-wide settings."""

    return load_settings()
