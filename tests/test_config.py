"""Tests for settings loading."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from storefront.config import Settings, load_settings


def test_defaults_without_file_or_environment() -> None:
    settings = load_settings(environ={})

    assert settings.server.rest_port == 8080
    assert settings.auth.jwt_expiry == timedelta(hours=6)
    assert settings.oidc.enabled is False
    assert settings.oidc.scopes == ["openid", "profile", "email"]
    assert settings.orders.number_strategy == "suffix"
    assert settings.database.dsn == "sqlite:///./storefront.db"


def test_yaml_file_is_overlaid_by_environment(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "server:\n"
        "  rest_port: 9000\n"
        "auth:\n"
        "  jwt_secret: from-file\n"
        "  jwt_expiry: 1h30m\n"
        "orders:\n"
        "  number_strategy: monotonic\n"
    )

    settings = load_settings(
        config,
        environ={"REST_PORT": "9100", "OIDC_SCOPES": "openid, email", "JWT_REFRESH_EXPIRY": "3600"},
    )

    assert settings.server.rest_port == 9100
    assert settings.auth.jwt_secret == "from-file"
    assert settings.auth.jwt_expiry == timedelta(minutes=90)
    assert settings.auth.jwt_refresh_expiry == timedelta(hours=1)
    assert settings.oidc.scopes == ["openid", "email"]
    assert settings.orders.number_strategy == "monotonic"


def test_config_path_can_come_from_environment(tmp_path: Path) -> None:
    config = tmp_path / "storefront.yaml"
    config.write_text("logging:\n  level: DEBUG\n")

    settings = load_settings(environ={"STOREFRONT_CONFIG": str(config)})

    assert settings.logging.level == "debug"


def test_postgres_dsn_is_built_from_parts() -> None:
    settings = load_settings(
        environ={"DB_HOST": "db", "DB_USER": "shop", "DB_PASSWORD": "p@ss word", "DB_NAME": "shop", "DB_SSL_MODE": "require"}
    )

    assert settings.database.dsn == "postgresql+psycopg2://shop:p%40ss%20word@db:5432/shop?sslmode=require"


def test_database_url_wins_over_parts() -> None:
    settings = load_settings(environ={"DATABASE_URL": "sqlite:///tmp/x.db", "DB_HOST": "db"})

    assert settings.database.dsn == "sqlite:///tmp/x.db"


def test_invalid_values_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        load_settings(environ={"ORDER_NUMBER_STRATEGY": "random"})
    with pytest.raises(ValidationError):
        load_settings(environ={"JWT_EXPIRY": "soon"})

    broken = tmp_path / "broken.yaml"
    broken.write_text("- just\n- a list\n")
    with pytest.raises(RuntimeError):
        load_settings(broken, environ={})


def test_settings_are_frozen() -> None:
    settings = Settings()

    with pytest.raises(ValidationError):
        settings.server = settings.server  # type: ignore[misc]
