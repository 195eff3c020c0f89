"""Tests for container wiring and configuration."""

import asyncio

import pytest
from pydantic import ValidationError

from tattoo_preview.config import Settings, parse_allowed_origins
from tattoo_preview.containers import build_container


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.gateway.image_model == "gemini-2.5-flash-image"
    assert container.gateway.default_coordinate.latitude == 37.7749
    assert container.cooldown.window_seconds == 0.5
    assert container.map_available
    assert container.registry.idle_ttl_seconds == 3600
    assert settings.geolocation_url is None
    asyncio.run(container.close_resources())


def test_missing_api_key_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_parse_allowed_origins() -> None:
    assert parse_allowed_origins(None) == []
    assert parse_allowed_origins(" * ") == ["*"]
    assert parse_allowed_origins("https://a.app/, https://b.app,https://a.app") == [
        "https://a.app",
        "https://b.app",
    ]


def test_removed_session_releases_cooldown(settings: Settings) -> None:
    container = build_container(settings)
    session_id, _ = container.registry.create()
    assert container.cooldown.allow(f"{session_id}:reset")

    container.registry.discard(session_id)

    assert container.cooldown.allow(f"{session_id}:reset")
    asyncio.run(container.close_resources())
