"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tattoo_preview.adapters.gemini_client import GeminiClient
from tattoo_preview.adapters.geolocation_client import HttpxIpLocationProvider
from tattoo_preview.config import Settings
from tattoo_preview.domain.artists import Coordinate
from tattoo_preview.services.cooldown import TriggerCooldown
from tattoo_preview.services.gateway import TattooGateway
from tattoo_preview.services.registry import SessionRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    gateway: TattooGateway
    registry: SessionRegistry
    cooldown: TriggerCooldown
    map_available: bool
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    gemini_client = GeminiClient.create(resolved_settings.gemini_api_key)
    location_provider = HttpxIpLocationProvider.create(
        resolved_settings.geolocation_url
    )
    gateway = TattooGateway(
        client=gemini_client,
        location_provider=location_provider,
        analysis_model=resolved_settings.gemini_analysis_model,
        image_model=resolved_settings.gemini_image_model,
        search_model=resolved_settings.gemini_search_model,
        default_coordinate=Coordinate(
            latitude=resolved_settings.default_latitude,
            longitude=resolved_settings.default_longitude,
        ),
    )
    map_available = resolved_settings.maps_enabled
    cooldown = TriggerCooldown(
        window_seconds=resolved_settings.trigger_cooldown_ms / 1000
    )
    registry = SessionRegistry(
        gateway=gateway,
        map_available=map_available,
        idle_ttl_seconds=resolved_settings.session_idle_ttl_seconds,
        on_remove=lambda session_id: cooldown.forget(f"{session_id}:"),
    )

    async def close_resources() -> None:
        await gemini_client.close()
        await location_provider.close()

    return AppContainer(
        settings=resolved_settings,
        gateway=gateway,
        registry=registry,
        cooldown=cooldown,
        map_available=map_available,
        close_resources=close_resources,
    )
