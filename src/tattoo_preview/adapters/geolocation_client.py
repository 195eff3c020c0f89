"""IP-based geolocation client, the last resort when the device sends no location.

The lookup resolves the location of the server, not of the user, so it is off
unless a URL is configured.
"""

import logging
from dataclasses import dataclass

import httpx

from tattoo_preview.domain.artists import Coordinate
from tattoo_preview.services.gateway import LocationProvider

logger = logging.getLogger(__name__)


@dataclass
class HttpxIpLocationProvider(LocationProvider):
    """HTTPX-backed location lookup against a JSON geolocation endpoint."""

    url: str | None
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, url: str | None) -> "HttpxIpLocationProvider":
        """Create a provider with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient())

    async def current_coordinate(self) -> Coordinate | None:
        """Return the coordinate reported by the endpoint, or None on failure."""
        if not self.url:
            return None
        try:
            response = await self.http_client.get(self.url, timeout=5)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError):
            logger.warning("Geolocation lookup failed", exc_info=True)
            return None
        if not isinstance(payload, dict):
            return None
        latitude = payload.get("latitude", payload.get("lat"))
        longitude = payload.get("longitude", payload.get("lon"))
        if not isinstance(latitude, int | float) or not isinstance(
            longitude, int | float
        ):
            logger.warning("Geolocation response has no coordinate")
            return None
        return Coordinate(latitude=float(latitude), longitude=float(longitude))

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
