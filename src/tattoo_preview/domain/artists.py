"""Models for artist search results."""

from dataclasses import dataclass

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Coordinate:
    """Geographic coordinate in decimal degrees."""

    latitude: float
    longitude: float


DEFAULT_COORDINATE = Coordinate(latitude=37.7749, longitude=-122.4194)


class ArtistRecord(BaseModel):
    """Single tattoo studio or artist returned by a maps-grounded search."""

    title: str
    uri: str
    place_id: str | None = None
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    review_count: int | None = Field(default=None, ge=0)
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinate(self) -> bool:
        return self.latitude is not None and self.longitude is not None
