"""Request and response payloads for the HTTP API."""

from uuid import UUID

from pydantic import BaseModel, Field

from tattoo_preview.domain.artists import Coordinate
from tattoo_preview.domain.session import SessionView


class StyleSelection(BaseModel):
    """Style picked from the suggestion list."""

    style: str = Field(min_length=1)


class EditRequest(BaseModel):
    """Natural-language edit for the current preview."""

    prompt: str


class SessionCreated(BaseModel):
    """Identifier and initial state of a new journey."""

    session_id: UUID
    session: SessionView


class ArtistSearchRequest(BaseModel):
    """Device coordinate reported by the client for the artist search."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)
