"""Domain models for a single tattoo preview journey."""

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from tattoo_preview.domain.artists import ArtistRecord, Coordinate


class Screen(StrEnum):
    """Navigational states of the journey."""

    START = "start"
    RECOMMEND = "recommend"
    CUSTOM_INPUT = "custom_input"
    PREVIEW = "preview"
    ARTISTS = "artists"


# Screens where the presentation layer hides the reset control.
SCREENS_WITHOUT_RESET = frozenset({Screen.START, Screen.CUSTOM_INPUT})


@dataclass
class Session:
    """Mutable state of one user journey, owned by the orchestrator."""

    screen: Screen = Screen.START
    source_image: bytes | None = None
    rendered_image: bytes | None = None
    style_options: list[str] = field(default_factory=list)
    chosen_style: str = ""
    nearby_artists: list[ArtistRecord] = field(default_factory=list)
    device_coordinate: Coordinate | None = None
    busy: bool = False
    busy_label: str = ""
    failure: str | None = None

    def clear(self) -> None:
        """Return every field to its default value."""
        self.screen = Screen.START
        self.source_image = None
        self.rendered_image = None
        self.style_options = []
        self.chosen_style = ""
        self.nearby_artists = []
        self.device_coordinate = None
        self.busy = False
        self.busy_label = ""
        self.failure = None


class SessionView(BaseModel):
    """Read-only snapshot of a session for the presentation layer."""

    screen: Screen
    has_source_image: bool
    has_rendered_image: bool
    style_options: list[str]
    chosen_style: str
    nearby_artists: list[ArtistRecord]
    busy: bool
    busy_label: str
    failure: str | None
    show_reset: bool
    map_available: bool

    @classmethod
    def from_session(cls, session: Session, map_available: bool) -> "SessionView":
        return cls(
            screen=session.screen,
            has_source_image=session.source_image is not None,
            has_rendered_image=session.rendered_image is not None,
            style_options=list(session.style_options),
            chosen_style=session.chosen_style,
            nearby_artists=[
                artist.model_copy() for artist in session.nearby_artists
            ],
            busy=session.busy,
            busy_label=session.busy_label,
            failure=session.failure,
            show_reset=session.screen not in SCREENS_WITHOUT_RESET,
            map_available=map_available
            and any(artist.has_coordinate for artist in session.nearby_artists),
        )
