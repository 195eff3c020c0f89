"""State machine sequencing one tattoo preview journey."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from tattoo_preview.domain.artists import ArtistRecord, Coordinate
from tattoo_preview.domain.session import Screen, Session, SessionView
from tattoo_preview.services.failures import describe_failure
from tattoo_preview.services.validation import (
    PromptRejectedError,
    normalize_custom_prompt,
    normalize_edit_prompt,
)

logger = logging.getLogger(__name__)

ANALYZE_LABEL = "Analyzing your canvas..."
GENERATE_LABEL = "Inking your design..."
EDIT_LABEL = "Refining the ink..."
SEARCH_LABEL = "Scanning for local artists..."

ANALYZE_FALLBACK = "Could not analyze the image. Please try another one."
GENERATE_FALLBACK = "Failed to generate the tattoo preview. Please try again."
EDIT_FALLBACK = "Could not apply the edit. Please try a different prompt."
SEARCH_FALLBACK = (
    "Could not find artists. Please check your location settings and try again."
)


class TransitionRejectedError(RuntimeError):
    """Raised when an action is not available on the current screen."""


class Gateway(Protocol):
    """Operations the orchestrator needs from the AI service."""

    async def analyze(self, image: bytes) -> list[str]:
        """Return three suggested style names."""

    async def generate(
        self, image: bytes, instruction: str, reference: bytes | None = None
    ) -> bytes:
        """Return a rendered tattoo preview."""

    async def edit(self, image: bytes, instruction: str) -> bytes:
        """Return an edited tattoo preview."""

    async def find_artists(
        self, style: str, coordinate: Coordinate | None = None
    ) -> list[ArtistRecord]:
        """Return nearby artists for a style."""


@dataclass(frozen=True)
class ArtistSearch:
    """Inputs of an artist search captured when the artists screen opens."""

    style: str
    coordinate: Coordinate | None
    generation: int


def style_instruction(style: str) -> str:
    """Instruction used when rendering a suggested style."""
    return f"A tattoo of {style}."


@dataclass
class Orchestrator:
    """Owns a session and is the only code path that mutates it.

    Every asynchronous action follows the same template: mark the session
    busy with a stage label and clear any failure, await the gateway, commit
    the result and advance the screen on success, or store a translated
    failure and restore the previous screen on error. ``busy`` is always
    cleared last. Calls are expected to be serialized by the caller; two
    overlapping actions resolve last-write-wins, except that a reset bumps
    ``generation`` and results of calls started before it are dropped.
    """

    gateway: Gateway
    map_available: bool = False
    session: Session = field(default_factory=Session)
    generation: int = 0

    def view(self) -> SessionView:
        """Return an immutable snapshot of the session."""
        return SessionView.from_session(self.session, self.map_available)

    async def submit_image(self, image: bytes) -> None:
        """Store the body-part photo and fetch style suggestions."""
        session = self.session
        generation = self._begin(ANALYZE_LABEL)
        session.source_image = image
        try:
            options = await self.gateway.analyze(image)
            if self._is_current(generation):
                session.style_options = list(options)
                session.screen = Screen.RECOMMEND
        except Exception as exc:
            logger.exception("Image analysis failed")
            if self._is_current(generation):
                session.source_image = None
                session.rendered_image = None
                session.style_options = []
                session.screen = Screen.START
                session.failure = describe_failure(exc, ANALYZE_FALLBACK)
        finally:
            self._end(generation)

    async def select_style(self, style: str) -> None:
        """Render a preview for one of the suggested styles."""
        session = self._require(Screen.RECOMMEND)
        if style not in session.style_options:
            raise TransitionRejectedError(f"Unknown style: {style!r}.")
        source = self._require_source()
        session.chosen_style = style
        await self._generate(source, style_instruction(style))

    def open_custom_input(self) -> None:
        """Switch to the free-text idea screen."""
        session = self._require(Screen.RECOMMEND)
        self._require_source()
        session.screen = Screen.CUSTOM_INPUT

    async def submit_custom_idea(
        self, prompt: str, reference: bytes | None = None
    ) -> None:
        """Render a preview from a free-text idea and optional reference image."""
        idea = normalize_custom_prompt(prompt)
        if idea is None:
            raise PromptRejectedError("Describe your tattoo idea first.")
        session = self._require(Screen.CUSTOM_INPUT)
        source = self._require_source()
        session.chosen_style = idea
        await self._generate(source, idea, reference)

    async def submit_edit(self, prompt: str) -> None:
        """Apply an edit prompt to the current preview."""
        request = normalize_edit_prompt(prompt)
        if request is None:
            raise PromptRejectedError(
                "Edit prompts must be between 3 and 200 characters."
            )
        session = self._require(Screen.PREVIEW)
        rendered = session.rendered_image
        if rendered is None:
            raise TransitionRejectedError("There is no preview to edit yet.")
        generation = self._begin(EDIT_LABEL)
        try:
            edited = await self.gateway.edit(rendered, request)
            if self._is_current(generation):
                session.rendered_image = edited
        except Exception as exc:
            logger.exception("Tattoo edit failed")
            if self._is_current(generation):
                session.screen = Screen.PREVIEW
                session.failure = describe_failure(exc, EDIT_FALLBACK)
        finally:
            self._end(generation)

    def start_artist_search(
        self, coordinate: Coordinate | None = None
    ) -> ArtistSearch | None:
        """Move to the artists screen ahead of the search.

        A coordinate reported by the device replaces the stored one. Returns
        None when no style has been chosen yet.
        """
        session = self.session
        if not session.chosen_style:
            logger.warning("Artist search requested without a chosen style")
            return None
        if coordinate is not None:
            session.device_coordinate = coordinate
        session.screen = Screen.ARTISTS
        generation = self._begin(SEARCH_LABEL)
        return ArtistSearch(
            style=session.chosen_style,
            coordinate=session.device_coordinate,
            generation=generation,
        )

    async def complete_artist_search(self, search: ArtistSearch) -> None:
        """Run a search started by start_artist_search and store results."""
        session = self.session
        try:
            artists = await self.gateway.find_artists(search.style, search.coordinate)
            if self._is_current(search.generation):
                session.nearby_artists = list(artists)
        except Exception as exc:
            logger.exception("Artist search failed")
            if self._is_current(search.generation):
                session.failure = describe_failure(exc, SEARCH_FALLBACK)
        finally:
            self._end(search.generation)

    async def find_artists(self, coordinate: Coordinate | None = None) -> None:
        """Search for artists matching the chosen style."""
        search = self.start_artist_search(coordinate)
        if search is not None:
            await self.complete_artist_search(search)

    def back(self) -> None:
        """Navigate back from the custom idea or artists screen."""
        session = self.session
        if session.screen == Screen.CUSTOM_INPUT:
            session.screen = Screen.RECOMMEND
        elif session.screen == Screen.ARTISTS:
            session.screen = Screen.PREVIEW
        else:
            return
        session.failure = None

    def reset(self) -> None:
        """Discard the whole journey and return to the start screen."""
        self.generation += 1
        self.session.clear()

    async def retry_last_action(self) -> None:
        """Re-run the action matching the current screen using session fields."""
        session = self.session
        if session.failure is None:
            return
        session.failure = None
        source = session.source_image
        if session.screen == Screen.RECOMMEND and source is not None:
            await self.submit_image(source)
        elif session.screen == Screen.CUSTOM_INPUT and source is not None:
            return
        elif (
            session.screen == Screen.PREVIEW
            and source is not None
            and session.chosen_style
        ):
            await self._generate(source, style_instruction(session.chosen_style))
        elif session.screen == Screen.ARTISTS and session.chosen_style:
            await self.find_artists()
        else:
            self.reset()

    async def _generate(
        self, source: bytes, instruction: str, reference: bytes | None = None
    ) -> None:
        session = self.session
        previous = session.screen
        generation = self._begin(GENERATE_LABEL)
        try:
            rendered = await self.gateway.generate(source, instruction, reference)
            if self._is_current(generation):
                session.rendered_image = rendered
                session.screen = Screen.PREVIEW
        except Exception as exc:
            logger.exception("Tattoo generation failed")
            if self._is_current(generation):
                session.screen = previous
                session.failure = describe_failure(exc, GENERATE_FALLBACK)
        finally:
            self._end(generation)

    def _require(self, screen: Screen) -> Session:
        if self.session.screen != screen:
            raise TransitionRejectedError(
                f"Action is not available on the {self.session.screen} screen."
            )
        return self.session

    def _require_source(self) -> bytes:
        if self.session.source_image is None:
            raise TransitionRejectedError("Upload a photo first.")
        return self.session.source_image

    def _is_current(self, generation: int) -> bool:
        if generation != self.generation:
            logger.info("Dropping result of a call started before reset")
            return False
        return True

    def _begin(self, label: str) -> int:
        self.session.busy = True
        self.session.busy_label = label
        self.session.failure = None
        return self.generation

    def _end(self, generation: int) -> None:
        if generation != self.generation:
            return
        self.session.busy = False
        self.session.busy_label = ""
