"""Request shaping and response parsing around the generative AI service."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from tattoo_preview.domain.artists import DEFAULT_COORDINATE, ArtistRecord, Coordinate
from tattoo_preview.services.media import detect_mime_type

logger = logging.getLogger(__name__)

FALLBACK_STYLE_OPTIONS: tuple[str, str, str] = (
    "Fine-line botanical",
    "American traditional eagle",
    "Abstract watercolor splash",
)
STYLE_OPTION_COUNT = 3
REFERENCE_LABEL = "Reference image for style guidance:"

# Checked in order; the first pattern that matches wins.
COORDINATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[?&]q=([0-9.-]+),([0-9.-]+)"),
    re.compile(r"@([0-9.-]+),([0-9.-]+)"),
    re.compile(r"ll=([0-9.-]+),([0-9.-]+)"),
)

ANALYZE_PROMPT = """Task: Analyze the body part in this image and suggest exactly 3 \
distinct tattoo design ideas that would fit well on this specific area.

Constraints:
- Each suggestion must be a short, descriptive name combining the style and subject
- Names should be 2-5 words maximum
- Suggestions must be visually distinct from each other
- Consider the body part's size, shape, and visibility

Response format: Return a JSON array containing exactly 3 strings.

Examples of good tattoo idea names:
- "Neo-traditional tiger"
- "Minimalist geometric wave"
- "Fine-line botanical branch"
- "Japanese koi fish"

Output: Return only a valid JSON array of exactly 3 strings, no additional text."""

_REALISM_REQUIREMENTS = """- The tattoo must look realistic and appear naturally integrated into the skin
- Follow the natural contours and curves of the body part
- Maintain proper proportions relative to the body part size
- Ensure the tattoo appears as if it was actually inked on the skin"""

GENERATE_PROMPT = """Task: Generate a realistic tattoo design on the body part shown \
in this image.

Tattoo design: "{design}"

Requirements:
{requirements}
- Use appropriate shading and detail for the style
- Match the lighting and perspective of the original image

Output: Generate a high-quality image showing the tattoo design placed naturally \
on the body part."""

GENERATE_WITH_REFERENCE_PROMPT = """Task: Generate a realistic tattoo design on the \
body part shown in the second image, using the first image as a style reference.

Tattoo design: "{design}"

Reference image: Use the first image as inspiration for style, composition, or \
visual elements. Adapt and integrate these elements into the tattoo design.

Requirements:
{requirements}
- Use appropriate shading and detail matching the reference style when applicable
- Match the lighting and perspective of the original body part image
- Incorporate elements from the reference image while adapting to the body part's shape

Output: Generate a high-quality image showing the tattoo design placed naturally \
on the body part, inspired by the reference image."""

EDIT_PROMPT = """Task: Edit the existing tattoo in this image according to the \
user's request.

User request: "{request}"

Requirements:
- Maintain the realistic appearance of the tattoo on skin
- Preserve the natural integration with the body part
- Keep the same lighting and perspective
- Apply the requested changes while maintaining tattoo quality

Output: Generate a high-quality edited image of the tattoo."""

ARTIST_SEARCH_PROMPT = (
    "Find tattoo shops and tattoo parlors near me that specialize in {style} "
    "style tattoos. Show me the best rated tattoo studios and artists in this area."
)
ARTIST_FALLBACK_PROMPT = "Show me tattoo shops near this location"


class GatewayError(RuntimeError):
    """Raised when the generative AI service rejects or fails a request."""


@dataclass(frozen=True)
class ImagePart:
    """Inline image submitted alongside a text instruction."""

    data: bytes
    mime_type: str

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImagePart":
        return cls(data=data, mime_type=detect_mime_type(data))


ContentPart = str | ImagePart


class GenAIClient(Protocol):
    """Interface for the generative AI service."""

    async def generate_text(
        self,
        *,
        model: str,
        parts: list[ContentPart],
        response_schema: object | None = None,
    ) -> str:
        """Return the concatenated text of the first candidate."""

    async def generate_image(
        self, *, model: str, parts: list[ContentPart]
    ) -> bytes | None:
        """Return the first inline image of the first candidate, if any."""

    async def search_places(
        self, *, model: str, prompt: str, coordinate: Coordinate
    ) -> list[dict[str, object]]:
        """Return raw grounding chunks for a location-grounded prompt."""


class LocationProvider(Protocol):
    """Interface for resolving the current device coordinate."""

    async def current_coordinate(self) -> Coordinate | None:
        """Return the coordinate, or None when unavailable or denied."""


@dataclass
class TattooGateway:
    """Service that prepares prompts for the AI service and parses its replies."""

    client: GenAIClient
    location_provider: LocationProvider
    analysis_model: str
    image_model: str
    search_model: str
    default_coordinate: Coordinate = DEFAULT_COORDINATE

    async def analyze(self, image: bytes) -> list[str]:
        """Suggest three tattoo styles for the body part in the image."""
        raw = await self.client.generate_text(
            model=self.analysis_model,
            parts=[ImagePart.from_bytes(image), ANALYZE_PROMPT],
            response_schema=list[str],
        )
        try:
            return parse_style_options(raw)
        except ValueError:
            logger.warning("Unusable style suggestions, using fallback: %r", raw)
            return list(FALLBACK_STYLE_OPTIONS)

    async def generate(
        self, image: bytes, instruction: str, reference: bytes | None = None
    ) -> bytes:
        """Render a tattoo preview on the body-part image."""
        if reference is None:
            parts: list[ContentPart] = [
                ImagePart.from_bytes(image),
                GENERATE_PROMPT.format(
                    design=instruction, requirements=_REALISM_REQUIREMENTS
                ),
            ]
        else:
            parts = [
                ImagePart.from_bytes(reference),
                REFERENCE_LABEL,
                ImagePart.from_bytes(image),
                GENERATE_WITH_REFERENCE_PROMPT.format(
                    design=instruction, requirements=_REALISM_REQUIREMENTS
                ),
            ]
        return await self._render(parts)

    async def edit(self, image: bytes, instruction: str) -> bytes:
        """Apply a natural-language edit to an existing preview."""
        return await self._render(
            [ImagePart.from_bytes(image), EDIT_PROMPT.format(request=instruction)]
        )

    async def find_artists(
        self, style: str, coordinate: Coordinate | None = None
    ) -> list[ArtistRecord]:
        """Search for tattoo artists near the device matching the style.

        The device coordinate reported by the client wins; the location
        provider is consulted only when it is absent.
        """
        if coordinate is None:
            coordinate = await self._resolve_coordinate()
        chunks = await self.client.search_places(
            model=self.search_model,
            prompt=ARTIST_SEARCH_PROMPT.format(style=style),
            coordinate=coordinate,
        )
        if not chunks:
            logger.warning("No grounded places for %r, retrying broader query", style)
            chunks = await self.client.search_places(
                model=self.search_model,
                prompt=ARTIST_FALLBACK_PROMPT,
                coordinate=coordinate,
            )
        return parse_artist_chunks(chunks)

    async def _render(self, parts: list[ContentPart]) -> bytes:
        image = await self.client.generate_image(model=self.image_model, parts=parts)
        if not image:
            raise GatewayError("No image generated by the API.")
        return image

    async def _resolve_coordinate(self) -> Coordinate:
        coordinate = await self.location_provider.current_coordinate()
        if coordinate is None:
            logger.warning(
                "Location unavailable, defaulting to %s,%s",
                self.default_coordinate.latitude,
                self.default_coordinate.longitude,
            )
            return self.default_coordinate
        return coordinate


def parse_style_options(raw: str) -> list[str]:
    """Parse a JSON array of style names, keeping the first three distinct ones."""
    payload = json.loads(raw.strip())
    if not isinstance(payload, list) or not all(
        isinstance(item, str) for item in payload
    ):
        raise ValueError("Invalid format for tattoo ideas.")
    options: list[str] = []
    for item in payload:
        name = item.strip()
        if name and name.casefold() not in {option.casefold() for option in options}:
            options.append(name)
    if len(options) < STYLE_OPTION_COUNT:
        raise ValueError("Expected three distinct tattoo ideas.")
    return options[:STYLE_OPTION_COUNT]


def extract_coordinate(uri: str) -> Coordinate | None:
    """Extract a coordinate embedded in a maps link."""
    for pattern in COORDINATE_PATTERNS:
        match = pattern.search(uri)
        if match is None:
            continue
        try:
            return Coordinate(
                latitude=float(match.group(1)), longitude=float(match.group(2))
            )
        except ValueError:
            continue
    return None


def parse_artist_chunks(chunks: list[dict[str, object]]) -> list[ArtistRecord]:
    """Convert raw grounding chunks into artist records."""
    artists: list[ArtistRecord] = []
    for chunk in chunks:
        place = chunk.get("maps")
        if not isinstance(place, dict):
            continue
        title = place.get("title")
        uri = place.get("uri")
        if not title or not uri:
            continue
        source = _first_answer_source(place.get("place_answer_sources"))
        coordinate = extract_coordinate(str(uri))
        place_id = place.get("place_id")
        try:
            artists.append(
                ArtistRecord(
                    title=str(title),
                    uri=str(uri),
                    place_id=str(place_id) if place_id else None,
                    rating=_rating(source.get("rating")),
                    review_count=_review_count(
                        source.get("review_count", source.get("reviewCount"))
                    ),
                    latitude=coordinate.latitude if coordinate else None,
                    longitude=coordinate.longitude if coordinate else None,
                )
            )
        except ValidationError:
            logger.warning("Skipping malformed place result: %r", place)
    return artists


def _first_answer_source(sources: object) -> dict[str, object]:
    if isinstance(sources, list):
        sources = sources[0] if sources else None
    return sources if isinstance(sources, dict) else {}


def _rating(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float) and 0.0 <= float(value) <= 5.0:
        return float(value)
    return None


def _review_count(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float) and value >= 0:
        return int(value)
    return None
