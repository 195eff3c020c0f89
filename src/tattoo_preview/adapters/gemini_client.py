"""Google Gemini client for analysis, image rendering and place search."""

from dataclasses import dataclass

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from tattoo_preview.domain.artists import Coordinate
from tattoo_preview.services.gateway import (
    ContentPart,
    GatewayError,
    GenAIClient,
    ImagePart,
)


@dataclass
class GeminiClient(GenAIClient):
    """Generative AI client backed by the Gemini API."""

    client: genai.Client

    @classmethod
    def create(cls, api_key: str) -> "GeminiClient":
        """Create a Gemini client."""
        return cls(client=genai.Client(api_key=api_key))

    async def generate_text(
        self,
        *,
        model: str,
        parts: list[ContentPart],
        response_schema: object | None = None,
    ) -> str:
        """Call Gemini with JSON output and return the first candidate's text."""
        config = None
        if response_schema is not None:
            config = types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=response_schema,
            )
        response = await self._generate(
            model=model, contents=_to_parts(parts), config=config
        )
        return "".join(part.text for part in _candidate_parts(response) if part.text)

    async def generate_image(
        self, *, model: str, parts: list[ContentPart]
    ) -> bytes | None:
        """Call Gemini in image mode and return the first inline image."""
        response = await self._generate(
            model=model,
            contents=_to_parts(parts),
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )
        for part in _candidate_parts(response):
            if part.inline_data is not None and part.inline_data.data:
                return part.inline_data.data
        return None

    async def search_places(
        self, *, model: str, prompt: str, coordinate: Coordinate
    ) -> list[dict[str, object]]:
        """Run a Google Maps grounded prompt and return its grounding chunks."""
        config = types.GenerateContentConfig(
            tools=[types.Tool(google_maps=types.GoogleMaps())],
            tool_config=types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(
                        latitude=coordinate.latitude,
                        longitude=coordinate.longitude,
                    )
                )
            ),
        )
        response = await self._generate(model=model, contents=prompt, config=config)
        candidates = response.candidates or []
        if not candidates or candidates[0].grounding_metadata is None:
            return []
        chunks = candidates[0].grounding_metadata.grounding_chunks or []
        return [chunk.model_dump(exclude_none=True) for chunk in chunks]

    async def _generate(
        self,
        *,
        model: str,
        contents: object,
        config: types.GenerateContentConfig | None,
    ) -> types.GenerateContentResponse:
        try:
            return await self.client.aio.models.generate_content(
                model=model, contents=contents, config=config
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise GatewayError(f"API call failed: {exc}") from exc

    async def close(self) -> None:
        """Close the async HTTP session of the SDK client."""
        await self.client.aio.aclose()


def _to_parts(parts: list[ContentPart]) -> list[types.Part]:
    """Convert gateway content parts into Gemini parts, preserving order."""
    converted: list[types.Part] = []
    for part in parts:
        if isinstance(part, ImagePart):
            converted.append(
                types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
            )
        else:
            converted.append(types.Part.from_text(text=part))
    return converted


def _candidate_parts(response: types.GenerateContentResponse) -> list[types.Part]:
    """Return the parts of the first candidate, or an empty list."""
    candidates = response.candidates or []
    if not candidates or candidates[0].content is None:
        return []
    return list(candidates[0].content.parts or [])
