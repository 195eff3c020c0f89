"""Shared test fixtures."""

from dataclasses import dataclass, field
from io import BytesIO

import pytest
from PIL import Image

from tattoo_preview.config import Settings
from tattoo_preview.containers import AppContainer
from tattoo_preview.domain.artists import ArtistRecord, Coordinate
from tattoo_preview.services.cooldown import TriggerCooldown
from tattoo_preview.services.gateway import (
    ContentPart,
    GenAIClient,
    LocationProvider,
    TattooGateway,
)
from tattoo_preview.services.orchestrator import Gateway
from tattoo_preview.services.registry import SessionRegistry

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def make_jpeg(width: int = 64, height: int = 48, color: str = "tan") -> bytes:
    """Encode a solid-color JPEG of the given size."""
    output = BytesIO()
    Image.new("RGB", (width, height), color).save(output, format="JPEG")
    return output.getvalue()


@dataclass
class FakeGenAIClient(GenAIClient):
    """Fake AI client that records requests and returns canned replies."""

    text: str = '["Tribal sun", "Watercolor wave", "Minimalist line"]'
    image: bytes | None = PNG_SIGNATURE + b"rendered"
    place_batches: list[list[dict[str, object]]] = field(default_factory=list)
    error: Exception | None = None
    text_calls: list[dict[str, object]] = field(default_factory=list)
    image_calls: list[dict[str, object]] = field(default_factory=list)
    search_calls: list[dict[str, object]] = field(default_factory=list)

    async def generate_text(
        self,
        *,
        model: str,
        parts: list[ContentPart],
        response_schema: object | None = None,
    ) -> str:
        self.text_calls.append(
            {"model": model, "parts": parts, "response_schema": response_schema}
        )
        if self.error:
            raise self.error
        return self.text

    async def generate_image(
        self, *, model: str, parts: list[ContentPart]
    ) -> bytes | None:
        self.image_calls.append({"model": model, "parts": parts})
        if self.error:
            raise self.error
        return self.image

    async def search_places(
        self, *, model: str, prompt: str, coordinate: Coordinate
    ) -> list[dict[str, object]]:
        self.search_calls.append(
            {"model": model, "prompt": prompt, "coordinate": coordinate}
        )
        if self.error:
            raise self.error
        if not self.place_batches:
            return []
        return self.place_batches.pop(0)


@dataclass
class FakeLocationProvider(LocationProvider):
    """Location provider returning a fixed coordinate or None."""

    coordinate: Coordinate | None = None
    calls: int = 0

    async def current_coordinate(self) -> Coordinate | None:
        self.calls += 1
        return self.coordinate


@dataclass
class FakeGateway(Gateway):
    """Fake gateway recording every call made by the orchestrator."""

    styles: list[str] = field(
        default_factory=lambda: ["Tribal sun", "Watercolor wave", "Minimalist line"]
    )
    rendered: bytes = PNG_SIGNATURE + b"preview"
    edited: bytes = PNG_SIGNATURE + b"edited"
    artists: list[ArtistRecord] = field(
        default_factory=lambda: [
            ArtistRecord(
                title="Ink Lab",
                uri="https://maps.google.com/?q=37.77,-122.41",
                rating=4.8,
                review_count=120,
                latitude=37.77,
                longitude=-122.41,
            )
        ]
    )
    failures: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)

    def _maybe_fail(self, operation: str) -> None:
        error = self.failures.pop(operation, None)
        if error is not None:
            raise error

    async def analyze(self, image: bytes) -> list[str]:
        self.calls.append(("analyze", (image,)))
        self._maybe_fail("analyze")
        return list(self.styles)

    async def generate(
        self, image: bytes, instruction: str, reference: bytes | None = None
    ) -> bytes:
        self.calls.append(("generate", (image, instruction, reference)))
        self._maybe_fail("generate")
        return self.rendered

    async def edit(self, image: bytes, instruction: str) -> bytes:
        self.calls.append(("edit", (image, instruction)))
        self._maybe_fail("edit")
        return self.edited

    async def find_artists(
        self, style: str, coordinate: Coordinate | None = None
    ) -> list[ArtistRecord]:
        self.calls.append(("find_artists", (style, coordinate)))
        self._maybe_fail("find_artists")
        return list(self.artists)

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def settings() -> Settings:
    return Settings(gemini_api_key="test-key", cors_allowed_origins="*")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def gen_client() -> FakeGenAIClient:
    return FakeGenAIClient()


@pytest.fixture
def location_provider() -> FakeLocationProvider:
    return FakeLocationProvider(coordinate=Coordinate(latitude=40.7, longitude=-74.0))


@pytest.fixture
def tattoo_gateway(
    settings: Settings,
    gen_client: FakeGenAIClient,
    location_provider: FakeLocationProvider,
) -> TattooGateway:
    return TattooGateway(
        client=gen_client,
        location_provider=location_provider,
        analysis_model=settings.gemini_analysis_model,
        image_model=settings.gemini_image_model,
        search_model=settings.gemini_search_model,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def container(settings: Settings, gateway: FakeGateway) -> AppContainer:
    async def close_resources() -> None:
        return None

    cooldown = TriggerCooldown(window_seconds=0.0)
    return AppContainer(
        settings=settings,
        gateway=gateway,  # type: ignore[arg-type]
        registry=SessionRegistry(
            gateway=gateway,
            map_available=True,
            on_remove=lambda session_id: cooldown.forget(f"{session_id}:"),
        ),
        cooldown=cooldown,
        map_available=True,
        close_resources=close_resources,
    )
