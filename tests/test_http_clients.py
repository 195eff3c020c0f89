"""Tests for the Gemini and geolocation adapters."""

import asyncio
from types import SimpleNamespace

import httpx
import pytest
from google.genai import types

from tattoo_preview.adapters.gemini_client import GeminiClient
from tattoo_preview.adapters.geolocation_client import HttpxIpLocationProvider
from tattoo_preview.domain.artists import Coordinate
from tattoo_preview.services.gateway import GatewayError, ImagePart


class _FakeModels:
    def __init__(
        self,
        response: types.GenerateContentResponse | None = None,
        error: Exception | None = None,
    ) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict[str, object]] = []

    async def generate_content(self, **kwargs):  # type: ignore[no-untyped-def]
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


def _gemini(models: _FakeModels) -> GeminiClient:
    return GeminiClient(client=SimpleNamespace(aio=SimpleNamespace(models=models)))


def _response(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(content=types.Content(role="model", parts=list(parts)))
        ]
    )


def test_gemini_generate_text_joins_parts() -> None:
    models = _FakeModels(
        _response(types.Part(text='["a", "b"'), types.Part(text=', "c"]'))
    )
    client = _gemini(models)

    text = asyncio.run(
        client.generate_text(
            model="gemini-2.5-flash",
            parts=[ImagePart(data=b"jpeg", mime_type="image/jpeg"), "Suggest"],
            response_schema=list[str],
        )
    )

    assert text == '["a", "b", "c"]'
    call = models.calls[0]
    assert call["model"] == "gemini-2.5-flash"
    assert call["contents"][0].inline_data.data == b"jpeg"
    assert call["contents"][1].text == "Suggest"
    assert call["config"].response_mime_type == "application/json"


def test_gemini_generate_text_without_candidates_is_empty() -> None:
    client = _gemini(_FakeModels(types.GenerateContentResponse(candidates=[])))

    text = asyncio.run(client.generate_text(model="m", parts=["hi"]))

    assert text == ""


def test_gemini_generate_image_returns_inline_data() -> None:
    models = _FakeModels(
        _response(
            types.Part(text="Here you go"),
            types.Part(inline_data=types.Blob(data=b"png", mime_type="image/png")),
        )
    )
    client = _gemini(models)

    image = asyncio.run(client.generate_image(model="img", parts=["draw"]))

    assert image == b"png"
    assert models.calls[0]["config"].response_modalities == ["IMAGE"]


def test_gemini_generate_image_without_image_returns_none() -> None:
    client = _gemini(_FakeModels(_response(types.Part(text="Sorry"))))

    assert asyncio.run(client.generate_image(model="img", parts=["draw"])) is None


def test_gemini_wraps_transport_errors() -> None:
    client = _gemini(_FakeModels(error=httpx.ConnectError("connection refused")))

    with pytest.raises(GatewayError, match="API call failed"):
        asyncio.run(client.generate_image(model="img", parts=["draw"]))


def test_gemini_search_places_returns_chunks() -> None:
    response = types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                grounding_metadata=types.GroundingMetadata(
                    grounding_chunks=[
                        types.GroundingChunk(
                            maps=types.GroundingChunkMaps(
                                uri="https://maps.google.com/?q=1.0,2.0",
                                title="Ink Lab",
                                place_id="places/1",
                            )
                        )
                    ]
                )
            )
        ]
    )
    models = _FakeModels(response)
    client = _gemini(models)

    chunks = asyncio.run(
        client.search_places(
            model="gemini-2.5-flash",
            prompt="Find tattoo shops",
            coordinate=Coordinate(latitude=40.7, longitude=-74.0),
        )
    )

    assert chunks[0]["maps"]["title"] == "Ink Lab"
    assert chunks[0]["maps"]["place_id"] == "places/1"
    config = models.calls[0]["config"]
    assert config.tool_config.retrieval_config.lat_lng.latitude == 40.7
    assert config.tools[0].google_maps is not None


def test_gemini_search_places_without_grounding_is_empty() -> None:
    client = _gemini(_FakeModels(_response(types.Part(text="No results"))))

    chunks = asyncio.run(
        client.search_places(
            model="m", prompt="p", coordinate=Coordinate(latitude=0, longitude=0)
        )
    )

    assert chunks == []


def _location_provider(handler) -> HttpxIpLocationProvider:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxIpLocationProvider(
        url="https://geo.test/json/",
        http_client=httpx.AsyncClient(transport=transport),
    )


def test_location_provider_reads_coordinate() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/json/"
        return httpx.Response(200, json={"latitude": 52.52, "longitude": 13.405})

    provider = _location_provider(handler)

    coordinate = asyncio.run(provider.current_coordinate())

    assert coordinate == Coordinate(latitude=52.52, longitude=13.405)


def test_location_provider_accepts_short_keys() -> None:
    provider = _location_provider(
        lambda request: httpx.Response(200, json={"lat": 1.5, "lon": 2.5})
    )

    assert asyncio.run(provider.current_coordinate()) == Coordinate(1.5, 2.5)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(403, json={"error": "denied"}),
        httpx.Response(200, json={"city": "Nowhere"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=["unexpected"]),
    ],
)
def test_location_provider_returns_none_on_failure(response: httpx.Response) -> None:
    provider = _location_provider(lambda request: response)

    assert asyncio.run(provider.current_coordinate()) is None


def test_location_provider_without_url_skips_lookup() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    provider = HttpxIpLocationProvider(
        url=None, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    assert asyncio.run(provider.current_coordinate()) is None


def test_gemini_close_releases_async_session() -> None:
    closed: list[bool] = []

    async def aclose() -> None:
        closed.append(True)

    client = GeminiClient(client=SimpleNamespace(aio=SimpleNamespace(aclose=aclose)))

    asyncio.run(client.close())

    assert closed == [True]
