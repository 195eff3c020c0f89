"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Literal
from uuid import UUID

from fastapi import (
    BackgroundTasks,
    FastAPI,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tattoo_preview.api.models import (
    ArtistSearchRequest,
    EditRequest,
    SessionCreated,
    StyleSelection,
)
from tattoo_preview.app_logging import configure_logging
from tattoo_preview.config import parse_allowed_origins
from tattoo_preview.containers import AppContainer
from tattoo_preview.domain.session import SessionView
from tattoo_preview.services.media import (
    ImageRejectedError,
    detect_mime_type,
    prepare_image,
)
from tattoo_preview.services.orchestrator import (
    Orchestrator,
    TransitionRejectedError,
)
from tattoo_preview.services.validation import PromptRejectedError


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    allowed_origins = parse_allowed_origins(container.settings.cors_allowed_origins)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(PromptRejectedError)
    async def prompt_rejected(request: Request, exc: PromptRejectedError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(TransitionRejectedError)
    async def transition_rejected(
        request: Request, exc: TransitionRejectedError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ImageRejectedError)
    async def image_rejected(request: Request, exc: ImageRejectedError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=201)
    async def create_session(request: Request) -> SessionCreated:
        """Start a new journey."""
        state_container: AppContainer = request.app.state.container
        session_id, orchestrator = state_container.registry.create()
        logger.info("Session created", extra={"session_id": str(session_id)})
        return SessionCreated(session_id=session_id, session=orchestrator.view())

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: UUID, request: Request) -> SessionView:
        """Return the current state of a journey."""
        return _orchestrator(request, session_id).view()

    @app.delete("/sessions/{session_id}", status_code=204)
    async def delete_session(session_id: UUID, request: Request) -> Response:
        """Forget a journey."""
        state_container: AppContainer = request.app.state.container
        if not state_container.registry.discard(session_id):
            raise HTTPException(status_code=404, detail="Session not found.")
        return Response(status_code=204)

    @app.get("/sessions/{session_id}/images/{kind}")
    async def get_image(
        session_id: UUID, kind: Literal["source", "rendered"], request: Request
    ) -> Response:
        """Return the uploaded photo or the latest rendered preview."""
        session = _orchestrator(request, session_id).session
        data = session.source_image if kind == "source" else session.rendered_image
        if data is None:
            raise HTTPException(status_code=404, detail="Image not available.")
        return Response(content=data, media_type=detect_mime_type(data))

    @app.post("/sessions/{session_id}/image")
    async def submit_image(
        session_id: UUID, request: Request, image: UploadFile = File(...)
    ) -> SessionView:
        """Upload a body-part photo and fetch style suggestions."""
        orchestrator = _dispatch(request, session_id, "image")
        prepared = await _read_image(request, image)
        await orchestrator.submit_image(prepared)
        return orchestrator.view()

    @app.post("/sessions/{session_id}/styles/select")
    async def select_style(
        session_id: UUID, selection: StyleSelection, request: Request
    ) -> SessionView:
        """Render a preview for a suggested style."""
        orchestrator = _dispatch(request, session_id, "select_style")
        await orchestrator.select_style(selection.style)
        return orchestrator.view()

    @app.post("/sessions/{session_id}/custom")
    async def open_custom_input(session_id: UUID, request: Request) -> SessionView:
        """Switch to the custom idea screen."""
        orchestrator = _dispatch(request, session_id, "custom")
        orchestrator.open_custom_input()
        return orchestrator.view()

    @app.post("/sessions/{session_id}/custom/generate")
    async def submit_custom_idea(
        session_id: UUID,
        request: Request,
        prompt: str = Form(...),
        reference: UploadFile | None = File(default=None),
    ) -> SessionView:
        """Render a preview from a free-text idea."""
        orchestrator = _dispatch(request, session_id, "custom_generate")
        reference_image = None
        if reference is not None and reference.filename:
            reference_image = await _read_image(request, reference)
        await orchestrator.submit_custom_idea(prompt, reference_image)
        return orchestrator.view()

    @app.post("/sessions/{session_id}/edit")
    async def submit_edit(
        session_id: UUID, edit: EditRequest, request: Request
    ) -> SessionView:
        """Apply a natural-language edit to the preview."""
        orchestrator = _dispatch(request, session_id, "edit")
        await orchestrator.submit_edit(edit.prompt)
        return orchestrator.view()

    @app.post("/sessions/{session_id}/artists")
    async def find_artists(
        session_id: UUID,
        request: Request,
        background_tasks: BackgroundTasks,
        location: ArtistSearchRequest | None = None,
    ) -> SessionView:
        """Move to the artists screen and search in the background.

        The optional body carries the device coordinate; without it the
        coordinate from an earlier search of this session, the configured
        location lookup, or the default coordinate is used, in that order.
        """
        orchestrator = _dispatch(request, session_id, "artists")
        coordinate = location.to_coordinate() if location is not None else None
        search = orchestrator.start_artist_search(coordinate)
        if search is not None:
            background_tasks.add_task(orchestrator.complete_artist_search, search)
        return orchestrator.view()

    @app.post("/sessions/{session_id}/back")
    async def back(session_id: UUID, request: Request) -> SessionView:
        """Navigate back from the custom idea or artists screen."""
        orchestrator = _dispatch(request, session_id, "back")
        orchestrator.back()
        return orchestrator.view()

    @app.post("/sessions/{session_id}/reset")
    async def reset(session_id: UUID, request: Request) -> SessionView:
        """Discard the journey and return to the start screen."""
        orchestrator = _dispatch(request, session_id, "reset")
        orchestrator.reset()
        return orchestrator.view()

    @app.post("/sessions/{session_id}/retry")
    async def retry(session_id: UUID, request: Request) -> SessionView:
        """Retry the action that produced the current failure."""
        orchestrator = _dispatch(request, session_id, "retry")
        await orchestrator.retry_last_action()
        return orchestrator.view()

    return app


def _orchestrator(request: Request, session_id: UUID) -> Orchestrator:
    """Look up a journey or answer 404."""
    state_container: AppContainer = request.app.state.container
    orchestrator = state_container.registry.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="Session not found.")
    return orchestrator


def _dispatch(request: Request, session_id: UUID, control: str) -> Orchestrator:
    """Look up a journey and suppress repeated activations of the same control."""
    orchestrator = _orchestrator(request, session_id)
    state_container: AppContainer = request.app.state.container
    if not state_container.cooldown.allow(f"{session_id}:{control}"):
        raise HTTPException(status_code=429, detail="Action triggered too quickly.")
    return orchestrator


async def _read_image(request: Request, upload: UploadFile) -> bytes:
    """Read an upload and normalize it to a square JPEG."""
    settings = request.app.state.container.settings
    raw = await upload.read()
    return prepare_image(
        raw, quality=settings.image_quality, max_side=settings.image_max_side
    )
