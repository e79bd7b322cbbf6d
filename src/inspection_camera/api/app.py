"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus
from urllib.parse import quote
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from inspection_camera.api.models import (
    ArtifactSummary,
    BatchSummary,
    BeginRequest,
    FinalizeRequest,
    IdentificationPayload,
    LocationPayload,
    SessionView,
)
from inspection_camera.app_logging import configure_logging
from inspection_camera.containers import AppContainer
from inspection_camera.domain.artifacts import Identification, artifact_filename
from inspection_camera.domain.errors import (
    EncodingFailed,
    ExportFailed,
    FinalizationAborted,
    IncompleteIdentification,
    InspectionCameraError,
    InvalidDimensions,
    InvalidImage,
    InvalidTransition,
)
from inspection_camera.services.stamping import decode_image, format_gps_line

_ERROR_STATUS: dict[type[InspectionCameraError], int] = {
    InvalidDimensions: HTTPStatus.UNPROCESSABLE_ENTITY,
    InvalidImage: HTTPStatus.UNPROCESSABLE_ENTITY,
    IncompleteIdentification: HTTPStatus.UNPROCESSABLE_ENTITY,
    InvalidTransition: HTTPStatus.CONFLICT,
    EncodingFailed: HTTPStatus.INTERNAL_SERVER_ERROR,
    FinalizationAborted: HTTPStatus.INTERNAL_SERVER_ERROR,
    ExportFailed: HTTPStatus.BAD_GATEWAY,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        poller = app.state.container.location_poller
        if poller is not None:
            poller.start()
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(InspectionCameraError)
    async def inspection_error_handler(
        request: Request, exc: InspectionCameraError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(
            type(exc), HTTPStatus.INTERNAL_SERVER_ERROR
        )
        if status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error("%s on %s", type(exc).__name__, request.url.path, exc_info=exc)
        content: dict[str, object] = {"error": type(exc).__name__, "detail": str(exc)}
        if isinstance(exc, IncompleteIdentification):
            content["missing"] = exc.missing
        if isinstance(exc, FinalizationAborted):
            content["completed"] = exc.completed
            content["total"] = exc.total
        if isinstance(exc, ExportFailed):
            content["batch_id"] = str(exc.batch_id)
            content["exported"] = exc.exported
        return JSONResponse(status_code=status_code, content=content)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def get_session(request: Request) -> SessionView:
        """Return the session state and buffered photos."""
        state_container: AppContainer = request.app.state.container
        return SessionView.from_lifecycle(state_container.session)

    @app.post("/session")
    async def begin_session(body: BeginRequest, request: Request) -> SessionView:
        """Start capturing a new batch."""
        state_container: AppContainer = request.app.state.container
        await state_container.session.begin(_to_identification(body.identification))
        return SessionView.from_lifecycle(state_container.session)

    @app.post("/session/location")
    async def push_location(body: LocationPayload, request: Request) -> dict[str, str]:
        """Record the consumer's latest location fix or failure."""
        state_container: AppContainer = request.app.state.container
        try:
            sample = body.to_sample()
        except ValueError as exc:
            raise HTTPException(
                status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        state_container.location_tracker.update(sample)
        return {
            "status": "ok",
            "gps": format_gps_line(
                sample, state_container.settings.gps_unavailable_label
            ),
        }

    @app.post("/session/captures")
    async def upload_capture(request: Request) -> ArtifactSummary:
        """Stamp an uploaded frame (raw image body) and buffer it."""
        state_container: AppContainer = request.app.state.container
        frame = decode_image(await request.body())
        try:
            artifact = await state_container.session.capture_frame(frame)
        finally:
            frame.close()
        return ArtifactSummary.from_artifact(artifact)

    @app.post("/session/captures/pull")
    async def pull_capture(request: Request) -> ArtifactSummary:
        """Stamp the latest frame from the configured camera."""
        state_container: AppContainer = request.app.state.container
        if state_container.session.frame_source is None:
            raise HTTPException(
                status_code=HTTPStatus.CONFLICT,
                detail="No camera snapshot source configured",
            )
        artifact = await state_container.session.capture()
        return ArtifactSummary.from_artifact(artifact)

    @app.delete("/session/captures/{artifact_id}")
    async def delete_capture(artifact_id: UUID, request: Request) -> SessionView:
        """Delete one buffered photo."""
        state_container: AppContainer = request.app.state.container
        if not await state_container.session.delete_artifact(artifact_id):
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND)
        return SessionView.from_lifecycle(state_container.session)

    @app.get("/session/captures/{artifact_id}/image")
    async def capture_image(artifact_id: UUID, request: Request) -> Response:
        """Return the stamped preview of a buffered photo."""
        state_container: AppContainer = request.app.state.container
        artifact = state_container.session.get_artifact(artifact_id)
        if artifact is None:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND)
        return Response(content=artifact.image_bytes, media_type=artifact.mime_type)

    @app.post("/session/review")
    async def review_session(request: Request) -> SessionView:
        """Stop capturing and review the buffer (ignored while it is empty)."""
        state_container: AppContainer = request.app.state.container
        await state_container.session.finish_capture()
        return SessionView.from_lifecycle(state_container.session)

    @app.post("/session/resume")
    async def resume_session(request: Request) -> SessionView:
        """Return from review to the camera."""
        state_container: AppContainer = request.app.state.container
        await state_container.session.resume_capture()
        return SessionView.from_lifecycle(state_container.session)

    @app.post("/session/clear")
    async def clear_session(request: Request) -> SessionView:
        """Empty the reviewed buffer."""
        state_container: AppContainer = request.app.state.container
        await state_container.session.clear()
        return SessionView.from_lifecycle(state_container.session)

    @app.post("/session/discard")
    async def discard_session(request: Request) -> SessionView:
        """Drop the current session without archiving it."""
        state_container: AppContainer = request.app.state.container
        await state_container.session.discard()
        return SessionView.from_lifecycle(state_container.session)

    @app.post("/session/finalize")
    async def finalize_session(
        body: FinalizeRequest, request: Request
    ) -> BatchSummary:
        """Re-stamp the buffer with identification and archive it."""
        state_container: AppContainer = request.app.state.container
        batch = await state_container.session.finalize(
            _to_identification(body.identification)
        )
        logger.info(
            "Archived batch %s with %d photos", batch.id, len(batch.artifacts)
        )
        return BatchSummary.from_batch(batch)

    @app.get("/batches")
    async def list_batches(request: Request) -> list[BatchSummary]:
        """Return archived batches, newest first."""
        state_container: AppContainer = request.app.state.container
        return [
            BatchSummary.from_batch(batch) for batch in state_container.archive.list()
        ]

    @app.delete("/batches/{batch_id}")
    async def delete_batch(batch_id: UUID, request: Request) -> dict[str, str]:
        """Remove a batch from the archive."""
        state_container: AppContainer = request.app.state.container
        state_container.archive.remove(batch_id)
        return {"status": "ok"}

    @app.get("/batches/{batch_id}/artifacts/{index}")
    async def download_artifact(
        batch_id: UUID, index: int, request: Request
    ) -> Response:
        """Download one archived photo (1-based index)."""
        state_container: AppContainer = request.app.state.container
        batch = state_container.archive.get(batch_id)
        if batch is None or not 1 <= index <= len(batch.artifacts):
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND)
        artifact = batch.artifacts[index - 1]
        filename = artifact_filename(batch.identification, index)
        return Response(
            content=artifact.image_bytes,
            media_type=artifact.mime_type,
            headers={
                "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"
            },
        )

    @app.post("/batches/{batch_id}/export")
    async def export_batch(batch_id: UUID, request: Request) -> dict[str, object]:
        """Deliver an archived batch to the export sink again."""
        state_container: AppContainer = request.app.state.container
        if state_container.export_queue is None:
            raise HTTPException(
                status_code=HTTPStatus.CONFLICT,
                detail="No export directory configured",
            )
        batch = state_container.archive.get(batch_id)
        if batch is None:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND)
        filenames = await state_container.export_queue.export(batch)
        return {"status": "ok", "filenames": filenames}

    return app


def _to_identification(
    payload: IdentificationPayload | None,
) -> Identification | None:
    if payload is None:
        return None
    return Identification(asset_id=payload.asset_id, client_name=payload.client_name)
