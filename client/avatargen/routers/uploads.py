"""Upload endpoints: pick a file, start an attempt, observe its status."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, WebSocket, WebSocketDisconnect

from ..errors import SessionRequiredError, ValidationError
from ..models import schemas
from ..models.pipeline import PipelineState
from ..services.file_selector import FileSelector, SelectedFile
from ..services.status_reporter import status_text
from ..services.upload_pipeline import UploadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])

NO_FILE_ALERT = "You must select an image to upload."


def _selector(request: Request) -> FileSelector:
    return request.app.state.file_selector


def _orchestrator(request: Request) -> UploadOrchestrator:
    return request.app.state.orchestrator


def _status_payload(state: PipelineState, busy: bool) -> schemas.StatusResponse:
    return schemas.StatusResponse(
        status=state.status.value,
        text=status_text(state),
        reason=state.reason,
        busy=busy,
    )


def _file_response(selected: SelectedFile) -> schemas.SelectedFileResponse:
    return schemas.SelectedFileResponse(
        name=selected.name,
        extension=selected.extension,
        content_type=selected.content_type,
        size=selected.size,
    )


@router.post("/file", response_model=schemas.SelectedFileResponse)
async def select_file(request: Request, file: UploadFile = File(...)) -> schemas.SelectedFileResponse:
    """Capture the file to upload, replacing any previously selected one."""

    if _orchestrator(request).busy:
        raise HTTPException(status_code=409, detail="An upload is already in progress")
    content = await file.read()
    selected = _selector(request).select_file(
        SelectedFile(
            content=content,
            name=file.filename or "",
            extension="",
            content_type=file.content_type or "",
        )
    )
    return _file_response(selected)


@router.delete("/file", status_code=204)
async def clear_file(request: Request) -> None:
    _selector(request).clear()


@router.post("", response_model=schemas.UploadOutcomeResponse)
async def start_upload(request: Request) -> schemas.UploadOutcomeResponse:
    """Run one upload attempt for the pending file and return its terminal outcome."""

    orchestrator = _orchestrator(request)
    session = await asyncio.to_thread(request.app.state.session_context.current)
    selected = _selector(request).selected
    if session is None and selected is not None:
        raise HTTPException(status_code=401, detail=SessionRequiredError().message)

    outcome = await orchestrator.start_upload(session, selected)
    if outcome is None:
        raise HTTPException(status_code=409, detail="An upload is already in progress")
    if isinstance(outcome.error, ValidationError):
        raise HTTPException(status_code=400, detail=NO_FILE_ALERT)

    ack = outcome.acknowledgement
    return schemas.UploadOutcomeResponse(
        status=outcome.status.value,
        message=outcome.message,
        storage_path=outcome.storage_path,
        public_url=outcome.public_url,
        object_stored=outcome.object_stored,
        generation_id=ack.generation_id if ack else None,
    )


@router.get("/status", response_model=schemas.StatusResponse)
async def get_status(request: Request) -> schemas.StatusResponse:
    orchestrator = _orchestrator(request)
    return _status_payload(orchestrator.state, orchestrator.busy)


@router.websocket("/status/ws")
async def status_stream(websocket: WebSocket) -> None:
    """Push a status frame immediately and then on every phase transition."""

    orchestrator: UploadOrchestrator = websocket.app.state.orchestrator
    await websocket.accept()
    async with orchestrator.reporter.listen() as queue:
        await websocket.send_json(_status_payload(orchestrator.state, orchestrator.busy).model_dump())

        async def _forward() -> None:
            while True:
                state = await queue.get()
                await websocket.send_json(_status_payload(state, orchestrator.busy).model_dump())

        forwarder = asyncio.create_task(_forward())
        try:
            # Incoming frames are ignored; receiving only detects the disconnect.
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Status stream client disconnected")
        finally:
            forwarder.cancel()
            # Collects the cancellation or a send failure after the client went away.
            await asyncio.gather(forwarder, return_exceptions=True)
