"""Tour endpoints: a thin HTTP surface over TourStepMachine and the widgets.

Pipeline work runs as a background task on the event loop; clients poll
GET /tour for progress. Domain errors propagate to the app's exception
handlers, which render them as ErrorResponse JSON.
"""

from __future__ import annotations

import asyncio
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, Form, Response, UploadFile
from fastapi.responses import JSONResponse

from landmark_explorer.api.deps import get_machine, get_session, get_view
from landmark_explorer.config import settings
from landmark_explorer.errors import ValidationError
from landmark_explorer.features.certificate import Certificate, certificate_file_name
from landmark_explorer.features.result_view import ResultView
from landmark_explorer.messages import t
from landmark_explorer.models.contracts import (
    ArtworkRequest,
    ArtworkResponse,
    AudioStatus,
    CertificateRequest,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    FunFactResponse,
    LandmarkInfo,
    MapEmbedResponse,
    SubmitPhotoResponse,
    TourState,
)
from landmark_explorer.tour.images import detect_image_mime
from landmark_explorer.tour.session import TourSession
from landmark_explorer.utils.map_embed import map_embed
from landmark_explorer.workflows.tour_stop import TourStepMachine, image_url

logger = structlog.get_logger()

router = APIRouter(prefix="/tour", tags=["tour"])

_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _error(status: int, code: str, message: str, *, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=code, message=message, retryable=retryable).model_dump(),
    )


def _start(session: TourSession, machine: TourStepMachine, attempt_id: int) -> None:
    session.track(asyncio.create_task(machine.run_attempt(attempt_id)))


# --- Pipeline ---


@router.post(
    "/photos",
    status_code=202,
    response_model=SubmitPhotoResponse,
    responses={**_ERRORS, 413: {"model": ErrorResponse}},
)
async def submit_photo(
    file: UploadFile,
    audience_level: str | None = Form(None),
    session: TourSession = Depends(get_session),
    machine: TourStepMachine = Depends(get_machine),
):
    """Upload photo -> validate -> start identify/narrate/speak in the background."""
    chunks: list[bytes] = []
    total = 0
    while chunk := await file.read(65_536):
        total += len(chunk)
        if total > settings.max_upload_bytes:
            mb = settings.max_upload_bytes // (1024 * 1024)
            return _error(413, "file_too_large", f"Photo exceeds {mb} MB limit")
        chunks.append(chunk)
    image_data = b"".join(chunks)

    mime_type = await asyncio.to_thread(detect_image_mime, image_data)
    logger.info("photo_received", size_bytes=len(image_data), mime_type=mime_type)
    attempt_id = machine.begin_attempt(image_data, mime_type, audience_level)
    _start(session, machine, attempt_id)
    state = machine.state()
    return SubmitPhotoResponse(attempt_id=attempt_id, image_url=state.image_url or "")


@router.get("", response_model=TourState)
async def get_tour_state(machine: TourStepMachine = Depends(get_machine)):
    return machine.state()


@router.post("/retry", status_code=202, response_model=TourState, responses=_ERRORS)
async def retry_stage(
    session: TourSession = Depends(get_session),
    machine: TourStepMachine = Depends(get_machine),
):
    attempt_id = machine.begin_retry()
    _start(session, machine, attempt_id)
    return machine.state()


@router.post("/reset", response_model=TourState)
async def reset_tour_step(machine: TourStepMachine = Depends(get_machine)):
    machine.reset()
    return machine.state()


@router.post("/end", response_model=list[LandmarkInfo], responses=_ERRORS)
async def end_tour(machine: TourStepMachine = Depends(get_machine)):
    return machine.end_tour()


@router.post("/restart", response_model=TourState)
async def restart_tour(machine: TourStepMachine = Depends(get_machine)):
    machine.restart_tour()
    return machine.state()


# --- Ledger ---


@router.get("/ledger", response_model=list[LandmarkInfo])
async def get_ledger(session: TourSession = Depends(get_session)):
    return session.ledger.summarize()


@router.post("/ledger/{index}/select", response_model=TourState, responses=_ERRORS)
async def select_stop(index: int, machine: TourStepMachine = Depends(get_machine)):
    return machine.select_stop(index)


@router.get("/images/{ref}", responses={404: {"model": ErrorResponse}})
async def get_image(ref: str, session: TourSession = Depends(get_session)):
    resource = session.images.get(ref)
    if resource is None:
        return _error(404, "image_not_found", f"Image {image_url(ref)} is not available")
    return Response(content=resource.data, media_type=resource.mime_type)


# --- Narration audio ---


@router.get("/audio.wav", responses=_ERRORS)
async def get_narration_audio(view: ResultView = Depends(get_view)):
    player = await view.audio_player()
    wav = await asyncio.to_thread(player.buffer.to_wav_bytes)
    return Response(content=wav, media_type="audio/wav")


@router.post("/audio/play", response_model=AudioStatus, responses=_ERRORS)
async def play_narration(view: ResultView = Depends(get_view)):
    player = await view.audio_player()
    player.play()
    return AudioStatus(playing=player.is_playing, duration_seconds=player.buffer.duration_seconds)


@router.post("/audio/stop", response_model=AudioStatus, responses=_ERRORS)
async def stop_narration(view: ResultView = Depends(get_view)):
    player = await view.audio_player()
    player.stop()
    return AudioStatus(playing=False, duration_seconds=player.buffer.duration_seconds)


# --- Widgets ---


@router.post("/fun-fact", response_model=FunFactResponse, responses=_ERRORS)
async def fetch_fun_fact(view: ResultView = Depends(get_view)):
    return await view.fun_fact.fetch()


@router.post("/fun-fact/retry", response_model=FunFactResponse, responses=_ERRORS)
async def retry_fun_fact(view: ResultView = Depends(get_view)):
    return await view.fun_fact.retry()


@router.get("/chat", response_model=ChatResponse, responses=_ERRORS)
async def get_chat(view: ResultView = Depends(get_view)):
    return view.chat.snapshot()


@router.post("/chat", response_model=ChatResponse, responses=_ERRORS)
async def ask_question(body: ChatRequest, view: ResultView = Depends(get_view)):
    return await view.chat.ask(body.question)


@router.post("/chat/retry", response_model=ChatResponse, responses=_ERRORS)
async def retry_question(view: ResultView = Depends(get_view)):
    return await view.chat.retry_last()


@router.post("/artwork", response_model=ArtworkResponse, responses=_ERRORS)
async def generate_artwork(body: ArtworkRequest, view: ResultView = Depends(get_view)):
    return await view.artwork.generate(body.style)


@router.post("/artwork/retry", response_model=ArtworkResponse, responses=_ERRORS)
async def retry_artwork(view: ResultView = Depends(get_view)):
    return await view.artwork.retry()


@router.get("/map", response_model=MapEmbedResponse, responses=_ERRORS)
async def get_map(view: ResultView = Depends(get_view)):
    return map_embed(view.stop.landmark)


@router.post("/certificate", responses=_ERRORS)
async def download_certificate(
    body: CertificateRequest, session: TourSession = Depends(get_session)
):
    if not body.explorer_name.strip():
        raise ValidationError(t("validation.explorer_name_required"))
    certificate = Certificate(session.widgets, session.ledger.summarize())
    await certificate.fetch_emojis()
    data = await asyncio.to_thread(certificate.render, body.explorer_name, body.format)
    file_name = certificate_file_name(body.explorer_name, body.format)
    return Response(
        content=data,
        media_type=f"image/{body.format}",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}"},
    )
