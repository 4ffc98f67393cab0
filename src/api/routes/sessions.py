"""Session endpoints: init, register, ingest audio chunks, stop, end."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from src.api.deps import get_auth_context, get_controller
from src.api.models import (
    ChunkResponse,
    InitRequest,
    InitResponse,
    MeetingSummaryResponse,
    ParticipantResponse,
    RegisterParticipantRequest,
    StopRequest,
    TranscriptEntryResponse,
)
from src.session.controller import SessionController
from src.session.models import AuthContext
from src.session.store import MAX_TIMESTAMP_MS

router = APIRouter(prefix="/api/sessions")

Controller = Annotated[SessionController, Depends(get_controller)]

# 25 MB per audio chunk
MAX_CHUNK_BYTES = 25 * 1024 * 1024


@router.post("/{room_id}/init", response_model=InitResponse)
async def init_session(room_id: str, body: InitRequest, controller: Controller) -> InitResponse:
    """Start a new session for a room, discarding any previous participants."""
    session = controller.init_session(room_id, body.start_time)
    return InitResponse(room_id=room_id, start_time=session.start_time or body.start_time)


@router.post("/{room_id}/participants", response_model=ParticipantResponse)
async def register_participant(
    room_id: str, body: RegisterParticipantRequest, controller: Controller
) -> ParticipantResponse:
    record = controller.register_participant(room_id, body.id, body.name, body.offset)
    return ParticipantResponse(
        id=record.id,
        name=record.name,
        offset=record.offset,
        state=record.state.value,
        chunk_count=len(record.fragments),
    )


@router.post("/{room_id}/participants/{participant_id}/chunks", response_model=ChunkResponse)
async def ingest_chunk(
    room_id: str,
    participant_id: str,
    file: Annotated[UploadFile, File(...)],
    timestamp: Annotated[int, Form(ge=0, le=MAX_TIMESTAMP_MS)],
    controller: Controller,
) -> ChunkResponse:
    """Append one recorded audio fragment for a participant."""
    fragment = await file.read()
    if len(fragment) > MAX_CHUNK_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Chunk too large. Maximum size is {MAX_CHUNK_BYTES // (1024 * 1024)} MB.",
        )
    accepted = controller.ingest_chunk(room_id, participant_id, fragment, timestamp)
    return ChunkResponse(participant_id=participant_id, accepted=accepted, size=len(fragment))


@router.post(
    "/{room_id}/participants/{participant_id}/stop", response_model=TranscriptEntryResponse
)
async def stop_participant(
    room_id: str, participant_id: str, body: StopRequest, controller: Controller
) -> TranscriptEntryResponse:
    """Finalize a participant's recording and return their transcript."""
    entry = await controller.finalize_participant(room_id, participant_id, body.stop_time)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Participant {participant_id} not found")
    return TranscriptEntryResponse.from_entry(entry)


@router.post("/{room_id}/end", response_model=MeetingSummaryResponse)
async def end_session(
    room_id: str,
    controller: Controller,
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> MeetingSummaryResponse:
    """End the meeting: transcribe everyone, summarize, persist, return the result."""
    summary = await controller.end_session(room_id, auth)
    return MeetingSummaryResponse.from_summary(summary)
