"""Pydantic request/response schemas for the Meeting Recorder API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.session.models import MeetingSummary, TranscriptEntry
from src.session.store import MAX_TIMESTAMP_MS


class InitRequest(BaseModel):
    """Request body for ``POST /api/sessions/{room_id}/init``."""

    start_time: int = Field(ge=0, le=MAX_TIMESTAMP_MS)  # epoch ms


class InitResponse(BaseModel):
    room_id: str
    start_time: int


class RegisterParticipantRequest(BaseModel):
    """Request body for ``POST /api/sessions/{room_id}/participants``."""

    id: str = Field(min_length=1)
    name: str | None = None
    offset: int | None = Field(default=None, ge=0, le=MAX_TIMESTAMP_MS)


class ParticipantResponse(BaseModel):
    id: str
    name: str | None = None
    offset: int
    state: str
    chunk_count: int = 0


class ChunkResponse(BaseModel):
    participant_id: str
    accepted: bool
    size: int


class StopRequest(BaseModel):
    """Request body for ``POST .../participants/{participant_id}/stop``."""

    stop_time: int = Field(ge=0, le=MAX_TIMESTAMP_MS)


class TranscriptEntryResponse(BaseModel):
    id: str
    name: str | None = None
    text: str

    @classmethod
    def from_entry(cls, entry: TranscriptEntry) -> TranscriptEntryResponse:
        return cls(id=entry.id, name=entry.name, text=entry.text)


class MeetingSummaryResponse(BaseModel):
    """Aggregate result of ``POST /api/sessions/{room_id}/end``."""

    summary: str
    key_points: list[str]
    participants: list[str]
    participant_names: dict[str, str]
    transcriptions: list[TranscriptEntryResponse]
    duration: int
    start_time: str
    end_time: str

    @classmethod
    def from_summary(cls, summary: MeetingSummary) -> MeetingSummaryResponse:
        return cls(
            summary=summary.summary,
            key_points=list(summary.key_points),
            participants=list(summary.participants),
            participant_names=dict(summary.participant_names),
            transcriptions=[TranscriptEntryResponse.from_entry(t) for t in summary.transcriptions],
            duration=summary.duration,
            start_time=summary.start_time,
            end_time=summary.end_time,
        )


class StoredSummary(BaseModel):
    """A row of the ``meeting_summaries`` table."""

    id: str | None = None
    room_id: str
    org_id: str
    created_by: str | None = None
    summary_text: str
    key_points: list[str] = []
    participants: list[str] = []
    participant_names: dict[str, str] = {}
    duration_ms: int
    start_time: str
    end_time: str
    transcriptions: list[dict[str, Any]] = []
    created_at: str | None = None
