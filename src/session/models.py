"""Data models for a recording session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ParticipantState(StrEnum):
    """Lifecycle of a single participant's audio within a session."""

    REGISTERED = "registered"
    INGESTING = "ingesting"
    FINALIZED = "finalized"


@dataclass
class ParticipantRecord:
    """Per-speaker accumulation state."""

    id: str
    name: str | None = None
    offset: int = 0  # epoch ms of the most recent chunk (or registration)
    fragments: list[bytes] = field(default_factory=list)
    state: ParticipantState = ParticipantState.REGISTERED
    transcript: str | None = None  # cached once finalized

    @property
    def finalized(self) -> bool:
        return self.state is ParticipantState.FINALIZED

    def combined_audio(self) -> bytes:
        return b"".join(self.fragments)


@dataclass(frozen=True)
class TranscriptEntry:
    """Transcribed text for one participant; ``text`` is empty on failure."""

    id: str
    name: str | None
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "text": self.text}


@dataclass(frozen=True)
class MeetingSummary:
    """Aggregate result of one session, built once by ``end_session``."""

    summary: str
    key_points: tuple[str, ...]
    participants: tuple[str, ...]
    participant_names: dict[str, str]
    transcriptions: tuple[TranscriptEntry, ...]
    duration: int  # milliseconds
    start_time: str  # ISO-8601
    end_time: str  # ISO-8601


@dataclass(frozen=True)
class AuthContext:
    """Caller identity used only for attribution on the persisted record."""

    org_id: str | None = None
    user_id: str | None = None
