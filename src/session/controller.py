"""Session lifecycle: init -> register -> ingest -> finalize -> end.

``SessionController.end_session`` is a join-then-reduce: every participant
is transcribed concurrently, and only once all of them have resolved is the
joined transcript summarized, decorated with display names and persisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from src.pipeline_config import PipelineConfig
from src.session.models import AuthContext, MeetingSummary, ParticipantRecord, TranscriptEntry
from src.session.store import MeetingSession, ms_to_iso, now_ms
from src.summarization.huggingface import SummaryResult
from src.summarization.keypoints import (
    PLACEHOLDER_KEY_POINTS,
    PLACEHOLDER_SUMMARY,
    fallback_key_points,
    fallback_summary,
)
from src.transcription.service import TranscriptionService, transcribe_audio

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    async def summarize(self, transcript: str) -> SummaryResult: ...


class NameResolver(Protocol):
    async def resolve_names(self, org_id: str | None) -> dict[str, str]: ...


class SummarySink(Protocol):
    async def lookup_org_id(self, room_id: str) -> str | None: ...

    async def save(
        self,
        summary: MeetingSummary,
        room_id: str,
        auth: AuthContext,
        lookup_room: bool = True,
    ) -> dict[str, Any]: ...


class SessionController:
    """Owns one :class:`MeetingSession` per room and drives the pipeline."""

    def __init__(
        self,
        transcription: TranscriptionService,
        summarizer: Summarizer,
        names: NameResolver,
        sink: SummarySink,
        config: PipelineConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.transcription = transcription
        self.summarizer = summarizer
        self.names = names
        self.sink = sink
        self.config = config or PipelineConfig()
        self.clock = clock
        self._sessions: dict[str, MeetingSession] = {}

    # ------------------------------------------------------------------
    # Session registry
    # ------------------------------------------------------------------

    def session(self, room_id: str) -> MeetingSession:
        """Get or create the session for ``room_id``."""
        session = self._sessions.get(room_id)
        if session is None:
            session = self._sessions[room_id] = MeetingSession(room_id, clock=self.clock)
        return session

    def init_session(self, room_id: str, start_time: int) -> MeetingSession:
        session = self.session(room_id)
        session.init(start_time)
        return session

    def register_participant(
        self,
        room_id: str,
        participant_id: str,
        name: str | None = None,
        offset: int | None = None,
    ) -> ParticipantRecord:
        return self.session(room_id).register_participant(participant_id, name, offset)

    def ingest_chunk(
        self, room_id: str, participant_id: str, fragment: bytes, timestamp: int
    ) -> bool:
        return self.session(room_id).ingest_chunk(participant_id, fragment, timestamp)

    async def finalize_participant(
        self, room_id: str, participant_id: str, stop_time: int
    ) -> TranscriptEntry | None:
        return await self.session(room_id).finalize_participant(
            participant_id, stop_time, self._transcribe
        )

    async def _transcribe(self, audio: bytes) -> str:
        return await transcribe_audio(self.transcription, audio, self.config.poll)

    # ------------------------------------------------------------------
    # End of session
    # ------------------------------------------------------------------

    async def end_session(self, room_id: str, auth: AuthContext | None = None) -> MeetingSummary:
        """Transcribe, summarize and persist the session for ``room_id``.

        Always returns a complete aggregate: transcription, summarization,
        name lookup and persistence failures only degrade its content.
        """
        auth = auth or AuthContext()
        session = self.session(room_id)

        start = session.establish_clock(self.clock())
        end = self.clock()
        duration = end - start
        session.close()
        participants = session.participants
        logger.info(
            "Meeting %s ended: %d participants, %.2f minutes",
            room_id,
            len(participants),
            duration / 60000,
        )

        org_id = await self._resolve_org(room_id, auth)
        member_names = await self._resolve_names(org_id)
        participant_names = {
            p.id: member_names.get(p.id) or p.name or p.id for p in participants
        }

        texts = await asyncio.gather(
            *(session.transcribe_participant(p, self._transcribe) for p in participants)
        )
        transcriptions = tuple(
            TranscriptEntry(id=p.id, name=participant_names[p.id], text=text)
            for p, text in zip(participants, texts, strict=True)
        )

        full_transcript = "\n".join(
            f"{t.name or t.id}: {t.text}" for t in transcriptions if t.text.strip()
        ).strip()

        if not full_transcript:
            logger.warning("No transcription data available; using placeholder summary")
            summary, key_points = PLACEHOLDER_SUMMARY, list(PLACEHOLDER_KEY_POINTS)
        else:
            summary, key_points = await self._summarize(full_transcript)

        result = MeetingSummary(
            summary=summary,
            key_points=tuple(key_points),
            participants=tuple(p.id for p in participants),
            participant_names=participant_names,
            transcriptions=transcriptions,
            duration=duration,
            start_time=ms_to_iso(start),
            end_time=ms_to_iso(end),
        )

        try:
            await self.sink.save(
                result,
                room_id,
                AuthContext(org_id=org_id, user_id=auth.user_id),
                lookup_room=False,
            )
        except Exception:
            logger.exception("Failed to save meeting summary for room %s", room_id)

        return result

    async def _resolve_org(self, room_id: str, auth: AuthContext) -> str | None:
        """Caller org, else the org that owns the room."""
        if auth.org_id:
            return auth.org_id
        try:
            return await self.sink.lookup_org_id(room_id)
        except Exception:
            logger.exception("Org lookup failed for room %s", room_id)
            return None

    async def _resolve_names(self, org_id: str | None) -> dict[str, str]:
        try:
            names = await self.names.resolve_names(org_id)
        except Exception:
            logger.exception("Name resolution failed for org %s", org_id)
            return {}
        logger.info("Resolved %d member names", len(names))
        return names

    async def _summarize(self, transcript: str) -> tuple[str, list[str]]:
        try:
            result = await self.summarizer.summarize(transcript)
        except Exception:
            logger.exception("Error during summarization")
            result = None

        if result is not None and result.usable:
            logger.info("Meeting summarized successfully")
            return result.summary, list(result.key_points)

        logger.warning("Summarization failed or returned an error; using transcript fallback")
        return fallback_summary(transcript), fallback_key_points(transcript)
