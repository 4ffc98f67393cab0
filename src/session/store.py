"""In-memory chunk store for one recording session.

A :class:`MeetingSession` holds every participant's audio fragments between
``init`` and ``end_session``.  Ingestion calls arrive from independent
participant channels in arbitrary order; every mutating method runs without
an ``await`` between its lookup and its write, so each one is atomic with
respect to the others on the event loop.  Transcription is the only
suspending step and is serialised per participant with an ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from src.session.models import ParticipantRecord, ParticipantState, TranscriptEntry

logger = logging.getLogger(__name__)

Transcriber = Callable[[bytes], Awaitable[str]]


# 9999-12-31T23:59:59.999Z, the last instant datetime can represent
MAX_TIMESTAMP_MS = 253_402_300_799_999
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def valid_timestamp(value: int) -> bool:
    return 0 <= value <= MAX_TIMESTAMP_MS


def ms_to_iso(value: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC timestamp (``...Z``).

    Values outside the representable range are clamped to it.
    """
    value = min(max(value, 0), MAX_TIMESTAMP_MS)
    dt = EPOCH + timedelta(milliseconds=value)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MeetingSession:
    """Participant records and the session clock for a single room."""

    def __init__(
        self,
        room_id: str,
        start_time: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.room_id = room_id
        self.start_time = start_time
        self.clock = clock
        self._participants: dict[str, ParticipantRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def init(self, start_time: int) -> None:
        """Start a new session: set the clock and drop all participant records."""
        if not valid_timestamp(start_time):
            raise ValueError(f"start_time out of range: {start_time}")
        self.start_time = start_time
        self._participants.clear()
        self._locks.clear()
        logger.info("Session %s initialized at %s", self.room_id, ms_to_iso(start_time))

    def register_participant(
        self, participant_id: str, name: str | None = None, offset: int | None = None
    ) -> ParticipantRecord:
        """Create (or replace) a participant record.

        Registration is an upsert: the last registration wins and starts the
        participant over with no fragments.  A finalized participant keeps its
        audio and transcript; only a new ``name`` is applied.
        """
        existing = self._participants.get(participant_id)
        if existing is not None and existing.finalized:
            if name:
                existing.name = name
            logger.warning("Participant %s already finalized; only name updated", participant_id)
            return existing
        if existing is not None:
            logger.warning("Participant %s re-registered; previous audio discarded", participant_id)

        if offset is not None and not valid_timestamp(offset):
            logger.warning("Ignoring out-of-range offset %d for %s", offset, participant_id)
            offset = None
        record = ParticipantRecord(
            id=participant_id,
            name=name,
            offset=offset if offset is not None else self.clock(),
        )
        self._participants[participant_id] = record
        self._locks.pop(participant_id, None)
        logger.info("Added participant %s (%s)", participant_id, name or "Unnamed")
        return record

    def ingest_chunk(self, participant_id: str, fragment: bytes, timestamp: int) -> bool:
        """Append one audio fragment for a participant.

        Unknown participants are auto-registered and a missing session clock is
        set from the chunk timestamp.  Returns False only when the participant
        is already finalized, in which case the fragment is dropped.  An
        out-of-range timestamp is replaced by the current time.
        """
        if not valid_timestamp(timestamp):
            logger.warning(
                "Chunk for %s has out-of-range timestamp %d; using now", participant_id, timestamp
            )
            timestamp = self.clock()

        if self.start_time is None:
            self.start_time = timestamp
            logger.warning(
                "Session %s not initialized when chunk received; clock set to %s",
                self.room_id,
                ms_to_iso(timestamp),
            )

        record = self._participants.get(participant_id)
        if record is None:
            record = ParticipantRecord(id=participant_id, offset=timestamp)
            self._participants[participant_id] = record
            logger.warning("Participant %s not registered; auto-registered", participant_id)

        if record.finalized:
            logger.warning("Dropping chunk for finalized participant %s", participant_id)
            return False

        record.fragments.append(fragment)
        record.offset = timestamp
        record.state = ParticipantState.INGESTING
        logger.debug("Received %d bytes from %s", len(fragment), record.name or participant_id)
        return True

    async def finalize_participant(
        self, participant_id: str, stop_time: int, transcribe: Transcriber
    ) -> TranscriptEntry | None:
        """Stop a participant's recorder and transcribe what they said.

        Returns None for an unknown participant.  Transcription failures
        produce an entry with empty text; this method does not raise them.
        """
        record = self._participants.get(participant_id)
        if record is None:
            logger.warning("No data to finalize for participant %s", participant_id)
            return None

        record.state = ParticipantState.FINALIZED
        logger.info(
            "Stopping recorder for %s at %s (%d fragments)",
            record.name or participant_id,
            ms_to_iso(stop_time),
            len(record.fragments),
        )
        text = await self.transcribe_participant(record, transcribe)
        return TranscriptEntry(id=record.id, name=record.name or record.id, text=text)

    def close(self) -> None:
        """Finalize every participant; later chunks for this session are dropped."""
        for record in self._participants.values():
            record.state = ParticipantState.FINALIZED

    def establish_clock(self, now: int) -> int:
        """Return the session start, deriving it if ``init`` was never called.

        Falls back to the earliest participant offset, then to ``now``.  Once
        set, the clock is left alone until the next ``init``.
        """
        if self.start_time is None:
            offsets = [p.offset for p in self._participants.values()]
            self.start_time = min(offsets) if offsets else now
            logger.warning(
                "Session %s start time derived as %s", self.room_id, ms_to_iso(self.start_time)
            )
        return self.start_time

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def participants(self) -> list[ParticipantRecord]:
        return list(self._participants.values())

    def get(self, participant_id: str) -> ParticipantRecord | None:
        return self._participants.get(participant_id)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------

    async def transcribe_participant(
        self, record: ParticipantRecord, transcribe: Transcriber
    ) -> str:
        """Transcribe a record's combined audio, reusing a finalized result.

        Records with no audio produce ``""`` without calling ``transcribe``.
        Once a finalized record's transcript is cached its fragments are
        released.
        """
        lock = self._locks.setdefault(record.id, asyncio.Lock())
        async with lock:
            if record.finalized and record.transcript is not None:
                return record.transcript

            audio = record.combined_audio()
            if not audio:
                logger.warning("%s had no audio recorded", record.name or record.id)
                text = ""
            else:
                logger.info(
                    "Transcribing %s (%.2f KB)", record.name or record.id, len(audio) / 1024
                )
                try:
                    text = await transcribe(audio)
                except Exception:
                    logger.exception("Transcription failed for %s", record.id)
                    text = ""

            if not text.strip():
                logger.warning("Empty transcription for %s", record.name or record.id)
            if record.finalized:
                record.transcript = text
                record.fragments.clear()
            return text
