"""Speech-to-text job orchestration: upload -> submit -> poll."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from src.pipeline_config import PollPolicy

logger = logging.getLogger(__name__)


class JobStatus(StrEnum):
    """Status of an asynchronous transcription job."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass(frozen=True)
class JobResult:
    """One poll of a transcription job."""

    status: JobStatus
    text: str | None = None
    error: str | None = None

    @property
    def terminal(self) -> bool:
        return self.status is not JobStatus.PENDING


class TranscriptionService(Protocol):
    """External speech-to-text service with an upload + job API."""

    async def upload(self, audio: bytes) -> str: ...

    async def submit_job(self, upload_url: str) -> str: ...

    async def poll_job(self, job_id: str) -> JobResult: ...


async def _run_job(service: TranscriptionService, audio: bytes, interval: float) -> JobResult:
    upload_url = await service.upload(audio)
    logger.info("Uploaded %d bytes; starting transcription job", len(audio))

    job_id = await service.submit_job(upload_url)
    polls = 0
    while True:
        await asyncio.sleep(interval)
        result = await service.poll_job(job_id)
        polls += 1
        if result.terminal:
            logger.info("Job %s finished as %s after %d polls", job_id, result.status, polls)
            return result


async def transcribe_audio(
    service: TranscriptionService,
    audio: bytes,
    policy: PollPolicy | None = None,
) -> str:
    """Transcribe one participant's audio.

    Returns the transcript text, or ``""`` when the job errors, times out or
    the service call fails.  Cancellation still propagates to the caller.
    """
    policy = policy or PollPolicy()
    try:
        async with asyncio.timeout(policy.timeout):
            result = await _run_job(service, audio, policy.interval)
    except TimeoutError:
        logger.error("Transcription did not finish within %.0fs", policy.timeout)
        return ""
    except Exception:
        logger.exception("Transcription service call failed")
        return ""

    if result.status is JobStatus.COMPLETED:
        text = result.text or ""
        logger.info("Transcription complete. Length: %d", len(text))
        return text

    logger.error("Transcription job errored: %s", result.error)
    return ""
