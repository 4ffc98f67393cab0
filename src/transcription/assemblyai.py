"""AssemblyAI-backed transcription service.

The SDK is synchronous, so each call runs in a worker thread to keep the
event loop free while other participants are uploading or polling.
"""

from __future__ import annotations

import asyncio
import io

import assemblyai as aai  # type: ignore[import-untyped]

from src.config import Settings
from src.transcription.service import JobResult, JobStatus


class AssemblyAITranscriptionService:
    """Upload / submit / poll against AssemblyAI's transcript API."""

    def __init__(self, api_key: str, speech_model: str = "universal-3-pro") -> None:
        aai.settings.api_key = api_key
        self._transcriber = aai.Transcriber()
        # speech_models (plural) is required by the current API; the SDK default is empty.
        self._config = aai.TranscriptionConfig(speech_models=[speech_model])

    @classmethod
    def from_settings(cls, settings: Settings) -> AssemblyAITranscriptionService:
        return cls(settings.assemblyai_api_key, settings.assemblyai_speech_model)

    async def upload(self, audio: bytes) -> str:
        return await asyncio.to_thread(self._transcriber.upload_file, io.BytesIO(audio))

    async def submit_job(self, upload_url: str) -> str:
        transcript = await asyncio.to_thread(
            self._transcriber.submit, upload_url, config=self._config
        )
        return str(transcript.id)

    async def poll_job(self, job_id: str) -> JobResult:
        transcript = await asyncio.to_thread(aai.Transcript.get_by_id, job_id)
        return _to_job_result(transcript)


def _to_job_result(transcript: aai.Transcript) -> JobResult:
    """Map an SDK transcript onto the service-neutral JobResult."""
    if transcript.status == aai.TranscriptStatus.completed:
        return JobResult(status=JobStatus.COMPLETED, text=transcript.text or "")
    if transcript.status == aai.TranscriptStatus.error:
        return JobResult(status=JobStatus.ERRORED, error=transcript.error)
    return JobResult(status=JobStatus.PENDING)
