"""Tests for transcription job orchestration and the AssemblyAI adapter."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

from src.pipeline_config import PollPolicy
from src.transcription.assemblyai import AssemblyAITranscriptionService
from src.transcription.service import JobResult, JobStatus, transcribe_audio

FAST = PollPolicy(interval=0, timeout=5)


class ScriptedService:
    """Returns the given poll results in order, repeating the last one."""

    def __init__(self, polls: list[JobResult], upload_error: Exception | None = None) -> None:
        self.polls = polls
        self.upload_error = upload_error
        self.poll_count = 0
        self.submitted: list[str] = []

    async def upload(self, audio: bytes) -> str:
        if self.upload_error is not None:
            raise self.upload_error
        return "https://cdn.example/upload/1"

    async def submit_job(self, upload_url: str) -> str:
        self.submitted.append(upload_url)
        return "job-1"

    async def poll_job(self, job_id: str) -> JobResult:
        result = self.polls[min(self.poll_count, len(self.polls) - 1)]
        self.poll_count += 1
        return result


class TestTranscribeAudio:
    def test_polls_until_completed(self) -> None:
        service = ScriptedService(
            [
                JobResult(status=JobStatus.PENDING),
                JobResult(status=JobStatus.PENDING),
                JobResult(status=JobStatus.COMPLETED, text="We shipped it."),
            ]
        )
        text = asyncio.run(transcribe_audio(service, b"audio", FAST))
        assert text == "We shipped it."
        assert service.poll_count == 3
        assert service.submitted == ["https://cdn.example/upload/1"]

    def test_completed_without_text_is_empty(self) -> None:
        service = ScriptedService([JobResult(status=JobStatus.COMPLETED, text=None)])
        assert asyncio.run(transcribe_audio(service, b"audio", FAST)) == ""

    def test_errored_job_returns_empty(self) -> None:
        service = ScriptedService([JobResult(status=JobStatus.ERRORED, error="bad audio")])
        assert asyncio.run(transcribe_audio(service, b"audio", FAST)) == ""

    def test_upload_failure_returns_empty(self) -> None:
        service = ScriptedService([], upload_error=ConnectionError("network down"))
        assert asyncio.run(transcribe_audio(service, b"audio", FAST)) == ""

    def test_timeout_returns_empty(self) -> None:
        """A job stuck in pending is abandoned once the poll budget is spent."""
        service = ScriptedService([JobResult(status=JobStatus.PENDING)])
        policy = PollPolicy(interval=0.01, timeout=0.1)
        assert asyncio.run(transcribe_audio(service, b"audio", policy)) == ""
        assert service.poll_count >= 1


class TestAssemblyAIService:
    @patch("src.transcription.assemblyai.aai")
    def test_upload_submit_poll(self, mock_aai: MagicMock) -> None:
        transcriber = mock_aai.Transcriber.return_value
        transcriber.upload_file.return_value = "https://cdn.assemblyai.com/upload/abc"
        transcriber.submit.return_value.id = "tr-123"

        pending = MagicMock()
        pending.status = mock_aai.TranscriptStatus.processing
        done = MagicMock()
        done.status = mock_aai.TranscriptStatus.completed
        done.text = "Hello from AssemblyAI."
        mock_aai.Transcript.get_by_id.side_effect = [pending, done]

        service = AssemblyAITranscriptionService("test-key", speech_model="universal-3-pro")
        text = asyncio.run(transcribe_audio(service, b"webm-bytes", FAST))

        assert text == "Hello from AssemblyAI."
        assert mock_aai.settings.api_key == "test-key"
        mock_aai.TranscriptionConfig.assert_called_once_with(speech_models=["universal-3-pro"])
        transcriber.submit.assert_called_once_with(
            "https://cdn.assemblyai.com/upload/abc",
            config=mock_aai.TranscriptionConfig.return_value,
        )
        assert mock_aai.Transcript.get_by_id.call_count == 2
        uploaded = transcriber.upload_file.call_args.args[0]
        assert uploaded.read() == b"webm-bytes"

    @patch("src.transcription.assemblyai.aai")
    def test_error_status_maps_to_errored(self, mock_aai: MagicMock) -> None:
        failed = MagicMock()
        failed.status = mock_aai.TranscriptStatus.error
        failed.error = "Audio file is corrupted"
        mock_aai.Transcript.get_by_id.return_value = failed

        service = AssemblyAITranscriptionService("test-key")
        result = asyncio.run(service.poll_job("tr-123"))

        assert result.status is JobStatus.ERRORED
        assert result.error == "Audio file is corrupted"
