"""In-memory stand-ins for the external services used by the session pipeline."""

from __future__ import annotations

from typing import Any

from src.session.models import AuthContext, MeetingSummary
from src.summarization.huggingface import SummaryResult
from src.transcription.service import JobResult, JobStatus

NOW = 1_700_000_060_000


class FakeTranscription:
    """Transcribes audio bytes by decoding them as UTF-8."""

    def __init__(self, status: JobStatus = JobStatus.COMPLETED) -> None:
        self.status = status
        self.uploads: list[bytes] = []

    async def upload(self, audio: bytes) -> str:
        self.uploads.append(audio)
        return f"upload-{len(self.uploads)}"

    async def submit_job(self, upload_url: str) -> str:
        return upload_url.replace("upload", "job")

    async def poll_job(self, job_id: str) -> JobResult:
        index = int(job_id.rsplit("-", 1)[1]) - 1
        if self.status is JobStatus.ERRORED:
            return JobResult(status=JobStatus.ERRORED, error="audio could not be decoded")
        return JobResult(status=self.status, text=self.uploads[index].decode())


class FakeSummarizer:
    def __init__(self, result: SummaryResult | None = None, error: Exception | None = None):
        self.result = result or SummaryResult(
            summary="Hello world. We shipped the feature.",
            key_points=["Hello world", "We shipped the feature"],
        )
        self.error = error
        self.calls: list[str] = []

    async def summarize(self, transcript: str) -> SummaryResult:
        self.calls.append(transcript)
        if self.error is not None:
            raise self.error
        return self.result


class FakeNames:
    def __init__(self, names: dict[str, str] | None = None, error: Exception | None = None):
        self.names = names or {}
        self.error = error
        self.org_ids: list[str | None] = []

    async def resolve_names(self, org_id: str | None) -> dict[str, str]:
        self.org_ids.append(org_id)
        if self.error is not None:
            raise self.error
        return dict(self.names)


class FakeSink:
    def __init__(self, error: Exception | None = None, room_org: str | None = None):
        self.error = error
        self.room_org = room_org
        self.saved: list[tuple[MeetingSummary, str, AuthContext]] = []
        self.lookups = 0
        self.lookup_room = True

    async def lookup_org_id(self, room_id: str) -> str | None:
        self.lookups += 1
        return self.room_org

    async def save(
        self,
        summary: MeetingSummary,
        room_id: str,
        auth: AuthContext,
        lookup_room: bool = True,
    ) -> dict[str, Any]:
        self.lookup_room = lookup_room
        if self.error is not None:
            raise self.error
        self.saved.append((summary, room_id, auth))
        return {"id": f"summary-{len(self.saved)}"}
