"""Pipeline configuration: polling and retry policies for the orchestrators."""

from __future__ import annotations

from dataclasses import dataclass, field

from src.config import Settings


@dataclass(frozen=True)
class PollPolicy:
    """How a transcription job is polled.

    ``interval`` is the sleep between status checks; ``timeout`` bounds the
    whole upload -> submit -> poll sequence for one participant.
    """

    interval: float = 3.0
    timeout: float = 600.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for a summarization model that is still warming up."""

    backoff: float = 15.0
    max_attempts: int = 5
    max_elapsed: float = 120.0


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the recording -> summary pipeline."""

    poll: PollPolicy = field(default_factory=PollPolicy)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    max_input_chars: int = 4000

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            poll=PollPolicy(
                interval=settings.poll_interval_seconds,
                timeout=settings.transcription_timeout_seconds,
            ),
            retry=RetryPolicy(
                backoff=settings.summary_retry_backoff_seconds,
                max_attempts=settings.summary_max_attempts,
                max_elapsed=settings.summary_max_elapsed_seconds,
            ),
            max_input_chars=settings.summary_max_input_chars,
        )
