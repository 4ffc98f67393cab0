"""Shared fixtures: a SessionController wired to fakes (no external services)."""

from __future__ import annotations

import pytest

from src.pipeline_config import PipelineConfig, PollPolicy, RetryPolicy
from src.session.controller import SessionController
from tests.fakes import NOW, FakeNames, FakeSink, FakeSummarizer, FakeTranscription


@pytest.fixture
def transcription() -> FakeTranscription:
    return FakeTranscription()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def names() -> FakeNames:
    return FakeNames()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def fast_config() -> PipelineConfig:
    return PipelineConfig(
        poll=PollPolicy(interval=0, timeout=5),
        retry=RetryPolicy(backoff=0, max_attempts=3, max_elapsed=10),
    )


@pytest.fixture
def controller(
    transcription: FakeTranscription,
    summarizer: FakeSummarizer,
    names: FakeNames,
    sink: FakeSink,
    fast_config: PipelineConfig,
) -> SessionController:
    return SessionController(
        transcription=transcription,
        summarizer=summarizer,
        names=names,
        sink=sink,
        config=fast_config,
        clock=lambda: NOW,
    )
