"""FastAPI dependencies: the process-wide controller and caller context."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Header

from src.config import settings
from src.directory.clerk import ClerkNameResolver
from src.pipeline_config import PipelineConfig
from src.session.controller import SessionController
from src.session.models import AuthContext
from src.storage.summaries import SupabaseSummarySink
from src.summarization.huggingface import HuggingFaceSummarizer
from src.transcription.assemblyai import AssemblyAITranscriptionService


@lru_cache(maxsize=1)
def get_sink() -> SupabaseSummarySink:
    return SupabaseSummarySink.from_settings(settings)


@lru_cache(maxsize=1)
def get_controller() -> SessionController:
    """Build the controller once; sessions live for the life of the process."""
    config = PipelineConfig.from_settings(settings)
    return SessionController(
        transcription=AssemblyAITranscriptionService.from_settings(settings),
        summarizer=HuggingFaceSummarizer.from_settings(settings, config),
        names=ClerkNameResolver.from_settings(settings),
        sink=get_sink(),
        config=config,
    )


def get_auth_context(
    x_org_id: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> AuthContext:
    """Caller identity forwarded by the auth proxy in front of this service."""
    return AuthContext(org_id=x_org_id or None, user_id=x_user_id or None)
