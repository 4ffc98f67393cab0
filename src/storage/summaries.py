"""Supabase storage helpers for meeting summaries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, cast

from supabase import Client, create_client

from src.config import Settings, settings
from src.session.models import AuthContext, MeetingSummary

logger = logging.getLogger(__name__)

SUMMARIES_TABLE = "meeting_summaries"


def get_supabase_client() -> Client:
    """Create and return a Supabase client from the configured URL and key."""
    return create_client(settings.supabase_url, settings.supabase_key)


def summary_record(
    summary: MeetingSummary,
    room_id: str,
    org_id: str,
    created_by: str | None,
) -> dict[str, Any]:
    """Row for the ``meeting_summaries`` table (``created_at`` is set by the DB)."""
    return {
        "room_id": room_id,
        "org_id": org_id,
        "created_by": created_by,
        "summary_text": summary.summary or "",
        "key_points": list(summary.key_points),
        "participants": list(summary.participants),
        "participant_names": dict(summary.participant_names),
        "duration_ms": summary.duration or 0,
        "start_time": summary.start_time,
        "end_time": summary.end_time,
        "transcriptions": [t.to_dict() for t in summary.transcriptions],
    }


def store_meeting_summary(
    client: Client,
    summary: MeetingSummary,
    room_id: str,
    org_id: str,
    created_by: str | None = None,
) -> dict[str, Any]:
    """Insert a meeting summary and return the saved row.

    Raises:
        RuntimeError: If the insert returned no data.
    """
    row = summary_record(summary, room_id, org_id, created_by)
    result = client.table(SUMMARIES_TABLE).insert(row).execute()
    rows = cast(list[dict[str, Any]], result.data)
    if not rows:
        raise RuntimeError("Insert returned no data")
    return rows[0]


def get_room_org_id(client: Client, room_id: str) -> str | None:
    """Look up the organization that owns a room."""
    result = client.table("rooms").select("org_id").eq("id", room_id).execute()
    rows = cast(list[dict[str, Any]], result.data)
    if not rows:
        return None
    return rows[0].get("org_id")


def list_meeting_summaries(client: Client, org_id: str) -> list[dict[str, Any]]:
    """All stored summaries for an organization, newest meeting first."""
    result = (
        client.table(SUMMARIES_TABLE)
        .select("*")
        .eq("org_id", org_id)
        .order("start_time", desc=True)
        .execute()
    )
    return cast(list[dict[str, Any]], result.data)


class SupabaseSummarySink:
    """Persistence sink backed by Supabase.

    The Supabase client is synchronous; calls run in a worker thread.
    """

    def __init__(
        self,
        client: Client | None = None,
        default_org_id: str = "org_default",
        system_user_id: str = "system",
    ) -> None:
        self._client = client
        self.default_org_id = default_org_id
        self.system_user_id = system_user_id

    @classmethod
    def from_settings(cls, settings: Settings) -> SupabaseSummarySink:
        return cls(default_org_id=settings.default_org_id, system_user_id=settings.system_user_id)

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    async def lookup_org_id(self, room_id: str) -> str | None:
        """Organization owning ``room_id``; None if unknown or the lookup fails."""
        try:
            return await asyncio.to_thread(get_room_org_id, self.client, room_id)
        except Exception:
            logger.warning("Could not fetch org id for room %s", room_id, exc_info=True)
            return None

    async def save(
        self,
        summary: MeetingSummary,
        room_id: str,
        auth: AuthContext,
        lookup_room: bool = True,
    ) -> dict[str, Any]:
        """Persist ``summary``; errors propagate to the caller.

        Pass ``lookup_room=False`` when ``auth.org_id`` already holds the
        room's org (or the room has none) to skip the room lookup.
        """
        org_id = auth.org_id
        if not org_id and lookup_room:
            org_id = await self.lookup_org_id(room_id)
        if not org_id:
            org_id = self.default_org_id
            logger.warning("Using fallback org id %s for room %s", org_id, room_id)
        created_by = auth.user_id or self.system_user_id

        saved = await asyncio.to_thread(
            store_meeting_summary, self.client, summary, room_id, org_id, created_by
        )
        logger.info("Saved meeting summary %s (room %s)", saved.get("id"), room_id)
        return saved

    async def list_for_org(self, org_id: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(list_meeting_summaries, self.client, org_id)
