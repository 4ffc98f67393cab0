"""Stored meeting summaries for an organization."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from src.api.deps import get_auth_context, get_sink
from src.api.models import StoredSummary
from src.session.models import AuthContext
from src.storage.summaries import SupabaseSummarySink

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/summaries", response_model=list[StoredSummary])
async def list_summaries(
    org_id: str,
    auth: Annotated[AuthContext, Depends(get_auth_context)],
    sink: Annotated[SupabaseSummarySink, Depends(get_sink)],
) -> list[StoredSummary]:
    """List summaries for ``org_id`` (newest first). Anonymous callers get ``[]``."""
    if not auth.user_id:
        logger.warning("No logged-in user; returning no summaries")
        return []

    try:
        rows = await sink.list_for_org(org_id)
    except Exception as exc:
        logger.exception("Error fetching meeting summaries for %s", org_id)
        raise HTTPException(status_code=502, detail="Could not load meeting summaries") from exc

    logger.info("Fetched %d summaries for organization %s", len(rows), org_id)
    return [StoredSummary.model_validate(row) for row in rows]
