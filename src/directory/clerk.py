"""Participant display names from Clerk organization memberships."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.config import Settings

logger = logging.getLogger(__name__)

# Clerk's max page size for membership listing
PAGE_SIZE = 500


def display_name(user: dict[str, Any]) -> str:
    """Build a display name from Clerk public user data.

    "First Last" when either part is present, otherwise the username, then
    the local part of an email identifier, then "Member".
    """
    first = (user.get("first_name") or user.get("firstName") or "").strip()
    last = (user.get("last_name") or user.get("lastName") or "").strip()
    if first or last:
        return " ".join(part for part in (first, last) if part)

    username = user.get("username")
    if username:
        return str(username)

    identifier = user.get("identifier")
    if identifier:
        return str(identifier).split("@", 1)[0]
    return "Member"


class ClerkNameResolver:
    """Resolve ``user_id -> display name`` for every member of an organization."""

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.clerk.com/v1",
        page_size: int = PAGE_SIZE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.page_size = page_size
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> ClerkNameResolver:
        return cls(settings.clerk_secret_key, settings.clerk_api_url)

    async def resolve_names(self, org_id: str | None) -> dict[str, str]:
        """Return a mapping of member user IDs to display names.

        A missing org or key, an HTTP error, or an undecodable body yields
        ``{}``.  Pages that are neither a list nor an object end the listing.
        """
        if not org_id:
            logger.warning("No org id provided for fetching member names")
            return {}
        if not self.secret_key:
            logger.warning("CLERK_SECRET_KEY not set; cannot fetch organization members")
            return {}

        names: dict[str, str] = {}
        try:
            if self._client is not None:
                memberships = await self._list_memberships(self._client, org_id)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    memberships = await self._list_memberships(client, org_id)
        except (httpx.HTTPError, ValueError):
            logger.exception("Error fetching organization members for %s", org_id)
            return {}

        for membership in memberships:
            user = membership.get("public_user_data") or membership.get("publicUserData")
            if not isinstance(user, dict):
                continue
            user_id = user.get("user_id") or user.get("userId")
            if not user_id:
                continue
            names[user_id] = display_name(user)

        logger.info("Fetched %d organization member names", len(names))
        return names

    async def _list_memberships(
        self, client: httpx.AsyncClient, org_id: str
    ) -> list[dict[str, Any]]:
        """Page through memberships until an empty or short page."""
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }
        memberships: list[dict[str, Any]] = []
        offset = 0
        while True:
            response = await client.get(
                f"{self.api_url}/organizations/{org_id}/memberships",
                params={"limit": self.page_size, "offset": offset},
                headers=headers,
            )
            if not response.is_success:
                if offset == 0:
                    logger.warning(
                        "Failed to fetch organization members: %s", response.reason_phrase
                    )
                break

            data = response.json()
            if isinstance(data, dict):
                data = data.get("data")
            if not isinstance(data, list) or not data:
                break
            page = [m for m in data if isinstance(m, dict)]
            memberships.extend(page)
            if len(data) < self.page_size:
                break
            offset += self.page_size
        return memberships
