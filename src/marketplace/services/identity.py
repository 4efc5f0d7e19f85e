"""
Marketplace - Identity Service client.

Resolves the authenticated user and keeps a cached copy of their profile.
Backend user records come in several shapes (name / full_name / display_name,
photo / profile_photo); normalize_user_record() resolves them once here so
the rest of the code sees a single UserProfile shape.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel

from marketplace.services.http import ApiClient, APIError

logger = logging.getLogger(__name__)


class UserProfile(BaseModel):
    """Canonical user record."""
    id: str
    user_type: Literal["analyst", "trader"]
    display_name: str = ""
    email: str | None = None
    phone: str | None = None
    profile_photo_url: str = ""
    profile_completed: bool = False
    verification_status: str | None = None


def _first_present(record: dict, *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_user_record(record: dict) -> UserProfile:
    """Map a raw backend user record onto UserProfile."""
    return UserProfile(
        id=str(_first_present(record, "id", "_id", "user_id")),
        user_type=record.get("user_type"),
        display_name=_first_present(record, "name", "full_name", "display_name") or "",
        email=record.get("email"),
        phone=record.get("phone"),
        profile_photo_url=_first_present(record, "profile_photo_url", "profile_photo", "photo_url") or "",
        profile_completed=bool(record.get("profile_completed", False)),
        verification_status=record.get("verification_status"),
    )


class IdentityService:
    """Current-user lookup with a locally cached, patchable profile."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.cached_user: UserProfile | None = None

    async def get_current_user(self) -> UserProfile:
        """Fetch /auth/me and refresh the cache."""
        body = await self.api.get("/auth/me")
        if not body.get("success"):
            raise APIError(body.get("message") or "Not authenticated", status=401)

        data = body.get("data") or {}
        record = data.get("user", data)
        try:
            self.cached_user = normalize_user_record(record)
        except ValueError as e:
            logger.error(f"Unexpected user record from identity service: {e}")
            raise APIError("Invalid user type received from server") from e
        return self.cached_user

    def update_cached_profile(self, **changes: Any) -> UserProfile | None:
        """Merge changes into the cached profile (no server call)."""
        if self.cached_user is None:
            logger.info("No cached user to update")
            return None
        self.cached_user = self.cached_user.model_copy(update=changes)
        return self.cached_user
