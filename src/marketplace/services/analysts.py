"""
Marketplace - Analyst endpoints.

Onboarding submission and the two file uploads (profile photo, SEBI
certificate). Callers must run the pre-flight checks in onboarding.uploads
before uploading.
"""

import logging

from marketplace.services.http import ApiClient, APIError

logger = logging.getLogger(__name__)


class AnalystService:
    """Client for /analysts/* endpoints used during onboarding."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def setup_profile(self, payload: dict) -> dict:
        """Submit the composed onboarding application."""
        body = await self.api.post("/analysts/profile/setup", json=payload)
        if not body.get("success"):
            raise APIError(body.get("message") or "Failed to submit application", data=body)
        return body

    async def upload_profile_photo(self, filename: str, content: bytes, content_type: str) -> str:
        """Upload a profile photo; returns its URL."""
        body = await self.api.post(
            "/analysts/profile/photo",
            files={"photo": (filename, content, content_type)},
        )
        return self._uploaded_url(body, "photo_url")

    async def upload_certificate(self, filename: str, content: bytes, content_type: str) -> str:
        """Upload the SEBI certificate; returns its URL."""
        body = await self.api.post(
            "/analysts/documents/upload",
            files={"document": (filename, content, content_type)},
            data={"document_type": "sebi_certificate"},
        )
        return self._uploaded_url(body, "certificate_url")

    @staticmethod
    def _uploaded_url(body: dict, key: str) -> str:
        url = (body.get("data") or {}).get(key) if body.get("success") else None
        if not url:
            raise APIError(body.get("message") or "Upload failed", data=body)
        logger.info(f"Uploaded file available at {url}")
        return url
