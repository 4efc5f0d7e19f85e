"""
Marketplace - External service clients.

- http: shared async API client and APIError
- identity: current user and cached profile
- analysts: onboarding submission and file uploads
"""

from marketplace.services.http import ApiClient, APIError
from marketplace.services.identity import IdentityService, UserProfile, normalize_user_record
from marketplace.services.analysts import AnalystService

__all__ = [
    "ApiClient",
    "APIError",
    "IdentityService",
    "UserProfile",
    "normalize_user_record",
    "AnalystService",
]
