"""
Marketplace - Database Client.

Provides Supabase access for server-side persistence.
"""

from marketplace.db.client import get_service_client

__all__ = [
    "get_service_client",
]
