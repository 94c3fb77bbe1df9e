"""
Supabase-backed data access for CollabPost.
"""

from .base import StoreError, SupabaseStore
from .content_store import ContentStore
from .platform_account_store import PlatformAccountStore
from .share_store import ShareStore
from .supabase_client import close_supabase_client, create_supabase_client
from .team_store import TeamStore

__all__ = [
    "StoreError",
    "SupabaseStore",
    "ContentStore",
    "PlatformAccountStore",
    "ShareStore",
    "TeamStore",
    "create_supabase_client",
    "close_supabase_client",
]
