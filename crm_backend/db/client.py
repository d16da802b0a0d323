"""
Per-request Supabase clients.

Every request gets its own client carrying the caller's JWT, so auth.uid()
in the database policies is the caller. Only the publishable key is ever
used here.
"""

import logging

from supabase import Client, ClientOptions, create_client

from crm_backend.config import settings

logger = logging.getLogger(__name__)


def _client_options() -> ClientOptions:
    # The API never signs users in; it only forwards their token
    return ClientOptions(
        postgrest_client_timeout=settings.SUPABASE_TIMEOUT_SECONDS,
        auto_refresh_token=False,
        persist_session=False,
    )


def get_supabase_client(access_token: str) -> Client:
    """
    Client whose queries run as the caller.

    Args:
        access_token: Verified bearer token from AuthenticatedUser

    Example:
        >>> supabase_client = get_supabase_client(auth_user.access_token)
        >>> supabase_client.table("clients").select("*").execute()
    """
    client = create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_PUBLISHABLE_KEY,
        options=_client_options(),
    )
    client.postgrest.auth(access_token)

    logger.debug("Supabase client created for caller token")
    return client
