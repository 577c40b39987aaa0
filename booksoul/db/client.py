"""
Supabase client factory.

BookSoul is an anonymous app: sessions are written with the service-role
key from the backend only, never from the browser. The only table touched
is `survey_sessions`.

When Supabase is not configured (missing or placeholder credentials) the
factory returns None and the session store keeps everything in memory.
"""

import logging
from typing import Optional

from booksoul.config import settings
from supabase import Client, create_client

logger = logging.getLogger(__name__)


def get_service_role_client() -> Optional[Client]:
    """
    Create a Supabase client with service_role privileges.

    Returns:
        A Supabase client, or None when credentials are missing or are
        placeholders.
    """
    if not settings.is_supabase_configured():
        logger.warning(
            "Supabase credentials missing or placeholders - "
            "survey sessions will be kept in memory"
        )
        return None

    client: Client = create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_SERVICE_ROLE_KEY,
    )
    logger.debug("Created service-role Supabase client")
    return client
