from supabase import create_client, Client
from endpoints_bot.config import get_settings


def get_supabase_admin() -> Client:
    """Service role client, bypasses RLS, for server-side session storage."""
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for supabase sessions")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key
    )
