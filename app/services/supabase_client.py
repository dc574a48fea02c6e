from supabase import Client, create_client

from app.core.settings import BillingSettings

_client: Client | None = None


def get_supabase(settings: BillingSettings) -> Client:
    """
    Lazy service-role client, built once per process.
    The service-role key bypasses row level security, so only server code may hold it.
    """
    global _client

    if _client is not None:
        return _client

    if not settings.supabase_url or not settings.supabase_service_key:
        raise RuntimeError(
            "Supabase configuration missing.\n"
            "Required env vars:\n"
            "- SUPABASE_URL\n"
            "- SUPABASE_SERVICE_ROLE_KEY"
        )

    _client = create_client(settings.supabase_url, settings.supabase_service_key)
    return _client
