import os
from functools import lru_cache

from dotenv import load_dotenv
from supabase import create_client, Client


load_dotenv()


@lru_cache
def get_supabase() -> Client:
    """Shared Supabase client, created on first use.

    Routers receive it through ``Depends(get_supabase)`` so tests can swap it
    out with ``app.dependency_overrides``.
    """
    supabase_url = os.getenv("PUBLIC_SUPABASE_URL")
    supabase_key = os.getenv("SECRET_API_KEY")

    return create_client(supabase_url, supabase_key)
