from typing import Iterable, Optional

from supabase import Client

from huddle.core.dependencies import PROFILE_COLUMNS


def get_username(supabase: Client, id: str) -> Optional[str]:
    """Get a user username using there id"""

    response = (
        supabase.table("profiles")
        .select("username")
        .eq("id", str(id))
        .limit(1)
        .execute()
    )

    if not response.data:
        return None
    return response.data[0]["username"]


def get_profiles_by_ids(supabase: Client, ids: Iterable[str]) -> dict[str, dict]:
    """Fetch several profiles in one query, keyed by id."""
    unique_ids = list(dict.fromkeys(str(i) for i in ids))
    if not unique_ids:
        return {}

    response = (
        supabase.table("profiles")
        .select(PROFILE_COLUMNS)
        .in_("id", unique_ids)
        .execute()
    )

    return {row["id"]: row for row in response.data or []}
