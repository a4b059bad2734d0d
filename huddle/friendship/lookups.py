from typing import Optional

from supabase import Client


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Friendships are stored with user1_id < user2_id."""
    u1, u2 = sorted([str(user_a), str(user_b)])
    return u1, u2


def get_friendship(supabase: Client, user_a: str, user_b: str) -> Optional[dict]:
    u1, u2 = canonical_pair(user_a, user_b)
    result = (
        supabase.table("friendships")
        .select("id, user1_id, user2_id, status, conversation_id, created_at")
        .eq("user1_id", u1)
        .eq("user2_id", u2)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_request(supabase: Client, request_id: str) -> Optional[dict]:
    result = (
        supabase.table("friend_requests")
        .select("id, sender_id, receiver_id, status, created_at")
        .eq("id", str(request_id))
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_request_between(supabase: Client, sender_id: str, receiver_id: str) -> Optional[dict]:
    """The request sent from ``sender_id`` to ``receiver_id``, if any (directed)."""
    result = (
        supabase.table("friend_requests")
        .select("id, sender_id, receiver_id, status, created_at")
        .eq("sender_id", str(sender_id))
        .eq("receiver_id", str(receiver_id))
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None
