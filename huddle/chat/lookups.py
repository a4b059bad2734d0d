from typing import Optional

from fastapi import HTTPException
from supabase import Client

from .models import CONVERSATION_COLUMNS


def get_conversation(supabase: Client, conversation_id: str) -> Optional[dict]:
    result = (
        supabase.table("conversations")
        .select(CONVERSATION_COLUMNS)
        .eq("id", str(conversation_id))
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_conversation_or_404(supabase: Client, conversation_id: str) -> dict:
    conversation = get_conversation(supabase, conversation_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def get_group_or_404(supabase: Client, conversation_id: str) -> dict:
    conversation = get_conversation_or_404(supabase, conversation_id)
    if not conversation.get("is_group"):
        raise HTTPException(status_code=400, detail="This is not a group conversation")
    return conversation


def require_creator(conversation: dict, user_id: str, action: str):
    """403 unless ``user_id`` is the stored creator. ``action`` completes the sentence."""
    if str(conversation.get("creator_id")) != str(user_id):
        raise HTTPException(
            status_code=403, detail=f"Only the group creator can {action}"
        )


def get_membership(
    supabase: Client, conversation_id: str, member_id: str
) -> Optional[dict]:
    result = (
        supabase.table("conversation_members")
        .select("id, conversation_id, member_id, last_seen_message_id, created_at")
        .eq("conversation_id", str(conversation_id))
        .eq("member_id", str(member_id))
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def require_membership(supabase: Client, conversation_id: str, member_id: str) -> dict:
    membership = get_membership(supabase, conversation_id, member_id)
    if not membership:
        raise HTTPException(
            status_code=403, detail="You are not a member of this conversation"
        )
    return membership


def list_memberships(supabase: Client, conversation_id: str) -> list[dict]:
    """All memberships of a conversation, earliest joined first."""
    result = (
        supabase.table("conversation_members")
        .select("id, conversation_id, member_id, last_seen_message_id, created_at")
        .eq("conversation_id", str(conversation_id))
        .order("created_at")
        .order("id")
        .execute()
    )
    return result.data or []
