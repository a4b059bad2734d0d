"""
Conversation listing.

Joins a caller's memberships with their conversations, last messages and
counterpart/group-member profiles. Every conversation is processed on its own
and produces a :class:`ItemResult`; a failure on one item is recorded (and
logged) in ``skipped`` without affecting the others.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from supabase import Client

from huddle.utils.profiles import get_profiles_by_ids

from .lookups import get_conversation, get_membership, list_memberships
from .models import MESSAGE_COLUMNS, message_preview


logger = logging.getLogger(__name__)


@dataclass
class ItemResult:
    conversation_id: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, conversation_id: str, reason: str) -> "ItemResult":
        return cls(conversation_id=str(conversation_id), error=reason)


@dataclass
class LoadedConversation:
    conversation: dict
    membership: dict
    last_message: Optional[dict] = None
    last_message_at: float = 0.0


@dataclass
class ConversationListing:
    conversations: list[dict] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)


def to_timestamp(value) -> float:
    if not value:
        return 0.0
    if isinstance(value, datetime):
        return value.timestamp()
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()


def get_message(supabase: Client, message_id: str) -> Optional[dict]:
    result = (
        supabase.table("messages")
        .select(MESSAGE_COLUMNS)
        .eq("id", str(message_id))
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def load_conversation(supabase: Client, membership: dict) -> ItemResult:
    """Fetch the conversation behind a membership and its last message time."""
    conversation_id = membership.get("conversation_id")
    if not conversation_id:
        return ItemResult.failed("", "membership has no conversation")

    try:
        conversation = get_conversation(supabase, conversation_id)
    except Exception as e:
        logger.warning(f"conversation_fetch_failed id={conversation_id} error={e}")
        return ItemResult.failed(conversation_id, "conversation could not be fetched")

    if not conversation:
        return ItemResult.failed(conversation_id, "conversation not found")

    loaded = LoadedConversation(conversation=conversation, membership=membership)

    if conversation.get("last_message_id"):
        # Unfetchable last message only costs the ordering, not the item
        try:
            loaded.last_message = get_message(supabase, conversation["last_message_id"])
            if loaded.last_message:
                loaded.last_message_at = to_timestamp(loaded.last_message["created_at"])
        except Exception as e:
            logger.warning(f"last_message_fetch_failed id={conversation_id} error={e}")

    return ItemResult(conversation_id=str(conversation_id), value=loaded)


def last_message_details(supabase: Client, message: Optional[dict]) -> Optional[dict]:
    if not message:
        return None

    sender = get_profiles_by_ids(supabase, [message["sender_id"]]).get(
        str(message["sender_id"])
    )
    if not sender:
        return None

    return {
        "content": message_preview(message.get("type", "text"), message.get("content", "")),
        "sender": sender["username"],
    }


def count_unseen(supabase: Client, conversation_id: str, user_id: str, last_seen_id) -> int:
    """Messages from other members newer than the caller's last seen message."""
    query = (
        supabase.table("messages")
        .select("id", count="exact")
        .eq("conversation_id", str(conversation_id))
        .neq("sender_id", str(user_id))
    )

    if last_seen_id:
        last_seen = get_message(supabase, last_seen_id)
        if last_seen:
            query = query.gt("created_at", last_seen["created_at"])

    result = query.execute()
    if result.count is not None:
        return result.count
    return len(result.data or [])


def build_summary(supabase: Client, loaded: LoadedConversation, user_id: str) -> ItemResult:
    """Attach members, last message preview and unseen count to a conversation."""
    conversation = loaded.conversation
    conversation_id = str(conversation["id"])

    try:
        memberships = list_memberships(supabase, conversation_id)
    except Exception as e:
        logger.warning(f"memberships_fetch_failed id={conversation_id} error={e}")
        return ItemResult.failed(conversation_id, "memberships could not be fetched")

    try:
        last_message = last_message_details(supabase, loaded.last_message)
    except Exception as e:
        logger.warning(f"last_message_details_failed id={conversation_id} error={e}")
        last_message = None

    try:
        unseen_count = count_unseen(
            supabase,
            conversation_id,
            user_id,
            loaded.membership.get("last_seen_message_id"),
        )
    except Exception as e:
        logger.warning(f"unseen_count_failed id={conversation_id} error={e}")
        unseen_count = 0

    summary = {
        "conversation": {
            **conversation,
            "last_message_at": loaded.last_message["created_at"] if loaded.last_message else None,
        },
        "last_message": last_message,
        "unseen_count": unseen_count,
        "other_member": None,
        "group_members": None,
    }

    member_ids = [m["member_id"] for m in memberships]

    if conversation.get("is_group"):
        try:
            profiles = get_profiles_by_ids(supabase, member_ids)
        except Exception as e:
            logger.warning(f"group_members_fetch_failed id={conversation_id} error={e}")
            profiles = {}

        summary["group_members"] = [
            profiles[str(member_id)]["username"]
            for member_id in member_ids
            if str(member_id) in profiles
        ]
        return ItemResult(conversation_id=conversation_id, value=summary)

    other_ids = [m for m in member_ids if str(m) != str(user_id)]
    if not other_ids:
        return ItemResult.failed(conversation_id, "direct conversation has no other member")

    try:
        other_member = get_profiles_by_ids(supabase, other_ids[:1]).get(str(other_ids[0]))
    except Exception as e:
        logger.warning(f"other_member_fetch_failed id={conversation_id} error={e}")
        return ItemResult.failed(conversation_id, "other member could not be fetched")

    if not other_member:
        return ItemResult.failed(conversation_id, "other member not found")

    summary["other_member"] = other_member
    return ItemResult(conversation_id=conversation_id, value=summary)


def _guarded(fn, conversation_id: str, *args) -> ItemResult:
    try:
        return fn(*args)
    except Exception as e:
        logger.exception(f"conversation_item_failed id={conversation_id}")
        return ItemResult.failed(conversation_id, f"unexpected error: {e}")


def list_conversations(
    supabase: Client, user_id: str, max_workers: int = 8
) -> ConversationListing:
    """
    Build the caller's conversation list, most recently active first.

    Conversations without messages sort as timestamp 0. The sort is stable,
    so ties keep membership order.
    """
    memberships = (
        supabase.table("conversation_members")
        .select("id, conversation_id, member_id, last_seen_message_id, created_at")
        .eq("member_id", str(user_id))
        .execute()
    ).data or []

    listing = ConversationListing()
    if not memberships:
        return listing

    try:
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            loaded = list(
                pool.map(
                    lambda m: _guarded(
                        load_conversation, m.get("conversation_id"), supabase, m
                    ),
                    memberships,
                )
            )

            ready = [r for r in loaded if r.ok]
            ready.sort(key=lambda r: r.value.last_message_at, reverse=True)

            summaries = list(
                pool.map(
                    lambda r: _guarded(
                        build_summary, r.conversation_id, supabase, r.value, user_id
                    ),
                    ready,
                )
            )
    except Exception:
        logger.exception(f"conversation_fanout_failed user_id={user_id}")
        return ConversationListing()

    for result in [r for r in loaded if not r.ok] + summaries:
        if result.ok:
            listing.conversations.append(result.value)
        else:
            listing.skipped.append(
                {"conversation_id": result.conversation_id, "reason": result.error}
            )

    if listing.skipped:
        logger.info(f"conversations_skipped user_id={user_id} count={len(listing.skipped)}")

    return listing


def get_conversation_summary(
    supabase: Client, conversation_id: str, user_id: str
) -> ItemResult:
    """Single-conversation variant of :func:`list_conversations` for a member."""
    membership = get_membership(supabase, conversation_id, user_id)
    if not membership:
        return ItemResult.failed(conversation_id, "not a member")

    loaded = load_conversation(supabase, membership)
    if not loaded.ok:
        return loaded

    return build_summary(supabase, loaded.value, user_id)
