import logging
from uuid import UUID
from dotenv import load_dotenv

from fastapi import APIRouter, HTTPException, Depends
from supabase import Client

from huddle.core.supabase_client import get_supabase
from huddle.core.dependencies import get_current_user
from huddle.core.transaction import UnitOfWork
from huddle.friendship.lookups import get_friendship
from huddle.utils.env_helper import env_int
from huddle.utils.profiles import get_profiles_by_ids

from .aggregation import list_conversations, get_conversation_summary
from .lookups import get_conversation_or_404, require_membership, list_memberships
from .models import MESSAGE_COLUMNS
from .schemas import (
    SendMessageModel,
    SendMessageResponseModel,
    ConversationSummary,
    GetConversationsResponseModel,
    GetMessagesResponseModel,
    MarkReadResponseModel,
)


load_dotenv()
logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/conversations",
    response_model=GetConversationsResponseModel,
    status_code=200,
)
def get_conversations(
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Retrieve all conversations for the authenticated user.

    Used to populate the chat sidebar. Conversations are ordered by the time
    of their last message, most recent first; conversations without messages
    come last.

    **Returns**
    - `conversations`: List of conversation summaries
        - `conversation`: the conversation row plus `last_message_at`
        - `last_message`: `{content, sender}` preview or `null`
        - `unseen_count`: messages from others not yet read by the caller
        - `other_member`: the counterpart profile (direct conversations)
        - `group_members`: member usernames (group conversations)
    - `skipped`: conversations that could not be assembled, with a reason

    **Errors**
    - 401: Invalid or expired JWT
    - 404: Caller has no profile
    """
    try:
        listing = list_conversations(
            supabase, user["id"], max_workers=env_int("AGGREGATION_WORKERS", 8)
        )
    except Exception:
        logger.exception(f"conversations_list_failed user_id={user['id']}")
        return {"conversations": [], "skipped": []}

    return {"conversations": listing.conversations, "skipped": listing.skipped}


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationSummary,
    status_code=200,
)
def get_conversation(
    conversation_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Retrieve a single conversation summary (same shape as the list items).

    **Errors**
    - 403: User is not a member of the conversation
    - 404: Conversation does not exist or could not be assembled
    """
    try:
        get_conversation_or_404(supabase, conversation_id)
        require_membership(supabase, conversation_id, user["id"])

        result = get_conversation_summary(supabase, conversation_id, user["id"])
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"get_conversation_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve conversation")

    if not result.ok:
        raise HTTPException(status_code=404, detail=f"Conversation unavailable: {result.error}")

    return result.value


@router.post(
    "/messages",
    response_model=SendMessageResponseModel,
    status_code=201,
)
def send_message(
    data: SendMessageModel,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Send a message to an existing conversation.

    Messages are always sent to conversations, never directly to users.
    The conversation's `last_message_id` moves to the new message, and the
    message counts as read for its sender.

    **Input**
    - `conversation_id`: UUID of the conversation
    - `type`: `text` (default), `image`, or any document type
    - `content`: Message text or file URL

    **Errors**
    - 403: Not a member, or no longer friends (direct conversations)
    - 404: Conversation not found
    - 500: Database error
    """
    conversation_id = str(data.conversation_id)
    sender_id = str(user["id"])

    conversation = get_conversation_or_404(supabase, conversation_id)
    membership = require_membership(supabase, conversation_id, sender_id)

    if not conversation.get("is_group"):
        other_ids = [
            m["member_id"]
            for m in list_memberships(supabase, conversation_id)
            if str(m["member_id"]) != sender_id
        ]
        if other_ids and not get_friendship(supabase, sender_id, other_ids[0]):
            raise HTTPException(
                status_code=403,
                detail="You are no longer friends with this user.",
            )

    try:
        with UnitOfWork(supabase, label="send_message") as uow:
            message = uow.insert(
                "messages",
                {
                    "conversation_id": conversation_id,
                    "sender_id": sender_id,
                    "type": data.type,
                    "content": data.content,
                },
            )[0]
            uow.update("conversations", {"last_message_id": message["id"]}, id=conversation_id)
            uow.update(
                "conversation_members",
                {"last_seen_message_id": message["id"]},
                id=membership["id"],
            )
    except Exception:
        logger.exception(f"send_message_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to send message.")

    logger.info(f"message_sent conversation_id={conversation_id} sender_id={sender_id}")
    return {"message": message}


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=GetMessagesResponseModel,
    status_code=200,
)
def get_messages(
    conversation_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Retrieve all messages for a conversation, oldest to newest.

    **Returns**
    - `messages`: List of message objects with `sender_username` attached
      (`null` when the sender's profile is gone)

    **Errors**
    - 403: User is not a member of the conversation
    - 404: Conversation does not exist
    - 500: Database or unexpected server error
    """
    get_conversation_or_404(supabase, conversation_id)
    require_membership(supabase, conversation_id, user["id"])

    try:
        messages = (
            supabase.table("messages")
            .select(MESSAGE_COLUMNS)
            .eq("conversation_id", str(conversation_id))
            .order("created_at", desc=False)
            .execute()
        ).data or []

        senders = get_profiles_by_ids(supabase, [row["sender_id"] for row in messages])
    except Exception:
        logger.exception(f"get_messages_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve messages")

    final_data = []
    for row in messages:
        sender = senders.get(str(row["sender_id"]))
        final_data.append(
            {
                **dict(row),
                "sender_username": sender["username"] if sender else None,
            }
        )

    return {"messages": final_data}


@router.post(
    "/conversations/{conversation_id}/read",
    response_model=MarkReadResponseModel,
    status_code=200,
)
def mark_conversation_read(
    conversation_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Mark every message in a conversation as seen by the caller.

    Sets the caller's `last_seen_message_id` to the conversation's last
    message, which resets its `unseen_count` to zero.

    **Errors**
    - 403: User is not a member of the conversation
    - 404: Conversation does not exist
    - 500: Database error
    """
    try:
        conversation = get_conversation_or_404(supabase, conversation_id)
        membership = require_membership(supabase, conversation_id, user["id"])

        last_message_id = conversation.get("last_message_id")
        if last_message_id:
            (
                supabase.table("conversation_members")
                .update({"last_seen_message_id": last_message_id})
                .eq("id", membership["id"])
                .execute()
            )
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"mark_read_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to mark conversation as read")

    return {"success": True, "last_seen_message_id": last_message_id}
