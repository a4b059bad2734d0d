import logging
from uuid import UUID
from dotenv import load_dotenv

from fastapi import APIRouter, HTTPException, Depends
from supabase import Client

from huddle.core.supabase_client import get_supabase
from huddle.core.dependencies import get_current_user, verify_token, PROFILE_COLUMNS
from huddle.core.transaction import UnitOfWork
from huddle.utils.profiles import get_profiles_by_ids

from .lookups import canonical_pair, get_friendship, get_request, get_request_between
from .models import PENDING, ACCEPTED, REQUEST_COLUMNS
from .usernames import normalize_username, is_valid_lookup_username
from .schemas import (
    FriendRequestByEmailModel,
    FriendRequestByUsernameModel,
    FriendRequestResponseModel,
    GetRequestsResponseModel,
    RequestCountResponseModel,
    AcceptFriendRequestResponseModel,
    SuccessResponseModel,
    GetFriendsResponseModel,
    RemoveFriendResponseModel,
)


load_dotenv()
logger = logging.getLogger(__name__)
router = APIRouter()


def ensure_can_request(supabase: Client, sender_id: str, receiver_id: str):
    """Reject duplicate requests (either direction) and existing friendships."""
    if str(sender_id) == str(receiver_id):
        raise HTTPException(400, detail="Can't send a request to yourself")

    if get_request_between(supabase, sender_id, receiver_id):
        raise HTTPException(409, detail="Request already sent")

    if get_request_between(supabase, receiver_id, sender_id):
        raise HTTPException(409, detail="This user has already sent you a request")

    if get_friendship(supabase, sender_id, receiver_id):
        raise HTTPException(409, detail="You are already friends with this user")


def insert_request(supabase: Client, sender_id: str, receiver_id: str) -> dict:
    try:
        created = (
            supabase.table("friend_requests")
            .insert(
                {
                    "sender_id": str(sender_id),
                    "receiver_id": str(receiver_id),
                    "status": PENDING,
                }
            )
            .execute()
        )
    except Exception as e:
        logger.exception(f"friend_request_insert_failed sender_id={sender_id}")
        raise HTTPException(500, detail=f"Database error while creating request: {e}")

    logger.info(f"friend_request_sent sender_id={sender_id} receiver_id={receiver_id}")
    return created.data[0]


@router.get("/requests", response_model=GetRequestsResponseModel, status_code=200)
def get_requests(
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    List pending friend requests received by the authenticated user.

    **Returns**
    - `requests`: each request with the sender's profile attached
      (`sender` is `null` when the sender no longer exists)
    """
    try:
        requests = (
            supabase.table("friend_requests")
            .select(REQUEST_COLUMNS)
            .eq("receiver_id", str(user["id"]))
            .eq("status", PENDING)
            .order("created_at")
            .execute()
        ).data or []

        senders = get_profiles_by_ids(supabase, [r["sender_id"] for r in requests])
    except Exception:
        logger.exception(f"get_requests_failed user_id={user['id']}")
        raise HTTPException(500, detail="Failed to retrieve friend requests")

    return {
        "requests": [
            {**r, "sender": senders.get(str(r["sender_id"]))} for r in requests
        ]
    }


@router.get("/requests/count", response_model=RequestCountResponseModel, status_code=200)
def count_requests(
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """Number of pending requests received, for the navigation badge."""
    try:
        result = (
            supabase.table("friend_requests")
            .select("id", count="exact")
            .eq("receiver_id", str(user["id"]))
            .eq("status", PENDING)
            .execute()
        )
    except Exception:
        logger.exception(f"count_requests_failed user_id={user['id']}")
        raise HTTPException(500, detail="Failed to count friend requests")

    count = result.count if result.count is not None else len(result.data or [])
    return {"count": count}


@router.post("/requests", response_model=FriendRequestResponseModel, status_code=201)
def create_request(
    data: FriendRequestByEmailModel,
    payload=Depends(verify_token),
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Send a friend request to the user registered with `email`.

    **Errors**
    - `400`: Empty email, or the caller's own email.
    - `404`: No user with that email.
    - `409`: Request already pending in either direction, or already friends.
    """
    email = data.email.strip().lower()

    if not email:
        raise HTTPException(400, detail="Email cannot be empty")

    if email == str(payload.get("email") or "").strip().lower():
        raise HTTPException(400, detail="Can't send a request to yourself")

    receiver = (
        supabase.table("profiles")
        .select(PROFILE_COLUMNS)
        .eq("email", email)
        .limit(1)
        .execute()
    ).data

    if not receiver:
        raise HTTPException(404, detail="User could not be found")

    ensure_can_request(supabase, user["id"], receiver[0]["id"])

    created = insert_request(supabase, user["id"], receiver[0]["id"])
    return {"id": created["id"]}


@router.post("/requests/username", response_model=FriendRequestResponseModel, status_code=201)
def create_request_by_username(
    data: FriendRequestByUsernameModel,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Send a friend request using the receiver's username.

    Matching is case-insensitive and ignores decorative badges, so `alice`
    reaches a user displayed as `alice👑`. The lookup uses the
    `username_normalized` column; it never matches prefixes (`alice` does not
    reach `alice2`).

    **Errors**
    - `400`: Empty or malformed username, or the caller's own username.
    - `404`: No user with that username.
    - `409`: Request already pending in either direction, or already friends.
    """
    username = data.username.strip()

    if not username:
        raise HTTPException(400, detail="Username cannot be empty")

    if not is_valid_lookup_username(username):
        raise HTTPException(
            400,
            detail="Username can only contain letters, numbers, underscores, periods, and hyphens",
        )

    normalized = normalize_username(username)

    if normalized == normalize_username(user.get("username") or ""):
        raise HTTPException(400, detail="Can't send a request to yourself")

    receiver = (
        supabase.table("profiles")
        .select(PROFILE_COLUMNS)
        .eq("username_normalized", normalized)
        .limit(1)
        .execute()
    ).data

    if not receiver:
        raise HTTPException(404, detail="User with this username could not be found")

    ensure_can_request(supabase, user["id"], receiver[0]["id"])

    created = insert_request(supabase, user["id"], receiver[0]["id"])
    return {"id": created["id"]}


@router.post(
    "/requests/{request_id}/accept",
    response_model=AcceptFriendRequestResponseModel,
    status_code=200,
)
def accept_request(
    request_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Accept a pending friend request. Only the receiver can accept.

    Creates a direct conversation, the friendship row and both memberships,
    then removes the request. If any step fails the earlier ones are undone.

    **Errors**
    - `404`: Request missing or addressed to someone else.
    - `409`: Already friends.
    - `500`: Database error (nothing is left half-written).
    """
    receiver_id = str(user["id"])

    request = get_request(supabase, request_id)
    if not request or str(request["receiver_id"]) != receiver_id:
        raise HTTPException(404, detail="There was an error accepting this request")

    sender_id = str(request["sender_id"])

    if get_friendship(supabase, sender_id, receiver_id):
        raise HTTPException(409, detail="You are already friends with this user")

    u1, u2 = canonical_pair(sender_id, receiver_id)

    try:
        with UnitOfWork(supabase, label="accept_request") as uow:
            conversation = uow.insert("conversations", {"is_group": False})[0]

            friendship = uow.insert(
                "friendships",
                {
                    "user1_id": u1,
                    "user2_id": u2,
                    "status": ACCEPTED,
                    "conversation_id": conversation["id"],
                },
            )[0]

            uow.insert(
                "conversation_members",
                [
                    {"conversation_id": conversation["id"], "member_id": receiver_id},
                    {"conversation_id": conversation["id"], "member_id": sender_id},
                ],
            )

            uow.delete("friend_requests", id=request["id"])
    except Exception:
        logger.exception(f"accept_request_failed request_id={request_id}")
        raise HTTPException(500, detail="Database error while accepting request.")

    logger.info(f"friend_request_accepted sender_id={sender_id} receiver_id={receiver_id}")

    return {
        "success": True,
        "friendship_id": friendship["id"],
        "conversation_id": conversation["id"],
    }


@router.post(
    "/requests/{request_id}/deny",
    response_model=SuccessResponseModel,
    status_code=200,
)
def deny_request(
    request_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """Decline a pending friend request. Only the receiver can deny."""
    try:
        request = get_request(supabase, request_id)

        if not request or str(request["receiver_id"]) != str(user["id"]):
            raise HTTPException(status_code=404, detail="Request not found")

        supabase.table("friend_requests").delete().eq("id", request["id"]).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"deny_request_failed request_id={request_id}")
        raise HTTPException(status_code=500, detail="Failed to deny friend request")

    logger.info(f"friend_request_denied request_id={request_id}")
    return {"success": True}


@router.delete(
    "/requests/{request_id}",
    response_model=SuccessResponseModel,
    status_code=200,
)
def cancel_request(
    request_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """Withdraw a pending request. Only the original sender can cancel."""
    try:
        request = get_request(supabase, request_id)

        if not request or str(request["sender_id"]) != str(user["id"]):
            raise HTTPException(status_code=404, detail="No pending friend request to cancel.")

        supabase.table("friend_requests").delete().eq("id", request["id"]).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"cancel_request_failed request_id={request_id}")
        raise HTTPException(status_code=500, detail="Failed to cancel friend request")

    return {"success": True}


@router.get("", response_model=GetFriendsResponseModel, status_code=200)
def get_friends(
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    List the authenticated user's friends.

    Friendships are stored once per pair, so both columns are queried.
    """
    user_id = str(user["id"])

    try:
        rows = []
        for column in ("user1_id", "user2_id"):
            rows += (
                supabase.table("friendships")
                .select("id, user1_id, user2_id, status, conversation_id, created_at")
                .eq(column, user_id)
                .execute()
            ).data or []

        friend_ids = [
            row["user2_id"] if str(row["user1_id"]) == user_id else row["user1_id"]
            for row in rows
        ]
        profiles = get_profiles_by_ids(supabase, friend_ids)
    except Exception:
        logger.exception(f"get_friends_failed user_id={user_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve friends")

    return {
        "friends": [
            {
                "friendship_id": row["id"],
                "conversation_id": row.get("conversation_id"),
                "friend": profiles.get(str(friend_id)),
                "created_at": row["created_at"],
            }
            for row, friend_id in zip(rows, friend_ids)
        ]
    }


@router.delete(
    "/{other_user_id}",
    response_model=RemoveFriendResponseModel,
    status_code=200,
)
def remove_friend(
    other_user_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Remove an existing friendship between the authenticated user and another user.

    The direct conversation is kept; sending into it is refused once the
    friendship is gone.

    Raises:
        HTTPException (404):
            If no friendship exists between the users.
    """
    try:
        friendship = get_friendship(supabase, user["id"], other_user_id)

        if not friendship:
            raise HTTPException(status_code=404, detail="Friendship does not exist.")

        supabase.table("friendships").delete().eq("id", friendship["id"]).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"remove_friend_failed other_user_id={other_user_id}")
        raise HTTPException(status_code=500, detail="Failed to remove friend")

    return {"friend_removed": True}
