import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Depends
from supabase import Client

from huddle.core.supabase_client import get_supabase
from huddle.core.dependencies import get_current_user, verify_token
from huddle.core.transaction import UnitOfWork
from huddle.utils.profiles import get_profiles_by_ids

from .lookups import (
    get_conversation,
    get_group_or_404,
    get_membership,
    list_memberships,
    require_creator,
)
from .schemas import (
    CreateGroupModel,
    CreateGroupResponseModel,
    UpdateGroupNameModel,
    UpdateGroupImageModel,
    AddGroupMembersModel,
    AddGroupMembersResponseModel,
    SuccessResponseModel,
    IsGroupCreatorResponseModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()


def delete_group_cascade(supabase: Client, conversation_id: str):
    """Delete memberships, then messages, then the conversation itself."""
    with UnitOfWork(supabase, label="delete_group") as uow:
        # clear the last_message_id pointer, restored on rollback
        uow.update("conversations", {"last_message_id": None}, id=conversation_id)
        uow.delete("conversation_members", conversation_id=conversation_id)
        uow.delete("messages", conversation_id=conversation_id)
        uow.delete("conversations", id=conversation_id)

    logger.info(f"group_deleted conversation_id={conversation_id}")


@router.post("", response_model=CreateGroupResponseModel, status_code=201)
def create_group(
    data: CreateGroupModel,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Create a group conversation.

    The caller becomes the group's creator and its first member. Every id in
    `member_ids` that resolves to a profile is added once; unknown ids are
    ignored.

    **Input**
    - `name`: group name (required, non-blank)
    - `member_ids`: users to add
    - `image_url`: optional group image

    **Returns**
    - `conversation_id`: UUID of the new group
    - `member_count`: members including the creator

    **Errors**
    - 422: Blank name
    - 500: Database error
    """
    creator_id = str(user["id"])
    requested = [str(m) for m in data.member_ids if str(m) != creator_id]
    profiles = get_profiles_by_ids(supabase, requested)
    member_ids = [creator_id] + [m for m in dict.fromkeys(requested) if m in profiles]

    try:
        with UnitOfWork(supabase, label="create_group") as uow:
            conversation = uow.insert(
                "conversations",
                {
                    "is_group": True,
                    "name": data.name,
                    "image_url": data.image_url,
                    "creator_id": creator_id,
                },
            )[0]
            uow.insert(
                "conversation_members",
                [
                    {"conversation_id": conversation["id"], "member_id": member_id}
                    for member_id in member_ids
                ],
            )
    except Exception:
        logger.exception(f"create_group_failed creator_id={creator_id}")
        raise HTTPException(status_code=500, detail="Failed to create group")

    logger.info(
        f"group_created conversation_id={conversation['id']} members={len(member_ids)}"
    )
    return {"conversation_id": conversation["id"], "member_count": len(member_ids)}


@router.get(
    "/{conversation_id}/is-creator",
    response_model=IsGroupCreatorResponseModel,
    status_code=200,
)
def is_group_creator(
    conversation_id: UUID,
    payload=Depends(verify_token),
    supabase: Client = Depends(get_supabase),
):
    """
    Whether the caller created this group.

    Never errors for a missing or non-group conversation; answers `false`.
    """
    subject = payload.get("sub")
    if not subject:
        return {"is_creator": False}

    try:
        conversation = get_conversation(supabase, conversation_id)
    except Exception:
        logger.exception(f"is_group_creator_failed conversation_id={conversation_id}")
        return {"is_creator": False}

    if not conversation or not conversation.get("is_group"):
        return {"is_creator": False}

    return {"is_creator": str(conversation.get("creator_id")) == str(subject)}


@router.patch("/{conversation_id}/name", response_model=SuccessResponseModel, status_code=200)
def update_group_name(
    conversation_id: UUID,
    data: UpdateGroupNameModel,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Rename a group. Creator only.

    **Errors**
    - 400: Not a group
    - 422: Blank name or malformed id
    - 403: Caller is not the creator
    - 404: Conversation not found
    - 500: Database error
    """
    try:
        conversation = get_group_or_404(supabase, conversation_id)
        require_creator(conversation, user["id"], "update the group name")

        supabase.table("conversations").update({"name": data.name}).eq(
            "id", str(conversation_id)
        ).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"update_group_name_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to update group name")

    return {"success": True}


@router.patch("/{conversation_id}/image", response_model=SuccessResponseModel, status_code=200)
def update_group_image(
    conversation_id: UUID,
    data: UpdateGroupImageModel,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """Set the group image. Creator only."""
    try:
        conversation = get_group_or_404(supabase, conversation_id)
        require_creator(conversation, user["id"], "update the group image")

        supabase.table("conversations").update({"image_url": data.image_url}).eq(
            "id", str(conversation_id)
        ).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"update_group_image_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to update group image")

    return {"success": True}


@router.post(
    "/{conversation_id}/members",
    response_model=AddGroupMembersResponseModel,
    status_code=200,
)
def add_group_members(
    conversation_id: UUID,
    data: AddGroupMembersModel,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Add members to a group. Creator only.

    Ids that are already members, or that do not resolve to a profile, are
    skipped. `added_count` reports how many memberships were created.
    """
    try:
        conversation = get_group_or_404(supabase, conversation_id)
        require_creator(conversation, user["id"], "add members to the group")

        existing = {str(m["member_id"]) for m in list_memberships(supabase, conversation_id)}
        requested = [str(m) for m in dict.fromkeys(data.member_ids)]
        profiles = get_profiles_by_ids(supabase, requested)

        to_add = [m for m in requested if m in profiles and m not in existing]

        if to_add:
            supabase.table("conversation_members").insert(
                [{"conversation_id": str(conversation_id), "member_id": m} for m in to_add]
            ).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"add_group_members_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to add group members")

    logger.info(f"group_members_added conversation_id={conversation_id} count={len(to_add)}")
    return {"success": True, "added_count": len(to_add)}


@router.delete(
    "/{conversation_id}/members/{member_id}",
    response_model=SuccessResponseModel,
    status_code=200,
)
def remove_group_member(
    conversation_id: UUID,
    member_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Remove a member from a group. Creator only.

    **Errors**
    - 400: Target is the group creator
    - 403: Caller is not the creator
    - 404: Conversation, member profile or membership not found
    - 500: Database error
    """
    try:
        conversation = get_group_or_404(supabase, conversation_id)
        require_creator(conversation, user["id"], "remove members from the group")

        if not get_profiles_by_ids(supabase, [member_id]):
            raise HTTPException(status_code=404, detail="Member not found")

        if str(member_id) == str(conversation.get("creator_id")):
            raise HTTPException(status_code=400, detail="Cannot remove the group creator")

        membership = get_membership(supabase, conversation_id, member_id)
        if not membership:
            raise HTTPException(status_code=404, detail="This user is not a member of the group")

        supabase.table("conversation_members").delete().eq("id", membership["id"]).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"remove_group_member_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to remove group member")

    return {"success": True}


@router.post("/{conversation_id}/leave", response_model=SuccessResponseModel, status_code=200)
def leave_group(
    conversation_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    Leave a group.

    When the creator leaves, creatorship passes to the earliest-joined
    remaining member. When the creator is the only member, the group is
    deleted with its memberships and messages.

    **Errors**
    - 400: Not a group
    - 403: Caller is not a member
    - 404: Conversation not found
    """
    user_id = str(user["id"])
    conversation = get_group_or_404(supabase, conversation_id)

    membership = get_membership(supabase, conversation_id, user_id)
    if not membership:
        raise HTTPException(status_code=403, detail="You are not a member of this group")

    try:
        if str(conversation.get("creator_id")) == user_id:
            others = [
                m for m in list_memberships(supabase, conversation_id)
                if str(m["member_id"]) != user_id
            ]

            if not others:
                delete_group_cascade(supabase, conversation_id)
                return {"success": True}

            with UnitOfWork(supabase, label="leave_group") as uow:
                uow.update("conversations", {"creator_id": others[0]["member_id"]}, id=conversation_id)
                uow.delete("conversation_members", id=membership["id"])

            logger.info(
                f"group_creator_transferred conversation_id={conversation_id} "
                f"new_creator_id={others[0]['member_id']}"
            )
            return {"success": True}

        supabase.table("conversation_members").delete().eq("id", membership["id"]).execute()
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"leave_group_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to leave group")

    return {"success": True}


@router.delete("/{conversation_id}", response_model=SuccessResponseModel, status_code=200)
def delete_group(
    conversation_id: UUID,
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """Delete a group with all its memberships and messages. Creator only."""
    conversation = get_group_or_404(supabase, conversation_id)
    require_creator(conversation, user["id"], "delete the group")

    try:
        delete_group_cascade(supabase, conversation_id)
    except Exception:
        logger.exception(f"delete_group_failed conversation_id={conversation_id}")
        raise HTTPException(status_code=500, detail="Failed to delete group")

    return {"success": True}
