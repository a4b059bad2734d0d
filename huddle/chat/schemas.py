from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import List, Optional


class ProfileData(BaseModel):
    id: UUID
    username: str
    email: Optional[str] = None
    image_url: Optional[str] = None


# Send Messages
class SendMessageModel(BaseModel):
    conversation_id: UUID
    type: str = "text"
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, content: str) -> str:
        if not content.strip():
            raise ValueError("Message content cannot be empty.")
        return content


class MessageData(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    type: str
    content: str
    created_at: datetime


class SendMessageResponseModel(BaseModel):
    message: MessageData


# Get Conversations
class ConversationData(BaseModel):
    id: UUID
    is_group: bool
    name: Optional[str] = None
    image_url: Optional[str] = None
    creator_id: Optional[UUID] = None
    last_message_id: Optional[UUID] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime


class LastMessagePreview(BaseModel):
    content: str
    sender: str


class ConversationSummary(BaseModel):
    conversation: ConversationData
    last_message: Optional[LastMessagePreview] = None
    unseen_count: int = 0
    other_member: Optional[ProfileData] = None
    group_members: Optional[List[str]] = None


class SkippedConversation(BaseModel):
    conversation_id: str
    reason: str


class GetConversationsResponseModel(BaseModel):
    conversations: List[ConversationSummary]
    skipped: List[SkippedConversation] = Field(default_factory=list)


# Get messages
class MessagesData(BaseModel):
    id: UUID
    sender_id: UUID
    sender_username: Optional[str]
    type: str
    content: str
    created_at: datetime


class GetMessagesResponseModel(BaseModel):
    messages: List[MessagesData]


# Mark read
class MarkReadResponseModel(BaseModel):
    success: bool
    last_seen_message_id: Optional[UUID] = None


# Groups
class CreateGroupModel(BaseModel):
    name: str
    member_ids: List[UUID] = Field(default_factory=list)
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, name: str) -> str:
        if not name.strip():
            raise ValueError("Group name cannot be empty.")
        return name.strip()


class CreateGroupResponseModel(BaseModel):
    conversation_id: UUID
    member_count: int


class UpdateGroupNameModel(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, name: str) -> str:
        if not name.strip():
            raise ValueError("Group name cannot be empty.")
        return name.strip()


class UpdateGroupImageModel(BaseModel):
    image_url: str


class AddGroupMembersModel(BaseModel):
    member_ids: List[UUID]


class AddGroupMembersResponseModel(BaseModel):
    success: bool
    added_count: int


class SuccessResponseModel(BaseModel):
    success: bool


class IsGroupCreatorResponseModel(BaseModel):
    is_creator: bool
