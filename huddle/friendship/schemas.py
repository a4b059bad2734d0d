from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from uuid import UUID


class SenderData(BaseModel):
    id: UUID
    username: str
    email: Optional[str] = None
    image_url: Optional[str] = None


# friend requests
class FriendRequestByEmailModel(BaseModel):
    email: str


class FriendRequestByUsernameModel(BaseModel):
    username: str


class FriendRequestResponseModel(BaseModel):
    id: UUID


class RequestWithSender(BaseModel):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    status: str
    created_at: datetime
    sender: Optional[SenderData] = None


class GetRequestsResponseModel(BaseModel):
    requests: List[RequestWithSender]


class RequestCountResponseModel(BaseModel):
    count: int


# accept / deny / cancel
class AcceptFriendRequestResponseModel(BaseModel):
    success: bool
    friendship_id: UUID
    conversation_id: UUID


class SuccessResponseModel(BaseModel):
    success: bool


# friends
class FriendItem(BaseModel):
    friendship_id: UUID
    conversation_id: Optional[UUID] = None
    friend: Optional[SenderData] = None
    created_at: datetime


class GetFriendsResponseModel(BaseModel):
    friends: List[FriendItem]


class RemoveFriendResponseModel(BaseModel):
    friend_removed: bool
