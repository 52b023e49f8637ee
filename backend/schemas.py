from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


class CamelModel(BaseModel):
    """Wire models of the engine RPC use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# User Schemas
class UserBase(BaseModel):
    email: str
    name: str


class UserCreate(UserBase):
    profile_picture: Optional[str] = None


class UserLogin(BaseModel):
    email: str


class UserResponse(UserBase):
    id: int
    is_bot: bool
    model: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Bot Schemas
class BotCreate(BaseModel):
    name: str
    system_prompt: str
    model: str = "claude"


class BotResponse(BaseModel):
    id: int
    name: str
    email: str
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Channel Schemas
class ChannelCreate(BaseModel):
    name: str
    member_ids: list[int] = Field(default_factory=list)


class DMCreate(BaseModel):
    user_id: int


class ChannelResponse(BaseModel):
    id: int
    name: Optional[str] = None
    is_group: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    other_user_name: Optional[str] = None

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    user_id: int


class MemberResponse(BaseModel):
    membership_id: int
    user_id: int
    name: str
    is_bot: bool


# Message Schemas
class MessageCreate(BaseModel):
    content: str


class MessageResponse(BaseModel):
    id: int
    channel_id: int
    sender_id: int
    content: str
    created_at: Optional[datetime] = None
    sender_name: Optional[str] = None
    sender_is_bot: bool = False

    class Config:
        from_attributes = True


# Store records (detached from any session)
class ChannelRecord(BaseModel):
    id: int
    name: Optional[str] = None
    is_group: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRecord(BaseModel):
    id: int
    name: str
    is_bot: bool
    system_prompt: Optional[str] = None
    model: Optional[str] = None

    class Config:
        from_attributes = True


class MemberRecord(BaseModel):
    membership_id: int
    user: UserRecord


class MessageRecord(BaseModel):
    id: int
    channel_id: int
    sender_id: int
    content: str
    created_at: Optional[datetime] = None
    sender_name: str = ""
    sender_is_bot: bool = False


# Routing Schemas
class BotProfile(BaseModel):
    id: int
    name: str
    system_prompt: Optional[str] = None
    model: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool((self.system_prompt or "").strip()) and bool((self.model or "").strip())


class ContextEntry(CamelModel):
    sender_name: str
    content: str
    is_bot: bool = False


class RoutingDecision(CamelModel):
    should_respond: bool = False
    bot_id: Optional[int] = None
    bot_name: Optional[str] = None
    reasoning: Optional[str] = None


class RoutingOutcome(BaseModel):
    path: str  # direct | mention | orchestrator | none
    message_id: int
    bot_ids: list[int] = Field(default_factory=list)
    decision: Optional[RoutingDecision] = None
    reply_message_ids: list[int] = Field(default_factory=list)
    failures: dict[int, str] = Field(default_factory=dict)


# Engine RPC Schemas
class OrchestratorMessage(CamelModel):
    sender_name: str
    content: str


class OrchestratorRequest(CamelModel):
    channel_id: int
    new_message: OrchestratorMessage
    recent_messages: list[ContextEntry] = Field(default_factory=list)


class ReplyRequest(CamelModel):
    bot_id: int
    channel_id: int
    message_content: str
    recent_messages: list[ContextEntry] = Field(default_factory=list)


class ReplyResponse(CamelModel):
    success: bool
    response: Optional[str] = None
    message_id: Optional[int] = None
