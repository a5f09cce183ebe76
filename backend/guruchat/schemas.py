from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any
from datetime import datetime
from uuid import UUID


class CamelModel(BaseModel):
    """Wire format is camelCase; Python attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(BaseModel):
    message: str


# ============= Auth Schemas =============
# Request bodies are deliberately loose; guruchat.validation does the checking.
class RegisterRequest(BaseModel):
    name: Optional[Any] = None
    email: Optional[Any] = None
    password: Optional[Any] = None


class LoginRequest(BaseModel):
    email: Optional[Any] = None
    password: Optional[Any] = None


class RegisterResponse(CamelModel):
    message: str
    user_id: UUID


class UserPublic(CamelModel):
    id: UUID
    name: str
    email: str


class LoginResponse(BaseModel):
    message: str
    user: UserPublic


# ============= Guru Schemas =============
class GuruResponse(CamelModel):
    id: UUID
    name: str
    description: str
    system_prompt: str
    image_path: str


class GuruListResponse(BaseModel):
    success: bool = True
    data: List[GuruResponse]


class GuruDetailResponse(BaseModel):
    success: bool = True
    data: GuruResponse


# ============= Chat Schemas =============
class ChatRequest(CamelModel):
    messages: Optional[Any] = None
    guru_id: Optional[Any] = None


class TurnResponse(CamelModel):
    role: str
    content: str


class GuruRef(CamelModel):
    id: UUID
    name: str


class ConversationResponse(CamelModel):
    id: UUID
    user_id: UUID
    guru_id: Optional[UUID] = None
    guru: Optional[GuruRef] = None
    messages: List[TurnResponse]
    created_at: datetime
    updated_at: datetime


class ConversationSummary(CamelModel):
    conversation_id: UUID
    summary: str
    last_updated: datetime


class GuruHistory(CamelModel):
    guru_id: UUID
    guru_name: str
    conversations: List[ConversationSummary] = Field(default_factory=list)


class HistorySummaryResponse(BaseModel):
    success: bool = True
    type: str = "summary"
    data: List[GuruHistory]


class ConversationEnvelope(BaseModel):
    success: bool = True
    data: Optional[ConversationResponse] = None
    message: Optional[str] = None
