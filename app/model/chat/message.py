from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    BOT = "bot"
    SYSTEM = "system"


class FarmLocation(BaseModel):
    state: Optional[str] = None
    district: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class MessageContext(BaseModel):
    """Farm hints captured when a message is written. Never updated afterwards."""

    farm_location: Optional[FarmLocation] = None
    crop_type: Optional[str] = None
    season: Optional[str] = None
    farm_size: Optional[float] = Field(default=None, description="Farm size in acres")
    previous_messages: int = Field(default=0, description="Prior messages in the context window")


class TokenUsage(BaseModel):
    input: int = 0
    output: int = 0


class GenerationMetadata(BaseModel):
    processing_time: int = Field(default=0, description="Generator round trip in milliseconds")
    model: str
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    # The provider gives no confidence score; 0 marks a fallback answer
    confidence: float = 0.0
    error: Optional[str] = None


class Feedback(BaseModel):
    helpful: Optional[bool] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None


class NewMessage(BaseModel):
    session_id: str
    role: Role
    text: str
    language: str = "en"
    context: MessageContext = Field(default_factory=MessageContext)
    metadata: Optional[GenerationMetadata] = None
    user_id: Optional[str] = None


class StoredMessage(NewMessage):
    id: str
    created_at: datetime
    feedback: Optional[Feedback] = None
    # False for messages built locally because storage was unavailable
    persisted: bool = True


class ConversationSummary(BaseModel):
    session_id: str
    last_message: str
    last_activity: datetime
    message_count: int


def order_key(message: StoredMessage) -> tuple:
    """Conversation order: creation time, then id for messages created in the same instant."""
    ident = int(message.id) if message.id.isdigit() else 0
    return (message.created_at, ident)


def chronological(messages: List[StoredMessage]) -> List[StoredMessage]:
    return sorted(messages, key=order_key)
