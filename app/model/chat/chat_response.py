from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.model.chat.message import ConversationSummary, FarmLocation, StoredMessage


class AssembledContext(BaseModel):
    language: str = "en"
    farm_location: Optional[FarmLocation] = None
    crop_type: Optional[str] = None
    season: Optional[str] = None
    farm_size: Optional[float] = None
    is_voice: bool = False
    query_time: datetime
    previous_messages: int = 0
    # Read window for the prompt; kept out of API payloads
    recent_messages: List[StoredMessage] = Field(default_factory=list, exclude=True)


class ChatResponse(BaseModel):
    session_id: str = Field(..., description="Unique identifier for the chat session")
    user_message: StoredMessage
    bot_message: StoredMessage
    context: AssembledContext
    is_voice: bool = False


class SessionResponse(BaseModel):
    session_id: str
    user_message: Optional[StoredMessage] = None
    bot_message: Optional[StoredMessage] = None


class HistoryResponse(BaseModel):
    session_id: str
    messages: List[StoredMessage]
    count: int


class QuestionCategory(BaseModel):
    category: str
    questions: List[str]


class PopularQuestionsResponse(BaseModel):
    language: str
    questions: List[QuestionCategory]


class SessionsResponse(BaseModel):
    sessions: List[ConversationSummary]
