from typing import Optional

from pydantic import BaseModel, Field

from app.model.chat.message import FarmLocation


class RequestContext(BaseModel):
    language: Optional[str] = None
    farm_location: Optional[FarmLocation] = None
    crop_type: Optional[str] = None
    season: Optional[str] = None
    farm_size: Optional[float] = Field(default=None, ge=0)


class ChatRequest(BaseModel):
    message: str = Field(..., description="User's message to the assistant")
    session_id: Optional[str] = Field(default=None, description="Chat session identifier; generated when absent")
    language: Optional[str] = None
    context: Optional[RequestContext] = None
    is_voice: bool = False


class SessionRequest(BaseModel):
    initial_message: Optional[str] = None
    context: Optional[RequestContext] = None


class FeedbackRequest(BaseModel):
    helpful: Optional[bool] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None
