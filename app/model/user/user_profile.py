from typing import Optional

from pydantic import BaseModel, Field

from app.model.chat.message import FarmLocation


class FarmDetails(BaseModel):
    total_acres: Optional[float] = None


class UserProfile(BaseModel):
    id: str
    name: Optional[str] = None
    location: Optional[FarmLocation] = None
    farm_details: FarmDetails = Field(default_factory=FarmDetails)
