from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from app.db.session import Base

JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_session_created", "session_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    # External session identifier; a session exists only through its messages
    session_id = Column(String(128), nullable=False)
    # Owner when the caller was identified
    user_id = Column(String(64), nullable=True, index=True)
    # user | bot | system
    role = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)
    language = Column(String(8), nullable=False, default="en")
    # Farm hints snapshot at write time (location, crop, season, size, window count)
    context = Column(JsonColumn, nullable=True)
    # Generation diagnostics, bot messages only
    meta = Column("metadata", JsonColumn, nullable=True)
    # helpful | rating | comment; the only field updated after insert
    feedback = Column(JsonColumn, nullable=True)
    # Assigned in Python so ordering keeps sub-second resolution on every backend
    created_at = Column(DateTime(timezone=True), nullable=False)
