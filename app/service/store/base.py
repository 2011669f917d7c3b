from abc import ABC, abstractmethod
from typing import List

from app.model.chat.message import ConversationSummary, Feedback, NewMessage, StoredMessage
from app.service.chat.exceptions import ValidationError


class MessageStore(ABC):
    """
    Owner of chat message records.

    Implementations must return `recent` windows in chronological order and
    must never change text, role or context after a message is written.
    `durable` is False when records do not survive a process restart.
    """

    durable: bool = True

    @abstractmethod
    def append(self, message: NewMessage) -> StoredMessage:
        ...

    @abstractmethod
    def list_by_session(self, session_id: str, limit: int = 50) -> List[StoredMessage]:
        ...

    @abstractmethod
    def recent(self, session_id: str, limit: int = 5) -> List[StoredMessage]:
        ...

    @abstractmethod
    def update_feedback(self, message_id: str, feedback: Feedback) -> StoredMessage:
        ...

    @abstractmethod
    def sessions_for_user(self, user_id: str) -> List[ConversationSummary]:
        ...


def validate_new_message(message: NewMessage) -> None:
    if not message.session_id or not message.session_id.strip():
        raise ValidationError("session_id is required")
    if not message.text or not message.text.strip():
        raise ValidationError("message text is required")


def merge_feedback(current: dict | None, update: Feedback) -> dict:
    merged = dict(current or {})
    merged.update(update.model_dump(exclude_none=True))
    return merged


def summarize_sessions(messages: List[StoredMessage]) -> List[ConversationSummary]:
    """Collapse a chronological message list into one summary per session, latest activity first."""
    summaries: dict[str, ConversationSummary] = {}
    last_position: dict[str, int] = {}
    for position, message in enumerate(messages):
        previous = summaries.get(message.session_id)
        summaries[message.session_id] = ConversationSummary(
            session_id=message.session_id,
            last_message=message.text,
            last_activity=message.created_at,
            message_count=(previous.message_count if previous else 0) + 1,
        )
        last_position[message.session_id] = position
    return sorted(
        summaries.values(),
        key=lambda s: (s.last_activity, last_position[s.session_id]),
        reverse=True,
    )
