import itertools
import threading
from datetime import datetime, timezone
from typing import List

from app.model.chat.message import (
    ConversationSummary,
    Feedback,
    NewMessage,
    StoredMessage,
    chronological,
)
from app.service.chat.exceptions import NotFoundError
from app.service.store.base import MessageStore, merge_feedback, summarize_sessions, validate_new_message


class InMemoryMessageStore(MessageStore):
    """Process-local store used when the database is disabled or unreachable."""

    durable = False

    def __init__(self) -> None:
        self._messages: dict[str, StoredMessage] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def append(self, message: NewMessage) -> StoredMessage:
        validate_new_message(message)
        with self._lock:
            stored = StoredMessage(
                **message.model_dump(),
                id=str(next(self._ids)),
                created_at=datetime.now(timezone.utc),
            )
            self._messages[stored.id] = stored
        return stored.model_copy(deep=True)

    def _session_messages(self, session_id: str) -> List[StoredMessage]:
        with self._lock:
            found = [m for m in self._messages.values() if m.session_id == session_id]
        return chronological(found)

    def list_by_session(self, session_id: str, limit: int = 50) -> List[StoredMessage]:
        return [m.model_copy(deep=True) for m in self._session_messages(session_id)[:limit]]

    def recent(self, session_id: str, limit: int = 5) -> List[StoredMessage]:
        if limit <= 0:
            return []
        newest_first = list(reversed(self._session_messages(session_id)))[:limit]
        return [m.model_copy(deep=True) for m in reversed(newest_first)]

    def update_feedback(self, message_id: str, feedback: Feedback) -> StoredMessage:
        with self._lock:
            current = self._messages.get(str(message_id))
            if current is None:
                raise NotFoundError(f"message {message_id} not found")
            existing = current.feedback.model_dump(exclude_none=True) if current.feedback else None
            updated = current.model_copy(update={"feedback": Feedback(**merge_feedback(existing, feedback))})
            self._messages[updated.id] = updated
        return updated.model_copy(deep=True)

    def sessions_for_user(self, user_id: str) -> List[ConversationSummary]:
        with self._lock:
            owned = [m for m in self._messages.values() if m.user_id == user_id]
        return summarize_sessions(chronological(owned))
