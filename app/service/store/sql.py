from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.client.db.psql import session_scope
from app.db.models.message import ChatMessage
from app.db.session import SessionLocal
from app.model.chat.message import (
    ConversationSummary,
    Feedback,
    GenerationMetadata,
    MessageContext,
    NewMessage,
    Role,
    StoredMessage,
)
from app.service.chat.exceptions import NotFoundError, PersistenceError
from app.service.store.base import MessageStore, merge_feedback, summarize_sessions, validate_new_message


def _to_message(row: ChatMessage) -> StoredMessage:
    return StoredMessage(
        id=str(row.id),
        session_id=row.session_id,
        user_id=row.user_id,
        role=Role(row.role),
        text=row.content,
        language=row.language,
        context=MessageContext.model_validate(row.context or {}),
        metadata=GenerationMetadata.model_validate(row.meta) if row.meta else None,
        feedback=Feedback.model_validate(row.feedback) if row.feedback else None,
        created_at=row.created_at,
    )


class SqlMessageStore(MessageStore):
    durable = True

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def append(self, message: NewMessage) -> StoredMessage:
        validate_new_message(message)
        row = ChatMessage(
            session_id=message.session_id,
            user_id=message.user_id,
            role=message.role.value,
            content=message.text,
            language=message.language,
            context=message.context.model_dump(mode="json", exclude_none=True),
            meta=message.metadata.model_dump(mode="json", exclude_none=True) if message.metadata else None,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with session_scope(self._session_factory) as db:
                db.add(row)
                db.flush()
                stored = _to_message(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not store {message.role.value} message for session {message.session_id}") from exc
        return stored

    def list_by_session(self, session_id: str, limit: int = 50) -> List[StoredMessage]:
        query = (
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at, ChatMessage.id)
            .limit(limit)
        )
        return self._fetch(query)

    def recent(self, session_id: str, limit: int = 5) -> List[StoredMessage]:
        if limit <= 0:
            return []
        query = (
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
        )
        # Newest first from the database, chronological for callers.
        return list(reversed(self._fetch(query)))

    def update_feedback(self, message_id: str, feedback: Feedback) -> StoredMessage:
        try:
            ident = int(message_id)
        except (TypeError, ValueError):
            raise NotFoundError(f"message {message_id} not found")

        try:
            with session_scope(self._session_factory) as db:
                row = db.get(ChatMessage, ident)
                if row is None:
                    raise NotFoundError(f"message {message_id} not found")
                row.feedback = merge_feedback(row.feedback, feedback)
                db.flush()
                updated = _to_message(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not update feedback for message {message_id}") from exc
        return updated

    def sessions_for_user(self, user_id: str) -> List[ConversationSummary]:
        query = (
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at, ChatMessage.id)
        )
        return summarize_sessions(self._fetch(query))

    def _fetch(self, query) -> List[StoredMessage]:
        try:
            with session_scope(self._session_factory) as db:
                rows = db.execute(query).scalars().all()
                return [_to_message(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError("could not read chat messages") from exc
