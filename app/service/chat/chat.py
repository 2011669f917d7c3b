import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel

import app.config.config as configs
from app.model.chat.chat_request import RequestContext
from app.model.chat.chat_response import AssembledContext
from app.model.chat.message import MessageContext, NewMessage, Role, StoredMessage
from app.model.user.user_profile import UserProfile
from app.service.chat.context import ContextAssembler, hints_of
from app.service.chat.exceptions import PersistenceError, ValidationError
from app.service.chat.generator import FALLBACK_MESSAGE, ResponseGenerator
from app.service.chat.voice import normalize_for_speech
from app.service.context.redis_context import SessionHintCache
from app.service.language.languages import resolve_language
from app.service.store.base import MessageStore

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    RECEIVED = "RECEIVED"
    USER_MESSAGE_PERSISTED = "USER_MESSAGE_PERSISTED"
    CONTEXT_ASSEMBLED = "CONTEXT_ASSEMBLED"
    RESPONSE_GENERATED = "RESPONSE_GENERATED"
    BOT_MESSAGE_PERSISTED = "BOT_MESSAGE_PERSISTED"
    RETURNED = "RETURNED"


class TurnResult(BaseModel):
    user_message: StoredMessage
    bot_message: StoredMessage
    context: AssembledContext


def new_session_id() -> str:
    return str(uuid.uuid4())


def local_message(message: NewMessage) -> StoredMessage:
    """A message that exists only in this response because storage refused it."""
    return StoredMessage(
        **message.model_dump(),
        id=f"{message.role.value}-{uuid.uuid4().hex}",
        created_at=datetime.now(timezone.utc),
        persisted=False,
    )


def _request_hints(request: RequestContext) -> MessageContext:
    return MessageContext(
        farm_location=request.farm_location,
        crop_type=request.crop_type,
        season=request.season,
        farm_size=request.farm_size,
    )


class ChatOrchestrator:
    """
    Runs one chat turn against the message store:
    persist the user message, assemble context, generate, persist the answer.

    Each request is processed independently; turns in the same session are not
    serialized against each other.
    """

    def __init__(
        self,
        store: MessageStore,
        assembler: ContextAssembler,
        generator: ResponseGenerator,
        hint_cache: Optional[SessionHintCache] = None,
    ) -> None:
        self._store = store
        self._assembler = assembler
        self._generator = generator
        self._hint_cache = hint_cache
        if not store.durable:
            logger.warning("message store is not durable; chat history will not survive a restart")

    @property
    def durable(self) -> bool:
        return self._store.durable

    async def process_text_turn(
        self,
        session_id: str,
        text: str,
        user: Optional[UserProfile] = None,
        request_context: Optional[RequestContext] = None,
    ) -> TurnResult:
        return await self._process_turn(session_id, text, user, request_context, is_voice=False)

    async def process_voice_turn(
        self,
        session_id: str,
        text: str,
        user: Optional[UserProfile] = None,
        request_context: Optional[RequestContext] = None,
    ) -> TurnResult:
        return await self._process_turn(session_id, text, user, request_context, is_voice=True)

    async def start_session(
        self,
        initial_message: Optional[str] = None,
        user: Optional[UserProfile] = None,
        request_context: Optional[RequestContext] = None,
    ) -> Tuple[str, Optional[TurnResult]]:
        session_id = new_session_id()
        if not initial_message or not initial_message.strip():
            return session_id, None
        result = await self.process_text_turn(session_id, initial_message, user, request_context)
        return session_id, result

    async def _process_turn(
        self,
        session_id: str,
        text: str,
        user: Optional[UserProfile],
        request_context: Optional[RequestContext],
        is_voice: bool,
    ) -> TurnResult:
        if not session_id or not session_id.strip():
            raise ValidationError("session_id is required")
        if not text or not text.strip():
            raise ValidationError("message is required")

        request = request_context or RequestContext()
        default_language = configs.VOICE_DEFAULT_LANGUAGE if is_voice else configs.DEFAULT_LANGUAGE
        user_id = user.id if user else None
        self._log_state(session_id, TurnState.RECEIVED)

        user_message = await self._persist_user_message(
            NewMessage(
                session_id=session_id,
                role=Role.USER,
                text=text,
                language=resolve_language(request.language, default_language),
                context=_request_hints(request),
                user_id=user_id,
            )
        )
        self._log_state(session_id, TurnState.USER_MESSAGE_PERSISTED)

        context = await asyncio.to_thread(
            self._assembler.build,
            session_id,
            request,
            is_voice,
            user,
            user_message.id,
            default_language,
        )
        self._log_state(session_id, TurnState.CONTEXT_ASSEMBLED)

        generated = await self._generator.generate(text, context)
        self._log_state(session_id, TurnState.RESPONSE_GENERATED)

        reply = generated.text
        if is_voice:
            reply = normalize_for_speech(reply) or FALLBACK_MESSAGE

        hints = hints_of(context)
        bot_message = await self._persist_bot_message(
            NewMessage(
                session_id=session_id,
                role=Role.BOT,
                text=reply,
                language=context.language,
                context=hints,
                metadata=generated.metadata,
                user_id=user_id,
            )
        )
        self._log_state(session_id, TurnState.BOT_MESSAGE_PERSISTED)

        if self._hint_cache is not None:
            await asyncio.to_thread(self._hint_cache.set_context, session_id, hints)

        self._log_state(session_id, TurnState.RETURNED)
        return TurnResult(user_message=user_message, bot_message=bot_message, context=context)

    async def _persist_user_message(self, message: NewMessage) -> StoredMessage:
        try:
            return await asyncio.to_thread(self._store.append, message)
        except PersistenceError:
            if self._store.durable:
                raise
            logger.warning("user message kept locally session=%s", message.session_id, exc_info=True)
            return local_message(message)

    async def _persist_bot_message(self, message: NewMessage) -> StoredMessage:
        try:
            return await asyncio.to_thread(self._store.append, message)
        except PersistenceError:
            # The answer is still returned; only its history entry is lost.
            logger.exception("bot message not persisted session=%s", message.session_id)
            return local_message(message)

    @staticmethod
    def _log_state(session_id: str, state: TurnState) -> None:
        logger.debug("turn session=%s state=%s", session_id, state.value)
