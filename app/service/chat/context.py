import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import app.config.config as configs
from app.model.chat.chat_request import RequestContext
from app.model.chat.chat_response import AssembledContext
from app.model.chat.message import MessageContext, StoredMessage
from app.model.user.user_profile import UserProfile
from app.service.chat.exceptions import PersistenceError
from app.service.context.redis_context import SessionHintCache
from app.service.language.languages import resolve_language
from app.service.store.base import MessageStore

logger = logging.getLogger(__name__)

HINT_FIELDS = ("farm_location", "crop_type", "season", "farm_size")


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _profile_hints(user: Optional[UserProfile]) -> dict[str, Any]:
    if user is None:
        return {}
    return {"farm_location": user.location, "farm_size": user.farm_details.total_acres}


def _stored_hints(window: List[StoredMessage], cached: Optional[MessageContext]) -> dict[str, Any]:
    """Per field, the cached value or the newest message in the window that carries one."""
    hints: dict[str, Any] = {}
    for field in HINT_FIELDS:
        candidates = [getattr(cached, field)] if cached is not None else []
        candidates.extend(getattr(m.context, field) for m in reversed(window))
        hints[field] = _first_present(*candidates)
    return hints


class ContextAssembler:
    """Read-only: merges caller hints with what the session already knows."""

    def __init__(
        self,
        store: MessageStore,
        hint_cache: Optional[SessionHintCache] = None,
        window: int = configs.RECENT_WINDOW,
    ) -> None:
        self._store = store
        self._hint_cache = hint_cache
        self._window = window

    def _recent(self, session_id: str, exclude_message_id: Optional[str]) -> List[StoredMessage]:
        limit = self._window + (1 if exclude_message_id else 0)
        try:
            messages = self._store.recent(session_id, limit)
        except PersistenceError:
            logger.warning("recent messages unavailable session=%s", session_id, exc_info=True)
            return []
        if exclude_message_id:
            messages = [m for m in messages if m.id != exclude_message_id]
        return messages[-self._window:] if self._window > 0 else []

    def build(
        self,
        session_id: str,
        request_context: Optional[RequestContext] = None,
        is_voice: bool = False,
        user: Optional[UserProfile] = None,
        exclude_message_id: Optional[str] = None,
        default_language: Optional[str] = None,
    ) -> AssembledContext:
        request = request_context or RequestContext()
        window = self._recent(session_id, exclude_message_id)
        cached = self._hint_cache.get_context(session_id) if self._hint_cache else None

        stored = _stored_hints(window, cached)
        profile = _profile_hints(user)
        merged = {
            field: _first_present(getattr(request, field), stored.get(field), profile.get(field))
            for field in HINT_FIELDS
        }

        return AssembledContext(
            language=resolve_language(request.language, default_language),
            is_voice=is_voice,
            query_time=datetime.now(timezone.utc),
            previous_messages=len(window),
            recent_messages=window,
            **merged,
        )


def hints_of(context: AssembledContext) -> MessageContext:
    return MessageContext(
        farm_location=context.farm_location,
        crop_type=context.crop_type,
        season=context.season,
        farm_size=context.farm_size,
        previous_messages=context.previous_messages,
    )
