import json
import logging
from typing import Optional

from redis import Redis, RedisError

from app.model.chat.message import MessageContext

logger = logging.getLogger(__name__)


def _key(session_id: str) -> str:
    return f"chat:session:{session_id}"


class SessionHintCache:
    """Latest merged farm hints per session, kept in Redis with a TTL."""

    def __init__(self, client: Redis, ttl_seconds: int = 1800) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    def get_context(self, session_id: str) -> Optional[MessageContext]:
        try:
            data = self._client.get(_key(session_id))
        except RedisError:
            logger.warning("hint cache read failed session=%s", session_id, exc_info=True)
            return None
        if data is None:
            return None
        try:
            decoded = json.loads(data)
        except json.JSONDecodeError:
            return None
        return MessageContext.model_validate(decoded) if isinstance(decoded, dict) else None

    def set_context(self, session_id: str, context: MessageContext) -> None:
        payload = json.dumps(context.model_dump(mode="json", exclude_none=True))
        try:
            self._client.setex(_key(session_id), self._ttl_seconds, payload)
        except RedisError:
            logger.warning("hint cache write failed session=%s", session_id, exc_info=True)
