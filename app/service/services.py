import logging
from functools import lru_cache
from typing import Optional

import app.config.config as configs
from app.service.chat.chat import ChatOrchestrator
from app.service.chat.context import ContextAssembler
from app.service.chat.generator import ResponseGenerator
from app.service.chat.history import ChatHistoryService
from app.service.context.redis_context import SessionHintCache
from app.service.identity.identity import IdentityProvider, NullIdentityProvider, SqlIdentityProvider
from app.service.store.base import MessageStore
from app.service.store.factory import build_message_store

logger = logging.getLogger(__name__)


class ChatServices:
    def __init__(
        self,
        store: MessageStore,
        generator: ResponseGenerator,
        identity: IdentityProvider,
        hint_cache: Optional[SessionHintCache] = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.orchestrator = ChatOrchestrator(store, ContextAssembler(store, hint_cache), generator, hint_cache)
        self.history = ChatHistoryService(store)


def build_services() -> ChatServices:
    store = build_message_store()

    hint_cache = None
    if configs.REDIS_ENABLED:
        from app.client.db.redis import redis_client

        hint_cache = SessionHintCache(redis_client, configs.CONTEXT_TTL_SEC)

    # Profiles live in the same database as the history.
    identity = SqlIdentityProvider() if store.durable else NullIdentityProvider()
    logger.info(
        "chat services ready durable=%s hint_cache=%s model=%s",
        store.durable,
        hint_cache is not None,
        configs.MODEL,
    )
    return ChatServices(store, ResponseGenerator(), identity, hint_cache)


@lru_cache(maxsize=1)
def get_services() -> ChatServices:
    return build_services()
