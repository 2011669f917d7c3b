import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

import app.config.config as configs
from app.db import models  # noqa: F401
from app.db.session import Base, engine
from app.service.store.base import MessageStore
from app.service.store.memory import InMemoryMessageStore
from app.service.store.sql import SqlMessageStore

logger = logging.getLogger(__name__)


def build_message_store(enabled: bool | None = None, bind: Engine | None = None) -> MessageStore:
    """
    Resolve the message store once at startup.

    Falls back to the non-durable in-memory store when chat history is
    switched off or the database cannot be reached.
    """
    enabled = configs.CHAT_HISTORY_ENABLED if enabled is None else enabled
    bind = engine if bind is None else bind

    if not enabled:
        logger.warning("chat history disabled; messages are kept in memory only")
        return InMemoryMessageStore()

    try:
        Base.metadata.create_all(bind=bind)
    except SQLAlchemyError as exc:
        logger.warning("database unavailable (%s); running message store in degraded in-memory mode", exc)
        return InMemoryMessageStore()

    factory = sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True, expire_on_commit=False)
    return SqlMessageStore(factory)
