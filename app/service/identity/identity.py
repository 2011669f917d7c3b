import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.client.db.psql import session_scope
from app.db.models.user import User
from app.db.session import SessionLocal
from app.model.chat.message import FarmLocation
from app.model.user.user_profile import FarmDetails, UserProfile

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class IdentityProvider(ABC):
    @abstractmethod
    def resolve(self, token: str) -> Optional[UserProfile]:
        ...


class NullIdentityProvider(IdentityProvider):
    """Used when the user table is unavailable; every caller is anonymous."""

    def resolve(self, token: str) -> Optional[UserProfile]:
        return None


class SqlIdentityProvider(IdentityProvider):
    """Looks the bearer value up as a `users.user_id`. Token issuing lives elsewhere."""

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def resolve(self, token: str) -> Optional[UserProfile]:
        if not token:
            return None
        try:
            with session_scope(self._session_factory) as db:
                user = db.execute(select(User).where(User.user_id == token)).scalar_one_or_none()
                if user is None:
                    return None
                return UserProfile(
                    id=user.user_id,
                    name=user.name,
                    location=FarmLocation.model_validate(user.location) if user.location else None,
                    farm_details=FarmDetails(total_acres=user.total_acres),
                )
        except SQLAlchemyError:
            logger.exception("user lookup failed")
            return None
