from .message import ChatMessage
from .user import User

__all__ = ["ChatMessage", "User"]
