# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from mindsage.models.chat_session import ChatSession
from mindsage.models.enums import MessageRole, SessionStatus

__all__ = [
    "ChatSession",
    "MessageRole",
    "SessionStatus",
]
