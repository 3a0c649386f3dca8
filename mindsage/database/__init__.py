from mindsage.database.base import Base, HexIdPrimaryKeyMixin, TimestampMixin
from mindsage.database.engine import async_session, engine
from mindsage.database.session import get_db

__all__ = [
    "Base",
    "HexIdPrimaryKeyMixin",
    "TimestampMixin",
    "async_session",
    "engine",
    "get_db",
]
