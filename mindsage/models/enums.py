import enum


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"
