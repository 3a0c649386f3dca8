"""Pydantic v2 schemas for the chat session endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mindsage.modules.chat.constants import (
    DEFAULT_EMOTIONAL_STATE,
    DEFAULT_RECOMMENDED_APPROACH,
    DEFAULT_RISK_LEVEL,
)


class AnalysisResult(BaseModel):
    """Structured enrichment computed for each user message.

    ``risk_level`` is an opaque score: whatever scale the provider emits is
    kept as-is.
    """

    model_config = ConfigDict(populate_by_name=True)

    emotional_state: str = Field(DEFAULT_EMOTIONAL_STATE, alias="emotionalState")
    themes: list[str] = Field(default_factory=list)
    risk_level: int | float = Field(DEFAULT_RISK_LEVEL, alias="riskLevel")
    recommended_approach: str = Field(
        DEFAULT_RECOMMENDED_APPROACH, alias="recommendedApproach"
    )
    progress_indicators: list[str] = Field(
        default_factory=list, alias="progressIndicators"
    )

    @classmethod
    def neutral(cls) -> AnalysisResult:
        return cls()


class ProgressSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    emotional_state: str = Field(alias="emotionalState")
    risk_level: int | float = Field(alias="riskLevel")


class MessageMetadata(BaseModel):
    """Metadata attached to assistant messages."""

    model_config = ConfigDict(populate_by_name=True)

    analysis: AnalysisResult
    progress: ProgressSchema
    technique: str
    goal: str


class MessageSchema(BaseModel):
    """Canonical message record."""

    model_config = ConfigDict(populate_by_name=True)

    role: str
    content: str
    timestamp: datetime
    metadata: dict | None = None


class CreateSessionRequest(BaseModel):
    """Request body for POST /chat/sessions."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(None, max_length=255)


class CreateSessionResponse(BaseModel):
    """Response body for POST /chat/sessions."""

    model_config = ConfigDict(populate_by_name=True)

    internal_id: str = Field(alias="internalId")
    external_id: str = Field(alias="externalId")
    session_id: str = Field(alias="sessionId")
    title: str
    status: str
    started_at: datetime = Field(alias="startedAt")


class LastMessagePreview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str
    role: str
    timestamp: datetime | None = None


class SessionSummary(BaseModel):
    """One entry of GET /chat/sessions."""

    model_config = ConfigDict(populate_by_name=True)

    internal_id: str = Field(alias="internalId")
    external_id: str = Field(alias="externalId")
    title: str
    status: str
    started_at: datetime = Field(alias="startedAt")
    last_activity_at: datetime = Field(alias="lastActivityAt")
    message_count: int = Field(alias="messageCount")
    last_message: LastMessagePreview | None = Field(None, alias="lastMessage")


class SessionDetailResponse(BaseModel):
    """Response body for GET /chat/sessions/{ref}."""

    model_config = ConfigDict(populate_by_name=True)

    internal_id: str = Field(alias="internalId")
    external_id: str = Field(alias="externalId")
    title: str
    status: str
    started_at: datetime = Field(alias="startedAt")
    last_activity_at: datetime = Field(alias="lastActivityAt")
    messages: list[MessageSchema]
    found_by: str = Field(alias="foundBy")


class PostTurnRequest(BaseModel):
    """Request body for POST /chat/sessions/{ref}/messages."""

    model_config = ConfigDict(populate_by_name=True)

    message: str


class TurnMetadata(BaseModel):
    progress: ProgressSchema


class PostTurnResponse(BaseModel):
    """Response body for POST /chat/sessions/{ref}/messages."""

    model_config = ConfigDict(populate_by_name=True)

    reply: str
    response: str
    analysis: AnalysisResult
    metadata: TurnMetadata
    session_id: str = Field(alias="sessionId")
