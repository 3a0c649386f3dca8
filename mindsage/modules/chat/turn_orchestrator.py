"""TurnOrchestrator — runs one user message through a chat session.

States: RESOLVING_SESSION -> BUILDING_CONTEXT -> ANALYZING -> REPLYING ->
PERSISTING -> DONE, with ABORTED reachable from any state. Only a failed
reply or a failed save aborts a turn once the session is resolved; the user
message and the assistant reply are saved together or not at all.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import weakref
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from mindsage.config import settings
from mindsage.exceptions import (
    AppException,
    InvalidReferenceException,
    SessionNotFoundException,
    UpstreamReplyFailureException,
    ValidationException,
)
from mindsage.models.chat_session import ChatSession
from mindsage.models.enums import MessageRole
from mindsage.modules.chat.constants import (
    DEFAULT_GOAL,
    DEFAULT_SESSION_TITLE,
    TITLE_ELLIPSIS,
    TITLE_PREFIX_LENGTH,
)
from mindsage.modules.chat.identifiers import IdentifierResolver, ResolutionStatus
from mindsage.modules.chat.llm_gateway import LLMGateway, TurnContext
from mindsage.modules.chat.normalizer import normalize_messages, parse_timestamp
from mindsage.modules.chat.prompts import SYSTEM_PROMPT
from mindsage.modules.chat.schemas import AnalysisResult, MessageMetadata, ProgressSchema
from mindsage.modules.chat.session_store import SessionStore
from mindsage.modules.telemetry.emitter import TelemetryEmitter
from mindsage.modules.telemetry.session_events import EVENT_SESSION_MESSAGE

logger = logging.getLogger(__name__)

# Recent analyses folded into the memory block of the prompt context
_MEMORY_ANALYSES = 5

# One lock per session id, dropped once no turn holds it
_SESSION_LOCKS: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()


def _session_lock(session_id: str) -> asyncio.Lock:
    lock = _SESSION_LOCKS.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _SESSION_LOCKS[session_id] = lock
    return lock


class TurnState(str, enum.Enum):
    RESOLVING_SESSION = "resolving_session"
    BUILDING_CONTEXT = "building_context"
    ANALYZING = "analyzing"
    REPLYING = "replying"
    PERSISTING = "persisting"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class TurnResult:
    reply: str
    analysis: AnalysisResult
    session: ChatSession


def derive_title(message: str) -> str:
    """First 50 characters of the message, with an ellipsis when cut."""
    prefix = message[:TITLE_PREFIX_LENGTH]
    return prefix + TITLE_ELLIPSIS if len(prefix) < len(message) else prefix


def build_context(messages: list[dict] | None, window: int) -> TurnContext:
    """Assemble prompt context from the stored messages.

    Only the last ``window`` messages go to the model; stored history is
    never trimmed.
    """
    canonical = normalize_messages(messages or [])
    recent = canonical[-window:] if window > 0 else []
    history = [
        {"role": m["role"], "content": m["content"]} for m in recent if m["content"]
    ]

    analyses: list[dict] = []
    technique = None
    for m in canonical:
        metadata = m.get("metadata") or {}
        if isinstance(metadata.get("analysis"), dict):
            analyses.append(metadata["analysis"])
        if metadata.get("technique"):
            technique = metadata["technique"]

    themes: list[str] = []
    for analysis in analyses:
        for theme in analysis.get("themes") or []:
            if isinstance(theme, str) and theme not in themes:
                themes.append(theme)

    recent_analyses = analyses[-_MEMORY_ANALYSES:]
    memory = {
        "userProfile": {
            "emotionalState": [a.get("emotionalState") for a in recent_analyses if a.get("emotionalState")],
            "riskLevel": recent_analyses[-1].get("riskLevel", 0) if recent_analyses else 0,
            "preferences": {},
        },
        "sessionContext": {
            "conversationThemes": themes,
            "currentTechnique": technique,
        },
    }
    return TurnContext(history=history, memory=memory, goals=[])


def _next_timestamp(previous: datetime | None) -> datetime:
    now = datetime.now(UTC)
    if previous is not None and previous > now:
        return previous
    return now


class TurnOrchestrator:
    """Coordinates resolver, gateway and store for one inbound message."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: LLMGateway | None = None,
        telemetry: TelemetryEmitter | None = None,
        context_window: int | None = None,
    ) -> None:
        self.store = SessionStore(db)
        self.resolver = IdentifierResolver(self.store)
        self.gateway = gateway or LLMGateway()
        self.telemetry = telemetry or TelemetryEmitter()
        self.context_window = (
            settings.chat_context_window_messages if context_window is None else context_window
        )
        self.state = TurnState.RESOLVING_SESSION

    def _advance(self, state: TurnState, ref: str | None) -> None:
        logger.debug("Turn on %s: %s -> %s", ref, self.state.value, state.value)
        self.state = state

    async def post_turn(self, ref: str | None, message: str) -> TurnResult:
        """Process one user message and return the reply with its analysis."""
        if not isinstance(message, str) or not message.strip():
            raise ValidationException(
                "Message is required",
                details=[{"field": "message", "message": "must be a non-empty string"}],
            )

        self._advance(TurnState.RESOLVING_SESSION, ref)
        try:
            resolution = await self.resolver.resolve(ref)
            if resolution.status is ResolutionStatus.INVALID_REFERENCE:
                raise InvalidReferenceException(ref)
            if resolution.status is ResolutionStatus.NOT_FOUND:
                raise SessionNotFoundException(ref.strip())

            session = resolution.session
            async with _session_lock(session.id):
                session = await self.store.reload(session)
                return await self._run_turn(session, message)
        except AppException as exc:
            logger.warning(
                "Turn on %s aborted in state %s: %s", ref, self.state.value, exc.code
            )
            self._advance(TurnState.ABORTED, ref)
            raise

    async def _run_turn(self, session: ChatSession, text: str) -> TurnResult:
        ref = session.external_id
        is_first_turn = not session.messages

        self._advance(TurnState.BUILDING_CONTEXT, ref)
        context = build_context(session.messages, self.context_window)
        stored = normalize_messages(session.messages or [])
        last_timestamp = parse_timestamp(stored[-1]["timestamp"]) if stored else None
        user_timestamp = _next_timestamp(last_timestamp)

        self.telemetry.emit(
            EVENT_SESSION_MESSAGE,
            {
                "sessionId": session.external_id,
                "internalId": session.id,
                "message": text,
                "history": context.history,
                "memory": context.memory,
                "goals": context.goals,
                "systemPrompt": SYSTEM_PROMPT,
            },
        )

        self._advance(TurnState.ANALYZING, ref)
        analysis = await self._analyze(text, context)

        self._advance(TurnState.REPLYING, ref)
        reply = await self._reply(text, analysis, context)

        self._advance(TurnState.PERSISTING, ref)
        user_message = {
            "role": MessageRole.USER.value,
            "content": text,
            "timestamp": user_timestamp.isoformat(),
        }
        metadata = MessageMetadata(
            analysis=analysis,
            progress=ProgressSchema(
                emotional_state=analysis.emotional_state,
                risk_level=analysis.risk_level,
            ),
            technique=analysis.recommended_approach,
            goal=analysis.themes[0] if analysis.themes else DEFAULT_GOAL,
        )
        assistant_message = {
            "role": MessageRole.ASSISTANT.value,
            "content": reply,
            "timestamp": _next_timestamp(user_timestamp).isoformat(),
            "metadata": metadata.model_dump(by_alias=True, mode="json"),
        }
        title = None
        if is_first_turn and (not session.title or session.title == DEFAULT_SESSION_TITLE):
            title = derive_title(text.strip())

        session = await self.store.append_turn(session, user_message, assistant_message, title=title)

        self._advance(TurnState.DONE, ref)
        logger.info(
            "Committed turn on session %s (%d messages, emotionalState=%s)",
            session.id,
            len(session.messages or []),
            analysis.emotional_state,
        )
        return TurnResult(reply=reply, analysis=analysis, session=session)

    async def _analyze(self, text: str, context: TurnContext) -> AnalysisResult:
        try:
            return await self.gateway.analyze(text, context)
        except Exception:
            logger.exception("Analysis raised unexpectedly; using neutral default")
            return AnalysisResult.neutral()

    async def _reply(self, text: str, analysis: AnalysisResult, context: TurnContext) -> str:
        try:
            reply = await self.gateway.reply(text, analysis, context)
        except UpstreamReplyFailureException:
            raise
        except Exception as exc:
            logger.exception("Reply generation raised unexpectedly")
            raise UpstreamReplyFailureException(
                "The assistant could not generate a reply; nothing was saved"
            ) from exc

        if not isinstance(reply, str) or not reply.strip():
            raise UpstreamReplyFailureException(
                "The assistant returned an empty reply; nothing was saved"
            )
        return reply.strip()
