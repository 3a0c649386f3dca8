"""Chat router — session creation, listing, history and message turns."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindsage.database.session import get_db
from mindsage.middleware.rate_limit import limiter
from mindsage.modules.chat.chat_service import ChatService
from mindsage.modules.chat.constants import RATE_LIMIT_CREATE, RATE_LIMIT_READ, RATE_LIMIT_TURN
from mindsage.modules.chat.dependencies import get_llm_gateway, get_telemetry_emitter
from mindsage.modules.chat.llm_gateway import LLMGateway
from mindsage.modules.chat.schemas import (
    CreateSessionRequest,
    CreateSessionResponse,
    MessageSchema,
    PostTurnRequest,
    PostTurnResponse,
    ProgressSchema,
    SessionDetailResponse,
    SessionSummary,
    TurnMetadata,
)
from mindsage.modules.chat.turn_orchestrator import TurnOrchestrator
from mindsage.modules.identity.auth import get_owner_id
from mindsage.modules.telemetry.emitter import TelemetryEmitter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post(
    "/sessions",
    response_model=CreateSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMIT_CREATE)
async def create_session(
    request: Request,
    body: CreateSessionRequest | None = None,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    telemetry: TelemetryEmitter = Depends(get_telemetry_emitter),
) -> CreateSessionResponse:
    """Create an empty chat session for the caller."""
    svc = ChatService(db, telemetry=telemetry)
    session = await svc.create_session(owner_id, title=body.title if body else None)
    return CreateSessionResponse(
        internal_id=session.id,
        external_id=session.external_id,
        session_id=session.external_id,
        title=session.title,
        status=session.status.value,
        started_at=session.started_at,
    )


@router.get("/sessions", response_model=list[SessionSummary])
@limiter.limit(RATE_LIMIT_READ)
async def list_sessions(
    request: Request,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
) -> list[SessionSummary]:
    """List the caller's sessions, newest first."""
    return await ChatService(db).list_sessions(owner_id)


@router.get("/sessions/{session_ref}", response_model=SessionDetailResponse)
@limiter.limit(RATE_LIMIT_READ)
async def get_session(
    request: Request,
    session_ref: str,
    db: AsyncSession = Depends(get_db),
) -> SessionDetailResponse:
    """Get a session by its internal or external id."""
    return await ChatService(db).get_session(session_ref)


@router.get("/sessions/{session_ref}/history", response_model=list[MessageSchema])
@limiter.limit(RATE_LIMIT_READ)
async def get_session_history(
    request: Request,
    session_ref: str,
    db: AsyncSession = Depends(get_db),
) -> list[MessageSchema]:
    """Get the ordered message history of a session."""
    return await ChatService(db).get_history(session_ref)


@router.post("/sessions/{session_ref}/messages", response_model=PostTurnResponse)
@limiter.limit(RATE_LIMIT_TURN)
async def post_message(
    request: Request,
    session_ref: str,
    body: PostTurnRequest,
    db: AsyncSession = Depends(get_db),
    gateway: LLMGateway = Depends(get_llm_gateway),
    telemetry: TelemetryEmitter = Depends(get_telemetry_emitter),
) -> PostTurnResponse:
    """Send a message and receive the assistant's reply with its analysis."""
    orchestrator = TurnOrchestrator(db, gateway=gateway, telemetry=telemetry)
    result = await orchestrator.post_turn(session_ref, body.message)
    return PostTurnResponse(
        reply=result.reply,
        response=result.reply,
        analysis=result.analysis,
        metadata=TurnMetadata(
            progress=ProgressSchema(
                emotional_state=result.analysis.emotional_state,
                risk_level=result.analysis.risk_level,
            )
        ),
        session_id=result.session.external_id,
    )
