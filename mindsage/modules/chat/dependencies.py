"""FastAPI dependency functions for the chat collaborators."""

from functools import lru_cache

from mindsage.modules.chat.llm_gateway import LLMGateway
from mindsage.modules.telemetry.emitter import TelemetryEmitter


@lru_cache(maxsize=1)
def get_llm_gateway() -> LLMGateway:
    """Process-wide gateway so the HTTP connection pool is shared."""
    return LLMGateway()


@lru_cache(maxsize=1)
def get_telemetry_emitter() -> TelemetryEmitter:
    return TelemetryEmitter()
