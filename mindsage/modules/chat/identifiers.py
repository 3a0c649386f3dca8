"""Session reference classification and lookup.

Callers may hold either the internal id (24 hex chars) or the external
UUID token of a session. ``IdentifierResolver`` picks the lookup scheme from
the shape of the reference and reports one of three outcomes, so that
upstream layers can react differently to an unusable reference and to a
well-formed one that matches nothing.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass

from mindsage.database.base import INTERNAL_ID_LENGTH
from mindsage.models.chat_session import ChatSession
from mindsage.modules.chat.constants import PLACEHOLDER_REFERENCES
from mindsage.modules.chat.session_store import SessionStore

logger = logging.getLogger(__name__)

_INTERNAL_ID_RE = re.compile(rf"^[0-9a-fA-F]{{{INTERNAL_ID_LENGTH}}}$")


class ReferenceKind(str, enum.Enum):
    INVALID = "invalid"
    INTERNAL = "internal_id"
    EXTERNAL = "external_id"


class ResolutionStatus(str, enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    INVALID_REFERENCE = "invalid_reference"


@dataclass(frozen=True)
class Resolution:
    status: ResolutionStatus
    ref: str | None
    kind: ReferenceKind
    session: ChatSession | None = None

    @property
    def found(self) -> bool:
        return self.status is ResolutionStatus.FOUND

    @property
    def found_by(self) -> str:
        return self.kind.value


def classify_reference(ref: object) -> ReferenceKind:
    """Classify a caller-supplied reference without touching the store."""
    if not isinstance(ref, str):
        return ReferenceKind.INVALID
    candidate = ref.strip()
    if not candidate or candidate.lower() in PLACEHOLDER_REFERENCES:
        return ReferenceKind.INVALID
    if _INTERNAL_ID_RE.match(candidate):
        return ReferenceKind.INTERNAL
    return ReferenceKind.EXTERNAL


class IdentifierResolver:
    """Resolve a session reference to a stored session."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    async def resolve(self, ref: str | None) -> Resolution:
        kind = classify_reference(ref)
        if kind is ReferenceKind.INVALID:
            logger.info("Rejected unusable session reference %r", ref)
            return Resolution(ResolutionStatus.INVALID_REFERENCE, ref, kind)

        candidate = ref.strip()
        if kind is ReferenceKind.INTERNAL:
            session = await self.store.find_by_internal_id(candidate.lower())
        else:
            session = await self.store.find_by_external_id(candidate)

        if session is None:
            logger.info("No session for reference %s (looked up by %s)", candidate, kind.value)
            return Resolution(ResolutionStatus.NOT_FOUND, ref, kind)
        return Resolution(ResolutionStatus.FOUND, ref, kind, session)
