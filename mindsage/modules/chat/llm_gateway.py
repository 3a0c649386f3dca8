"""LLMGateway — the boundary to the external text-generation provider.

Two calls are made per turn: a structured analysis of the user message and
the therapeutic reply. Analysis is best-effort and degrades to a neutral
default; a failed reply is fatal to the turn.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from mindsage.config import settings
from mindsage.exceptions import UpstreamReplyFailureException
from mindsage.modules.chat.prompts import ANALYSIS_PROMPT, REPLY_PROMPT, SYSTEM_PROMPT
from mindsage.modules.chat.schemas import AnalysisResult

logger = logging.getLogger(__name__)

_HTML_MARKERS = ("<!doctype", "<html")


class LLMGatewayError(Exception):
    """The provider failed or returned output that cannot be used."""


@dataclass
class TurnContext:
    """Prompt context assembled from a session before the model calls."""

    history: list[dict] = field(default_factory=list)
    memory: dict = field(default_factory=dict)
    goals: list[str] = field(default_factory=list)

    def as_prompt_dict(self) -> dict:
        return {"memory": self.memory, "goals": self.goals}


def looks_like_html(text: str) -> bool:
    """True for infrastructure error pages returned in place of model output."""
    return text.lstrip()[:20].lower().startswith(_HTML_MARKERS)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```)."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    first_newline = stripped.find("\n")
    if first_newline == -1:
        return stripped.strip("`").strip()
    body = stripped[first_newline + 1:]
    end = body.rfind("```")
    if end != -1:
        body = body[:end]
    return body.strip()


def _try_parse_json(text: str) -> dict | list | None:
    """Attempt to parse JSON, returning None on failure."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_analysis(raw: str) -> AnalysisResult | None:
    """Parse the analysis call output, strict first, then lenient.

    Tries the whole text, then the text without code fences, then the
    outermost ``{...}`` slice. Returns None when nothing validates.
    """
    if not raw:
        return None
    stripped = raw.strip()
    candidates = [stripped, strip_code_fences(stripped)]
    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        candidates.append(stripped[start:end + 1])

    for candidate in candidates:
        parsed = _try_parse_json(candidate)
        if not isinstance(parsed, dict):
            continue
        try:
            return AnalysisResult.model_validate(parsed)
        except ValidationError as exc:
            logger.debug("Analysis JSON failed validation: %s", exc)
            return None
    return None


class LLMGateway:
    """Wraps the completion API behind analyze() and reply()."""

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )

    async def generate_text(self, messages: list[dict]) -> str:
        """Send one completion request and return the trimmed text."""
        try:
            response = await self.client.chat.completions.create(
                model=settings.openai_model,
                messages=messages,
                max_tokens=settings.llm_max_tokens,
                temperature=settings.llm_temperature,
            )
        except OpenAIError as exc:
            raise LLMGatewayError(f"{type(exc).__name__} from provider") from exc

        if not response.choices:
            raise LLMGatewayError("Provider returned no choices")
        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise LLMGatewayError("Provider returned empty output")
        if looks_like_html(text):
            raise LLMGatewayError("Provider returned an HTML error page")
        return text

    async def analyze(self, message: str, context: TurnContext) -> AnalysisResult:
        """Return the structured analysis of a message, or the neutral default."""
        prompt = ANALYSIS_PROMPT.format(
            message=message,
            context=json.dumps(context.as_prompt_dict(), default=str),
        )
        try:
            raw = await self.generate_text([{"role": "user", "content": prompt}])
        except LLMGatewayError as exc:
            logger.warning("Analysis call failed, using neutral default: %s", exc)
            return AnalysisResult.neutral()

        analysis = parse_analysis(raw)
        if analysis is None:
            logger.warning("Unparseable analysis output, using neutral default: %.200s", raw)
            return AnalysisResult.neutral()
        return analysis

    async def reply(
        self, message: str, analysis: AnalysisResult, context: TurnContext
    ) -> str:
        """Generate the therapeutic reply. Raises UpstreamReplyFailureException."""
        prompt = REPLY_PROMPT.format(
            message=message,
            analysis=analysis.model_dump_json(by_alias=True),
            memory=json.dumps(context.memory, default=str),
            goals=json.dumps(context.goals),
        )
        messages: list[dict] = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(context.history)
        messages.append({"role": "user", "content": prompt})

        try:
            return await self.generate_text(messages)
        except LLMGatewayError as exc:
            logger.error("Reply generation failed: %s", exc)
            raise UpstreamReplyFailureException(
                "The assistant could not generate a reply; nothing was saved"
            ) from exc
