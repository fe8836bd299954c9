"""
AI transformation with rule-based fallback.

Two stages:
  1. attempt_remote() tries one completion request and reports either the
     completion text or the kind of failure that stopped it.
  2. remix() substitutes the rule-based format for any failure.

Failures are LLMError subclasses raised by the transport; nothing broader is
caught here. Callers always get platform-appropriate text back.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from agent.llm.base import (
    LLMClient,
    LLMError,
    LLMResponseError,
    LLMStatusError,
    LLMTransportError,
)
from agent.modules.route import build_prompt, format_content
from agent.prompts import remix as prompts

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_TOKENS = 1000

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"


@dataclass(frozen=True)
class AISettings:
    """Point-in-time snapshot of the AI options for one call."""
    enabled: bool = False
    api_key: str = ""
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT

    def __repr__(self) -> str:
        key = "***" if self.api_key else "''"
        return (
            f"AISettings(enabled={self.enabled}, api_key={key}, "
            f"model={self.model!r}, endpoint={self.endpoint!r})"
        )


class FailureKind(str, Enum):
    DISABLED = "disabled"
    MISSING_KEY = "missing_key"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class RemoteAttempt:
    text: str | None = None
    failure: FailureKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class RemixResult:
    text: str
    source: str  # "ai" | "rules"
    failure: FailureKind | None = None


def _failure_kind(error: LLMError) -> FailureKind:
    if isinstance(error, LLMStatusError):
        return FailureKind.HTTP_STATUS
    if isinstance(error, LLMTransportError):
        return FailureKind.NETWORK
    if isinstance(error, LLMResponseError):
        return FailureKind.MALFORMED
    # Unclassified transport errors are treated as network trouble.
    return FailureKind.NETWORK


def _default_client(ai: AISettings) -> LLMClient:
    from agent.llm.factory import get_llm_client
    return get_llm_client(ai)


async def attempt_remote(
    content: str,
    platform_id: str,
    ai: AISettings,
    llm: LLMClient | None = None,
) -> RemoteAttempt:
    """Try the AI rewrite once. Never raises for request failures."""
    if not ai.enabled:
        return RemoteAttempt(failure=FailureKind.DISABLED)
    if not ai.api_key:
        return RemoteAttempt(failure=FailureKind.MISSING_KEY)

    client = llm or _default_client(ai)
    try:
        response = await client.complete(
            system=prompts.SYSTEM,
            user=build_prompt(content, platform_id),
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
        )
    except LLMError as e:
        return RemoteAttempt(failure=_failure_kind(e), detail=str(e))

    text = response.content.strip()
    if not text:
        return RemoteAttempt(failure=FailureKind.MALFORMED, detail="empty completion")
    return RemoteAttempt(text=text)


async def remix(
    content: str,
    platform_id: str,
    ai: AISettings,
    llm: LLMClient | None = None,
) -> RemixResult:
    attempt = await attempt_remote(content, platform_id, ai, llm)
    if attempt.ok:
        return RemixResult(text=attempt.text, source="ai")

    if attempt.failure not in (FailureKind.DISABLED, FailureKind.MISSING_KEY):
        logger.warning(
            "AI transformation failed for %s (%s): %s; using rule-based format",
            platform_id, attempt.failure.value, attempt.detail,
        )
    return RemixResult(
        text=format_content(content, platform_id),
        source="rules",
        failure=attempt.failure,
    )


async def transform_ai(
    content: str,
    platform_id: str,
    ai: AISettings,
    llm: LLMClient | None = None,
) -> str:
    """Platform-styled text for ``content``: the AI rewrite when it works, else the rule-based one."""
    return (await remix(content, platform_id, ai, llm)).text
