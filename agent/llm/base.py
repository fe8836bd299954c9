from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMResponse:
    content: str
    tokens_used: int = 0
    model: str = ""


class LLMError(Exception):
    """Base for every failure a completion request can end in."""


class LLMTransportError(LLMError):
    """The request never produced an HTTP response (DNS, connect, timeout...)."""


class LLMStatusError(LLMError):
    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(f"HTTP {status_code} {reason}".strip())
        self.status_code = status_code


class LLMResponseError(LLMError):
    """The response body is not a chat completion we can read."""


class LLMClient(ABC):
    """Abstract base for completion providers."""

    @abstractmethod
    async def complete(
        self,
        system: str,
        user: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a single-turn completion request.

        Raises an LLMError subclass on any failure.
        """
        ...
