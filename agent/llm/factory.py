import httpx

from agent.llm.base import LLMClient
from agent.llm.http_client import ChatCompletionsClient
from agent.modules.remix import AISettings


def get_llm_client(ai: AISettings, http_client: httpx.AsyncClient | None = None) -> LLMClient:
    """Build the completion client for a settings snapshot.

    The caller owns ``http_client`` (and with it any timeout); without one the
    client opens a fresh connection per request.
    """
    return ChatCompletionsClient(
        api_key=ai.api_key,
        model=ai.model,
        endpoint=ai.endpoint,
        http_client=http_client,
    )
