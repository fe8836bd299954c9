"""OpenAI-compatible chat completion client over plain httpx.

Posts straight to a full endpoint URL (``.../v1/chat/completions``), so any
compatible gateway works without SDK base-url juggling.
"""
import httpx

from agent.llm.base import (
    LLMClient,
    LLMResponse,
    LLMResponseError,
    LLMStatusError,
    LLMTransportError,
)


class ChatCompletionsClient(LLMClient):
    def __init__(
        self,
        api_key: str,
        model: str,
        endpoint: str,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._endpoint = endpoint
        # When None, a short-lived client is opened per request.
        self._http = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _payload(self, system: str, user: str, max_tokens: int, temperature: float) -> dict:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        # RequestError covers transport and body decoding failures; a key or
        # endpoint that cannot be encoded into the request fails before sending.
        try:
            return await client.post(self._endpoint, json=payload, headers=self._headers())
        except (httpx.RequestError, httpx.InvalidURL, UnicodeEncodeError) as e:
            raise LLMTransportError(f"{type(e).__name__}: {e}") from e

    async def complete(
        self,
        system: str,
        user: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        payload = self._payload(system, user, max_tokens, temperature)
        if self._http is not None:
            r = await self._post(self._http, payload)
        else:
            async with httpx.AsyncClient() as client:
                r = await self._post(client, payload)

        if not r.is_success:
            raise LLMStatusError(r.status_code, r.reason_phrase)

        try:
            data = r.json()
        except ValueError as e:
            raise LLMResponseError(f"Response is not JSON: {e}") from e

        return LLMResponse(
            content=_extract_content(data),
            tokens_used=_extract_usage(data),
            model=self._model,
        )


def _extract_content(data) -> str:
    """Pull ``choices[0].message.content`` out of a completion body."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise LLMResponseError(f"Missing choices[0].message.content ({type(e).__name__})") from e
    if not isinstance(content, str):
        raise LLMResponseError(f"Completion content is {type(content).__name__}, not str")
    return content


def _extract_usage(data: dict) -> int:
    usage = data.get("usage") or {}
    tokens = usage.get("total_tokens") if isinstance(usage, dict) else None
    return tokens if isinstance(tokens, int) else 0
