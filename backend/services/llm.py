import logging
from typing import Dict, List, Optional

import httpx

from errors import UpstreamError

logger = logging.getLogger(__name__)


class LLMProvider:
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint.

    One instance is shared by the whole process. Every failure mode (network
    error, timeout, non-200, unexpected body, empty answer) is reported as
    ``UpstreamError`` so callers have a single thing to handle; nothing is
    retried here.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        instructions: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key.strip()
        self.model = model
        self.instructions = instructions
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            # Accept keys stored with or without the scheme prefix
            auth_val = self.api_key if self.api_key.lower().startswith("bearer ") else f"Bearer {self.api_key}"
            headers["Authorization"] = auth_val
        return headers

    def build_messages(self, prompt: str, history: List[Dict]) -> List[Dict]:
        messages = []
        if self.instructions:
            messages.append({"role": "system", "content": self.instructions})
        for m in history:
            messages.append({"role": m["sender"], "content": m["content"]})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str, history: List[Dict]) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": self.build_messages(prompt, history),
            "stream": False,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(url, headers=self._headers(), json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"LLM request timed out after {self.timeout}s: {e}")
            raise UpstreamError("The AI provider timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"LLM request failed: {e}", exc_info=True)
            raise UpstreamError("The AI provider is unavailable") from e

        if response.status_code != 200:
            logger.error(f"LLM returned {response.status_code}: {response.text[:200]}")
            raise UpstreamError("The AI provider returned an error")

        try:
            answer = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected LLM response body: {response.text[:200]}")
            raise UpstreamError("The AI provider returned an unexpected response") from e

        if not isinstance(answer, str) or not answer.strip():
            raise UpstreamError("The AI provider returned an empty answer")
        return answer.strip()
