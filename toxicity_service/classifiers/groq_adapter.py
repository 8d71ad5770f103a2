"""
Groq adapter - secondary remote moderation tier.

Groq exposes an OpenAI-compatible API.

Endpoint: POST {base_url}/chat/completions
Auth:     Authorization: Bearer <key>
Reply:    choices[0].message.content
"""

from __future__ import annotations

from typing import Any, Final

from toxicity_service.classifiers.exceptions import RemoteResponseError
from toxicity_service.classifiers.remote_adapter import (
    DEFAULT_TIMEOUT,
    MODERATION_SYSTEM_PROMPT,
    RemoteClassifier,
)

DEFAULT_BASE_URL: Final[str] = "https://api.groq.com/openai/v1"
DEFAULT_MODEL: Final[str] = "llama-3.1-8b-instant"
PROVIDER_NAME: Final[str] = "groq"

TEMPERATURE: Final[float] = 0.3
MAX_TOKENS: Final[int] = 512


class GroqClassifier(RemoteClassifier):
    """Groq chat-completions adapter."""

    name = PROVIDER_NAME

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, model=model, timeout=timeout)

    def _endpoint(self) -> str:
        return f"{self._base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": MODERATION_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def _extract_text(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise RemoteResponseError("groq reply had no message content") from e
        return str(content or "").strip()
