"""
Gemini adapter - primary remote moderation tier.

Endpoint: POST {base_url}/v1beta/models/{model}:generateContent
Auth:     x-goog-api-key header
Reply:    candidates[0].content.parts[*].text

Every harm category is set to BLOCK_NONE: the request deliberately asks
the model to discuss toxic content, and Gemini's own filter would
otherwise block the moderation prompt itself.
"""

from __future__ import annotations

from typing import Any, Final

from toxicity_service.classifiers.exceptions import RemoteResponseError
from toxicity_service.classifiers.remote_adapter import DEFAULT_TIMEOUT, RemoteClassifier

DEFAULT_BASE_URL: Final[str] = "https://generativelanguage.googleapis.com"
DEFAULT_MODEL: Final[str] = "gemini-2.0-flash"
PROVIDER_NAME: Final[str] = "gemini"

HARM_CATEGORIES: Final[tuple[str, ...]] = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
BLOCK_NONE: Final[str] = "BLOCK_NONE"
TEMPERATURE: Final[float] = 0.2
MAX_OUTPUT_TOKENS: Final[int] = 512


class GeminiClassifier(RemoteClassifier):
    """Gemini generateContent adapter.

    Usage:
        gemini = GeminiClassifier(api_key=settings.gemini_api_key)
        result = await gemini.classify("some message")
    """

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
        return f"{self._base_url}/v1beta/models/{self.model}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}

    def _build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "safetySettings": [
                {"category": category, "threshold": BLOCK_NONE}
                for category in HARM_CATEGORIES
            ],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
        }

    def _extract_text(self, data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(str(part.get("text", "")) for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            feedback = data.get("promptFeedback") if isinstance(data, dict) else None
            msg = f"gemini reply had no candidate text (promptFeedback={feedback})"
            raise RemoteResponseError(msg) from e
        return text.strip()
