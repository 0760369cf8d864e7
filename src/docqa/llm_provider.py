"""Text generation backends: an OpenAI-compatible chat client and an offline demo model."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import openai

from docqa.config import Settings
from docqa.errors import GenerationFailedError

LOGGER = logging.getLogger(__name__)

Messages = Sequence[Dict[str, str]]

_DEMO_RESPONSES: tuple[str, ...] = (
    'Based on the document, I found relevant information about "{query}". '
    "The document discusses this topic in detail across multiple sections. [page 1]",
    "According to the PDF content, {query} is mentioned in the context of the main subject matter. "
    "You can find more details on [page 2] and [page 3].",
    "The document provides insights about {query}. This information appears in several places "
    "throughout the text. See [page 1] for the primary discussion.",
    'Regarding "{query}", the document explains this concept thoroughly. The key points are '
    "outlined on [page 2] with supporting details on [page 3].",
    "I found information related to {query} in the document. The content suggests this is an "
    "important aspect covered in [page 1] and elaborated further in [page 2].",
)


@dataclass(slots=True)
class LLMStatus:
    """Structured status information about the configured LLM backend."""

    provider: str
    model_name: str
    ready: bool
    error: Optional[str] = None


class LLM:
    """Common interface exposed by text generation backends."""

    provider = "base"

    def generate(self, messages: Messages, max_tokens: int, timeout: float | None = None) -> str:
        """Return the assistant reply for ``messages``.

        Implementations raise :class:`GenerationFailedError` on any backend failure.
        """

        raise NotImplementedError

    @property
    def model_name(self) -> str:
        return "stub"

    @property
    def last_error(self) -> Optional[str]:
        return None

    def status(self) -> LLMStatus:
        return LLMStatus(
            provider=self.provider,
            model_name=self.model_name,
            ready=self.last_error is None,
            error=self.last_error,
        )


def _last_user_content(messages: Messages) -> str:
    for message in reversed(list(messages)):
        if message.get("role") == "user":
            return message.get("content", "")
    return ""


class DemoLLM(LLM):
    """Offline backend returning canned answers with page citations.

    The reply is chosen from a fixed set, keyed by a hash of the final user
    message so the same question always gets the same answer.
    """

    provider = "demo"

    def generate(self, messages: Messages, max_tokens: int, timeout: float | None = None) -> str:
        del max_tokens, timeout
        query = _last_user_content(messages).strip()
        digest = hashlib.sha256(query.encode("utf-8")).digest()
        template = _DEMO_RESPONSES[digest[0] % len(_DEMO_RESPONSES)]
        return template.format(query=query)

    @property
    def model_name(self) -> str:
        return "demo"


class OpenAIChatLLM(LLM):
    """Chat completions against an OpenAI-compatible endpoint (OpenRouter by default)."""

    provider = "openai"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        default_headers: Optional[Dict[str, str]] = None,
        client: Optional[openai.OpenAI] = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._error: Optional[str] = None
        self._client = client
        if self._client is None:
            if not api_key:
                self._error = "OPENAI_API_KEY is not configured"
            else:
                self._client = openai.OpenAI(
                    api_key=api_key,
                    base_url=base_url,
                    default_headers=default_headers,
                    max_retries=0,
                )

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def last_error(self) -> Optional[str]:
        return self._error

    def generate(self, messages: Messages, max_tokens: int, timeout: float | None = None) -> str:
        if self._client is None:
            raise GenerationFailedError(f"Failed to generate chat response: {self._error}")

        LOGGER.info("Requesting chat completion with %d messages from %s", len(messages), self._model)
        request: Dict[str, object] = {
            "model": self._model,
            "messages": list(messages),
            "max_tokens": max_tokens,
            "temperature": self._temperature,
        }
        if timeout is not None:
            request["timeout"] = timeout
        try:
            response = self._client.chat.completions.create(**request)
        except openai.APITimeoutError as error:
            raise GenerationFailedError(
                f"Failed to generate chat response: request timed out after {timeout}s", cause=error
            ) from error
        except openai.OpenAIError as error:
            raise GenerationFailedError(f"Failed to generate chat response: {error}", cause=error) from error

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if content is None:
            raise GenerationFailedError("Failed to generate chat response: empty completion")
        return content


def create_llm(settings: Settings) -> LLM:
    """Instantiate the backend named by ``settings.llm_provider``."""

    provider = settings.llm_provider
    if provider == "demo":
        return DemoLLM()
    if provider in {"openai", "openrouter"}:
        return OpenAIChatLLM(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.openai_base_url,
            temperature=settings.llm_temperature,
            default_headers={"HTTP-Referer": settings.frontend_url, "X-Title": "docqa"},
        )
    raise ValueError(f"Unsupported LLM_PROVIDER: {provider!r}")


__all__ = [
    "DemoLLM",
    "LLM",
    "LLMStatus",
    "Messages",
    "OpenAIChatLLM",
    "create_llm",
]
