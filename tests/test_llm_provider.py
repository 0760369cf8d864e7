from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from docqa.citations import extract_citations
from docqa.config import Settings
from docqa.errors import GenerationFailedError
from docqa.llm_provider import DemoLLM, OpenAIChatLLM, create_llm


class FakeCompletions:
    def __init__(self, *, content: str | None = "Answer [page 3]", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.requests: list[dict] = []

    def create(self, **request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.content is None:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _client(completions: FakeCompletions) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


MESSAGES = [
    {"role": "system", "content": "ctx"},
    {"role": "user", "content": "What were the risks?"},
]


def test_demo_llm_is_deterministic_and_cites_pages() -> None:
    llm = DemoLLM()

    first = llm.generate(MESSAGES, max_tokens=10)
    second = llm.generate(MESSAGES, max_tokens=10)

    assert first == second
    assert "What were the risks?" in first
    assert extract_citations(first)
    assert llm.status().ready is True
    assert llm.status().provider == "demo"


def test_openai_llm_sends_request_and_returns_content() -> None:
    completions = FakeCompletions()
    llm = OpenAIChatLLM(api_key=None, model="test-model", temperature=0.2, client=_client(completions))

    answer = llm.generate(MESSAGES, max_tokens=123, timeout=7.5)

    assert answer == "Answer [page 3]"
    request = completions.requests[0]
    assert request["model"] == "test-model"
    assert request["messages"] == MESSAGES
    assert request["max_tokens"] == 123
    assert request["temperature"] == 0.2
    assert request["timeout"] == 7.5


def test_openai_llm_omits_timeout_when_not_given() -> None:
    completions = FakeCompletions()
    llm = OpenAIChatLLM(api_key=None, model="test-model", client=_client(completions))

    llm.generate(MESSAGES, max_tokens=5)

    assert "timeout" not in completions.requests[0]


def test_missing_api_key_reports_status_and_fails_generation() -> None:
    llm = OpenAIChatLLM(api_key=None, model="test-model")

    status = llm.status()
    assert status.ready is False
    assert status.error == "OPENAI_API_KEY is not configured"

    with pytest.raises(GenerationFailedError):
        llm.generate(MESSAGES, max_tokens=5)


def test_timeout_is_mapped_to_generation_failed() -> None:
    request = httpx.Request("POST", "https://example.invalid/chat/completions")
    completions = FakeCompletions(error=openai.APITimeoutError(request=request))
    llm = OpenAIChatLLM(api_key=None, model="test-model", client=_client(completions))

    with pytest.raises(GenerationFailedError) as excinfo:
        llm.generate(MESSAGES, max_tokens=5, timeout=2.0)

    assert "timed out after 2.0s" in excinfo.value.message
    assert isinstance(excinfo.value.__cause__, openai.APITimeoutError)


def test_api_errors_are_mapped_to_generation_failed() -> None:
    request = httpx.Request("POST", "https://example.invalid/chat/completions")
    completions = FakeCompletions(error=openai.APIConnectionError(message="boom", request=request))
    llm = OpenAIChatLLM(api_key=None, model="test-model", client=_client(completions))

    with pytest.raises(GenerationFailedError) as excinfo:
        llm.generate(MESSAGES, max_tokens=5)

    assert excinfo.value.status_code == 502


def test_empty_completion_is_a_generation_failure() -> None:
    llm = OpenAIChatLLM(api_key=None, model="test-model", client=_client(FakeCompletions(content=None)))

    with pytest.raises(GenerationFailedError):
        llm.generate(MESSAGES, max_tokens=5)


def test_create_llm_selects_backend() -> None:
    assert isinstance(create_llm(Settings(llm_provider="demo")), DemoLLM)

    llm = create_llm(Settings(llm_provider="openai", openai_api_key="sk-test", llm_model="some/model"))
    assert isinstance(llm, OpenAIChatLLM)
    assert llm.model_name == "some/model"
    assert llm.status().ready is True

    with pytest.raises(ValueError):
        create_llm(Settings(llm_provider="carrier-pigeon"))
