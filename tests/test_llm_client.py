import pytest
import requests

from redline import llm_client
from redline.llm_client import OllamaClient, OpenAIClient, get_llm_client
from redline.retry import LLMCallError, LLMUnavailableError


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


def test_ollama_complete(monkeypatch):
    seen = {}

    def fake_post(url, json=None, timeout=None):
        seen["url"] = url
        seen["body"] = json
        return FakeResponse({"response": '  {"id": "x"}\n'})

    monkeypatch.setattr(llm_client.requests, "post", fake_post)
    out = OllamaClient("llama3", base_url="http://ollama:11434").complete("PROMPT", temperature=0.2, top_p=0.9)
    assert out == '{"id": "x"}'
    assert seen["url"] == "http://ollama:11434/api/generate"
    assert seen["body"]["model"] == "llama3"
    assert seen["body"]["stream"] is False
    assert seen["body"]["options"]["temperature"] == 0.2


def test_ollama_http_error_is_wrapped(monkeypatch):
    monkeypatch.setattr(llm_client.requests, "post", lambda *a, **k: FakeResponse({}, status=503))
    with pytest.raises(LLMCallError):
        OllamaClient("llama3").complete("PROMPT")


def test_ollama_connection_error_is_wrapped(monkeypatch):
    def boom(*a, **k):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(llm_client.requests, "post", boom)
    with pytest.raises(LLMCallError):
        OllamaClient("llama3").complete("PROMPT")


def test_provider_selection(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "llama3")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert isinstance(get_llm_client("auto"), OllamaClient)

    monkeypatch.delenv("OLLAMA_MODEL")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert isinstance(get_llm_client("auto"), OpenAIClient)
    assert isinstance(get_llm_client("openai"), OpenAIClient)


def test_no_provider_configured(monkeypatch):
    monkeypatch.delenv("OLLAMA_MODEL", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(LLMUnavailableError):
        get_llm_client("auto")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with pytest.raises(LLMUnavailableError):
        get_llm_client("ollama")
