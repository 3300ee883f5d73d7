import logging
import os
from typing import Optional, Protocol

import requests

from .retry import LLMCallError, LLMUnavailableError

logger = logging.getLogger(__name__)

# -------- Provider knobs --------
LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "auto").strip().lower()
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434").rstrip("/")
OLLAMA_TIMEOUT = int(os.environ.get("OLLAMA_TIMEOUT", "120"))
OPENAI_TIMEOUT = int(os.environ.get("OPENAI_TIMEOUT", "120"))
OPENAI_MODEL_DEFAULT = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")


class LLMClient(Protocol):
    name: str

    def complete(self, prompt: str, temperature: float = 0.1, top_p: float = 0.8) -> str: ...


# ----------------- Ollama path (local) -----------------

class OllamaClient:
    name = "ollama"

    def __init__(self, model: str, base_url: str = OLLAMA_URL, timeout: int = OLLAMA_TIMEOUT):
        self.model = model
        self.base_url = base_url
        self.timeout = timeout

    def complete(self, prompt: str, temperature: float = 0.1, top_p: float = 0.8) -> str:
        try:
            r = requests.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": prompt,
                    "stream": False,
                    "format": "json",
                    "options": {
                        "temperature": temperature,
                        "top_p": top_p,
                        "num_ctx": 16384,
                    },
                },
                timeout=self.timeout,
            )
            r.raise_for_status()
            return (r.json().get("response") or "").strip()
        except (requests.RequestException, ValueError) as e:
            raise LLMCallError(f"ollama: {e}") from e


# ----------------- OpenAI path -----------------

class OpenAIClient:
    name = "openai"

    def __init__(self, model: str = OPENAI_MODEL_DEFAULT, timeout: int = OPENAI_TIMEOUT):
        from openai import OpenAI
        self.model = model
        self._client = OpenAI(timeout=timeout, max_retries=0)

    def complete(self, prompt: str, temperature: float = 0.1, top_p: float = 0.8) -> str:
        import openai
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a meticulous reviewer that only returns VALID JSON and nothing else."},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                top_p=top_p,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise LLMCallError(f"openai: {e}") from e
        return (resp.choices[0].message.content or "").strip()


def get_llm_client(provider: Optional[str] = None) -> LLMClient:
    """Pick a provider from the environment; raises LLMUnavailableError when none is configured."""
    provider = (provider or LLM_PROVIDER).lower()
    ollama_model = os.environ.get("OLLAMA_MODEL", "").strip()
    has_openai_key = bool(os.environ.get("OPENAI_API_KEY"))

    if provider in ("ollama", "auto") and ollama_model:
        logger.info("Using Ollama model %s at %s", ollama_model, OLLAMA_URL)
        return OllamaClient(ollama_model)
    if provider in ("openai", "auto") and has_openai_key:
        logger.info("Using OpenAI model %s", OPENAI_MODEL_DEFAULT)
        return OpenAIClient()
    raise LLMUnavailableError(
        f"No LLM provider configured for LLM_PROVIDER={provider!r}. Set OLLAMA_MODEL or OPENAI_API_KEY."
    )
