import hashlib
import json
import os
import time
from typing import Any, Callable, Dict, Optional

from .cache import LRUCache, ResultCache, make_key
from .llm_client import LLMClient, get_llm_client
from .locator import locate_comments
from .logger import timed
from .models import AnalysisResponse, QuantitativeResult, StructuredResult
from .parser import parse, parse_quantitative
from .prompts import VARIANTS, build_prompt
from .retry import exponential_backoff, with_retries
from .rubric_loader import load_rubric
from .text_utils import truncate_center

# -------- Speed/robustness knobs --------
MAX_DOCUMENT_CHARS = int(os.environ.get("LLM_MAX_DOCUMENT_CHARS", "60000"))
MAX_ATTEMPTS = int(os.environ.get("LLM_MAX_ATTEMPTS", "3"))
BACKOFF_SECONDS = float(os.environ.get("LLM_BACKOFF_SECONDS", "1.0"))


def parse_kind(variant: str) -> str:
    return "bot_card" if variant.startswith("bot_card") else "legal"


class Analyzer:
    """
    One request's call chain: cache lookup -> LLM (with retries) -> parse -> locate.

    The cache is the only state shared between requests. The LLM client is
    resolved on first use so the service can start without a provider.
    """

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        cache: Optional[ResultCache] = None,
        rubric: Optional[Dict[str, Any]] = None,
        attempts: int = MAX_ATTEMPTS,
        backoff_seconds: float = BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._llm = llm
        self.cache = cache if cache is not None else LRUCache()
        self._rubric = rubric
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    @property
    def llm(self) -> LLMClient:
        if self._llm is None:
            self._llm = get_llm_client()
        return self._llm

    @property
    def rubric(self) -> Dict[str, Any]:
        if self._rubric is None:
            self._rubric = load_rubric()
        return self._rubric

    def _call_llm(self, prompt: str, temperature: float, top_p: float) -> str:
        llm = self.llm
        return with_retries(
            lambda: llm.complete(prompt, temperature=temperature, top_p=top_p),
            attempts=self.attempts,
            backoff=exponential_backoff(self.backoff_seconds),
            sleep=self._sleep,
            label=getattr(llm, "name", "llm"),
        )

    def analyze(
        self,
        text: str,
        variant: str = "legal",
        system_prompt: Optional[str] = None,
        temperature: float = 0.1,
        top_p: float = 0.8,
    ) -> AnalysisResponse:
        if variant not in VARIANTS or variant == "bot_card_quant":
            raise ValueError(f"unknown analysis variant: {variant!r}")

        cache_variant = variant
        if system_prompt and variant == "legal":
            # only the legal prompt can be replaced
            cache_variant += ":" + hashlib.sha256(system_prompt.encode("utf-8")).hexdigest()[:16]
        key = make_key(text, cache_variant)

        result: Optional[StructuredResult] = self.cache.get(key)
        cached = result is not None
        if result is None:
            prompt = build_prompt(variant, truncate_center(text, MAX_DOCUMENT_CHARS), system_prompt=system_prompt)
            with timed(f"LLM {variant}"):
                raw = self._call_llm(prompt, temperature, top_p)
            with timed("Parse"):
                result = parse(raw, kind=parse_kind(variant))
            # a fallback is not cached so the same document can be retried
            if not result.is_fallback:
                self.cache.set(key, result)

        with timed("Locate"):
            located = locate_comments(result.comments, text)
        return AnalysisResponse(result=result, located=located, cached=cached)

    def quantify(self, text: str, analysis: Dict[str, Any], temperature: float = 0.1, top_p: float = 0.8) -> QuantitativeResult:
        analysis_blob = json.dumps(analysis, sort_keys=True, ensure_ascii=False)
        key = make_key(text + "\n" + analysis_blob, "bot_card_quant")

        result: Optional[QuantitativeResult] = self.cache.get(key)
        if result is not None:
            return result

        prompt = build_prompt(
            "bot_card_quant",
            truncate_center(text, MAX_DOCUMENT_CHARS),
            analysis=analysis,
            rubric=self.rubric,
        )
        with timed("LLM bot_card_quant"):
            raw = self._call_llm(prompt, temperature, top_p)
        with timed("Parse scores"):
            result = parse_quantitative(raw, self.rubric)
        if not result.is_fallback:
            self.cache.set(key, result)
        return result
